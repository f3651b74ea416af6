"""Interface of the remote reading source consumed by the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Sequence

from models.readings import Reading


@dataclass(frozen=True)
class RangePage:
    """One page of a range query: raw items plus the continuation cursor."""

    items: Sequence[Mapping[str, Any]] = field(default_factory=tuple)
    next_cursor: Optional[str] = None


class ReadingSource(Protocol):
    async def get_latest(self, device: str) -> Optional[Reading]:
        ...

    async def get_range(
        self,
        device: str,
        range_from: int,
        range_to: int,
        limit: int,
        cursor: Optional[str] = None,
    ) -> RangePage:
        ...

    async def close(self) -> None:
        ...
