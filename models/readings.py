"""Domain models shared across services."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

FIELD_NAMES = ("TEMP", "VOLTAGE", "CURRENT", "FREQUENCY", "POWER")


def _coerce_channel(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _coerce_timestamp(value: Any) -> int:
    if value is None or isinstance(value, bool):
        raise ValueError("Reading is missing a timestamp.")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid reading timestamp {value!r}.") from exc


@dataclass(frozen=True, slots=True)
class Reading:
    """One timestamped multi-channel sample for a device."""

    device: str
    timestamp: int
    fields: Mapping[str, Optional[float]] = field(
        default_factory=lambda: MappingProxyType({name: None for name in FIELD_NAMES})
    )

    @property
    def key(self) -> tuple[str, int]:
        return (self.device, self.timestamp)

    def value(self, name: str) -> Optional[float]:
        return self.fields.get(name)

    @classmethod
    def build(cls, device: str, timestamp: int, **channels: Any) -> "Reading":
        values = {name: _coerce_channel(channels.get(name)) for name in FIELD_NAMES}
        return cls(device=device, timestamp=int(timestamp), fields=MappingProxyType(values))

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], device: Optional[str] = None) -> "Reading":
        """Normalize a source payload into a reading.

        The source nests channel values under ``registers``; a missing or
        non-numeric channel becomes ``None``. Range-query items omit the
        device, so callers pass it explicitly.
        """
        registers = raw.get("registers") or {}
        if not isinstance(registers, Mapping):
            registers = {}
        owner = raw.get("device") or device
        if not owner:
            raise ValueError("Reading is missing a device identifier.")
        timestamp = _coerce_timestamp(raw.get("timestamp"))
        values = {name: _coerce_channel(registers.get(name)) for name in FIELD_NAMES}
        return cls(device=str(owner), timestamp=timestamp, fields=MappingProxyType(values))
