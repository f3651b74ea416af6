"""Translate logical range selections into concrete epoch-second bounds."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo
from typing import Optional, Tuple, Union

from services.errors import InvalidRange

# Lower bound used for "all" queries: the Unix epoch.
ALL_TIME_FLOOR = 0

_END_OF_DAY = time(23, 59, 59)
_PRESET_PATTERN = re.compile(r"^(\d+)\s*([mhdw])$")
_UNIT_SECONDS = {"m": 60, "h": 3600, "d": 86400, "w": 7 * 86400}

DateLike = Union[date, str, None]


@dataclass(frozen=True)
class Preset:
    duration_seconds: int

    def __post_init__(self) -> None:
        if self.duration_seconds <= 0:
            raise InvalidRange("Preset duration must be positive.")

    def label(self) -> str:
        for unit in ("w", "d", "h", "m"):
            size = _UNIT_SECONDS[unit]
            if self.duration_seconds % size == 0:
                return f"{self.duration_seconds // size}{unit}"
        return f"{self.duration_seconds}s"


@dataclass(frozen=True)
class AllTime:

    def label(self) -> str:
        return "all"


@dataclass(frozen=True)
class Explicit:
    start: DateLike
    end: DateLike

    def label(self) -> str:
        return f"{self.start}..{self.end}"


RangeKind = Union[Preset, AllTime, Explicit]


def _parse_date(value: DateLike, name: str) -> date:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidRange(f"Missing {name} date.")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise InvalidRange(f"Invalid {name} date {value!r}; expected YYYY-MM-DD.") from exc


def _local_timestamp(day: date, moment: time, tz: Optional[tzinfo]) -> int:
    if tz is None:
        # Naive datetimes resolve against the process local time zone.
        return int(datetime.combine(day, moment).timestamp())
    return int(datetime.combine(day, moment, tzinfo=tz).timestamp())


def resolve_range(now: int, kind: RangeKind, tz: Optional[tzinfo] = None) -> Tuple[int, int]:
    """Return ``(from, to)`` epoch seconds for ``kind`` evaluated at ``now``."""
    if isinstance(kind, Preset):
        return now - kind.duration_seconds, now
    if isinstance(kind, AllTime):
        return ALL_TIME_FLOOR, now
    if isinstance(kind, Explicit):
        start = _parse_date(kind.start, "start")
        end = _parse_date(kind.end, "end")
        range_from = _local_timestamp(start, time.min, tz)
        range_to = _local_timestamp(end, _END_OF_DAY, tz)
        if range_from > range_to:
            raise InvalidRange(f"Start date {start} is after end date {end}.")
        return range_from, range_to
    raise InvalidRange(f"Unsupported range selection {kind!r}.")


def parse_range(text: str) -> RangeKind:
    """Parse the compact spelling used by the API and CLI.

    Accepts ``all``, a preset such as ``30m``, ``24h``, ``7d`` or ``2w``, or
    ``YYYY-MM-DD..YYYY-MM-DD`` for an explicit range.
    """
    candidate = (text or "").strip().lower()
    if not candidate:
        raise InvalidRange("Range selection is empty.")
    if candidate == "all":
        return AllTime()
    if ".." in candidate:
        start, _, end = candidate.partition("..")
        return Explicit(start=start.strip() or None, end=end.strip() or None)
    match = _PRESET_PATTERN.match(candidate)
    if match is None:
        raise InvalidRange(f"Unrecognized range {text!r}.")
    amount, unit = int(match.group(1)), match.group(2)
    return Preset(duration_seconds=amount * _UNIT_SECONDS[unit])
