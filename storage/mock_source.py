from __future__ import annotations

import math
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from models.readings import FIELD_NAMES, Reading
from storage.source import RangePage


class MockReadingSource:
    """In-memory reading source with the same paging contract as the remote API.

    Cursors are stringified offsets into the filtered result set. Used by the
    tests and by the service when no remote URL is configured.
    """

    def __init__(self, readings: Optional[Dict[str, List[Dict[str, Any]]]] = None) -> None:
        self._readings: Dict[str, List[Dict[str, Any]]] = {}
        for device, items in (readings or {}).items():
            for item in items:
                self.add(device, item)
        self.latest_calls = 0
        self.range_calls = 0

    def add(self, device: str, item: Dict[str, Any]) -> None:
        payload = dict(item)
        payload.setdefault("device", device)
        bucket = self._readings.setdefault(device, [])
        bucket.append(payload)
        bucket.sort(key=lambda raw: raw["timestamp"])

    async def get_latest(self, device: str) -> Optional[Reading]:
        self.latest_calls += 1
        items = self._readings.get(device)
        if not items:
            return None
        return Reading.from_raw(items[-1], device=device)

    async def get_range(
        self,
        device: str,
        range_from: int,
        range_to: int,
        limit: int,
        cursor: Optional[str] = None,
    ) -> RangePage:
        self.range_calls += 1
        matching = [
            item
            for item in self._readings.get(device, [])
            if range_from <= item["timestamp"] <= range_to
        ]
        offset = int(cursor) if cursor else 0
        page = matching[offset : offset + limit]
        next_offset = offset + len(page)
        next_cursor = str(next_offset) if page and next_offset < len(matching) else None
        return RangePage(items=[dict(item) for item in page], next_cursor=next_cursor)

    async def close(self) -> None:
        return None


def _synthetic_registers(timestamp: int, index: int) -> Dict[str, Optional[float]]:
    phase = (timestamp / 3600.0) + index
    voltage = round(220.0 + 3.0 * math.cos(phase), 2)
    current = round(4.0 + math.sin(phase / 2), 3)
    registers = {
        "TEMP": round(26.0 + 4.0 * math.sin(phase), 2),
        "VOLTAGE": voltage,
        "CURRENT": current,
        "FREQUENCY": 60.0,
        "POWER": round(voltage * current, 1),
    }
    return {name: registers[name] for name in FIELD_NAMES}


class DemoReadingSource(MockReadingSource):
    """Mock source that keeps producing synthetic readings as time passes.

    Each query first emits one reading per elapsed ``step_seconds`` since the
    last one, so live polling sees new points without a remote endpoint.
    """

    def __init__(
        self,
        devices: Sequence[str],
        step_seconds: int = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__()
        self.devices = tuple(devices)
        self.step_seconds = step_seconds
        self._clock = clock
        self._last_emitted: Dict[str, int] = {}

    def seed(self, end: int, span_seconds: int) -> None:
        for device in self.devices:
            for timestamp in range(end - span_seconds, end + 1, self.step_seconds):
                self._emit(device, timestamp)

    def _emit(self, device: str, timestamp: int) -> None:
        index = self.devices.index(device)
        self.add(device, {"timestamp": timestamp, "registers": _synthetic_registers(timestamp, index)})
        self._last_emitted[device] = timestamp

    def _catch_up(self, device: str) -> None:
        last = self._last_emitted.get(device)
        if last is None:
            return
        now = int(self._clock())
        for timestamp in range(last + self.step_seconds, now + 1, self.step_seconds):
            self._emit(device, timestamp)

    async def get_latest(self, device: str) -> Optional[Reading]:
        self._catch_up(device)
        return await super().get_latest(device)

    async def get_range(
        self,
        device: str,
        range_from: int,
        range_to: int,
        limit: int,
        cursor: Optional[str] = None,
    ) -> RangePage:
        # Later pages must page over the same rows as the first one.
        if cursor is None:
            self._catch_up(device)
        return await super().get_range(device, range_from, range_to, limit, cursor)


def build_demo_source(
    devices: Sequence[str],
    now: Optional[int] = None,
    span_seconds: int = 86400,
    step_seconds: int = 300,
    clock: Callable[[], float] = time.time,
) -> DemoReadingSource:
    """Seed a demo source with a day of synthetic readings per device."""
    source = DemoReadingSource(devices, step_seconds=step_seconds, clock=clock)
    source.seed(int(now if now is not None else clock()), span_seconds)
    return source
