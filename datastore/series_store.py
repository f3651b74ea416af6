from __future__ import annotations

from bisect import bisect_left, bisect_right
from collections import deque
from typing import Deque, Iterable, Optional, Tuple

from models.readings import Reading


class SeriesStore:
    """Ordered, capacity-bounded reading history for a single device.

    Timestamps are strictly increasing and unique; once ``capacity`` is
    exceeded the oldest readings are evicted first.
    """

    def __init__(self, device: str, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("Series capacity must be positive.")
        self.device = device
        self.capacity = capacity
        self._readings: Deque[Reading] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._readings)

    def replace(self, readings: Iterable[Reading]) -> None:
        """Swap in a new history, keeping the most recent ``capacity`` items.

        Callers hand over readings already sorted and deduplicated; anything
        that would break ordering is dropped rather than stored.
        """
        kept: Deque[Reading] = deque(maxlen=self.capacity)
        for reading in readings:
            if kept and reading.timestamp <= kept[-1].timestamp:
                continue
            kept.append(reading)
        self._readings = kept

    def merge(self, reading: Reading) -> bool:
        """Append ``reading`` if it is strictly newer than the stored maximum."""
        if self._readings and reading.timestamp <= self._readings[-1].timestamp:
            return False
        # deque(maxlen=...) evicts from the left on overflow.
        self._readings.append(reading)
        return True

    def snapshot(self) -> Tuple[Reading, ...]:
        return tuple(self._readings)

    def latest(self) -> Optional[Reading]:
        return self._readings[-1] if self._readings else None

    def bounds(self) -> Optional[Tuple[int, int]]:
        if not self._readings:
            return None
        return self._readings[0].timestamp, self._readings[-1].timestamp

    def between(self, left: int, right: int) -> Tuple[Reading, ...]:
        """Return readings with ``left <= timestamp <= right``."""
        items = self.snapshot()
        keys = [reading.timestamp for reading in items]
        return items[bisect_left(keys, left) : bisect_right(keys, right)]
