"""Aggregation logic for the visible reading history."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from models.readings import FIELD_NAMES, Reading

DEFAULT_ALERT_TEMPERATURE = 32.0


@dataclass
class ChannelSummary:
    """Statistics for one channel, ignoring absent values."""

    count: int = 0
    min_value: float | None = None
    max_value: float | None = None
    mean_value: float | None = None
    _total: float = field(default=0.0, repr=False)

    def add(self, value: float) -> None:
        self.count += 1
        self._total += value
        if self.min_value is None or value < self.min_value:
            self.min_value = value
        if self.max_value is None or value > self.max_value:
            self.max_value = value
        self.mean_value = self._total / self.count


@dataclass
class SeriesSummary:
    """Computed statistics for a window of readings."""

    row_count: int = 0
    first_timestamp: int | None = None
    last_timestamp: int | None = None
    channels: Dict[str, ChannelSummary] = field(
        default_factory=lambda: {name: ChannelSummary() for name in FIELD_NAMES}
    )
    alert: bool = False


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def __init__(self, alert_temperature: float = DEFAULT_ALERT_TEMPERATURE) -> None:
        self.alert_temperature = alert_temperature

    def summarize(
        self, readings: Iterable[Reading], latest: Optional[Reading] = None
    ) -> SeriesSummary:
        summary = SeriesSummary()
        last: Optional[Reading] = None

        for reading in readings:
            summary.row_count += 1
            if summary.first_timestamp is None:
                summary.first_timestamp = reading.timestamp
            summary.last_timestamp = reading.timestamp
            last = reading
            for name in FIELD_NAMES:
                value = reading.value(name)
                if value is not None:
                    summary.channels[name].add(value)

        summary.alert = self.is_alert(latest or last)
        return summary

    def is_alert(self, reading: Optional[Reading]) -> bool:
        """A device is in alert once its temperature reaches the threshold."""
        if reading is None:
            return False
        temperature = reading.value("TEMP")
        return temperature is not None and temperature >= self.alert_temperature
