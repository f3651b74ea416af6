"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from models.readings import Reading
from services.aggregator import SeriesSummary
from services.dashboard import SessionStatus


class ReadingOut(BaseModel):
    """A single reading as exposed to the dashboard."""

    device: str
    timestamp: int = Field(..., description="Epoch seconds when the reading was taken.")
    channels: Dict[str, Optional[float]] = Field(default_factory=dict)

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingOut":
        return cls(device=reading.device, timestamp=reading.timestamp, channels=dict(reading.fields))


class HistoryResponse(BaseModel):
    device: str
    window: Optional[List[int]] = Field(
        default=None, description="Committed zoom window, or null when following the full series."
    )
    readings: List[ReadingOut] = Field(default_factory=list)


class WindowResponse(BaseModel):
    auto: bool
    left: Optional[int] = None
    right: Optional[int] = None


class StatusResponse(BaseModel):
    device: str
    range: str
    range_from: Optional[int] = None
    range_to: Optional[int] = None
    is_fetching_history: bool
    is_polling: bool
    last_error: Optional[str] = None
    notice: Optional[str] = None
    truncated: bool = False

    @classmethod
    def from_status(cls, status: SessionStatus) -> "StatusResponse":
        return cls(
            device=status.device,
            range=status.range_label,
            range_from=status.range_from,
            range_to=status.range_to,
            is_fetching_history=status.is_fetching_history,
            is_polling=status.is_polling,
            last_error=status.last_error,
            notice=status.notice,
            truncated=status.truncated,
        )


class ChannelStats(BaseModel):
    count: int = Field(..., ge=0)
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    mean_value: Optional[float] = None


class SummaryResponse(BaseModel):
    """Aggregate metrics computed over the visible history."""

    device: str
    row_count: int = Field(..., ge=0)
    first_timestamp: Optional[int] = None
    last_timestamp: Optional[int] = None
    alert: bool = False
    channels: Dict[str, ChannelStats] = Field(default_factory=dict)

    @classmethod
    def from_summary(cls, device: str, summary: SeriesSummary) -> "SummaryResponse":
        return cls(
            device=device,
            row_count=summary.row_count,
            first_timestamp=summary.first_timestamp,
            last_timestamp=summary.last_timestamp,
            alert=summary.alert,
            channels={
                name: ChannelStats(
                    count=stats.count,
                    min_value=stats.min_value,
                    max_value=stats.max_value,
                    mean_value=stats.mean_value,
                )
                for name, stats in summary.channels.items()
            },
        )


class DeviceSelection(BaseModel):
    device: str = Field(..., min_length=1)


class RangeSelection(BaseModel):
    """Either a compact spec (``24h``, ``7d``, ``all``) or explicit dates."""

    spec: Optional[str] = Field(default=None, description="Preset such as 24h or 'all'.")
    start: Optional[str] = Field(default=None, description="Explicit start date, YYYY-MM-DD.")
    end: Optional[str] = Field(default=None, description="Explicit end date, YYYY-MM-DD.")


class ZoomPoint(BaseModel):
    x: int


class RefreshResponse(BaseModel):
    outcome: str
