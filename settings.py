from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from services.errors import InvalidRange
from services.ranges import parse_range, resolve_range


_SOURCE_URL_ENV = "TELEMETRY_SOURCE_URL"
_API_TOKEN_ENV = "TELEMETRY_API_TOKEN"
_SOURCE_TIMEOUT_ENV = "TELEMETRY_SOURCE_TIMEOUT"
_DEVICES_ENV = "TELEMETRY_DEVICES"
_DEFAULT_DEVICE_ENV = "TELEMETRY_DEFAULT_DEVICE"
_POLL_INTERVAL_ENV = "TELEMETRY_POLL_INTERVAL"
_HISTORY_CAPACITY_ENV = "TELEMETRY_HISTORY_CAPACITY"
_PAGE_LIMIT_ENV = "TELEMETRY_PAGE_LIMIT"
_MAX_PAGES_ENV = "TELEMETRY_MAX_PAGES"
_DEFAULT_RANGE_ENV = "TELEMETRY_DEFAULT_RANGE"
_ALERT_TEMPERATURE_ENV = "TELEMETRY_ALERT_TEMPERATURE"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    source_url: Optional[str]
    api_token: Optional[str]
    source_timeout: float
    devices: Tuple[str, ...]
    default_device: str
    poll_interval: float
    history_capacity: int
    page_limit: int
    max_pages: int
    default_range: str
    alert_temperature: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_devices(default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(_DEVICES_ENV)
    if value is None:
        return default
    devices = tuple(part.strip() for part in value.split(",") if part.strip())
    return devices or default


def _read_range(default: str) -> str:
    candidate = _read_str_env(_DEFAULT_RANGE_ENV, default)
    try:
        resolve_range(0, parse_range(candidate))
    except InvalidRange:
        return default
    return candidate


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    devices = _read_devices(("B1", "B2", "B3"))
    default_device = _read_str_env(_DEFAULT_DEVICE_ENV, "B2")
    if default_device not in devices:
        default_device = devices[0]
    return Settings(
        source_url=_read_optional_env(_SOURCE_URL_ENV, None),
        api_token=_read_optional_env(_API_TOKEN_ENV, None),
        source_timeout=_read_positive_float(_SOURCE_TIMEOUT_ENV, 10.0),
        devices=devices,
        default_device=default_device,
        poll_interval=_read_positive_float(_POLL_INTERVAL_ENV, 10.0),
        history_capacity=_read_positive_int(_HISTORY_CAPACITY_ENV, 5000),
        page_limit=_read_positive_int(_PAGE_LIMIT_ENV, 500),
        max_pages=_read_positive_int(_MAX_PAGES_ENV, 50),
        default_range=_read_range("24h"),
        alert_temperature=_read_positive_float(_ALERT_TEMPERATURE_ENV, 32.0),
        log_level=_read_log_level("INFO"),
    )
