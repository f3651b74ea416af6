from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_WATCH_INTERVAL = 10.0
DEFAULT_REQUEST_TIMEOUT = 10.0

_BASE_URL_ENV = "TELEMETRY_API_URL"
_WATCH_INTERVAL_ENV = "TELEMETRY_WATCH_INTERVAL"
_REQUEST_TIMEOUT_ENV = "TELEMETRY_CLI_TIMEOUT"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    watch_interval: float = DEFAULT_WATCH_INTERVAL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


def _read_float(value: Optional[str], default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _normalize_url(url: str) -> str:
    candidate = url.strip().rstrip("/")
    if "://" not in candidate:
        candidate = f"http://{candidate}"
    return candidate


def load_config(
    base_url: Optional[str] = None,
    watch_interval: Optional[float] = None,
    request_timeout: Optional[float] = None,
) -> CLIConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    if watch_interval is None:
        watch_interval = _read_float(os.getenv(_WATCH_INTERVAL_ENV), DEFAULT_WATCH_INTERVAL)
    if request_timeout is None:
        request_timeout = _read_float(os.getenv(_REQUEST_TIMEOUT_ENV), DEFAULT_REQUEST_TIMEOUT)
    return CLIConfig(
        base_url=_normalize_url(url),
        watch_interval=watch_interval,
        request_timeout=request_timeout,
    )
