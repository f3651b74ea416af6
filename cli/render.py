from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, Optional

import typer

from models.readings import FIELD_NAMES

_UNITS = {"TEMP": "°C", "VOLTAGE": "V", "CURRENT": "A", "FREQUENCY": "Hz", "POWER": "W"}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def format_timestamp(value: Optional[int]) -> str:
    if value is None:
        return "-"
    return f"{datetime.fromtimestamp(value).isoformat(sep=' ')} ({value})"


def format_value(value: Optional[float], name: str) -> str:
    if value is None:
        return "--"
    return f"{value:.2f} {_UNITS.get(name, '')}".rstrip()


def render_status(payload: Dict[str, Any]) -> None:
    echo_heading("Status")
    echo_key_values(
        [
            ("device", payload.get("device")),
            ("range", payload.get("range")),
            ("from", format_timestamp(payload.get("range_from"))),
            ("to", format_timestamp(payload.get("range_to"))),
            ("fetching_history", payload.get("is_fetching_history")),
            ("polling", payload.get("is_polling")),
        ]
    )
    if payload.get("notice"):
        typer.secho(f"notice: {payload['notice']}", fg=typer.colors.YELLOW)
    if payload.get("last_error"):
        typer.secho(f"error: {payload['last_error']}", fg=typer.colors.RED)


def render_reading(payload: Optional[Dict[str, Any]]) -> None:
    if not payload:
        typer.echo("No reading available.")
        return
    channels = payload.get("channels") or {}
    values = "  ".join(f"{name}={format_value(channels.get(name), name)}" for name in FIELD_NAMES)
    typer.echo(f"[{format_timestamp(payload.get('timestamp'))}] {payload.get('device')}  {values}")


def render_history(payload: Dict[str, Any]) -> None:
    readings = payload.get("readings") or []
    window = payload.get("window")
    echo_heading(f"History for {payload.get('device')}")
    typer.echo(f"window: {'auto' if not window else f'{window[0]}..{window[1]}'}")
    if not readings:
        typer.echo("No readings in range.")
        return
    for reading in readings:
        render_reading(reading)


def render_summary(payload: Dict[str, Any]) -> None:
    echo_heading("Summary")
    echo_key_values(
        [
            ("device", payload.get("device")),
            ("row_count", payload.get("row_count")),
            ("first", format_timestamp(payload.get("first_timestamp"))),
            ("last", format_timestamp(payload.get("last_timestamp"))),
        ]
    )
    if payload.get("alert"):
        typer.secho("ALERT: temperature threshold reached", fg=typer.colors.RED, bold=True)
    channels = payload.get("channels") or {}
    for name in FIELD_NAMES:
        stats = channels.get(name) or {}
        typer.echo(
            f"  - {name}: count={stats.get('count', 0)} "
            f"min={format_value(stats.get('min_value'), name)} "
            f"max={format_value(stats.get('max_value'), name)} "
            f"mean={format_value(stats.get('mean_value'), name)}"
        )
