from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import (
    render_history,
    render_reading,
    render_status,
    render_summary,
)


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for inspecting and steering the telemetry dashboard service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Dashboard API base URL (defaults to TELEMETRY_API_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Per-request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, request_timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("devices")
def devices_command(ctx: typer.Context) -> None:
    """List configured devices."""
    payload = _get_state(ctx).client.devices()
    selected = payload.get("selected")
    for device in payload.get("devices") or []:
        marker = "*" if device == selected else " "
        typer.echo(f"{marker} {device}")


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show fetch and polling status."""
    render_status(_get_state(ctx).client.status())


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the most recent reading."""
    render_reading(_get_state(ctx).client.latest())


@app.command("history")
def history_command(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Show only the newest N readings."),
) -> None:
    """Print the visible (windowed) history."""
    render_history(_get_state(ctx).client.history(limit=limit))


@app.command("summary")
def summary_command(ctx: typer.Context) -> None:
    """Per-channel statistics over the visible history."""
    render_summary(_get_state(ctx).client.summary())


@app.command("select-device")
def select_device_command(
    ctx: typer.Context,
    device: str = typer.Argument(..., help="Device identifier, e.g. B2."),
) -> None:
    """Switch the dashboard to another device."""
    payload = _get_state(ctx).client.select_device(device)
    typer.secho(f"Selected device {payload.get('device')}.", fg=typer.colors.GREEN)
    render_status(payload)


@app.command("select-range")
def select_range_command(
    ctx: typer.Context,
    spec: Optional[str] = typer.Argument(None, help="Preset such as 1h, 24h, 7d, or 'all'."),
    start: Optional[str] = typer.Option(None, "--from", help="Explicit start date (YYYY-MM-DD)."),
    end: Optional[str] = typer.Option(None, "--to", help="Explicit end date (YYYY-MM-DD)."),
) -> None:
    """Change the history range."""
    if spec is None and start is None and end is None:
        raise typer.BadParameter("Provide a preset or --from/--to dates.")
    payload = _get_state(ctx).client.select_range(spec=spec, start=start, end=end)
    typer.secho(f"Selected range {payload.get('range')}.", fg=typer.colors.GREEN)
    render_status(payload)


@app.command("zoom")
def zoom_command(
    ctx: typer.Context,
    left: int = typer.Argument(..., help="Window start (epoch seconds)."),
    right: int = typer.Argument(..., help="Window end (epoch seconds)."),
) -> None:
    """Zoom the visible history to a timestamp sub-range."""
    payload = _get_state(ctx).client.zoom(left, right)
    if payload.get("auto"):
        typer.echo("Zoom cancelled; window follows the full series.")
        return
    typer.echo(f"Window: {payload.get('left')}..{payload.get('right')}")


@app.command("zoom-reset")
def zoom_reset_command(ctx: typer.Context) -> None:
    """Return to the full-series view."""
    _get_state(ctx).client.reset_zoom()
    typer.echo("Window: auto")


@app.command("refresh")
def refresh_command(ctx: typer.Context) -> None:
    """Fetch the latest reading now instead of waiting for the next poll."""
    state = _get_state(ctx)
    outcome = state.client.refresh().get("outcome")
    color = typer.colors.RED if outcome == "failed" else typer.colors.GREEN
    typer.secho(f"Refresh {outcome}.", fg=color)
    render_reading(state.client.latest())


@app.command("reload")
def reload_command(ctx: typer.Context) -> None:
    """Reload the history for the current device and range."""
    render_status(_get_state(ctx).client.reload_history())


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    interval: Optional[float] = typer.Option(None, "--interval", help="Seconds between checks."),
    count: Optional[int] = typer.Option(None, "--count", "-c", min=1, help="Stop after N checks."),
) -> None:
    """Print each new reading as the service picks it up."""
    state = _get_state(ctx)
    delay = interval if interval is not None else state.config.watch_interval
    last_seen: Optional[int] = None
    checks = 0
    while count is None or checks < count:
        if checks:
            time.sleep(delay)
        checks += 1
        reading = state.client.latest()
        if reading is None:
            continue
        timestamp = reading.get("timestamp")
        if last_seen is not None and timestamp is not None and timestamp <= last_seen:
            continue
        last_seen = timestamp
        render_reading(reading)
