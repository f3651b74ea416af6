from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the telemetry dashboard service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.request_timeout)

    def close(self) -> None:
        self._client.close()

    def devices(self) -> Dict[str, Any]:
        return self._request("GET", "/devices")

    def status(self) -> Dict[str, Any]:
        return self._request("GET", "/status")

    def latest(self) -> Optional[Dict[str, Any]]:
        return self._request("GET", "/latest", allow_missing=True)

    def history(self, limit: Optional[int] = None) -> Dict[str, Any]:
        params = {"limit": limit} if limit else None
        return self._request("GET", "/history", params=params)

    def summary(self) -> Dict[str, Any]:
        return self._request("GET", "/summary")

    def select_device(self, device: str) -> Dict[str, Any]:
        return self._request("POST", "/device", json={"device": device})

    def select_range(
        self,
        spec: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._request("POST", "/range", json={"spec": spec, "start": start, "end": end})

    def zoom(self, left: int, right: int) -> Dict[str, Any]:
        self._request("POST", "/zoom/begin", json={"x": left})
        self._request("POST", "/zoom/extend", json={"x": right})
        return self._request("POST", "/zoom/commit")

    def reset_zoom(self) -> Dict[str, Any]:
        return self._request("POST", "/zoom/reset")

    def refresh(self) -> Dict[str, Any]:
        return self._request("POST", "/refresh")

    def reload_history(self) -> Dict[str, Any]:
        return self._request("POST", "/reload")

    def _request(
        self,
        method: str,
        path: str,
        allow_missing: bool = False,
        **kwargs: Any,
    ) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            if allow_missing and response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.HTTPError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
