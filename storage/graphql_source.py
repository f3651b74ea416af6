"""GraphQL-backed reading source."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from models.readings import FIELD_NAMES, Reading
from services.errors import SourceUnavailable, Unauthorized
from storage.source import RangePage

logger = logging.getLogger(__name__)

_REGISTERS = "\n".join(f"          {name}" for name in FIELD_NAMES)

LATEST_QUERY = f"""
  query LatestDadosParque($device: String!) {{
    latestDadosParque(device: $device) {{
      device
      timestamp
      registers {{
{_REGISTERS}
      }}
    }}
  }}
"""

RANGE_QUERY = f"""
  query DadosParqueByPeriod(
    $device: String!
    $from: Int!
    $to: Int!
    $limit: Int
    $nextToken: String
  ) {{
    dadosParqueByPeriod(device: $device, from: $from, to: $to, limit: $limit, nextToken: $nextToken) {{
      items {{
        timestamp
        registers {{
{_REGISTERS}
        }}
      }}
      nextToken
    }}
  }}
"""

_AUTH_MARKERS = ("unauthorized", "not authorized", "unauthenticated")


class GraphQLReadingSource:
    """Reading source that speaks to the telemetry GraphQL endpoint.

    Transport failures and timeouts surface as ``SourceUnavailable``; HTTP
    401/403 and GraphQL authorization errors surface as ``Unauthorized``.
    """

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = token if " " in token else f"Bearer {token}"
        self.url = url
        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def get_latest(self, device: str) -> Optional[Reading]:
        data = await self._execute(LATEST_QUERY, {"device": device})
        payload = data.get("latestDadosParque")
        if not payload:
            return None
        if not isinstance(payload, dict):
            raise SourceUnavailable(f"Malformed latest reading for {device}.")
        try:
            return Reading.from_raw(payload, device=device)
        except ValueError as exc:
            raise SourceUnavailable(f"Malformed latest reading for {device}: {exc}") from exc

    async def get_range(
        self,
        device: str,
        range_from: int,
        range_to: int,
        limit: int,
        cursor: Optional[str] = None,
    ) -> RangePage:
        variables: Dict[str, Any] = {
            "device": device,
            "from": range_from,
            "to": range_to,
            "limit": limit,
            "nextToken": cursor,
        }
        data = await self._execute(RANGE_QUERY, variables)
        payload = data.get("dadosParqueByPeriod") or {}
        if not isinstance(payload, dict):
            raise SourceUnavailable(f"Malformed range page for {device}.")
        items = payload.get("items") or []
        if not isinstance(items, list):
            raise SourceUnavailable(f"Malformed range items for {device}.")
        cursor = payload.get("nextToken") or None
        return RangePage(items=items, next_cursor=str(cursor) if cursor else None)

    async def _execute(self, query: str, variables: Mapping[str, Any]) -> Mapping[str, Any]:
        try:
            response = await self._client.post(
                self.url, json={"query": query, "variables": dict(variables)}
            )
        except httpx.TimeoutException as exc:
            raise SourceUnavailable("Timed out waiting for the telemetry source.") from exc
        except httpx.HTTPError as exc:
            raise SourceUnavailable(f"Telemetry source request failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise Unauthorized(
                f"Telemetry source rejected credentials (status {response.status_code})."
            )
        if response.is_error:
            raise SourceUnavailable(
                f"Telemetry source returned status {response.status_code}."
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise SourceUnavailable("Telemetry source returned invalid JSON.") from exc
        if not isinstance(body, dict):
            raise SourceUnavailable("Telemetry source returned an unexpected payload.")

        errors = body.get("errors") or []
        if errors:
            self._raise_for_errors(errors)
        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise SourceUnavailable("Telemetry source returned an unexpected data payload.")
        return data

    @staticmethod
    def _raise_for_errors(errors: Any) -> None:
        first = errors[0] if isinstance(errors, list) and errors else errors
        if not isinstance(first, dict):
            first = {"message": str(first)}
        message = str(first.get("message") or "Unknown GraphQL error")
        error_type = str(first.get("errorType") or "")
        logger.debug("GraphQL query failed", extra={"error": message})
        haystack = f"{error_type} {message}".lower()
        if any(marker in haystack for marker in _AUTH_MARKERS):
            raise Unauthorized(message)
        raise SourceUnavailable(message)
