from __future__ import annotations

import json
from typing import Callable, List

import httpx
import pytest

from services.errors import SourceUnavailable, Unauthorized
from storage.graphql_source import GraphQLReadingSource

URL = "https://telemetry.example/graphql"


def _source(handler: Callable[[httpx.Request], httpx.Response], token: str | None = "secret") -> GraphQLReadingSource:
    return GraphQLReadingSource(URL, token=token, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_get_latest_parses_reading() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "data": {
                    "latestDadosParque": {
                        "device": "B2",
                        "timestamp": 1_700_000_000,
                        "registers": {"TEMP": 27.5, "VOLTAGE": 221.0, "CURRENT": None},
                    }
                }
            },
        )

    source = _source(handler)
    try:
        reading = await source.get_latest("B2")
    finally:
        await source.close()

    assert reading is not None
    assert reading.key == ("B2", 1_700_000_000)
    assert reading.value("TEMP") == 27.5
    assert reading.value("CURRENT") is None
    body = json.loads(requests[0].content)
    assert body["variables"] == {"device": "B2"}
    assert "latestDadosParque" in body["query"]
    assert requests[0].headers["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_get_latest_returns_none_when_empty() -> None:
    source = _source(lambda request: httpx.Response(200, json={"data": {"latestDadosParque": None}}))
    try:
        assert await source.get_latest("B2") is None
    finally:
        await source.close()


@pytest.mark.asyncio
async def test_get_range_passes_cursor_and_returns_page() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content)["variables"])
        return httpx.Response(
            200,
            json={
                "data": {
                    "dadosParqueByPeriod": {
                        "items": [{"timestamp": 10, "registers": {"TEMP": 1.0}}],
                        "nextToken": "abc",
                    }
                }
            },
        )

    source = _source(handler, token=None)
    try:
        page = await source.get_range("B1", 0, 100, 50, cursor="prev")
    finally:
        await source.close()

    assert seen == [{"device": "B1", "from": 0, "to": 100, "limit": 50, "nextToken": "prev"}]
    assert page.next_cursor == "abc"
    assert page.items[0]["timestamp"] == 10


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [401, 403])
async def test_auth_status_raises_unauthorized(status_code: int) -> None:
    source = _source(lambda request: httpx.Response(status_code, json={}))
    try:
        with pytest.raises(Unauthorized):
            await source.get_latest("B2")
    finally:
        await source.close()


@pytest.mark.asyncio
async def test_graphql_auth_error_raises_unauthorized() -> None:
    payload = {"data": None, "errors": [{"errorType": "Unauthorized", "message": "Not Authorized to access"}]}
    source = _source(lambda request: httpx.Response(200, json=payload))
    try:
        with pytest.raises(Unauthorized):
            await source.get_range("B2", 0, 10, 5)
    finally:
        await source.close()


@pytest.mark.asyncio
async def test_graphql_error_raises_source_unavailable() -> None:
    payload = {"errors": [{"message": "Resolver timed out"}]}
    source = _source(lambda request: httpx.Response(200, json=payload))
    try:
        with pytest.raises(SourceUnavailable) as excinfo:
            await source.get_latest("B2")
    finally:
        await source.close()

    assert not isinstance(excinfo.value, Unauthorized)
    assert "Resolver timed out" in str(excinfo.value)


@pytest.mark.asyncio
async def test_server_error_and_transport_failure_raise_source_unavailable() -> None:
    source = _source(lambda request: httpx.Response(502, text="bad gateway"))
    try:
        with pytest.raises(SourceUnavailable):
            await source.get_latest("B2")
    finally:
        await source.close()

    def broken(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    source = _source(broken)
    try:
        with pytest.raises(SourceUnavailable):
            await source.get_latest("B2")
    finally:
        await source.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"data": "oops"},
        {"data": {"dadosParqueByPeriod": "oops"}},
        {"data": {"dadosParqueByPeriod": {"items": "oops", "nextToken": None}}},
        {"errors": "boom"},
    ],
)
async def test_malformed_range_payload_raises_source_unavailable(body) -> None:
    source = _source(lambda request: httpx.Response(200, json=body))
    try:
        with pytest.raises(SourceUnavailable):
            await source.get_range("B2", 0, 10, 5)
    finally:
        await source.close()


@pytest.mark.asyncio
async def test_malformed_latest_payload_raises_source_unavailable() -> None:
    source = _source(lambda request: httpx.Response(200, json={"data": {"latestDadosParque": ["oops"]}}))
    try:
        with pytest.raises(SourceUnavailable):
            await source.get_latest("B2")
    finally:
        await source.close()
