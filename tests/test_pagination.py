from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import pytest

from services.errors import SourceUnavailable
from services.pagination import fetch_all
from storage.mock_source import MockReadingSource
from storage.source import RangePage


def _raw(timestamp: int, temp: float | None = 20.0) -> dict:
    return {"timestamp": timestamp, "registers": {"TEMP": temp, "VOLTAGE": 220.0}}


class ScriptedSource:
    """Serves canned pages keyed by the cursor each request carries."""

    def __init__(self, pages: Dict[Optional[str], Tuple[List[dict], Optional[str]]]) -> None:
        self.pages = pages
        self.cursors: List[Optional[str]] = []

    async def get_latest(self, device: str):
        return None

    async def get_range(self, device, range_from, range_to, limit, cursor=None) -> RangePage:
        self.cursors.append(cursor)
        items, next_cursor = self.pages[cursor]
        return RangePage(items=items, next_cursor=next_cursor)

    async def close(self) -> None:
        return None


@pytest.mark.asyncio
async def test_follows_cursors_until_exhausted() -> None:
    source = ScriptedSource(
        {
            None: ([_raw(50), _raw(10)], "a"),
            "a": ([_raw(30), _raw(20)], "b"),
            "b": ([_raw(60), _raw(40)], "c"),
            "c": ([], None),
        }
    )

    result = await fetch_all(source, "B2", 0, 100, page_limit=2)

    assert source.cursors == [None, "a", "b", "c"]
    assert [reading.timestamp for reading in result.readings] == [10, 20, 30, 40, 50, 60]
    assert all(reading.device == "B2" for reading in result.readings)
    assert result.truncated is False
    assert result.pages == 4


@pytest.mark.asyncio
async def test_three_pages_against_mock_source() -> None:
    source = MockReadingSource({"B2": [_raw(t) for t in range(100, 700, 100)]})

    result = await fetch_all(source, "B2", 0, 1000, page_limit=2)

    assert source.range_calls == 3
    assert [reading.timestamp for reading in result.readings] == [100, 200, 300, 400, 500, 600]


@pytest.mark.asyncio
async def test_duplicates_keep_first_occurrence() -> None:
    source = ScriptedSource(
        {
            None: ([_raw(10, temp=1.0), _raw(20, temp=2.0)], "a"),
            "a": ([_raw(10, temp=99.0), _raw(30, temp=3.0)], None),
        }
    )

    result = await fetch_all(source, "B2", 0, 100)

    assert [reading.timestamp for reading in result.readings] == [10, 20, 30]
    assert result.readings[0].value("TEMP") == 1.0
    assert result.dropped == 1


@pytest.mark.asyncio
async def test_filters_out_of_range_and_malformed_items() -> None:
    source = ScriptedSource(
        {
            None: (
                [_raw(5), _raw(10), {"registers": {}}, _raw(100), _raw(101), {"timestamp": "x"}],
                None,
            ),
        }
    )

    result = await fetch_all(source, "B2", 10, 100)

    assert [reading.timestamp for reading in result.readings] == [10, 100]
    assert result.dropped == 4


@pytest.mark.asyncio
async def test_missing_channels_normalize_to_none() -> None:
    source = ScriptedSource({None: ([{"timestamp": 10, "registers": {"TEMP": None}}], None)})

    result = await fetch_all(source, "B2", 0, 100)

    reading = result.readings[0]
    assert reading.value("TEMP") is None
    assert reading.value("POWER") is None


@pytest.mark.asyncio
async def test_safety_bound_truncates_without_error() -> None:
    pages = {None: ([_raw(1)], "1")}
    for index in range(1, 10):
        pages[str(index)] = ([_raw(index + 1)], str(index + 1))
    source = ScriptedSource(pages)

    result = await fetch_all(source, "B2", 0, 100, max_pages=3)

    assert result.truncated is True
    assert result.pages == 3
    assert [reading.timestamp for reading in result.readings] == [1, 2, 3]


@pytest.mark.asyncio
async def test_source_errors_propagate() -> None:
    class FailingSource(ScriptedSource):
        async def get_range(self, *args, **kwargs):
            raise SourceUnavailable("boom")

    with pytest.raises(SourceUnavailable):
        await fetch_all(FailingSource({}), "B2", 0, 100)
