"""Drive the paginated range query to completion."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from models.readings import Reading
from storage.source import ReadingSource

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 500
DEFAULT_MAX_PAGES = 50


@dataclass(frozen=True)
class PageFetch:
    """Outcome of one full pagination run."""

    readings: Tuple[Reading, ...]
    pages: int
    truncated: bool
    dropped: int = 0


async def fetch_all(
    source: ReadingSource,
    device: str,
    range_from: int,
    range_to: int,
    page_limit: int = DEFAULT_PAGE_LIMIT,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> PageFetch:
    """Fetch every page for ``device`` in ``[range_from, range_to]``.

    Pages are requested one after another, each with the cursor returned by
    the previous page. Reaching ``max_pages`` with a cursor still pending
    stops the loop and marks the result as truncated. Source errors propagate.
    """
    raw_items: list = []
    cursor: Optional[str] = None
    pages = 0
    truncated = False

    while True:
        page = await source.get_range(device, range_from, range_to, page_limit, cursor)
        pages += 1
        raw_items.extend(page.items)
        cursor = page.next_cursor
        logger.debug(
            "Fetched range page",
            extra={"device": device, "page": pages, "item_count": len(page.items), "cursor": cursor},
        )
        if not cursor:
            break
        if pages >= max_pages:
            truncated = True
            logger.warning(
                "Pagination stopped at safety bound; history may be incomplete",
                extra={"device": device, "page": pages, "cursor": cursor},
            )
            break

    readings, dropped = _normalize(raw_items, device, range_from, range_to)
    return PageFetch(readings=readings, pages=pages, truncated=truncated, dropped=dropped)


def _normalize(
    raw_items: list, device: str, range_from: int, range_to: int
) -> Tuple[Tuple[Reading, ...], int]:
    parsed: List[Reading] = []
    dropped = 0
    for raw in raw_items:
        try:
            reading = Reading.from_raw(raw, device=device)
        except (ValueError, AttributeError) as exc:
            dropped += 1
            logger.debug("Skipping malformed range item", extra={"device": device, "reason": str(exc)})
            continue
        if reading.device != device or not range_from <= reading.timestamp <= range_to:
            dropped += 1
            continue
        parsed.append(reading)

    # sorted() is stable, so the first occurrence of a timestamp in fetch order wins.
    ordered: List[Reading] = []
    for reading in sorted(parsed, key=lambda item: item.timestamp):
        if ordered and ordered[-1].timestamp == reading.timestamp:
            dropped += 1
            continue
        ordered.append(reading)
    return tuple(ordered), dropped
