"""Session orchestration for the live telemetry dashboard."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import tzinfo
from functools import lru_cache
from typing import Callable, Optional, Sequence, Tuple

from datastore.series_store import SeriesStore
from models.readings import Reading
from services.aggregator import Aggregator, SeriesSummary
from services.errors import SourceUnavailable, TelemetryError
from services.pagination import DEFAULT_MAX_PAGES, DEFAULT_PAGE_LIMIT, fetch_all
from services.poller import PollCoordinator, PollOutcome
from services.ranges import Explicit, RangeKind, parse_range, resolve_range
from services.window import Window, WindowSelector
from settings import get_settings
from storage.graphql_source import GraphQLReadingSource
from storage.mock_source import build_demo_source
from storage.source import ReadingSource

logger = logging.getLogger(__name__)


class UnknownDevice(TelemetryError, LookupError):
    """The requested device is not one the dashboard is configured for."""


@dataclass(frozen=True)
class SessionStatus:
    device: str
    range_label: str
    range_from: Optional[int]
    range_to: Optional[int]
    is_fetching_history: bool
    is_polling: bool
    last_error: Optional[str]
    notice: Optional[str]
    truncated: bool


class DeviceSession:
    """State owned by one (device, range) selection.

    Replaced wholesale whenever the device or range changes so that no two
    selections ever share a series or a poll generation counter.
    """

    def __init__(
        self,
        device: str,
        range_kind: RangeKind,
        bounds: Tuple[int, int],
        store: SeriesStore,
        poller: PollCoordinator,
    ) -> None:
        self.device = device
        self.range_kind = range_kind
        self.bounds = bounds
        self.store = store
        self.poller = poller
        self.loading = False
        self.truncated = False
        self.history_error: Optional[str] = None


class DashboardSession:
    """Facade exposed to the rendering layer.

    Commands select the device, the range and the zoom window; queries expose
    the latest reading, the (windowed) history and the engine status.
    """

    def __init__(
        self,
        source: ReadingSource,
        devices: Sequence[str],
        default_device: str,
        default_range: RangeKind,
        capacity: int = 5000,
        poll_interval: float = 10.0,
        page_limit: int = DEFAULT_PAGE_LIMIT,
        max_pages: int = DEFAULT_MAX_PAGES,
        aggregator: Optional[Aggregator] = None,
        clock: Callable[[], float] = time.time,
        tz: Optional[tzinfo] = None,
    ) -> None:
        if default_device not in devices:
            raise UnknownDevice(f"Unknown device {default_device!r}.")
        self.source = source
        self.devices = tuple(devices)
        self.capacity = capacity
        self.poll_interval = poll_interval
        self.page_limit = page_limit
        self.max_pages = max_pages
        self.aggregator = aggregator or Aggregator()
        self._clock = clock
        self._tz = tz
        self._device = default_device
        self._range: RangeKind = default_range
        self._window = WindowSelector()
        self._active: Optional[DeviceSession] = None
        self._history_generation = 0

    # Lifecycle

    async def start(self) -> None:
        await self._activate(self._device, self._range)

    async def stop(self) -> None:
        await self._teardown()

    async def close(self) -> None:
        await self.stop()
        await self.source.close()

    # Commands

    async def select_device(self, device: str) -> None:
        if device not in self.devices:
            raise UnknownDevice(f"Unknown device {device!r}.")
        await self._activate(device, self._range)

    async def select_range(self, kind: RangeKind | str) -> None:
        if isinstance(kind, str):
            kind = parse_range(kind)
        await self._activate(self._device, kind)

    async def refresh(self) -> PollOutcome:
        """Explicit latest-reading fetch that supersedes any in-flight poll.

        Skipped while history is loading: the load replaces the series and
        polling only appends on top of it.
        """
        if self._active is None or self._active.loading:
            return PollOutcome.skipped
        return await self._active.poller.poll_once(supersede=True)

    async def reload_history(self) -> None:
        await self._activate(self._device, self._range)

    def begin_zoom(self, x: int) -> None:
        self._window.begin(x)

    def extend_zoom(self, x: int) -> None:
        self._window.extend(x)

    def commit_zoom(self) -> Optional[Window]:
        return self._window.commit()

    def reset_zoom(self) -> None:
        self._window.reset()

    # Queries

    @property
    def device(self) -> str:
        return self._device

    @property
    def range_kind(self) -> RangeKind:
        return self._range

    def current_latest(self) -> Optional[Reading]:
        if self._active is None:
            return None
        return self._active.poller.latest

    def current_history(self) -> Tuple[Reading, ...]:
        if self._active is None:
            return ()
        window = self._window.window
        if window is None:
            return self._active.store.snapshot()
        return self._active.store.between(*window)

    def current_window(self) -> Optional[Window]:
        return self._window.window

    def summary(self) -> SeriesSummary:
        return self.aggregator.summarize(self.current_history(), latest=self.current_latest())

    def status(self) -> SessionStatus:
        active = self._active
        if active is None:
            return SessionStatus(
                device=self._device,
                range_label=self._range.label(),
                range_from=None,
                range_to=None,
                is_fetching_history=False,
                is_polling=False,
                last_error=None,
                notice=None,
                truncated=False,
            )
        notice = None
        if active.truncated:
            notice = "History reached the page limit; results may be incomplete."
        return SessionStatus(
            device=active.device,
            range_label=active.range_kind.label(),
            range_from=active.bounds[0],
            range_to=active.bounds[1],
            is_fetching_history=active.loading,
            is_polling=active.poller.is_fetching,
            last_error=active.poller.last_error or active.history_error,
            notice=notice,
            truncated=active.truncated,
        )

    # Internals

    async def _teardown(self) -> None:
        active, self._active = self._active, None
        if active is not None:
            await active.poller.stop()

    async def _activate(self, device: str, kind: RangeKind) -> None:
        now = int(self._clock())
        # Resolve before touching any state so an invalid range is a no-op.
        bounds = resolve_range(now, kind, self._tz)

        self._history_generation += 1
        token = self._history_generation
        previous = self._active
        await self._teardown()
        if token != self._history_generation:
            return

        self._device = device
        self._range = kind
        self._window.reset()

        store = SeriesStore(device, self.capacity)
        live = not (isinstance(kind, Explicit) and bounds[1] < now)
        poller = PollCoordinator(
            self.source, store, self.poll_interval, append_to_series=live
        )
        session = DeviceSession(device, kind, bounds, store, poller)
        self._active = session

        session.loading = True
        logger.info(
            "Loading history",
            extra={"device": device, "range_from": bounds[0], "range_to": bounds[1]},
        )
        try:
            fetch = await fetch_all(
                self.source,
                device,
                bounds[0],
                bounds[1],
                page_limit=self.page_limit,
                max_pages=self.max_pages,
            )
        except Exception as exc:
            if token != self._history_generation:
                return
            session.loading = False
            session.history_error = str(exc) or exc.__class__.__name__
            if isinstance(exc, SourceUnavailable):
                logger.warning(
                    "History load failed", extra={"device": device, "error": session.history_error}
                )
            else:
                logger.exception("Unexpected error while loading history", extra={"device": device})
            # Keep what was on screen when only the range changed.
            if previous is not None and previous.device == device:
                store.replace(previous.store.snapshot())
                poller.prime(previous.poller.latest or store.latest())
        else:
            if token != self._history_generation:
                logger.debug("Dropping superseded history load", extra={"device": device})
                return
            session.loading = False
            session.truncated = fetch.truncated
            store.replace(fetch.readings)
            poller.prime(store.latest())
            logger.info(
                "History loaded",
                extra={"device": device, "page": fetch.pages, "item_count": len(store)},
            )

        poller.start()


def build_source() -> ReadingSource:
    settings = get_settings()
    if settings.source_url:
        return GraphQLReadingSource(
            settings.source_url,
            token=settings.api_token,
            timeout=settings.source_timeout,
        )
    logger.info("No TELEMETRY_SOURCE_URL configured; serving synthetic demo readings")
    return build_demo_source(settings.devices)


@lru_cache
def build_default_session() -> DashboardSession:
    """Factory that wires the dashboard session from settings."""
    settings = get_settings()
    return DashboardSession(
        source=build_source(),
        devices=settings.devices,
        default_device=settings.default_device,
        default_range=parse_range(settings.default_range),
        capacity=settings.history_capacity,
        poll_interval=settings.poll_interval,
        page_limit=settings.page_limit,
        max_pages=settings.max_pages,
        aggregator=Aggregator(alert_temperature=settings.alert_temperature),
    )
