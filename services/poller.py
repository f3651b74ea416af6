"""Recurring latest-reading fetch with stale-response suppression."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum
from typing import Optional

from datastore.series_store import SeriesStore
from models.readings import Reading
from services.errors import SourceUnavailable
from storage.source import ReadingSource

logger = logging.getLogger(__name__)


class PollOutcome(str, Enum):
    """What a single poll did to session state."""

    applied = "applied"
    discarded = "discarded"
    empty = "empty"
    stale = "stale"
    skipped = "skipped"
    failed = "failed"


class PollCoordinator:
    """Owns the poll generation counter and the recurring timer for one device.

    Every issued request captures the generation value at issue time. Only a
    response whose token still equals the current generation may touch the
    series or the latest reading; anything else was superseded and is
    dropped without side effects.
    """

    def __init__(
        self,
        source: ReadingSource,
        store: SeriesStore,
        interval: float,
        append_to_series: bool = True,
    ) -> None:
        self.device = store.device
        self.interval = interval
        self.append_to_series = append_to_series
        self.generation = 0
        self.last_seen: Optional[int] = None
        self.latest: Optional[Reading] = None
        self.last_error: Optional[str] = None
        self._source = source
        self._store = store
        self._in_flight: Optional[int] = None
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def is_fetching(self) -> bool:
        return self._in_flight is not None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def prime(self, reading: Optional[Reading]) -> None:
        """Seed the last-seen marker from freshly loaded history."""
        if reading is None:
            return
        if self.last_seen is None or reading.timestamp > self.last_seen:
            self.last_seen = reading.timestamp
            self.latest = reading

    async def poll_once(self, supersede: bool = False) -> PollOutcome:
        """Issue one latest-reading request and apply it if still current.

        Scheduled ticks (``supersede=False``) are skipped while a request is in
        flight. Explicit triggers always issue a new request, which makes any
        in-flight one stale.
        """
        if self.is_fetching and not supersede:
            return PollOutcome.skipped

        self.generation += 1
        token = self.generation
        self._in_flight = token

        try:
            reading = await self._source.get_latest(self.device)
        except Exception as exc:
            if token != self.generation:
                return PollOutcome.stale
            self._in_flight = None
            self.last_error = str(exc) or exc.__class__.__name__
            if isinstance(exc, SourceUnavailable):
                logger.warning(
                    "Latest reading request failed",
                    extra={"device": self.device, "generation": token, "error": self.last_error},
                )
            else:
                logger.exception(
                    "Unexpected error while polling", extra={"device": self.device, "generation": token}
                )
            return PollOutcome.failed

        if token != self.generation:
            logger.debug(
                "Dropping superseded poll response",
                extra={"device": self.device, "generation": token, "outcome": PollOutcome.stale.value},
            )
            return PollOutcome.stale

        self._in_flight = None
        return self._apply(reading, token)

    def _apply(self, reading: Optional[Reading], token: int) -> PollOutcome:
        if reading is None:
            self.last_error = f"No data found for device {self.device}."
            return PollOutcome.empty

        self.last_error = None
        if reading.device != self.device:
            logger.warning(
                "Discarding reading for another device",
                extra={"device": self.device, "generation": token, "reason": reading.device},
            )
            return PollOutcome.discarded
        if self.last_seen is not None and reading.timestamp <= self.last_seen:
            return PollOutcome.discarded

        if self.append_to_series:
            self._store.merge(reading)
        self.last_seen = reading.timestamp
        self.latest = reading
        logger.debug(
            "Applied latest reading",
            extra={"device": self.device, "generation": token, "outcome": PollOutcome.applied.value},
        )
        return PollOutcome.applied

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name=f"poll-{self.device}")

    async def stop(self) -> None:
        """Cancel the timer and invalidate any in-flight response."""
        self.generation += 1
        self._in_flight = None
        self.last_seen = None
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        await self.poll_once(supersede=True)
        while True:
            await asyncio.sleep(self.interval)
            await self.poll_once()
