"""Error taxonomy for the acquisition engine."""

from __future__ import annotations


class TelemetryError(Exception):
    """Base class for errors raised by the dashboard engine."""


class InvalidRange(TelemetryError, ValueError):
    """An explicit date range is incomplete, unparseable, or inverted."""


class SourceUnavailable(TelemetryError):
    """The remote reading source could not be reached or answered with an error."""


class Unauthorized(SourceUnavailable):
    """The remote reading source rejected our credentials."""
