from __future__ import annotations

from typing import Iterable

from services.dashboard import build_default_session
from settings import get_settings
from storage.graphql_source import GraphQLReadingSource
from storage.mock_source import MockReadingSource


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_environment_overrides_apply(monkeypatch) -> None:
    monkeypatch.setenv("TELEMETRY_SOURCE_URL", "https://telemetry.example/graphql")
    monkeypatch.setenv("TELEMETRY_API_TOKEN", "token-123")
    monkeypatch.setenv("TELEMETRY_DEVICES", "D1, D2 ,,")
    monkeypatch.setenv("TELEMETRY_DEFAULT_DEVICE", "D2")
    monkeypatch.setenv("TELEMETRY_POLL_INTERVAL", "2.5")
    monkeypatch.setenv("TELEMETRY_HISTORY_CAPACITY", "120")
    monkeypatch.setenv("TELEMETRY_MAX_PAGES", "7")
    monkeypatch.setenv("TELEMETRY_DEFAULT_RANGE", "7d")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    caches = (get_settings, build_default_session)
    _clear_caches(caches)

    try:
        settings = get_settings()
        session = build_default_session()

        assert settings.devices == ("D1", "D2")
        assert settings.log_level == "DEBUG"
        assert isinstance(session.source, GraphQLReadingSource)
        assert session.source.url == "https://telemetry.example/graphql"
        assert session.device == "D2"
        assert session.poll_interval == 2.5
        assert session.capacity == 120
        assert session.max_pages == 7
        assert session.range_kind.label() == "1w"
    finally:
        _clear_caches(caches)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.delenv("TELEMETRY_SOURCE_URL", raising=False)
    monkeypatch.setenv("TELEMETRY_POLL_INTERVAL", "soon")
    monkeypatch.setenv("TELEMETRY_HISTORY_CAPACITY", "-5")
    monkeypatch.setenv("TELEMETRY_PAGE_LIMIT", " ")
    monkeypatch.setenv("TELEMETRY_DEFAULT_DEVICE", "unknown")
    monkeypatch.setenv("TELEMETRY_DEFAULT_RANGE", "yesterday")

    caches = (get_settings, build_default_session)
    _clear_caches(caches)

    try:
        settings = get_settings()
        assert settings.poll_interval == 10.0
        assert settings.history_capacity == 5000
        assert settings.page_limit == 500
        assert settings.default_device == settings.devices[0]
        assert settings.default_range == "24h"
        session = build_default_session()
        assert isinstance(session.source, MockReadingSource)
        assert session.range_kind.label() == "1d"
    finally:
        _clear_caches(caches)


def test_reversed_explicit_default_range_falls_back(monkeypatch) -> None:
    monkeypatch.setenv("TELEMETRY_DEFAULT_RANGE", "2024-02-01..2024-01-01")
    get_settings.cache_clear()

    try:
        assert get_settings().default_range == "24h"
    finally:
        get_settings.cache_clear()
