from typing import Iterator, List

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from services.dashboard import DashboardSession, build_default_session
from services.ranges import Preset
from storage.mock_source import MockReadingSource

NOW = 1_700_000_000


def _build_test_session() -> DashboardSession:
    source = MockReadingSource()
    for device, base in (("B1", 20.0), ("B2", 25.0)):
        for timestamp in range(NOW - 3600, NOW + 1, 300):
            source.add(device, {"timestamp": timestamp, "registers": {"TEMP": base, "VOLTAGE": 220.0}})
    return DashboardSession(
        source=source,
        devices=("B1", "B2", "B3"),
        default_device="B2",
        default_range=Preset(86400),
        poll_interval=3600,
        clock=lambda: NOW,
    )


@pytest.fixture
def api_client(monkeypatch) -> Iterator[TestClient]:
    sessions: List[DashboardSession] = []

    def build_test_session() -> DashboardSession:
        if not sessions:
            sessions.append(_build_test_session())
        return sessions[0]

    build_test_session.cache_clear = sessions.clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_session", build_test_session)
    monkeypatch.setattr("app.api.build_default_session", build_test_session)

    app = create_app()
    with TestClient(app) as client:
        yield client


def test_lifespan_starts_session_and_clears_cache() -> None:
    app = create_app()

    with TestClient(app) as client:
        session_during = build_default_session()
        response = client.get("/status")
        assert response.status_code == 200
        assert response.json()["device"] == session_during.device

    assert build_default_session() is not session_during
    build_default_session.cache_clear()


def test_health(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}


def test_history_and_latest(api_client: TestClient) -> None:
    history = api_client.get("/history").json()
    assert history["device"] == "B2"
    assert history["window"] is None
    assert len(history["readings"]) == 13
    assert history["readings"][-1]["timestamp"] == NOW

    limited = api_client.get("/history", params={"limit": 2}).json()
    assert [item["timestamp"] for item in limited["readings"]] == [NOW - 300, NOW]

    latest = api_client.get("/latest").json()
    assert latest["timestamp"] == NOW
    assert latest["channels"]["TEMP"] == 25.0


def test_select_device_and_unknown_device(api_client: TestClient) -> None:
    response = api_client.post("/device", json={"device": "B1"})
    assert response.status_code == 200
    assert response.json()["device"] == "B1"
    assert api_client.get("/latest").json()["channels"]["TEMP"] == 20.0

    missing = api_client.post("/device", json={"device": "ZZ"})
    assert missing.status_code == 404

    empty = api_client.post("/device", json={"device": "B3"})
    assert empty.status_code == 200
    assert api_client.get("/history").json()["readings"] == []


def test_select_range_validation(api_client: TestClient) -> None:
    bad = api_client.post("/range", json={"start": "2024-01-05", "end": "2024-01-01"})
    assert bad.status_code == 422
    assert "after" in bad.json()["detail"]

    missing = api_client.post("/range", json={"start": "2024-01-05"})
    assert missing.status_code == 422

    ok = api_client.post("/range", json={"spec": "30m"})
    assert ok.status_code == 200
    assert ok.json()["range"] == "30m"
    assert len(api_client.get("/history").json()["readings"]) == 7


def test_zoom_flow(api_client: TestClient) -> None:
    api_client.post("/zoom/begin", json={"x": NOW - 600})
    provisional = api_client.post("/zoom/extend", json={"x": NOW - 1200}).json()
    assert provisional["auto"] is True

    committed = api_client.post("/zoom/commit").json()
    assert committed == {"auto": False, "left": NOW - 1200, "right": NOW - 600}
    assert api_client.get("/window").json() == committed

    history = api_client.get("/history").json()
    assert history["window"] == [NOW - 1200, NOW - 600]
    assert [item["timestamp"] for item in history["readings"]] == [NOW - 1200, NOW - 900, NOW - 600]

    reset = api_client.post("/zoom/reset").json()
    assert reset == {"auto": True, "left": None, "right": None}


def test_status_summary_and_refresh(api_client: TestClient) -> None:
    status = api_client.get("/status").json()
    assert status["is_fetching_history"] is False
    assert status["range"] == "1d"
    assert status["truncated"] is False

    summary = api_client.get("/summary").json()
    assert summary["row_count"] == 13
    assert summary["channels"]["TEMP"]["mean_value"] == 25.0
    assert summary["alert"] is False

    refresh = api_client.post("/refresh").json()
    assert refresh["outcome"] in {"discarded", "applied"}

    devices = api_client.get("/devices").json()
    assert devices == {"devices": ["B1", "B2", "B3"], "selected": "B2"}


def test_reload_keeps_selection_and_resets_window(api_client: TestClient) -> None:
    api_client.post("/range", json={"spec": "30m"})
    api_client.post("/zoom/begin", json={"x": NOW - 600})
    api_client.post("/zoom/extend", json={"x": NOW})
    api_client.post("/zoom/commit")

    reloaded = api_client.post("/reload")
    assert reloaded.status_code == 200
    assert reloaded.json()["device"] == "B2"
    assert reloaded.json()["range"] == "30m"
    assert reloaded.json()["is_fetching_history"] is False

    assert api_client.get("/window").json()["auto"] is True
    assert len(api_client.get("/history").json()["readings"]) == 7
