"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas import (
    DeviceSelection,
    HistoryResponse,
    RangeSelection,
    ReadingOut,
    RefreshResponse,
    StatusResponse,
    SummaryResponse,
    WindowResponse,
    ZoomPoint,
)
from services.dashboard import DashboardSession, UnknownDevice, build_default_session
from services.errors import InvalidRange
from services.ranges import Explicit, RangeKind, parse_range

router = APIRouter()


def get_session() -> DashboardSession:
    return build_default_session()


def _window_response(session: DashboardSession) -> WindowResponse:
    window = session.current_window()
    if window is None:
        return WindowResponse(auto=True)
    return WindowResponse(auto=False, left=window[0], right=window[1])


def _range_from_payload(payload: RangeSelection) -> RangeKind:
    if payload.spec:
        return parse_range(payload.spec)
    return Explicit(start=payload.start, end=payload.end)


@router.get("/devices", summary="List devices available for selection.")
async def list_devices(session: DashboardSession = Depends(get_session)) -> Dict[str, Any]:
    return {"devices": list(session.devices), "selected": session.device}


@router.get("/latest", response_model=ReadingOut, summary="Most recent reading for the device.")
async def latest(session: DashboardSession = Depends(get_session)) -> ReadingOut:
    reading = session.current_latest()
    if reading is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No reading available for device {session.device}.",
        )
    return ReadingOut.from_reading(reading)


@router.get("/history", response_model=HistoryResponse, summary="Windowed reading history.")
async def history(
    limit: int | None = None,
    session: DashboardSession = Depends(get_session),
) -> HistoryResponse:
    readings = session.current_history()
    if limit is not None and limit > 0:
        readings = readings[-limit:]
    window = session.current_window()
    return HistoryResponse(
        device=session.device,
        window=list(window) if window else None,
        readings=[ReadingOut.from_reading(reading) for reading in readings],
    )


@router.get("/window", response_model=WindowResponse, summary="Current zoom window.")
async def window(session: DashboardSession = Depends(get_session)) -> WindowResponse:
    return _window_response(session)


@router.get("/status", response_model=StatusResponse, summary="Fetch and polling status.")
async def session_status(session: DashboardSession = Depends(get_session)) -> StatusResponse:
    return StatusResponse.from_status(session.status())


@router.get("/summary", response_model=SummaryResponse, summary="Per-channel statistics.")
async def summary(session: DashboardSession = Depends(get_session)) -> SummaryResponse:
    return SummaryResponse.from_summary(session.device, session.summary())


@router.post("/device", response_model=StatusResponse, summary="Switch the selected device.")
async def select_device(
    payload: DeviceSelection,
    session: DashboardSession = Depends(get_session),
) -> StatusResponse:
    try:
        await session.select_device(payload.device)
    except UnknownDevice as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return StatusResponse.from_status(session.status())


@router.post("/range", response_model=StatusResponse, summary="Switch the selected time range.")
async def select_range(
    payload: RangeSelection,
    session: DashboardSession = Depends(get_session),
) -> StatusResponse:
    try:
        await session.select_range(_range_from_payload(payload))
    except InvalidRange as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    return StatusResponse.from_status(session.status())


@router.post("/refresh", response_model=RefreshResponse, summary="Fetch the latest reading now.")
async def refresh(session: DashboardSession = Depends(get_session)) -> RefreshResponse:
    outcome = await session.refresh()
    return RefreshResponse(outcome=outcome.value)


@router.post("/reload", response_model=StatusResponse, summary="Reload history for the current selection.")
async def reload_history(session: DashboardSession = Depends(get_session)) -> StatusResponse:
    await session.reload_history()
    return StatusResponse.from_status(session.status())


@router.post("/zoom/begin", response_model=WindowResponse)
async def begin_zoom(point: ZoomPoint, session: DashboardSession = Depends(get_session)) -> WindowResponse:
    session.begin_zoom(point.x)
    return _window_response(session)


@router.post("/zoom/extend", response_model=WindowResponse)
async def extend_zoom(point: ZoomPoint, session: DashboardSession = Depends(get_session)) -> WindowResponse:
    session.extend_zoom(point.x)
    return _window_response(session)


@router.post("/zoom/commit", response_model=WindowResponse)
async def commit_zoom(session: DashboardSession = Depends(get_session)) -> WindowResponse:
    session.commit_zoom()
    return _window_response(session)


@router.post("/zoom/reset", response_model=WindowResponse)
async def reset_zoom(session: DashboardSession = Depends(get_session)) -> WindowResponse:
    session.reset_zoom()
    return _window_response(session)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
