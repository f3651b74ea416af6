from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.dashboard import build_default_session


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    session = build_default_session()
    await session.start()
    try:
        yield
    finally:
        await session.close()
        build_default_session.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Telemetry Dashboard",
        description="Live device telemetry with paginated history, polling, and zoom windows.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
