from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from datastore.sensor_table import build_default_table
from logging_config import configure_logging
from services.completion import build_default_completion
from services.forecast_service import build_default_forecast_service
from services.sensor_feed import build_default_feed
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    feed = build_default_feed()
    if settings.feed_enabled:
        feed.start()
    try:
        yield
    finally:
        feed.stop()
        completion = build_default_completion()
        if completion is not None:
            completion.close()
        build_default_feed.cache_clear()
        build_default_forecast_service.cache_clear()
        build_default_completion.cache_clear()
        build_default_table.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Sensor Forecast Service",
        description="Temperature sensor history and short-term forecasts.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
