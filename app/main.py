from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.pipeline import build_default_pipeline
from sources.registry import build_default_registry
from sources.telemetry import build_default_source


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    try:
        yield
    finally:
        for factory in (build_default_source, build_default_registry):
            if factory.cache_info().currsize:
                factory().close()
            factory.cache_clear()
        build_default_pipeline.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Cold Chain Telemetry",
        description="Normalized series, statistics and report rows for cold-chain sensors.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
