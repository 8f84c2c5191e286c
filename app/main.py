from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.collector import build_default_collector


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    collector = build_default_collector()
    collector.start()
    try:
        yield
    finally:
        collector.shutdown(timeout=5.0)
        build_default_collector.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="IPMI Exporter",
        description="Polls a BMC sensor report and serves it as Prometheus metrics.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
