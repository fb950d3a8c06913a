from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool

from app.api import router
from logging_config import configure_logging
from services.supervisor import build_default_supervisor


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    supervisor = build_default_supervisor()
    await run_in_threadpool(supervisor.start)
    try:
        yield
    finally:
        await run_in_threadpool(supervisor.stop)
        build_default_supervisor.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Sensor Quality Monitor",
        description="Live statistics, alerts and diagnostics for serial sensor acquisition.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
