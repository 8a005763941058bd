"""FastAPI application entrypoint for Ritual."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from ritual.libs.logging_utils import colorize, configure_logging

configure_logging()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette_exporter import PrometheusMiddleware, handle_metrics

from ritual.apps.api.routes.routines import router as routines_router
from ritual.apps.api.services.routine import RoutineService
from ritual.libs.schemas import close_async_pool, get_settings

LOGGER = logging.getLogger(__name__)
SETTINGS = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if getattr(app.state, "routine_service", None) is None:
        app.state.routine_service = RoutineService(settings=SETTINGS)
    LOGGER.info(
        colorize("Routine service ready", "cyan"),
        extra={"event": "startup", "timezone": SETTINGS.timezone, "environment": SETTINGS.environment},
    )
    try:
        yield
    finally:
        await app.state.routine_service.sinks.drain()
        await close_async_pool()


app = FastAPI(title=f"{SETTINGS.app_name} API", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(PrometheusMiddleware)
app.add_route("/metrics", handle_metrics)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(routines_router)


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("ritual.apps.api.main:app", host="0.0.0.0", port=8000, reload=True)
