"""SLA Dispatch — FastAPI application factory."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, OperationalError

from dispatch.adapters.events.memory_queue import NotificationWorker
from dispatch.adapters.persistence.database import engine
from dispatch.adapters.scheduling.interval_ticker import IntervalTicker
from dispatch.config import settings
from dispatch.domain.errors import ConflictError, RequestNotFoundError, ValidationError
from dispatch.infrastructure.api.dependencies import (
    build_notifier,
    build_sla_monitor,
    event_queue,
)
from dispatch.infrastructure.api.routes_health import router as health_router
from dispatch.infrastructure.api.routes_requests import router as requests_router
from dispatch.infrastructure.api.routes_sla import router as sla_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    try:
        async with engine.begin():
            pass  # Connection pool warmed up
        logger.info("Database connection established")
    except Exception as e:
        logger.warning("Database not available on startup: %s", e)

    worker = NotificationWorker(event_queue, build_notifier())
    worker.start()

    ticker = None
    sweep_task = None
    if settings.sla_ticker_enabled:
        ticker = IntervalTicker(settings.sla_sweep_interval_seconds)
        sweep_task = asyncio.create_task(
            build_sla_monitor().run(ticker, settings.sla_sweep_timeout_seconds),
            name="sla-sweep",
        )
        logger.info("In-process SLA sweep every %ss", settings.sla_sweep_interval_seconds)

    yield

    if ticker is not None:
        ticker.stop()
        await sweep_task
    await worker.stop()
    await engine.dispose()


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=422, content={"error": exc.message, "details": exc.details})


async def _not_found(request: Request, exc: RequestNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": exc.message, "details": exc.details})


async def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
    logger.info("Conflict on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=409,
        content={
            "error": exc.message,
            "hint": "The request has changed, please refresh",
            "details": exc.details,
        },
    )


async def _store_unavailable(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"error": "Service temporarily unavailable, please try again"},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="SLA Dispatch",
        description="Service request dispatch with partner SLA enforcement",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(RequestNotFoundError, _not_found)
    app.add_exception_handler(ConflictError, _conflict)
    app.add_exception_handler(OperationalError, _store_unavailable)
    app.add_exception_handler(DBAPIError, _store_unavailable)

    # Register routers
    app.include_router(health_router, prefix="/api")
    app.include_router(requests_router, prefix="/api")
    app.include_router(sla_router, prefix="/api")

    return app


app = create_app()
