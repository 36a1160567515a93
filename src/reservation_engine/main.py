"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from reservation_engine import __version__
from reservation_engine.api import availability, health, reservations, restaurants
from reservation_engine.api.rate_limits import configure_rate_limits, limiter
from reservation_engine.cache import create_cache_store
from reservation_engine.config import Settings, get_settings
from reservation_engine.core.clock import Clock, SystemClock
from reservation_engine.core.exceptions import ReservationEngineError
from reservation_engine.core.log import configure_logging, get_logger
from reservation_engine.db.session import Database
from reservation_engine.services import build_reservation_service, build_retirement_scheduler
from reservation_engine.services.notifications import (
    NotificationDispatcher,
    NotificationSender,
    create_notification_sender,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded errors."""
    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please try again later.",
            "detail": str(exc.detail),
        },
    )


def reservation_error_handler(request: Request, exc: ReservationEngineError) -> JSONResponse:
    """Map domain errors to their HTTP status and stable error code.

    Internal failures keep their code but hide the message unless debugging.
    """
    log = get_logger(__name__)
    settings: Settings = request.app.state.settings

    if exc.is_internal:
        log.error(
            "Request failed",
            error=str(exc),
            error_code=exc.error_code,
            path=request.url.path,
            method=request.method,
        )
        if not settings.debug:
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": exc.error_code,
                    "message": "The service is temporarily unavailable",
                },
            )

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions with structured response."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": _status_code_to_error_type(exc.status_code),
            "message": str(exc.detail),
            "status_code": exc.status_code,
        },
    )


def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with detailed field information."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        errors.append({
            "field": field or "request",
            "message": error["msg"],
            "type": error["type"],
        })

    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": errors,
        },
    )


def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions.

    Logs the error and returns a generic 500 response without exposing
    internal details in production.
    """
    log = get_logger(__name__)
    log.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )

    settings: Settings = request.app.state.settings
    detail = str(exc) if settings.debug else "An internal error occurred"

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": detail,
        },
    )


def _status_code_to_error_type(status_code: int) -> str:
    """Map HTTP status codes to error type strings."""
    error_types = {
        400: "bad_request",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        422: "validation_error",
        429: "rate_limit_exceeded",
        500: "internal_error",
        502: "bad_gateway",
        503: "service_unavailable",
    }
    return error_types.get(status_code, "error")


async def start_components(app: FastAPI) -> None:
    """Connect the database and wire services onto app.state."""
    settings: Settings = app.state.settings
    clock: Clock = app.state.clock
    log = get_logger(__name__)

    log.info("Initializing database", url=settings.database.url.split("@")[-1])
    database = Database(settings.database)
    await database.connect()
    await database.create_all()
    app.state.database = database

    cache_store = create_cache_store(settings.cache, clock)
    await cache_store.connect()
    app.state.cache_store = cache_store

    sender: NotificationSender = (
        app.state.notification_sender or create_notification_sender(settings.notifications)
    )
    notifier = NotificationDispatcher(sender, enabled=settings.notifications.enabled)
    app.state.notifier = notifier

    app.state.reservation_service = build_reservation_service(
        settings,
        database,
        cache_store=cache_store,
        notifier=notifier,
        clock=clock,
    )

    app.state.retirement_scheduler = None
    if settings.retirement.enabled:
        scheduler = build_retirement_scheduler(settings, database, clock=clock)
        await scheduler.start()
        app.state.retirement_scheduler = scheduler
        log.info("Retirement scheduler started", interval_minutes=settings.retirement.interval_minutes)


async def stop_components(app: FastAPI) -> None:
    """Stop background work and release connections."""
    log = get_logger(__name__)

    scheduler = getattr(app.state, "retirement_scheduler", None)
    if scheduler:
        await scheduler.stop()
        log.info("Retirement scheduler stopped")

    notifier = getattr(app.state, "notifier", None)
    if notifier:
        await notifier.close()

    cache_store = getattr(app.state, "cache_store", None)
    if cache_store:
        await cache_store.close()

    database = getattr(app.state, "database", None)
    if database:
        await database.close()
        log.info("Database connections closed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    log = get_logger(__name__)

    configure_logging(settings)

    log.info(
        "Starting Reservation Engine",
        version=__version__,
        environment=settings.environment,
    )

    await start_components(app)

    yield

    log.info("Shutting down Reservation Engine")
    await stop_components(app)


def create_app(
    settings: Settings | None = None,
    *,
    clock: Clock | None = None,
    notification_sender: NotificationSender | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings, loaded from config files if omitted
        clock: Time source shared by every component
        notification_sender: Overrides the configured notification provider
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Reservation Engine",
        description="Restaurant table reservation and availability service",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.state.settings = settings
    app.state.clock = clock or SystemClock()
    app.state.notification_sender = notification_sender

    # Rate limiting
    configure_rate_limits(settings.api.rate_limits)
    app.state.limiter = limiter

    # Exception handlers (most specific first)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(ReservationEngineError, reservation_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Note: Cannot use wildcard origins with credentials
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(restaurants.router, prefix="/api/v1", tags=["Restaurants"])
    app.include_router(availability.router, prefix="/api/v1", tags=["Availability"])
    app.include_router(reservations.router, prefix="/api/v1", tags=["Reservations"])

    return app


def run() -> None:
    """Run the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "reservation_engine.main:create_app",
        factory=True,
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
