"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.router import api_router, webhook_router
from app.config import settings
from app.core.exceptions import AppException
from app.core.queue import ReminderQueueConnector
from app.database import check_database_connection, engine, overlap_guard_installed
from app.middleware.error_handler import (
    app_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.middleware.logging import LoggingMiddleware, configure_logging

# Configure logging
configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Opens the shared reminder queue connection on startup and drains the
    queue and database pools on shutdown.
    """
    # Startup
    logger.info("application_startup", environment=settings.environment, port=settings.port)

    if await check_database_connection():
        logger.info("database_connected")
        if not await overlap_guard_installed():
            logger.error("overlap_constraint_missing", note="Run scripts/migrate.py upgrade")
    else:
        logger.error("database_connection_failed")

    # Bookings still succeed while the queue is down; it reconnects in the background
    app.state.reminder_queue_connector = ReminderQueueConnector(settings)
    await app.state.reminder_queue_connector.connect()

    if not settings.payments_enabled:
        logger.warning("payments_disabled", note="Set STRIPE_SECRET to enable prepayment")

    yield

    # Shutdown
    logger.info("application_shutdown")

    await app.state.reminder_queue_connector.close()

    await engine.dispose()
    logger.info("database_connections_closed")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Appointment booking API with conflict-safe reservations and reminders",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add logging middleware
app.add_middleware(LoggingMiddleware)

# Add exception handlers
app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(Exception, general_exception_handler)  # type: ignore[arg-type]

# Include routers
app.include_router(api_router, prefix=settings.api_prefix)
app.include_router(webhook_router)

# Setup Prometheus instrumentation
Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_instrument_requests_inprogress=True,
    excluded_handlers=["/docs", "/redoc", "/openapi.json", "/metrics"],
    inprogress_name="http_requests_inprogress",
    inprogress_labels=True,
).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
