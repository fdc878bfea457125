"""fieldops - Task management backend for field service teams."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from fieldops.core import db_client
from fieldops.core.config import settings
from fieldops.core.logging import configure_logfire, instrument_fastapi
from fieldops.core.storage import get_storage_provider
from fieldops.interface.account_router import router as account_router
from fieldops.interface.activity_router import router as activity_router
from fieldops.interface.attachment_router import router as attachment_router
from fieldops.interface.error_handlers import register_error_handlers
from fieldops.interface.payment_router import router as payment_router
from fieldops.interface.report_router import router as report_router
from fieldops.interface.task_router import router as task_router
from fieldops.interface.user_router import router as user_router


logger = logging.getLogger(__name__)


def validate_startup_configuration() -> None:
    """Validate required credentials and settings, exiting on failure.

    Raises:
        SystemExit: If the signing secret is missing or the storage provider is unknown
    """
    logger.info("startup_validation_begin")

    try:
        settings.require_credential("secret_key", "Token signing")
        logger.info("startup_validation", extra={"stage": "credentials", "status": "ok"})

        provider = get_storage_provider()
        logger.info("startup_validation", extra={"stage": "storage", "provider": provider.name, "status": "ok"})

        logger.info("startup_validation_complete", extra={"status": "ok"})

    except ValueError as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\n❌ Startup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    # Configure logging first so validation logs are captured
    configure_logfire()

    validate_startup_configuration()

    await db_client.init_db()
    logger.info("Database initialized")

    yield
    # Shutdown
    await db_client.close_connection()


app = FastAPI(
    title="fieldops",
    description="Task management backend for field service teams",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

register_error_handlers(app)

# Register routers
app.include_router(task_router)
app.include_router(activity_router)
app.include_router(payment_router)
app.include_router(report_router)
app.include_router(user_router)
app.include_router(attachment_router)
app.include_router(account_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)
