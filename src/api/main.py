"""
Application assembly for the event registration API.

Wires the v1 routers, maps domain errors to HTTP statuses and
owns startup and shutdown of the pool and background workers.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from src.adapters.repository import (
    PostgresSessionRepository,
    PostgresTokenRepository,
    run_migrations,
)
from src.adapters.sms.console import ConsoleSmsSender
from src.adapters.sms.twilio import TwilioSmsSender
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.smtp.mailer import SmtpEmailSender
from src.adapters.storage.s3 import S3FileStore, UnconfiguredFileStore
from src.api.v1 import router as v1_router
from src.config.settings import Settings, get_settings
from src.domain.cleanup import FileCleanup
from src.domain.exceptions import (
    Conflict,
    DomainError,
    InvalidOrExpiredSecret,
    NotConfigured,
    NotFound,
    Unauthorized,
    UpstreamFailure,
    ValidationFailed,
)
from src.domain.ports import EmailSender, FileStore, SmsSender
from src.domain.tokens import TokenSweeper

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {"name": "auth", "description": "Signup, login, verification and password reset"},
    {"name": "users", "description": "The signed-in account"},
    {"name": "attendees", "description": "Attendee registration profiles and admin views"},
    {"name": "uploads", "description": "Presigned URLs for direct-to-storage transfers"},
]

# First match wins, so subclasses come before their bases
_STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (ValidationFailed, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (Conflict, status.HTTP_409_CONFLICT),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Unauthorized, status.HTTP_401_UNAUTHORIZED),
    (InvalidOrExpiredSecret, status.HTTP_400_BAD_REQUEST),
    (NotConfigured, status.HTTP_503_SERVICE_UNAVAILABLE),
    (UpstreamFailure, status.HTTP_502_BAD_GATEWAY),
)


def status_for(error: DomainError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def build_email_sender(settings: Settings) -> EmailSender:
    if settings.smtp_configured:
        return SmtpEmailSender.from_settings(settings)
    logger.warning("SMTP not configured - emails will be logged, not sent")
    return ConsoleEmailSender(enabled=settings.is_development)


def build_sms_sender(settings: Settings) -> SmsSender:
    if settings.twilio_configured:
        return TwilioSmsSender.from_settings(settings)
    logger.warning("Twilio not configured - text messages will be logged, not sent")
    return ConsoleSmsSender(enabled=settings.is_development)


def build_file_store(settings: Settings) -> FileStore:
    if settings.s3_bucket:
        return S3FileStore.from_settings(settings)
    logger.warning("S3 bucket not configured - file uploads are disabled")
    return UnconfiguredFileStore()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup and shutdown hook.

    On startup:
    - Opens the connection pool and applies migrations
    - Builds the outbound adapters (email, SMS, file store)
    - Sweeps expired tokens once, then periodically in the background
    On shutdown, stops background work and closes the pool.
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger.info("Starting eventpass (%s)", settings.environment)
    logger.info("Opening database pool")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )

    logger.info("Applying migrations")
    run_migrations(pool)

    file_store = build_file_store(settings)
    file_cleanup = FileCleanup(file_store)
    sweeper = TokenSweeper(
        tokens=PostgresTokenRepository(pool),
        sessions=PostgresSessionRepository(pool),
        interval_seconds=settings.token_sweep_interval_seconds,
    )

    # Store collaborators in app state for dependency injection
    app.state.pool = pool
    app.state.email_sender = build_email_sender(settings)
    app.state.sms_sender = build_sms_sender(settings)
    app.state.file_store = file_store
    app.state.file_cleanup = file_cleanup

    sweeper.sweep()
    sweeper.start()

    logger.info("Startup complete")

    yield

    # Shutdown
    logger.info("Shutting down")
    sweeper.stop()
    file_cleanup.shutdown(wait=True)
    pool.close()
    logger.info("Shutdown complete")


app = FastAPI(
    title="eventpass",
    description="Event registration API - OTP and password authentication, attendee profiles, document uploads",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """
    Map domain exceptions to HTTP responses.

    Only the class's public message is returned; the detail stays in
    the log.
    """
    status_code = status_for(exc)
    if isinstance(exc, UpstreamFailure):
        logger.warning("%s %s failed upstream: %r", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %r", request.method, request.url.path, exc)

    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=status_code, content={"detail": exc.public_message}, headers=headers)


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Liveness probe that also round-trips the database.

    Returns 200 when a pooled connection answers SELECT 1;
    a connection failure propagates as a 500.
    """
    pool = request.app.state.pool
    with pool.connection() as conn:
        conn.execute("SELECT 1")

    return {"status": "healthy"}
