"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.

Long-lived collaborators (pool, senders, file store, cleanup pool) are
created once in the app lifespan and kept on ``app.state``; services are
cheap dataclasses assembled per request around them.
"""

from datetime import timedelta

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool

from src.adapters.repository import (
    PostgresIdentityRepository,
    PostgresProfileRepository,
    PostgresSessionRepository,
    PostgresTokenRepository,
)
from src.config.settings import Settings, get_settings
from src.domain.auth import AuthPolicy, AuthService
from src.domain.cleanup import FileCleanup
from src.domain.exceptions import Unauthorized
from src.domain.models import Identity
from src.domain.notifications import Notifier
from src.domain.ports import EmailSender, FileStore, SmsSender
from src.domain.profiles import ProfileService
from src.domain.sessions import SessionManager
from src.domain.tokens import TokenIssuer, TokenVerifier
from src.domain.uploads import UploadService


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_email_sender(request: Request) -> EmailSender:
    return request.app.state.email_sender


def get_sms_sender(request: Request) -> SmsSender:
    return request.app.state.sms_sender


def get_file_store(request: Request) -> FileStore:
    return request.app.state.file_store


def get_file_cleanup(request: Request) -> FileCleanup:
    return request.app.state.file_cleanup


def get_session_manager(
    pool: ConnectionPool = Depends(get_pool),
    settings: Settings = Depends(get_settings),
) -> SessionManager:
    return SessionManager(
        repository=PostgresSessionRepository(pool),
        secret=settings.jwt_secret,
        ttl=timedelta(days=settings.session_ttl_days),
        algorithm=settings.jwt_algorithm,
    )


def get_auth_service(
    pool: ConnectionPool = Depends(get_pool),
    settings: Settings = Depends(get_settings),
    sessions: SessionManager = Depends(get_session_manager),
    email_sender: EmailSender = Depends(get_email_sender),
    sms_sender: SmsSender = Depends(get_sms_sender),
) -> AuthService:
    """
    Create auth service with injected dependencies.

    Wires together the repositories, token lifecycle, sessions and
    notification channels.
    """
    tokens = PostgresTokenRepository(pool)
    return AuthService(
        identities=PostgresIdentityRepository(pool),
        issuer=TokenIssuer(tokens, otp_length=settings.otp_length),
        verifier=TokenVerifier(tokens),
        sessions=sessions,
        notifier=Notifier(email_sender, sms_sender, app_name=settings.app_name),
        policy=AuthPolicy(
            app_url=settings.app_url,
            otp_ttl=timedelta(minutes=settings.otp_expiry_minutes),
            email_verification_ttl=timedelta(hours=settings.email_verification_expiry_hours),
            password_reset_ttl=timedelta(minutes=settings.password_reset_expiry_minutes),
            bcrypt_cost=settings.bcrypt_cost,
        ),
    )


def get_profile_service(
    pool: ConnectionPool = Depends(get_pool),
    file_store: FileStore = Depends(get_file_store),
    cleanup: FileCleanup = Depends(get_file_cleanup),
) -> ProfileService:
    return ProfileService(
        repository=PostgresProfileRepository(pool),
        file_store=file_store,
        cleanup=cleanup,
    )


def get_upload_service(
    file_store: FileStore = Depends(get_file_store),
    settings: Settings = Depends(get_settings),
) -> UploadService:
    return UploadService(file_store=file_store, ttl_seconds=settings.s3_presign_expires_seconds)


# Bearer session token security scheme for OpenAPI documentation.
# auto_error=False so a missing header goes through the Unauthorized handler.
http_bearer = HTTPBearer(auto_error=False)


def get_session_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
) -> str:
    """
    Extract the session token from the Authorization header.

    Raises:
        Unauthorized: header missing or not a Bearer credential
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized()
    return credentials.credentials


def get_current_identity(
    token: str = Depends(get_session_token),
    service: AuthService = Depends(get_auth_service),
) -> Identity:
    return service.authenticate(token)


def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return identity
