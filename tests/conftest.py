"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory ports and fully wired domain services (unit tests)
- A PostgreSQL connection pool with per-test cleanup (integration and
  adversarial tests, skipped when no database is reachable)
"""

from collections.abc import Generator

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository import run_migrations
from src.config.settings import get_settings
from src.domain.auth import AuthPolicy, AuthService
from src.domain.cleanup import FileCleanup
from src.domain.notifications import Notifier
from src.domain.profiles import ProfileService
from src.domain.sessions import SessionManager
from src.domain.tokens import TokenIssuer, TokenVerifier
from tests.fakes import (
    TEST_JWT_SECRET,
    FakeClock,
    FakeFileStore,
    InMemoryIdentityRepository,
    InMemoryProfileRepository,
    InMemorySessionRepository,
    InMemoryTokenRepository,
    RecordingEmailSender,
    RecordingSmsSender,
)

# In-memory wiring


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def identities() -> InMemoryIdentityRepository:
    return InMemoryIdentityRepository()


@pytest.fixture
def token_repository(identities: InMemoryIdentityRepository, clock: FakeClock) -> InMemoryTokenRepository:
    return InMemoryTokenRepository(identities, clock)


@pytest.fixture
def session_repository(clock: FakeClock) -> InMemorySessionRepository:
    return InMemorySessionRepository(clock)


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def sms_sender() -> RecordingSmsSender:
    return RecordingSmsSender()


@pytest.fixture
def session_manager(session_repository: InMemorySessionRepository) -> SessionManager:
    return SessionManager(repository=session_repository, secret=TEST_JWT_SECRET)


@pytest.fixture
def auth_service(
    identities: InMemoryIdentityRepository,
    token_repository: InMemoryTokenRepository,
    session_manager: SessionManager,
    email_sender: RecordingEmailSender,
    sms_sender: RecordingSmsSender,
) -> AuthService:
    """AuthService over in-memory ports, with bcrypt at its minimum cost."""
    return AuthService(
        identities=identities,
        issuer=TokenIssuer(token_repository),
        verifier=TokenVerifier(token_repository),
        sessions=session_manager,
        notifier=Notifier(email_sender, sms_sender, app_name="Mission Blue"),
        policy=AuthPolicy(app_url="https://app.test"),
    )


@pytest.fixture
def file_store() -> FakeFileStore:
    return FakeFileStore()


@pytest.fixture
def file_cleanup(file_store: FakeFileStore) -> Generator[FileCleanup, None, None]:
    cleanup = FileCleanup(file_store)
    yield cleanup
    cleanup.shutdown(wait=True)


@pytest.fixture
def profile_repository() -> InMemoryProfileRepository:
    return InMemoryProfileRepository()


@pytest.fixture
def profile_service(
    profile_repository: InMemoryProfileRepository,
    file_store: FakeFileStore,
    file_cleanup: FileCleanup,
) -> ProfileService:
    return ProfileService(repository=profile_repository, file_store=file_store, cleanup=file_cleanup)


# PostgreSQL


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool against DATABASE_URL with migrations applied.

    Skips the requesting test when the database is unreachable.
    """
    settings = get_settings()
    try:
        psycopg.connect(settings.database_url, connect_timeout=3).close()
    except psycopg.OperationalError as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=20,
        open=True,
    )
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[ConnectionPool, None, None]:
    """Empty every table before the test."""
    with pool.connection() as conn:
        conn.execute("TRUNCATE attendees, sessions, credential_tokens, users CASCADE")
        conn.commit()
    yield pool
