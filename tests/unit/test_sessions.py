"""
Unit tests for SessionManager.
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import jwt
import pytest

from src.domain.exceptions import SessionInvalid
from src.domain.sessions import SessionManager
from tests.fakes import TEST_JWT_SECRET, FakeClock, InMemorySessionRepository


class TestCreate:
    def test_token_carries_subject_and_expiry(
        self, session_manager: SessionManager, session_repository: InMemorySessionRepository
    ) -> None:
        user_id = uuid4()

        session = session_manager.create(user_id)

        claims = jwt.decode(session.token, TEST_JWT_SECRET, algorithms=["HS256"])
        assert claims["sub"] == str(user_id)
        assert claims["exp"] == int(session.expires_at.timestamp())
        assert session.expires_at - datetime.now(UTC) > timedelta(days=6)
        assert session.token in session_repository.sessions

    def test_tokens_are_unique_per_login(self, session_manager: SessionManager) -> None:
        user_id = uuid4()
        assert session_manager.create(user_id).token != session_manager.create(user_id).token


class TestResolve:
    def test_live_session_resolves(self, session_manager: SessionManager) -> None:
        user_id = uuid4()
        session = session_manager.create(user_id)
        assert session_manager.resolve(session.token) == user_id

    def test_revoked_session_rejected(self, session_manager: SessionManager) -> None:
        session = session_manager.create(uuid4())

        assert session_manager.revoke(session.token) is True
        with pytest.raises(SessionInvalid):
            session_manager.resolve(session.token)

    def test_revoking_unknown_token_is_not_an_error(self, session_manager: SessionManager) -> None:
        assert session_manager.revoke("no-such-token") is False

    def test_forged_signature_rejected(self, session_manager: SessionManager) -> None:
        forged = jwt.encode(
            {"sub": str(uuid4()), "exp": datetime.now(UTC) + timedelta(days=1)},
            "some-other-secret-of-sufficient-length",
            algorithm="HS256",
        )
        with pytest.raises(SessionInvalid):
            session_manager.resolve(forged)

    def test_garbage_rejected(self, session_manager: SessionManager) -> None:
        with pytest.raises(SessionInvalid):
            session_manager.resolve("not-a-jwt")

    def test_expired_jwt_rejected(self, session_repository: InMemorySessionRepository) -> None:
        manager = SessionManager(session_repository, TEST_JWT_SECRET, ttl=timedelta(seconds=-1))
        session = manager.create(uuid4())
        with pytest.raises(SessionInvalid):
            manager.resolve(session.token)

    def test_session_row_expiry_enforced(
        self, session_manager: SessionManager, clock: FakeClock
    ) -> None:
        session = session_manager.create(uuid4())
        clock.advance(days=8)
        with pytest.raises(SessionInvalid):
            session_manager.resolve(session.token)


class TestRevokeAll:
    def test_revokes_only_that_identity(self, session_manager: SessionManager) -> None:
        user_id, other_id = uuid4(), uuid4()
        first = session_manager.create(user_id)
        second = session_manager.create(user_id)
        other = session_manager.create(other_id)

        assert session_manager.revoke_all(user_id) == 2

        for token in (first.token, second.token):
            with pytest.raises(SessionInvalid):
                session_manager.resolve(token)
        assert session_manager.resolve(other.token) == other_id
