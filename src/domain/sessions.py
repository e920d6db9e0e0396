"""
Login sessions - signed tokens backed by a session table.

A session token is a PyJWT-signed HS256 string. It is only accepted while
its signature and ``exp`` claim are valid *and* its row still exists, so
logout and password reset can revoke tokens before they expire.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

import jwt

from .exceptions import SessionInvalid
from .models import SessionToken
from .ports import SessionRepository

logger = logging.getLogger(__name__)


@dataclass
class SessionManager:
    repository: SessionRepository
    secret: str
    ttl: timedelta = timedelta(days=7)
    algorithm: str = "HS256"

    def create(self, user_id: UUID) -> SessionToken:
        now = datetime.now(UTC)
        expires_at = now + self.ttl
        claims = {
            "sub": str(user_id),
            "iat": now,
            "exp": expires_at,
            "jti": secrets.token_hex(8),
        }
        token = jwt.encode(claims, self.secret, algorithm=self.algorithm)
        self.repository.create(user_id, token, expires_at)
        logger.info("Created session for identity %s", user_id)
        return SessionToken(token=token, user_id=user_id, expires_at=expires_at)

    def resolve(self, token: str) -> UUID:
        """
        Return the identity that owns a live session.

        Raises:
            SessionInvalid: bad signature, expired, revoked or unknown
        """
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
            claimed_user = UUID(claims["sub"])
        except (jwt.PyJWTError, KeyError, ValueError):
            raise SessionInvalid() from None

        user_id = self.repository.get_user_id(token)
        if user_id is None or user_id != claimed_user:
            raise SessionInvalid()
        return user_id

    def revoke(self, token: str) -> bool:
        """Delete a session. Revoking an unknown token is not an error."""
        return self.repository.delete(token)

    def revoke_all(self, user_id: UUID) -> int:
        count = self.repository.delete_for_user(user_id)
        if count:
            logger.info("Revoked %d session(s) for identity %s", count, user_id)
        return count
