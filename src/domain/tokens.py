"""
Credential token lifecycle - issuance, redemption and cleanup.

One-time codes (OTPs) and magic-link tokens share a single lifecycle:

    issue()   -> token stored unconsumed with an expiry; any earlier
                 unconsumed token for the same identity/contact and
                 purpose is deleted first
    verify()  -> a matching, unconsumed, unexpired token is marked
                 consumed by one conditional update; the winner learns
                 the owning identity, every other caller gets None
    sweep()   -> expired tokens (and expired sessions) are deleted

Invariants:
- At most one active token per (identity, purpose).
- A token is consumed at most once, even under concurrent verify calls.
  The repository guarantees this with an atomic conditional UPDATE.
- An expired token never verifies, consumed or not.

Secrets are persisted in plaintext for exact-match lookup. They are
short-lived and single-use; a hash-and-compare scheme would limit the
exposure of a database read compromise.
"""

import logging
import re
import secrets
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from uuid import UUID

from .exceptions import IdentityNotFound, ValidationFailed
from .models import IssuedToken
from .ports import SessionRepository, TokenPurpose, TokenRepository

logger = logging.getLogger(__name__)

DIGITS = "0123456789"
LINK_TOKEN_BYTES = 32  # 256 bits, hex encoded

_MOBILE_SEPARATORS = re.compile(r"[\s\-().]")


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


def normalize_mobile(mobile: str) -> str:
    """Strip whitespace and common separators, keep a leading +."""
    return _MOBILE_SEPARATORS.sub("", mobile.strip())


def normalize_contact(contact: str) -> str:
    """Normalize an email or mobile number, whichever it looks like."""
    if is_email(contact):
        return normalize_email(contact)
    return normalize_mobile(contact)


def is_email(contact: str) -> bool:
    return "@" in contact


def generate_otp(length: int = 6) -> str:
    """
    Generate a cryptographically secure numeric code.

    Uses secrets module for cryptographic randomness.
    Returns string to preserve leading zeros.
    """
    return "".join(secrets.choice(DIGITS) for _ in range(length))


def generate_link_token() -> str:
    """Generate an opaque 256-bit token for magic links."""
    return secrets.token_hex(LINK_TOKEN_BYTES)


@dataclass
class TokenIssuer:
    """Creates one-time codes and link tokens, one active per purpose."""

    repository: TokenRepository
    otp_length: int = 6

    def issue(
        self,
        identity_id: UUID,
        purpose: TokenPurpose,
        ttl: timedelta,
        *,
        contact: str | None = None,
        secret: str | None = None,
    ) -> IssuedToken:
        """
        Issue a new token, invalidating earlier unconsumed ones.

        Args:
            identity_id: Owning identity (must exist)
            purpose: What the token authorizes
            ttl: Positive lifetime
            contact: Email or mobile the code is sent to (required for OTPs)
            secret: Secret material to store; generated when omitted

        Returns:
            The stored token including the plaintext secret

        Raises:
            ValidationFailed: non-positive ttl or OTP without a contact
            IdentityNotFound: identity does not exist
        """
        ttl_seconds = int(ttl.total_seconds())
        if ttl_seconds <= 0:
            raise ValidationFailed("Token lifetime must be positive")
        if purpose.is_otp and not contact:
            raise ValidationFailed("A contact is required for one-time codes")

        if secret is None:
            secret = generate_otp(self.otp_length) if purpose.is_otp else generate_link_token()

        token = self.repository.replace_active(
            user_id=identity_id,
            purpose=purpose,
            secret=secret,
            ttl_seconds=ttl_seconds,
            contact=normalize_contact(contact) if contact else None,
        )
        if token is None:
            raise IdentityNotFound(str(identity_id))

        logger.info(
            "Issued %s token for identity %s (expires %s)",
            purpose.value,
            identity_id,
            token.expires_at.isoformat(),
        )
        return token


@dataclass
class TokenVerifier:
    """Redeems one-time codes and link tokens exactly once."""

    repository: TokenRepository

    def verify(
        self, secret: str, purpose: TokenPurpose, contact: str | None = None
    ) -> UUID | None:
        """
        Consume a presented secret.

        Wrong, expired, already used and wrong-purpose secrets are not
        distinguished: all return None.

        Returns:
            The owning identity id on success, otherwise None
        """
        if not secret:
            return None
        if purpose.is_otp and not contact:
            return None

        consumed = self.repository.consume(
            secret=secret.strip(),
            purpose=purpose,
            contact=normalize_contact(contact) if contact else None,
            mark_verified=purpose.marks_verified,
        )
        if consumed is None:
            logger.info("Rejected %s token", purpose.value)
            return None

        logger.info("Consumed %s token for identity %s", purpose.value, consumed.user_id)
        return consumed.user_id


@dataclass(frozen=True)
class SweepReport:
    tokens: int
    sessions: int


@dataclass
class TokenSweeper:
    """
    Periodic garbage collection of expired tokens and sessions.

    Failures are logged and never propagate: a skipped sweep only
    leaves dead rows behind, which no lookup treats as valid.
    """

    tokens: TokenRepository
    sessions: SessionRepository
    interval_seconds: float = 3600
    _stop: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _thread: threading.Thread | None = field(default=None, init=False, repr=False)

    def sweep(self) -> SweepReport | None:
        try:
            report = SweepReport(
                tokens=self.tokens.delete_expired(),
                sessions=self.sessions.delete_expired(),
            )
        except Exception:
            logger.exception("Expired token sweep failed")
            return None

        logger.info(
            "Swept %d expired token(s) and %d expired session(s)",
            report.tokens,
            report.sessions,
        )
        return report

    def start(self) -> None:
        if self.interval_seconds <= 0 or self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="token-sweeper", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.sweep()
