"""
Authentication domain service - signup, login, verification and reset.

Flows
=====

Mobile OTP:      register_mobile / request_login_otp -> verify_otp -> session
Email OTP:       request_login_otp -> verify_otp -> session
Email+password:  register_email -> verify_email (magic link)
                 -> login_with_password -> session
Password reset:  request_password_reset (magic link) -> reset_password

Requests that could reveal whether an account exists (login OTP,
resend verification, password reset) have a uniform outcome: unknown
accounts simply get no token and no message, and delivery failures in
these flows are logged instead of raised.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any
from uuid import UUID

from .exceptions import (
    ContactAlreadyInUse,
    EmailNotVerified,
    IdentityNotFound,
    InvalidCredentials,
    InvalidOrExpiredSecret,
    UpstreamFailure,
)
from .models import Identity, SessionToken
from .notifications import Notifier, build_magic_link
from .passwords import hash_password, verify_password
from .ports import IdentityRepository, TokenPurpose
from .sessions import SessionManager
from .tokens import (
    TokenIssuer,
    TokenVerifier,
    is_email,
    normalize_contact,
    normalize_email,
    normalize_mobile,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthPolicy:
    """Lifetimes and link targets for issued secrets."""

    app_url: str = "http://localhost:3000"
    otp_ttl: timedelta = timedelta(minutes=5)
    email_verification_ttl: timedelta = timedelta(hours=24)
    password_reset_ttl: timedelta = timedelta(minutes=30)
    bcrypt_cost: int = 10
    verify_email_path: str = "/verify-email"
    reset_password_path: str = "/reset-password"


@dataclass
class AuthService:
    """
    Domain service for account authentication.

    Orchestrates identities, the token issuer/verifier, sessions and
    notifications. Holds no state between calls.
    """

    identities: IdentityRepository
    issuer: TokenIssuer
    verifier: TokenVerifier
    sessions: SessionManager
    notifier: Notifier
    policy: AuthPolicy = field(default_factory=AuthPolicy)

    # Registration

    def register_mobile(self, mobile: str, name: str | None = None) -> Identity:
        """
        Find or create the identity for a mobile number and text it an OTP.

        Raises:
            DeliveryFailed / NotConfigured: SMS could not be sent
        """
        mobile = normalize_mobile(mobile)
        identity = self.identities.get_by_mobile(mobile) or self._create(mobile=mobile, name=name)
        token = self.issuer.issue(identity.id, TokenPurpose.MOBILE_OTP, self.policy.otp_ttl, contact=mobile)
        self.notifier.send_otp_sms(mobile, token.secret, self.policy.otp_ttl)
        return identity

    def register_email(self, email: str, password: str, name: str | None = None) -> Identity:
        """
        Email + password signup; sends a verification magic link.

        Signup never changes the password of an existing identity. An
        unverified account that registered with a password gets a fresh
        link and keeps its first password. Any other existing identity
        (verified, or created through another channel without a
        password) conflicts; its owner sets a password via reset.

        Raises:
            ContactAlreadyInUse: email already belongs to another account
            DeliveryFailed / NotConfigured: email could not be sent
        """
        email = normalize_email(email)

        identity = self.identities.get_by_email(email)
        if identity is None:
            password_hash = hash_password(password, self.policy.bcrypt_cost)
            identity = self._create(email=email, name=name, password_hash=password_hash)
        elif identity.is_verified or not identity.password_hash:
            raise ContactAlreadyInUse(email)

        self._send_verification_link(identity.id, email)
        return identity

    # Login

    def request_login_otp(self, contact: str) -> None:
        """
        Send a login OTP to an existing mobile or email identity.

        Unknown contacts are ignored so the caller's response never
        reveals account existence.
        """
        contact = normalize_contact(contact)
        if is_email(contact):
            identity = self.identities.get_by_email(contact)
            purpose = TokenPurpose.EMAIL_OTP
        else:
            identity = self.identities.get_by_mobile(contact)
            purpose = TokenPurpose.MOBILE_OTP

        if identity is None:
            logger.info("Login OTP requested for unknown contact")
            return

        token = self.issuer.issue(identity.id, purpose, self.policy.otp_ttl, contact=contact)
        self._deliver_quietly(
            "login OTP",
            self.notifier.send_otp_email if purpose is TokenPurpose.EMAIL_OTP else self.notifier.send_otp_sms,
            contact,
            token.secret,
            self.policy.otp_ttl,
        )

    def verify_otp(self, contact: str, code: str) -> tuple[Identity, SessionToken]:
        """
        Redeem an OTP and open a session.

        Raises:
            InvalidOrExpiredSecret: wrong, expired or already used code
        """
        contact = normalize_contact(contact)
        purpose = TokenPurpose.EMAIL_OTP if is_email(contact) else TokenPurpose.MOBILE_OTP
        user_id = self.verifier.verify(code, purpose, contact)
        if user_id is None:
            raise InvalidOrExpiredSecret()
        identity = self._load(user_id)
        return identity, self.sessions.create(identity.id)

    def login_with_password(self, email: str, password: str) -> tuple[Identity, SessionToken]:
        """
        Raises:
            InvalidCredentials: unknown email or wrong password
            EmailNotVerified: correct password, email not yet verified
        """
        identity = self.identities.get_by_email(normalize_email(email))
        # Always run bcrypt so unknown emails take as long as wrong passwords
        password_valid = verify_password(password, identity.password_hash if identity else None)
        if identity is None or not password_valid:
            raise InvalidCredentials()
        if not identity.is_verified:
            raise EmailNotVerified()
        return identity, self.sessions.create(identity.id)

    # Magic links

    def verify_email(self, token: str) -> Identity:
        """
        Raises:
            InvalidOrExpiredSecret: unknown, expired or used token
        """
        user_id = self.verifier.verify(token, TokenPurpose.VERIFY_EMAIL)
        if user_id is None:
            raise InvalidOrExpiredSecret()
        return self._load(user_id)

    def resend_verification(self, email: str) -> None:
        """Re-send the verification link to an unverified account (uniform)."""
        identity = self.identities.get_by_email(normalize_email(email))
        if identity is None or identity.is_verified:
            return
        self._send_verification_link(identity.id, identity.email, quiet=True)

    def request_password_reset(self, email: str) -> None:
        """Email a reset link if the account exists (uniform)."""
        email = normalize_email(email)
        identity = self.identities.get_by_email(email)
        if identity is None:
            logger.info("Password reset requested for unknown email")
            return

        token = self.issuer.issue(identity.id, TokenPurpose.RESET_PASSWORD, self.policy.password_reset_ttl)
        link = build_magic_link(self.policy.app_url, self.policy.reset_password_path, token.secret)
        self._deliver_quietly(
            "password reset link",
            self.notifier.send_password_reset_link,
            email,
            link,
            self.policy.password_reset_ttl,
        )

    def reset_password(self, token: str, new_password: str) -> Identity:
        """
        Set a new password from a reset link.

        Proves mailbox ownership, so the account is also marked
        verified. Every existing session is revoked.

        Raises:
            InvalidOrExpiredSecret: unknown, expired or used token
        """
        user_id = self.verifier.verify(token, TokenPurpose.RESET_PASSWORD)
        if user_id is None:
            raise InvalidOrExpiredSecret()

        password_hash = hash_password(new_password, self.policy.bcrypt_cost)
        identity = self._require(self.identities.set_password(user_id, password_hash, verified=True))
        self.sessions.revoke_all(user_id)
        logger.info("Password reset for identity %s", user_id)
        return identity

    # Sessions and account

    def authenticate(self, session_token: str) -> Identity:
        """
        Raises:
            SessionInvalid: token invalid, expired or revoked
        """
        user_id = self.sessions.resolve(session_token)
        return self._load(user_id)

    def logout(self, session_token: str) -> None:
        self.sessions.revoke(session_token)

    def get_account(self, user_id: UUID) -> Identity:
        return self._load(user_id)

    def update_account(
        self,
        user_id: UUID,
        *,
        name: str | None = None,
        email: str | None = None,
        mobile: str | None = None,
    ) -> Identity:
        """
        Update account contact details.

        Changing email or mobile clears the verified flag.

        Raises:
            ContactAlreadyInUse: email or mobile belongs to another account
        """
        current = self._load(user_id)
        changes: dict[str, Any] = {}
        if name:
            changes["name"] = name
        if email and normalize_email(email) != current.email:
            changes["email"] = normalize_email(email)
        if mobile and normalize_mobile(mobile) != current.mobile:
            changes["mobile"] = normalize_mobile(mobile)
        if "email" in changes or "mobile" in changes:
            changes["is_verified"] = False
        if not changes:
            return current
        return self._require(self.identities.update_account(user_id, changes))

    # Helpers

    def _create(self, **values: Any) -> Identity:
        identity = self.identities.create(**values)
        logger.info("Created identity %s", identity.id)
        return identity

    def _send_verification_link(self, user_id: UUID, email: str, quiet: bool = False) -> None:
        ttl = self.policy.email_verification_ttl
        token = self.issuer.issue(user_id, TokenPurpose.VERIFY_EMAIL, ttl)
        link = build_magic_link(self.policy.app_url, self.policy.verify_email_path, token.secret)
        if quiet:
            self._deliver_quietly("verification link", self.notifier.send_verification_link, email, link, ttl)
        else:
            self.notifier.send_verification_link(email, link, ttl)

    def _deliver_quietly(self, what: str, send: Callable[..., None], *args: Any) -> None:
        try:
            send(*args)
        except UpstreamFailure:
            logger.exception("Failed to deliver %s", what)

    def _load(self, user_id: UUID) -> Identity:
        return self._require(self.identities.get_by_id(user_id))

    @staticmethod
    def _require(identity: Identity | None) -> Identity:
        if identity is None:
            raise IdentityNotFound()
        return identity

