"""
Domain exceptions - Semantic error types for the registration service.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.

Each class carries a stable, generic ``public_message``. Callers branch
on the exception type (Conflict, NotFound, Unauthorized, ...), never on
the message text.
"""


class DomainError(Exception):
    """Base class for registration domain errors."""

    public_message = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.public_message)
        self.detail = detail


# Validation


class ValidationFailed(DomainError):
    """Input was well-formed but violates a business rule."""

    public_message = "Validation failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail)
        # Validation details are safe to show to the caller
        if detail:
            self.public_message = detail


# Conflict


class Conflict(DomainError):
    """Request clashes with existing state."""

    public_message = "Conflict"


class ProfileAlreadyExists(Conflict):
    """Identity already owns an attendee profile."""

    public_message = (
        "You have already submitted a registration. "
        "Please update your existing registration instead."
    )


class ContactAlreadyInUse(Conflict):
    """Email or mobile number belongs to another account."""

    public_message = "Registration failed"


class InvalidStatusTransition(Conflict):
    """Registration or payment status cannot move to the requested state."""

    public_message = "Status transition not allowed"


# Not found


class NotFound(DomainError):
    """Referenced entity does not exist."""

    public_message = "Not found"


class IdentityNotFound(NotFound):
    public_message = "User not found"


class ProfileNotFound(NotFound):
    public_message = "No registration found"


# Unauthorized


class Unauthorized(DomainError):
    """Missing, invalid or expired credential."""

    public_message = "Authentication required"


class InvalidCredentials(Unauthorized):
    """Email/password mismatch or unknown account (never distinguished)."""

    public_message = "Invalid email or password"


class EmailNotVerified(Unauthorized):
    public_message = "Email address not verified"


class SessionInvalid(Unauthorized):
    public_message = "Invalid or expired session"


# One-time secrets


class InvalidOrExpiredSecret(DomainError):
    """OTP or link token did not verify: wrong, expired, used or wrong purpose."""

    public_message = "Invalid or expired code"


# Upstream


class UpstreamFailure(DomainError):
    """Email, SMS or file store call failed."""

    public_message = "Upstream service unavailable"


class DeliveryFailed(UpstreamFailure):
    public_message = "Failed to deliver message"


class StorageFailed(UpstreamFailure):
    public_message = "File storage unavailable"


class NotConfigured(UpstreamFailure):
    """External service has no credentials outside development."""

    public_message = "Service not configured"
