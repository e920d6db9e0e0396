"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure, together with the enumerations shared by the
domain and its adapters. Adapters implement these protocols through
structural subtyping.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol
from uuid import UUID

if TYPE_CHECKING:
    from .models import (
        AttendeeProfile,
        ConsumedToken,
        Identity,
        IssuedToken,
        PresignedDownload,
        PresignedUpload,
        ProfileQuery,
    )


class TokenPurpose(str, Enum):
    """
    What a credential token is for.

    OTP purposes are short numeric codes bound to a contact. Link
    purposes are opaque high-entropy tokens embedded in magic links.
    """

    MOBILE_OTP = "MOBILE_OTP"
    EMAIL_OTP = "EMAIL_OTP"
    VERIFY_EMAIL = "VERIFY_EMAIL"
    RESET_PASSWORD = "RESET_PASSWORD"

    @property
    def is_otp(self) -> bool:
        return self in (TokenPurpose.MOBILE_OTP, TokenPurpose.EMAIL_OTP)

    @property
    def marks_verified(self) -> bool:
        """Whether consuming the token proves ownership of the contact."""
        return self is not TokenPurpose.RESET_PASSWORD


class RegistrationStatus(str, Enum):
    """
    Attendee registration lifecycle.

    PENDING -> CONFIRMED | CANCELLED | WAITLISTED
    WAITLISTED -> CONFIRMED | CANCELLED
    CONFIRMED -> CANCELLED
    """

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    WAITLISTED = "WAITLISTED"


class PaymentStatus(str, Enum):
    """
    Payment lifecycle, independent of registration status.

    PENDING -> PROCESSING -> COMPLETED | FAILED, COMPLETED -> REFUNDED.
    COMPLETED confirms the registration.
    """

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


REGISTRATION_TRANSITIONS: dict[RegistrationStatus, frozenset[RegistrationStatus]] = {
    RegistrationStatus.PENDING: frozenset(
        {RegistrationStatus.CONFIRMED, RegistrationStatus.CANCELLED, RegistrationStatus.WAITLISTED}
    ),
    RegistrationStatus.WAITLISTED: frozenset(
        {RegistrationStatus.CONFIRMED, RegistrationStatus.CANCELLED}
    ),
    RegistrationStatus.CONFIRMED: frozenset({RegistrationStatus.CANCELLED}),
    RegistrationStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset(
        {PaymentStatus.PROCESSING, PaymentStatus.COMPLETED, PaymentStatus.FAILED}
    ),
    PaymentStatus.PROCESSING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PROCESSING}),
    PaymentStatus.COMPLETED: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}


class AttendanceType(str, Enum):
    IN_PERSON = "IN_PERSON"
    VIRTUAL = "VIRTUAL"


class Industry(str, Enum):
    TECHNOLOGY = "TECHNOLOGY"
    EDUCATION = "EDUCATION"
    HEALTHCARE = "HEALTHCARE"
    FINANCE = "FINANCE"
    MANUFACTURING = "MANUFACTURING"
    RETAIL = "RETAIL"
    CONSULTING = "CONSULTING"
    GOVERNMENT = "GOVERNMENT"
    NON_PROFIT = "NON_PROFIT"
    MEDIA = "MEDIA"
    HOSPITALITY = "HOSPITALITY"
    REAL_ESTATE = "REAL_ESTATE"
    AGRICULTURE = "AGRICULTURE"
    ENERGY = "ENERGY"
    TRANSPORTATION = "TRANSPORTATION"
    TELECOMMUNICATIONS = "TELECOMMUNICATIONS"
    LEGAL = "LEGAL"
    ENTERTAINMENT = "ENTERTAINMENT"
    CONSTRUCTION = "CONSTRUCTION"
    OTHER = "OTHER"


class FileSlot(str, Enum):
    """
    Uploadable attendee documents.

    ``column`` is the profile field holding the file URL, ``folder`` is
    the folder direct uploads land in, under the owner's ``users/{id}`` prefix.
    """

    PHOTO = "photo"
    ID_PROOF = "id_proof"
    STUDENT_ID = "student_id"

    @property
    def column(self) -> str:
        return f"{self.value}_upload_url"

    @property
    def folder(self) -> str:
        return {
            FileSlot.PHOTO: "photos",
            FileSlot.ID_PROOF: "id-proofs",
            FileSlot.STUDENT_ID: "student-ids",
        }[self]


class IdentityRepository(Protocol):
    """Port interface for user account persistence."""

    def get_by_id(self, user_id: UUID) -> Identity | None: ...

    def get_by_email(self, email: str) -> Identity | None: ...

    def get_by_mobile(self, mobile: str) -> Identity | None: ...

    def create(
        self,
        *,
        email: str | None = None,
        mobile: str | None = None,
        name: str | None = None,
        password_hash: str | None = None,
    ) -> Identity:
        """
        Insert a new identity.

        Raises:
            ContactAlreadyInUse: email or mobile already belongs to an identity
        """
        ...

    def set_password(self, user_id: UUID, password_hash: str, *, verified: bool) -> Identity | None: ...

    def update_account(self, user_id: UUID, changes: Mapping[str, Any]) -> Identity | None:
        """
        Apply name/email/mobile/is_verified changes.

        Raises:
            ContactAlreadyInUse: new email or mobile already taken
        """
        ...


class TokenRepository(Protocol):
    """Port interface for credential token persistence."""

    def replace_active(
        self,
        *,
        user_id: UUID,
        purpose: TokenPurpose,
        secret: str,
        ttl_seconds: int,
        contact: str | None = None,
    ) -> IssuedToken | None:
        """
        Delete unconsumed tokens of this purpose for the identity (or the
        contact) and insert the new one, in a single transaction.

        Returns:
            The stored token, or None if the identity does not exist
        """
        ...

    def consume(
        self,
        *,
        secret: str,
        purpose: TokenPurpose,
        contact: str | None = None,
        mark_verified: bool = False,
    ) -> ConsumedToken | None:
        """
        Atomically mark a matching, unconsumed, unexpired token consumed.

        At most one caller can consume a given token. When mark_verified
        is set, the owning identity is flagged verified in the same
        transaction.

        Returns:
            The consumed token, or None if nothing matched
        """
        ...

    def delete_expired(self) -> int: ...


class SessionRepository(Protocol):
    """Port interface for login session persistence."""

    def create(self, user_id: UUID, token: str, expires_at: datetime) -> None: ...

    def get_user_id(self, token: str) -> UUID | None:
        """Return the owner of a live (unexpired) session."""
        ...

    def delete(self, token: str) -> bool: ...

    def delete_for_user(self, user_id: UUID) -> int: ...

    def delete_expired(self) -> int: ...


class ProfileRepository(Protocol):
    """Port interface for attendee profile persistence."""

    def get(self, profile_id: UUID) -> AttendeeProfile | None: ...

    def get_by_user(self, user_id: UUID) -> AttendeeProfile | None: ...

    def create(self, user_id: UUID, fields: Mapping[str, Any]) -> AttendeeProfile:
        """
        Raises:
            ProfileAlreadyExists: the identity already owns a profile
        """
        ...

    def update(self, profile_id: UUID, fields: Mapping[str, Any]) -> AttendeeProfile | None: ...

    def delete(self, profile_id: UUID) -> AttendeeProfile | None:
        """Delete and return the removed profile, or None if absent."""
        ...

    def search(self, query: ProfileQuery) -> tuple[list[AttendeeProfile], int]:
        """Return one page of matching profiles and the total match count."""
        ...

    def count(
        self,
        *,
        registration_status: RegistrationStatus | None = None,
        attendance_type: AttendanceType | None = None,
        accommodation_required: bool | None = None,
    ) -> int: ...

    def transition_registration(
        self,
        profile_id: UUID,
        expected: RegistrationStatus,
        target: RegistrationStatus,
    ) -> AttendeeProfile | None:
        """Conditional update; None when the current status is not ``expected``."""
        ...

    def transition_payment(
        self,
        profile_id: UUID,
        expected: PaymentStatus,
        target: PaymentStatus,
        *,
        payment_id: str | None = None,
        amount: Any = None,
    ) -> AttendeeProfile | None:
        """
        Conditional update; None when the current status is not ``expected``.

        Moving to COMPLETED stamps the payment date and confirms the
        registration.
        """
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_email(self, to: str, subject: str, html: str) -> None:
        """
        Raises:
            DeliveryFailed: provider rejected or could not be reached
            NotConfigured: no provider outside development
        """
        ...


class SmsSender(Protocol):
    """Port interface for SMS delivery."""

    def send_sms(self, to: str, body: str) -> None:
        """
        Raises:
            DeliveryFailed: provider rejected or could not be reached
            NotConfigured: no provider outside development
        """
        ...


class FileStore(Protocol):
    """Port interface for the object store."""

    def upload(self, data: bytes, content_type: str, folder: str, file_name: str) -> str:
        """Store bytes and return the public URL."""
        ...

    def delete(self, url: str) -> None:
        """Idempotent: deleting a missing object is not an error."""
        ...

    def key_from_url(self, url: str) -> str | None:
        """Object key for a URL this store issued, or None for a foreign URL."""
        ...

    def presign_upload(
        self, key_prefix: str, file_name: str, content_type: str, ttl_seconds: int | None = None
    ) -> PresignedUpload: ...

    def presign_download(self, key: str, ttl_seconds: int | None = None) -> PresignedDownload: ...
