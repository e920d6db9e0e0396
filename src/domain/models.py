"""
Domain entities - plain dataclasses passed between services and adapters.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from .ports import (
    AttendanceType,
    FileSlot,
    Industry,
    PaymentStatus,
    RegistrationStatus,
    TokenPurpose,
)


@dataclass(frozen=True)
class Identity:
    """A user account: reachable by email and/or mobile number."""

    id: UUID
    email: str | None = None
    mobile: str | None = None
    name: str | None = None
    password_hash: str | None = None
    is_verified: bool = False
    is_admin: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class IssuedToken:
    """
    A freshly issued one-time code or link token.

    ``secret`` is the plaintext value to deliver out of band.
    """

    id: UUID
    user_id: UUID
    purpose: TokenPurpose
    secret: str
    expires_at: datetime
    contact: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class ConsumedToken:
    id: UUID
    user_id: UUID
    purpose: TokenPurpose


@dataclass(frozen=True)
class SessionToken:
    token: str
    user_id: UUID
    expires_at: datetime


@dataclass(frozen=True)
class UploadedFile:
    """A file received by the request layer, ready for the file store."""

    data: bytes
    content_type: str
    file_name: str


@dataclass(frozen=True)
class PresignedUpload:
    upload_url: str
    file_url: str
    key: str
    expires_in: int


@dataclass(frozen=True)
class PresignedDownload:
    url: str
    expires_in: int


# Editable attendee columns, in table order. Status, payment and
# ownership columns are managed by the service, never set directly.
PROFILE_FIELDS: tuple[str, ...] = (
    "full_name",
    "date_of_birth",
    "gender",
    "nationality",
    "document_number",
    "mobile_number",
    "alternate_contact_number",
    "residential_address",
    "pin_code",
    "organization",
    "designation",
    "industry",
    "linkedin_url",
    "attendance_type",
    "days_attending",
    "sessions_interested",
    "accommodation_required",
    "meal_preference",
    "tshirt_size",
    "emergency_contact_name",
    "emergency_contact_number",
    "emergency_relationship",
    "terms_accepted",
    "photo_video_consent",
    "data_privacy_agreement",
    "heard_about_event",
    "volunteer_interest",
    "areas_of_interest",
) + tuple(slot.column for slot in FileSlot)


@dataclass(frozen=True)
class AttendeeProfile:
    """An identity's event registration form and its status."""

    id: UUID
    user_id: UUID
    full_name: str
    date_of_birth: date
    gender: str
    nationality: str
    mobile_number: str
    residential_address: str
    pin_code: str
    organization: str
    designation: str
    industry: Industry
    attendance_type: AttendanceType
    meal_preference: str
    tshirt_size: str
    emergency_contact_name: str
    emergency_contact_number: str
    emergency_relationship: str
    document_number: str | None = None
    alternate_contact_number: str | None = None
    linkedin_url: str | None = None
    days_attending: list[str] = field(default_factory=list)
    sessions_interested: list[str] = field(default_factory=list)
    accommodation_required: bool = False
    terms_accepted: bool = False
    photo_video_consent: bool = False
    data_privacy_agreement: bool = False
    heard_about_event: str | None = None
    volunteer_interest: bool = False
    areas_of_interest: list[str] = field(default_factory=list)
    photo_upload_url: str | None = None
    id_proof_upload_url: str | None = None
    student_id_upload_url: str | None = None
    registration_status: RegistrationStatus = RegistrationStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_id: str | None = None
    payment_amount: Decimal | None = None
    payment_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    owner: Identity | None = None

    def file_url(self, slot: FileSlot) -> str | None:
        return getattr(self, slot.column)

    @property
    def file_urls(self) -> list[str]:
        return [url for slot in FileSlot if (url := self.file_url(slot))]


@dataclass(frozen=True)
class ProfileQuery:
    """Admin listing filters. All set filters must match (AND)."""

    page: int = 1
    limit: int = 10
    industry: Industry | None = None
    attendance_type: AttendanceType | None = None
    registration_status: RegistrationStatus | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    search: str | None = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class ProfilePage:
    items: list[AttendeeProfile]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass(frozen=True)
class ProfileStatistics:
    total: int
    confirmed: int
    pending: int
    cancelled: int
    waitlisted: int
    in_person: int
    virtual: int
    accommodation_required: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "by_status": {
                "confirmed": self.confirmed,
                "pending": self.pending,
                "cancelled": self.cancelled,
                "waitlisted": self.waitlisted,
            },
            "by_attendance_type": {
                "in_person": self.in_person,
                "virtual": self.virtual,
            },
            "accommodation_required": self.accommodation_required,
        }
