"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal
from uuid import UUID

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from src.domain.models import AttendeeProfile, Identity, ProfilePage, ProfileStatistics
from src.domain.ports import (
    AttendanceType,
    Industry,
    PaymentStatus,
    RegistrationStatus,
)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def _fits_bcrypt(password: str) -> str:
    if len(password.encode()) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    return password


Password = Annotated[
    str,
    Field(min_length=8, max_length=BCRYPT_MAX_BYTES, description="Password (min 8 characters)"),
    AfterValidator(_fits_bcrypt),
]
Mobile = Annotated[
    str,
    Field(min_length=10, max_length=15, pattern=r"^\+?[1-9]\d{9,14}$", description="Mobile number"),
]
IndianMobile = Annotated[str, Field(pattern=r"^[6-9]\d{9}$", description="10 digit Indian mobile number")]
PinCode = Annotated[str, Field(pattern=r"^\d{6}$", description="6 digit PIN code")]
Name = Annotated[str, Field(min_length=2, max_length=100)]

Gender = Literal["MALE", "FEMALE", "OTHER", "PREFER_NOT_TO_SAY"]
MealPreference = Literal["VEG", "NON_VEG", "VEGAN", "JAIN", "OTHER"]
TShirtSize = Literal["XS", "S", "M", "L", "XL", "XXL"]
HeardAboutEvent = Literal["SOCIAL_MEDIA", "FRIEND", "EMAIL", "POSTER", "GDG", "OTHER"]
EventDay = Literal["Day 1", "Day 2", "Day 3"]
EventSession = Literal[
    "Keynotes",
    "Panel Discussions",
    "Workshops",
    "Networking",
    "Exhibition",
    "Hackathon",
    "Startup Pitches",
    "Cultural Events",
]
AreaOfInterest = Literal[
    "Sustainability",
    "Technology",
    "Startups",
    "Culture",
    "Innovation",
    "Education",
    "Healthcare",
    "Finance",
    "Other",
]


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str


class MessageResponse(BaseModel):
    message: str


# Accounts and authentication


class UserResponse(BaseModel):
    """Public view of an account. Never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str | None = None
    mobile: str | None = None
    name: str | None = None
    is_verified: bool = False
    is_admin: bool = False
    created_at: datetime | None = None

    @classmethod
    def from_identity(cls, identity: Identity) -> "UserResponse":
        return cls.model_validate(identity)


class RegisterMobileRequest(BaseModel):
    """Request model for mobile signup."""

    mobile: Mobile
    name: Name | None = None


class RegisterEmailRequest(BaseModel):
    """Request model for email + password signup."""

    email: EmailStr
    password: Password
    name: Name | None = None


class RegisterResponse(BaseModel):
    message: str
    user: UserResponse


class OtpLoginRequest(BaseModel):
    contact: str = Field(..., min_length=3, max_length=254, description="Email address or mobile number")


class EmailLoginRequest(BaseModel):
    email: EmailStr
    password: Password


class VerifyOtpRequest(BaseModel):
    contact: str = Field(..., min_length=3, max_length=254, description="Email address or mobile number")
    code: str = Field(..., pattern=r"^\d{4,8}$", description="Numeric one-time code")


class SessionResponse(BaseModel):
    """Response model for a successful login."""

    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse


class LinkTokenRequest(BaseModel):
    token: str = Field(..., min_length=10, max_length=256)


class EmailRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirmRequest(BaseModel):
    token: str = Field(..., min_length=10, max_length=256)
    password: Password


class UpdateAccountRequest(BaseModel):
    name: Name | None = None
    email: EmailStr | None = None
    mobile: Mobile | None = None


# Attendee profiles


def _blank_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class _ProfileValidators(BaseModel):
    """Field rules shared by create and update."""

    @field_validator("alternate_contact_number", "linkedin_url", "document_number", mode="before", check_fields=False)
    @classmethod
    def blank_optional_strings(cls, value: object) -> object:
        return _blank_to_none(value)

    @field_validator("linkedin_url", check_fields=False)
    @classmethod
    def linkedin_only(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if not value.startswith(("http://", "https://")) or "linkedin.com" not in value:
            raise ValueError("Must be a LinkedIn URL")
        return value

    @field_validator("date_of_birth", check_fields=False)
    @classmethod
    def born_in_the_past(cls, value: date | None) -> date | None:
        if value is not None and value >= date.today():
            raise ValueError("Date of birth must be in the past")
        return value


class ProfileCreateRequest(_ProfileValidators):
    """
    Attendee registration form.

    Sent as the JSON ``data`` field of a multipart request; documents
    are either attached as files or referenced by presigned-upload URL.
    """

    full_name: str = Field(..., min_length=2, max_length=100)
    date_of_birth: date
    gender: Gender
    nationality: str = Field(..., min_length=2, max_length=50)
    document_number: str | None = Field(None, max_length=50)

    mobile_number: IndianMobile
    alternate_contact_number: IndianMobile | None = None
    residential_address: str = Field(..., min_length=10, max_length=500)
    pin_code: PinCode

    organization: Name
    designation: Name
    industry: Industry
    linkedin_url: str | None = Field(None, max_length=300)

    attendance_type: AttendanceType
    days_attending: list[EventDay] = Field(default_factory=list)
    sessions_interested: list[EventSession] = Field(default_factory=list)
    accommodation_required: bool = False
    meal_preference: MealPreference
    tshirt_size: TShirtSize

    emergency_contact_name: Name
    emergency_contact_number: IndianMobile
    emergency_relationship: str = Field(..., min_length=2, max_length=50)

    terms_accepted: bool
    photo_video_consent: bool = False
    data_privacy_agreement: bool

    heard_about_event: HeardAboutEvent | None = None
    volunteer_interest: bool = False
    areas_of_interest: list[AreaOfInterest] = Field(default_factory=list)

    photo_upload_url: str | None = None
    id_proof_upload_url: str | None = None
    student_id_upload_url: str | None = None

    @model_validator(mode="after")
    def consents_given(self) -> "ProfileCreateRequest":
        if not self.terms_accepted:
            raise ValueError("You must accept the terms and conditions")
        if not self.data_privacy_agreement:
            raise ValueError("You must agree to the data privacy policy")
        return self


class ProfileUpdateRequest(_ProfileValidators):
    """Partial update: only fields present in the request are changed."""

    full_name: str | None = Field(None, min_length=2, max_length=100)
    date_of_birth: date | None = None
    gender: Gender | None = None
    nationality: str | None = Field(None, min_length=2, max_length=50)
    document_number: str | None = Field(None, max_length=50)

    mobile_number: IndianMobile | None = None
    alternate_contact_number: IndianMobile | None = None
    residential_address: str | None = Field(None, min_length=10, max_length=500)
    pin_code: PinCode | None = None

    organization: Name | None = None
    designation: Name | None = None
    industry: Industry | None = None
    linkedin_url: str | None = Field(None, max_length=300)

    attendance_type: AttendanceType | None = None
    days_attending: Annotated[list[EventDay], Field(min_length=1)] | None = None
    sessions_interested: Annotated[list[EventSession], Field(min_length=1)] | None = None
    accommodation_required: bool | None = None
    meal_preference: MealPreference | None = None
    tshirt_size: TShirtSize | None = None

    emergency_contact_name: Name | None = None
    emergency_contact_number: IndianMobile | None = None
    emergency_relationship: str | None = Field(None, min_length=2, max_length=50)

    terms_accepted: bool | None = None
    photo_video_consent: bool | None = None
    data_privacy_agreement: bool | None = None

    heard_about_event: HeardAboutEvent | None = None
    volunteer_interest: bool | None = None
    areas_of_interest: list[AreaOfInterest] | None = None

    photo_upload_url: str | None = None
    id_proof_upload_url: str | None = None
    student_id_upload_url: str | None = None

    def changes(self) -> dict[str, object]:
        """
        Fields the client actually sent.

        An explicit null clears an optional column, but never a
        required one.
        """
        sent = self.model_dump(exclude_unset=True)
        required = {name for name, info in ProfileCreateRequest.model_fields.items() if info.is_required()}
        return {name: value for name, value in sent.items() if value is not None or name not in required}


class AttendeeResponse(BaseModel):
    id: UUID
    user_id: UUID
    full_name: str
    date_of_birth: date
    gender: str
    nationality: str
    document_number: str | None = None
    mobile_number: str
    alternate_contact_number: str | None = None
    residential_address: str
    pin_code: str
    organization: str
    designation: str
    industry: Industry
    linkedin_url: str | None = None
    attendance_type: AttendanceType
    days_attending: list[str]
    sessions_interested: list[str]
    accommodation_required: bool
    meal_preference: str
    tshirt_size: str
    emergency_contact_name: str
    emergency_contact_number: str
    emergency_relationship: str
    terms_accepted: bool
    photo_video_consent: bool
    data_privacy_agreement: bool
    heard_about_event: str | None = None
    volunteer_interest: bool
    areas_of_interest: list[str]
    photo_upload_url: str | None = None
    id_proof_upload_url: str | None = None
    student_id_upload_url: str | None = None
    registration_status: RegistrationStatus
    payment_status: PaymentStatus
    payment_id: str | None = None
    payment_amount: Decimal | None = None
    payment_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    user: UserResponse | None = None

    @classmethod
    def from_profile(cls, profile: AttendeeProfile) -> "AttendeeResponse":
        values = {name: getattr(profile, name) for name in cls.model_fields if name != "user"}
        owner = UserResponse.from_identity(profile.owner) if profile.owner else None
        return cls(**values, user=owner)


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AttendeeListResponse(BaseModel):
    items: list[AttendeeResponse]
    pagination: PaginationResponse

    @classmethod
    def from_page(cls, page: ProfilePage) -> "AttendeeListResponse":
        return cls(
            items=[AttendeeResponse.from_profile(profile) for profile in page.items],
            pagination=PaginationResponse(
                page=page.page, limit=page.limit, total=page.total, total_pages=page.total_pages
            ),
        )


class StatusCounts(BaseModel):
    confirmed: int
    pending: int
    cancelled: int
    waitlisted: int


class AttendanceCounts(BaseModel):
    in_person: int
    virtual: int


class StatisticsResponse(BaseModel):
    total: int
    by_status: StatusCounts
    by_attendance_type: AttendanceCounts
    accommodation_required: int

    @classmethod
    def from_statistics(cls, statistics: ProfileStatistics) -> "StatisticsResponse":
        return cls.model_validate(statistics.as_dict())


class RegistrationStatusRequest(BaseModel):
    registration_status: RegistrationStatus


class PaymentUpdateRequest(BaseModel):
    payment_status: PaymentStatus
    payment_id: str | None = Field(None, max_length=100)
    amount: Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2)] | None = None


# Uploads


class PresignUploadRequest(BaseModel):
    file_name: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., min_length=1, max_length=100)


class PresignUploadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    upload_url: str
    file_url: str
    key: str
    expires_in: int


class PresignDownloadRequest(BaseModel):
    key: str = Field(..., min_length=1, max_length=1024)


class PresignDownloadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    url: str
    expires_in: int
