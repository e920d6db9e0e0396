"""
API v1 attendee profile routes.

Attendees manage their own profile under ``/attendees/me``; listing,
statistics and per-profile administration require an admin account.
"""

from datetime import datetime
from typing import TypeVar
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from src.api.dependencies import get_current_identity, get_profile_service, require_admin
from src.api.models import (
    AttendeeListResponse,
    AttendeeResponse,
    ErrorResponse,
    MessageResponse,
    PaymentUpdateRequest,
    ProfileCreateRequest,
    ProfileUpdateRequest,
    RegistrationStatusRequest,
    StatisticsResponse,
)
from src.config.settings import Settings, get_settings
from src.domain.exceptions import ValidationFailed
from src.domain.models import Identity, ProfileQuery, UploadedFile
from src.domain.ports import AttendanceType, FileSlot, Industry, RegistrationStatus
from src.domain.profiles import MAX_PAGE_SIZE, ProfileService
from src.domain.uploads import ALLOWED_CONTENT_TYPES

router = APIRouter(prefix="/attendees", tags=["attendees"])

FormModel = TypeVar("FormModel", bound=BaseModel)

_ADMIN_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Not signed in"},
    403: {"model": ErrorResponse, "description": "Admin access required"},
}


def read_upload(upload: UploadFile, max_bytes: int) -> UploadedFile:
    """
    Buffer one multipart file after checking its type and size.

    Raises:
        ValidationFailed: unsupported type, empty, or larger than max_bytes
    """
    content_type = (upload.content_type or "").lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationFailed("Invalid file type. Only JPEG, PNG, and PDF files are allowed.")

    data = upload.file.read(max_bytes + 1)
    if not data:
        raise ValidationFailed(f"{upload.filename} is empty")
    if len(data) > max_bytes:
        raise ValidationFailed(f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.")
    return UploadedFile(data=data, content_type=content_type, file_name=upload.filename or "upload")


def read_uploads(
    max_bytes: int,
    photo: UploadFile | None,
    id_proof: UploadFile | None,
    student_id: UploadFile | None,
) -> dict[FileSlot, UploadedFile]:
    attached = {FileSlot.PHOTO: photo, FileSlot.ID_PROOF: id_proof, FileSlot.STUDENT_ID: student_id}
    return {
        slot: read_upload(upload, max_bytes)
        for slot, upload in attached.items()
        if upload is not None and upload.filename
    }


def parse_form(model: type[FormModel], data: str) -> FormModel:
    """Validate the JSON ``data`` form field; errors surface as a 422."""
    try:
        return model.model_validate_json(data)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False)) from None


@router.post(
    "",
    response_model=AttendeeResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Registration already submitted"},
        502: {"model": ErrorResponse, "description": "File storage unavailable"},
    },
    summary="Submit the registration form",
)
def create_attendee(
    data: str = Form(..., description="Registration form fields as a JSON object"),
    photo: UploadFile | None = File(None, description="Photo (JPEG/PNG/PDF, max 5MB)"),
    id_proof: UploadFile | None = File(None, description="ID proof (JPEG/PNG/PDF, max 5MB)"),
    student_id: UploadFile | None = File(None, description="Student ID (JPEG/PNG/PDF, max 5MB)"),
    identity: Identity = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
    settings: Settings = Depends(get_settings),
) -> AttendeeResponse:
    """
    Create the signed-in account's attendee profile.

    Multipart form: ``data`` holds the JSON form; ``photo``, ``id_proof``
    and ``student_id`` are optional files. Documents uploaded earlier
    through a presigned URL can instead be referenced in ``data``.
    """
    form = parse_form(ProfileCreateRequest, data)
    files = read_uploads(settings.max_upload_bytes, photo, id_proof, student_id)

    profile = service.create(identity.id, form.model_dump(), files)
    return AttendeeResponse.from_profile(profile)


@router.get(
    "/me",
    response_model=AttendeeResponse,
    responses={404: {"model": ErrorResponse, "description": "No registration yet"}},
    summary="Own registration",
)
def get_my_attendee(
    identity: Identity = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
) -> AttendeeResponse:
    return AttendeeResponse.from_profile(service.get_mine(identity.id))


@router.put(
    "/me",
    response_model=AttendeeResponse,
    responses={
        404: {"model": ErrorResponse, "description": "No registration yet"},
        502: {"model": ErrorResponse, "description": "File storage unavailable"},
    },
    summary="Update own registration",
)
def update_my_attendee(
    data: str = Form("{}", description="Changed form fields as a JSON object"),
    photo: UploadFile | None = File(None, description="Replacement photo (JPEG/PNG/PDF, max 5MB)"),
    id_proof: UploadFile | None = File(None, description="Replacement ID proof (JPEG/PNG/PDF, max 5MB)"),
    student_id: UploadFile | None = File(None, description="Replacement student ID (JPEG/PNG/PDF, max 5MB)"),
    identity: Identity = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
    settings: Settings = Depends(get_settings),
) -> AttendeeResponse:
    """
    Multipart form like the create route. Only the fields present in
    ``data`` are changed; each attached file replaces the stored one.
    """
    form = parse_form(ProfileUpdateRequest, data)
    files = read_uploads(settings.max_upload_bytes, photo, id_proof, student_id)

    profile = service.update_mine(identity.id, form.changes(), files)
    return AttendeeResponse.from_profile(profile)


@router.get(
    "",
    response_model=AttendeeListResponse,
    responses=_ADMIN_RESPONSES,
    summary="List registrations (admin)",
)
def list_attendees(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    industry: Industry | None = None,
    attendance_type: AttendanceType | None = None,
    registration_status: RegistrationStatus | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    search: str | None = Query(None, max_length=100, description="Name, email or mobile number"),
    _: Identity = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> AttendeeListResponse:
    query = ProfileQuery(
        page=page,
        limit=limit,
        industry=industry,
        attendance_type=attendance_type,
        registration_status=registration_status,
        from_date=from_date,
        to_date=to_date,
        search=search or None,
    )
    return AttendeeListResponse.from_page(service.list(query))


@router.get(
    "/stats",
    response_model=StatisticsResponse,
    responses=_ADMIN_RESPONSES,
    summary="Registration statistics (admin)",
)
def attendee_statistics(
    _: Identity = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> StatisticsResponse:
    return StatisticsResponse.from_statistics(service.statistics())


@router.get(
    "/{profile_id}",
    response_model=AttendeeResponse,
    responses={**_ADMIN_RESPONSES, 404: {"model": ErrorResponse, "description": "No such registration"}},
    summary="Get a registration (admin)",
)
def get_attendee(
    profile_id: UUID,
    _: Identity = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> AttendeeResponse:
    return AttendeeResponse.from_profile(service.get(profile_id))


@router.delete(
    "/{profile_id}",
    response_model=MessageResponse,
    responses={**_ADMIN_RESPONSES, 404: {"model": ErrorResponse, "description": "No such registration"}},
    summary="Delete a registration (admin)",
)
def delete_attendee(
    profile_id: UUID,
    delete_files: bool = Query(True, description="Also delete uploaded documents"),
    _: Identity = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> MessageResponse:
    """Document deletion runs in the background and never fails the request."""
    service.delete(profile_id, delete_files=delete_files)
    return MessageResponse(message="Attendee deleted successfully")


@router.patch(
    "/{profile_id}/payment",
    response_model=AttendeeResponse,
    responses={
        **_ADMIN_RESPONSES,
        404: {"model": ErrorResponse, "description": "No such registration"},
        409: {"model": ErrorResponse, "description": "Transition not allowed"},
    },
    summary="Update payment status (admin)",
)
def update_payment(
    profile_id: UUID,
    request_data: PaymentUpdateRequest,
    _: Identity = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> AttendeeResponse:
    """Marking a payment COMPLETED also confirms the registration."""
    profile = service.update_payment(
        profile_id,
        request_data.payment_status,
        payment_id=request_data.payment_id,
        amount=request_data.amount,
    )
    return AttendeeResponse.from_profile(profile)


@router.patch(
    "/{profile_id}/status",
    response_model=AttendeeResponse,
    responses={
        **_ADMIN_RESPONSES,
        404: {"model": ErrorResponse, "description": "No such registration"},
        409: {"model": ErrorResponse, "description": "Transition not allowed"},
    },
    summary="Update registration status (admin)",
)
def update_registration_status(
    profile_id: UUID,
    request_data: RegistrationStatusRequest,
    _: Identity = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> AttendeeResponse:
    profile = service.update_registration_status(profile_id, request_data.registration_status)
    return AttendeeResponse.from_profile(profile)
