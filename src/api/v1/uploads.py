"""
API v1 presigned upload routes.

Clients upload documents straight to the object store: they ask for a
presigned PUT, upload, then put the returned ``file_url`` in their
registration form.
"""

from fastapi import APIRouter, Depends

from src.api.dependencies import get_current_identity, get_upload_service
from src.api.models import (
    ErrorResponse,
    PresignDownloadRequest,
    PresignDownloadResponse,
    PresignUploadRequest,
    PresignUploadResponse,
)
from src.domain.models import Identity
from src.domain.uploads import UploadService

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.post(
    "/presign",
    response_model=PresignUploadResponse,
    responses={
        422: {"model": ErrorResponse, "description": "Unsupported content type"},
        503: {"model": ErrorResponse, "description": "File storage not configured"},
    },
    summary="Presign a document upload",
)
def presign_upload(
    request_data: PresignUploadRequest,
    identity: Identity = Depends(get_current_identity),
    service: UploadService = Depends(get_upload_service),
) -> PresignUploadResponse:
    """The upload must be sent with the same Content-Type declared here."""
    presigned = service.presign_upload(identity.id, request_data.file_name, request_data.content_type)
    return PresignUploadResponse.model_validate(presigned)


@router.post(
    "/presign/get",
    response_model=PresignDownloadResponse,
    responses={404: {"model": ErrorResponse, "description": "Unknown or foreign key"}},
    summary="Presign a document download",
)
def presign_download(
    request_data: PresignDownloadRequest,
    identity: Identity = Depends(get_current_identity),
    service: UploadService = Depends(get_upload_service),
) -> PresignDownloadResponse:
    """Attendees can read their own uploads; admins can read any key."""
    presigned = service.presign_download(identity.id, request_data.key, is_admin=identity.is_admin)
    return PresignDownloadResponse.model_validate(presigned)
