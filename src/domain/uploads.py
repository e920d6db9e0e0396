"""
Presigned upload/download URLs for client-side transfers.
"""

from dataclasses import dataclass
from uuid import UUID

from .exceptions import NotFound, ValidationFailed
from .models import PresignedDownload, PresignedUpload
from .ports import FileStore

ALLOWED_CONTENT_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "application/pdf"})


def user_prefix(user_id: UUID) -> str:
    return f"users/{user_id}"


def is_user_key(user_id: UUID, key: str) -> bool:
    """True when ``key`` names an object under the identity's own prefix."""
    if not key.startswith(f"{user_prefix(user_id)}/"):
        return False
    segments = key.split("/")[2:]
    return bool(segments) and not {"", ".", ".."} & set(segments)


@dataclass
class UploadService:
    file_store: FileStore
    ttl_seconds: int = 900

    def presign_upload(self, user_id: UUID, file_name: str, content_type: str) -> PresignedUpload:
        """
        Raises:
            ValidationFailed: content type not JPEG, PNG or PDF
        """
        content_type = content_type.strip().lower()
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationFailed("Invalid file type. Only JPEG, PNG, and PDF files are allowed.")
        return self.file_store.presign_upload(
            user_prefix(user_id), file_name.strip(), content_type, self.ttl_seconds
        )

    def presign_download(self, user_id: UUID, key: str, *, is_admin: bool = False) -> PresignedDownload:
        """
        Non-admins may only read objects under their own prefix.

        Raises:
            NotFound: key outside the caller's prefix
        """
        key = key.strip().lstrip("/")
        if not is_admin and not is_user_key(user_id, key):
            raise NotFound()
        return self.file_store.presign_download(key, self.ttl_seconds)
