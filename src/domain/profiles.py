"""
Attendee profile domain service.

Each identity owns at most one attendee profile. Uploaded documents live
in the file store and the profile row references them by URL, so every
write has to keep the two in step:

- create: upload, then insert; if anything fails after an upload, the
  fresh uploads are discarded.
- update: upload replacements, then persist; old files are discarded
  only once the new URLs are stored.
- delete: the row deletion is authoritative; files are discarded after.

Discards go through FileCleanup and are best effort. An orphaned file
is an accepted outcome; a profile pointing at a deleted file is not.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID

from .cleanup import FileCleanup
from .exceptions import (
    InvalidStatusTransition,
    ProfileAlreadyExists,
    ProfileNotFound,
    ValidationFailed,
)
from .models import (
    PROFILE_FIELDS,
    AttendeeProfile,
    ProfilePage,
    ProfileQuery,
    ProfileStatistics,
    UploadedFile,
)
from .ports import (
    PAYMENT_TRANSITIONS,
    REGISTRATION_TRANSITIONS,
    AttendanceType,
    FileSlot,
    FileStore,
    PaymentStatus,
    ProfileRepository,
    RegistrationStatus,
)
from .uploads import is_user_key, user_prefix

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

# Statistic name -> count() filter
_STATISTIC_FILTERS: dict[str, dict[str, Any]] = {
    "total": {},
    "confirmed": {"registration_status": RegistrationStatus.CONFIRMED},
    "pending": {"registration_status": RegistrationStatus.PENDING},
    "cancelled": {"registration_status": RegistrationStatus.CANCELLED},
    "waitlisted": {"registration_status": RegistrationStatus.WAITLISTED},
    "in_person": {"attendance_type": AttendanceType.IN_PERSON},
    "virtual": {"attendance_type": AttendanceType.VIRTUAL},
    "accommodation_required": {"accommodation_required": True},
}


@dataclass
class ProfileService:
    repository: ProfileRepository
    file_store: FileStore
    cleanup: FileCleanup

    def create(
        self,
        user_id: UUID,
        fields: Mapping[str, Any],
        files: Mapping[FileSlot, UploadedFile] | None = None,
    ) -> AttendeeProfile:
        """
        Submit the registration form for an identity.

        Raises:
            ProfileAlreadyExists: identity already has a profile
            ValidationFailed: a file URL is not one of the caller's uploads
            StorageFailed: a file upload failed
        """
        if self.repository.get_by_user(user_id) is not None:
            raise ProfileAlreadyExists(str(user_id))

        values = self._clean(user_id, fields)
        uploaded: list[str] = []
        try:
            self._upload_all(user_id, files, values, uploaded)
            profile = self.repository.create(user_id, values)
        except Exception:
            self.cleanup.discard(uploaded, "profile creation failed")
            raise

        logger.info("Created attendee profile %s for identity %s", profile.id, user_id)
        return profile

    def get_mine(self, user_id: UUID) -> AttendeeProfile:
        profile = self.repository.get_by_user(user_id)
        if profile is None:
            raise ProfileNotFound()
        return profile

    def get(self, profile_id: UUID) -> AttendeeProfile:
        profile = self.repository.get(profile_id)
        if profile is None:
            raise ProfileNotFound()
        return profile

    def update_mine(
        self,
        user_id: UUID,
        fields: Mapping[str, Any],
        files: Mapping[FileSlot, UploadedFile] | None = None,
    ) -> AttendeeProfile:
        """
        Apply a partial update to the identity's own profile.

        Raises:
            ProfileNotFound: identity has no profile
            ValidationFailed: a file URL is not one of the caller's uploads
            StorageFailed: a file upload failed
        """
        existing = self.get_mine(user_id)
        values = self._clean(user_id, fields, existing)
        uploaded: list[str] = []
        try:
            self._upload_all(user_id, files, values, uploaded)
            profile = self.repository.update(existing.id, values) if values else existing
        except Exception:
            self.cleanup.discard(uploaded, "profile update failed")
            raise

        if profile is None:
            # Deleted between the read and the write
            self.cleanup.discard(uploaded, "profile vanished during update")
            raise ProfileNotFound()

        replaced = [
            existing.file_url(slot)
            for slot in FileSlot
            if slot.column in values and values[slot.column] != existing.file_url(slot)
        ]
        self.cleanup.discard(replaced, "replaced by profile update")
        return profile

    def delete(self, profile_id: UUID, delete_files: bool = True) -> AttendeeProfile:
        profile = self.repository.delete(profile_id)
        if profile is None:
            raise ProfileNotFound()

        logger.info("Deleted attendee profile %s", profile_id)
        if delete_files:
            self.cleanup.discard(profile.file_urls, "profile deleted")
        return profile

    def list(self, query: ProfileQuery) -> ProfilePage:
        if query.page < 1:
            raise ValidationFailed("page must be at least 1")
        if not 1 <= query.limit <= MAX_PAGE_SIZE:
            raise ValidationFailed(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        items, total = self.repository.search(query)
        return ProfilePage(items=items, page=query.page, limit=query.limit, total=total)

    def statistics(self) -> ProfileStatistics:
        """
        Independent counts run concurrently.

        Counts are point-in-time and not mutually consistent under
        concurrent writes.
        """
        with ThreadPoolExecutor(
            max_workers=len(_STATISTIC_FILTERS), thread_name_prefix="profile-stats"
        ) as executor:
            futures = {
                name: executor.submit(self.repository.count, **filters)
                for name, filters in _STATISTIC_FILTERS.items()
            }
            counts = {name: future.result() for name, future in futures.items()}
        return ProfileStatistics(**counts)

    def update_registration_status(
        self, profile_id: UUID, status: RegistrationStatus
    ) -> AttendeeProfile:
        """
        Raises:
            ProfileNotFound: no such profile
            InvalidStatusTransition: not allowed from the current status
        """
        current = self.get(profile_id).registration_status
        if status not in REGISTRATION_TRANSITIONS[current]:
            raise InvalidStatusTransition(f"{current.value} -> {status.value}")

        profile = self.repository.transition_registration(profile_id, current, status)
        if profile is None:
            raise InvalidStatusTransition("registration status changed concurrently")
        logger.info("Registration %s: %s -> %s", profile_id, current.value, status.value)
        return profile

    def update_payment(
        self,
        profile_id: UUID,
        status: PaymentStatus,
        *,
        payment_id: str | None = None,
        amount: Decimal | None = None,
    ) -> AttendeeProfile:
        """
        Record a payment status change. COMPLETED confirms the registration.

        Raises:
            ProfileNotFound: no such profile
            InvalidStatusTransition: not allowed from the current status
        """
        current = self.get(profile_id).payment_status
        if status not in PAYMENT_TRANSITIONS[current]:
            raise InvalidStatusTransition(f"{current.value} -> {status.value}")

        profile = self.repository.transition_payment(
            profile_id, current, status, payment_id=payment_id, amount=amount
        )
        if profile is None:
            raise InvalidStatusTransition("payment status changed concurrently")
        logger.info("Payment %s: %s -> %s", profile_id, current.value, status.value)
        return profile

    def _clean(
        self,
        user_id: UUID,
        fields: Mapping[str, Any],
        existing: AttendeeProfile | None = None,
    ) -> dict[str, Any]:
        """
        Keep profile fields only and check caller-supplied file URLs.

        A file URL must name an object under the caller's own prefix, or
        repeat the URL the profile already holds for that slot.
        """
        values = {name: value for name, value in fields.items() if name in PROFILE_FIELDS}
        for slot in FileSlot:
            url = values.get(slot.column)
            if not url or (existing is not None and url == existing.file_url(slot)):
                continue
            key = self.file_store.key_from_url(url)
            if key is None or not is_user_key(user_id, key):
                raise ValidationFailed(f"{slot.column} must reference a file you uploaded")
        return values

    def _upload_all(
        self,
        user_id: UUID,
        files: Mapping[FileSlot, UploadedFile] | None,
        values: dict[str, Any],
        uploaded: list[str],
    ) -> None:
        for slot, upload in (files or {}).items():
            folder = f"{user_prefix(user_id)}/{slot.folder}"
            url = self.file_store.upload(upload.data, upload.content_type, folder, upload.file_name)
            uploaded.append(url)
            values[slot.column] = url
