"""
Integration tests for the PostgreSQL repository adapters.

Tests repository operations against a real PostgreSQL database.
Requires PostgreSQL to be running (via docker-compose); skipped otherwise.
"""

import time
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository import (
    PostgresIdentityRepository,
    PostgresProfileRepository,
    PostgresSessionRepository,
    PostgresTokenRepository,
)
from src.domain.exceptions import ContactAlreadyInUse, ProfileAlreadyExists
from src.domain.models import Identity, ProfileQuery
from src.domain.ports import (
    AttendanceType,
    Industry,
    PaymentStatus,
    RegistrationStatus,
    TokenPurpose,
)
from tests.fakes import profile_fields

pytestmark = pytest.mark.integration


@pytest.fixture
def identities(clean_database: ConnectionPool) -> PostgresIdentityRepository:
    return PostgresIdentityRepository(clean_database)


@pytest.fixture
def tokens(clean_database: ConnectionPool) -> PostgresTokenRepository:
    return PostgresTokenRepository(clean_database)


@pytest.fixture
def sessions(clean_database: ConnectionPool) -> PostgresSessionRepository:
    return PostgresSessionRepository(clean_database)


@pytest.fixture
def profiles(clean_database: ConnectionPool) -> PostgresProfileRepository:
    return PostgresProfileRepository(clean_database)


@pytest.fixture
def user(identities: PostgresIdentityRepository) -> Identity:
    return identities.create(email="asha@example.com", name="Asha Rao")


class TestIdentityRepository:
    def test_create_and_lookup(self, identities: PostgresIdentityRepository) -> None:
        created = identities.create(mobile="+919876543210")

        assert created.is_verified is False
        assert created.is_admin is False
        assert identities.get_by_mobile("+919876543210") == created
        assert identities.get_by_id(created.id) == created
        assert identities.get_by_email("nobody@example.com") is None

    def test_duplicate_contact_rejected(self, identities: PostgresIdentityRepository, user: Identity) -> None:
        with pytest.raises(ContactAlreadyInUse):
            identities.create(email="asha@example.com")

    def test_set_password_marks_verified(self, identities: PostgresIdentityRepository, user: Identity) -> None:
        updated = identities.set_password(user.id, "$2b$10$newhash", verified=True)

        assert updated is not None
        assert updated.password_hash == "$2b$10$newhash"
        assert updated.is_verified is True

    def test_update_account_conflict(self, identities: PostgresIdentityRepository, user: Identity) -> None:
        other = identities.create(email="other@example.com")

        with pytest.raises(ContactAlreadyInUse):
            identities.update_account(other.id, {"email": "asha@example.com"})

    def test_update_account_ignores_unknown_columns(
        self, identities: PostgresIdentityRepository, user: Identity
    ) -> None:
        updated = identities.update_account(user.id, {"name": "Asha R", "is_admin": True})

        assert updated is not None
        assert updated.name == "Asha R"
        assert updated.is_admin is False


class TestTokenRepository:
    def test_replace_active_keeps_one_token(self, tokens: PostgresTokenRepository, user: Identity) -> None:
        first = tokens.replace_active(
            user_id=user.id, purpose=TokenPurpose.EMAIL_OTP, secret="111111", ttl_seconds=300,
            contact="asha@example.com",
        )
        tokens.replace_active(
            user_id=user.id, purpose=TokenPurpose.EMAIL_OTP, secret="222222", ttl_seconds=300,
            contact="asha@example.com",
        )

        assert first is not None
        assert first.expires_at > datetime.now(UTC) + timedelta(seconds=250)
        assert tokens.consume(secret="111111", purpose=TokenPurpose.EMAIL_OTP) is None
        assert tokens.consume(secret="222222", purpose=TokenPurpose.EMAIL_OTP) is not None

    def test_replace_active_for_unknown_identity(self, tokens: PostgresTokenRepository) -> None:
        assert tokens.replace_active(
            user_id=uuid4(), purpose=TokenPurpose.MOBILE_OTP, secret="123456", ttl_seconds=300
        ) is None

    def test_consume_once_and_mark_verified(
        self, tokens: PostgresTokenRepository, identities: PostgresIdentityRepository, user: Identity
    ) -> None:
        tokens.replace_active(user_id=user.id, purpose=TokenPurpose.VERIFY_EMAIL, secret="link", ttl_seconds=60)

        consumed = tokens.consume(secret="link", purpose=TokenPurpose.VERIFY_EMAIL, mark_verified=True)

        assert consumed is not None
        assert consumed.user_id == user.id
        assert identities.get_by_id(user.id).is_verified is True
        assert tokens.consume(secret="link", purpose=TokenPurpose.VERIFY_EMAIL) is None

    def test_purpose_and_contact_must_match(self, tokens: PostgresTokenRepository, user: Identity) -> None:
        tokens.replace_active(
            user_id=user.id, purpose=TokenPurpose.EMAIL_OTP, secret="333333", ttl_seconds=60,
            contact="asha@example.com",
        )

        assert tokens.consume(secret="333333", purpose=TokenPurpose.MOBILE_OTP) is None
        assert tokens.consume(secret="333333", purpose=TokenPurpose.EMAIL_OTP, contact="x@example.com") is None
        assert tokens.consume(
            secret="333333", purpose=TokenPurpose.EMAIL_OTP, contact="asha@example.com"
        ) is not None

    def test_expired_token_not_consumable_and_swept(
        self, tokens: PostgresTokenRepository, user: Identity
    ) -> None:
        tokens.replace_active(user_id=user.id, purpose=TokenPurpose.RESET_PASSWORD, secret="old", ttl_seconds=1)
        time.sleep(1.2)

        assert tokens.consume(secret="old", purpose=TokenPurpose.RESET_PASSWORD) is None
        assert tokens.delete_expired() == 1


class TestSessionRepository:
    def test_lifecycle(self, sessions: PostgresSessionRepository, user: Identity) -> None:
        sessions.create(user.id, "token-a", datetime.now(UTC) + timedelta(days=7))
        sessions.create(user.id, "token-b", datetime.now(UTC) + timedelta(days=7))

        assert sessions.get_user_id("token-a") == user.id
        assert sessions.delete("token-a") is True
        assert sessions.get_user_id("token-a") is None
        assert sessions.delete_for_user(user.id) == 1

    def test_expired_session_ignored_and_swept(self, sessions: PostgresSessionRepository, user: Identity) -> None:
        sessions.create(user.id, "stale", datetime.now(UTC) - timedelta(seconds=1))

        assert sessions.get_user_id("stale") is None
        assert sessions.delete_expired() == 1


class TestProfileRepository:
    def test_create_round_trips_fields(self, profiles: PostgresProfileRepository, user: Identity) -> None:
        created = profiles.create(
            user.id, profile_fields(days_attending=["Day 1", "Day 2"], photo_upload_url="https://files.test/p.jpg")
        )

        assert created.industry is Industry.TECHNOLOGY
        assert created.days_attending == ["Day 1", "Day 2"]
        assert created.registration_status is RegistrationStatus.PENDING
        assert created.owner is not None
        assert created.owner.email == "asha@example.com"
        assert profiles.get_by_user(user.id) == created

    def test_one_profile_per_identity(self, profiles: PostgresProfileRepository, user: Identity) -> None:
        profiles.create(user.id, profile_fields())

        with pytest.raises(ProfileAlreadyExists):
            profiles.create(user.id, profile_fields())

    def test_update_and_delete(self, profiles: PostgresProfileRepository, user: Identity) -> None:
        created = profiles.create(user.id, profile_fields())

        updated = profiles.update(created.id, {"designation": "Lead", "attendance_type": AttendanceType.VIRTUAL})
        assert updated is not None
        assert updated.designation == "Lead"
        assert updated.attendance_type is AttendanceType.VIRTUAL
        assert updated.updated_at >= created.updated_at

        deleted = profiles.delete(created.id)
        assert deleted is not None
        assert deleted.id == created.id
        assert profiles.get(created.id) is None
        assert profiles.delete(created.id) is None

    def test_search_filters_and_pages(
        self, profiles: PostgresProfileRepository, identities: PostgresIdentityRepository
    ) -> None:
        for i in range(5):
            owner = identities.create(email=f"user{i}@example.com")
            profiles.create(
                owner.id,
                profile_fields(
                    full_name=f"Attendee {i}",
                    industry=Industry.FINANCE if i % 2 else Industry.TECHNOLOGY,
                ),
            )

        items, total = profiles.search(ProfileQuery(page=1, limit=2, industry=Industry.TECHNOLOGY))
        assert total == 3
        assert len(items) == 2

        items, total = profiles.search(ProfileQuery(search="USER3@"))
        assert total == 1
        assert items[0].full_name == "Attendee 3"

    def test_search_escapes_wildcards(self, profiles: PostgresProfileRepository, user: Identity) -> None:
        profiles.create(user.id, profile_fields())

        assert profiles.search(ProfileQuery(search="%"))[1] == 0
        assert profiles.search(ProfileQuery(search="asha"))[1] == 1

    def test_counts(self, profiles: PostgresProfileRepository, user: Identity) -> None:
        profiles.create(user.id, profile_fields(accommodation_required=True))

        assert profiles.count() == 1
        assert profiles.count(accommodation_required=True) == 1
        assert profiles.count(attendance_type=AttendanceType.VIRTUAL) == 0
        assert profiles.count(registration_status=RegistrationStatus.PENDING) == 1

    def test_registration_transition_is_conditional(
        self, profiles: PostgresProfileRepository, user: Identity
    ) -> None:
        created = profiles.create(user.id, profile_fields())

        moved = profiles.transition_registration(created.id, RegistrationStatus.PENDING, RegistrationStatus.WAITLISTED)
        stale = profiles.transition_registration(created.id, RegistrationStatus.PENDING, RegistrationStatus.CONFIRMED)

        assert moved is not None
        assert moved.registration_status is RegistrationStatus.WAITLISTED
        assert stale is None

    def test_completed_payment_confirms(self, profiles: PostgresProfileRepository, user: Identity) -> None:
        created = profiles.create(user.id, profile_fields())

        paid = profiles.transition_payment(
            created.id, PaymentStatus.PENDING, PaymentStatus.COMPLETED, payment_id="pay_1", amount=Decimal("499.00")
        )

        assert paid is not None
        assert paid.payment_status is PaymentStatus.COMPLETED
        assert paid.registration_status is RegistrationStatus.CONFIRMED
        assert paid.payment_amount == Decimal("499.00")
        assert paid.payment_id == "pay_1"
        assert paid.payment_date is not None
