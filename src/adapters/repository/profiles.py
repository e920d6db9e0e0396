"""
PostgreSQL attendee profile repository - Implements ProfileRepository protocol.

Profiles are read joined with their owning account so listings can show
and search the account email and mobile alongside the form fields.
"""

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any
from uuid import UUID

from psycopg import errors, sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.exceptions import ProfileAlreadyExists
from src.domain.models import PROFILE_FIELDS, AttendeeProfile, Identity, ProfileQuery
from src.domain.ports import (
    AttendanceType,
    Industry,
    PaymentStatus,
    RegistrationStatus,
)

logger = logging.getLogger(__name__)

_SELECT = """
    SELECT a.*,
           u.email AS owner_email,
           u.mobile AS owner_mobile,
           u.name AS owner_name,
           u.is_verified AS owner_is_verified
    FROM attendees a
    JOIN users u ON u.id = a.user_id
"""


def _to_db(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_to_db(item) for item in value]
    return value


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_profile(row: dict[str, Any]) -> AttendeeProfile:
    owner = None
    if "owner_email" in row:
        owner = Identity(
            id=row["user_id"],
            email=row.pop("owner_email"),
            mobile=row.pop("owner_mobile"),
            name=row.pop("owner_name"),
            is_verified=row.pop("owner_is_verified"),
        )
    row["industry"] = Industry(row["industry"])
    row["attendance_type"] = AttendanceType(row["attendance_type"])
    row["registration_status"] = RegistrationStatus(row["registration_status"])
    row["payment_status"] = PaymentStatus(row["payment_status"])
    return AttendeeProfile(**row, owner=owner)


class PostgresProfileRepository:
    """
    Implements ProfileRepository protocol via psycopg3.

    Column names in dynamic statements come only from PROFILE_FIELDS and
    are quoted with psycopg.sql.Identifier; values are always parameters.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def get(self, profile_id: UUID) -> AttendeeProfile | None:
        return self._select_one("a.id = %s", profile_id)

    def get_by_user(self, user_id: UUID) -> AttendeeProfile | None:
        return self._select_one("a.user_id = %s", user_id)

    def create(self, user_id: UUID, fields: Mapping[str, Any]) -> AttendeeProfile:
        """
        Insert a profile. The UNIQUE constraint on user_id rejects a
        second profile even when two creates race.
        """
        columns = ["user_id"] + [name for name in PROFILE_FIELDS if name in fields]
        values = [user_id] + [_to_db(fields[name]) for name in columns[1:]]
        insert = sql.SQL("INSERT INTO attendees ({}) VALUES ({}) RETURNING id").format(
            sql.SQL(", ").join(map(sql.Identifier, columns)),
            sql.SQL(", ").join(sql.Placeholder() * len(columns)),
        )

        try:
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(insert, values)
                profile_id = cursor.fetchone()["id"]
                profile = self._fetch(cursor, profile_id)
                conn.commit()
        except errors.UniqueViolation:
            raise ProfileAlreadyExists(str(user_id)) from None
        return profile

    def update(self, profile_id: UUID, fields: Mapping[str, Any]) -> AttendeeProfile | None:
        columns = [name for name in PROFILE_FIELDS if name in fields]
        if not columns:
            return self.get(profile_id)

        update = sql.SQL("UPDATE attendees SET {}, updated_at = NOW() WHERE id = %s RETURNING id").format(
            sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(name)) for name in columns
            )
        )
        values = [_to_db(fields[name]) for name in columns] + [profile_id]

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(update, values)
            if cursor.fetchone() is None:
                conn.rollback()
                return None
            profile = self._fetch(cursor, profile_id)
            conn.commit()
        return profile

    def delete(self, profile_id: UUID) -> AttendeeProfile | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute("DELETE FROM attendees WHERE id = %s RETURNING *", (profile_id,))
            row = cursor.fetchone()
            conn.commit()
        return _row_to_profile(row) if row else None

    def search(self, query: ProfileQuery) -> tuple[list[AttendeeProfile], int]:
        where, params = self._filters(query)

        count_sql = f"SELECT COUNT(*) AS total FROM attendees a JOIN users u ON u.id = a.user_id {where}"
        page_sql = f"{_SELECT} {where} ORDER BY a.created_at DESC, a.id DESC LIMIT %s OFFSET %s"

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(count_sql, params)
            total = cursor.fetchone()["total"]
            cursor.execute(page_sql, params + [query.limit, query.offset])
            rows = cursor.fetchall()
        return [_row_to_profile(row) for row in rows], total

    def count(
        self,
        *,
        registration_status: RegistrationStatus | None = None,
        attendance_type: AttendanceType | None = None,
        accommodation_required: bool | None = None,
    ) -> int:
        clauses: list[str] = []
        params: list[Any] = []
        if registration_status is not None:
            clauses.append("registration_status = %s")
            params.append(registration_status.value)
        if attendance_type is not None:
            clauses.append("attendance_type = %s")
            params.append(attendance_type.value)
        if accommodation_required is not None:
            clauses.append("accommodation_required = %s")
            params.append(accommodation_required)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) FROM attendees {where}", params)
            return cursor.fetchone()[0]

    def transition_registration(
        self,
        profile_id: UUID,
        expected: RegistrationStatus,
        target: RegistrationStatus,
    ) -> AttendeeProfile | None:
        transition_sql = """
            UPDATE attendees
            SET registration_status = %s, updated_at = NOW()
            WHERE id = %s AND registration_status = %s
            RETURNING id
        """
        return self._transition(transition_sql, (target.value, profile_id, expected.value), profile_id)

    def transition_payment(
        self,
        profile_id: UUID,
        expected: PaymentStatus,
        target: PaymentStatus,
        *,
        payment_id: str | None = None,
        amount: Any = None,
    ) -> AttendeeProfile | None:
        # COMPLETED stamps the payment date and confirms the registration
        transition_sql = """
            UPDATE attendees
            SET payment_status = %(target)s,
                payment_id = COALESCE(%(payment_id)s, payment_id),
                payment_amount = COALESCE(%(amount)s, payment_amount),
                payment_date = CASE WHEN %(completed)s THEN NOW() ELSE payment_date END,
                registration_status = CASE WHEN %(completed)s THEN 'CONFIRMED' ELSE registration_status END,
                updated_at = NOW()
            WHERE id = %(id)s AND payment_status = %(expected)s
            RETURNING id
        """
        params = {
            "target": target.value,
            "payment_id": payment_id,
            "amount": amount,
            "completed": target is PaymentStatus.COMPLETED,
            "id": profile_id,
            "expected": expected.value,
        }
        return self._transition(transition_sql, params, profile_id)

    def _transition(self, transition_sql: str, params: Any, profile_id: UUID) -> AttendeeProfile | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(transition_sql, params)
            if cursor.fetchone() is None:
                conn.rollback()
                return None
            profile = self._fetch(cursor, profile_id)
            conn.commit()
        return profile

    def _select_one(self, condition: str, value: Any) -> AttendeeProfile | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(f"{_SELECT} WHERE {condition}", (value,))
            row = cursor.fetchone()
        return _row_to_profile(row) if row else None

    @staticmethod
    def _fetch(cursor: Any, profile_id: UUID) -> AttendeeProfile:
        cursor.execute(f"{_SELECT} WHERE a.id = %s", (profile_id,))
        return _row_to_profile(cursor.fetchone())

    @staticmethod
    def _filters(query: ProfileQuery) -> tuple[str, list[Any]]:
        """AND across filters, OR across the free-text search columns."""
        clauses: list[str] = []
        params: list[Any] = []

        if query.industry is not None:
            clauses.append("a.industry = %s")
            params.append(query.industry.value)
        if query.attendance_type is not None:
            clauses.append("a.attendance_type = %s")
            params.append(query.attendance_type.value)
        if query.registration_status is not None:
            clauses.append("a.registration_status = %s")
            params.append(query.registration_status.value)
        if query.from_date is not None:
            clauses.append("a.created_at >= %s")
            params.append(query.from_date)
        if query.to_date is not None:
            clauses.append("a.created_at <= %s")
            params.append(query.to_date)
        if query.search:
            pattern = f"%{_escape_like(query.search.strip())}%"
            clauses.append(
                "(a.full_name ILIKE %s OR a.mobile_number LIKE %s"
                " OR u.email ILIKE %s OR u.mobile LIKE %s)"
            )
            params.extend([pattern] * 4)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params
