"""
PostgreSQL repository adapters - identities, credential tokens and sessions.

This module provides the PostgreSQL implementation of the domain's
repository ports using psycopg3 with raw SQL.

Concurrency Design - Single-Use Tokens:
--------------------------------------
1. **Issuance** locks the owning users row (SELECT ... FOR UPDATE) before
   deleting the previous unconsumed tokens and inserting the new one, so
   two concurrent issuances for the same identity cannot both leave an
   active token behind.

2. **Consumption** is one UPDATE whose target row is chosen by a
   sub-select with FOR UPDATE SKIP LOCKED and re-checked with
   ``NOT consumed``. A concurrent verifier either skips the locked row or
   sees it already consumed; exactly one caller gets a row back from
   RETURNING.

3. **Expiry** is always evaluated with database time (NOW()).
"""

import logging
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from psycopg import errors
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.exceptions import ContactAlreadyInUse
from src.domain.models import ConsumedToken, Identity, IssuedToken
from src.domain.ports import TokenPurpose

logger = logging.getLogger(__name__)

_IDENTITY_COLUMNS = "id, email, mobile, name, password_hash, is_verified, is_admin, created_at, updated_at"

# Columns update_account() may touch
_ACCOUNT_COLUMNS = ("name", "email", "mobile", "is_verified")


class PostgresIdentityRepository:
    """
    Implements IdentityRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def get_by_id(self, user_id: UUID) -> Identity | None:
        return self._fetch_one(f"SELECT {_IDENTITY_COLUMNS} FROM users WHERE id = %s", (user_id,))

    def get_by_email(self, email: str) -> Identity | None:
        return self._fetch_one(f"SELECT {_IDENTITY_COLUMNS} FROM users WHERE email = %s", (email,))

    def get_by_mobile(self, mobile: str) -> Identity | None:
        return self._fetch_one(f"SELECT {_IDENTITY_COLUMNS} FROM users WHERE mobile = %s", (mobile,))

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

        The UNIQUE constraints on email and mobile settle concurrent
        signups for the same contact: the loser gets ContactAlreadyInUse.
        """
        sql = f"""
            INSERT INTO users (email, mobile, name, password_hash)
            VALUES (%s, %s, %s, %s)
            RETURNING {_IDENTITY_COLUMNS}
        """
        try:
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, (email, mobile, name, password_hash))
                row = cursor.fetchone()
                conn.commit()
        except errors.UniqueViolation:
            raise ContactAlreadyInUse(email or mobile) from None
        return Identity(**row)

    def set_password(self, user_id: UUID, password_hash: str, *, verified: bool) -> Identity | None:
        sql = f"""
            UPDATE users
            SET password_hash = %s, is_verified = %s, updated_at = NOW()
            WHERE id = %s
            RETURNING {_IDENTITY_COLUMNS}
        """
        return self._fetch_one(sql, (password_hash, verified, user_id), commit=True)

    def update_account(self, user_id: UUID, changes: Mapping[str, Any]) -> Identity | None:
        columns = [column for column in _ACCOUNT_COLUMNS if column in changes]
        if not columns:
            return self.get_by_id(user_id)

        assignments = ", ".join(f"{column} = %s" for column in columns)
        sql = f"""
            UPDATE users
            SET {assignments}, updated_at = NOW()
            WHERE id = %s
            RETURNING {_IDENTITY_COLUMNS}
        """
        params = [changes[column] for column in columns] + [user_id]
        try:
            return self._fetch_one(sql, params, commit=True)
        except errors.UniqueViolation:
            raise ContactAlreadyInUse() from None

    def _fetch_one(self, sql: str, params: Any, commit: bool = False) -> Identity | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
            if commit:
                conn.commit()
        return Identity(**row) if row else None


class PostgresTokenRepository:
    """Implements TokenRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

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
        Replace the active token for (identity or contact, purpose).

        Returns:
            The stored token, or None if the identity does not exist
        """
        lock_sql = "SELECT id FROM users WHERE id = %s FOR UPDATE"

        # Scope covers both the identity and the contact the code is bound to
        delete_sql = """
            DELETE FROM credential_tokens
            WHERE purpose = %s
              AND NOT consumed
              AND (user_id = %s OR (contact IS NOT NULL AND contact = %s))
        """

        insert_sql = """
            INSERT INTO credential_tokens (user_id, contact, secret, purpose, expires_at)
            VALUES (%s, %s, %s, %s, NOW() + %s * INTERVAL '1 second')
            RETURNING id, user_id, contact, secret, purpose, created_at, expires_at
        """

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(lock_sql, (user_id,))
            if cursor.fetchone() is None:
                conn.rollback()
                return None

            cursor.execute(delete_sql, (purpose.value, user_id, contact))
            replaced = cursor.rowcount
            cursor.execute(insert_sql, (user_id, contact, secret, purpose.value, ttl_seconds))
            row = cursor.fetchone()
            conn.commit()

        if replaced:
            logger.debug("Invalidated %d earlier %s token(s) for %s", replaced, purpose.value, user_id)
        return IssuedToken(
            id=row["id"],
            user_id=row["user_id"],
            purpose=TokenPurpose(row["purpose"]),
            secret=row["secret"],
            expires_at=row["expires_at"],
            contact=row["contact"],
            created_at=row["created_at"],
        )

    def consume(
        self,
        *,
        secret: str,
        purpose: TokenPurpose,
        contact: str | None = None,
        mark_verified: bool = False,
    ) -> ConsumedToken | None:
        """
        Atomically consume one matching token.

        The sub-select picks at most one live candidate and locks it;
        concurrent callers skip the locked row. The outer ``NOT consumed``
        re-check makes the update conditional on the row still being
        unused, so RETURNING yields a row for exactly one caller.
        """
        consume_sql = """
            UPDATE credential_tokens
            SET consumed = TRUE, consumed_at = NOW()
            WHERE id = (
                SELECT id FROM credential_tokens
                WHERE secret = %(secret)s
                  AND purpose = %(purpose)s
                  AND NOT consumed
                  AND expires_at > NOW()
                  AND (%(contact)s::text IS NULL OR contact = %(contact)s)
                ORDER BY created_at DESC
                LIMIT 1
                FOR UPDATE SKIP LOCKED
            )
            AND NOT consumed
            RETURNING id, user_id, purpose
        """

        verify_sql = "UPDATE users SET is_verified = TRUE, updated_at = NOW() WHERE id = %s"

        params = {"secret": secret, "purpose": purpose.value, "contact": contact}
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(consume_sql, params)
            row = cursor.fetchone()
            if row is None:
                conn.rollback()
                return None

            if mark_verified:
                cursor.execute(verify_sql, (row["user_id"],))
            conn.commit()

        return ConsumedToken(id=row["id"], user_id=row["user_id"], purpose=TokenPurpose(row["purpose"]))

    def delete_expired(self) -> int:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM credential_tokens WHERE expires_at < NOW()")
            conn.commit()
            return cursor.rowcount


class PostgresSessionRepository:
    """Implements SessionRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def create(self, user_id: UUID, token: str, expires_at: datetime) -> None:
        with self._pool.connection() as conn:
            conn.execute(
                "INSERT INTO sessions (user_id, token, expires_at) VALUES (%s, %s, %s)",
                (user_id, token, expires_at),
            )
            conn.commit()

    def get_user_id(self, token: str) -> UUID | None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "SELECT user_id FROM sessions WHERE token = %s AND expires_at > NOW()",
                (token,),
            )
            row = cursor.fetchone()
        return row[0] if row else None

    def delete(self, token: str) -> bool:
        return self._delete("DELETE FROM sessions WHERE token = %s", (token,)) > 0

    def delete_for_user(self, user_id: UUID) -> int:
        return self._delete("DELETE FROM sessions WHERE user_id = %s", (user_id,))

    def delete_expired(self) -> int:
        return self._delete("DELETE FROM sessions WHERE expires_at < NOW()", ())

    def _delete(self, sql: str, params: Any) -> int:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            conn.commit()
            return cursor.rowcount


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)
                conn.commit()

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
