"""Repository adapters - Database implementations."""

from .postgres import (
    PostgresIdentityRepository,
    PostgresSessionRepository,
    PostgresTokenRepository,
    run_migrations,
)
from .profiles import PostgresProfileRepository

__all__ = [
    "PostgresIdentityRepository",
    "PostgresProfileRepository",
    "PostgresSessionRepository",
    "PostgresTokenRepository",
    "run_migrations",
]
