"""
Domain layer - Pure business logic with no web framework imports.

This package contains the core logic for event registration: accounts
and their one-time credentials, sessions, attendee profiles and
uploaded documents. It defines its own port interfaces for
infrastructure abstraction; adapters live in ``src.adapters``.
"""

from .auth import AuthPolicy, AuthService
from .cleanup import FileCleanup
from .exceptions import (
    Conflict,
    DomainError,
    InvalidOrExpiredSecret,
    NotFound,
    Unauthorized,
    UpstreamFailure,
    ValidationFailed,
)
from .profiles import ProfileService
from .sessions import SessionManager
from .tokens import TokenIssuer, TokenSweeper, TokenVerifier
from .uploads import UploadService

__all__ = [
    "AuthPolicy",
    "AuthService",
    "Conflict",
    "DomainError",
    "FileCleanup",
    "InvalidOrExpiredSecret",
    "NotFound",
    "ProfileService",
    "SessionManager",
    "TokenIssuer",
    "TokenSweeper",
    "TokenVerifier",
    "Unauthorized",
    "UploadService",
    "UpstreamFailure",
    "ValidationFailed",
]
