"""
Password hashing - bcrypt helpers.

verify_password() always runs a bcrypt comparison, against a dummy hash
when the account has no password, so response time does not reveal
whether an account exists.
"""

import bcrypt

# Hash of "dummy_password_for_timing_safety" with cost factor 10.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


def hash_password(password: str, rounds: int = 10) -> str:
    """Hash password using bcrypt with cost factor >= 10."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=max(rounds, 10))).decode()


def verify_password(password: str, password_hash: str | None) -> bool:
    stored_hash = password_hash or _DUMMY_BCRYPT_HASH
    matches = bcrypt.checkpw(password.encode(), stored_hash.encode())
    return matches and password_hash is not None
