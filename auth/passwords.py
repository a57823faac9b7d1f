"""
auth/passwords.py -- bcrypt password hashing.

bcrypt is the right choice for low-entropy secrets (passwords) because its cost
factor makes brute-force expensive. The digest it returns ($2b$<cost>$<salt+hash>)
embeds both the salt and the cost, so verification needs nothing but the stored
string -- no separate salt column.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

from functools import lru_cache

import bcrypt

from core.config import get_settings

# bcrypt only consumes the first 72 bytes of its input; newer releases refuse
# longer input outright.
MAX_PASSWORD_BYTES = 72


def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain: str, rounds: int | None = None) -> str:
    """Return a bcrypt hash of the given plaintext password.

    A fresh random salt is generated per call, so hashing the same password
    twice yields two different digests. rounds defaults to
    Settings.bcrypt_rounds (10).

    Raises ValueError if the password exceeds 72 UTF-8 bytes. The registration
    flow rejects such passwords before they get here.
    """
    if password_too_long(plain):
        raise ValueError(f"Password exceeds {MAX_PASSWORD_BYTES} bytes.")
    cost = rounds if rounds is not None else get_settings().bcrypt_rounds
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw re-derives the hash with the salt and cost embedded in
    `hashed` and compares in constant time. A malformed digest or an over-long
    password yields False rather than an exception.
    """
    if password_too_long(plain):
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization dummy hash.
# Built once, on first use, with the configured cost. The authentication flow
# verifies against it when the email is unknown, so an unknown email costs the
# same bcrypt work as a wrong password.
@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("tokengate_timing_dummy")


def burn_dummy_verification(plain: str) -> None:
    """Spend one bcrypt verification on a throwaway hash; the result is discarded."""
    verify_password(plain, _dummy_hash())
