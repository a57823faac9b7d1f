"""
auth/errors.py -- Typed failure taxonomy for the auth package.

Two enumerations, two exceptions:

  AuthErrorKind / AuthError -- what a flow or the bearer dependency reports to
      its caller. The API layer maps each kind to exactly one HTTP status in a
      single exception handler; nothing below api/ knows about status codes.

  TokenFailure / TokenError -- why verify_token() rejected a token. The reason
      exists for logging and tests only. The bearer dependency collapses every
      reason into AuthErrorKind.UNAUTHORIZED so clients cannot tell a forged
      token from an expired one.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from enum import Enum


class AuthErrorKind(str, Enum):
    """Client-facing failure categories. The value is the wire error code."""

    INVALID_INPUT = "invalid_input"
    CONFLICT = "conflict"
    VALIDATION_FAILED = "validation_failed"
    UNAUTHORIZED = "unauthorized"
    INTERNAL_FAILURE = "internal_error"


class AuthError(Exception):
    """Raised by registration, authentication and bearer verification."""

    def __init__(self, kind: AuthErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"AuthError({self.kind.name}, {self.message!r})"


class TokenFailure(str, Enum):
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"


class TokenError(Exception):
    """Raised by verify_token() with the reason the token was rejected."""

    def __init__(self, reason: TokenFailure, detail: str = "") -> None:
        super().__init__(detail or reason.value)
        self.reason = reason
