"""
auth/dependencies.py -- FastAPI Depends() helper for bearer-token authorization.

require_claims() is the only way a protected handler learns who is calling:

    @router.get("/protected")
    def route(claims: Claims = Depends(require_claims)): ...

The claims arrive as a typed parameter; nothing is stashed on request.state.

Every rejection is AuthErrorKind.UNAUTHORIZED. A missing or malformed header
gets "Authentication required."; every token failure (forged, expired,
garbled) gets the same "Invalid or expired token." so a client probing with
crafted tokens learns nothing about which check failed. The precise reason is
logged at DEBUG.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.errors import AuthError, AuthErrorKind, TokenError
from auth.models import Claims
from auth.tokens import verify_token

logger = logging.getLogger("tokengate.auth")


def extract_bearer_token(header_value: str | None) -> str | None:
    """Return the token from an `Authorization: Bearer <token>` value, else None.

    The scheme is case-insensitive; exactly one non-empty token must follow it.
    """
    if not header_value:
        return None
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def require_claims(request: Request) -> Claims:
    """Require a valid bearer token. Raises AuthError(UNAUTHORIZED) otherwise."""
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise AuthError(AuthErrorKind.UNAUTHORIZED, "Authentication required.")
    try:
        return verify_token(token)
    except TokenError as exc:
        logger.debug("Bearer token rejected: %s", exc.reason.value)
        raise AuthError(AuthErrorKind.UNAUTHORIZED, "Invalid or expired token.") from exc
