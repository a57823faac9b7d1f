"""
auth/tokens.py -- JWT issue and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       the public identity of the user (email as "sub", user_id, username)
       plus "iat" and "exp". Nothing is stored server-side; a token is valid
       until its embedded expiry.

  Verification fails closed. The header is inspected before the signature is
       checked so that "alg": "none" or any algorithm other than HS256 is a
       signature failure, not a fallback. Expiry is checked by this module
       (not by jose) so the boundary is exact: a token is rejected at
       now >= exp, and tests can inject `now`.

  SECRET_KEY: sourced from core.config.get_settings() at call time. Callers may
       pass an explicit secret (tests); an empty secret is always a
       verification failure.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import jwt
from jose.exceptions import JWTClaimsError, JWTError

from auth.errors import TokenError, TokenFailure
from auth.models import Claims, Identity
from core.config import get_settings

_ALGORITHM = "HS256"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _resolve_secret(secret: str | None) -> str:
    return get_settings().secret_key if secret is None else secret


# ---------------------------------------------------------------------------
# Issue
# ---------------------------------------------------------------------------


def issue_token(
    identity: Identity,
    ttl_seconds: int | None = None,
    *,
    secret: str | None = None,
    now: datetime | None = None,
) -> str:
    """Encode a signed JWT for `identity`, valid for `ttl_seconds`.

    Args:
        identity:    Public user fields to embed. Never contains the digest.
        ttl_seconds: Token lifetime. Defaults to Settings.token_expire_seconds
                     (6 hours).
        secret:      HMAC key. Defaults to Settings.secret_key.
        now:         Issue instant. Defaults to the current UTC time.
    """
    duration = ttl_seconds if ttl_seconds is not None else get_settings().token_expire_seconds
    if duration <= 0:
        raise ValueError("ttl_seconds must be positive.")
    key = _resolve_secret(secret)
    if not key:
        raise ValueError("Cannot sign a token without a secret.")

    issued = now or _utcnow()
    payload = {
        "sub": identity.email,
        "user_id": identity.user_id,
        "username": identity.username,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(seconds=duration)).timestamp()),
    }
    return jwt.encode(payload, key, algorithm=_ALGORITHM)


# ---------------------------------------------------------------------------
# Verify
# ---------------------------------------------------------------------------


def verify_token(token: str, *, secret: str | None = None, now: datetime | None = None) -> Claims:
    """Verify signature and expiry; return the embedded Claims.

    Raises TokenError with:
      MALFORMED          -- not a compact JWS, or claims missing / wrongly typed
      INVALID_SIGNATURE  -- bad signature, non-HS256 header, or no secret
      EXPIRED            -- current time is at or past "exp"
    """
    key = _resolve_secret(secret)
    if not key:
        raise TokenError(TokenFailure.INVALID_SIGNATURE, "no signing secret configured")
    if not token or not isinstance(token, str):
        raise TokenError(TokenFailure.MALFORMED, "empty token")

    try:
        header = jwt.get_unverified_header(token)
    except JWTError as exc:
        raise TokenError(TokenFailure.MALFORMED, str(exc)) from exc
    if header.get("alg") != _ALGORITHM:
        raise TokenError(TokenFailure.INVALID_SIGNATURE, f"unexpected algorithm {header.get('alg')!r}")

    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=[_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTClaimsError as exc:
        raise TokenError(TokenFailure.MALFORMED, str(exc)) from exc
    except JWTError as exc:
        raise TokenError(TokenFailure.INVALID_SIGNATURE, str(exc)) from exc

    claims = _claims_from_payload(payload)
    current = int((now or _utcnow()).timestamp())
    if current >= claims.expires_at:
        raise TokenError(TokenFailure.EXPIRED, "token has expired")
    return claims


def _claims_from_payload(payload: dict) -> Claims:
    """Map a decoded payload to Claims, rejecting missing or mistyped fields."""
    expected = {"sub": str, "user_id": int, "username": str, "iat": int, "exp": int}
    for name, kind in expected.items():
        value = payload.get(name)
        # bool is a subclass of int; a boolean id or timestamp is not valid.
        if not isinstance(value, kind) or isinstance(value, bool):
            raise TokenError(TokenFailure.MALFORMED, f"claim {name!r} missing or invalid")
    return Claims(
        user_id=payload["user_id"],
        email=payload["sub"],
        username=payload["username"],
        issued_at=payload["iat"],
        expires_at=payload["exp"],
    )
