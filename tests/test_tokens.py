"""Unit tests for auth/tokens.py -- JWT issue and verification.

Covers:
  - round trip of identity claims; digest never present in the payload
  - default 6 hour lifetime
  - exact expiry boundary (accepted at exp - 1s, rejected at exp)
  - tampered payload / signature, wrong secret, foreign algorithm, alg=none
  - garbage input and missing claims are MALFORMED
  - verification with no secret fails closed
"""

from __future__ import annotations

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.errors import TokenError, TokenFailure
from auth.models import Identity
from auth.tokens import issue_token, verify_token

SECRET = "unit-test-secret-0123456789abcdef0123456789"
NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
IDENTITY = Identity(user_id=7, email="a@b.com", username="A")


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _reason(token: str, **kwargs) -> TokenFailure:
    kwargs.setdefault("secret", SECRET)
    with pytest.raises(TokenError) as exc_info:
        verify_token(token, **kwargs)
    return exc_info.value.reason


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


def test_round_trip_returns_identity():
    token = issue_token(IDENTITY, 60, secret=SECRET, now=NOW)
    claims = verify_token(token, secret=SECRET, now=NOW)
    assert claims.identity == IDENTITY
    assert claims.issued_at == int(NOW.timestamp())
    assert claims.expires_at == int(NOW.timestamp()) + 60


def test_payload_holds_only_public_claims():
    token = issue_token(IDENTITY, 60, secret=SECRET, now=NOW)
    payload = jwt.get_unverified_claims(token)
    assert set(payload) == {"sub", "user_id", "username", "iat", "exp"}


def test_default_lifetime_is_six_hours():
    token = issue_token(IDENTITY, secret=SECRET, now=NOW)
    claims = verify_token(token, secret=SECRET, now=NOW)
    assert claims.expires_at - claims.issued_at == 6 * 60 * 60


def test_uses_configured_secret_by_default():
    token = issue_token(IDENTITY, 60)
    assert verify_token(token).email == "a@b.com"


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------


def test_accepted_just_before_expiry():
    token = issue_token(IDENTITY, 60, secret=SECRET, now=NOW)
    claims = verify_token(token, secret=SECRET, now=NOW + timedelta(seconds=59))
    assert claims.user_id == 7


def test_rejected_at_expiry():
    token = issue_token(IDENTITY, 60, secret=SECRET, now=NOW)
    assert _reason(token, now=NOW + timedelta(seconds=60)) is TokenFailure.EXPIRED


def test_rejected_long_after_expiry():
    token = issue_token(IDENTITY, 60, secret=SECRET, now=NOW)
    assert _reason(token, now=NOW + timedelta(days=30)) is TokenFailure.EXPIRED


@pytest.mark.parametrize("ttl", [0, -1])
def test_non_positive_ttl_is_refused(ttl):
    with pytest.raises(ValueError):
        issue_token(IDENTITY, ttl, secret=SECRET)


# ---------------------------------------------------------------------------
# Tampering and forgery
# ---------------------------------------------------------------------------


def test_tampered_payload_is_rejected():
    token = issue_token(IDENTITY, 60, secret=SECRET, now=NOW)
    header, _payload, signature = token.split(".")
    forged = _b64(
        {"sub": "admin@b.com", "user_id": 1, "username": "admin", "iat": int(NOW.timestamp()), "exp": 2**31}
    )
    assert _reason(f"{header}.{forged}.{signature}", now=NOW) is TokenFailure.INVALID_SIGNATURE


def test_tampered_signature_is_rejected():
    token = issue_token(IDENTITY, 60, secret=SECRET, now=NOW)
    header, payload, signature = token.split(".")
    flipped = ("A" if signature[0] != "A" else "B") + signature[1:]
    assert _reason(f"{header}.{payload}.{flipped}", now=NOW) is TokenFailure.INVALID_SIGNATURE


def test_wrong_secret_is_rejected():
    token = issue_token(IDENTITY, 60, secret="another-secret-0123456789abcdef0123", now=NOW)
    assert _reason(token, now=NOW) is TokenFailure.INVALID_SIGNATURE


def test_other_algorithm_is_rejected():
    claims = {"sub": "a@b.com", "user_id": 7, "username": "A", "iat": int(NOW.timestamp()), "exp": 2**31}
    token = jwt.encode(claims, SECRET, algorithm="HS512")
    assert _reason(token, now=NOW) is TokenFailure.INVALID_SIGNATURE


def test_alg_none_is_rejected():
    header = _b64({"alg": "none", "typ": "JWT"})
    payload = _b64({"sub": "a@b.com", "user_id": 7, "username": "A", "iat": int(NOW.timestamp()), "exp": 2**31})
    assert _reason(f"{header}.{payload}.", now=NOW) is TokenFailure.INVALID_SIGNATURE


# ---------------------------------------------------------------------------
# Malformed input
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b", "a.b.c", "...."])
def test_garbage_is_malformed(garbage):
    assert _reason(garbage, now=NOW) is TokenFailure.MALFORMED


def test_missing_claims_are_malformed():
    token = jwt.encode({"sub": "a@b.com", "exp": 2**31}, SECRET, algorithm="HS256")
    assert _reason(token, now=NOW) is TokenFailure.MALFORMED


def test_mistyped_user_id_is_malformed():
    claims = {"sub": "a@b.com", "user_id": "7", "username": "A", "iat": int(NOW.timestamp()), "exp": 2**31}
    token = jwt.encode(claims, SECRET, algorithm="HS256")
    assert _reason(token, now=NOW) is TokenFailure.MALFORMED


# ---------------------------------------------------------------------------
# Fail closed
# ---------------------------------------------------------------------------


def test_verification_without_secret_fails():
    token = issue_token(IDENTITY, 60, secret=SECRET, now=NOW)
    assert _reason(token, secret="", now=NOW) is TokenFailure.INVALID_SIGNATURE


def test_issue_without_secret_fails():
    with pytest.raises(ValueError):
        issue_token(IDENTITY, 60, secret="")
