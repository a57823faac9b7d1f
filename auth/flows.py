"""
auth/flows.py -- Registration and password authentication.

Both flows are plain synchronous functions: they block on bcrypt and on the
store. The route layer declares its handlers with `def`, so FastAPI runs each
call on its worker thread pool and one slow signup never stalls other requests.

Every failure leaves as AuthError; store exceptions are translated here so the
API layer only ever sees the typed taxonomy from auth/errors.py.

Security:
  Login returns the same UNAUTHORIZED message for an unknown email and for a
  wrong password, and spends one bcrypt verification in both cases, so neither
  the response body nor its timing reveals which accounts exist.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy.exc import SQLAlchemyError

from auth.errors import AuthError, AuthErrorKind
from auth.models import Identity, User
from auth.passwords import (
    MAX_PASSWORD_BYTES,
    burn_dummy_verification,
    hash_password,
    password_too_long,
    verify_password,
)
from auth.store import DuplicateKeyError, RecordValidationError, UserStore
from auth.tokens import issue_token

logger = logging.getLogger("tokengate.auth")

# local-part@domain where the domain has a dot and a TLD of 2+ characters.
# Always applied with fullmatch(): "$" would accept a trailing newline.
EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]{2,}")

BAD_CREDENTIALS_MESSAGE = "Incorrect Email or Password"


def register(store: UserStore, email: str | None, password: str | None, username: str | None) -> str:
    """Create an account and return a freshly issued token for it.

    Raises AuthError:
      INVALID_INPUT      -- a field is missing/empty, the email is malformed,
                            or the password exceeds bcrypt's input limit
      CONFLICT           -- the email is taken (pre-check or UNIQUE race)
      VALIDATION_FAILED  -- the store rejected the record's shape
      INTERNAL_FAILURE   -- any other store error
    """
    if not email or not password or not username:
        raise AuthError(AuthErrorKind.INVALID_INPUT, "Provide email, password and name.")
    if not EMAIL_RE.fullmatch(email):
        raise AuthError(AuthErrorKind.INVALID_INPUT, "Provide a valid email address.")
    if password_too_long(password):
        raise AuthError(AuthErrorKind.INVALID_INPUT, f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")

    try:
        existing = store.find_by_email(email)
    except SQLAlchemyError as exc:
        logger.exception("User lookup failed during signup")
        raise AuthError(AuthErrorKind.INTERNAL_FAILURE, "Internal Server Error") from exc
    if existing is not None:
        raise AuthError(AuthErrorKind.CONFLICT, "User already exists.")

    hashed = hash_password(password)

    try:
        created = store.create_user(User(email=email, username=username, hashed_password=hashed))
    except DuplicateKeyError as exc:
        # Lost the race against a concurrent signup for the same email.
        logger.info("Signup rejected by unique constraint")
        raise AuthError(AuthErrorKind.CONFLICT, "User already exists.") from exc
    except RecordValidationError as exc:
        logger.info("Signup rejected by store validation: %s", exc)
        raise AuthError(AuthErrorKind.VALIDATION_FAILED, f"Invalid user record: {exc}") from exc
    except SQLAlchemyError as exc:
        logger.exception("User insert failed during signup")
        raise AuthError(AuthErrorKind.INTERNAL_FAILURE, "Internal Server Error") from exc

    logger.info("User registered (id=%s)", created.id)
    return issue_token(Identity.from_user(created))


def authenticate(store: UserStore, email: str | None, password: str | None) -> str:
    """Check email/password and return a freshly issued token.

    Raises AuthError:
      INVALID_INPUT     -- email or password missing/empty
      UNAUTHORIZED      -- unknown email or wrong password (same message)
      INTERNAL_FAILURE  -- the store lookup failed
    """
    if not email or not password:
        raise AuthError(AuthErrorKind.INVALID_INPUT, "Provide email and password.")

    try:
        user = store.find_by_email(email)
    except SQLAlchemyError as exc:
        logger.exception("User lookup failed during login")
        raise AuthError(AuthErrorKind.INTERNAL_FAILURE, "Internal Server Error") from exc

    if user is None:
        # Equalize timing -- do NOT return before running bcrypt.
        burn_dummy_verification(password)
        raise AuthError(AuthErrorKind.UNAUTHORIZED, BAD_CREDENTIALS_MESSAGE)
    if not verify_password(password, user.hashed_password):
        logger.info("Failed login (id=%s)", user.id)
        raise AuthError(AuthErrorKind.UNAUTHORIZED, BAD_CREDENTIALS_MESSAGE)

    logger.info("User logged in (id=%s)", user.id)
    return issue_token(Identity.from_user(user))
