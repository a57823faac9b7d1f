"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. Flow and route code
never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) is enforced by the database. The registration flow checks for
  an existing account first, but two concurrent signups can both pass that
  check -- the constraint is what actually guarantees uniqueness, and
  create_user() reports its violation as DuplicateKeyError.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import Pool

from auth.models import User

logger = logging.getLogger("tokengate.store")

EMAIL_MAX_LENGTH = 255
USERNAME_MAX_LENGTH = 100

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(EMAIL_MAX_LENGTH), nullable=False, unique=True),
    Column("username", String(USERNAME_MAX_LENGTH), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class DuplicateKeyError(Exception):
    """A user with the same email already exists (UNIQUE constraint)."""


class RecordValidationError(Exception):
    """The record does not fit the users schema (empty, too long, NOT NULL)."""


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# The only UNIQUE constraint on users is the email column, so any unique
# violation on insert means the email is taken.
_SQLITE_UNIQUE = "SQLITE_CONSTRAINT_UNIQUE"
_PG_UNIQUE_VIOLATION = "23505"


def _is_unique_violation(exc: IntegrityError) -> bool:
    """True if the driver reports a UNIQUE-constraint violation.

    Decided by driver error code (sqlite3.sqlite_errorname on Python 3.11+,
    psycopg2 pgcode / psycopg sqlstate), never by searching the message for
    words that a future constraint name might contain. When sqlite3 reports
    no error name, or only the base SQLITE_CONSTRAINT code, the exact
    "UNIQUE constraint failed: users.email" prefix is matched instead.
    """
    orig = exc.orig
    sqlite_name = getattr(orig, "sqlite_errorname", None)
    if sqlite_name == _SQLITE_UNIQUE:
        return True
    if sqlite_name is not None and sqlite_name != "SQLITE_CONSTRAINT":
        return False
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code is not None:
        return code == _PG_UNIQUE_VIOLATION
    return str(orig).startswith("UNIQUE constraint failed: users.email")


def _validate_shape(user: User) -> None:
    """Reject records the schema would not hold, before touching the DB."""
    if not user.email or len(user.email) > EMAIL_MAX_LENGTH:
        raise RecordValidationError(f"email must be 1-{EMAIL_MAX_LENGTH} characters")
    if not user.username or len(user.username) > USERNAME_MAX_LENGTH:
        raise RecordValidationError(f"username must be 1-{USERNAME_MAX_LENGTH} characters")
    if not user.hashed_password:
        raise RecordValidationError("hashed_password is required")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///tokengate.db")
        user = store.create_user(User(email="a@b.com", username="A", hashed_password=hash_password("p1")))
        found = store.find_by_email("a@b.com")
        store.close()
    """

    def __init__(self, db_url: str, poolclass: type[Pool] | None = None) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        engine_kwargs: dict = {"connect_args": connect_args}
        # In-memory SQLite URLs pass SingletonThreadPool (or StaticPool) here.
        if poolclass is not None:
            engine_kwargs["poolclass"] = poolclass
        self.engine: Engine = create_engine(db_url, **engine_kwargs)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def create_user(self, user: User) -> User:
        """Insert a new user and return the stored record (with id and created_at).

        Raises:
            RecordValidationError: the record does not fit the schema.
            DuplicateKeyError:     the email is already taken.
            SQLAlchemyError:       any other database failure, unchanged.
        """
        _validate_shape(user)
        created_at = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        email=user.email,
                        username=user.username,
                        hashed_password=user.hashed_password,
                        created_at=created_at,
                    )
                )
                conn.commit()
                user_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                raise DuplicateKeyError(user.email) from exc
            raise RecordValidationError(str(exc.orig)) from exc
        logger.debug("Inserted user id=%s", user_id)
        return User(
            id=user_id,
            email=user.email,
            username=user.username,
            hashed_password=user.hashed_password,
            created_at=created_at,
        )

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Database ping failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        username=row.username,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
    )
