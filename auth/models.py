"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic beyond mapping). Stores,
flows and routes do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    email is the login identifier and is unique across all records
    (case-sensitive, exactly as submitted). hashed_password is the bcrypt
    digest -- it never leaves the auth package: Identity and Claims are the
    only user-derived shapes that reach a response.

    id and created_at are assigned by the store on insert.
    """

    email: str
    username: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Identity:
    """The public subset of a User that is embedded in a token."""

    user_id: int
    email: str
    username: str

    @classmethod
    def from_user(cls, user: User) -> Identity:
        if user.id is None:
            raise ValueError("Cannot build an identity for an unsaved user.")
        return cls(user_id=user.id, email=user.email, username=user.username)


@dataclass(frozen=True)
class Claims:
    """Identity recovered from a verified token, plus its time bounds.

    issued_at / expires_at are integer UNIX timestamps (seconds, UTC), the
    JWT "iat" and "exp" claims.
    """

    user_id: int
    email: str
    username: str
    issued_at: int
    expires_at: int

    @property
    def identity(self) -> Identity:
        return Identity(user_id=self.user_id, email=self.email, username=self.username)
