"""
API request and response models for tokengate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request fields are optional on purpose: presence and format checks belong to
the auth flows, which report them as invalid_input with the same messages
whether the field was absent, null or empty.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Claims

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /api/v1/auth/signup."""

    email: Optional[str] = None
    password: Optional[str] = None
    username: Optional[str] = None


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: Optional[str] = None
    password: Optional[str] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AuthTokenResponse(BaseModel):
    """Response for signup and login: the bearer token and nothing else."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    auth_token: str = Field(alias="authToken")


class ClaimsResponse(BaseModel):
    """Response for GET /api/v1/auth/verify -- the verified token's claims."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    email: str
    username: str
    iat: int
    exp: int

    @classmethod
    def from_claims(cls, claims: Claims) -> "ClaimsResponse":
        return cls(
            user_id=claims.user_id,
            email=claims.email,
            username=claims.username,
            iat=claims.issued_at,
            exp=claims.expires_at,
        )


class ErrorResponse(BaseModel):
    """Error envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
