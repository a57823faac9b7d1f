"""
api/routes/v1/auth.py -- Signup, login and token verification endpoints.

Routes:
  POST /api/v1/auth/signup   -- create account; returns {"authToken": ...}
  POST /api/v1/auth/login    -- password login; returns {"authToken": ...}
  GET  /api/v1/auth/verify   -- echo the claims of a valid bearer token

Handlers stay thin: they unpack the body, call the flow, and wrap the result.
AuthError raised by a flow or by require_claims propagates to the exception
handler in api/main.py, which owns the status-code mapping.

signup and login are declared with `def` (not `async def`) so FastAPI runs them
on its thread pool -- bcrypt and the store block, and must not hold up the
event loop.

Security:
  Cache-Control: no-store on responses that carry a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import AuthTokenResponse, ClaimsResponse, LoginRequest, SignupRequest
from auth.dependencies import require_claims
from auth.flows import authenticate, register
from auth.models import Claims
from auth.store import UserStore

# Auth policy:
# - POST /api/v1/auth/signup:  public
# - POST /api/v1/auth/login:   public
# - GET  /api/v1/auth/verify:  requires a bearer token (require_claims)
router = APIRouter()


def _token_response(token: str) -> JSONResponse:
    resp = JSONResponse(
        status_code=200,
        content=AuthTokenResponse(auth_token=token).model_dump(by_alias=True),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/signup", response_model=AuthTokenResponse)
def signup(request: Request, body: SignupRequest) -> JSONResponse:
    """Register a new account and log it in immediately."""
    user_store: UserStore = request.app.state.user_store
    token = register(user_store, body.email, body.password, body.username)
    return _token_response(token)


@router.post("/auth/login", response_model=AuthTokenResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password.

    Wrong email and wrong password produce the same 401 body.
    """
    user_store: UserStore = request.app.state.user_store
    token = authenticate(user_store, body.email, body.password)
    return _token_response(token)


@router.get("/auth/verify", response_model=ClaimsResponse)
def verify(claims: Claims = Depends(require_claims)) -> ClaimsResponse:
    """Return the identity carried by the caller's token."""
    return ClaimsResponse.from_claims(claims)
