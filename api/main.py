"""
api/main.py -- FastAPI application entry point for tokengate.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. log_requests   -- one log line per request with status and latency
  2. CORSMiddleware -- adds CORS headers for the configured front-end origins

Settings are loaded when this module is imported (CORS origins need them),
so a missing SECRET_KEY or DATABASE_URL aborts startup before any request is
served. Lifespan opens the user store; shutdown disposes the store's engine.

Error mapping:
  Every AuthError is turned into an HTTP response by auth_error_handler,
  using the single _STATUS_BY_KIND table below. Routes and flows never pick
  status codes themselves.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.errors import AuthError, AuthErrorKind
from auth.store import UserStore
from core.config import get_settings

APP_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("tokengate.api")

# ---------------------------------------------------------------------------
# Error kind -> HTTP status (the only place this mapping lives)
# ---------------------------------------------------------------------------

_STATUS_BY_KIND: dict[AuthErrorKind, int] = {
    AuthErrorKind.INVALID_INPUT: 400,
    AuthErrorKind.CONFLICT: 400,
    AuthErrorKind.VALIDATION_FAILED: 422,
    AuthErrorKind.UNAUTHORIZED: 401,
    AuthErrorKind.INTERNAL_FAILURE: 500,
}


def status_for(kind: AuthErrorKind) -> int:
    return _STATUS_BY_KIND[kind]


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    The user store is opened against DATABASE_URL; an unreachable or invalid
    URL fails here, before the server accepts a single request.
    """
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info("tokengate API starting up")
    app.state.user_store = UserStore(settings.database_url)
    logger.info("User store initialized")

    yield

    app.state.user_store.close()
    logger.info("tokengate API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="tokengate API",
    description="Account registration, password login and bearer-token verification.",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origin_list,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map a typed auth failure to its HTTP status and error envelope."""
    response = JSONResponse(
        status_code=status_for(exc.kind),
        content=ErrorResponse(code=exc.kind.value, message=exc.message).model_dump(),
    )
    if exc.kind is AuthErrorKind.UNAUTHORIZED:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the request body cannot be parsed into the expected shape."""
    return JSONResponse(
        status_code=status_for(AuthErrorKind.INVALID_INPUT),
        content=ErrorResponse(
            code=AuthErrorKind.INVALID_INPUT.value,
            message="Request validation failed.",
            detail=str(exc.errors()),
        ).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return the error envelope for FastAPI/Starlette HTTP exceptions (404, 405, ...)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(code=f"http_{exc.status_code}", message=str(exc.detail)).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged only, never written to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            code=AuthErrorKind.INTERNAL_FAILURE.value,
            message="An unexpected error occurred.",
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and database reachability."""
    user_store: UserStore = request.app.state.user_store
    database = "ok" if user_store.ping() else "error"
    return HealthResponse(version=APP_VERSION, components={"app": "ok", "database": database})
