"""
tests/conftest.py -- Shared test fixtures for tokengate.

This module provides:
  - user_store: a private in-memory UserStore per test
  - api_client: TestClient over the real FastAPI app with a patched lifespan
    that wires in an isolated in-memory store
  - unique_email: a fresh, well-formed email address per call

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
API client because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

SECRET_KEY and DATABASE_URL must be set before any api/ or auth/ import:
api/main.py loads Settings at import time and refuses to start without them.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any api/auth/core import.
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789abcdef-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
# Minimum bcrypt cost keeps the suite fast; production default is 10.
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import SingletonThreadPool

from api.main import app
from auth.store import UserStore

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _shared_memory_url() -> str:
    """A unique named shared-memory SQLite URL, so tests never see each other's rows."""
    return f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


def _patch_lifespan(user_store: UserStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-created test store into app.state so TestClient routes see an
    isolated test DB rather than the one named by DATABASE_URL.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore(_shared_memory_url(), poolclass=SingletonThreadPool)
    yield store
    store.close()


@pytest.fixture
def api_client(user_store: UserStore) -> Generator[TestClient, None, None]:
    """Yield a TestClient over the real app, backed by the test's user_store.

    raise_server_exceptions=True makes an unexpected exception fail the test
    loudly instead of being hidden behind a 500 response.
    """
    app.router.lifespan_context = _patch_lifespan(user_store)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client


@pytest.fixture
def unique_email() -> Callable[[], str]:
    def _make() -> str:
        return f"user-{uuid.uuid4().hex[:12]}@example.com"

    return _make
