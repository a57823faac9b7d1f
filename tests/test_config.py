"""Unit tests for core/config.py -- required settings and defaults.

Settings is built directly with _env_file=None so a developer's .env file
cannot leak into the assertions. Keyword arguments take priority over the
environment variables conftest.py sets.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings

GOOD_SECRET = "s" * 32


def test_missing_secret_key_is_fatal():
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(_env_file=None, secret_key="", database_url="sqlite://")


def test_short_secret_key_is_fatal():
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(_env_file=None, secret_key="too-short", database_url="sqlite://")


def test_missing_database_url_is_fatal():
    with pytest.raises(ValidationError, match="DATABASE_URL is required"):
        Settings(_env_file=None, secret_key=GOOD_SECRET, database_url="")


def test_defaults(monkeypatch):
    monkeypatch.delenv("BCRYPT_ROUNDS", raising=False)
    settings = Settings(_env_file=None, secret_key=GOOD_SECRET, database_url="sqlite://")
    assert settings.token_expire_seconds == 6 * 60 * 60
    assert settings.bcrypt_rounds == 10
    assert settings.cors_origin_list == []


def test_values_read_from_environment(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", GOOD_SECRET)
    monkeypatch.setenv("DATABASE_URL", "sqlite:///env.db")
    monkeypatch.setenv("TOKEN_EXPIRE_SECONDS", "60")
    settings = Settings(_env_file=None)
    assert settings.database_url == "sqlite:///env.db"
    assert settings.token_expire_seconds == 60


@pytest.mark.parametrize("rounds", [3, 32])
def test_bcrypt_rounds_out_of_range(rounds):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, secret_key=GOOD_SECRET, database_url="sqlite://", bcrypt_rounds=rounds)


def test_cors_origins_are_split_and_trimmed():
    settings = Settings(
        _env_file=None,
        secret_key=GOOD_SECRET,
        database_url="sqlite://",
        cors_origins="http://localhost:3000, https://app.example.com ,",
    )
    assert settings.cors_origin_list == ["http://localhost:3000", "https://app.example.com"]
