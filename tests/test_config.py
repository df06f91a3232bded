"""Unit tests for core/config.py -- startup configuration rules.

Covers:
- SECRET_KEY missing or shorter than 32 characters is fatal
- defaults for token lifetime, work factor and rate limits
- environment overrides are type-coerced
"""

import pytest
from pydantic import ValidationError

from core.config import Settings

GOOD_KEY = "k" * 32


def test_missing_secret_key_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(_env_file=None)


def test_short_secret_key_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SECRET_KEY", "too-short")
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(_env_file=None)


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("BCRYPT_ROUNDS", "LOGIN_RATE_LIMIT", "SIGNUP_RATE_LIMIT", "TOKEN_EXPIRE_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SECRET_KEY", GOOD_KEY)
    settings = Settings(_env_file=None)
    assert settings.token_expire_seconds == 3600
    assert settings.bcrypt_rounds == 12
    assert settings.port == 5000
    assert settings.login_rate_limit == "10/minute"
    assert settings.database_url.startswith("sqlite:///")


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SECRET_KEY", GOOD_KEY)
    monkeypatch.setenv("TOKEN_EXPIRE_SECONDS", "60")
    monkeypatch.setenv("BCRYPT_ROUNDS", "10")
    monkeypatch.setenv("CORS_ORIGINS", '["https://expenses.example.com"]')
    settings = Settings(_env_file=None)
    assert settings.token_expire_seconds == 60
    assert settings.bcrypt_rounds == 10
    assert settings.cors_origins == ["https://expenses.example.com"]


@pytest.mark.parametrize("rounds", ["3", "32"])
def test_work_factor_bounds(monkeypatch: pytest.MonkeyPatch, rounds: str) -> None:
    monkeypatch.setenv("SECRET_KEY", GOOD_KEY)
    monkeypatch.setenv("BCRYPT_ROUNDS", rounds)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
