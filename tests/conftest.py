"""
tests/conftest.py -- Shared test fixtures for Expense API integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for accounts + expenses
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: (TestClient, TokenService) for API integration tests
  - signup(): helper that registers a fresh account and returns its token

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

SECRET_KEY must be set before any api/ import: the CORS setup in api/main.py
reads Settings at import time. BCRYPT_ROUNDS=4 keeps hashing fast; the rate
limits are raised so a test module never trips them.
"""

from __future__ import annotations

import itertools
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

TEST_SECRET = "test-secret-key-0123456789abcdef0123456789abcdef"

os.environ["SECRET_KEY"] = TEST_SECRET
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOGIN_RATE_LIMIT"] = "1000/minute"
os.environ["SIGNUP_RATE_LIMIT"] = "1000/minute"

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.store import AccountStore
from auth.tokens import TokenService
from core.config import get_settings
from expenses.store import ExpenseStore

get_settings.cache_clear()

_email_counter = itertools.count(1)


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[AccountStore, ExpenseStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so parallel test
                   modules don't share state (e.g. 'api', 'routes').
    """
    db_url = f"sqlite:///file:test_expense_api_{db_suffix}?mode=memory&cache=shared&uri=true"
    return AccountStore(db_url), ExpenseStore(db_url)


def _patch_lifespan(account_store: AccountStore, expense_store: ExpenseStore, token_service: TokenService):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = get_settings()
        app.state.token_service = token_service
        app.state.account_store = account_store
        app.state.expense_store = expense_store
        yield

    return test_lifespan


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}{next(_email_counter)}@example.com"


def signup(client: TestClient, email: str | None = None, password: str = "s3cret-pass") -> str:
    """Register a new account through the API and return its bearer token."""
    resp = client.post("/auth/signup", json={"email": email or unique_email(), "password": password})
    assert resp.status_code == 200, f"Signup failed: {resp.status_code} {resp.text}"
    return resp.json()["token"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, TokenService], None, None]:
    """Yield (client, token_service) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers but use isolated in-memory stores. The
    TokenService is the same instance the app verifies with, so tests can
    mint tokens directly (e.g. already-expired ones).
    """
    account_store, expense_store = _make_test_stores(request.module.__name__.rsplit(".", 1)[-1])
    token_service = TokenService(TEST_SECRET, expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(account_store, expense_store, token_service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token_service

    expense_store.close()
    account_store.close()
