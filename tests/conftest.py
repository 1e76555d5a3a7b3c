"""
tests/conftest.py -- Shared test fixtures for Textura tests.

This module provides:
  - hasher / issuer: fast bcrypt (4 rounds) and a fixed-key JWT issuer
  - store: an isolated in-memory AccountStore per test
  - guard: AccountGuard wired to the three above with the default policy
  - alice: a registered account with a known password
  - api_client: TestClient running the real app against an isolated store

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

DEBUG must be set before any auth/core import so get_settings() can
auto-generate SECRET_KEY instead of raising ValueError. The login rate limit
is raised so lockout tests are not cut short by the per-IP throttle.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any auth/core/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.guard import AccountGuard
from auth.store import AccountStore
from auth.tokens import PasswordHasher, TokenIssuer
from tests.helpers import ALICE_PASSWORD, TEST_SECRET_KEY

# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    # Minimum bcrypt cost keeps the suite fast; production uses 12.
    return PasswordHasher(rounds=4)


@pytest.fixture(scope="session")
def issuer() -> TokenIssuer:
    return TokenIssuer(TEST_SECRET_KEY, expire_seconds=3600)


@pytest.fixture
def store() -> Generator[AccountStore, None, None]:
    s = AccountStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def guard(store: AccountStore, hasher: PasswordHasher, issuer: TokenIssuer) -> AccountGuard:
    return AccountGuard(store, hasher, issuer)


@pytest.fixture
def alice(guard: AccountGuard):
    result = guard.register_account("alice", "alice@x.com", ALICE_PASSWORD)
    assert result.ok, result.message
    return result.account


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(store: AccountStore, guard: AccountGuard, issuer: TokenIssuer):
    """Return a lifespan that wires the test store and guard into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = store
        app.state.token_issuer = issuer
        app.state.guard = guard
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(hasher: PasswordHasher, issuer: TokenIssuer) -> Generator[tuple[TestClient, AccountGuard], None, None]:
    """Yield (client, guard) for API integration tests.

    One client per test module; tests use distinct usernames so they do not
    interfere through the shared store.
    """
    store = AccountStore("sqlite:///file:test_auth_api?mode=memory&cache=shared&uri=true")
    guard = AccountGuard(store, hasher, issuer)
    app.router.lifespan_context = _patch_lifespan(store, guard, issuer)

    with TestClient(app, base_url="http://localhost", raise_server_exceptions=True) as client:
        yield client, guard

    store.close()
