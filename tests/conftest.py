"""
tests/conftest.py -- Shared test fixtures for VeriKey unit and integration tests.

This module provides:
  - settings: a debug-mode Settings with fixed secrets and bcrypt cost 4
  - store / service / gate: function-scoped components over an in-memory DB
  - api_client: TestClient wired to isolated stores via a patched lifespan

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. Unit-test fixtures run on one thread, so :memory: is fine.

DEBUG must be set before any project import so get_settings() auto-generates
missing secrets instead of raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: Set DEBUG before any auth/core import so get_settings() can
# auto-generate secrets in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.gate import RequestGate
from auth.service import AccountService
from auth.store import AccountStore
from auth.tokens import TokenService
from auth.wiring import build_account_service, build_gate
from core.config import Settings

TEST_SECRET_KEY = "test-signing-secret-0123456789abcdef"
TEST_HMAC_SECRET = "test-hmac-secret-0123456789abcdefgh"
TEST_ENCRYPTION_KEY = "test-encryption-key"


def make_settings(**overrides) -> Settings:
    values = {
        "debug": True,
        "secret_key": TEST_SECRET_KEY,
        "biometric_encryption_key": TEST_ENCRYPTION_KEY,
        "biometric_hmac_secret": TEST_HMAC_SECRET,
        "token_expire_seconds": 3600,
        "bcrypt_rounds": 4,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def store() -> Generator[AccountStore, None, None]:
    s = AccountStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def service(settings: Settings, store: AccountStore) -> AccountService:
    return build_account_service(settings, store)


@pytest.fixture
def gate(service: AccountService) -> RequestGate:
    return build_gate(service)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(settings: Settings, store: AccountStore):
    """Return an async context manager that replaces the real lifespan.

    Wires a pre-created test store into app.state so TestClient routes use an
    isolated DB and fixed secrets rather than the environment's.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.account_store = store
        app.state.account_service = build_account_service(settings, store)
        app.state.gate = build_gate(app.state.account_service)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[TestClient, None, None]:
    """Yield a TestClient backed by a fresh shared-memory store per test module."""
    db_name = request.module.__name__.replace(".", "_")
    store = AccountStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    app.router.lifespan_context = _patch_lifespan(make_settings(), store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    store.close()


@pytest.fixture
def stale_token():
    """Return a function that mints a token for the test secret that expired an hour ago."""

    def issue(account_id: str, email: str) -> str:
        issued = datetime.now(timezone.utc) - timedelta(hours=2)
        return TokenService(TEST_SECRET_KEY, 3600, clock=lambda: issued).issue(account_id, email)

    return issue
