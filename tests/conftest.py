"""
tests/conftest.py -- Shared test fixtures for Gatekeeper.

This module provides:
  - store / directory / sessions / policy / accounts: service objects over an
    isolated in-memory database, one per test
  - seeded: the admin and demo accounts created by AccountService.seed_defaults
  - client: TestClient over the real app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format shares one in-memory instance across all
connections of the engine. A uuid in the name keeps tests isolated.

DEBUG and ALLOWED_HOSTS must be set before any api/auth/core import:
get_settings() auto-generates SECRET_KEY only in dev mode, and
TrustedHostMiddleware must accept TestClient's "testserver" host.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any app import so get_settings() sees them.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app, wire_services
from auth.accounts import AccountService
from auth.directory import UserDirectory
from auth.policies import PolicyResolver
from auth.sessions import SessionAuthority
from auth.store import UserStore
from core.config import get_settings

ADMIN_PASSWORD = "123456"
DEMO_PASSWORD = "123456"


def memory_db_url() -> str:
    return f"sqlite:///file:test_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


# ---------------------------------------------------------------------------
# Service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore(memory_db_url())
    yield s
    s.close()


@pytest.fixture
def directory(store: UserStore) -> UserDirectory:
    return UserDirectory(store)


@pytest.fixture
def sessions(store: UserStore) -> SessionAuthority:
    return SessionAuthority(store, expire_seconds=3600)


@pytest.fixture
def policy(directory: UserDirectory) -> PolicyResolver:
    return PolicyResolver(directory, admin_username="admin")


@pytest.fixture
def accounts(directory: UserDirectory, sessions: SessionAuthority) -> AccountService:
    return AccountService(directory, sessions)


@pytest.fixture
def seeded(accounts: AccountService, directory: UserDirectory) -> dict:
    """Seed the default accounts and return {"admin": User, "test": User}."""
    accounts.seed_defaults(get_settings())
    return {
        "admin": directory.find_by_username("admin"),
        "test": directory.find_by_username("test"),
    }


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(store: UserStore):
    """Return a lifespan that wires a pre-created test store into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        settings = get_settings()
        wire_services(app.state, store, settings)
        app.state.accounts.seed_defaults(settings)
        yield

    return test_lifespan


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """TestClient over the real app, backed by a fresh seeded in-memory store.

    The client keeps cookies between requests. Login sets the session cookie,
    so tests that need an anonymous request call client.cookies.clear().
    """
    test_store = UserStore(memory_db_url())
    app.router.lifespan_context = _patch_lifespan(test_store)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c
    test_store.close()


def login(client: TestClient, username: str, password: str) -> str:
    """Log in through the API and return the issued token."""
    resp = client.post("/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["token"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
