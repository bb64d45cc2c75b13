"""
tests/conftest.py -- Shared test fixtures for assignment tracker integration tests.

This module provides:
  - _make_test_store(): creates an isolated in-memory DB with seeded subjects
  - _patch_lifespan(): wires the test store into app.state, bypassing real startup
  - make_session_cookie(): builds a signed session cookie for a given identity
  - web_client: TestClient with follow_redirects=False for web route tests
  - alice / bob: session cookies for two distinct users

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
StaticPool keeps one connection open for the store's lifetime, so the
shared-memory DB is not dropped between requests.

Sessions: the cookie is produced exactly the way Starlette's SessionMiddleware
produces it (base64 JSON, itsdangerous TimestampSigner, same secret), so the
real middleware and the real require_login() dependency do the checking.

The DEBUG env var must be set before any app import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import json
import os
from base64 import b64encode
from collections.abc import Generator
from contextlib import asynccontextmanager
from unittest.mock import MagicMock

# CRITICAL: Set DEBUG before any app/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import itsdangerous
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from api.main import SESSION_COOKIE
from asgi import app
from core.config import get_settings
from tracker.store import DEFAULT_SUBJECTS, AssignmentStore

ALICE_SUB = "auth0|alice"
BOB_SUB = "auth0|bob"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> AssignmentStore:
    """Create an isolated named shared-memory SQLite store with default subjects.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    store = AssignmentStore(
        db_url=f"sqlite:///file:test_tracker_{db_suffix}?mode=memory&cache=shared&uri=true",
        poolclass=StaticPool,
    )
    store.seed_subjects(DEFAULT_SUBJECTS)
    return store


def _patch_lifespan(store: AssignmentStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-created test store into app.state and replaces the OIDC
    registry with a MagicMock so no test ever reaches a real provider.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = store
        app.state.oauth = MagicMock()
        yield

    return test_lifespan


def make_session_cookie(claims: dict) -> str:
    """Return a session cookie value carrying `claims` as the logged-in user."""
    signer = itsdangerous.TimestampSigner(str(get_settings().secret_key))
    payload = b64encode(json.dumps({"user": claims}).encode("utf-8"))
    return signer.sign(payload).decode("utf-8")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def web_client(request) -> Generator[tuple[TestClient, AssignmentStore], None, None]:
    """Yield (client, store) for web route integration tests.

    follow_redirects=False is essential: tests assert on redirect *locations*
    (e.g. 302 to /login, 303 to /assignments/{id}), which are invisible once
    the client follows the redirect.
    """
    store = _make_test_store(request.module.__name__.rsplit(".", 1)[-1])
    app.router.lifespan_context = _patch_lifespan(store)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client, store

    store.close()


@pytest.fixture
def alice() -> dict[str, str]:
    return {SESSION_COOKIE: make_session_cookie({"sub": ALICE_SUB, "name": "Alice", "email": "alice@example.com"})}


@pytest.fixture
def bob() -> dict[str, str]:
    return {SESSION_COOKIE: make_session_cookie({"sub": BOB_SUB, "name": "Bob"})}


@pytest.fixture
def session_cookie():
    """Return make_session_cookie() for tests that need a custom identity."""
    return make_session_cookie
