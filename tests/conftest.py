"""
tests/conftest.py -- Shared test fixtures for Chirpy.

This module provides:
  - FrozenClock / clock: a controllable "now" so expiry can be simulated
  - store / config / service: an isolated in-memory SessionService per test
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: The API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

The DEBUG env var must be set before any api/ import so get_settings() can
auto-generate JWT_SECRET instead of raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: Set DEBUG before any api/core import.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.service import SessionConfig, SessionService
from auth.store import SessionStore
from core.config import Settings

TEST_SECRET = "test-signing-secret-0123456789abcdef"


class FrozenClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Unit fixtures -- fresh state per test
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store(clock: FrozenClock) -> Generator[SessionStore, None, None]:
    s = SessionStore("sqlite:///:memory:", clock=clock)
    yield s
    s.close()


@pytest.fixture
def config() -> SessionConfig:
    # bcrypt's minimum cost keeps the suite fast; production uses 10.
    return SessionConfig(signing_secret=TEST_SECRET, bcrypt_rounds=4)


@pytest.fixture
def service(store: SessionStore, config: SessionConfig, clock: FrozenClock) -> SessionService:
    return SessionService(store, config, clock=clock)


# ---------------------------------------------------------------------------
# API fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


def _patch_lifespan(settings: Settings, store: SessionStore, service: SessionService):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test objects into app.state so TestClient routes see an
    isolated test DB and a known signing secret.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.store = store
        app.state.session_service = service
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, SessionService], None, None]:
    """Yield (client, service) wired to a module-private shared-memory DB.

    The DB name is derived from the test module so modules never share rows.
    PLATFORM is "dev" so /admin/reset is reachable; tests that need the
    production behaviour swap app.state.settings temporarily.
    """
    db_name = request.module.__name__.rsplit(".", 1)[-1]
    store = SessionStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    settings = Settings(jwt_secret=TEST_SECRET, platform="dev", debug=True, bcrypt_rounds=4)
    service = SessionService(store, SessionConfig.from_settings(settings))

    app.router.lifespan_context = _patch_lifespan(settings, store, service)

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client, service

    store.close()
