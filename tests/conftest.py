"""
tests/conftest.py -- Shared test fixtures for SellerHub.

This module provides:
  - engine: a private named shared-memory SQLite engine per test
  - clock: a MutableClock that tests advance instead of sleeping
  - fetcher: a FakeFetcher standing in for the Mercado Libre client
  - auth_service / seller_service: real services wired to the above
  - api_client: TestClient with a patched lifespan that puts the test
    services on app.state

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.
Each fixture instance gets a fresh uuid in the name, so tests never see each
other's rows.

PBKDF2 runs with a low iteration count here. Settings enforces the
production floor; the services themselves accept any positive count.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.main import app
from auth.service import AuthService
from auth.store import AccountStore, SessionStore
from core.config import Settings
from core.db import create_db_engine
from core.errors import ExternalServiceError
from sellers.models import ProfileInfo
from sellers.service import GlobalSellerService
from sellers.store import GlobalSellerStore

TEST_HASH_ITERATIONS = 1_000
TEST_TTL_SECONDS = 3600

# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class MutableClock:
    """Callable clock for stores. advance() moves time forward."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeFetcher:
    """ProfileFetcher double. Returns self.profile, or raises self.error when set.

    Every token it is asked about is recorded in self.tokens.
    """

    def __init__(self, profile: Optional[ProfileInfo] = None) -> None:
        self.profile = profile or ProfileInfo(
            nickname="SELLER1",
            email="seller1@example.com",
            first_name="Ana",
            last_name="Silva",
            country_id="BR",
            site_id="MLB",
        )
        self.error: Optional[ExternalServiceError] = None
        self.tokens: list[str] = []

    def fail_with(self, status: Optional[int], message: str) -> None:
        self.error = ExternalServiceError(status, message)

    def fetch_profile(self, access_token: str) -> ProfileInfo:
        self.tokens.append(access_token)
        if self.error is not None:
            raise self.error
        return self.profile


def memory_db_url(prefix: str) -> str:
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = create_db_engine(memory_db_url("test_unit"))
    yield eng
    eng.dispose()


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def auth_service(engine: Engine, clock: MutableClock) -> AuthService:
    return AuthService(
        AccountStore(engine, clock=clock),
        SessionStore(engine, ttl_seconds=TEST_TTL_SECONDS, clock=clock),
        hash_iterations=TEST_HASH_ITERATIONS,
    )


@pytest.fixture
def seller_store(engine: Engine, clock: MutableClock) -> GlobalSellerStore:
    return GlobalSellerStore(engine, clock=clock)


@pytest.fixture
def seller_service(seller_store: GlobalSellerStore, fetcher: FakeFetcher) -> GlobalSellerService:
    return GlobalSellerService(seller_store, fetcher)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(settings: Settings, engine: Engine, auth: AuthService, sellers: GlobalSellerService):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-built test services into app.state so TestClient routes use the
    isolated in-memory DB and the fake fetcher instead of Mercado Libre.

    The sweep_task is a long-sleeping coroutine that keeps asyncio happy
    (a real asyncio.Task is required; MagicMock would fail on .cancel()).
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.engine = engine
        app.state.auth_service = auth
        app.state.seller_service = sellers
        app.state.sweep_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.sweep_task.cancel()

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, FakeFetcher], None, None]:
    """Yield (client, fetcher) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers, middleware and exception handlers. The
    client keeps cookies between requests like a browser; tests that juggle
    two accounts clear client.cookies and send Bearer headers instead.
    """
    eng = create_db_engine(memory_db_url("test_api"))
    settings = Settings(database_url=str(eng.url), session_ttl_seconds=TEST_TTL_SECONDS)
    auth = AuthService(
        AccountStore(eng),
        SessionStore(eng, ttl_seconds=TEST_TTL_SECONDS),
        hash_iterations=TEST_HASH_ITERATIONS,
    )
    fake = FakeFetcher()
    sellers = GlobalSellerService(GlobalSellerStore(eng), fake)

    app.router.lifespan_context = _patch_lifespan(settings, eng, auth, sellers)

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client, fake

    eng.dispose()
