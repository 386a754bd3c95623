"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os
from datetime import UTC, datetime

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of streakboard.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from streakboard.database.models import Base  # noqa: E402
from streakboard.database.seed import seed_all  # noqa: E402

# Wednesday, mid-morning UTC
FROZEN_NOW = datetime(2026, 3, 11, 10, 0, tzinfo=UTC)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Streakboard tables, seeded.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in the recompute queue and by
    the TestClient's threadpool).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    seed_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def now() -> datetime:
    return FROZEN_NOW


def make_user_token(sub: str = "student-1", **claims) -> str:
    """Create a user JWT.  Extra claims are merged into the payload."""
    import jwt

    from streakboard.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode({"sub": sub, **claims}, JWT_SECRET, algorithm=JWT_ALGORITHM)


def make_admin_token(sub: str = "admin-1") -> str:
    """Create an admin JWT.  Usable as both a fixture and a factory function."""
    return make_user_token(sub, is_admin=True)


@pytest.fixture
def admin_token():
    """Generate a valid admin JWT for use in API integration tests."""
    return make_admin_token()


@pytest.fixture
def user_token():
    return make_user_token()


@pytest.fixture
def client(db_engine: Engine):
    """FastAPI TestClient bound to the in-memory engine.

    The lifespan is not entered, so recomputation runs inline after each
    completion instead of on the background queue.
    """
    from fastapi.testclient import TestClient

    from streakboard.api.deps import get_config, get_engine
    from streakboard.api.main import app
    from streakboard.config import StreakboardConfig

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: StreakboardConfig(
        app_name="Streakboard Test", api_port=8000,
    )
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
