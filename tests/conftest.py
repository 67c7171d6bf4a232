"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of geotera.api.tokens, which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from geotera.config import GeoteraConfig  # noqa: E402
from geotera.database.models import Base, User  # noqa: E402
from geotera.database.seed import seed_reward_catalog  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Geotera tables.

    Uses StaticPool so every session (and the TestClient's worker threads)
    shares the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    seed_reward_catalog(engine)
    return engine


@pytest.fixture
def file_engine(tmp_path) -> Engine:
    """File-backed SQLite engine: each session gets its own connection.

    Needed where two sessions must interleave, as concurrent requests do.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'geotera.db'}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 5},
    )
    Base.metadata.create_all(engine)
    seed_reward_catalog(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def cfg() -> GeoteraConfig:
    return GeoteraConfig(
        app_name="Geotera Test",
        dashboard_port=8000,
        report_points=10,
        collect_points=20,
        min_confidence=0.5,
        admin_emails=("admin@example.com",),
    )


def make_user(engine: Engine, email: str = "ada@example.com", name: str = "Ada") -> int:
    """Insert a user row and return its id."""
    with Session(engine) as session:
        user = User(email=email, name=name)
        session.add(user)
        session.commit()
        return user.id


def make_token(user_id: int, *, is_admin: bool = False, email: str = "ada@example.com") -> str:
    """Create a session JWT.  Usable from any test module."""
    from geotera.api.tokens import issue_session

    return issue_session(user_id, email, is_admin=is_admin)


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(db_engine, cfg):
    """FastAPI TestClient bound to the in-memory database.

    Not used as a context manager, so the lifespan hook (which builds the
    production engine) does not run.
    """
    from fastapi.testclient import TestClient

    from geotera.api.deps import get_config, get_engine
    from geotera.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: cfg
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
