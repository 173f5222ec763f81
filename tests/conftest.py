# tests/conftest.py
"""
Shared pytest fixtures for FaceRecall testing.

All tests use an in-memory SQLite database so that:
- No state persists between tests
- Tests are fast and deterministic
- The real database file is never touched

Fixtures:
    engine            → Creates all tables in a fresh in-memory DB (per test)
    db_session        → Yields a SQLAlchemy session bound to that DB
    client            → FastAPI TestClient whose get_db uses db_session
    sample_embedding  → Returns a normalized 512-D vector for testing
    slightly_different_embedding → Returns another controlled vector
    now               → Fixed "current time" for scheduling tests
"""

import os

# Must be set before core.db builds its engine.
os.environ.setdefault("FACERECALL_DATABASE_URL", "sqlite:///:memory:")

from collections.abc import Generator
from datetime import datetime

import numpy as np
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session

from core.db import init_db, make_engine


# ---------------------------------------------------------------------------
# Engine fixture: new, clean in-memory DB for each test
# ---------------------------------------------------------------------------
@pytest.fixture
def engine():
    # In-memory SQLite shares one connection, so the TestClient's worker
    # threads see the same database as the test itself.
    engine = make_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


# ---------------------------------------------------------------------------
# db_session fixture: yields a fresh session per test
# ---------------------------------------------------------------------------
@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()


# ---------------------------------------------------------------------------
# API client wired to the test session
# ---------------------------------------------------------------------------
@pytest.fixture
def client(db_session) -> Generator[TestClient, None, None]:
    from app.deps import get_db
    from app.main import app
    from app.routes.quiz import sessions

    def _get_test_db():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = _get_test_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        sessions.clear()


# ---------------------------------------------------------------------------
# Embedding fixtures: deterministic vectors for testing identity logic
# ---------------------------------------------------------------------------
@pytest.fixture
def sample_embedding():
    """
    Returns a fixed normalized 512-D vector.
    Useful for consistent matching tests.
    """
    vec = np.ones(512, dtype="float32")
    vec /= np.linalg.norm(vec)
    return vec


@pytest.fixture
def slightly_different_embedding():
    """
    Returns another 512-D unit vector, different from sample_embedding.

    cos(sample, this) = sqrt(0.5) ≈ 0.707 → similarity ≈ 0.854.
    """
    vec = np.zeros(512, dtype="float32")
    vec[:256] = 1.0  # first half ones, second half zeros
    vec /= np.linalg.norm(vec)
    return vec


@pytest.fixture
def orthogonal_embedding():
    """Orthogonal to slightly_different_embedding; similarity 0.5 to it."""
    vec = np.zeros(512, dtype="float32")
    vec[256:] = 1.0
    vec /= np.linalg.norm(vec)
    return vec


@pytest.fixture
def now():
    return datetime(2026, 3, 2, 9, 30)
