# app/deps.py
"""
Shared FastAPI dependencies.

Tests override get_db to point at an in-memory database.
"""

from __future__ import annotations

from typing import Generator

from sqlalchemy.orm import Session

from core.config import Settings, get_settings
from core.db import get_session


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a database session.

    Wraps core.db.get_session() so each request gets its own Session with
    automatic commit/rollback.
    """
    with get_session() as session:
        yield session


def get_app_settings() -> Settings:
    return get_settings()
