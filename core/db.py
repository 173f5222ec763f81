# core/db.py
"""
Database setup for FaceRecall.

- make_engine(): engine for a URL; SQLite gets foreign keys switched on,
  and in-memory SQLite shares one connection across threads.
- init_db():     register every model and create missing tables.
- get_session(): per-unit-of-work Session that commits or rolls back.

The module-level `engine` is built from Settings.database_url.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from core.config import get_settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def make_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url)

    kwargs = {"connect_args": {"check_same_thread": False}}
    if _is_memory_sqlite(url):
        kwargs["poolclass"] = StaticPool
    sqlite_engine = create_engine(url, **kwargs)

    @event.listens_for(sqlite_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


def init_db(bind: Engine) -> None:
    # Importing the model modules registers their tables on Base.
    from core.people import models as people_models  # noqa: F401
    from core.review import models as review_models  # noqa: F401

    Base.metadata.create_all(bind=bind)
    logger.debug("Tables ready on %s", bind.url)


DATABASE_URL = get_settings().database_url
engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_session() -> Iterator[Session]:
    """
    Yield a Session; commit when the block succeeds, roll back otherwise.

        with get_session() as db:
            db.add(obj)
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        logger.debug("Rolling back session after error", exc_info=True)
        session.rollback()
        raise
    finally:
        session.close()
