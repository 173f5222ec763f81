# core/clock.py
"""
Time helpers.

All timestamps are stored as naive UTC (SQLite drops tzinfo anyway).
Anything coming from outside goes through to_naive_utc() before it is
compared with stored values.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
