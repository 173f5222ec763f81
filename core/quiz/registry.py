# core/quiz/registry.py
"""
Process-local store of open quiz sessions.

Sessions leave the registry when they complete, when they sit idle longer
than `ttl_seconds`, or when the registry grows past `max_sessions` (oldest
touched first). Answers are persisted as they come in, so dropping a
session never loses data.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from core.quiz.session import QuizSession, SessionStatus

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        max_sessions: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self._clock = clock
        self._lock = threading.Lock()
        # session id → (session, last touched)
        self._sessions: "OrderedDict[str, Tuple[QuizSession, float]]" = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def add(self, session: QuizSession) -> None:
        """Register an open session. Complete (e.g. empty) sessions are not kept."""
        if session.status is SessionStatus.COMPLETE:
            return
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            self._sessions[session.id] = (session, now)
            self._sessions.move_to_end(session.id)
            while len(self._sessions) > self.max_sessions:
                dropped, _ = self._sessions.popitem(last=False)
                logger.info("Dropped quiz session %s (registry full)", dropped)

    def get(self, session_id: str) -> Optional[QuizSession]:
        """Return the session and mark it used, or None if unknown or expired."""
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            entry = self._sessions.get(session_id)
            if entry is None:
                return None
            self._sessions[session_id] = (entry[0], now)
            self._sessions.move_to_end(session_id)
            return entry[0]

    def release(self, session: QuizSession) -> None:
        """Drop a session once it is complete; open sessions stay."""
        if session.status is not SessionStatus.COMPLETE:
            return
        with self._lock:
            self._sessions.pop(session.id, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def _evict_expired(self, now: float) -> None:
        # Entries are kept in last-touched order, so expired ones are at the front.
        while self._sessions:
            session_id, (_, touched) = next(iter(self._sessions.items()))
            if now - touched <= self.ttl_seconds:
                break
            del self._sessions[session_id]
            logger.info("Expired idle quiz session %s", session_id)
