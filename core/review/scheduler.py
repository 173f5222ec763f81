# core/review/scheduler.py
"""
SM-2 style spaced repetition, adapted to a binary (right/wrong) outcome.

A person's card is either
    Learning     → repetitions < 2
    Established  → repetitions >= 2

record_attempt() is a pure function: it takes the current ReviewState (or
None for a person never quizzed) and returns a brand-new ReviewState. The
persistence layer copies the result onto its SpacedRepetitionData row.

Interval rules on a correct answer:
    1st consecutive correct → 1 day
    2nd consecutive correct → 6 days
    later                   → round(previous interval * ease factor)

Ease grows by EASE_BONUS on correct answers that land in the Established
state, and shrinks by EASE_PENALTY on a miss. A miss always brings the face
back the next day.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

DEFAULT_EASE = 2.5
MIN_EASE = 1.3
MAX_EASE = 5.0
EASE_BONUS = 0.05
EASE_PENALTY = 0.2

FIRST_INTERVAL = 1
SECOND_INTERVAL = 6
RETRY_INTERVAL = 1

ESTABLISHED_REPETITIONS = 2


def clamp_ease(value: float) -> float:
    """Clamp into [MIN_EASE, MAX_EASE] and drop float noise (2.5499999 → 2.55)."""
    return round(min(MAX_EASE, max(MIN_EASE, value)), 4)


@dataclass(frozen=True)
class ReviewState:
    """Scheduling state for one person. Only stored fields live here."""

    next_review_date: datetime
    ease_factor: float = DEFAULT_EASE
    interval: int = 0
    repetitions: int = 0
    last_review_date: Optional[datetime] = None
    total_attempts: int = 0
    correct_attempts: int = 0

    @classmethod
    def new(cls, now: datetime) -> "ReviewState":
        """Defaults for a person who has never been quizzed: due immediately."""
        return cls(next_review_date=now)

    @property
    def is_established(self) -> bool:
        return self.repetitions >= ESTABLISHED_REPETITIONS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ease_factor": self.ease_factor,
            "interval": self.interval,
            "repetitions": self.repetitions,
            "next_review_date": self.next_review_date.isoformat(),
            "last_review_date": self.last_review_date.isoformat() if self.last_review_date else None,
            "total_attempts": self.total_attempts,
            "correct_attempts": self.correct_attempts,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewState":
        last = data.get("last_review_date")
        return cls(
            ease_factor=float(data.get("ease_factor", DEFAULT_EASE)),
            interval=int(data.get("interval", 0)),
            repetitions=int(data.get("repetitions", 0)),
            next_review_date=datetime.fromisoformat(data["next_review_date"]),
            last_review_date=datetime.fromisoformat(last) if last else None,
            total_attempts=int(data.get("total_attempts", 0)),
            correct_attempts=int(data.get("correct_attempts", 0)),
        )


def record_attempt(state: Optional[ReviewState], was_correct: bool, now: datetime) -> ReviewState:
    """Return the state that results from one quiz answer given at `now`."""
    if state is None:
        state = ReviewState.new(now)

    ease = clamp_ease(state.ease_factor)
    previous_interval = max(0, state.interval)

    if was_correct:
        repetitions = max(0, state.repetitions) + 1
        if repetitions == 1:
            interval = FIRST_INTERVAL
        elif repetitions == 2:
            interval = SECOND_INTERVAL
        else:
            # Half-up, so 16.5 days becomes 17.
            interval = max(1, math.floor(previous_interval * ease + 0.5))
        if repetitions >= ESTABLISHED_REPETITIONS:
            ease = clamp_ease(ease + EASE_BONUS)
    else:
        repetitions = 0
        interval = RETRY_INTERVAL
        ease = clamp_ease(ease - EASE_PENALTY)

    total = max(0, state.total_attempts) + 1
    correct = min(max(0, state.correct_attempts), total - 1) + (1 if was_correct else 0)

    return replace(
        state,
        ease_factor=ease,
        interval=interval,
        repetitions=repetitions,
        last_review_date=now,
        next_review_date=now + timedelta(days=interval),
        total_attempts=total,
        correct_attempts=correct,
    )


def is_due(state: Optional[ReviewState], now: datetime) -> bool:
    """Never-quizzed people are due; otherwise due once next_review_date <= now."""
    if state is None:
        return True
    return state.next_review_date <= now


def days_until_review(state: Optional[ReviewState], now: datetime) -> int:
    """
    Whole calendar days from today to the review day (negative when overdue).

    Compared by date, not duration: anything due later today is 0.
    """
    if state is None:
        return 0
    due = state.next_review_date
    if due.tzinfo is not None and now.tzinfo is not None:
        due = due.astimezone(now.tzinfo)
    return (due.date() - now.date()).days


def accuracy(state: Optional[ReviewState]) -> float:
    if state is None or state.total_attempts <= 0:
        return 0.0
    return state.correct_attempts / state.total_attempts
