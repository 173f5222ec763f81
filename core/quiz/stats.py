# core/quiz/stats.py
"""
Practice statistics shown on the practice home screen.

All of these are recomputed from stored review state and the attempt log;
none of them is ever persisted.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional, Sequence, Tuple

from core.quiz.session import QuizMode, QuizPerson, eligible_people, is_trouble
from core.review.scheduler import ReviewState, accuracy, is_due

MASTERED_MIN_ACCURACY = 0.8
MASTERED_MIN_ATTEMPTS = 3

# Weekly trend needs this many attempts in each week to mean anything.
TREND_MIN_ATTEMPTS = 3
# Percentage-point changes smaller than this are not reported.
TREND_MIN_CHANGE = 2

# (was_correct, attempted_at)
AttemptRow = Tuple[bool, datetime]


def overall_accuracy(states: Iterable[Optional[ReviewState]]) -> float:
    total = 0
    correct = 0
    for state in states:
        if state is None:
            continue
        total += state.total_attempts
        correct += state.correct_attempts
    return correct / total if total else 0.0


def mastered_count(states: Iterable[Optional[ReviewState]]) -> int:
    return sum(
        1
        for s in states
        if s is not None
        and s.total_attempts >= MASTERED_MIN_ATTEMPTS
        and accuracy(s) >= MASTERED_MIN_ACCURACY
    )


def weekly_trend(attempts: Sequence[AttemptRow], now: datetime) -> Optional[int]:
    """
    Accuracy change, in whole percentage points, of the last 7 days versus
    the 7 days before. None when either week is too thin or the change is
    negligible.
    """
    one_week_ago = now - timedelta(days=7)
    two_weeks_ago = now - timedelta(days=14)

    this_week = [ok for ok, at in attempts if at >= one_week_ago]
    last_week = [ok for ok, at in attempts if two_weeks_ago <= at < one_week_ago]

    if len(this_week) < TREND_MIN_ATTEMPTS or len(last_week) < TREND_MIN_ATTEMPTS:
        return None

    this_acc = sum(this_week) / len(this_week)
    last_acc = sum(last_week) / len(last_week)
    difference = int((this_acc - last_acc) * 100)

    return difference if abs(difference) >= TREND_MIN_CHANGE else None


def mode_counts(pool: Sequence[QuizPerson], now: datetime) -> Dict[str, int]:
    """How many people each mode would quiz right now."""
    eligible = eligible_people(pool)
    return {
        QuizMode.SPACED.value: sum(1 for p in eligible if is_due(p.review_state, now)),
        QuizMode.ALL.value: len(eligible),
        QuizMode.TROUBLE.value: sum(1 for p in eligible if is_trouble(p)),
    }
