# core/review/service.py
"""
DB glue around the scheduler.

record_quiz_answer() is what the quiz routes call for every answer:
    1. read the person's current ReviewState (None if never quizzed)
    2. run the pure scheduler
    3. copy the result onto the SpacedRepetitionData row (created lazily)
    4. append a QuizAttempt row

No commit here; the caller owns the transaction, so either everything is
written or nothing is.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from core.clock import to_naive_utc
from core.people.models import Person
from core.review.models import QuizAttempt, SpacedRepetitionData
from core.review.scheduler import ReviewState, record_attempt

logger = logging.getLogger(__name__)


def review_state_of(person: Person) -> Optional[ReviewState]:
    row = person.review_state
    return row.to_state() if row is not None else None


def save_review_state(db: Session, person: Person, state: ReviewState) -> SpacedRepetitionData:
    row = person.review_state
    if row is None:
        row = SpacedRepetitionData(person_id=person.id)
        person.review_state = row
        db.add(row)
    row.apply_state(state)
    return row


def record_quiz_answer(
    db: Session,
    person: Person,
    was_correct: bool,
    now: datetime,
    response_time_ms: int | None = None,
    user_guess: str | None = None,
    new_state: ReviewState | None = None,
) -> ReviewState:
    """
    Persist one quiz answer for `person` and return their new ReviewState.

    `new_state` lets a caller that already ran the scheduler (a QuizSession)
    hand over its result instead of computing it twice.
    """
    now = to_naive_utc(now)
    if new_state is None:
        new_state = record_attempt(review_state_of(person), was_correct, now)

    save_review_state(db, person, new_state)

    attempt = QuizAttempt(
        person_id=person.id,
        was_correct=was_correct,
        response_time_ms=response_time_ms,
        user_guess=user_guess,
        attempted_at=now,
    )
    person.quiz_attempts.append(attempt)
    db.add(attempt)
    db.flush()

    logger.info(
        "Quiz answer for %s correct=%s → interval=%sd ease=%.2f",
        person.id, was_correct, new_state.interval, new_state.ease_factor,
    )
    return new_state
