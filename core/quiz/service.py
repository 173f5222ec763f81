# core/quiz/service.py
"""
DB-facing side of quizzes.

- snapshot_people(): load Person rows into immutable QuizPerson snapshots.
- start_session():   snapshot + build_quiz_session().
- submit_answer():   grade from the stored state, persist through
                     core.review.service.record_quiz_answer(), then record
                     the answer on the session.
- practice_stats():  numbers for the practice home screen.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from core.clock import to_naive_utc
from core.people.models import Person
from core.quiz import stats
from core.quiz.session import (
    QuizAnswer,
    QuizFilter,
    QuizMode,
    QuizPerson,
    QuizSession,
    build_quiz_session,
)
from core.review.models import QuizAttempt
from core.review.service import record_quiz_answer, review_state_of

logger = logging.getLogger(__name__)


def to_quiz_person(person: Person) -> QuizPerson:
    return QuizPerson(
        person_id=person.id,
        display_name=person.display_name,
        sample_ids=tuple(s.id for s in person.face_samples),
        profile_sample_id=person.profile_sample_id,
        review_state=review_state_of(person),
        is_me=bool(person.is_me),
        is_favorite=bool(person.is_favorite),
        tags=tuple(person.tags or ()),
    )


def snapshot_people(db: Session) -> List[QuizPerson]:
    people = (
        db.query(Person)
        .options(selectinload(Person.face_samples), selectinload(Person.review_state))
        .order_by(Person.created_at)
        .all()
    )
    return [to_quiz_person(p) for p in people]


def start_session(
    db: Session,
    mode: QuizMode,
    now: datetime,
    distractor_count: int = 3,
    seed: Optional[int] = None,
    subset_ids: Optional[Iterable[str]] = None,
    filters: Optional[QuizFilter] = None,
) -> QuizSession:
    session = build_quiz_session(
        snapshot_people(db),
        mode,
        distractor_count,
        seed,
        subset_ids=subset_ids,
        filters=filters,
        now=to_naive_utc(now),
    )
    logger.info("Started %s quiz %s with %d items", session.mode.value, session.id, len(session.items))
    return session


def submit_answer(
    db: Session,
    session: QuizSession,
    item_index: int,
    guess: Optional[str],
    now: datetime,
    response_time_ms: Optional[int] = None,
) -> QuizAnswer:
    """
    Grade one item and write the new review state plus a QuizAttempt row.

    The schedule is advanced from the person's stored state, not from the
    snapshot taken when the session was built, so answers in concurrent
    sessions stack up. The session only records the answer once the write
    has been flushed; a deleted person fails with LookupError and a failed
    write leaves the item unanswered.
    """
    now = to_naive_utc(now)
    # Raises QuizSessionError for bad indexes or repeated answers.
    item = session.check_answerable(item_index)

    person = db.get(Person, item.person_id)
    if person is None:
        raise LookupError(f"Person {item.person_id} no longer exists")

    answer = session.grade(item_index, guess, now, review_state_of(person), response_time_ms)
    record_quiz_answer(
        db,
        person,
        answer.was_correct,
        now,
        response_time_ms=response_time_ms,
        user_guess=guess,
        new_state=answer.new_state,
    )
    return session.record(answer)


def practice_stats(db: Session, now: datetime) -> Dict[str, Any]:
    now = to_naive_utc(now)
    pool = snapshot_people(db)
    states = [p.review_state for p in pool]
    attempts = [(a.was_correct, a.attempted_at) for a in db.query(QuizAttempt).all()]

    return {
        "total_attempts": sum(s.total_attempts for s in states if s is not None),
        "overall_accuracy": stats.overall_accuracy(states),
        "mastered": stats.mastered_count(states),
        "weekly_trend": stats.weekly_trend(attempts, now),
        "mode_counts": stats.mode_counts(pool, now),
    }
