# core/review/models.py
"""
Memory-layer ORM models: SpacedRepetitionData and QuizAttempt.

- SpacedRepetitionData: one row per Person once quizzing begins. Its fields
  are overwritten wholesale with the scheduler's output.
- QuizAttempt: append-only log of every answer.

Derived values (needs_review, days_until_review, accuracy) are never stored;
they are recomputed from these fields by core.review.scheduler.
"""

from __future__ import annotations

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    String,
    DateTime,
    Float,
    ForeignKey,
    Integer,
)
from sqlalchemy.orm import relationship

from core.clock import utcnow
from core.db import Base
from core.review.scheduler import DEFAULT_EASE, ReviewState


def gen_uuid() -> str:
    """Generate a random UUID string (for primary keys)."""
    return str(uuid.uuid4())


class SpacedRepetitionData(Base):
    __tablename__ = "spaced_repetition_data"

    id = Column(String, primary_key=True, default=gen_uuid)

    person_id = Column(
        String,
        ForeignKey("person.id"),
        nullable=False,
        unique=True,
    )
    person = relationship("Person", back_populates="review_state")

    ease_factor = Column(Float, nullable=False, default=DEFAULT_EASE)
    interval = Column(Integer, nullable=False, default=0)
    repetitions = Column(Integer, nullable=False, default=0)

    next_review_date = Column(DateTime, nullable=False, default=utcnow)
    last_review_date = Column(DateTime, nullable=True)

    total_attempts = Column(Integer, nullable=False, default=0)
    correct_attempts = Column(Integer, nullable=False, default=0)

    def to_state(self) -> ReviewState:
        return ReviewState(
            ease_factor=self.ease_factor,
            interval=self.interval,
            repetitions=self.repetitions,
            next_review_date=self.next_review_date,
            last_review_date=self.last_review_date,
            total_attempts=self.total_attempts,
            correct_attempts=self.correct_attempts,
        )

    def apply_state(self, state: ReviewState) -> None:
        """Overwrite every stored field with the scheduler's output."""
        self.ease_factor = state.ease_factor
        self.interval = state.interval
        self.repetitions = state.repetitions
        self.next_review_date = state.next_review_date
        self.last_review_date = state.last_review_date
        self.total_attempts = state.total_attempts
        self.correct_attempts = state.correct_attempts


class QuizAttempt(Base):
    """One answer in a recall quiz. Never updated after insert."""

    __tablename__ = "quiz_attempt"

    id = Column(String, primary_key=True, default=gen_uuid)

    person_id = Column(
        String,
        ForeignKey("person.id"),
        nullable=False,
    )
    person = relationship("Person", back_populates="quiz_attempts")

    was_correct = Column(Boolean, nullable=False)

    response_time_ms = Column(Integer, nullable=True)

    # The name the user picked (for wrong answers mostly).
    user_guess = Column(String, nullable=True)

    attempted_at = Column(DateTime, default=utcnow, nullable=False)
