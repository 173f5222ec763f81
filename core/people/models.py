# core/people/models.py
"""
ORM models for people and their stored face embeddings.

These are *only* about identity:
- Person: "who is this human?"
- FaceSample: "one embedding (and optional crop/bbox) we captured for them"

Review scheduling state and quiz history live in core.review.models and
hang off Person through cascade relationships.
"""

from __future__ import annotations

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    String,
    DateTime,
    ForeignKey,
    Text,
    JSON,
)
from sqlalchemy.dialects.sqlite import BLOB
from sqlalchemy.orm import relationship

from core.clock import utcnow
from core.db import Base

# Person refers to these mapped classes by name.
from core.review import models as review_models  # noqa: F401


def gen_uuid() -> str:
    """Generate a random UUID as a string. Used for primary keys."""
    return str(uuid.uuid4())


class Person(Base):
    """
    A person the user has met.

    Owns its face samples, its spaced-repetition state and its quiz history;
    deleting the person deletes all three.
    """

    __tablename__ = "person"

    id = Column(String, primary_key=True, default=gen_uuid)

    # Name shown in quizzes and match suggestions.
    display_name = Column(String, nullable=False, default="")

    # Free-form notes ("met at conference", etc.).
    notes = Column(Text, nullable=True)

    # JSON array of tags ("friend", "client", "family", ...).
    tags = Column(JSON, nullable=True)

    # The user's own profile. Never quizzed.
    is_me = Column(Boolean, nullable=False, default=False)

    is_favorite = Column(Boolean, nullable=False, default=False)

    # Sample shown as this person's quiz image. Falls back to the first sample.
    profile_sample_id = Column(String, nullable=True)

    last_seen_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    face_samples = relationship(
        "FaceSample",
        back_populates="person",
        cascade="all, delete-orphan",
        order_by="FaceSample.captured_at",
    )

    review_state = relationship(
        "SpacedRepetitionData",
        back_populates="person",
        uselist=False,
        cascade="all, delete-orphan",
    )

    quiz_attempts = relationship(
        "QuizAttempt",
        back_populates="person",
        cascade="all, delete-orphan",
        order_by="QuizAttempt.attempted_at",
    )

    @property
    def num_samples(self) -> int:
        return len(self.face_samples)

    @property
    def profile_sample(self) -> "FaceSample | None":
        """Designated profile sample if it still exists, else the first one."""
        if not self.face_samples:
            return None
        if self.profile_sample_id:
            for sample in self.face_samples:
                if sample.id == self.profile_sample_id:
                    return sample
        return self.face_samples[0]


class FaceSample(Base):
    """
    A single stored face embedding.

    This might be:
    - linked to a known Person (person_id not null)
    - or "unassigned" until the user labels it.
    """

    __tablename__ = "face_sample"

    id = Column(String, primary_key=True, default=gen_uuid)

    person_id = Column(
        String,
        ForeignKey("person.id"),
        nullable=True,
    )
    person = relationship("Person", back_populates="face_samples")

    # Embedding bytes (packed float64 numpy array).
    embedding = Column(BLOB, nullable=False)

    # Where the capture came from, e.g. "quick_capture", "photo_import".
    source_context = Column(String, nullable=True)

    # Optional: path of the stored face crop, for display.
    image_path = Column(String, nullable=True)

    # Optional: bounding box within the original image.
    #   {"x1": 120, "y1": 80, "x2": 220, "y2": 200}
    bbox = Column(JSON, nullable=True)

    captured_at = Column(DateTime, default=utcnow, nullable=False)
