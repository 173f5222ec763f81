# core/people/service.py
"""
Service layer for Person and FaceSample.

This module contains *logic* (no FastAPI, no HTTP), so it can be unit-tested
directly and reused by different front-ends.

Responsibilities:
- Create / delete people.
- Store face samples, either attached to a Person or unassigned.
- Identity-assignment commands (assign a sample, pick a profile sample).
- Build the read-only projection the matcher consumes and run a match.

Nothing here commits; the caller (route or higher layer) controls the
transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from sqlalchemy.orm import Session, selectinload

from core.clock import to_naive_utc, utcnow
from core.errors import DimensionMismatch
from core.face.matcher import MatchResult, match_face
from core.people.models import Person, FaceSample

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Embedding serialization helpers
# ---------------------------------------------------------------------------

# float64 so an embedding reads back bit-identical to what the client sent.
EMBEDDING_DTYPE = np.dtype("float64")


def _pack_embedding(emb) -> bytes:
    """Convert a float vector into raw bytes suitable for storing in BLOB."""
    return np.asarray(emb, dtype=EMBEDDING_DTYPE).tobytes()


def _unpack_embedding(buf: bytes) -> np.ndarray:
    """Convert raw bytes from the DB back into a numpy vector."""
    return np.frombuffer(buf, dtype=EMBEDDING_DTYPE)


def sample_embedding(sample: FaceSample) -> np.ndarray:
    return _unpack_embedding(sample.embedding)


def stored_dimension(db: Session) -> Optional[int]:
    """Dimension of the embeddings already in the store, or None if empty."""
    sample = db.query(FaceSample).first()
    if sample is None:
        return None
    return len(sample.embedding) // EMBEDDING_DTYPE.itemsize


def _check_dimension(db: Session, emb: np.ndarray) -> None:
    dim = stored_dimension(db)
    if dim is not None and dim != emb.shape[0]:
        raise DimensionMismatch(dim, emb.shape[0])


# ---------------------------------------------------------------------------
# Person creation / enrollment
# ---------------------------------------------------------------------------

def create_person(
    db: Session,
    display_name: str = "",
    tags: list[str] | None = None,
    notes: str | None = None,
    first_embedding: np.ndarray | None = None,
    is_me: bool = False,
    is_favorite: bool = False,
) -> Person:
    """
    Create a new Person record.

    Optionally attach an initial face embedding as its first FaceSample.
    """
    person = Person(
        display_name=display_name or "",
        tags=tags or [],
        notes=notes,
        is_me=is_me,
        is_favorite=is_favorite,
    )
    db.add(person)
    db.flush()  # assign person.id

    if first_embedding is not None:
        add_face_sample(db, person, first_embedding)

    logger.info("Created person %s (%r)", person.id, person.display_name)
    return person


def add_face_sample(
    db: Session,
    person: Optional[Person],
    embedding,
    source_context: str | None = None,
    image_path: str | None = None,
    bbox: dict | None = None,
    captured_at: datetime | None = None,
) -> FaceSample:
    """
    Store a face embedding, attached to `person` or unassigned when None.

    Raises DimensionMismatch if the store already holds embeddings of a
    different length; the matcher relies on one dimension per store.
    """
    emb = np.asarray(embedding, dtype=EMBEDDING_DTYPE)
    if emb.ndim != 1:
        raise ValueError("Embedding must be a 1D vector")
    _check_dimension(db, emb)

    sample = FaceSample(
        embedding=_pack_embedding(emb),
        source_context=source_context,
        image_path=image_path,
        bbox=bbox,
        captured_at=to_naive_utc(captured_at) if captured_at else utcnow(),
    )
    if person is not None:
        person.face_samples.append(sample)
    db.add(sample)
    db.flush()
    return sample


def assign_sample(
    db: Session,
    sample: FaceSample,
    person: Person,
    now: datetime | None = None,
) -> FaceSample:
    """
    Label a sample as belonging to `person`.

    Moving a sample away from its previous owner also clears that owner's
    profile pointer if it referenced this sample.
    """
    previous = sample.person
    if previous is not None and previous.id != person.id:
        if previous.profile_sample_id == sample.id:
            previous.profile_sample_id = None

    # The backref moves the sample out of the previous owner's collection.
    if sample not in person.face_samples:
        person.face_samples.append(sample)
    person.last_seen_at = to_naive_utc(now) if now else utcnow()
    db.flush()

    logger.info("Assigned sample %s to person %s", sample.id, person.id)
    return sample


def set_profile_sample(db: Session, person: Person, sample_id: str) -> Person:
    """Pick which of the person's own samples is shown as their quiz image."""
    if not any(s.id == sample_id for s in person.face_samples):
        raise ValueError(f"Sample {sample_id} does not belong to person {person.id}")
    person.profile_sample_id = sample_id
    db.flush()
    return person


def update_person(
    db: Session,
    person: Person,
    display_name: str | None = None,
    notes: str | None = None,
    tags: list[str] | None = None,
    is_favorite: bool | None = None,
) -> Person:
    """Overwrite only the fields that were passed."""
    if display_name is not None:
        person.display_name = display_name
    if notes is not None:
        person.notes = notes
    if tags is not None:
        person.tags = list(tags)
    if is_favorite is not None:
        person.is_favorite = is_favorite
    db.flush()
    return person


def delete_person(db: Session, person: Person) -> None:
    """Delete a person with their samples, review state and quiz history."""
    db.delete(person)
    db.flush()
    logger.info("Deleted person %s", person.id)


def mark_seen(person: Person, now: datetime | None = None) -> None:
    person.last_seen_at = to_naive_utc(now) if now else utcnow()


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

def known_people(
    db: Session,
    person_ids: Iterable[str] | None = None,
) -> List[Tuple[str, List[np.ndarray]]]:
    """
    Read-only projection of the store: [(person_id, [embedding, ...]), ...].

    People without samples are left out; they cannot be matched.
    """
    query = db.query(Person).options(selectinload(Person.face_samples))
    if person_ids is not None:
        query = query.filter(Person.id.in_(list(person_ids)))

    projection = []
    for person in query.order_by(Person.created_at).all():
        if person.face_samples:
            projection.append(
                (person.id, [sample_embedding(s) for s in person.face_samples])
            )
    return projection


def identify(
    db: Session,
    embedding,
    auto_accept_threshold: float,
    review_floor: float,
    boost_person_ids: Sequence[str] = (),
    max_workers: int = 1,
) -> MatchResult:
    """Match an embedding against everyone in the store. Does not write."""
    return match_face(
        embedding,
        known_people(db),
        auto_accept_threshold,
        review_floor=review_floor,
        boost_person_ids=boost_person_ids,
        max_workers=max_workers,
    )
