# app/routes/persons.py
"""
FastAPI routes for Person management and identity-assignment commands.

This module exposes:
- POST   /persons                         → create a person (optionally with a first embedding)
- GET    /persons                         → list all persons
- GET    /persons/{id}                    → retrieve a person
- PATCH  /persons/{id}                    → edit a person (only the fields sent)
- DELETE /persons/{id}                    → delete a person and everything they own
- POST   /persons/enroll                  → attach a face embedding to a person
- POST   /persons/{id}/profile-sample     → choose the quiz image
- GET    /persons/{id}/review             → spaced-repetition state + derived fields

These routes sit above core.people.service and core.review.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from app.deps import get_db
from core.clock import utcnow
from core.errors import DimensionMismatch
from core.people.models import Person
from core.people.service import (
    add_face_sample,
    create_person,
    delete_person,
    set_profile_sample,
    update_person,
)
from core.review.scheduler import accuracy, days_until_review, is_due
from core.review.service import review_state_of

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic Schemas
# ---------------------------------------------------------------------------

class PersonCreate(BaseModel):
    display_name: str
    tags: list[str] | None = None
    notes: Optional[str] = None
    is_me: bool = False
    is_favorite: bool = False
    embedding: list[float] | None = None


class PersonUpdate(BaseModel):
    display_name: Optional[str] = None
    tags: list[str] | None = None
    notes: Optional[str] = None
    is_favorite: Optional[bool] = None


class PersonOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: str
    tags: list[str] | None
    notes: Optional[str]
    is_me: bool
    is_favorite: bool
    profile_sample_id: Optional[str]
    num_samples: int
    last_seen_at: Optional[datetime]


class FaceEnrollRequest(BaseModel):
    person_id: str
    embedding: list[float]
    source_context: Optional[str] = None


class ProfileSampleRequest(BaseModel):
    sample_id: str


class ReviewOut(BaseModel):
    person_id: str
    ease_factor: Optional[float] = None
    interval: Optional[int] = None
    repetitions: Optional[int] = None
    next_review_date: Optional[datetime] = None
    last_review_date: Optional[datetime] = None
    total_attempts: int = 0
    correct_attempts: int = 0
    needs_review: bool
    days_until_review: int
    accuracy: float


def _get_person_or_404(db: Session, person_id: str) -> Person:
    person = db.get(Person, person_id)
    if person is None:
        raise HTTPException(status_code=404, detail="Person not found")
    return person


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("", response_model=PersonOut)
def create_person_endpoint(payload: PersonCreate, db: Session = Depends(get_db)):
    """
    Create a person profile, optionally with a first face sample.
    """
    try:
        person = create_person(
            db,
            display_name=payload.display_name,
            tags=payload.tags or [],
            notes=payload.notes,
            first_embedding=payload.embedding,
            is_me=payload.is_me,
            is_favorite=payload.is_favorite,
        )
    except DimensionMismatch as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return person


@router.get("", summary="List all persons", response_model=list[PersonOut])
def list_persons(db: Session = Depends(get_db)):
    return db.query(Person).order_by(Person.created_at).all()


@router.get("/{person_id}", response_model=PersonOut)
def get_person(person_id: str, db: Session = Depends(get_db)):
    return _get_person_or_404(db, person_id)


@router.patch("/{person_id}", response_model=PersonOut)
def update_person_endpoint(
    person_id: str,
    payload: PersonUpdate,
    db: Session = Depends(get_db),
):
    """
    Edit a person. Fields left out of the payload are not touched.

    Examples:
    - Star someone so they show up in favorites-only practice.
    - Replace their tags.
    """
    person = _get_person_or_404(db, person_id)
    return update_person(
        db,
        person,
        display_name=payload.display_name,
        notes=payload.notes,
        tags=payload.tags,
        is_favorite=payload.is_favorite,
    )


@router.delete("/{person_id}", status_code=204)
def delete_person_endpoint(person_id: str, db: Session = Depends(get_db)):
    """
    Delete a person. Their samples, review state and quiz attempts go too.
    """
    delete_person(db, _get_person_or_404(db, person_id))


@router.post("/enroll", response_model=PersonOut)
def enroll_face(payload: FaceEnrollRequest, db: Session = Depends(get_db)):
    """
    Add a face embedding to an existing person.
    """
    person = _get_person_or_404(db, payload.person_id)
    try:
        add_face_sample(db, person, payload.embedding, source_context=payload.source_context)
    except DimensionMismatch as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return person


@router.post("/{person_id}/profile-sample", response_model=PersonOut)
def choose_profile_sample(
    person_id: str,
    payload: ProfileSampleRequest,
    db: Session = Depends(get_db),
):
    person = _get_person_or_404(db, person_id)
    try:
        set_profile_sample(db, person, payload.sample_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return person


@router.get("/{person_id}/review", response_model=ReviewOut)
def get_review_state(person_id: str, db: Session = Depends(get_db)):
    """
    Current scheduling state. Derived fields are computed on every call.
    """
    person = _get_person_or_404(db, person_id)
    state = review_state_of(person)
    now = utcnow()

    stored = asdict(state) if state is not None else {}
    return ReviewOut(
        person_id=person.id,
        needs_review=is_due(state, now),
        days_until_review=days_until_review(state, now),
        accuracy=accuracy(state),
        **stored,
    )
