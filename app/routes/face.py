"""
face.py

Purpose:
    FastAPI routes for identity matching.
    Embeddings arrive already computed by the capture client; nothing here
    decodes images or runs a model.

    This file provides:
        - POST /face/match
            → match one embedding against every known person
              (optionally storing it: auto-labeled on accept, unassigned otherwise)
        - POST /face/samples
            → store an unassigned sample, pending labeling
        - GET  /face/samples/unassigned
            → list samples waiting for a label
        - POST /face/samples/{id}/assign
            → label a sample as belonging to a person

Notes:
    - Scores use the [0, 1] similarity convention (cosine mapped by (c + 1) / 2).
    - The auto-accept threshold must lie in [0.70, 0.99]; anything else is 422.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.deps import get_app_settings, get_db
from core.clock import utcnow
from core.config import Settings, validate_threshold
from core.errors import DimensionMismatch, InvalidThreshold
from core.face.matcher import MatchDecision
from core.people.models import FaceSample, Person
from core.people.service import add_face_sample, assign_sample, identify, mark_seen

# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------

# Prefix is defined here; main.py includes this router WITHOUT an extra prefix.
router = APIRouter(prefix="/face", tags=["face"])


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------

class MatchRequest(BaseModel):
    embedding: List[float]
    auto_accept_threshold: Optional[float] = None
    # People already labeled in the same capture event.
    boost_person_ids: List[str] = []
    store_sample: bool = False
    source_context: Optional[str] = None


class CandidateOut(BaseModel):
    person_id: str
    display_name: Optional[str] = None
    score: float


class MatchResponse(BaseModel):
    decision: MatchDecision
    best_person_id: Optional[str] = None
    best_score: float
    ambiguous: bool
    candidates: List[CandidateOut]
    # Set when store_sample was requested.
    sample_id: Optional[str] = None
    assigned_person_id: Optional[str] = None


class SampleCreate(BaseModel):
    embedding: List[float]
    source_context: Optional[str] = None
    image_path: Optional[str] = None


class SampleOut(BaseModel):
    id: str
    person_id: Optional[str] = None
    source_context: Optional[str] = None
    captured_at: datetime


class AssignRequest(BaseModel):
    person_id: str


def _sample_out(sample: FaceSample) -> SampleOut:
    return SampleOut(
        id=sample.id,
        person_id=sample.person_id,
        source_context=sample.source_context,
        captured_at=sample.captured_at,
    )


# ---------------------------------------------------------------------------
# /face/match
# ---------------------------------------------------------------------------

@router.post("/match", response_model=MatchResponse)
def match_endpoint(
    payload: MatchRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """
    Decide who this face belongs to.

    decision:
        accept → confident match (sample auto-labeled if store_sample)
        review → suggestion in best_person_id, user must confirm
        reject → treat as a new person
    """
    threshold = payload.auto_accept_threshold
    if threshold is None:
        threshold = settings.auto_accept_threshold
    try:
        validate_threshold(threshold)
    except InvalidThreshold as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    try:
        result = identify(
            db,
            payload.embedding,
            threshold,
            settings.review_floor,
            boost_person_ids=payload.boost_person_ids,
            max_workers=settings.match_workers,
        )
    except DimensionMismatch as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    names = {
        p.id: p.display_name
        for p in db.query(Person).filter(Person.id.in_([c.person_id for c in result.candidates]))
    }
    response = MatchResponse(
        decision=result.decision,
        best_person_id=result.best_person_id,
        best_score=result.best_score,
        ambiguous=result.ambiguous,
        candidates=[
            CandidateOut(person_id=c.person_id, display_name=names.get(c.person_id), score=c.score)
            for c in result.candidates
        ],
    )

    if payload.store_sample:
        owner = None
        if result.decision is MatchDecision.ACCEPT:
            owner = db.get(Person, result.best_person_id)
        # The match can pass against people while unassigned samples of
        # another dimension still block the store.
        try:
            sample = add_face_sample(db, owner, payload.embedding, source_context=payload.source_context)
        except DimensionMismatch as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        response.sample_id = sample.id
        if owner is not None:
            mark_seen(owner)
            response.assigned_person_id = owner.id

    return response


# ---------------------------------------------------------------------------
# /face/samples
# ---------------------------------------------------------------------------

@router.post("/samples", response_model=SampleOut)
def create_unassigned_sample(payload: SampleCreate, db: Session = Depends(get_db)):
    try:
        sample = add_face_sample(
            db,
            None,
            payload.embedding,
            source_context=payload.source_context,
            image_path=payload.image_path,
        )
    except DimensionMismatch as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _sample_out(sample)


@router.get("/samples/unassigned", response_model=List[SampleOut])
def list_unassigned_samples(db: Session = Depends(get_db)):
    samples = (
        db.query(FaceSample)
        .filter(FaceSample.person_id.is_(None))
        .order_by(FaceSample.captured_at)
        .all()
    )
    return [_sample_out(s) for s in samples]


@router.post("/samples/{sample_id}/assign", response_model=SampleOut)
def assign_sample_endpoint(
    sample_id: str,
    payload: AssignRequest,
    db: Session = Depends(get_db),
):
    sample = db.get(FaceSample, sample_id)
    if sample is None:
        raise HTTPException(status_code=404, detail="Sample not found")
    person = db.get(Person, payload.person_id)
    if person is None:
        raise HTTPException(status_code=404, detail="Person not found")

    assign_sample(db, sample, person, now=utcnow())
    return _sample_out(sample)
