# app/routes/quiz.py
"""
Recall quiz endpoints.

- POST /quiz/sessions                     → build a session (spaced / all / filtered / trouble)
- GET  /quiz/sessions/{id}                → items, progress and summary
- POST /quiz/sessions/{id}/answers        → answer one item (persists review state + attempt)
- GET  /quiz/stats                        → practice home statistics

Open sessions live in a process-local SessionRegistry. They are cheap to
rebuild, so nothing about them is persisted except the answers themselves.
A session leaves the registry once its last item is answered (the answer
response carries the final summary) or after sitting idle too long.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.deps import get_app_settings, get_db
from core.clock import utcnow
from core.config import Settings, get_settings
from core.errors import QuizSessionError
from core.quiz.registry import SessionRegistry
from core.quiz.service import practice_stats, start_session, submit_answer
from core.quiz.session import AccuracyTier, QuizFilter, QuizMode, QuizSession, SessionStatus

router = APIRouter(prefix="/quiz", tags=["quiz"])

sessions = SessionRegistry(
    ttl_seconds=get_settings().quiz_session_ttl_seconds,
    max_sessions=get_settings().quiz_max_open_sessions,
)


# -----------------------------------------------------------------------------
# Pydantic schemas
# -----------------------------------------------------------------------------

class SessionCreate(BaseModel):
    mode: QuizMode = QuizMode.SPACED
    distractor_count: Optional[int] = Field(default=None, ge=0)
    seed: Optional[int] = None
    # Only used by mode="filtered"; every criterion given must hold.
    person_ids: Optional[List[str]] = None
    favorites_only: bool = False
    tags: List[str] = []


class ItemOut(BaseModel):
    index: int
    person_id: str
    sample_id: Optional[str] = None
    options: List[str]
    answered: bool


class SummaryOut(BaseModel):
    correct: int
    total: int
    accuracy: float
    percentage: int
    tier: AccuracyTier


class SessionOut(BaseModel):
    id: str
    mode: QuizMode
    status: SessionStatus
    items: List[ItemOut]
    summary: SummaryOut


class AnswerIn(BaseModel):
    item_index: int
    # None means "I don't know".
    guess: Optional[str] = None
    response_time_ms: Optional[int] = Field(default=None, ge=0)


class AnswerOut(BaseModel):
    item_index: int
    was_correct: bool
    correct_name: str
    next_review_date: str
    interval: int
    status: SessionStatus
    summary: SummaryOut


def _summary_out(session: QuizSession) -> SummaryOut:
    s = session.summary()
    return SummaryOut(
        correct=s.correct,
        total=s.total,
        accuracy=s.accuracy,
        percentage=s.percentage,
        tier=s.tier,
    )


def _session_out(session: QuizSession) -> SessionOut:
    return SessionOut(
        id=session.id,
        mode=session.mode,
        status=session.status,
        items=[
            ItemOut(
                index=i,
                person_id=item.person_id,
                sample_id=item.sample_id,
                options=list(item.options),
                answered=i in session.answers,
            )
            for i, item in enumerate(session.items)
        ],
        summary=_summary_out(session),
    )


def _get_session_or_404(session_id: str) -> QuizSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Quiz session not found")
    return session


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------

@router.post("/sessions", response_model=SessionOut)
def create_session(
    payload: SessionCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """
    Build a quiz. An empty pool gives an empty, already-complete session.
    """
    distractors = payload.distractor_count
    if distractors is None:
        distractors = settings.quiz_distractor_count

    session = start_session(
        db,
        payload.mode,
        utcnow(),
        distractor_count=distractors,
        seed=payload.seed,
        filters=QuizFilter(
            person_ids=frozenset(payload.person_ids) if payload.person_ids is not None else None,
            favorites_only=payload.favorites_only,
            tags=frozenset(payload.tags),
        ),
    )
    sessions.add(session)
    return _session_out(session)


@router.get("/sessions/{session_id}", response_model=SessionOut)
def get_quiz_session(session_id: str):
    return _session_out(_get_session_or_404(session_id))


@router.post("/sessions/{session_id}/answers", response_model=AnswerOut)
def answer_item(
    session_id: str,
    payload: AnswerIn,
    db: Session = Depends(get_db),
):
    session = _get_session_or_404(session_id)
    try:
        answer = submit_answer(
            db,
            session,
            payload.item_index,
            payload.guess,
            utcnow(),
            response_time_ms=payload.response_time_ms,
        )
    except QuizSessionError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    sessions.release(session)
    return AnswerOut(
        item_index=answer.item_index,
        was_correct=answer.was_correct,
        correct_name=session.items[answer.item_index].correct_name,
        next_review_date=answer.new_state.next_review_date.isoformat(),
        interval=answer.new_state.interval,
        status=session.status,
        summary=_summary_out(session),
    )


@router.get("/stats")
def quiz_stats(db: Session = Depends(get_db)):
    return practice_stats(db, utcnow())
