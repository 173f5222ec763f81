# core/quiz/session.py
"""
Quiz session building and grading.

A session is built once from a snapshot of people (QuizPerson) and then
answered item by item:

    created ──answer()──▶ in_progress ──last answer()──▶ complete

Every answer is run through the scheduler. answer() grades against the
session's own copy of each ReviewState; a caller that persists answers uses
grade() with the stored state, writes it, and only then record()s it.

Randomness (distractor choice, option order, item order) comes from one
injected random.Random, so a seed reproduces the exact same session.
"""

from __future__ import annotations

import enum
import logging
import random
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from core.clock import utcnow
from core.errors import QuizSessionError
from core.review.scheduler import ReviewState, accuracy, is_due, record_attempt

logger = logging.getLogger(__name__)

DEFAULT_DISTRACTORS = 3

# Trouble faces: quizzed at least this often, and still below this accuracy.
TROUBLE_MIN_ATTEMPTS = 2
TROUBLE_MAX_ACCURACY = 0.6


class QuizMode(str, enum.Enum):
    SPACED = "spaced"
    ALL = "all"
    FILTERED = "filtered"
    TROUBLE = "trouble"


class SessionStatus(str, enum.Enum):
    CREATED = "created"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class AccuracyTier(str, enum.Enum):
    EXCELLENT = "excellent"            # >= 80%
    GOOD = "good"                      # 50% .. <80%
    NEEDS_PRACTICE = "needs_practice"  # < 50%


@dataclass(frozen=True)
class QuizPerson:
    """Read-only snapshot of one person, as the quiz builder needs it."""

    person_id: str
    display_name: str
    sample_ids: Tuple[str, ...] = ()
    profile_sample_id: Optional[str] = None
    review_state: Optional[ReviewState] = None
    is_me: bool = False
    is_favorite: bool = False
    tags: Tuple[str, ...] = ()

    @property
    def has_faces(self) -> bool:
        return len(self.sample_ids) > 0

    @property
    def quiz_sample_id(self) -> Optional[str]:
        if self.profile_sample_id and self.profile_sample_id in self.sample_ids:
            return self.profile_sample_id
        return self.sample_ids[0] if self.sample_ids else None


@dataclass(frozen=True)
class QuizFilter:
    """
    Custom practice filters. Every set criterion must hold; `tags` matches
    people carrying any of the listed tags.
    """

    person_ids: Optional[FrozenSet[str]] = None
    favorites_only: bool = False
    tags: FrozenSet[str] = frozenset()

    @property
    def is_active(self) -> bool:
        return self.person_ids is not None or self.favorites_only or bool(self.tags)

    def matches(self, person: QuizPerson) -> bool:
        if self.person_ids is not None and person.person_id not in self.person_ids:
            return False
        if self.favorites_only and not person.is_favorite:
            return False
        if self.tags and self.tags.isdisjoint(person.tags):
            return False
        return True

    def describe(self) -> str:
        parts = []
        if self.favorites_only:
            parts.append("Favorites")
        if self.tags:
            parts.append(f"{len(self.tags)} tag" + ("s" if len(self.tags) > 1 else ""))
        if self.person_ids is not None:
            parts.append(f"{len(self.person_ids)} selected")
        return ", ".join(parts) if parts else "All faces"


@dataclass(frozen=True)
class QuizItem:
    person_id: str
    correct_name: str
    sample_id: Optional[str]
    options: Tuple[str, ...]

    @property
    def distractors(self) -> Tuple[str, ...]:
        return tuple(o for o in self.options if o != self.correct_name)


@dataclass(frozen=True)
class QuizAnswer:
    item_index: int
    person_id: str
    guess: Optional[str]
    was_correct: bool
    answered_at: datetime
    new_state: ReviewState
    response_time_ms: Optional[int] = None


@dataclass(frozen=True)
class SessionSummary:
    correct: int
    total: int
    accuracy: float
    percentage: int
    tier: AccuracyTier


def accuracy_tier(correct: int, total: int) -> AccuracyTier:
    """Integer comparison so exactly 80% and exactly 50% land in the upper tier."""
    if total > 0 and correct * 100 >= 80 * total:
        return AccuracyTier.EXCELLENT
    if total > 0 and correct * 100 >= 50 * total:
        return AccuracyTier.GOOD
    return AccuracyTier.NEEDS_PRACTICE


def summarize(correct: int, total: int) -> SessionSummary:
    return SessionSummary(
        correct=correct,
        total=total,
        accuracy=correct / total if total else 0.0,
        percentage=(correct * 100) // total if total else 0,
        tier=accuracy_tier(correct, total),
    )


# ---------------------------------------------------------------------------
# Pool selection
# ---------------------------------------------------------------------------

def eligible_people(pool: Iterable[QuizPerson]) -> List[QuizPerson]:
    """People that can appear in a quiz at all: have a face, are not the user."""
    return [p for p in pool if p.has_faces and not p.is_me]


def is_trouble(person: QuizPerson) -> bool:
    state = person.review_state
    return (
        state is not None
        and state.total_attempts >= TROUBLE_MIN_ATTEMPTS
        and accuracy(state) < TROUBLE_MAX_ACCURACY
    )


def select_people(
    pool: Iterable[QuizPerson],
    mode: QuizMode,
    now: datetime,
    subset_ids: Optional[Iterable[str]] = None,
    filters: Optional[QuizFilter] = None,
) -> List[QuizPerson]:
    """
    People `mode` would quiz. Filtered mode combines `subset_ids` with
    `filters`; with neither set it selects nobody.
    """
    eligible = eligible_people(pool)

    if mode is QuizMode.SPACED:
        due = [p for p in eligible if is_due(p.review_state, now)]
        # Nothing due: fall back to everyone so practice is still possible.
        return due or eligible
    if mode is QuizMode.ALL:
        return eligible
    if mode is QuizMode.FILTERED:
        filters = filters or QuizFilter()
        if subset_ids is not None:
            filters = replace(filters, person_ids=frozenset(subset_ids))
        if not filters.is_active:
            return []
        return [p for p in eligible if filters.matches(p)]
    if mode is QuizMode.TROUBLE:
        return [p for p in eligible if is_trouble(p)]
    raise ValueError(f"Unknown quiz mode: {mode!r}")


def build_options(
    person: QuizPerson,
    name_pool: Sequence[QuizPerson],
    distractor_count: int,
    rng: random.Random,
) -> Tuple[str, ...]:
    """
    Correct name plus up to `distractor_count` distinct wrong names.

    Fewer other people means fewer distractors, never duplicates.
    """
    wrong: List[str] = []
    for other in name_pool:
        name = other.display_name
        if other.person_id == person.person_id or name == person.display_name:
            continue
        if name not in wrong:
            wrong.append(name)

    picked = rng.sample(wrong, min(max(0, distractor_count), len(wrong)))
    options = picked + [person.display_name]
    rng.shuffle(options)
    return tuple(options)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

@dataclass
class QuizSession:
    mode: QuizMode
    items: List[QuizItem]
    states: Dict[str, Optional[ReviewState]] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    answers: Dict[int, QuizAnswer] = field(default_factory=dict)
    status: SessionStatus = SessionStatus.CREATED

    def __post_init__(self) -> None:
        if not self.items:
            self.status = SessionStatus.COMPLETE

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def correct_count(self) -> int:
        return sum(1 for a in self.answers.values() if a.was_correct)

    @property
    def remaining(self) -> int:
        return len(self.items) - len(self.answers)

    def check_answerable(self, item_index: int) -> QuizItem:
        if self.status is SessionStatus.COMPLETE:
            raise QuizSessionError(f"Session {self.id} is already complete")
        if not 0 <= item_index < len(self.items):
            raise QuizSessionError(f"No item {item_index} in session {self.id}")
        if item_index in self.answers:
            raise QuizSessionError(f"Item {item_index} was already answered")
        return self.items[item_index]

    def grade(
        self,
        item_index: int,
        guess: Optional[str],
        now: datetime,
        prior_state: Optional[ReviewState],
        response_time_ms: Optional[int] = None,
    ) -> QuizAnswer:
        """
        Grade one item against `prior_state` without touching the session.

        A None guess ("I don't know") counts as wrong.
        """
        item = self.check_answerable(item_index)
        was_correct = guess is not None and guess == item.correct_name
        return QuizAnswer(
            item_index=item_index,
            person_id=item.person_id,
            guess=guess,
            was_correct=was_correct,
            answered_at=now,
            new_state=record_attempt(prior_state, was_correct, now),
            response_time_ms=response_time_ms,
        )

    def record(self, answer: QuizAnswer) -> QuizAnswer:
        """Mark a graded item answered and advance the status."""
        self.check_answerable(answer.item_index)
        self.states[answer.person_id] = answer.new_state
        self.answers[answer.item_index] = answer
        self.status = SessionStatus.COMPLETE if self.remaining == 0 else SessionStatus.IN_PROGRESS
        return answer

    def answer(
        self,
        item_index: int,
        guess: Optional[str],
        now: datetime,
        response_time_ms: Optional[int] = None,
    ) -> QuizAnswer:
        """Grade against the session's own copy of the schedule and record it."""
        item = self.check_answerable(item_index)
        graded = self.grade(item_index, guess, now, self.states.get(item.person_id), response_time_ms)
        return self.record(graded)

    def summary(self) -> SessionSummary:
        return summarize(self.correct_count, len(self.answers))


def build_quiz_session(
    pool: Sequence[QuizPerson],
    mode: QuizMode = QuizMode.SPACED,
    distractor_count: int = DEFAULT_DISTRACTORS,
    seed: Optional[int] = None,
    *,
    rng: Optional[random.Random] = None,
    subset_ids: Optional[Iterable[str]] = None,
    filters: Optional[QuizFilter] = None,
    now: Optional[datetime] = None,
    name_pool: Optional[Sequence[QuizPerson]] = None,
) -> QuizSession:
    """
    Pick people for `mode`, build one item each and shuffle the item order once.

    Distractors come from `name_pool` (default: everyone eligible in `pool`),
    so a filtered quiz of one person still gets wrong answers to choose from.
    An empty selection yields an empty, already-complete session.
    """
    if rng is None:
        rng = random.Random(seed)
    if now is None:
        now = utcnow()

    mode = QuizMode(mode)
    selected = select_people(pool, mode, now, subset_ids, filters)
    names = eligible_people(name_pool if name_pool else pool)

    items = [
        QuizItem(
            person_id=p.person_id,
            correct_name=p.display_name,
            sample_id=p.quiz_sample_id,
            options=build_options(p, names, distractor_count, rng),
        )
        for p in selected
    ]
    rng.shuffle(items)

    logger.debug("Built %s quiz with %d items", mode.value, len(items))
    return QuizSession(
        mode=mode,
        items=items,
        states={p.person_id: p.review_state for p in selected},
    )
