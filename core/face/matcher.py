# core/face/matcher.py
"""
Identity matching: which known person (if any) does a new embedding belong to?

The matcher works on a read-only projection of the store,
    [(person_id, [embedding, ...]), ...]
so it never touches the DB and can be unit-tested without one.

Scoring:
    - Each person's score is the MAX similarity over all of their samples
      (nearest neighbour per identity cluster). Averaging would penalize
      people photographed under varied lighting/angles.
    - Candidates are ranked by descending score.

Decision:
    - accept  → top score >= auto_accept_threshold (auto-label, no confirmation)
    - review  → review_floor < top score < auto_accept_threshold (suggest)
    - reject  → no candidates, or top score <= review_floor (new person)

If two or more people tie for the top score, accept is downgraded to review
and the result is flagged ambiguous.
"""

from __future__ import annotations

import enum
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from core.config import DEFAULT_AUTO_ACCEPT, DEFAULT_REVIEW_FLOOR
from core.face.similarity import Vector, as_vector, similarity_to_many

logger = logging.getLogger(__name__)

# Scores closer than this to the top score count as a tie.
TIE_EPSILON = 1e-6

# Added to people already labeled in the same capture event.
ENCOUNTER_BOOST = 0.05

KnownPerson = Tuple[str, Sequence[Vector]]


class MatchDecision(str, enum.Enum):
    ACCEPT = "accept"
    REVIEW = "review"
    REJECT = "reject"


@dataclass(frozen=True)
class Candidate:
    person_id: str
    score: float


@dataclass(frozen=True)
class MatchResult:
    """Outcome of one match call. Never persisted."""

    best_person_id: Optional[str]
    best_score: float
    decision: MatchDecision
    ambiguous: bool = False
    candidates: List[Candidate] = field(default_factory=list)

    @property
    def is_new_person(self) -> bool:
        return self.decision is MatchDecision.REJECT


def _score_person(query, samples: Sequence[Vector]) -> float:
    return float(similarity_to_many(query, samples).max())


def score_candidates(
    embedding: Vector,
    known_people: Iterable[KnownPerson],
    boost_person_ids: Iterable[str] = (),
    boost: float = ENCOUNTER_BOOST,
    max_workers: int = 1,
) -> List[Candidate]:
    """
    Score every person that has at least one sample, best first.

    With max_workers > 1 the per-person reductions run on a thread pool and
    are merged afterwards; the result is identical to the serial path.
    """
    query = as_vector(embedding)
    people = [(pid, list(samples)) for pid, samples in known_people if len(samples) > 0]
    if not people:
        return []

    if max_workers > 1 and len(people) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            scores = list(pool.map(lambda item: _score_person(query, item[1]), people))
    else:
        scores = [_score_person(query, samples) for _, samples in people]

    boosted = set(boost_person_ids)
    candidates = []
    for (pid, _), score in zip(people, scores):
        if pid in boosted:
            score = min(score + boost, 1.0)
        candidates.append(Candidate(person_id=pid, score=score))

    # sorted() is stable, so equal scores keep input order.
    return sorted(candidates, key=lambda c: c.score, reverse=True)


def match_face(
    embedding: Vector,
    known_people: Iterable[KnownPerson],
    auto_accept_threshold: float = DEFAULT_AUTO_ACCEPT,
    *,
    review_floor: float = DEFAULT_REVIEW_FLOOR,
    boost_person_ids: Iterable[str] = (),
    boost: float = ENCOUNTER_BOOST,
    max_workers: int = 1,
) -> MatchResult:
    """
    Decide which known person (if any) the embedding belongs to.

    Raises DimensionMismatch if any stored sample has a different length
    than the query; no partial result is returned in that case.
    """
    candidates = score_candidates(
        embedding,
        known_people,
        boost_person_ids=boost_person_ids,
        boost=boost,
        max_workers=max_workers,
    )

    if not candidates:
        logger.debug("No enrolled people; rejecting")
        return MatchResult(best_person_id=None, best_score=0.0, decision=MatchDecision.REJECT)

    top = candidates[0]
    if top.score <= review_floor:
        logger.debug("Top score %.4f <= floor %.2f; rejecting", top.score, review_floor)
        return MatchResult(
            best_person_id=None,
            best_score=top.score,
            decision=MatchDecision.REJECT,
            candidates=candidates,
        )

    tied = sum(1 for c in candidates if top.score - c.score <= TIE_EPSILON)
    ambiguous = tied > 1

    if top.score >= auto_accept_threshold and not ambiguous:
        decision = MatchDecision.ACCEPT
    else:
        decision = MatchDecision.REVIEW

    logger.debug(
        "Match decision=%s person=%s score=%.4f ambiguous=%s",
        decision.value, top.person_id, top.score, ambiguous,
    )
    return MatchResult(
        best_person_id=top.person_id,
        best_score=top.score,
        decision=decision,
        ambiguous=ambiguous,
        candidates=candidates,
    )
