# tests/test_quiz_session.py
"""
Unit tests for core.quiz.session: pool selection, option generation,
deterministic shuffling, lifecycle and accuracy tiers.
"""

import random
from datetime import timedelta

import pytest

from core.errors import QuizSessionError
from core.quiz.session import (
    AccuracyTier,
    QuizFilter,
    QuizMode,
    QuizPerson,
    SessionStatus,
    accuracy_tier,
    build_options,
    build_quiz_session,
    select_people,
    summarize,
)
from core.review.scheduler import ReviewState


def person(pid, name=None, samples=1, state=None, is_me=False, profile=None):
    return QuizPerson(
        person_id=pid,
        display_name=name or pid.capitalize(),
        sample_ids=tuple(f"{pid}-s{i}" for i in range(samples)),
        profile_sample_id=profile,
        review_state=state,
        is_me=is_me,
    )


@pytest.fixture
def pool():
    return [person(p) for p in ("alice", "bob", "carol", "dave", "erin", "frank")]


# ---------------------------------------------------------------------------
# Pool selection
# ---------------------------------------------------------------------------
def test_people_without_faces_and_me_are_never_quizzed(now):
    people = [person("alice"), person("nofaces", samples=0), person("me", is_me=True)]

    selected = select_people(people, QuizMode.ALL, now)

    assert [p.person_id for p in selected] == ["alice"]


def test_spaced_mode_picks_due_people(now):
    later = ReviewState(next_review_date=now + timedelta(days=3))
    exactly_now = ReviewState(next_review_date=now)
    people = [
        person("fresh"),
        person("later", state=later),
        person("due", state=exactly_now),
    ]

    selected = select_people(people, QuizMode.SPACED, now)

    assert {p.person_id for p in selected} == {"fresh", "due"}


def test_spaced_mode_falls_back_to_everyone_when_nothing_is_due(now):
    later = ReviewState(next_review_date=now + timedelta(days=3))
    people = [person("a", state=later), person("b", state=later)]

    selected = select_people(people, QuizMode.SPACED, now)

    assert {p.person_id for p in selected} == {"a", "b"}


def test_filtered_mode_uses_subset(pool, now):
    selected = select_people(pool, QuizMode.FILTERED, now, subset_ids=["bob", "erin", "ghost"])
    assert [p.person_id for p in selected] == ["bob", "erin"]


def test_trouble_mode(now):
    struggling = ReviewState(next_review_date=now, total_attempts=4, correct_attempts=1)
    fine = ReviewState(next_review_date=now, total_attempts=4, correct_attempts=3)
    too_new = ReviewState(next_review_date=now, total_attempts=1, correct_attempts=0)
    people = [
        person("s", state=struggling),
        person("f", state=fine),
        person("n", state=too_new),
        person("never"),
    ]

    selected = select_people(people, QuizMode.TROUBLE, now)

    assert [p.person_id for p in selected] == ["s"]


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------
def test_options_have_correct_answer_and_k_distractors(pool):
    rng = random.Random(1)
    for _ in range(20):
        options = build_options(pool[0], pool, 3, rng)
        assert len(options) == 4
        assert options.count("Alice") == 1
        assert len(set(options)) == 4


def test_options_pad_down_when_pool_is_small():
    people = [person("alice"), person("bob")]
    options = build_options(people[0], people, 3, random.Random(0))

    assert sorted(options) == ["Alice", "Bob"]


def test_duplicate_names_are_not_reused_as_distractors():
    people = [
        person("alice"),
        person("bob1", name="Bob"),
        person("bob2", name="Bob"),
        person("alice2", name="Alice"),
    ]
    options = build_options(people[0], people, 3, random.Random(0))

    assert sorted(options) == ["Alice", "Bob"]


def test_single_person_session_has_one_option(now):
    session = build_quiz_session([person("alice")], QuizMode.ALL, 3, seed=5, now=now)

    assert len(session.items) == 1
    item = session.items[0]
    assert item.options == ("Alice",)
    assert item.distractors == ()


def test_filtered_quiz_draws_distractors_from_name_pool(pool, now):
    session = build_quiz_session(
        pool,
        QuizMode.FILTERED,
        3,
        seed=2,
        subset_ids=["alice"],
        now=now,
    )

    assert [i.person_id for i in session.items] == ["alice"]
    assert len(session.items[0].options) == 4


def test_quiz_image_prefers_profile_sample(now):
    people = [
        person("alice", samples=3, profile="alice-s2"),
        person("bob", samples=2, profile="gone"),
    ]
    session = build_quiz_session(people, QuizMode.ALL, seed=0, now=now)
    images = {i.person_id: i.sample_id for i in session.items}

    assert images == {"alice": "alice-s2", "bob": "bob-s0"}


# ---------------------------------------------------------------------------
# Determinism
# ---------------------------------------------------------------------------
def test_same_seed_same_session(pool, now):
    a = build_quiz_session(pool, QuizMode.ALL, 3, seed=42, now=now)
    b = build_quiz_session(pool, QuizMode.ALL, 3, seed=42, now=now)

    assert a.items == b.items
    assert a.id != b.id


def test_injected_rng_is_used(pool, now):
    a = build_quiz_session(pool, QuizMode.ALL, rng=random.Random(9), now=now)
    b = build_quiz_session(pool, QuizMode.ALL, rng=random.Random(9), now=now)

    assert [i.person_id for i in a.items] == [i.person_id for i in b.items]


def test_every_selected_person_appears_once(pool, now):
    session = build_quiz_session(pool, QuizMode.ALL, seed=3, now=now)
    assert sorted(i.person_id for i in session.items) == sorted(p.person_id for p in pool)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------
def test_empty_pool_gives_empty_complete_session(now):
    session = build_quiz_session([], QuizMode.SPACED, now=now)

    assert session.is_empty
    assert session.status is SessionStatus.COMPLETE
    assert session.summary().total == 0


def test_session_lifecycle_and_scheduler_forwarding(now):
    people = [person("alice"), person("bob")]
    session = build_quiz_session(people, QuizMode.ALL, seed=1, now=now)
    assert session.status is SessionStatus.CREATED

    first = session.items[0]
    answer = session.answer(0, first.correct_name, now, response_time_ms=1200)

    assert answer.was_correct
    assert answer.new_state.interval == 1
    assert session.states[first.person_id] == answer.new_state
    assert session.status is SessionStatus.IN_PROGRESS

    wrong = session.answer(1, "Nobody", now)
    assert not wrong.was_correct
    assert wrong.new_state.repetitions == 0
    assert session.status is SessionStatus.COMPLETE

    summary = session.summary()
    assert (summary.correct, summary.total) == (1, 2)
    assert summary.tier is AccuracyTier.GOOD


def test_dont_know_counts_as_wrong(now):
    session = build_quiz_session([person("alice")], QuizMode.ALL, now=now)
    assert not session.answer(0, None, now).was_correct


def test_invalid_transitions_raise(now):
    session = build_quiz_session([person("alice"), person("bob")], QuizMode.ALL, now=now)
    session.answer(0, "Alice", now)

    with pytest.raises(QuizSessionError):
        session.answer(0, "Alice", now)
    with pytest.raises(QuizSessionError):
        session.answer(5, "Alice", now)

    session.answer(1, "Bob", now)
    with pytest.raises(QuizSessionError):
        session.answer(1, "Bob", now)


# ---------------------------------------------------------------------------
# Accuracy tiers
# ---------------------------------------------------------------------------
@pytest.mark.parametrize(
    "correct,total,tier",
    [
        (4, 5, AccuracyTier.EXCELLENT),
        (8, 10, AccuracyTier.EXCELLENT),
        (5, 5, AccuracyTier.EXCELLENT),
        (3, 5, AccuracyTier.GOOD),
        (1, 2, AccuracyTier.GOOD),
        (79, 100, AccuracyTier.GOOD),
        (2, 5, AccuracyTier.NEEDS_PRACTICE),
        (49, 100, AccuracyTier.NEEDS_PRACTICE),
        (0, 0, AccuracyTier.NEEDS_PRACTICE),
    ],
)
def test_accuracy_tier_boundaries(correct, total, tier):
    assert accuracy_tier(correct, total) is tier


def test_summary_numbers():
    summary = summarize(3, 5)
    assert summary.accuracy == pytest.approx(0.6)
    assert summary.percentage == 60


# ---------------------------------------------------------------------------
# Custom filters
# ---------------------------------------------------------------------------
def tagged(pid, tags=(), favorite=False):
    return QuizPerson(
        person_id=pid,
        display_name=pid.capitalize(),
        sample_ids=(f"{pid}-s0",),
        is_favorite=favorite,
        tags=tuple(tags),
    )


@pytest.fixture
def tagged_pool():
    return [
        tagged("alice", ["work"], favorite=True),
        tagged("bob", ["work", "gym"]),
        tagged("carol", ["family"], favorite=True),
        tagged("dave"),
    ]


def test_no_custom_filter_selects_nobody(tagged_pool, now):
    assert not QuizFilter().is_active
    assert select_people(tagged_pool, QuizMode.FILTERED, now, filters=QuizFilter()) == []


def test_favorites_only_filter(tagged_pool, now):
    selected = select_people(tagged_pool, QuizMode.FILTERED, now, filters=QuizFilter(favorites_only=True))
    assert [p.person_id for p in selected] == ["alice", "carol"]


def test_tag_filter_matches_any_tag(tagged_pool, now):
    filters = QuizFilter(tags=frozenset({"gym", "family"}))
    selected = select_people(tagged_pool, QuizMode.FILTERED, now, filters=filters)
    assert [p.person_id for p in selected] == ["bob", "carol"]


def test_filters_combine(tagged_pool, now):
    filters = QuizFilter(favorites_only=True, tags=frozenset({"work"}))
    selected = select_people(tagged_pool, QuizMode.FILTERED, now, subset_ids=["alice", "bob"], filters=filters)
    assert [p.person_id for p in selected] == ["alice"]


def test_filters_ignored_outside_filtered_mode(tagged_pool, now):
    selected = select_people(tagged_pool, QuizMode.ALL, now, filters=QuizFilter(favorites_only=True))
    assert len(selected) == 4


@pytest.mark.parametrize(
    "filters,text",
    [
        (QuizFilter(), "All faces"),
        (QuizFilter(favorites_only=True), "Favorites"),
        (QuizFilter(tags=frozenset({"a", "b", "c"})), "3 tags"),
        (QuizFilter(favorites_only=True, tags=frozenset({"a"})), "Favorites, 1 tag"),
    ],
)
def test_filter_description(filters, text):
    assert filters.describe() == text


# ---------------------------------------------------------------------------
# Grading without recording
# ---------------------------------------------------------------------------
def test_grade_uses_given_state_and_leaves_session_alone(now):
    session = build_quiz_session([person("alice")], QuizMode.ALL, now=now)
    stored = ReviewState(next_review_date=now, repetitions=1, interval=1, total_attempts=1, correct_attempts=1)

    graded = session.grade(0, "Alice", now, stored)

    assert graded.new_state.repetitions == 2
    assert graded.new_state.total_attempts == 2
    assert session.answers == {}
    assert session.status is SessionStatus.CREATED

    session.record(graded)
    assert session.states["alice"] == graded.new_state
    assert session.status is SessionStatus.COMPLETE
    with pytest.raises(QuizSessionError):
        session.record(graded)
