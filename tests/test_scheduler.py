# tests/test_scheduler.py
"""
Unit tests for core.review.scheduler (SM-2 with binary outcomes).
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.review.scheduler import (
    MIN_EASE,
    ReviewState,
    accuracy,
    days_until_review,
    is_due,
    record_attempt,
)


# ---------------------------------------------------------------------------
# Defaults / lazy creation
# ---------------------------------------------------------------------------
def test_new_state_defaults(now):
    state = ReviewState.new(now)

    assert state.ease_factor == 2.5
    assert state.interval == 0
    assert state.repetitions == 0
    assert state.next_review_date == now
    assert state.last_review_date is None
    assert state.total_attempts == 0
    assert state.correct_attempts == 0


def test_missing_state_is_created_on_first_attempt(now):
    state = record_attempt(None, True, now)

    assert state.total_attempts == 1
    assert state.correct_attempts == 1
    assert state.last_review_date == now


def test_record_attempt_does_not_mutate_input(now):
    before = ReviewState.new(now)
    after = record_attempt(before, True, now)

    assert before.total_attempts == 0
    assert after is not before


# ---------------------------------------------------------------------------
# Correct answers
# ---------------------------------------------------------------------------
def test_three_correct_answers_give_1_6_15(now):
    state = None
    intervals = []
    eases = []
    for _ in range(3):
        state = record_attempt(state, True, now)
        intervals.append(state.interval)
        eases.append(state.ease_factor)

    assert intervals == [1, 6, round(6 * 2.55)]
    assert intervals[2] == 15
    assert eases == [2.5, 2.55, 2.6]
    assert state.repetitions == 3
    assert state.is_established


def test_later_intervals_grow_by_ease(now):
    state = None
    for _ in range(4):
        state = record_attempt(state, True, now)

    # 15 * 2.60 = 39
    assert state.interval == 39
    assert state.ease_factor == pytest.approx(2.65)


def test_next_review_is_now_plus_interval(now):
    state = record_attempt(None, True, now)
    state = record_attempt(state, True, now)

    assert state.next_review_date == now + timedelta(days=6)
    assert state.last_review_date == now


def test_ease_has_a_sanity_cap(now):
    state = ReviewState(next_review_date=now, ease_factor=4.99, repetitions=5, interval=10)
    state = record_attempt(state, True, now)

    assert state.ease_factor == 5.0


def test_half_day_intervals_round_up(now):
    # 6 * 2.75 = 16.5
    state = ReviewState(next_review_date=now, ease_factor=2.75, repetitions=2, interval=6)
    state = record_attempt(state, True, now)

    assert state.interval == 17


# ---------------------------------------------------------------------------
# Incorrect answers
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("repetitions,interval", [(0, 0), (1, 1), (2, 6), (7, 120)])
def test_incorrect_resets_regardless_of_prior_state(now, repetitions, interval):
    state = ReviewState(
        next_review_date=now,
        ease_factor=2.5,
        repetitions=repetitions,
        interval=interval,
    )
    state = record_attempt(state, False, now)

    assert state.repetitions == 0
    assert state.interval == 1
    assert state.ease_factor == pytest.approx(2.3)
    assert state.next_review_date == now + timedelta(days=1)


def test_incorrect_ease_floor(now):
    state = ReviewState(next_review_date=now, ease_factor=1.4)
    state = record_attempt(state, False, now)

    assert state.ease_factor == 1.3


def test_many_misses_never_drop_ease_below_minimum(now):
    state = None
    for _ in range(20):
        state = record_attempt(state, False, now)

    assert state.ease_factor == MIN_EASE
    assert state.total_attempts == 20
    assert state.correct_attempts == 0


def test_out_of_range_ease_is_clamped_not_rejected(now):
    state = ReviewState(next_review_date=now, ease_factor=0.4, repetitions=2, interval=6)
    state = record_attempt(state, True, now)

    assert state.interval == round(6 * 1.3)
    assert state.ease_factor >= MIN_EASE


def test_miss_then_recover_starts_learning_again(now):
    state = None
    for _ in range(3):
        state = record_attempt(state, True, now)
    state = record_attempt(state, False, now)
    state = record_attempt(state, True, now)

    assert state.repetitions == 1
    assert state.interval == 1


def test_attempt_counters(now):
    state = None
    for outcome in (True, False, True):
        state = record_attempt(state, outcome, now)

    assert state.total_attempts == 3
    assert state.correct_attempts == 2
    assert accuracy(state) == pytest.approx(2 / 3)


# ---------------------------------------------------------------------------
# Due-ness
# ---------------------------------------------------------------------------
def test_is_due_boundary_inclusive(now):
    assert is_due(ReviewState(next_review_date=now), now)
    assert is_due(ReviewState(next_review_date=now - timedelta(seconds=1)), now)
    assert not is_due(ReviewState(next_review_date=now + timedelta(seconds=1)), now)


def test_missing_state_is_due(now):
    assert is_due(None, now)


def test_days_until_review_uses_calendar_days():
    now = datetime(2026, 3, 2, 23, 0)

    # Two hours away, but tomorrow.
    assert days_until_review(ReviewState(next_review_date=datetime(2026, 3, 3, 1, 0)), now) == 1
    # Later today.
    assert days_until_review(ReviewState(next_review_date=datetime(2026, 3, 2, 23, 59)), now) == 0
    # Earlier today (already due) still shows 0.
    assert days_until_review(ReviewState(next_review_date=datetime(2026, 3, 2, 0, 1)), now) == 0
    # Overdue.
    assert days_until_review(ReviewState(next_review_date=datetime(2026, 2, 27, 12, 0)), now) == -3


def test_days_until_review_aware_datetimes_use_callers_zone():
    paris = timezone(timedelta(hours=1))
    now = datetime(2026, 3, 2, 23, 30, tzinfo=paris)
    # 22:45 UTC is 23:45 in Paris: same calendar day.
    due = datetime(2026, 3, 2, 22, 45, tzinfo=timezone.utc)

    assert days_until_review(ReviewState(next_review_date=due), now) == 0


def test_accuracy_without_attempts_is_zero(now):
    assert accuracy(None) == 0.0
    assert accuracy(ReviewState.new(now)) == 0.0


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------
def test_to_dict_round_trip_keeps_only_stored_fields(now):
    state = record_attempt(record_attempt(None, True, now), False, now)
    data = state.to_dict()

    assert "needs_review" not in data
    assert "accuracy" not in data
    assert ReviewState.from_dict(data) == state
