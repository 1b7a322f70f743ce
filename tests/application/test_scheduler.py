import math
from datetime import datetime, timedelta, timezone

import pytest

from tests.factories import T0, make_memory
from wordmemory.application.scheduler import (
    RetrievabilityBasis,
    ReviewScheduler,
    clamp_transition,
    score,
    transition_again,
    transition_good,
    transition_hard,
)
from wordmemory.domain.constants import MAX_INTERVAL_DAYS, MAX_STABILITY
from wordmemory.domain.errors import InvalidRating, InvalidState
from wordmemory.domain.models import CardState, Rating

ALL_RATINGS = list(Rating)
ALL_STATES = list(CardState)


@pytest.fixture
def scheduler():
    return ReviewScheduler()


# --- Concrete scenarios ---


def test_good_on_new_word(scheduler):
    result = scheduler.score(make_memory(), Rating.GOOD, T0)

    assert result.stability == 2.0
    assert result.state == CardState.LEARNING
    assert result.next_review == T0 + timedelta(days=2)
    assert result.review_count == 1
    assert result.lapse_count == 0


def test_again_on_new_word(scheduler):
    result = scheduler.score(make_memory(), Rating.AGAIN, T0)

    assert result.stability == 1.0  # max(1, 0.5)
    assert result.difficulty == 6.0
    assert result.state == CardState.LEARNING
    assert result.next_review == T0 + timedelta(minutes=10)
    assert result.lapse_count == 1


def test_again_on_review_word_relearns(scheduler):
    result = scheduler.score(make_memory(state=CardState.REVIEW), Rating.AGAIN, T0)
    assert result.state == CardState.RELEARNING


def test_hard_keeps_state_and_uses_shorter_interval(scheduler):
    result = scheduler.score(make_memory(state=CardState.REVIEW, stability=10.0), Rating.HARD, T0)

    assert result.state == CardState.REVIEW
    assert result.stability == pytest.approx(12.0)
    assert result.difficulty == 5.5
    assert result.next_review == T0 + timedelta(days=result.stability * 0.8)


def test_easy_always_graduates(scheduler):
    result = scheduler.score(make_memory(), Rating.EASY, T0)

    assert result.state == CardState.REVIEW
    assert result.stability == 3.0
    assert result.difficulty == 4.5
    assert result.next_review == T0 + timedelta(days=4.5)


# --- State machine ---


@pytest.mark.parametrize(
    "start,rating,expected",
    [
        (CardState.NEW, Rating.AGAIN, CardState.LEARNING),
        (CardState.LEARNING, Rating.AGAIN, CardState.LEARNING),
        (CardState.REVIEW, Rating.AGAIN, CardState.RELEARNING),
        (CardState.RELEARNING, Rating.AGAIN, CardState.RELEARNING),
        (CardState.NEW, Rating.GOOD, CardState.LEARNING),
        (CardState.LEARNING, Rating.GOOD, CardState.REVIEW),
        (CardState.RELEARNING, Rating.GOOD, CardState.REVIEW),
        (CardState.REVIEW, Rating.GOOD, CardState.REVIEW),
        (CardState.NEW, Rating.HARD, CardState.NEW),
        (CardState.RELEARNING, Rating.HARD, CardState.RELEARNING),
        (CardState.NEW, Rating.EASY, CardState.REVIEW),
        (CardState.RELEARNING, Rating.EASY, CardState.REVIEW),
    ],
)
def test_state_transitions(scheduler, start, rating, expected):
    assert scheduler.score(make_memory(state=start), rating, T0).state == expected


# --- Properties over every rating and state ---


@pytest.mark.parametrize("rating", ALL_RATINGS)
@pytest.mark.parametrize("state", ALL_STATES)
def test_common_invariants(scheduler, rating, state):
    memory = make_memory(state=state, review_count=4, lapse_count=2)
    result = scheduler.score(memory, rating, T0)

    assert result.review_count == 5
    assert result.last_reviewed == T0
    assert result.lapse_count == (3 if rating == Rating.AGAIN else 2)
    assert 1.0 <= result.difficulty <= 10.0
    assert result.stability > 0
    assert result.next_review > T0
    assert 0.0 < result.retrievability <= 1.0


@pytest.mark.parametrize("rating", ALL_RATINGS)
@pytest.mark.parametrize("difficulty", [0.0, 1.0, 9.8, 10.0])
def test_difficulty_is_clamped(scheduler, rating, difficulty):
    result = scheduler.score(make_memory(difficulty=difficulty), rating, T0)
    assert 1.0 <= result.difficulty <= 10.0


def test_good_clamps_difficulty_too(scheduler):
    # The Good branch leaves difficulty alone, but the shared clamp still applies
    result = scheduler.score(make_memory(difficulty=0.2), Rating.GOOD, T0)
    assert result.difficulty == 1.0


@pytest.mark.parametrize("rating", [Rating.HARD, Rating.GOOD, Rating.EASY])
def test_tiny_stability_never_reaches_zero(scheduler, rating):
    result = scheduler.score(make_memory(stability=1e-9), rating, T0)
    assert result.stability >= 0.01
    assert result.next_review > T0


def test_repeated_easy_stays_bounded(scheduler):
    memory = make_memory()
    for _ in range(20):
        memory = scheduler.score(memory, Rating.EASY, T0)

    assert memory.stability == MAX_STABILITY
    assert memory.next_review == T0 + timedelta(days=MAX_INTERVAL_DAYS)
    assert memory.review_count == 20


@pytest.mark.parametrize("rating", ALL_RATINGS)
def test_huge_stability_is_capped(scheduler, rating):
    memory = make_memory(state=CardState.REVIEW, stability=4e6)

    result = scheduler.score(memory, rating, T0)

    assert 0 < result.stability <= MAX_STABILITY
    assert T0 < result.next_review <= T0 + timedelta(days=MAX_INTERVAL_DAYS)


def test_now_at_end_of_calendar_is_invalid_state(scheduler):
    end = datetime.max.replace(tzinfo=timezone.utc) - timedelta(days=1)
    memory = make_memory(state=CardState.REVIEW, stability=10.0, next_review=end)

    with pytest.raises(InvalidState):
        scheduler.score(memory, Rating.GOOD, end)


def test_input_is_not_mutated(scheduler):
    memory = make_memory(state=CardState.REVIEW, stability=4.0)
    snapshot = (memory.stability, memory.difficulty, memory.state, memory.review_count)

    result = scheduler.score(memory, Rating.AGAIN, T0)

    assert result is not memory
    assert (memory.stability, memory.difficulty, memory.state, memory.review_count) == snapshot


def test_integer_rating_accepted(scheduler):
    assert scheduler.score(make_memory(), 3, T0).state == CardState.LEARNING


# --- Retrievability ---


def test_first_review_uses_one_day_and_updated_stability(scheduler):
    result = scheduler.score(make_memory(stability=1.0), Rating.GOOD, T0)
    assert result.retrievability == pytest.approx(math.exp(-1 / 2.0))


def test_retrievability_uses_time_since_previous_review(scheduler):
    memory = make_memory(
        state=CardState.REVIEW, stability=4.0, last_reviewed=T0 - timedelta(days=3)
    )
    result = scheduler.score(memory, Rating.GOOD, T0)
    assert result.retrievability == pytest.approx(math.exp(-3 / 8.0))


def test_previous_basis_uses_pre_update_stability():
    memory = make_memory(
        state=CardState.REVIEW, stability=4.0, last_reviewed=T0 - timedelta(days=3)
    )
    result = ReviewScheduler(RetrievabilityBasis.PREVIOUS).score(memory, Rating.GOOD, T0)
    assert result.retrievability == pytest.approx(math.exp(-3 / 4.0))


def test_review_before_last_review_does_not_exceed_one(scheduler):
    memory = make_memory(last_reviewed=T0 + timedelta(hours=1))
    assert scheduler.score(memory, Rating.GOOD, T0).retrievability == 1.0


def test_functional_score_matches_scheduler():
    memory = make_memory()
    assert score(memory, Rating.EASY, T0) == ReviewScheduler().score(memory, Rating.EASY, T0)


# --- Errors ---


@pytest.mark.parametrize("rating", [0, 5, -1, True, 2.0, "3", None])
def test_invalid_rating(scheduler, rating):
    with pytest.raises(InvalidRating):
        scheduler.score(make_memory(), rating, T0)


@pytest.mark.parametrize(
    "overrides",
    [
        {"stability": 0.0},
        {"stability": -1.0},
        {"stability": float("nan")},
        {"difficulty": 11.0},
        {"difficulty": float("inf")},
        {"review_count": -1},
        {"lapse_count": -2},
        {"state": "review"},
        {"next_review": None},
        {"next_review": T0.replace(tzinfo=None)},
    ],
)
def test_invalid_state(scheduler, overrides):
    with pytest.raises(InvalidState):
        scheduler.score(make_memory(**overrides), Rating.GOOD, T0)


def test_naive_now_rejected(scheduler):
    with pytest.raises(InvalidState):
        scheduler.score(make_memory(), Rating.GOOD, T0.replace(tzinfo=None))


# --- Branch functions ---


def test_branches_are_independently_testable():
    memory = make_memory(stability=4.0, state=CardState.LEARNING)

    assert transition_again(memory).lapse is True
    assert transition_hard(memory).interval_factor == 0.8
    assert transition_good(memory).state == CardState.REVIEW


def test_clamp_transition_bounds():
    raw = transition_again(make_memory(difficulty=10.0))
    assert raw.difficulty == 11.0
    assert clamp_transition(raw).difficulty == 10.0
