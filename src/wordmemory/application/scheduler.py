"""
Review scheduler: the simplified FSRS-style update rule.

Given a word's memory state, a rating and the instant the rating was submitted,
computes the next memory state. Pure computation, no I/O and no clock reads.
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum

from wordmemory.domain.constants import (
    AGAIN_DIFFICULTY_DELTA,
    AGAIN_MIN_STABILITY,
    AGAIN_RELEARN_MINUTES,
    AGAIN_STABILITY_FACTOR,
    EASY_DIFFICULTY_DELTA,
    EASY_INTERVAL_FACTOR,
    EASY_STABILITY_FACTOR,
    FIRST_REVIEW_ELAPSED_DAYS,
    GOOD_STABILITY_FACTOR,
    HARD_DIFFICULTY_DELTA,
    HARD_INTERVAL_FACTOR,
    HARD_STABILITY_FACTOR,
    INPUT_DIFFICULTY_RANGE,
    MAX_DIFFICULTY,
    MAX_INTERVAL_DAYS,
    MAX_STABILITY,
    MIN_DIFFICULTY,
    MIN_STABILITY,
    SECONDS_PER_DAY,
)
from wordmemory.domain.errors import InvalidRating, InvalidState
from wordmemory.domain.models import CardState, Rating, WordMemoryState

logger = logging.getLogger(__name__)


class RetrievabilityBasis(str, Enum):
    """
    Which stability value the retrievability estimate decays against.

    UPDATED uses the stability computed by this review (historical behaviour).
    PREVIOUS uses the stability the word had before the review.
    """

    UPDATED = "updated"
    PREVIOUS = "previous"


@dataclass(frozen=True)
class Transition:
    """
    Raw outcome of one rating branch, before clamping.

    The next review is `fixed_delay` after now when set, otherwise
    `interval_factor * stability` days after now, capped at MAX_INTERVAL_DAYS.
    """

    stability: float
    difficulty: float
    state: CardState
    interval_factor: float = 1.0
    fixed_delay: timedelta | None = None
    lapse: bool = False


def transition_again(memory: WordMemoryState) -> Transition:
    relapsed = memory.state in (CardState.REVIEW, CardState.RELEARNING)
    return Transition(
        stability=max(AGAIN_MIN_STABILITY, memory.stability * AGAIN_STABILITY_FACTOR),
        difficulty=memory.difficulty + AGAIN_DIFFICULTY_DELTA,
        state=CardState.RELEARNING if relapsed else CardState.LEARNING,
        fixed_delay=timedelta(minutes=AGAIN_RELEARN_MINUTES),
        lapse=True,
    )


def transition_hard(memory: WordMemoryState) -> Transition:
    return Transition(
        stability=memory.stability * HARD_STABILITY_FACTOR,
        difficulty=memory.difficulty + HARD_DIFFICULTY_DELTA,
        state=memory.state,
        interval_factor=HARD_INTERVAL_FACTOR,
    )


def transition_good(memory: WordMemoryState) -> Transition:
    if memory.state == CardState.NEW:
        state = CardState.LEARNING
    elif memory.state in (CardState.LEARNING, CardState.RELEARNING):
        state = CardState.REVIEW
    else:
        state = memory.state
    return Transition(
        stability=memory.stability * GOOD_STABILITY_FACTOR,
        difficulty=memory.difficulty,
        state=state,
    )


def transition_easy(memory: WordMemoryState) -> Transition:
    return Transition(
        stability=memory.stability * EASY_STABILITY_FACTOR,
        difficulty=memory.difficulty + EASY_DIFFICULTY_DELTA,
        state=CardState.REVIEW,
        interval_factor=EASY_INTERVAL_FACTOR,
    )


TRANSITIONS: dict[Rating, Callable[[WordMemoryState], Transition]] = {
    Rating.AGAIN: transition_again,
    Rating.HARD: transition_hard,
    Rating.GOOD: transition_good,
    Rating.EASY: transition_easy,
}


def clamp_transition(transition: Transition) -> Transition:
    """Shared clamp applied after every branch."""
    return replace(
        transition,
        stability=min(MAX_STABILITY, max(MIN_STABILITY, transition.stability)),
        difficulty=min(MAX_DIFFICULTY, max(MIN_DIFFICULTY, transition.difficulty)),
    )


def parse_rating(rating: object) -> Rating:
    """Coerce an integer grade into a Rating, rejecting anything else."""
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRating(rating)
    try:
        return Rating(rating)
    except ValueError:
        raise InvalidRating(rating) from None


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_aware(value: datetime) -> bool:
    return value.tzinfo is not None and value.utcoffset() is not None


def validate_memory_state(memory: object) -> WordMemoryState:
    """
    Check a memory state before scoring.

    Raises:
        InvalidState: on any malformed field. Nothing is repaired.
    """
    if not isinstance(memory, WordMemoryState):
        raise InvalidState(f"Expected WordMemoryState, got {type(memory).__name__}")

    if not _is_number(memory.stability) or not math.isfinite(memory.stability):
        raise InvalidState(f"stability must be a finite number, got {memory.stability!r}")
    if memory.stability <= 0:
        raise InvalidState(f"stability must be positive, got {memory.stability}")

    low, high = INPUT_DIFFICULTY_RANGE
    if not _is_number(memory.difficulty) or not math.isfinite(memory.difficulty):
        raise InvalidState(f"difficulty must be a finite number, got {memory.difficulty!r}")
    if not low <= memory.difficulty <= high:
        raise InvalidState(f"difficulty must be within [{low}, {high}], got {memory.difficulty}")

    if not isinstance(memory.state, CardState):
        raise InvalidState(f"Unknown lifecycle state {memory.state!r}")

    for name in ("review_count", "lapse_count"):
        value = getattr(memory, name)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidState(f"{name} must be a non-negative integer, got {value!r}")

    if not isinstance(memory.next_review, datetime):
        raise InvalidState("next_review is required")
    if not _is_aware(memory.next_review):
        raise InvalidState("next_review must be timezone-aware")
    if memory.last_reviewed is not None:
        if not isinstance(memory.last_reviewed, datetime) or not _is_aware(memory.last_reviewed):
            raise InvalidState("last_reviewed must be a timezone-aware datetime")

    return memory


def elapsed_days(memory: WordMemoryState, now: datetime) -> float:
    """Days since the previous review; one day for a word never reviewed."""
    if memory.last_reviewed is None:
        return FIRST_REVIEW_ELAPSED_DAYS
    return max(0.0, (now - memory.last_reviewed).total_seconds() / SECONDS_PER_DAY)


class ReviewScheduler:
    """
    Computes the next memory state of a word from a rating.

    Stateless apart from its configuration; safe to share.
    """

    def __init__(self, retrievability_basis: RetrievabilityBasis = RetrievabilityBasis.UPDATED):
        self.retrievability_basis = RetrievabilityBasis(retrievability_basis)

    def score(self, memory: WordMemoryState, rating: Rating | int, now: datetime) -> WordMemoryState:
        """
        Apply one review and return the new memory state.

        Args:
            memory: Current memory state. Never mutated.
            rating: Again(1), Hard(2), Good(3) or Easy(4).
            now: Instant the rating was submitted (timezone-aware).

        Raises:
            InvalidRating: rating outside 1-4.
            InvalidState: malformed memory state or naive `now`.
        """
        grade = parse_rating(rating)
        validate_memory_state(memory)
        if not isinstance(now, datetime) or not _is_aware(now):
            raise InvalidState("now must be a timezone-aware datetime")

        transition = clamp_transition(TRANSITIONS[grade](memory))

        if transition.fixed_delay is not None:
            delay = transition.fixed_delay
        else:
            interval = min(MAX_INTERVAL_DAYS, transition.stability * transition.interval_factor)
            delay = timedelta(days=interval)
        try:
            next_review = now + delay
        except OverflowError:
            raise InvalidState(
                f"now {now.isoformat()} leaves no room for the next review"
            ) from None

        if self.retrievability_basis is RetrievabilityBasis.PREVIOUS:
            basis = memory.stability
        else:
            basis = transition.stability
        retrievability = math.exp(-elapsed_days(memory, now) / basis)

        updated = replace(
            memory,
            difficulty=transition.difficulty,
            stability=transition.stability,
            retrievability=retrievability,
            state=transition.state,
            last_reviewed=now,
            next_review=next_review,
            review_count=memory.review_count + 1,
            lapse_count=memory.lapse_count + (1 if transition.lapse else 0),
        )
        logger.debug(
            f"Scored {grade.name}: {memory.state.value} -> {updated.state.value}, "
            f"stability {memory.stability:.2f} -> {updated.stability:.2f}"
        )
        return updated


def score(
    memory: WordMemoryState,
    rating: Rating | int,
    now: datetime,
    retrievability_basis: RetrievabilityBasis = RetrievabilityBasis.UPDATED,
) -> WordMemoryState:
    """Functional shortcut for `ReviewScheduler(retrievability_basis).score(...)`."""
    return ReviewScheduler(retrievability_basis).score(memory, rating, now)
