"""
Domain models for words and their memory state.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum, IntEnum

from .constants import (
    INITIAL_DIFFICULTY,
    INITIAL_DUE_DAYS,
    INITIAL_RETRIEVABILITY,
    INITIAL_STABILITY,
)


class Rating(IntEnum):
    """Button pressed when answering a card."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


class CardState(str, Enum):
    """Lifecycle stage of a word."""

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


@dataclass(frozen=True)
class WordMemoryState:
    """
    Memory state of a word, the part of the record the scheduler owns.

    Attributes:
        difficulty: Perceived difficulty on a 1-10 scale.
        stability: Days until recall probability decays to ~37% (1/e).
        retrievability: Estimated probability of recall at the last review (0.0-1.0).
        state: Lifecycle stage.
        next_review: When the word becomes due.
        last_reviewed: Time of the most recent review, None for unseen words.
        review_count: Total number of reviews.
        lapse_count: Number of reviews rated Again.
    """

    difficulty: float
    stability: float
    retrievability: float
    state: CardState
    next_review: datetime
    last_reviewed: datetime | None = None
    review_count: int = 0
    lapse_count: int = 0

    @property
    def interval_days(self) -> float:
        """Scheduled gap between the last review and the next one."""
        if self.last_reviewed is None:
            return 0.0
        return (self.next_review - self.last_reviewed).total_seconds() / 86400.0


def initial_memory_state(now: datetime) -> WordMemoryState:
    """Memory state of a freshly added word: due one day after creation."""
    return WordMemoryState(
        difficulty=INITIAL_DIFFICULTY,
        stability=INITIAL_STABILITY,
        retrievability=INITIAL_RETRIEVABILITY,
        state=CardState.NEW,
        next_review=now + timedelta(days=INITIAL_DUE_DAYS),
    )


@dataclass(frozen=True)
class Word:
    """
    A vocabulary entry.

    `translations` maps a language code (e.g. "de", "tr") to the translated text.
    """

    id: str
    original: str
    created_at: datetime
    memory: WordMemoryState
    translations: dict[str, str] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    notes: str = ""
    examples: list[str] = field(default_factory=list)
    audio_url: str | None = None

    @property
    def state(self) -> CardState:
        return self.memory.state

    @property
    def next_review(self) -> datetime:
        return self.memory.next_review


@dataclass
class StudyStats:
    """Aggregate statistics over a word collection."""

    total_words: int = 0
    words_learned: int = 0
    words_to_review: int = 0
    daily_streak: int = 0
    retention_rate: int = 0  # percent
    average_session_time: float = 0.0  # seconds


@dataclass(frozen=True)
class ReviewRecord:
    """
    A single answered card inside a study session.

    Attributes:
        word_id: The word that was reviewed.
        rating: Button pressed.
        response_time_ms: Time the user took to answer.
        timestamp: When the answer was submitted.
        previous_interval: Interval in days before this review.
        new_interval: Interval in days assigned by this review.
    """

    word_id: str
    rating: Rating
    response_time_ms: int
    timestamp: datetime
    previous_interval: float
    new_interval: float
