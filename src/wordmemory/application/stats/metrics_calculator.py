"""
Metrics calculator for deriving insights from word memory states.

This is a pure computation module with no I/O.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from wordmemory.application.session import StudySession
from wordmemory.domain.constants import SECONDS_PER_DAY
from wordmemory.domain.models import CardState, StudyStats, Word


@dataclass
class EnrichedWord:
    """
    Word stats enriched with computed metrics.
    """

    word_id: str
    original: str
    state: CardState
    review_count: int
    lapse_count: int

    # Memory state (from the record)
    stability: float
    difficulty: float

    # Computed metrics
    current_retrievability: float | None
    lapse_rate: float | None  # lapses / reviews
    days_overdue: int  # Negative if not yet due


class MetricsCalculator:
    """
    Computes derived metrics from word records.

    Stateless and side-effect free. `now` is always passed in.
    """

    def enrich(self, word: Word, now: datetime) -> EnrichedWord:
        """
        Enrich a word with computed metrics.
        """
        memory = word.memory
        return EnrichedWord(
            word_id=word.id,
            original=word.original,
            state=memory.state,
            review_count=memory.review_count,
            lapse_count=memory.lapse_count,
            stability=memory.stability,
            difficulty=memory.difficulty,
            current_retrievability=self._compute_retrievability(word, now),
            lapse_rate=self._compute_lapse_rate(word),
            days_overdue=self._compute_days_overdue(word, now),
        )

    def summarize(
        self,
        words: Sequence[Word],
        now: datetime,
        sessions: Iterable[StudySession] = (),
    ) -> StudyStats:
        """Aggregate statistics for the dashboard."""
        reviewed = [w for w in words if w.memory.review_count > 0]
        total_reviews = sum(w.memory.review_count for w in reviewed)
        total_lapses = sum(w.memory.lapse_count for w in reviewed)

        finished = [s for s in sessions if s.end_time is not None]

        return StudyStats(
            total_words=len(words),
            words_learned=sum(1 for w in words if w.memory.state == CardState.REVIEW),
            words_to_review=sum(1 for w in words if w.memory.next_review <= now),
            daily_streak=self._compute_streak(finished, now.date()),
            retention_rate=self._compute_retention_rate(total_reviews, total_lapses),
            average_session_time=self._compute_average_session_time(finished),
        )

    def _compute_retrievability(self, word: Word, now: datetime) -> float | None:
        """
        Current recall probability.

        R = exp(-t/S) where t = days since last review, S = stability.
        """
        memory = word.memory
        if memory.last_reviewed is None or memory.stability <= 0:
            return None

        days_elapsed = max(0.0, (now - memory.last_reviewed).total_seconds() / SECONDS_PER_DAY)
        return math.exp(-days_elapsed / memory.stability)

    def _compute_lapse_rate(self, word: Word) -> float | None:
        if word.memory.review_count == 0:
            return None
        return word.memory.lapse_count / word.memory.review_count

    def _compute_days_overdue(self, word: Word, now: datetime) -> int:
        return int((now - word.memory.next_review).total_seconds() // SECONDS_PER_DAY)

    @staticmethod
    def _compute_retention_rate(total_reviews: int, total_lapses: int) -> int:
        if total_reviews <= 0:
            return 0
        return round((total_reviews - total_lapses) / total_reviews * 100)

    @staticmethod
    def _compute_streak(sessions: list[StudySession], today: date) -> int:
        """
        Consecutive study days ending today, or yesterday if nothing yet today.
        """
        days = {s.start_time.date() for s in sessions}
        if not days:
            return 0

        cursor = today if today in days else today - timedelta(days=1)
        streak = 0
        while cursor in days:
            streak += 1
            cursor -= timedelta(days=1)
        return streak

    @staticmethod
    def _compute_average_session_time(sessions: list[StudySession]) -> float:
        durations = [s.duration_seconds for s in sessions if s.duration_seconds is not None]
        if not durations:
            return 0.0
        return sum(durations) / len(durations)
