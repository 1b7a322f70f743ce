"""
Word Service — Application layer orchestrator for the word collection.

Owns the add/update/delete/review lifecycle. Scoring is delegated to the
ReviewScheduler, persistence to a WordRepository, and automatic backups to an
optional BackupManager.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from wordmemory.domain.errors import WordNotFoundError, WordValidationError
from wordmemory.domain.models import Rating, StudyStats, Word, initial_memory_state
from wordmemory.domain.ports import WordRepository

from .id_service import generate_word_id
from .queue import due_queue
from .scheduler import ReviewScheduler, parse_rating
from .session import StudySession
from .stats.metrics_calculator import MetricsCalculator

if TYPE_CHECKING:
    from wordmemory.infrastructure.backup import BackupManager

logger = logging.getLogger(__name__)

# Content fields callers may change; memory is only changed by reviews.
EDITABLE_FIELDS = frozenset(
    {"original", "translations", "tags", "notes", "examples", "audio_url"}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WordService:
    """
    Application service for the word store.

    Follows Dependency Inversion: depends on the WordRepository abstraction,
    not a concrete storage adapter.
    """

    def __init__(
        self,
        repository: WordRepository,
        scheduler: ReviewScheduler | None = None,
        backup_manager: "BackupManager | None" = None,
        calculator: MetricsCalculator | None = None,
    ):
        """
        Args:
            repository: The repository (port) for loading and saving words.
            scheduler: Optional custom scheduler; uses default if not provided.
            backup_manager: When set, a backup is written after every change.
            calculator: Optional custom calculator; uses default if not provided.
        """
        self._repo = repository
        self._scheduler = scheduler or ReviewScheduler()
        self._backups = backup_manager
        self._calc = calculator or MetricsCalculator()
        self._words: list[Word] = repository.load()
        self._sessions: list[StudySession] = repository.load_sessions()

    # ---------- Queries ----------

    def list_words(self) -> list[Word]:
        return list(self._words)

    def get_word(self, word_id: str) -> Word:
        for word in self._words:
            if word.id == word_id:
                return word
        raise WordNotFoundError(word_id)

    def today_queue(self, now: datetime | None = None) -> list[Word]:
        return list(due_queue(self._words, now or _utcnow()))

    def stats(self, now: datetime | None = None) -> StudyStats:
        return self._calc.summarize(self._words, now or _utcnow(), self._sessions)

    def snapshot(self) -> tuple[list[Word], StudyStats]:
        """Words and stats for backups."""
        return self.list_words(), self.stats()

    # ---------- Mutations ----------

    def add_word(
        self,
        original: str,
        translations: dict[str, str] | None = None,
        notes: str = "",
        examples: list[str] | tuple[str, ...] = (),
        tags: list[str] | tuple[str, ...] = (),
        now: datetime | None = None,
    ) -> Word:
        original = (original or "").strip()
        if not original:
            raise WordValidationError("A word needs its original text")

        now = now or _utcnow()
        word = Word(
            id=generate_word_id(),
            original=original,
            created_at=now,
            memory=initial_memory_state(now),
            translations={k: v for k, v in (translations or {}).items() if v},
            tags=list(tags),
            notes=notes,
            examples=list(examples),
        )
        self._words.append(word)
        self._commit("add")
        logger.info(f"Added word {word.id} ({word.original})")
        return word

    def update_word(self, word_id: str, **changes: Any) -> Word:
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise WordValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if "original" in changes and not (changes["original"] or "").strip():
            raise WordValidationError("A word needs its original text")

        updated = replace(self.get_word(word_id), **changes)
        self._replace(updated)
        self._commit("update", backup=False)
        return updated

    def delete_word(self, word_id: str) -> None:
        word = self.get_word(word_id)
        self._words = [w for w in self._words if w.id != word.id]
        self._commit("delete")
        logger.info(f"Deleted word {word_id}")

    def submit_review(
        self,
        word_id: str,
        rating: Rating | int,
        now: datetime | None = None,
        response_time_ms: int = 0,
        session: StudySession | None = None,
    ) -> Word:
        """
        Score a review through the scheduler and persist the result.

        Raises:
            WordNotFoundError: unknown word.
            InvalidRating / InvalidState: propagated from the scheduler.
        """
        now = now or _utcnow()
        word = self.get_word(word_id)
        grade = parse_rating(rating)

        memory = self._scheduler.score(word.memory, grade, now)
        reviewed = replace(word, memory=memory)
        self._replace(reviewed)

        if session is not None:
            session.record(
                word_id,
                grade,
                now,
                response_time_ms=response_time_ms,
                previous_interval=word.memory.interval_days,
                new_interval=memory.interval_days,
            )

        self._commit("review")
        logger.info(
            f"Reviewed {word_id} as {grade.name}: {memory.state.value}, "
            f"next review {memory.next_review.isoformat()}"
        )
        return reviewed

    def replace_all(self, words: list[Word]) -> None:
        """Swap in a whole collection (import, restore, sync pull)."""
        self._words = list(words)
        self._commit("replace")
        logger.info(f"Replaced collection with {len(words)} words")

    # ---------- Sessions ----------

    def start_session(self, now: datetime | None = None) -> StudySession:
        return StudySession.start(now or _utcnow())

    def end_session(self, session: StudySession, now: datetime | None = None) -> StudySession:
        session.end(now or _utcnow())
        self._sessions.append(session)
        self._repo.save_sessions(self._sessions)
        logger.info(
            f"Session {session.id} ended: {session.cards_reviewed} cards, "
            f"accuracy {session.accuracy:.0%}"
        )
        return session

    # ---------- Internals ----------

    def _replace(self, updated: Word) -> None:
        self._words = [updated if w.id == updated.id else w for w in self._words]

    def _commit(self, reason: str, backup: bool = True) -> None:
        self._repo.save(self._words)
        if backup and self._backups is not None:
            try:
                words, stats = self.snapshot()
                self._backups.create_backup(words, stats, "auto")
            except Exception as e:
                logger.warning(f"Backup after {reason} failed: {e}")
