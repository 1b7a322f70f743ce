"""
Ports (interfaces) for storage and timers.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

from .models import Word

if TYPE_CHECKING:
    from wordmemory.application.session import StudySession


class WordRepository(ABC):
    """
    Port for loading and saving the whole word collection.

    Implementations:
        - JsonWordRepository: a single JSON document on disk.
        - InMemoryWordRepository: a list held in memory.
    """

    @abstractmethod
    def load(self) -> list[Word]:
        """Return every word in insertion order."""
        pass

    @abstractmethod
    def save(self, words: list[Word]) -> None:
        """Replace the stored collection with `words`."""
        pass

    def load_sessions(self) -> list["StudySession"]:
        """Completed study sessions. Repositories without session storage return []."""
        return []

    def save_sessions(self, sessions: list["StudySession"]) -> None:
        pass


class ScheduledTask(ABC):
    """Handle returned by a periodic scheduler."""

    @abstractmethod
    def cancel(self) -> None:
        pass


class PeriodicScheduler(ABC):
    """Port for running a callback at a fixed interval."""

    @abstractmethod
    def schedule_periodic_backup(
        self, interval_ms: int, callback: Callable[[], None]
    ) -> ScheduledTask:
        """
        Run `callback` every `interval_ms` milliseconds until the returned task is cancelled.
        """
        pass
