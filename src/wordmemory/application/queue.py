"""
Due queue: the words whose next review time has passed.
"""

from collections.abc import Iterable, Iterator
from datetime import datetime

from wordmemory.domain.models import Word


class DueQueue:
    """
    Lazy view over a word collection, filtered to due words.

    Every iteration re-reads `words`, so the queue reflects the collection
    as it is at iteration time. Order is the collection's order.
    """

    def __init__(self, words: Iterable[Word], now: datetime):
        self._words = words
        self.now = now

    def __iter__(self) -> Iterator[Word]:
        for word in self._words:
            if word.memory.next_review <= self.now:
                yield word

    def __repr__(self) -> str:
        return f"DueQueue(now={self.now.isoformat()})"


def due_queue(words: Iterable[Word], now: datetime) -> DueQueue:
    """Words with `next_review <= now`, in insertion order."""
    return DueQueue(words, now)
