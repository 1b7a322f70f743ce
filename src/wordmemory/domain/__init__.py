# Domain Package
from .errors import InvalidRating, InvalidState, WordMemoryError
from .models import CardState, Rating, StudyStats, Word, WordMemoryState, initial_memory_state

__all__ = [
    "CardState",
    "InvalidRating",
    "InvalidState",
    "Rating",
    "StudyStats",
    "Word",
    "WordMemoryError",
    "WordMemoryState",
    "initial_memory_state",
]
