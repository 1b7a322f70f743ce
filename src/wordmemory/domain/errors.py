"""Exception hierarchy for WordMemory."""


class WordMemoryError(Exception):
    """Base class for all WordMemory errors."""


class SchedulerError(WordMemoryError):
    """Raised when a review cannot be scored."""


class InvalidRating(SchedulerError):
    """Rating outside Again(1), Hard(2), Good(3), Easy(4)."""

    def __init__(self, rating: object):
        self.rating = rating
        super().__init__(f"Invalid rating {rating!r}: expected 1 (Again) to 4 (Easy)")


class InvalidState(SchedulerError):
    """Malformed memory state handed to the scheduler."""


class WordNotFoundError(WordMemoryError):
    def __init__(self, word_id: str):
        self.word_id = word_id
        super().__init__(f"Word not found: {word_id}")


class WordValidationError(WordMemoryError):
    """Word content rejected before it reaches the store."""


class BackupError(WordMemoryError):
    """Backup could not be written or read."""


class GitHubSyncError(WordMemoryError):
    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
