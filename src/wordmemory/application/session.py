"""Study sessions: a run of answered cards with accuracy and timing."""

from dataclasses import dataclass, field
from datetime import datetime

from ulid import ULID

from wordmemory.domain.models import Rating, ReviewRecord


@dataclass
class StudySession:
    id: str
    start_time: datetime
    end_time: datetime | None = None
    reviews: list[ReviewRecord] = field(default_factory=list)

    @classmethod
    def start(cls, now: datetime) -> "StudySession":
        return cls(id=f"session_{ULID()}", start_time=now)

    def record(
        self,
        word_id: str,
        rating: Rating,
        now: datetime,
        response_time_ms: int = 0,
        previous_interval: float = 0.0,
        new_interval: float = 0.0,
    ) -> ReviewRecord:
        entry = ReviewRecord(
            word_id=word_id,
            rating=Rating(rating),
            response_time_ms=response_time_ms,
            timestamp=now,
            previous_interval=previous_interval,
            new_interval=new_interval,
        )
        self.reviews.append(entry)
        return entry

    def end(self, now: datetime) -> None:
        self.end_time = now

    @property
    def cards_reviewed(self) -> int:
        return len(self.reviews)

    @property
    def accuracy(self) -> float:
        """Share of answers not rated Again (0.0 for an empty session)."""
        if not self.reviews:
            return 0.0
        recalled = sum(1 for r in self.reviews if r.rating != Rating.AGAIN)
        return recalled / len(self.reviews)

    @property
    def average_response_time(self) -> float:
        if not self.reviews:
            return 0.0
        return sum(r.response_time_ms for r in self.reviews) / len(self.reviews)

    @property
    def duration_seconds(self) -> float | None:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()
