"""
Conversion between domain objects and plain JSON-compatible dicts.

Word records are flat: content fields and memory fields side by side.
Reading also accepts the camelCase layout of older vocabulary files
(`nextReview`, `turkishTranslation`, ...).
"""

import math
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

from wordmemory.application.scheduler import validate_memory_state
from wordmemory.application.session import StudySession
from wordmemory.domain.constants import (
    INITIAL_DIFFICULTY,
    INITIAL_RETRIEVABILITY,
    INITIAL_STABILITY,
)
from wordmemory.domain.errors import InvalidState, WordValidationError
from wordmemory.domain.models import (
    CardState,
    Rating,
    ReviewRecord,
    StudyStats,
    Word,
    WordMemoryState,
)

# Legacy per-language columns -> language code
LEGACY_TRANSLATION_KEYS = {
    "turkishTranslation": "tr",
    "germanTranslation": "de",
}

_CAMEL_ALIASES = {
    "created_at": "createdAt",
    "audio_url": "audioUrl",
    "last_reviewed": "lastReviewed",
    "next_review": "nextReview",
    "review_count": "reviewCount",
    "lapse_count": "lapseCount",
}


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO string or epoch milliseconds into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        dt = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as e:
            raise WordValidationError(f"Invalid timestamp {value!r}") from e
    else:
        raise WordValidationError(f"Invalid timestamp {value!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


def check_memory(memory: WordMemoryState, word_id: str) -> None:
    """Reject memory fields the scheduler would refuse, before they reach the store."""
    try:
        validate_memory_state(memory)
    except InvalidState as e:
        raise WordValidationError(f"Word {word_id} has an invalid memory state: {e}") from e
    if not math.isfinite(memory.retrievability) or not 0.0 <= memory.retrievability <= 1.0:
        raise WordValidationError(
            f"Word {word_id} has retrievability outside [0, 1]: {memory.retrievability}"
        )


def _get(data: dict[str, Any], key: str, default: Any = None) -> Any:
    if key in data:
        return data[key]
    alias = _CAMEL_ALIASES.get(key)
    if alias and alias in data:
        return data[alias]
    return default


def word_to_dict(word: Word) -> dict[str, Any]:
    memory = word.memory
    return {
        "id": word.id,
        "original": word.original,
        "translations": dict(word.translations),
        "created_at": format_datetime(word.created_at),
        "tags": list(word.tags),
        "notes": word.notes,
        "examples": list(word.examples),
        "audio_url": word.audio_url,
        "difficulty": memory.difficulty,
        "stability": memory.stability,
        "retrievability": memory.retrievability,
        "state": memory.state.value,
        "last_reviewed": format_datetime(memory.last_reviewed),
        "next_review": format_datetime(memory.next_review),
        "review_count": memory.review_count,
        "lapse_count": memory.lapse_count,
    }


def word_from_dict(data: dict[str, Any], default_now: datetime | None = None) -> Word:
    """
    Build a Word from a stored record.

    Raises:
        WordValidationError: when a required field is missing or has the wrong type.
    """
    if not isinstance(data, dict):
        raise WordValidationError(f"Word record must be an object, got {type(data).__name__}")

    word_id = data.get("id")
    original = data.get("original")
    if not word_id or not isinstance(word_id, str):
        raise WordValidationError("Word record is missing 'id'")
    if not original or not isinstance(original, str):
        raise WordValidationError(f"Word {word_id} is missing 'original'")

    translations = dict(data.get("translations") or {})
    for legacy_key, lang in LEGACY_TRANSLATION_KEYS.items():
        if data.get(legacy_key):
            translations.setdefault(lang, data[legacy_key])

    now = default_now or datetime.now(timezone.utc)
    created_at = parse_datetime(_get(data, "created_at")) or now
    next_review = parse_datetime(_get(data, "next_review"))
    if next_review is None:
        raise WordValidationError(f"Word {word_id} is missing 'next_review'")

    try:
        state = CardState(data.get("state", CardState.NEW.value))
    except ValueError as e:
        raise WordValidationError(f"Word {word_id} has unknown state {data.get('state')!r}") from e

    try:
        memory = WordMemoryState(
            difficulty=float(data.get("difficulty", INITIAL_DIFFICULTY)),
            stability=float(data.get("stability", INITIAL_STABILITY)),
            retrievability=float(data.get("retrievability", INITIAL_RETRIEVABILITY)),
            state=state,
            next_review=next_review,
            last_reviewed=parse_datetime(_get(data, "last_reviewed")),
            review_count=int(_get(data, "review_count", 0)),
            lapse_count=int(_get(data, "lapse_count", 0)),
        )
    except (TypeError, ValueError) as e:
        raise WordValidationError(f"Word {word_id} has malformed memory fields: {e}") from e
    check_memory(memory, word_id)

    return Word(
        id=word_id,
        original=original,
        created_at=created_at,
        memory=memory,
        translations={str(k): str(v) for k, v in translations.items()},
        tags=[str(t) for t in data.get("tags") or []],
        notes=data.get("notes") or "",
        examples=[str(e) for e in data.get("examples") or []],
        audio_url=_get(data, "audio_url"),
    )


def stats_to_dict(stats: StudyStats) -> dict[str, Any]:
    return asdict(stats)


def stats_from_dict(data: dict[str, Any] | None) -> StudyStats:
    fields = StudyStats.__dataclass_fields__
    return StudyStats(**{k: v for k, v in (data or {}).items() if k in fields})


def session_to_dict(session: StudySession) -> dict[str, Any]:
    return {
        "id": session.id,
        "start_time": format_datetime(session.start_time),
        "end_time": format_datetime(session.end_time),
        "reviews": [
            {
                "word_id": r.word_id,
                "rating": int(r.rating),
                "response_time_ms": r.response_time_ms,
                "timestamp": format_datetime(r.timestamp),
                "previous_interval": r.previous_interval,
                "new_interval": r.new_interval,
            }
            for r in session.reviews
        ],
    }


def session_from_dict(data: dict[str, Any]) -> StudySession:
    return StudySession(
        id=data["id"],
        start_time=parse_datetime(data["start_time"]),
        end_time=parse_datetime(data.get("end_time")),
        reviews=[
            ReviewRecord(
                word_id=r["word_id"],
                rating=Rating(r["rating"]),
                response_time_ms=int(r.get("response_time_ms", 0)),
                timestamp=parse_datetime(r["timestamp"]),
                previous_interval=float(r.get("previous_interval", 0.0)),
                new_interval=float(r.get("new_interval", 0.0)),
            )
            for r in data.get("reviews", [])
        ],
    )
