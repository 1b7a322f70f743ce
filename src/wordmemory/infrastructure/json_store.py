"""
JSON word repository: the whole collection in a single document.

Layout:
    {"version": "...", "words": [...], "sessions": [...]}

A bare JSON list of word records (older vocabulary files) is also accepted.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from wordmemory.application.session import StudySession
from wordmemory.consts import BACKUP_FORMAT_VERSION
from wordmemory.domain.errors import WordValidationError
from wordmemory.domain.models import Word
from wordmemory.domain.ports import WordRepository

from .serialization import session_from_dict, session_to_dict, word_from_dict, word_to_dict

logger = logging.getLogger(__name__)


class JsonWordRepository(WordRepository):
    """Stores words and study sessions in one JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"words": [], "sessions": []}

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise WordValidationError(f"Corrupt word file {self.path}: {e}") from e

        if isinstance(raw, list):
            return {"words": raw, "sessions": []}
        if not isinstance(raw, dict):
            raise WordValidationError(f"Unexpected top-level type in {self.path}")
        return raw

    def _write(self, payload: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Atomic replace
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".wordmemory-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)
        except Exception:
            Path(tmp).unlink(missing_ok=True)
            raise

    def load(self) -> list[Word]:
        words = [word_from_dict(item) for item in self._read().get("words", [])]
        logger.debug(f"Loaded {len(words)} words from {self.path}")
        return words

    def save(self, words: list[Word]) -> None:
        payload = self._read() if self.path.exists() else {}
        payload["version"] = BACKUP_FORMAT_VERSION
        payload["words"] = [word_to_dict(w) for w in words]
        payload.setdefault("sessions", [])
        self._write(payload)
        logger.debug(f"Saved {len(words)} words to {self.path}")

    def load_sessions(self) -> list[StudySession]:
        return [session_from_dict(item) for item in self._read().get("sessions", [])]

    def save_sessions(self, sessions: list[StudySession]) -> None:
        payload = self._read() if self.path.exists() else {"words": []}
        payload["version"] = BACKUP_FORMAT_VERSION
        payload["sessions"] = [session_to_dict(s) for s in sessions]
        self._write(payload)


class InMemoryWordRepository(WordRepository):
    """Holds the collection in memory. Used by tests and the API when no file is configured."""

    def __init__(self, words: list[Word] | None = None):
        self._words = list(words or [])
        self._sessions: list[StudySession] = []

    def load(self) -> list[Word]:
        return list(self._words)

    def save(self, words: list[Word]) -> None:
        self._words = list(words)

    def load_sessions(self) -> list[StudySession]:
        return list(self._sessions)

    def save_sessions(self, sessions: list[StudySession]) -> None:
        self._sessions = list(sessions)
