"""
Backup Manager — checksummed snapshots of the word collection.

Backups are JSON files in a directory, one per snapshot:
    backup_<epoch ms>_<kind>.json

Also handles export (JSON/CSV) and import (JSON/CSV/YAML).
"""

import csv
import hashlib
import io
import json
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

import yaml

from wordmemory.application.id_service import assign_word_ids, generate_word_id
from wordmemory.consts import BACKUP_FORMAT_VERSION
from wordmemory.domain.constants import (
    DEFAULT_AUTO_BACKUP_INTERVAL_MS,
    DEFAULT_MAX_AUTO_BACKUPS,
)
from wordmemory.domain.errors import BackupError, WordValidationError
from wordmemory.domain.models import (
    CardState,
    StudyStats,
    Word,
    WordMemoryState,
    initial_memory_state,
)
from wordmemory.domain.ports import PeriodicScheduler, ScheduledTask

from .serialization import (
    check_memory,
    format_datetime,
    parse_datetime,
    stats_from_dict,
    stats_to_dict,
    word_from_dict,
    word_to_dict,
)

logger = logging.getLogger(__name__)

BackupKind = Literal["auto", "manual", "export"]

CSV_LEADING_COLUMNS = ["Original"]
CSV_TRAILING_COLUMNS = [
    "Notes",
    "Tags",
    "Created",
    "State",
    "Difficulty",
    "Stability",
    "Retrievability",
    "Review Count",
]
TAG_SEPARATOR = "; "


@dataclass
class BackupData:
    version: str
    timestamp: int  # epoch ms
    words: list[Word]
    stats: StudyStats
    checksum: str = ""


@dataclass(frozen=True)
class BackupMetadata:
    id: str
    timestamp: int
    word_count: int
    size: int
    kind: str
    version: str


@dataclass
class StorageStats:
    total_backups: int = 0
    total_size: int = 0
    by_kind: dict[str, int] = field(default_factory=dict)


def compute_checksum(payload: dict[str, Any]) -> str:
    """MD5 of the canonical JSON encoding, excluding the checksum field."""
    body = {k: v for k, v in payload.items() if k != "checksum"}
    canonical = json.dumps(body, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.md5(canonical.encode("utf-8")).hexdigest()


def _backup_payload(words: list[Word], stats: StudyStats, timestamp: int) -> dict[str, Any]:
    payload = {
        "version": BACKUP_FORMAT_VERSION,
        "timestamp": timestamp,
        "words": [word_to_dict(w) for w in words],
        "stats": stats_to_dict(stats),
    }
    payload["checksum"] = compute_checksum(payload)
    return payload


def validate_payload(payload: Any) -> bool:
    """Integrity check: checksum matches and the structure is sane."""
    if not isinstance(payload, dict):
        return False
    if payload.get("checksum") != compute_checksum(payload):
        logger.warning("Backup checksum mismatch - possible corruption")
        return False
    if not isinstance(payload.get("words"), list):
        return False
    if not isinstance(payload.get("stats"), dict):
        return False
    return True


def _payload_to_backup(payload: dict[str, Any]) -> BackupData:
    return BackupData(
        version=str(payload.get("version", BACKUP_FORMAT_VERSION)),
        timestamp=int(payload.get("timestamp", 0)),
        words=[word_from_dict(item) for item in payload["words"]],
        stats=stats_from_dict(payload.get("stats")),
        checksum=payload.get("checksum", ""),
    )


class BackupManager:
    """
    Creates, prunes, lists and restores backups in `backup_dir`.

    Auto backups beyond `max_auto_backups` are deleted oldest first;
    manual backups are never pruned.
    """

    def __init__(self, backup_dir: Path, max_auto_backups: int = DEFAULT_MAX_AUTO_BACKUPS):
        self.backup_dir = Path(backup_dir)
        self.max_auto_backups = max_auto_backups
        self._auto_task: ScheduledTask | None = None

    # ---------- Backups ----------

    def create_backup(
        self, words: list[Word], stats: StudyStats, kind: BackupKind = "auto"
    ) -> str:
        """Write a backup and return its ID."""
        timestamp = int(time.time() * 1000)
        backup_id = f"backup_{timestamp}_{kind}"
        suffix = 1
        while self._path_for(backup_id).exists():
            backup_id = f"backup_{timestamp}_{kind}_{suffix}"
            suffix += 1

        payload = _backup_payload(words, stats, timestamp)
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            self._path_for(backup_id).write_text(
                json.dumps(payload, ensure_ascii=False), encoding="utf-8"
            )
        except OSError as e:
            raise BackupError(f"Failed to write backup {backup_id}: {e}") from e

        self.cleanup_old_backups()
        logger.info(f"Backup created: {backup_id} ({len(words)} words)")
        return backup_id

    def restore(self, backup_id: str) -> BackupData | None:
        """
        Load a backup after verifying its integrity.

        Returns None when the backup is missing, unreadable or fails the check.
        """
        path = self._path_for(backup_id)
        if not path.exists():
            logger.warning(f"Backup {backup_id} not found in {self.backup_dir}")
            return None

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Backup restoration failed for {backup_id}: {e}")
            return None

        if not validate_payload(payload):
            logger.warning(f"Backup {backup_id} failed integrity check")
            return None

        try:
            return _payload_to_backup(payload)
        except WordValidationError as e:
            logger.error(f"Backup {backup_id} contains malformed words: {e}")
            return None

    def list_backups(self) -> list[BackupMetadata]:
        """Metadata for every readable backup, newest first."""
        entries: list[BackupMetadata] = []
        if not self.backup_dir.exists():
            return entries

        for path in self.backup_dir.glob("backup_*.json"):
            try:
                payload = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Skipping unreadable backup {path.name}: {e}")
                continue

            entries.append(
                BackupMetadata(
                    id=path.stem,
                    timestamp=int(payload.get("timestamp", 0)),
                    word_count=len(payload.get("words", [])),
                    size=path.stat().st_size,
                    kind=self._kind_from_id(path.stem),
                    version=str(payload.get("version", "")),
                )
            )

        entries.sort(key=lambda m: (m.timestamp, m.id), reverse=True)
        return entries

    def cleanup_old_backups(self) -> int:
        """Delete auto backups beyond the retention limit. Returns how many were removed."""
        auto = [m for m in self.list_backups() if m.kind == "auto"]
        removed = 0
        for meta in auto[self.max_auto_backups :]:
            try:
                self._path_for(meta.id).unlink()
                removed += 1
            except OSError as e:
                logger.warning(f"Backup cleanup failed for {meta.id}: {e}")
        if removed:
            logger.debug(f"Pruned {removed} old auto backups")
        return removed

    def storage_stats(self) -> StorageStats:
        stats = StorageStats()
        for meta in self.list_backups():
            stats.total_backups += 1
            stats.total_size += meta.size
            stats.by_kind[meta.kind] = stats.by_kind.get(meta.kind, 0) + 1
        return stats

    # ---------- Auto backup ----------

    def start_auto_backup(
        self,
        timer: PeriodicScheduler,
        snapshot: Callable[[], tuple[list[Word], StudyStats]],
        interval_ms: int = DEFAULT_AUTO_BACKUP_INTERVAL_MS,
    ) -> None:
        """Back up `snapshot()` every `interval_ms` until stopped."""
        self.stop_auto_backup()

        def run() -> None:
            words, stats = snapshot()
            self.create_backup(words, stats, "auto")

        self._auto_task = timer.schedule_periodic_backup(interval_ms, run)
        logger.debug(f"Auto backup scheduled every {interval_ms} ms")

    def stop_auto_backup(self) -> None:
        if self._auto_task is not None:
            self._auto_task.cancel()
            self._auto_task = None

    # ---------- Export / Import ----------

    def export_to_file(
        self,
        words: list[Word],
        stats: StudyStats,
        path: Path,
        fmt: Literal["json", "csv"] = "json",
    ) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        if fmt == "json":
            payload = _backup_payload(words, stats, int(time.time() * 1000))
            path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        elif fmt == "csv":
            path.write_text(words_to_csv(words), encoding="utf-8", newline="")
        else:
            raise BackupError(f"Unsupported export format: {fmt}")

        logger.info(f"Exported {len(words)} words to {path}")
        return path

    def import_from_file(self, path: Path) -> BackupData | None:
        """
        Read words from a JSON backup/export, a CSV export or a YAML word list.

        Returns None when the file cannot be read or fails validation.
        """
        path = Path(path)
        suffix = path.suffix.lower()
        try:
            content = path.read_text(encoding="utf-8")
            if suffix == ".json":
                payload = json.loads(content)
                if not validate_payload(payload):
                    return None
                return _payload_to_backup(payload)
            if suffix == ".csv":
                words = words_from_csv(content)
            elif suffix in (".yaml", ".yml"):
                words = words_from_yaml(content)
            else:
                logger.error(f"Unsupported import file type: {path.name}")
                return None
        except (OSError, json.JSONDecodeError, yaml.YAMLError, WordValidationError) as e:
            logger.error(f"Import failed for {path}: {e}")
            return None

        return BackupData(
            version=BACKUP_FORMAT_VERSION,
            timestamp=int(time.time() * 1000),
            words=words,
            stats=StudyStats(total_words=len(words), words_to_review=len(words)),
        )

    # ---------- Helpers ----------

    def _path_for(self, backup_id: str) -> Path:
        return self.backup_dir / f"{backup_id}.json"

    @staticmethod
    def _kind_from_id(backup_id: str) -> str:
        parts = backup_id.split("_")
        return parts[2] if len(parts) >= 3 else "unknown"


# ---------- CSV ----------


def _languages(words: list[Word]) -> list[str]:
    langs: list[str] = []
    for word in words:
        for lang in word.translations:
            if lang not in langs:
                langs.append(lang)
    return langs


def words_to_csv(words: list[Word]) -> str:
    langs = _languages(words)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(
        CSV_LEADING_COLUMNS + [f"Translation ({lang})" for lang in langs] + CSV_TRAILING_COLUMNS
    )
    for word in words:
        m = word.memory
        writer.writerow(
            [word.original]
            + [word.translations.get(lang, "") for lang in langs]
            + [
                word.notes,
                TAG_SEPARATOR.join(word.tags),
                format_datetime(word.created_at),
                m.state.value,
                m.difficulty,
                m.stability,
                m.retrievability,
                m.review_count,
            ]
        )
    return buf.getvalue()


def _float_or(value: str | None, default: float) -> float:
    try:
        return float(value) if value not in (None, "") else default
    except ValueError:
        return default


def _count_or(value: str | None) -> int:
    count = _float_or(value, 0)
    if not math.isfinite(count) or count != int(count):
        raise WordValidationError(f"Review Count must be a whole number, got {value!r}")
    return int(count)


def words_from_csv(content: str, now: datetime | None = None) -> list[Word]:
    """
    Parse a CSV export. Rows get fresh IDs and are due one day from now.

    Raises:
        WordValidationError: a row whose memory fields the scheduler would reject.
    """
    now = now or datetime.now(timezone.utc)
    reader = csv.DictReader(io.StringIO(content))
    words: list[Word] = []

    for number, row in enumerate(reader, start=1):
        original = (row.get("Original") or "").strip()
        if not original:
            continue

        translations = {}
        for column, value in row.items():
            if column and column.startswith("Translation (") and value:
                translations[column[len("Translation (") : -1]] = value

        try:
            state = CardState(row.get("State") or CardState.NEW.value)
        except ValueError:
            state = CardState.NEW

        fresh = initial_memory_state(now)
        memory = WordMemoryState(
            difficulty=_float_or(row.get("Difficulty"), fresh.difficulty),
            stability=_float_or(row.get("Stability"), fresh.stability),
            retrievability=_float_or(row.get("Retrievability"), fresh.retrievability),
            state=state,
            next_review=fresh.next_review,
            review_count=_count_or(row.get("Review Count")),
        )
        check_memory(memory, f"'{original}' (CSV row {number})")
        tags = row.get("Tags") or ""
        words.append(
            Word(
                id=generate_word_id(),
                original=original,
                created_at=parse_datetime(row.get("Created")) or now,
                memory=memory,
                translations=translations,
                tags=[t for t in tags.split(TAG_SEPARATOR) if t],
                notes=row.get("Notes") or "",
            )
        )
    return words


# ---------- YAML ----------


def words_from_yaml(content: str, now: datetime | None = None) -> list[Word]:
    """
    Parse a YAML word list.

    Accepts either a top-level list or a mapping with a `words` key. Each entry
    needs `original`; `translations`, `tags`, `notes` and `examples` are optional.
    Entries without memory fields start as new words due one day from now.
    """
    now = now or datetime.now(timezone.utc)
    data = yaml.safe_load(content) or []
    if isinstance(data, dict):
        data = data.get("words", [])
    if not isinstance(data, list):
        raise WordValidationError("YAML word list must be a list or contain a 'words' list")

    records = [dict(item) for item in data if isinstance(item, dict)]
    assign_word_ids(records)

    fresh_due = format_datetime(initial_memory_state(now).next_review)
    for record in records:
        record.setdefault("next_review", fresh_due)
        record.setdefault("created_at", format_datetime(now))
    return [word_from_dict(record, default_now=now) for record in records]
