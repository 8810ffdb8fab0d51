"""File-based JSON storage for moderation records.

Backed by ``~/.cmod/moderation/records.json`` (a list of record dicts).
Writes go through a temp file and ``os.replace`` so a crash never leaves a
half-written file, and every read-modify-write runs under one lock per file
so concurrent upserts for the same content converge to the last write.

The lock is per process.  Two processes writing the same ``records.json``
(for example the CLI and the web app) are not serialized and can lose
updates.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from cmod.moderation.errors import PersistenceError, RecordNotFoundError
from cmod.moderation.models import (
    AutoResult,
    ContentKind,
    ModerationRecord,
    ModerationStats,
    ModerationStatus,
)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_moderation_id() -> str:
    return f"mod_{uuid.uuid4().hex}"


_FILE_LOCKS: dict[Path, threading.RLock] = {}
_FILE_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    """Return the lock shared by every store of *path* in this process."""
    key = path.resolve()
    with _FILE_LOCKS_GUARD:
        return _FILE_LOCKS.setdefault(key, threading.RLock())


class ModerationStore:
    """Single source of truth for moderation status.

    Storage path: ``~/.cmod/moderation/`` with:
    - ``records.json`` -- list of moderation record dicts
    """

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        if base_dir is None:
            self._base = Path.home() / ".cmod" / "moderation"
        else:
            self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._records_path = self._base / "records.json"
        self._lock = _lock_for(self._records_path)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read(self) -> list[dict]:
        if not self._records_path.exists():
            return []
        try:
            data = json.loads(self._records_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Corrupt moderation store {self._records_path}: {exc}") from exc
        except OSError as exc:
            raise PersistenceError(f"Cannot read {self._records_path}: {exc}") from exc
        return data if isinstance(data, list) else []

    def _write(self, data: list[dict]) -> None:
        try:
            fd, tmp = tempfile.mkstemp(dir=self._base, prefix=".records-", suffix=".json")
        except OSError as exc:
            raise PersistenceError(f"Cannot write {self._records_path}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp, self._records_path)
        except OSError as exc:
            Path(tmp).unlink(missing_ok=True)
            raise PersistenceError(f"Cannot write {self._records_path}: {exc}") from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(
        self,
        content_id: str,
        content_kind: ContentKind,
        status: ModerationStatus,
        auto_result: AutoResult,
        now: Optional[str] = None,
    ) -> ModerationRecord:
        """Create or overwrite the record for *content_id*.

        An existing record keeps its ``id`` and ``created_at``; its automated
        result is replaced and any earlier human review is cleared.
        """
        now = now or utc_now()
        with self._lock:
            rows = self._read()
            for i, row in enumerate(rows):
                if row.get("content_id") == content_id:
                    record = ModerationRecord.from_dict(row)
                    record.content_kind = content_kind
                    record.status = status
                    record.auto_result = auto_result
                    record.human_review = None
                    record.updated_at = now
                    rows[i] = record.to_dict()
                    break
            else:
                record = ModerationRecord(
                    id=new_moderation_id(),
                    content_id=content_id,
                    content_kind=content_kind,
                    status=status,
                    auto_result=auto_result,
                    created_at=now,
                    updated_at=now,
                )
                rows.append(record.to_dict())
            self._write(rows)
            return record

    def update(
        self,
        moderation_id: str,
        mutate: Callable[[ModerationRecord], ModerationRecord],
    ) -> ModerationRecord:
        """Apply *mutate* to one record atomically.

        If *mutate* raises, nothing is written.
        """
        with self._lock:
            rows = self._read()
            for i, row in enumerate(rows):
                if row.get("id") == moderation_id:
                    record = mutate(ModerationRecord.from_dict(row))
                    rows[i] = record.to_dict()
                    self._write(rows)
                    return record
        raise RecordNotFoundError(moderation_id)

    def delete_by_content(self, content_id: str) -> bool:
        """Remove the record of a deleted content item. Returns True if one existed."""
        with self._lock:
            rows = self._read()
            kept = [r for r in rows if r.get("content_id") != content_id]
            if len(kept) == len(rows):
                return False
            self._write(kept)
            return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, moderation_id: str) -> Optional[ModerationRecord]:
        """Look up a record by moderation ID. Returns None if not found."""
        for row in self._read():
            if row.get("id") == moderation_id:
                return ModerationRecord.from_dict(row)
        return None

    def get_by_content(self, content_id: str) -> Optional[ModerationRecord]:
        for row in self._read():
            if row.get("content_id") == content_id:
                return ModerationRecord.from_dict(row)
        return None

    def list_records(self, status: Optional[ModerationStatus | str] = None) -> list[ModerationRecord]:
        """Return all records, newest first, optionally filtered by status."""
        records = [ModerationRecord.from_dict(r) for r in self._read()]
        if status is not None:
            wanted = ModerationStatus(status)
            records = [r for r in records if r.status == wanted]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    def content_ids(self) -> set[str]:
        return {r["content_id"] for r in self._read() if "content_id" in r}

    def stats(self) -> ModerationStats:
        """Counts per status; ``pending`` includes records under review."""
        stats = ModerationStats()
        for row in self._read():
            stats.total += 1
            status = row.get("status")
            if status == ModerationStatus.approved.value:
                stats.approved += 1
            elif status == ModerationStatus.rejected.value:
                stats.rejected += 1
            else:
                stats.pending += 1
        if stats.total:
            stats.auto_approval_rate = stats.approved / stats.total * 100
        return stats
