"""Append-only audit trail of moderation events.

Events are stored as newline-delimited JSON in daily files under
``~/.cmod/audit/``.  The moderation record remains the source of truth;
this log answers "who decided what, and when" across re-scans.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

DECIDED = "moderation.decided"
CLAIMED = "moderation.claimed"
REVIEWED = "moderation.reviewed"


@dataclass
class AuditEvent:
    """A single audit log entry."""

    id: str
    timestamp: str
    action: str
    actor: str
    moderation_id: str
    content_id: str
    status: str
    details: dict[str, Any] = field(default_factory=dict)


class ModerationAuditLog:
    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        self._base_dir = Path(base_dir) if base_dir else Path.home() / ".cmod" / "audit"
        self._base_dir.mkdir(parents=True, exist_ok=True)

    def _current_log_file(self) -> Path:
        return self._base_dir / f"{datetime.now(timezone.utc).strftime('%Y-%m-%d')}.jsonl"

    def _read_all(self) -> list[AuditEvent]:
        events: list[AuditEvent] = []
        for path in sorted(self._base_dir.glob("*.jsonl")):
            try:
                lines = path.read_text(encoding="utf-8").splitlines()
            except OSError as exc:
                logger.warning("Skipping unreadable audit file %s: %s", path, exc)
                continue
            for line in lines:
                if not line.strip():
                    continue
                try:
                    events.append(AuditEvent(**json.loads(line)))
                except (json.JSONDecodeError, TypeError):
                    logger.warning("Skipping malformed audit line in %s", path)
        return events

    def record(
        self,
        action: str,
        moderation_id: str,
        content_id: str,
        status: str,
        actor: str = "system",
        details: Optional[dict[str, Any]] = None,
    ) -> Optional[AuditEvent]:
        """Append an event. Returns None if the log could not be written."""
        event = AuditEvent(
            id=uuid.uuid4().hex[:16],
            timestamp=datetime.now(timezone.utc).isoformat(),
            action=action,
            actor=actor,
            moderation_id=moderation_id,
            content_id=content_id,
            status=status,
            details=details or {},
        )
        try:
            with self._current_log_file().open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(asdict(event)) + "\n")
        except OSError as exc:
            logger.warning("Audit write failed for %s: %s", moderation_id, exc)
            return None
        return event

    def get_events(
        self,
        *,
        content_id: Optional[str] = None,
        moderation_id: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 200,
    ) -> list[AuditEvent]:
        """Return filtered events, newest first."""
        events = self._read_all()
        if content_id:
            events = [e for e in events if e.content_id == content_id]
        if moderation_id:
            events = [e for e in events if e.moderation_id == moderation_id]
        if action:
            events = [e for e in events if e.action == action]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
