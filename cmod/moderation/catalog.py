"""Content sources for bulk re-scans.

The platform owns its content; the engine only needs to enumerate it.
:class:`ContentCatalog` is a file-backed source used by the CLI and the web
API (``~/.cmod/catalog/items.json``).  Anything with a ``list_items()``
method returning :class:`ContentItem` objects can stand in for it.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional, Protocol

from cmod.moderation.models import ContentItem, ContentKind


class ContentSource(Protocol):
    def list_items(self) -> list[ContentItem]: ...


class ContentCatalog:
    """File-based storage for content items awaiting (re-)moderation."""

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        if base_dir is None:
            self._base = Path.home() / ".cmod" / "catalog"
        else:
            self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._items_path = self._base / "items.json"

    def _read_json(self) -> list[dict]:
        if not self._items_path.exists():
            return []
        try:
            data = json.loads(self._items_path.read_text())
            return data if isinstance(data, list) else []
        except (json.JSONDecodeError, OSError):
            return []

    def _write_json(self, data: list[dict]) -> None:
        self._items_path.write_text(json.dumps(data, indent=2))

    def add_item(
        self, content_id: str, kind: ContentKind | str, payload: str, label: str = ""
    ) -> ContentItem:
        """Register (or replace) an item. Returns the stored item."""
        item = ContentItem(content_id=content_id, kind=kind, payload=payload, label=label)
        rows = [r for r in self._read_json() if r.get("content_id") != content_id]
        rows.append(
            {
                "content_id": item.content_id,
                "kind": item.kind.value,
                "payload": item.payload,
                "label": item.label,
            }
        )
        self._write_json(rows)
        return item

    def remove_item(self, content_id: str) -> bool:
        rows = self._read_json()
        kept = [r for r in rows if r.get("content_id") != content_id]
        if len(kept) == len(rows):
            return False
        self._write_json(kept)
        return True

    def list_items(self) -> list[ContentItem]:
        items = []
        for r in self._read_json():
            try:
                items.append(
                    ContentItem(
                        content_id=r["content_id"],
                        kind=r["kind"],
                        payload=r.get("payload", ""),
                        label=r.get("label", ""),
                    )
                )
            except (KeyError, ValueError):
                continue
        return items
