"""Tests for the moderation record store, catalog and audit log."""

import tempfile
import threading
from pathlib import Path

import pytest

from cmod.moderation.audit import DECIDED, REVIEWED, ModerationAuditLog
from cmod.moderation.catalog import ContentCatalog
from cmod.moderation.errors import PersistenceError, RecordNotFoundError
from cmod.moderation.models import AutoResult, ContentKind, ModerationStatus
from cmod.moderation.store import ModerationStore


def _auto(reason: str = "Auto-approved: safety scores acceptable") -> AutoResult:
    return AutoResult(
        confidence=0.3,
        categories={"adult": 0.7, "violence": 0.05, "hate": 0.05, "self_harm": 0.05},
        flags=["adult_content_platform"],
        reason=reason,
        approved=True,
        source="local",
    )


def test_upsert_creates_record():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = ModerationStore(tmpdir)
        record = store.upsert("c1", ContentKind.image, ModerationStatus.approved, _auto(), now="t1")
        assert record.id.startswith("mod_")
        assert record.created_at == "t1"
        assert record.updated_at == "t1"

        loaded = store.get(record.id)
        assert loaded is not None
        assert loaded.content_id == "c1"
        assert loaded.status == ModerationStatus.approved
        assert loaded.auto_result.categories["adult"] == 0.7


def test_upsert_overwrites_same_content():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = ModerationStore(tmpdir)
        first = store.upsert("c1", ContentKind.text, ModerationStatus.pending, _auto("first"), now="t1")
        second = store.upsert("c1", ContentKind.text, ModerationStatus.approved, _auto("second"), now="t2")

        assert second.id == first.id
        assert second.created_at == "t1"
        assert second.updated_at == "t2"
        records = store.list_records()
        assert len(records) == 1
        assert records[0].auto_result.reason == "second"


def test_update_missing_record_raises():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = ModerationStore(tmpdir)
        with pytest.raises(RecordNotFoundError):
            store.update("mod_nope", lambda r: r)


def test_update_that_raises_writes_nothing():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = ModerationStore(tmpdir)
        record = store.upsert("c1", ContentKind.text, ModerationStatus.pending, _auto())

        def _boom(r):
            r.status = ModerationStatus.approved
            raise RuntimeError("nope")

        with pytest.raises(RuntimeError):
            store.update(record.id, _boom)
        assert store.get(record.id).status == ModerationStatus.pending


def test_list_records_filters_and_sorts():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = ModerationStore(tmpdir)
        store.upsert("a", ContentKind.text, ModerationStatus.approved, _auto(), now="2026-01-01T00:00:01")
        store.upsert("b", ContentKind.text, ModerationStatus.pending, _auto(), now="2026-01-01T00:00:02")
        store.upsert("c", ContentKind.text, ModerationStatus.approved, _auto(), now="2026-01-01T00:00:03")

        assert [r.content_id for r in store.list_records()] == ["c", "b", "a"]
        assert [r.content_id for r in store.list_records("approved")] == ["c", "a"]
        assert [r.content_id for r in store.list_records(ModerationStatus.pending)] == ["b"]
        assert store.content_ids() == {"a", "b", "c"}


def test_stats():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = ModerationStore(tmpdir)
        assert store.stats().auto_approval_rate == 0.0

        store.upsert("a", ContentKind.text, ModerationStatus.approved, _auto())
        store.upsert("b", ContentKind.text, ModerationStatus.approved, _auto())
        store.upsert("c", ContentKind.text, ModerationStatus.rejected, _auto())
        store.upsert("d", ContentKind.text, ModerationStatus.reviewing, _auto())
        stats = store.stats()
        assert stats.total == 4
        assert stats.approved == 2
        assert stats.rejected == 1
        assert stats.pending == 1
        assert stats.auto_approval_rate == 50.0


def test_delete_by_content():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = ModerationStore(tmpdir)
        store.upsert("c1", ContentKind.text, ModerationStatus.pending, _auto())
        assert store.delete_by_content("c1")
        assert not store.delete_by_content("c1")
        assert store.get_by_content("c1") is None


def test_corrupt_store_raises():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = ModerationStore(tmpdir)
        (Path(tmpdir) / "records.json").write_text("{not json")
        with pytest.raises(PersistenceError):
            store.list_records()
        with pytest.raises(PersistenceError):
            store.upsert("c1", ContentKind.text, ModerationStatus.pending, _auto())


def test_catalog_add_list_remove():
    with tempfile.TemporaryDirectory() as tmpdir:
        catalog = ContentCatalog(tmpdir)
        catalog.add_item("c1", "image", "https://cdn.example.com/a.jpg", label="a.jpg")
        catalog.add_item("c2", ContentKind.text, "hello")
        catalog.add_item("c1", "video", "https://cdn.example.com/a.mp4")

        items = catalog.list_items()
        assert [i.content_id for i in items] == ["c2", "c1"]
        assert items[1].kind == ContentKind.video

        assert catalog.remove_item("c2")
        assert not catalog.remove_item("c2")
        assert [i.content_id for i in catalog.list_items()] == ["c1"]


def test_audit_log_record_and_filter():
    with tempfile.TemporaryDirectory() as tmpdir:
        log = ModerationAuditLog(tmpdir)
        log.record(DECIDED, moderation_id="m1", content_id="c1", status="pending")
        log.record(REVIEWED, moderation_id="m1", content_id="c1", status="approved", actor="alice")
        log.record(DECIDED, moderation_id="m2", content_id="c2", status="approved")

        assert len(log.get_events(content_id="c1")) == 2
        reviewed = log.get_events(action=REVIEWED)
        assert len(reviewed) == 1
        assert reviewed[0].actor == "alice"
        assert len(log.get_events(limit=1)) == 1


def test_concurrent_upserts_keep_one_row_per_content():
    with tempfile.TemporaryDirectory() as tmpdir:
        stores = [ModerationStore(tmpdir) for _ in range(4)]
        errors = []

        def _worker(n: int) -> None:
            store = stores[n % len(stores)]
            try:
                for i in range(10):
                    store.upsert("shared", ContentKind.image, ModerationStatus.approved, _auto(f"w{n}-{i}"))
                    store.upsert(f"own-{n}-{i}", ContentKind.text, ModerationStatus.pending, _auto())
            except Exception as exc:  # surfaced by the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=_worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        records = ModerationStore(tmpdir).list_records()
        content_ids = [r.content_id for r in records]
        assert len(content_ids) == len(set(content_ids))
        assert len(records) == 1 + 8 * 10
        shared = ModerationStore(tmpdir).get_by_content("shared")
        assert shared.auto_result.reason.startswith("w")
