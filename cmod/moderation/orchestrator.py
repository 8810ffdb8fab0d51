"""Moderation orchestrator and record lifecycle.

Wires signal extraction, classification, flag normalization and the decision
policy together for one content item, persists the outcome, and exposes the
human-review and bulk re-scan paths.

Lifecycle::

    pending --(policy)--> approved | rejected
    pending --claim--> reviewing
    pending | reviewing --human review--> approved | rejected

Re-moderating an item always starts from scratch and overwrites its record.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, Optional
from urllib.parse import urlsplit

from cmod.moderation import audit
from cmod.moderation.audit import ModerationAuditLog
from cmod.moderation.catalog import ContentSource
from cmod.moderation.classifier import ClassificationAdapter
from cmod.moderation.errors import InvalidTransitionError, RecordNotFoundError
from cmod.moderation.models import (
    AutoResult,
    ClassificationResult,
    ContentItem,
    ContentKind,
    ContentSubmission,
    HumanReview,
    MediaFile,
    ModerationRecord,
    ModerationStats,
    ModerationStatus,
    ReviewDecision,
    ScanSummary,
)
from cmod.moderation.policy import DEFAULT_THRESHOLDS, PolicyThresholds, decide
from cmod.moderation.store import ModerationStore, utc_now

logger = logging.getLogger(__name__)

_IMAGE_EXTENSIONS = re.compile(r"\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)

DOCUMENT_SCORES = {"adult": 0.1, "violence": 0.05, "hate": 0.05, "self_harm": 0.05}


def looks_like_image(url: str) -> bool:
    return "image" in url.lower() or bool(_IMAGE_EXTENSIONS.search(urlsplit(url).path))


class ModerationOrchestrator:
    """Runs moderation for content items and owns their status transitions."""

    def __init__(
        self,
        store: ModerationStore,
        adapter: Optional[ClassificationAdapter] = None,
        source: Optional[ContentSource] = None,
        audit_log: Optional[ModerationAuditLog] = None,
        thresholds: PolicyThresholds = DEFAULT_THRESHOLDS,
        clock: Callable[[], str] = utc_now,
    ) -> None:
        self.store = store
        self.adapter = adapter or ClassificationAdapter()
        self.source = source
        self.audit_log = audit_log
        self.thresholds = thresholds
        self._clock = clock

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _evaluate(self, classification: ClassificationResult) -> tuple[AutoResult, ModerationStatus]:
        decision = decide(classification.categories, classification.flags, thresholds=self.thresholds)
        auto = AutoResult(
            confidence=decision.confidence,
            categories=decision.categories,
            flags=sorted(classification.flags),
            reason=decision.reason,
            approved=decision.approved,
            requires_human_review=decision.requires_human_review,
            source=classification.source,
        )
        return auto, decision.status

    @staticmethod
    def _error_result(exc: Exception) -> AutoResult:
        return AutoResult(
            confidence=0.0,
            categories={"adult": 0.0, "violence": 0.0, "hate": 0.0, "self_harm": 0.0},
            flags=["moderation_error"],
            reason=f"Human review required: moderation error ({exc})",
            requires_human_review=True,
            source="error",
        )

    def _save(
        self,
        content_id: str,
        kind: ContentKind,
        auto: AutoResult,
        status: ModerationStatus,
    ) -> ModerationRecord:
        record = self.store.upsert(content_id, kind, status, auto, now=self._clock())
        logger.info(
            "Moderated %s (%s): %s, confidence=%.2f, flags=%s",
            content_id, kind.value, record.status.value, auto.confidence, ",".join(auto.flags),
        )
        self._audit(audit.DECIDED, record, details={"reason": auto.reason, "source": auto.source})
        return record

    def _audit(
        self,
        action: str,
        record: ModerationRecord,
        actor: str = "system",
        details: Optional[dict] = None,
    ) -> None:
        if self.audit_log is None:
            return
        self.audit_log.record(
            action,
            moderation_id=record.id,
            content_id=record.content_id,
            status=record.status.value,
            actor=actor or "system",
            details=details,
        )

    # ------------------------------------------------------------------
    # Moderation
    # ------------------------------------------------------------------

    def moderate_one(self, content_id: str, kind: ContentKind | str, payload: str) -> ModerationRecord:
        """Classify, decide and upsert the record for one content item.

        Classification problems never escape: they degrade to a pending
        record.  Storage failures (:class:`PersistenceError`) propagate.
        """
        kind = ContentKind(kind)
        try:
            classification = self.adapter.classify(kind, payload)
        except Exception as exc:
            logger.exception("Classification crashed for %s; holding for review", content_id)
            return self._save(content_id, kind, self._error_result(exc), ModerationStatus.pending)

        auto, status = self._evaluate(classification)
        return self._save(content_id, kind, auto, status)

    def moderate_content(self, submission: ContentSubmission) -> ModerationRecord:
        """Moderate a content entry from all of its parts at once.

        Title and description are screened as text, an image ``media_url`` as
        an image and a link's ``external_url`` as a URL; the worst score per
        category decides.
        """
        parts: list[tuple[ContentKind, str]] = [(ContentKind.text, submission.title)]
        if submission.description:
            parts.append((ContentKind.text, submission.description))
        if submission.content_type == "media" and submission.media_url and looks_like_image(submission.media_url):
            parts.append((ContentKind.image, submission.media_url))
        if submission.content_type == "link" and submission.external_url:
            parts.append((ContentKind.url, submission.external_url))

        kind = ContentKind.url if submission.content_type == "link" else ContentKind.media
        try:
            classification = self.adapter.classify_many(parts)
        except Exception as exc:
            logger.exception("Classification crashed for content %s; holding for review", submission.id)
            return self._save(submission.id, kind, self._error_result(exc), ModerationStatus.pending)

        auto, status = self._evaluate(classification)
        return self._save(submission.id, kind, auto, status)

    def moderate_media_file(self, media: MediaFile) -> ModerationRecord:
        """Moderate an uploaded file according to its MIME type."""
        mime = (media.mime_type or "").lower()
        if mime.startswith("image/"):
            return self.moderate_one(media.id, ContentKind.image, media.url)
        if mime.startswith("video/"):
            return self.moderate_one(media.id, ContentKind.video, media.url)

        auto = AutoResult(
            confidence=0.9,
            categories=dict(DOCUMENT_SCORES),
            flags=["document_file"],
            reason="Auto-approved: document file",
            approved=True,
            source="document",
        )
        return self._save(media.id, ContentKind.media, auto, ModerationStatus.approved)

    # ------------------------------------------------------------------
    # Human review
    # ------------------------------------------------------------------

    def claim_for_review(self, moderation_id: str, reviewer_id: str = "") -> ModerationRecord:
        """Mark a pending record as being looked at by a reviewer."""
        now = self._clock()

        def _claim(record: ModerationRecord) -> ModerationRecord:
            if record.status is not ModerationStatus.pending:
                raise InvalidTransitionError(moderation_id, record.status.value, "claim")
            record.status = ModerationStatus.reviewing
            record.updated_at = now
            return record

        record = self.store.update(moderation_id, _claim)
        self._audit(audit.CLAIMED, record, actor=reviewer_id)
        return record

    def submit_human_review(
        self,
        moderation_id: str,
        decision: ReviewDecision | str,
        note: str = "",
        reviewer_id: str = "",
    ) -> ModerationRecord:
        """Settle a record awaiting review.

        Raises :class:`InvalidTransitionError` if the record is already
        approved or rejected; re-moderation is the way to revisit those.
        """
        decision = ReviewDecision(decision)
        now = self._clock()

        def _review(record: ModerationRecord) -> ModerationRecord:
            if not record.status.awaits_review:
                raise InvalidTransitionError(moderation_id, record.status.value, "review")
            record.human_review = HumanReview(
                decision=decision,
                note=note or "",
                reviewer_id=reviewer_id,
                reviewed_at=now,
            )
            record.status = (
                ModerationStatus.approved
                if decision is ReviewDecision.approve
                else ModerationStatus.rejected
            )
            record.updated_at = now
            return record

        record = self.store.update(moderation_id, _review)
        logger.info("Human review on %s: %s by %s", moderation_id, decision.value, reviewer_id or "unknown")
        self._audit(audit.REVIEWED, record, actor=reviewer_id, details={"note": note or ""})
        return record

    # ------------------------------------------------------------------
    # Bulk re-scan
    # ------------------------------------------------------------------

    def moderate_all(
        self,
        items: Optional[Iterable[ContentItem]] = None,
        skip_moderated: bool = False,
        limit: Optional[int] = None,
    ) -> ScanSummary:
        """Re-moderate every known content item, one at a time.

        A failing item is reported in ``errors`` and the scan moves on.
        """
        summary = ScanSummary()
        if items is None:
            if self.source is None:
                raise ValueError("moderate_all() needs items or a content source")
            try:
                items = self.source.list_items()
            except Exception as exc:
                logger.exception("Could not list content for bulk moderation")
                summary.errors.append(f"content listing failed: {exc}")
                return summary

        items = list(items)
        if skip_moderated:
            already = self.store.content_ids()
            items = [item for item in items if item.content_id not in already]
        if limit is not None:
            items = items[:limit]

        for item in items:
            summary.processed += 1
            try:
                record = self.moderate_one(item.content_id, item.kind, item.payload)
            except Exception as exc:
                logger.error("Bulk moderation failed for %s: %s", item.content_id, exc)
                summary.errors.append(f"{item.label or item.content_id}: {exc}")
                continue

            if record.status is ModerationStatus.approved:
                summary.approved += 1
            elif record.status is ModerationStatus.rejected:
                summary.rejected += 1
            else:
                summary.pending += 1

        logger.info(
            "Bulk moderation: %d processed, %d approved, %d rejected, %d pending, %d errors",
            summary.processed, summary.approved, summary.rejected, summary.pending, len(summary.errors),
        )
        return summary

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_record(self, moderation_id: str) -> ModerationRecord:
        record = self.store.get(moderation_id)
        if record is None:
            raise RecordNotFoundError(moderation_id)
        return record

    def get_by_content(self, content_id: str) -> Optional[ModerationRecord]:
        return self.store.get_by_content(content_id)

    def list_by_status(self, status: ModerationStatus | str) -> list[ModerationRecord]:
        return self.store.list_records(status=status)

    def get_stats(self) -> ModerationStats:
        return self.store.stats()
