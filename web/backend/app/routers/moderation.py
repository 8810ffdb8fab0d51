"""Moderation router -- moderate items, review decisions, and query records."""

from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from cmod.config import ClassifierConfig, Settings
from cmod.moderation.audit import ModerationAuditLog
from cmod.moderation.catalog import ContentCatalog
from cmod.moderation.classifier import ClassificationAdapter
from cmod.moderation.errors import InvalidTransitionError, PersistenceError, RecordNotFoundError
from cmod.moderation.models import ContentSubmission, MediaFile, ModerationRecord
from cmod.moderation.orchestrator import ModerationOrchestrator
from cmod.moderation.policy import decide
from cmod.moderation.store import ModerationStore
from web.backend.app.models.api import (
    AuditEventResponse,
    AutoResultResponse,
    ClaimRequest,
    ClassificationResponse,
    ClassifyRequest,
    HumanReviewRequest,
    HumanReviewResponse,
    ModerateContentRequest,
    ModerateMediaRequest,
    ModerateRequest,
    ModerationRecordResponse,
    ScanRequest,
    ScanResponse,
    StatsResponse,
)

router = APIRouter(prefix="/api/moderation", tags=["moderation"])


# ---------------------------------------------------------------------------
# Orchestrator singleton
# ---------------------------------------------------------------------------

_orchestrator: ModerationOrchestrator | None = None


def get_orchestrator() -> ModerationOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        settings = Settings.from_env()
        _orchestrator = ModerationOrchestrator(
            store=ModerationStore(settings.records_dir),
            adapter=ClassificationAdapter(ClassifierConfig.from_env()),
            source=ContentCatalog(settings.catalog_dir),
            audit_log=ModerationAuditLog(settings.audit_dir),
        )
    return _orchestrator


def set_orchestrator(orchestrator: Optional[ModerationOrchestrator]) -> None:
    """Swap the shared orchestrator (used by tests and app start-up)."""
    global _orchestrator
    _orchestrator = orchestrator


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _record_response(r: ModerationRecord) -> ModerationRecordResponse:
    """Convert a ModerationRecord to a ModerationRecordResponse."""
    return ModerationRecordResponse(
        id=r.id,
        content_id=r.content_id,
        content_kind=r.content_kind.value,
        status=r.status.value,
        auto_result=AutoResultResponse(**r.auto_result.to_dict()) if r.auto_result else None,
        human_review=HumanReviewResponse(**r.human_review.to_dict()) if r.human_review else None,
        created_at=r.created_at,
        updated_at=r.updated_at,
    )


def _storage_failure(exc: PersistenceError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Moderation storage failure: {exc}",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/ping", summary="Connectivity check")
def ping():
    """Report that the engine is up and whether the remote classifier is configured."""
    orch = get_orchestrator()
    return {
        "status": "ok",
        "remote_classifier": orch.adapter.config.is_configured,
    }


@router.post(
    "/classify",
    response_model=ClassificationResponse,
    summary="Classify a payload without storing a record",
)
def classify(body: ClassifyRequest):
    orch = get_orchestrator()
    result = orch.adapter.classify(body.kind, body.payload)
    decision = decide(result.categories, result.flags, thresholds=orch.thresholds)
    return ClassificationResponse(
        source=result.source,
        categories=result.categories,
        adjusted_categories=decision.categories,
        flags=sorted(result.flags),
        status=decision.status.value,
        approved=decision.approved,
        requires_human_review=decision.requires_human_review,
        confidence=decision.confidence,
        reason=decision.reason,
    )


@router.post(
    "/moderate",
    response_model=ModerationRecordResponse,
    summary="Moderate one content item",
)
def moderate(body: ModerateRequest):
    """Classify, decide, and upsert the record for one content item."""
    try:
        record = get_orchestrator().moderate_one(body.content_id, body.kind, body.payload)
    except PersistenceError as exc:
        raise _storage_failure(exc)
    return _record_response(record)


@router.post(
    "/moderate/content",
    response_model=ModerationRecordResponse,
    summary="Moderate a content entry (title, description, media or link)",
)
def moderate_content(body: ModerateContentRequest):
    submission = ContentSubmission(**body.model_dump())
    try:
        record = get_orchestrator().moderate_content(submission)
    except PersistenceError as exc:
        raise _storage_failure(exc)
    return _record_response(record)


@router.post(
    "/moderate/media",
    response_model=ModerationRecordResponse,
    summary="Moderate an uploaded media file",
)
def moderate_media(body: ModerateMediaRequest):
    media = MediaFile(**body.model_dump())
    try:
        record = get_orchestrator().moderate_media_file(media)
    except PersistenceError as exc:
        raise _storage_failure(exc)
    return _record_response(record)


@router.post(
    "/scan",
    response_model=ScanResponse,
    summary="Re-moderate every item in the content catalog",
)
def scan(body: ScanRequest):
    try:
        summary = get_orchestrator().moderate_all(skip_moderated=body.skip_moderated, limit=body.limit)
    except PersistenceError as exc:
        raise _storage_failure(exc)
    return ScanResponse(**asdict(summary))


@router.get("/stats", response_model=StatsResponse, summary="Moderation counts")
def stats():
    try:
        s = get_orchestrator().get_stats()
    except PersistenceError as exc:
        raise _storage_failure(exc)
    return StatsResponse(**asdict(s))


@router.get(
    "/records",
    response_model=list[ModerationRecordResponse],
    summary="List moderation records",
)
def list_records(
    status_filter: Optional[str] = Query(
        None, alias="status", pattern="^(pending|approved|rejected|reviewing)$"
    ),
):
    orch = get_orchestrator()
    try:
        records = orch.list_by_status(status_filter) if status_filter else orch.store.list_records()
    except PersistenceError as exc:
        raise _storage_failure(exc)
    return [_record_response(r) for r in records]


@router.get(
    "/records/{moderation_id}",
    response_model=ModerationRecordResponse,
    summary="Get a moderation record",
)
def get_record(moderation_id: str):
    try:
        record = get_orchestrator().get_record(moderation_id)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return _record_response(record)


@router.get(
    "/content/{content_id}",
    response_model=ModerationRecordResponse,
    summary="Get the moderation record of a content item",
)
def get_content_record(content_id: str):
    record = get_orchestrator().get_by_content(content_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No moderation record for content '{content_id}'",
        )
    return _record_response(record)


@router.post(
    "/records/{moderation_id}/claim",
    response_model=ModerationRecordResponse,
    summary="Start reviewing a pending record",
)
def claim(moderation_id: str, body: ClaimRequest):
    try:
        record = get_orchestrator().claim_for_review(moderation_id, body.reviewer_id)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except PersistenceError as exc:
        raise _storage_failure(exc)
    return _record_response(record)


@router.post(
    "/records/{moderation_id}/review",
    response_model=ModerationRecordResponse,
    summary="Submit a human review decision",
)
def review(moderation_id: str, body: HumanReviewRequest):
    """Approve or reject a record that is pending or under review."""
    try:
        record = get_orchestrator().submit_human_review(
            moderation_id, body.decision, note=body.note, reviewer_id=body.reviewer_id
        )
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except PersistenceError as exc:
        raise _storage_failure(exc)
    return _record_response(record)


@router.get(
    "/audit",
    response_model=list[AuditEventResponse],
    summary="Moderation audit trail",
)
def audit_events(
    content_id: Optional[str] = None,
    moderation_id: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = Query(200, ge=1, le=1000),
):
    """Decisions, claims and reviews, newest first."""
    audit_log = get_orchestrator().audit_log
    if audit_log is None:
        return []
    events = audit_log.get_events(
        content_id=content_id, moderation_id=moderation_id, action=action, limit=limit
    )
    return [AuditEventResponse(**asdict(e)) for e in events]
