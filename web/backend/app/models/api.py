"""Pydantic models for API request/response serialization.

These models mirror the cmod dataclasses and provide proper JSON
serialization for the FastAPI endpoints.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

ContentKindName = Literal["image", "video", "text", "url", "media"]


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class ClassifyRequest(BaseModel):
    """Dry-run classification of a payload."""

    kind: ContentKindName
    payload: str


class ModerateRequest(BaseModel):
    """Moderate one content item (upload completion / content creation)."""

    content_id: str = Field(min_length=1)
    kind: ContentKindName
    payload: str


class ModerateContentRequest(BaseModel):
    """Mirrors cmod.moderation.models.ContentSubmission."""

    id: str = Field(min_length=1)
    title: str
    description: str = ""
    content_type: Literal["media", "link"] = "media"
    media_url: str = ""
    external_url: str = ""


class ModerateMediaRequest(BaseModel):
    """Mirrors cmod.moderation.models.MediaFile."""

    id: str = Field(min_length=1)
    filename: str = ""
    mime_type: str
    url: str


class ScanRequest(BaseModel):
    skip_moderated: bool = False
    limit: Optional[int] = Field(default=None, ge=1)


class ClaimRequest(BaseModel):
    reviewer_id: str = ""


class HumanReviewRequest(BaseModel):
    decision: Literal["approve", "reject"]
    note: str = ""
    reviewer_id: str = ""


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class AutoResultResponse(BaseModel):
    """Mirrors cmod.moderation.models.AutoResult."""

    confidence: float
    categories: dict[str, float] = Field(default_factory=dict)
    flags: list[str] = Field(default_factory=list)
    reason: str = ""
    approved: bool = False
    requires_human_review: bool = False
    source: str = ""


class HumanReviewResponse(BaseModel):
    """Mirrors cmod.moderation.models.HumanReview."""

    decision: str
    note: str = ""
    reviewer_id: str = ""
    reviewed_at: str = ""


class ModerationRecordResponse(BaseModel):
    """Mirrors cmod.moderation.models.ModerationRecord."""

    id: str
    content_id: str
    content_kind: str
    status: str
    auto_result: Optional[AutoResultResponse] = None
    human_review: Optional[HumanReviewResponse] = None
    created_at: str = ""
    updated_at: str = ""


class ClassificationResponse(BaseModel):
    """Classifier output plus the decision the policy would take."""

    source: str
    categories: dict[str, float] = Field(default_factory=dict)
    adjusted_categories: dict[str, float] = Field(default_factory=dict)
    flags: list[str] = Field(default_factory=list)
    status: str
    approved: bool
    requires_human_review: bool
    confidence: float
    reason: str


class ScanResponse(BaseModel):
    """Mirrors cmod.moderation.models.ScanSummary."""

    processed: int = 0
    approved: int = 0
    rejected: int = 0
    pending: int = 0
    errors: list[str] = Field(default_factory=list)


class StatsResponse(BaseModel):
    """Mirrors cmod.moderation.models.ModerationStats."""

    total: int = 0
    approved: int = 0
    rejected: int = 0
    pending: int = 0
    auto_approval_rate: float = 0.0


class AuditEventResponse(BaseModel):
    """Mirrors cmod.moderation.audit.AuditEvent."""

    id: str
    timestamp: str
    action: str
    actor: str
    moderation_id: str
    content_id: str
    status: str
    details: dict = Field(default_factory=dict)
