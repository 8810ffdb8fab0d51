"""Data models for the content moderation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

# Core risk categories every classification result carries.
CORE_CATEGORIES: tuple[str, ...] = ("adult", "violence", "hate", "self_harm")

# Flags that mark professional studio / equipment imagery.
CONTEXT_FLAGS: frozenset[str] = frozenset({"studio_context", "technical_equipment"})


class ContentKind(str, Enum):
    """What kind of item is being moderated; selects the signal path."""

    image = "image"
    video = "video"
    text = "text"
    url = "url"
    media = "media"

    @property
    def is_visual(self) -> bool:
        return self in (ContentKind.image, ContentKind.video, ContentKind.media)


class ModerationStatus(str, Enum):
    """Lifecycle: pending -> approved | rejected, optionally via reviewing."""

    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    reviewing = "reviewing"

    @property
    def is_terminal(self) -> bool:
        return self in (ModerationStatus.approved, ModerationStatus.rejected)

    @property
    def awaits_review(self) -> bool:
        return self in (ModerationStatus.pending, ModerationStatus.reviewing)


class ReviewDecision(str, Enum):
    approve = "approve"
    reject = "reject"


@dataclass
class ClassificationResult:
    """Normalized per-category scores plus advisory flags for one item."""

    categories: dict[str, float] = field(default_factory=dict)
    flags: set[str] = field(default_factory=set)
    source: str = "local"  # "context" | "remote" | "local" | "combined"


@dataclass
class AutoResult:
    """The automated decision as persisted on a moderation record."""

    confidence: float
    categories: dict[str, float]
    flags: list[str]
    reason: str
    approved: bool = False
    requires_human_review: bool = False
    source: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "confidence": self.confidence,
            "categories": dict(self.categories),
            "flags": list(self.flags),
            "reason": self.reason,
            "approved": self.approved,
            "requires_human_review": self.requires_human_review,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> AutoResult:
        return cls(
            confidence=float(d.get("confidence", 0.0)),
            categories={k: float(v) for k, v in d.get("categories", {}).items()},
            flags=list(d.get("flags", [])),
            reason=d.get("reason", ""),
            approved=bool(d.get("approved", False)),
            requires_human_review=bool(d.get("requires_human_review", False)),
            source=d.get("source", ""),
        )


@dataclass
class HumanReview:
    """A reviewer's decision on a record the policy could not settle."""

    decision: ReviewDecision
    note: str = ""
    reviewer_id: str = ""
    reviewed_at: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.decision, str):
            self.decision = ReviewDecision(self.decision)

    def to_dict(self) -> dict[str, Any]:
        return {
            "decision": self.decision.value,
            "note": self.note,
            "reviewer_id": self.reviewer_id,
            "reviewed_at": self.reviewed_at,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> HumanReview:
        return cls(
            decision=d["decision"],
            note=d.get("note", ""),
            reviewer_id=d.get("reviewer_id", ""),
            reviewed_at=d.get("reviewed_at", ""),
        )


@dataclass
class ModerationRecord:
    """One auditable moderation outcome per content item."""

    id: str
    content_id: str
    content_kind: ContentKind
    status: ModerationStatus = ModerationStatus.pending
    auto_result: Optional[AutoResult] = None
    human_review: Optional[HumanReview] = None
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.content_kind, str):
            self.content_kind = ContentKind(self.content_kind)
        if isinstance(self.status, str):
            self.status = ModerationStatus(self.status)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content_id": self.content_id,
            "content_kind": self.content_kind.value,
            "status": self.status.value,
            "auto_result": self.auto_result.to_dict() if self.auto_result else None,
            "human_review": self.human_review.to_dict() if self.human_review else None,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ModerationRecord:
        auto = d.get("auto_result")
        review = d.get("human_review")
        return cls(
            id=d["id"],
            content_id=d["content_id"],
            content_kind=d.get("content_kind", "media"),
            status=d.get("status", "pending"),
            auto_result=AutoResult.from_dict(auto) if auto else None,
            human_review=HumanReview.from_dict(review) if review else None,
            created_at=d.get("created_at", ""),
            updated_at=d.get("updated_at", ""),
        )


@dataclass
class ContentItem:
    """A content item known to the platform, as seen by the bulk re-scan."""

    content_id: str
    kind: ContentKind
    payload: str
    label: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.kind, str):
            self.kind = ContentKind(self.kind)


@dataclass
class ContentSubmission:
    """A creator's paid content entry: title/description plus media or link."""

    id: str
    title: str
    description: str = ""
    content_type: str = "media"  # "media" | "link"
    media_url: str = ""
    external_url: str = ""


@dataclass
class MediaFile:
    """An uploaded file, routed by MIME type."""

    id: str
    filename: str
    mime_type: str
    url: str


@dataclass
class ScanSummary:
    """Aggregate outcome of a bulk re-scan."""

    processed: int = 0
    approved: int = 0
    rejected: int = 0
    pending: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class ModerationStats:
    total: int = 0
    approved: int = 0
    rejected: int = 0
    pending: int = 0
    auto_approval_rate: float = 0.0
