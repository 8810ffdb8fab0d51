"""Automated content-moderation decision engine.

Signal extraction, classification (remote with local fallback), flag
normalization, the threshold policy, and the persisted record lifecycle.
"""

from cmod.moderation.classifier import ClassificationAdapter, LocalStrategy, RemoteStrategy
from cmod.moderation.errors import (
    ClassificationError,
    InvalidTransitionError,
    ModerationError,
    PersistenceError,
    RecordNotFoundError,
)
from cmod.moderation.flags import normalize_flags
from cmod.moderation.models import ContentKind, ModerationRecord, ModerationStatus, ReviewDecision
from cmod.moderation.orchestrator import ModerationOrchestrator
from cmod.moderation.policy import PolicyDecision, PolicyThresholds, adjust_for_context, decide
from cmod.moderation.signals import ContextSignals, detect_context
from cmod.moderation.store import ModerationStore

__all__ = [
    "ClassificationAdapter",
    "LocalStrategy",
    "RemoteStrategy",
    "ClassificationError",
    "InvalidTransitionError",
    "ModerationError",
    "PersistenceError",
    "RecordNotFoundError",
    "normalize_flags",
    "ContentKind",
    "ModerationRecord",
    "ModerationStatus",
    "ReviewDecision",
    "ModerationOrchestrator",
    "PolicyDecision",
    "PolicyThresholds",
    "adjust_for_context",
    "decide",
    "ContextSignals",
    "detect_context",
    "ModerationStore",
]
