"""Decision policy — turns category scores into approve / reject / review.

The policy is tuned for an adult-content platform: the adult score never
blocks auto-approval, and auto-rejection requires *every* rejection
threshold to be exceeded at once.  Studio and technical-equipment context
discounts the violence/hate/self-harm scores and always auto-approves.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import yaml

from cmod.moderation.flags import normalize_flags
from cmod.moderation.models import CONTEXT_FLAGS, CORE_CATEGORIES, ModerationStatus

logger = logging.getLogger(__name__)

# Categories discounted when context is detected. Adult is left alone.
DISCOUNTED_CATEGORIES: tuple[str, ...] = ("violence", "hate", "self_harm")

# Adult share above which the approval reason mentions it.
ADULT_NOTE_THRESHOLD = 0.5


@dataclass(frozen=True)
class PolicyThresholds:
    """Score thresholds of the decision policy."""

    approve_violence: float = 0.3
    approve_hate: float = 0.1
    approve_self_harm: float = 0.1

    reject_violence: float = 0.7
    reject_hate: float = 0.4
    reject_self_harm: float = 0.4
    reject_adult: float = 0.99

    context_discount: float = 0.1
    context_floor: float = 0.01


DEFAULT_THRESHOLDS = PolicyThresholds()


@dataclass
class PolicyDecision:
    """Outcome of :func:`decide`."""

    approved: bool
    requires_human_review: bool
    confidence: float
    reason: str
    categories: dict[str, float] = field(default_factory=dict)
    context_applied: bool = False

    @property
    def status(self) -> ModerationStatus:
        if self.approved:
            return ModerationStatus.approved
        if self.requires_human_review:
            return ModerationStatus.pending
        return ModerationStatus.rejected


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _score(value: Any) -> float:
    """Coerce a raw score into [0, 1]; anything unusable becomes 0.0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return min(1.0, max(0.0, number))


def clean_categories(categories: Optional[Mapping[str, Any]]) -> dict[str, float]:
    """Return a copy with every core category present and all values in [0, 1]."""
    cleaned: dict[str, float] = {name: 0.0 for name in CORE_CATEGORIES}
    if not categories:
        return cleaned
    for name, value in categories.items():
        if isinstance(name, str):
            cleaned[name] = _score(value)
    return cleaned


def has_context(context_flags: Iterable[str]) -> bool:
    return any(flag in CONTEXT_FLAGS for flag in context_flags)


def adjust_for_context(
    categories: Mapping[str, Any],
    context_flags: Iterable[str],
    thresholds: PolicyThresholds = DEFAULT_THRESHOLDS,
) -> dict[str, float]:
    """Return discounted scores when studio/equipment context is present.

    The input mapping is never modified.
    """
    adjusted = clean_categories(categories)
    if not has_context(context_flags):
        return adjusted
    for name in DISCOUNTED_CATEGORIES:
        adjusted[name] = max(thresholds.context_floor, adjusted[name] * thresholds.context_discount)
    return adjusted


def confidence_for(categories: Mapping[str, float]) -> float:
    return 1.0 - max(categories.get(name, 0.0) for name in CORE_CATEGORIES)


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


def _should_reject(c: Mapping[str, float], t: PolicyThresholds) -> bool:
    return (
        c["violence"] > t.reject_violence
        and c["hate"] > t.reject_hate
        and c["self_harm"] > t.reject_self_harm
        and c["adult"] > t.reject_adult
    )


def _can_auto_approve(c: Mapping[str, float], t: PolicyThresholds) -> bool:
    return (
        c["violence"] <= t.approve_violence
        and c["hate"] <= t.approve_hate
        and c["self_harm"] <= t.approve_self_harm
    )


def _review_reason(c: Mapping[str, float], t: PolicyThresholds) -> str:
    if c["violence"] > t.approve_violence:
        return f"Human review required: violence score {_pct(c['violence'])}"
    if c["hate"] > t.approve_hate:
        return f"Human review required: hate score {_pct(c['hate'])}"
    if c["self_harm"] > t.approve_self_harm:
        return f"Human review required: self-harm score {_pct(c['self_harm'])}"
    return "Human review required: content needs manual evaluation"


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------


def decide(
    categories: Optional[Mapping[str, Any]],
    flags: Iterable[str] = (),
    context_flags: Optional[Iterable[str]] = None,
    thresholds: PolicyThresholds = DEFAULT_THRESHOLDS,
) -> PolicyDecision:
    """Apply the moderation policy to one classification.

    *context_flags* defaults to the context tags found in *flags*.  The
    returned decision carries the adjusted categories, which are what gets
    persisted.
    """
    normalized = normalize_flags(flags)
    context = normalize_flags(context_flags) if context_flags is not None else normalized
    studio = "studio_context" in context
    equipment = "technical_equipment" in context

    adjusted = adjust_for_context(categories, context, thresholds)
    confidence = confidence_for(adjusted)

    if studio or equipment:
        reason = (
            "Auto-approved: studio context detected"
            if studio
            else "Auto-approved: technical equipment detected"
        )
        logger.debug("Context adjustment applied: %s", adjusted)
        return PolicyDecision(
            approved=True,
            requires_human_review=False,
            confidence=confidence,
            reason=reason,
            categories=adjusted,
            context_applied=True,
        )

    if _should_reject(adjusted, thresholds):
        return PolicyDecision(
            approved=False,
            requires_human_review=False,
            confidence=confidence,
            reason="Rejected: all safety scores exceed rejection thresholds",
            categories=adjusted,
        )

    if _can_auto_approve(adjusted, thresholds):
        if adjusted["adult"] > ADULT_NOTE_THRESHOLD:
            reason = (
                f"Auto-approved: safety scores acceptable "
                f"(adult {_pct(adjusted['adult'])}, permitted on this platform)"
            )
        else:
            reason = "Auto-approved: safety scores acceptable"
        return PolicyDecision(
            approved=True,
            requires_human_review=False,
            confidence=confidence,
            reason=reason,
            categories=adjusted,
        )

    return PolicyDecision(
        approved=False,
        requires_human_review=True,
        confidence=confidence,
        reason=_review_reason(adjusted, thresholds),
        categories=adjusted,
    )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_thresholds(path: str | Path) -> PolicyThresholds:
    """Load threshold overrides from a YAML file.

    The file is a flat mapping, e.g.::

        approve_violence: 0.25
        reject_hate: 0.5

    Keys that are not thresholds are ignored.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Threshold file {path} must contain a mapping")

    known = {f.name for f in fields(PolicyThresholds)}
    overrides = {k: float(v) for k, v in data.items() if k in known}
    ignored = sorted(set(data) - known)
    if ignored:
        logger.warning("Ignoring unknown threshold keys in %s: %s", path, ", ".join(map(str, ignored)))
    return PolicyThresholds(**overrides)
