"""Classification adapter.

Produces per-category risk scores for a content item.  Two interchangeable
strategies sit behind one interface:

- :class:`RemoteStrategy` calls the configured Azure Content Moderator
  endpoint over HTTP and maps its response into the engine's shape.
- :class:`LocalStrategy` is a deterministic keyword/baseline scorer used
  whenever the remote service is unconfigured or fails.

Visual items whose reference already carries a studio / equipment signal are
settled by a fixed context result without calling anything.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Iterable, Optional

import httpx

from cmod.config import ClassifierConfig
from cmod.moderation.errors import ClassificationError
from cmod.moderation.flags import normalize_flags
from cmod.moderation.models import CONTEXT_FLAGS, ClassificationResult, ContentKind
from cmod.moderation.policy import adjust_for_context, clean_categories
from cmod.moderation.signals import ContextSignals, detect_context

logger = logging.getLogger(__name__)

# The platform accepts adult content; this tag records that assumption.
PLATFORM_FLAG = "adult_content_platform"

# ---------------------------------------------------------------------------
# Local heuristics
# ---------------------------------------------------------------------------

VIOLENCE_KEYWORDS: tuple[str, ...] = (
    "kill", "murder", "violence", "weapon", "gun", "knife", "blood", "torture", "abuse",
)
HATE_KEYWORDS: tuple[str, ...] = (
    "hate", "racist", "nazi", "terrorist", "supremacist", "genocide", "discrimination",
)
SELF_HARM_KEYWORDS: tuple[str, ...] = (
    "suicide", "selfharm", "self-harm", "cutting", "harm yourself", "kill yourself",
)

# (category, keywords, forced score, flag)
_KEYWORD_RULES: tuple[tuple[str, tuple[str, ...], float, str], ...] = (
    ("violence", VIOLENCE_KEYWORDS, 0.9, "violence_language"),
    ("hate", HATE_KEYWORDS, 0.95, "hate_speech"),
    ("self_harm", SELF_HARM_KEYWORDS, 0.95, "selfharm_content"),
)

TEXT_BASELINE: dict[str, float] = {"adult": 0.6, "violence": 0.05, "hate": 0.05, "self_harm": 0.05}
VISUAL_BASELINE: dict[str, float] = {"adult": 0.7, "violence": 0.05, "hate": 0.05, "self_harm": 0.05}
CONTEXT_SCORES: dict[str, float] = {"adult": 0.1, "violence": 0.01, "hate": 0.01, "self_harm": 0.01}


class StrategyChoice(str, Enum):
    context = "context"
    remote = "remote"
    local = "local"


def select_strategy(
    kind: ContentKind, signals: ContextSignals, config: ClassifierConfig
) -> StrategyChoice:
    """Pick how an item gets classified. Pure."""
    if kind.is_visual and signals.any:
        return StrategyChoice.context
    if config.is_configured:
        return StrategyChoice.remote
    return StrategyChoice.local


def ensure_well_formed(result: ClassificationResult) -> ClassificationResult:
    """Fill missing categories, clamp scores to [0, 1] and normalize flags."""
    return ClassificationResult(
        categories=clean_categories(result.categories),
        flags=normalize_flags(result.flags),
        source=result.source,
    )


def context_result(signals: ContextSignals) -> ClassificationResult:
    """Fixed result for visual items recognised as studio / equipment imagery."""
    return ClassificationResult(
        categories=dict(CONTEXT_SCORES),
        flags=signals.flags | {"auto_approved", PLATFORM_FLAG},
        source=StrategyChoice.context.value,
    )


# Flags that describe one payload only; a combined result keeps them only when
# every part carries them.
PART_SCOPED_FLAGS: frozenset[str] = CONTEXT_FLAGS | {"auto_approved"}


def combine_results(results: Iterable[ClassificationResult]) -> ClassificationResult:
    """Merge several results: worst score per category, union of flags.

    Context belongs to the part it was found in.  A part with studio or
    equipment context has its own scores discounted before the merge, and the
    context flags survive only if all parts share them (then the policy
    applies the discount once, on the merged scores).
    """
    results = list(results)
    if not results:
        raise ValueError("combine_results() needs at least one result")

    part_flags = [normalize_flags(result.flags) for result in results]
    shared = set.intersection(*part_flags) & PART_SCOPED_FLAGS
    shared_context = bool(shared & CONTEXT_FLAGS)

    categories: dict[str, float] = {}
    flags: set[str] = set()
    for result, own_flags in zip(results, part_flags):
        if shared_context:
            scores = clean_categories(result.categories)
        else:
            scores = adjust_for_context(result.categories, own_flags)
        for name, score in scores.items():
            categories[name] = max(categories.get(name, 0.0), score)
        flags |= own_flags - PART_SCOPED_FLAGS
    flags |= shared
    return ensure_well_formed(
        ClassificationResult(categories=categories, flags=flags, source="combined")
    )


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class ClassificationStrategy(ABC):
    """One way of scoring a content item."""

    name: str = ""

    @abstractmethod
    def classify(
        self, kind: ContentKind, payload: str, signals: ContextSignals
    ) -> ClassificationResult:
        """Score *payload*. *signals* come from the same payload."""


class LocalStrategy(ClassificationStrategy):
    """Deterministic scorer that needs no network and no pixels."""

    name = StrategyChoice.local.value

    def classify(
        self, kind: ContentKind, payload: str, signals: ContextSignals
    ) -> ClassificationResult:
        flags = signals.flags | {PLATFORM_FLAG}

        if kind.is_visual:
            categories = dict(VISUAL_BASELINE)
        else:
            categories = dict(TEXT_BASELINE)
            if not signals.any:
                text = (payload or "").lower()
                for category, keywords, score, flag in _KEYWORD_RULES:
                    if any(keyword in text for keyword in keywords):
                        categories[category] = max(categories[category], score)
                        flags.add(flag)

        return ClassificationResult(categories=categories, flags=flags, source=self.name)


class RemoteStrategy(ClassificationStrategy):
    """Azure Content Moderator client.

    All provider-specific request and response handling lives here; every
    failure is raised as :class:`ClassificationError`.
    """

    name = StrategyChoice.remote.value

    IMAGE_PATH = "/contentmoderator/moderate/v1.0/ProcessImage/Evaluate"
    TEXT_PATH = "/contentmoderator/moderate/v1.0/ProcessText/Screen"

    def __init__(
        self,
        config: ClassifierConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.config = config
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.config.endpoint.rstrip("/"),
            timeout=self.config.timeout,
            transport=self._transport,
            headers={"Ocp-Apim-Subscription-Key": self.config.subscription_key},
        )

    def _post(self, kind: ContentKind, payload: str) -> dict[str, Any]:
        try:
            with self._client() as client:
                if kind.is_visual:
                    response = client.post(
                        self.IMAGE_PATH,
                        json={"DataRepresentation": "URL", "Value": payload},
                    )
                else:
                    response = client.post(
                        self.TEXT_PATH,
                        params={"classify": "True"},
                        content=(payload or "").encode("utf-8"),
                        headers={"Content-Type": "text/plain"},
                    )
        except httpx.HTTPError as exc:
            raise ClassificationError(f"Classifier request failed: {exc}") from exc

        if not response.is_success:
            raise ClassificationError(
                f"Classifier returned {response.status_code} {response.reason_phrase}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise ClassificationError("Classifier returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise ClassificationError("Classifier returned an unexpected body")
        return data

    @staticmethod
    def _map_image(data: dict[str, Any]) -> tuple[dict[str, float], set[str]]:
        adult = bool(data.get("IsImageAdultClassified"))
        racy = bool(data.get("IsImageRacyClassified"))
        flags = set()
        if adult:
            flags.add("adult_content")
        if racy:
            flags.add("racy_content")
        categories = {
            "adult": 0.8 if adult else 0.2,
            "violence": 0.6 if racy else 0.1,
            "hate": 0.1,
            "self_harm": 0.1,
        }
        return categories, flags

    @staticmethod
    def _map_text(data: dict[str, Any]) -> tuple[dict[str, float], set[str]]:
        categories = {"adult": 0.3, "violence": 0.1, "hate": 0.1, "self_harm": 0.1}
        flags = set()

        classification = data.get("Classification")
        if isinstance(classification, dict):
            scores = []
            for key in ("Category1", "Category2"):
                entry = classification.get(key)
                if isinstance(entry, dict) and isinstance(entry.get("Score"), (int, float)):
                    scores.append(float(entry["Score"]))
            if scores:
                categories["adult"] = max(scores)
            if classification.get("ReviewRecommended"):
                flags.add("review_recommended")
        if data.get("Terms"):
            flags.add("flagged_terms")
        return categories, flags

    def classify(
        self, kind: ContentKind, payload: str, signals: ContextSignals
    ) -> ClassificationResult:
        data = self._post(kind, payload)
        if kind.is_visual:
            categories, flags = self._map_image(data)
        else:
            categories, flags = self._map_text(data)
        flags |= signals.flags | {PLATFORM_FLAG}
        return ClassificationResult(categories=categories, flags=flags, source=self.name)


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class ClassificationAdapter:
    """Entry point: always returns a well-formed :class:`ClassificationResult`."""

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        remote: Optional[ClassificationStrategy] = None,
        local: Optional[ClassificationStrategy] = None,
    ) -> None:
        self.config = config or ClassifierConfig()
        self.remote = remote or RemoteStrategy(self.config)
        self.local = local or LocalStrategy()

    def classify(self, kind: ContentKind | str, payload: str) -> ClassificationResult:
        kind = ContentKind(kind)
        signals = detect_context(payload)
        choice = select_strategy(kind, signals, self.config)
        logger.debug("Classifying %s via %s (signals=%s)", kind.value, choice.value, signals)

        if choice is StrategyChoice.context:
            return ensure_well_formed(context_result(signals))

        if choice is StrategyChoice.remote:
            try:
                return ensure_well_formed(self.remote.classify(kind, payload, signals))
            except ClassificationError as exc:
                logger.warning("Remote classification failed, using local fallback: %s", exc)
            except Exception:
                logger.exception("Unexpected remote classifier error, using local fallback")

        return ensure_well_formed(self.local.classify(kind, payload, signals))

    def classify_many(self, parts: Iterable[tuple[ContentKind | str, str]]) -> ClassificationResult:
        """Classify several (kind, payload) parts and merge the results."""
        return combine_results(self.classify(kind, payload) for kind, payload in parts)
