"""Tests for the classification adapter and its strategies."""

import json

import httpx
import pytest

from cmod.config import ClassifierConfig
from cmod.moderation.classifier import (
    CONTEXT_SCORES,
    ClassificationAdapter,
    LocalStrategy,
    RemoteStrategy,
    StrategyChoice,
    combine_results,
    select_strategy,
)
from cmod.moderation.errors import ClassificationError
from cmod.moderation.models import ClassificationResult, ContentKind
from cmod.moderation.signals import ContextSignals

ENDPOINT = "https://example.cognitiveservices.azure.com"
CONFIGURED = ClassifierConfig(endpoint=ENDPOINT, subscription_key="secret")
PHOTO_URL = "https://cdn.example.com/media/photo_123.jpg"
STUDIO_URL = "https://cdn.example.com/studio/mixing-session.jpg"


class RecordingStrategy(LocalStrategy):
    """Local strategy that remembers what it was asked to classify."""

    name = "remote"

    def __init__(self):
        self.calls = []

    def classify(self, kind, payload, signals):
        self.calls.append((kind, payload))
        return super().classify(kind, payload, signals)


class CrashingStrategy(LocalStrategy):
    def classify(self, kind, payload, signals):
        raise RuntimeError("boom")


def _remote(handler) -> RemoteStrategy:
    return RemoteStrategy(CONFIGURED, transport=httpx.MockTransport(handler))


# --- Strategy selection ---


def test_select_strategy():
    studio = ContextSignals(is_studio_context=True)
    none = ContextSignals()
    assert select_strategy(ContentKind.image, studio, CONFIGURED) == StrategyChoice.context
    assert select_strategy(ContentKind.video, studio, ClassifierConfig()) == StrategyChoice.context
    assert select_strategy(ContentKind.text, studio, CONFIGURED) == StrategyChoice.remote
    assert select_strategy(ContentKind.image, none, CONFIGURED) == StrategyChoice.remote
    assert select_strategy(ContentKind.text, none, ClassifierConfig()) == StrategyChoice.local


# --- Adapter ---


def test_context_shortcut_skips_remote():
    remote = RecordingStrategy()
    adapter = ClassificationAdapter(CONFIGURED, remote=remote)
    result = adapter.classify("image", STUDIO_URL)
    assert remote.calls == []
    assert result.source == "context"
    assert result.categories == CONTEXT_SCORES
    assert {"studio_context", "auto_approved", "adult_content_platform"} <= result.flags


def test_text_with_context_still_goes_remote():
    remote = RecordingStrategy()
    adapter = ClassificationAdapter(CONFIGURED, remote=remote)
    adapter.classify("text", "studio mixing session")
    assert remote.calls == [(ContentKind.text, "studio mixing session")]


def test_unconfigured_uses_local():
    remote = RecordingStrategy()
    for config in (
        ClassifierConfig(),
        ClassifierConfig(endpoint="your_azure_endpoint", subscription_key="secret"),
        ClassifierConfig(endpoint=ENDPOINT, subscription_key="your_azure_subscription_key"),
        ClassifierConfig(endpoint="http://insecure.example.com", subscription_key="secret"),
    ):
        result = ClassificationAdapter(config, remote=remote).classify("image", PHOTO_URL)
        assert result.source == "local"
    assert remote.calls == []


def test_crashing_remote_falls_back_to_local():
    adapter = ClassificationAdapter(CONFIGURED, remote=CrashingStrategy())
    result = adapter.classify("image", PHOTO_URL)
    assert result.source == "local"
    assert result.categories["adult"] == 0.7
    assert set(result.categories) >= {"adult", "violence", "hate", "self_harm"}


def test_http_failure_falls_back_to_local():
    def handler(request):
        return httpx.Response(500, text="internal error")

    adapter = ClassificationAdapter(CONFIGURED, remote=_remote(handler))
    result = adapter.classify("text", "I will kill you")
    assert result.source == "local"
    assert result.categories["violence"] == 0.9
    assert "violence_language" in result.flags


def test_timeout_falls_back_to_local():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    adapter = ClassificationAdapter(CONFIGURED, remote=_remote(handler))
    assert adapter.classify("image", PHOTO_URL).source == "local"


def test_results_are_well_formed():
    class Sloppy(LocalStrategy):
        def classify(self, kind, payload, signals):
            return ClassificationResult(
                categories={"adult": 1.7, "violence": -0.2},
                flags={"Studio_Context_Detected", ""},
                source="remote",
            )

    result = ClassificationAdapter(CONFIGURED, remote=Sloppy()).classify("text", "hello world")
    assert result.categories["adult"] == 1.0
    assert result.categories["violence"] == 0.0
    assert result.categories["hate"] == 0.0
    assert result.flags == {"studio_context"}


# --- Remote strategy ---


def test_remote_image_request_and_mapping():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["key"] = request.headers["Ocp-Apim-Subscription-Key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200, json={"IsImageAdultClassified": True, "IsImageRacyClassified": False}
        )

    adapter = ClassificationAdapter(CONFIGURED, remote=_remote(handler))
    result = adapter.classify("image", PHOTO_URL)

    assert seen["path"] == RemoteStrategy.IMAGE_PATH
    assert seen["key"] == "secret"
    assert seen["body"] == {"DataRepresentation": "URL", "Value": PHOTO_URL}
    assert result.source == "remote"
    assert result.categories["adult"] == 0.8
    assert result.categories["violence"] == 0.1
    # The generic platform tag is dropped in favour of the specific one.
    assert result.flags == {"adult_content"}


def test_remote_racy_image_raises_violence():
    def handler(request):
        return httpx.Response(
            200, json={"IsImageAdultClassified": False, "IsImageRacyClassified": True}
        )

    result = ClassificationAdapter(CONFIGURED, remote=_remote(handler)).classify("video", PHOTO_URL)
    assert result.categories["adult"] == 0.2
    assert result.categories["violence"] == 0.6
    assert "racy_content" in result.flags


def test_remote_text_request_and_mapping():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["classify"] = request.url.params["classify"]
        seen["body"] = request.content.decode("utf-8")
        return httpx.Response(
            200,
            json={
                "Classification": {
                    "Category1": {"Score": 0.2},
                    "Category2": {"Score": 0.6},
                    "Category3": {"Score": 0.1},
                    "ReviewRecommended": True,
                },
                "Terms": None,
            },
        )

    result = ClassificationAdapter(CONFIGURED, remote=_remote(handler)).classify("text", "hello world")
    assert seen == {"path": RemoteStrategy.TEXT_PATH, "classify": "True", "body": "hello world"}
    assert result.source == "remote"
    assert result.categories["adult"] == pytest.approx(0.6)
    assert "review_recommended" in result.flags
    assert "flagged_terms" not in result.flags


def test_remote_errors_raise_classification_error():
    def not_json(request):
        return httpx.Response(200, text="<html>nope</html>")

    def not_object(request):
        return httpx.Response(200, json=[1, 2, 3])

    for handler in (not_json, not_object):
        with pytest.raises(ClassificationError):
            _remote(handler).classify(ContentKind.image, PHOTO_URL, ContextSignals())


# --- Local strategy ---


def test_local_visual_baseline():
    result = LocalStrategy().classify(ContentKind.image, PHOTO_URL, ContextSignals())
    assert result.categories == {"adult": 0.7, "violence": 0.05, "hate": 0.05, "self_harm": 0.05}
    assert result.flags == {"adult_content_platform"}


def test_local_text_keywords():
    local = LocalStrategy()
    hate = local.classify(ContentKind.text, "a racist rant", ContextSignals())
    assert hate.categories["hate"] == 0.95
    assert "hate_speech" in hate.flags

    self_harm = local.classify(ContentKind.text, "thinking about suicide lately", ContextSignals())
    assert self_harm.categories["self_harm"] == 0.95
    assert self_harm.categories["violence"] == 0.05
    assert "selfharm_content" in self_harm.flags


def test_local_text_keywords_skipped_with_context():
    adapter = ClassificationAdapter(ClassifierConfig())
    result = adapter.classify("text", "studio track about guns")
    assert result.categories["violence"] == 0.05
    assert "studio_context" in result.flags
    assert "violence_language" not in result.flags


# --- Combining ---


def test_combine_results_takes_worst_score_and_flag_union():
    adapter = ClassificationAdapter(ClassifierConfig())
    combined = adapter.classify_many([("text", "a racist rant"), ("image", PHOTO_URL)])
    assert combined.source == "combined"
    assert combined.categories["adult"] == 0.7
    assert combined.categories["hate"] == 0.95
    assert "hate_speech" in combined.flags


def test_combine_results_needs_input():
    with pytest.raises(ValueError):
        combine_results([])


def test_combined_context_stays_with_its_part():
    harmful = ClassificationResult(
        categories={"adult": 0.6, "violence": 0.9, "hate": 0.05, "self_harm": 0.95},
        flags={"violence_language", "selfharm_content"},
    )
    desk = ClassificationResult(
        categories={"adult": 0.6, "violence": 0.5, "hate": 0.05, "self_harm": 0.05},
        flags={"technical_equipment"},
    )
    combined = combine_results([harmful, desk])
    assert combined.categories["violence"] == 0.9
    assert combined.categories["self_harm"] == 0.95
    assert "technical_equipment" not in combined.flags
    assert {"violence_language", "selfharm_content"} <= combined.flags


def test_combined_context_kept_when_every_part_has_it():
    adapter = ClassificationAdapter(ClassifierConfig())
    combined = adapter.classify_many([("text", "studio mixing"), ("image", STUDIO_URL)])
    assert "studio_context" in combined.flags
    # Raw scores are merged; the policy discounts them once.
    assert combined.categories["violence"] == 0.05
