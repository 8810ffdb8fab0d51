"""Tests for flag normalization."""

from cmod.moderation.flags import normalize_flags


def test_synonyms_are_collapsed():
    assert normalize_flags(["studio_context_detected", "studio_context"]) == {"studio_context"}
    assert normalize_flags(["workspace_context"]) == {"workspace"}


def test_platform_flag_dropped_when_adult_content_present():
    result = normalize_flags(["adult_content_platform", "adult_content", "racy_content"])
    assert result == {"adult_content", "racy_content"}


def test_platform_flag_kept_alone():
    assert normalize_flags(["adult_content_platform"]) == {"adult_content_platform"}


def test_platform_synonym_also_dropped_next_to_adult_content():
    assert normalize_flags(["adult_platform_content", "adult_content"]) == {"adult_content"}


def test_duplicates_and_blanks_removed():
    assert normalize_flags(["hate_speech", " hate_speech ", "", "  "]) == {"hate_speech"}


def test_empty_input():
    assert normalize_flags([]) == set()
    assert normalize_flags(None) == set()


def test_normalization_is_idempotent():
    samples = [
        ["studio_context_detected", "workspace_context", "auto_approved"],
        ["adult_platform_content", "adult_content", "adult_content_platform"],
        ["Hate_Speech", "hate_speech", "violence_language"],
        [],
    ]
    for flags in samples:
        once = normalize_flags(flags)
        assert normalize_flags(once) == once
