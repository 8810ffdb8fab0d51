"""Flag normalization: collapse synonyms and redundant pairs."""

from __future__ import annotations

from typing import Iterable

# synonym -> canonical tag
FLAG_SYNONYMS: dict[str, str] = {
    "studio_context_detected": "studio_context",
    "workspace_context": "workspace",
    "adult_platform_content": "adult_content_platform",
}

# (generic, specific): drop the generic tag when the specific one is present.
REDUNDANT_PAIRS: tuple[tuple[str, str], ...] = (
    ("adult_content_platform", "adult_content"),
)


def canonical_flag(flag: str) -> str:
    tag = flag.strip().lower()
    return FLAG_SYNONYMS.get(tag, tag)


def normalize_flags(flags: Iterable[str] | None) -> set[str]:
    """Return the deduplicated, canonical set of *flags*.

    Idempotent: ``normalize_flags(normalize_flags(x)) == normalize_flags(x)``.
    Empty and non-string entries are dropped.
    """
    if not flags:
        return set()
    result = {canonical_flag(f) for f in flags if isinstance(f, str) and f.strip()}
    for generic, specific in REDUNDANT_PAIRS:
        if specific in result:
            result.discard(generic)
    return result
