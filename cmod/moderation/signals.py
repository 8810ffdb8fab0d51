"""Context signal extraction.

Looks at a free-text proxy for a content item (URL, filename, or
title + description) for cues that it shows professional studio or
technical equipment.  Such imagery routinely trips generic violence/hate
classifiers, so a positive signal is used downstream to discount those scores.
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------

# Music / recording vocabulary (English and French).
STUDIO_TERMS: tuple[str, ...] = (
    "studio", "music", "audio", "recording", "producer", "daw", "mixing", "sound",
    "monitor", "speaker", "headphone", "microphone", "keyboard", "piano", "guitar",
    "instrument", "musician", "artist", "beat", "track", "song", "composition",
    "synthesizer", "midi", "ableton", "logic", "protools", "cubase", "fl studio",
    "acoustique", "enregistrement", "musicien", "artiste", "compositeur",
)

# Generic office / technical equipment vocabulary.
EQUIPMENT_TERMS: tuple[str, ...] = (
    "equipment", "gear", "tech", "electronic", "device", "monitor", "computer",
    "setup", "workstation", "desk", "office", "hardware", "software", "system",
    "équipement", "matériel", "ordinateur", "bureau", "poste", "travail",
)

# One match of a term longer than this is enough on its own.
SPECIFIC_TERM_LENGTH = 6

# Otherwise this many distinct matches are required.
MIN_STUDIO_MATCHES = 2


@dataclass(frozen=True)
class ContextSignals:
    is_studio_context: bool = False
    is_technical_equipment: bool = False

    @property
    def any(self) -> bool:
        return self.is_studio_context or self.is_technical_equipment

    @property
    def flags(self) -> set[str]:
        """The flag names these signals contribute to a classification."""
        flags = set()
        if self.is_studio_context:
            flags.add("studio_context")
        if self.is_technical_equipment:
            flags.add("technical_equipment")
        return flags


def _matching_terms(text: str, terms: tuple[str, ...]) -> list[str]:
    return [term for term in terms if term in text]


def is_studio_context(text: str) -> bool:
    matches = _matching_terms(text, STUDIO_TERMS)
    if len(matches) >= MIN_STUDIO_MATCHES:
        return True
    return any(len(term) > SPECIFIC_TERM_LENGTH for term in matches)


def is_technical_equipment(text: str) -> bool:
    return bool(_matching_terms(text, EQUIPMENT_TERMS))


def detect_context(reference: str | None) -> ContextSignals:
    """Return the context signals found in *reference*.

    Matching is case-insensitive substring search.  Never raises: ``None``
    and non-string input are treated as empty.
    """
    if not isinstance(reference, str) or not reference:
        return ContextSignals()
    text = reference.lower()
    return ContextSignals(
        is_studio_context=is_studio_context(text),
        is_technical_equipment=is_technical_equipment(text),
    )
