# ner_spacy.py
# SPDX-License-Identifier: MIT
"""Optional spaCy backend for README license-mention extraction.

Uses a blank English pipeline with an entity ruler so no trained model has
to be downloaded. Known license names are added as case-insensitive phrase
patterns; a token pattern catches capitalized "<Name> License <version>"
phrases that are not in the vocabulary.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from ..interfaces import Filer

LICENSE_LABEL = "LICENSE"

_NAMED_LICENSE_PATTERN: list[dict[str, Any]] = [
    {"TEXT": {"REGEX": "^[A-Z]"}, "OP": "+"},
    {"LOWER": {"IN": ["license", "licence"]}},
    {"LOWER": {"IN": ["version", "v"]}, "OP": "?"},
    {"LIKE_NUM": True, "OP": "?"},
]


class SpacyMentionExtractor:
    """Entity-ruler mention extractor.

    Args:
        vocabulary (Sequence[str]): Known license ids, names and aliases.
    """

    def __init__(self, vocabulary: Sequence[str] = ()) -> None:
        try:
            import spacy
        except Exception as exc:  # pragma: no cover - optional dependency
            raise ImportError(
                "spaCy mention backend requires the 'spacy' package. Install with `pip install licensedetect[ner]`."
            ) from exc
        nlp = spacy.blank("en")
        ruler = nlp.add_pipe("entity_ruler", config={"phrase_matcher_attr": "LOWER"})
        patterns: list[dict[str, Any]] = []
        seen: set[str] = set()
        for term in vocabulary:
            term = (term or "").strip()
            if term and term.lower() not in seen:
                seen.add(term.lower())
                patterns.append({"label": LICENSE_LABEL, "pattern": term})
        patterns.append({"label": LICENSE_LABEL, "pattern": _NAMED_LICENSE_PATTERN})
        ruler.add_patterns(patterns)
        self._nlp = nlp

    def extract(self, text: str, filer: Optional[Filer] = None) -> list[str]:
        """Return LICENSE entity texts in order of first appearance."""
        doc = self._nlp(text)
        out: list[str] = []
        for ent in doc.ents:
            if ent.label_ != LICENSE_LABEL:
                continue
            value = ent.text.strip()
            if value and value not in out:
                out.append(value)
        return out


__all__ = ["SpacyMentionExtractor", "LICENSE_LABEL"]
