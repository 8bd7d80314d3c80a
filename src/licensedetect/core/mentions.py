# mentions.py
# SPDX-License-Identifier: MIT
"""Extract license-name mentions from README prose.

The baseline extractor is a set of regular expressions plus a vocabulary
scan over the corpus ids, names and aliases. A spaCy entity-ruler backend
is available through the ``ner`` extra; see
:mod:`licensedetect.core.extras.ner_spacy`.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence

from .interfaces import Filer, MentionExtractor

__all__ = [
    "BaselineMentionExtractor",
    "make_mention_extractor",
]

# Name-ish text: stops at punctuation except dots inside version numbers.
_NAME_CHARS = r"(?:[^\n,;:()\[\]<>.!?\"]|\.(?=\d))"

_LICENSED_UNDER_RE = re.compile(
    r"\b(?:licen[cs]ed|released|distributed|available|published)\s+under\s+"
    r"(?:the\s+)?(?:terms\s+of\s+(?:the\s+)?)?"
    rf"(?P<name>{_NAME_CHARS}{{2,80}})",
    re.IGNORECASE,
)
_NAMED_LICENSE_RE = re.compile(
    r"(?P<name>(?:\b[A-Z][\w.+-]*[ \t]+){1,5}Licen[cs]e\b"
    r"(?:,?[ \t]+(?:[Vv]ersion[ \t]+|v)?\d+(?:\.\d+)*)?)"
)
_LICENSE_LABEL_RE = re.compile(
    rf"^\s*(?:[-*+]\s*)?licen[cs]e\s*:\s*(?P<name>{_NAME_CHARS}{{2,80}})",
    re.IGNORECASE | re.MULTILINE,
)
_SPDX_RE = re.compile(r"SPDX-License-Identifier\s*:\s*(?P<name>[A-Za-z0-9.+-]+)", re.IGNORECASE)
# Trailing words that end a "licensed under X" phrase.
_CUT_RE = re.compile(
    r"\s+(?:see|for|which|and|as|except|unless|with|that|in|on|by|from|to|if|so)\b.*$"
    r"|\s+-\s+.*$",
    re.IGNORECASE | re.DOTALL,
)
# Vocabulary terms shorter than this are matched case-sensitively.
_CASE_SENSITIVE_BELOW = 4


def _clean(name: str) -> str:
    name = _CUT_RE.sub("", name)
    return name.strip(" \t\"'`*_-")


def _dedupe(items: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out


def _term_alternation(terms: Sequence[str]) -> str:
    ordered = sorted(set(terms), key=lambda t: (-len(t), t))
    return "|".join(re.escape(t) for t in ordered)


class BaselineMentionExtractor:
    """Regex-driven license mention extractor.

    Args:
        vocabulary (Sequence[str]): Known license ids, names and aliases,
            matched as whole words anywhere in the text.
    """

    def __init__(self, vocabulary: Sequence[str] = ()) -> None:
        terms = [t.strip() for t in vocabulary if t and t.strip()]
        short = [t for t in terms if len(t) < _CASE_SENSITIVE_BELOW]
        long_terms = [t for t in terms if len(t) >= _CASE_SENSITIVE_BELOW]
        self._vocab_res: List[re.Pattern[str]] = []
        if short:
            self._vocab_res.append(re.compile(rf"(?<![\w-])(?:{_term_alternation(short)})(?![\w]|[-.]\w)"))
        if long_terms:
            self._vocab_res.append(
                re.compile(rf"(?<![\w-])(?:{_term_alternation(long_terms)})(?![\w]|[-.]\w)", re.IGNORECASE)
            )

    def extract(self, text: str, filer: Optional[Filer] = None) -> List[str]:
        """Return license-name mentions in order of first appearance."""
        found: List[tuple[int, str]] = []
        for m in _SPDX_RE.finditer(text):
            found.append((m.start(), m.group("name")))
        for m in _LICENSED_UNDER_RE.finditer(text):
            found.append((m.start("name"), _clean(m.group("name"))))
        for m in _LICENSE_LABEL_RE.finditer(text):
            found.append((m.start("name"), _clean(m.group("name"))))
        for m in _NAMED_LICENSE_RE.finditer(text):
            found.append((m.start("name"), m.group("name").strip()))
        for rx in self._vocab_res:
            for m in rx.finditer(text):
                found.append((m.start(), m.group(0)))
        found.sort(key=lambda item: item[0])
        return _dedupe(name for _, name in found)


def make_mention_extractor(backend: str, vocabulary: Sequence[str] = ()) -> MentionExtractor:
    """Factory for mention extractors.

    Args:
        backend (str): ``"baseline"`` or ``"spacy"``.
        vocabulary (Sequence[str]): Known license ids, names and aliases.

    Raises:
        ValueError: If the backend name is unknown.
        ImportError: If ``"spacy"`` is requested but not installed.
    """
    backend = (backend or "baseline").lower()
    if backend == "baseline":
        return BaselineMentionExtractor(vocabulary)
    if backend == "spacy":
        from .extras.ner_spacy import SpacyMentionExtractor

        return SpacyMentionExtractor(vocabulary)
    raise ValueError(f"Unknown mention extractor backend: {backend}")
