# similarity.py
# SPDX-License-Identifier: MIT
"""Similarity scoring of candidate text against the reference corpus.

Texts are compared as sets of word 3-shingles. A candidate scores the better
of the Jaccard index and a containment score that lets an excerpt of a
license match it. Before shingling, boilerplate that varies between copies
of the same license is folded away: copyright statements become a single
placeholder token, years become another, British spellings map to American
ones and ``https`` becomes ``http``. Identical texts therefore score exactly
1.0.

Some licenses are near copies of each other (MIT and MIT-0, GPL-3.0 and
AGPL-3.0). When several pass the threshold, a lower match is kept only if
the candidate carries the text that sets it apart from the better ones.

README prose is handled differently: license names are pulled out by a
mention extractor and resolved against corpus ids, canonical names,
aliases and family names.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, List, Optional, Sequence

from .interfaces import Filer, MentionExtractor, ScoreMap
from .log import get_logger

if TYPE_CHECKING:  # pragma: no cover
    from .corpus import ReferenceCorpus

__all__ = [
    "SHINGLE_SIZE",
    "normalize_license_text",
    "tokenize",
    "shingles",
    "text_shingles",
    "jaccard",
    "containment",
    "match_score",
    "trigram_dice",
    "name_key",
    "find_spdx_tag",
    "license_section",
    "SimilarityEngine",
]

log = get_logger(__name__)

SHINGLE_SIZE = 3

EXACT_SCORE = 1.0
ALIAS_SCORE = 0.95
FAMILY_SCORE = 0.6
FUZZY_SCALE = 0.9
# Name keys shorter than this are never matched fuzzily.
FUZZY_MIN_KEY_CHARS = 4
README_SECTION_CHARS = 2000

# Candidates with fewer shingles are scored by Jaccard alone.
PARTIAL_MIN_SHINGLES = 20
# Share of the containment an excerpt keeps however little it covers.
PARTIAL_FLOOR = 0.7
# A lower match survives only while the candidate holds at least this share
# of the shingles it does not have in common with a better match.
DISTINCT_MIN_SHARE = 0.5

# -----------------------------------------------------------------------------
# Text normalization
# -----------------------------------------------------------------------------

_HOLDER_WORDS = 8

# A copyright statement: the word "copyright" before a symbol, a year or a
# template bracket, or a bare (c)/© before a year. It runs over the years and
# holder words up to the end of the line or sentence, never across a newline.
_COPYRIGHT_RE = re.compile(
    r"(?:\bcopyright\b(?=[ \t]*(?:\(c\)|©|\d{4}|[<\[{]))|(?:\(c\)|©)(?=[ \t]*\d{4}))"
    rf"(?:[ \t]+[^\s.;]+){{0,{_HOLDER_WORDS}}}"
    r"(?:[.,]?[ \t]+all[ \t]+rights[ \t]+reserved\b)?",
    re.IGNORECASE,
)
_YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")
_WORD_RE = re.compile(r"[a-z0-9]+")

# British -> American spellings and other interchangeable words.
SPELLING_VARIANTS: Dict[str, str] = {
    "licence": "license",
    "licences": "licenses",
    "licenced": "licensed",
    "licencing": "licensing",
    "sublicence": "sublicense",
    "organisation": "organization",
    "organisations": "organizations",
    "authorise": "authorize",
    "authorised": "authorized",
    "recognise": "recognize",
    "recognised": "recognized",
    "behaviour": "behavior",
    "acknowledgement": "acknowledgment",
    "acknowledgements": "acknowledgments",
    "judgement": "judgment",
    "offence": "offense",
    "favour": "favor",
    "honour": "honor",
    "utilise": "utilize",
    "https": "http",
}


def normalize_license_text(text: str) -> str:
    """Return ``text`` lower-cased with copyright statements and years replaced.

    Only the statement itself is replaced, so text sharing its line (a
    license joined onto one line, a one-line source header) is kept.
    """
    out = text.lower().replace("&", " and ")
    out = _COPYRIGHT_RE.sub(" copyrightnotice ", out)
    out = _YEAR_RE.sub(" yearnotice ", out)
    return out


def tokenize(text: str) -> List[str]:
    """Split normalized text into word tokens with spelling variants unified."""
    return [SPELLING_VARIANTS.get(tok, tok) for tok in _WORD_RE.findall(text)]


def shingles(tokens: Sequence[str], k: int = SHINGLE_SIZE) -> FrozenSet[str]:
    """Return the set of space-joined ``k``-token windows.

    Token lists shorter than ``k`` collapse to a single shingle; an empty
    list yields the empty set.
    """
    if not tokens:
        return frozenset()
    if len(tokens) < k:
        return frozenset({" ".join(tokens)})
    return frozenset(" ".join(tokens[i : i + k]) for i in range(len(tokens) - k + 1))


def text_shingles(text: str, k: int = SHINGLE_SIZE) -> FrozenSet[str]:
    """Normalize, tokenize and shingle ``text`` in one step."""
    return shingles(tokenize(normalize_license_text(text)), k)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def jaccard(a: FrozenSet[str], b: FrozenSet[str]) -> float:
    """Jaccard index of two shingle sets; 0.0 when either is empty."""
    if not a or not b:
        return 0.0
    inter = len(a & b)
    if not inter:
        return 0.0
    return _clamp(inter / (len(a) + len(b) - inter))


def containment(cand: FrozenSet[str], ref: FrozenSet[str]) -> float:
    """Share of ``cand`` found in ``ref``; 0.0 when either is empty."""
    if not cand or not ref:
        return 0.0
    return _clamp(len(cand & ref) / len(cand))


def match_score(cand: FrozenSet[str], ref: FrozenSet[str]) -> float:
    """Score a candidate shingle set against one reference representation.

    The result is the larger of the Jaccard index and a partial score for
    excerpts: the candidate's containment in ``ref``, weighted between
    ``PARTIAL_FLOOR`` and 1.0 by how much of ``ref`` it covers. Short
    candidates get Jaccard only, since a few shingles are contained in
    almost anything.
    """
    score = jaccard(cand, ref)
    if score >= 1.0 or len(cand) < PARTIAL_MIN_SHINGLES:
        return score
    inter = len(cand & ref)
    coverage = inter / len(ref)
    partial = containment(cand, ref) * (PARTIAL_FLOOR + (1.0 - PARTIAL_FLOOR) * coverage)
    return _clamp(max(score, partial))


def _distinct_share(cand: FrozenSet[str], own: FrozenSet[str], other: FrozenSet[str]) -> float:
    only = own - other
    if not only:
        return 0.0
    return len(cand & only) / len(only)


def _outmatched(cand: FrozenSet[str], rep: FrozenSet[str], better: FrozenSet[str]) -> bool:
    """True when ``cand`` carries more of what sets ``better`` apart than of ``rep``'s own text."""
    mine = _distinct_share(cand, rep, better)
    return mine < DISTINCT_MIN_SHARE and _distinct_share(cand, better, rep) > mine


# -----------------------------------------------------------------------------
# License-name matching (README mentions, SPDX tags)
# -----------------------------------------------------------------------------

_VERSION_PREFIX_RE = re.compile(r"\bv(?=\d)")
_GENERIC_NAME_WORDS = frozenset(
    {"license", "licence", "licenses", "licensed", "version", "the", "v", "software", "open", "source"}
)
_SPDX_TAG_RE = re.compile(r"SPDX-License-Identifier\s*:\s*([^\n\r*]*?)\s*(?:\*/|-->)?\s*$", re.IGNORECASE | re.MULTILINE)
_SINGLE_ID_RE = re.compile(r"^[A-Za-z0-9.+-]+$")
_SECTION_HEADING_RE = re.compile(
    r"^[ \t#=*_-]*(?:licen[cs](?:e|es|ing)|copying)\b[^\n]{0,40}$",
    re.IGNORECASE | re.MULTILINE,
)


def _trigrams(s: str) -> FrozenSet[str]:
    if len(s) < 3:
        return frozenset({s}) if s else frozenset()
    return frozenset(s[i : i + 3] for i in range(len(s) - 2))


def trigram_dice(a: str, b: str) -> float:
    """Sørensen-Dice coefficient over character trigrams of two strings."""
    ta, tb = _trigrams(a), _trigrams(b)
    if not ta or not tb:
        return 0.0
    return _clamp(2.0 * len(ta & tb) / (len(ta) + len(tb)))


def name_key(name: str) -> str:
    """Reduce a license name to its distinguishing words.

    ``"The Apache License, Version 2.0"`` and ``"Apache-2.0"`` both become
    ``"apache 2 0"``. Generic words such as ``license`` are dropped, so a
    bare ``"License"`` yields the empty key.
    """
    lowered = _VERSION_PREFIX_RE.sub("", name.lower())
    words = [SPELLING_VARIANTS.get(w, w) for w in _WORD_RE.findall(lowered)]
    return " ".join(w for w in words if w not in _GENERIC_NAME_WORDS)


def find_spdx_tag(text: str) -> Optional[str]:
    """Return the identifier of a single-id ``SPDX-License-Identifier`` tag.

    Compound expressions such as ``MIT OR Apache-2.0`` are ignored.
    """
    for m in _SPDX_TAG_RE.finditer(text):
        value = m.group(1).strip().strip("()").strip()
        if _SINGLE_ID_RE.match(value):
            return value
    return None


def license_section(text: str) -> str:
    """Return the README text following its last license heading.

    The last heading wins since earlier matches are usually table-of-contents
    entries. Without a heading the whole text is returned.
    """
    last = None
    for last in _SECTION_HEADING_RE.finditer(text):
        pass
    if last is None:
        return text
    return text[last.start() : last.start() + README_SECTION_CHARS]


# -----------------------------------------------------------------------------
# Engine
# -----------------------------------------------------------------------------

class SimilarityEngine:
    """Score texts and license names against a :class:`ReferenceCorpus`.

    Args:
        corpus (ReferenceCorpus | None): Corpus to score against; the shared
            bundled corpus when omitted.
        min_similarity (float): Scores below this are dropped from
            :meth:`score` results.
        readme_min_similarity (float): Lowest trigram similarity accepted
            when resolving a README mention fuzzily.
        extractor (MentionExtractor | None): Default mention extractor for
            :meth:`query_readme_text`; a baseline extractor over the corpus
            vocabulary when omitted.
    """

    def __init__(
        self,
        corpus: Optional["ReferenceCorpus"] = None,
        *,
        min_similarity: float = 0.75,
        readme_min_similarity: float = 0.6,
        extractor: Optional[MentionExtractor] = None,
    ) -> None:
        if corpus is None:
            from .corpus import get_corpus

            corpus = get_corpus()
        self.corpus = corpus
        self.min_similarity = float(min_similarity)
        self.readme_min_similarity = float(readme_min_similarity)
        if extractor is None:
            from .mentions import BaselineMentionExtractor

            extractor = BaselineMentionExtractor(corpus.vocabulary())
        self.extractor = extractor

        self._by_lower: Dict[str, str] = {}
        self._alias_lower: Dict[str, str] = {}
        self._keys: Dict[str, str] = {}
        self._key_grams: List[tuple[str, str]] = []
        self._families: Dict[str, List[str]] = {}
        for lic in corpus:
            self._by_lower.setdefault(lic.id.lower(), lic.id)
            self._by_lower.setdefault(lic.name.lower(), lic.id)
            for alias in lic.aliases:
                self._alias_lower.setdefault(alias.lower(), lic.id)
            for term in (lic.id, lic.name, *lic.aliases):
                key = name_key(term)
                if not key:
                    continue
                self._keys.setdefault(key, lic.id)
                self._key_grams.append((key, lic.id))
            for family in lic.families:
                key = name_key(family)
                if not key:
                    continue
                members = self._families.setdefault(key, [])
                if lic.id not in members:
                    members.append(lic.id)

    # ------------------------------------------------------------------
    # Text scoring
    # ------------------------------------------------------------------
    def score(self, text: str) -> ScoreMap:
        """Compare ``text`` with every corpus entry.

        Each license scores the best :func:`match_score` over its
        representations; entries below ``min_similarity`` are dropped, and
        so are near copies of a better match that the text does not tell
        apart from it. A single-id SPDX-License-Identifier tag naming a
        known license scores 1.0 and is never dropped.
        """
        results: ScoreMap = {}
        tagged = None
        tag = find_spdx_tag(text)
        if tag is not None:
            tagged = self.lookup_id(tag)
            if tagged is not None:
                results[tagged] = EXACT_SCORE
        cand = text_shingles(text)
        if not cand:
            return results

        matches: List[tuple[str, float, FrozenSet[str]]] = []
        for lic in self.corpus:
            best, best_rep = 0.0, frozenset()
            for rep in lic.representations:
                conf = match_score(cand, rep)
                if conf > best:
                    best, best_rep = conf, rep
            if best >= self.min_similarity:
                matches.append((lic.id, best, best_rep))

        # Best first; sorted() is stable, so ties keep corpus order.
        kept: List[tuple[str, float, FrozenSet[str]]] = []
        for lid, conf, rep in sorted(matches, key=lambda m: -m[1]):
            if lid != tagged and any(_outmatched(cand, rep, other) for _, _, other in kept):
                log.debug("Dropping %s (%.3f): text does not set it apart from a better match", lid, conf)
                continue
            kept.append((lid, conf, rep))
            if conf > results.get(lid, 0.0):
                results[lid] = conf
        return results

    def query_license_text(self, text: str) -> ScoreMap:
        """Score the content of a license file."""
        return self.score(text)

    def query_source_file(self, text: str) -> ScoreMap:
        """Score the header comments extracted from a source file."""
        return self.score(text)

    # ------------------------------------------------------------------
    # Name resolution
    # ------------------------------------------------------------------
    def lookup_id(self, name: str) -> Optional[str]:
        """Resolve an exact id, canonical name or alias (case-insensitive)."""
        lowered = name.strip().lower()
        return self._by_lower.get(lowered) or self._alias_lower.get(lowered)

    def resolve_mention(self, mention: str) -> ScoreMap:
        """Map one license-name mention to corpus ids with confidences.

        Exact ids and canonical names score 1.0; aliases and names that
        reduce to the same key score 0.95. A versionless family name such
        as ``BSD`` or ``GPL`` scores every member of the family 0.6.
        Anything else is matched by trigram similarity of the keys, keeping
        only the best id(s) at or above ``readme_min_similarity`` and scaling
        the score by 0.9; keys shorter than four characters are not matched
        fuzzily.
        """
        lowered = mention.strip().lower()
        if not lowered:
            return {}
        exact = self._by_lower.get(lowered)
        if exact is not None:
            return {exact: EXACT_SCORE}
        alias = self._alias_lower.get(lowered)
        if alias is not None:
            return {alias: ALIAS_SCORE}
        key = name_key(mention)
        if not key:
            return {}
        keyed = self._keys.get(key)
        if keyed is not None:
            return {keyed: ALIAS_SCORE}
        family = self._families.get(key)
        if family:
            return {lid: FAMILY_SCORE for lid in family}
        if len(key) < FUZZY_MIN_KEY_CHARS:
            return {}

        best: Dict[str, float] = {}
        for cand_key, lid in self._key_grams:
            sim = trigram_dice(key, cand_key)
            if sim >= self.readme_min_similarity and sim > best.get(lid, 0.0):
                best[lid] = sim
        if not best:
            return {}
        top = max(best.values())
        return {lid: _clamp(sim * FUZZY_SCALE) for lid, sim in best.items() if sim == top}

    def resolve_all(self, mentions: Iterable[str]) -> ScoreMap:
        """Resolve several mentions and keep the best score per id."""
        results: ScoreMap = {}
        for mention in mentions:
            for lid, conf in self.resolve_mention(mention).items():
                results[lid] = max(conf, results.get(lid, 0.0))
        return results

    def query_readme_text(
        self,
        text: str,
        filer: Optional[Filer] = None,
        extractor: Optional[MentionExtractor] = None,
    ) -> ScoreMap:
        """Score README prose by the license names it mentions.

        Mentions are looked for in the license section first and in the whole
        text when the section names nothing known.
        """
        extractor = extractor or self.extractor
        section = license_section(text)
        mentions = extractor.extract(section, filer)
        results = self.resolve_all(mentions)
        if not results and section is not text:
            mentions = extractor.extract(text, filer)
            results = self.resolve_all(mentions)
        if mentions:
            log.debug("README mentions %s -> %s", mentions, results)
        return results
