# corpus.py
# SPDX-License-Identifier: MIT
"""Bundled reference corpus of canonical license texts.

The corpus is described by ``data/catalog.toml`` inside the package. Each
entry points at a canonical text and, optionally, standard header notices;
all of them are pre-shingled once so scoring only has to shingle the
candidate. :func:`get_corpus` builds the shared instance on first use under
a lock and hands the same object to every caller afterwards.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterator, List, Mapping, Optional, Tuple, Union

try:  # pragma: no cover - optional dependency
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore[no-redef]

from .decode import decode_bytes
from .interfaces import CorpusInitializationError
from .log import get_logger
from .similarity import text_shingles

__all__ = [
    "CATALOG_NAME",
    "ReferenceLicense",
    "ReferenceCorpus",
    "load_corpus",
    "get_corpus",
]

log = get_logger(__name__)

CATALOG_NAME = "catalog.toml"
_PACKAGE = "licensedetect"


@dataclass(frozen=True, slots=True)
class ReferenceLicense:
    """One corpus entry.

    Attributes:
        id (str): Stable identifier, e.g. ``Apache-2.0``.
        name (str): Canonical human-readable name.
        aliases (tuple[str, ...]): Alternative names and identifiers.
        representations (tuple[frozenset[str], ...]): Shingle sets of the
            full text followed by any standard header notices.
        families (tuple[str, ...]): Versionless family names (``BSD``,
            ``GPL``) shared with sibling licenses.
    """
    id: str
    name: str
    aliases: Tuple[str, ...]
    representations: Tuple[FrozenSet[str], ...]
    families: Tuple[str, ...] = ()


class ReferenceCorpus:
    """Ordered, id-unique, read-only collection of :class:`ReferenceLicense`."""

    __slots__ = ("_licenses", "_by_id")

    def __init__(self, licenses: List[ReferenceLicense]) -> None:
        by_id: Dict[str, ReferenceLicense] = {}
        for lic in licenses:
            if lic.id in by_id:
                raise CorpusInitializationError(f"duplicate license id {lic.id!r} in catalog")
            by_id[lic.id] = lic
        self._licenses: Tuple[ReferenceLicense, ...] = tuple(licenses)
        self._by_id: Mapping[str, ReferenceLicense] = by_id

    def __iter__(self) -> Iterator[ReferenceLicense]:
        return iter(self._licenses)

    def __len__(self) -> int:
        return len(self._licenses)

    def __contains__(self, license_id: object) -> bool:
        return license_id in self._by_id

    def get(self, license_id: str) -> Optional[ReferenceLicense]:
        return self._by_id.get(license_id)

    @property
    def ids(self) -> Tuple[str, ...]:
        return tuple(lic.id for lic in self._licenses)

    def vocabulary(self) -> List[str]:
        """Return every id, canonical name and alias, ids first."""
        terms: List[str] = []
        seen = set()
        for lic in self._licenses:
            for term in (lic.id, lic.name, *lic.aliases):
                if term and term not in seen:
                    seen.add(term)
                    terms.append(term)
        return terms


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _require_str(entry: Mapping[str, Any], key: str, index: int) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value.strip():
        raise CorpusInitializationError(f"catalog entry #{index} is missing a non-empty {key!r}")
    return value.strip()


def _read_text(root: Any, rel: str) -> str:
    try:
        data = root.joinpath(rel).read_bytes()
    except (OSError, ValueError) as exc:
        raise CorpusInitializationError(f"cannot read corpus text {rel!r}: {exc}") from exc
    text = decode_bytes(data).text
    if not text.strip():
        raise CorpusInitializationError(f"corpus text {rel!r} is empty")
    return text


def _build_license(root: Any, entry: Mapping[str, Any], index: int) -> ReferenceLicense:
    if not isinstance(entry, Mapping):
        raise CorpusInitializationError(f"catalog entry #{index} is not a table")
    license_id = _require_str(entry, "id", index)
    name = _require_str(entry, "name", index)
    rel_file = _require_str(entry, "file", index)
    aliases = entry.get("aliases", [])
    families = entry.get("families", [])
    headers = entry.get("headers", [])
    for key, value in (("aliases", aliases), ("families", families)):
        if not isinstance(value, list) or not all(isinstance(a, str) for a in value):
            raise CorpusInitializationError(f"{key} of {license_id!r} must be a list of strings")
    if not isinstance(headers, list) or not all(isinstance(h, str) for h in headers):
        raise CorpusInitializationError(f"headers of {license_id!r} must be a list of strings")

    representations = [text_shingles(_read_text(root, rel_file))]
    for rel in headers:
        representations.append(text_shingles(_read_text(root, rel)))
    return ReferenceLicense(
        id=license_id,
        name=name,
        aliases=tuple(a.strip() for a in aliases if a.strip()),
        representations=tuple(representations),
        families=tuple(f.strip() for f in families if f.strip()),
    )


def load_corpus(root: Union[str, Path, Any, None] = None) -> ReferenceCorpus:
    """Build a corpus from a catalog directory.

    Args:
        root: Directory (path or ``importlib.resources`` traversable) that
            holds ``catalog.toml`` and the text files it names. Defaults to
            the bundled data package.

    Raises:
        CorpusInitializationError: If the catalog is missing or malformed,
            a text file is unreadable or empty, or an id repeats.
    """
    if root is None:
        root = resources.files(_PACKAGE).joinpath("data")
    elif isinstance(root, (str, Path)):
        root = Path(root)
    try:
        raw = root.joinpath(CATALOG_NAME).read_bytes()
    except (OSError, ValueError) as exc:
        raise CorpusInitializationError(f"cannot read license catalog: {exc}") from exc
    try:
        catalog = tomllib.loads(raw.decode("utf-8"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise CorpusInitializationError(f"malformed license catalog: {exc}") from exc

    entries = catalog.get("license")
    if not isinstance(entries, list) or not entries:
        raise CorpusInitializationError("license catalog has no [[license]] entries")
    licenses = [_build_license(root, entry, i) for i, entry in enumerate(entries)]
    corpus = ReferenceCorpus(licenses)
    log.debug("Loaded reference corpus with %d licenses", len(corpus))
    return corpus


_CORPUS: Optional[ReferenceCorpus] = None
_CORPUS_LOCK = threading.Lock()


def get_corpus() -> ReferenceCorpus:
    """Return the process-wide bundled corpus, building it on first call.

    Raises:
        CorpusInitializationError: If the bundled data cannot be loaded.
            Nothing is cached in that case.
    """
    global _CORPUS
    corpus = _CORPUS
    if corpus is not None:
        return corpus
    with _CORPUS_LOCK:
        if _CORPUS is None:
            _CORPUS = load_corpus()
        return _CORPUS
