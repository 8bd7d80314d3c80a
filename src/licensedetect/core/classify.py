# classify.py
# SPDX-License-Identifier: MIT
"""Name-based classification of tree entries into detection candidates.

Nothing here reads file contents except :func:`read_license_candidate`,
which follows short redirect files such as a ``LICENSE`` holding only
``LICENSE-MIT``.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from .interfaces import Candidate, CodeLanguageClassifier, Filer, FilerError
from .language_id import is_source_tag
from .log import get_logger

__all__ = [
    "LICENSE_NAME_PATTERNS",
    "FILE_EXTENSIONS",
    "LICENSE_QUALIFIERS",
    "LICENSE_FILE_RE",
    "LICENSE_DIR_RE",
    "README_FILE_RE",
    "CandidateSets",
    "is_license_file",
    "is_license_directory",
    "is_readme_file",
    "list_tree_files",
    "partition_candidates",
    "read_license_candidate",
]

log = get_logger(__name__)

# Base-name patterns shared by license files and license directories.
LICENSE_NAME_PATTERNS: Tuple[str, ...] = (
    r"li[cs]en[cs]es?",
    r"legal",
    r"copy(?:left|right|ing)",
    r"unlicense",
    r"l?gpl(?:[-_ v]?)(?:\d(?:\.?\d)?)?",
    r"bsd",
    r"mit",
    r"apache",
)

FILE_EXTENSIONS: Tuple[str, ...] = ("", ".md", ".rst", ".html", ".txt")

# Tokens allowed after the license pattern, e.g. LICENSE-MIT, COPYING.LESSER,
# LICENSE-2.0.txt.
LICENSE_QUALIFIERS: Tuple[str, ...] = LICENSE_NAME_PATTERNS + (
    r"v?\d+(?:\.\d+)*",
    r"lesser",
    r"library",
    r"header",
    r"notice",
    r"spdx",
    r"third-party",
    r"thirdparty",
    r"info",
)


def _alternation(items: Iterable[str]) -> str:
    return "|".join(items)


_EXT_ALT = _alternation(re.escape(ext) for ext in FILE_EXTENSIONS if ext)

LICENSE_FILE_RE = re.compile(
    rf"^(?:|.*[-_. ])(?:{_alternation(LICENSE_NAME_PATTERNS)})"
    rf"(?:[-_. ](?:{_alternation(LICENSE_QUALIFIERS)}))*"
    rf"(?:{_EXT_ALT})?$"
)
LICENSE_DIR_RE = re.compile(rf"^(?:{_alternation(LICENSE_NAME_PATTERNS)})$")
README_FILE_RE = re.compile(rf"^(?:readme|guidelines)(?:{_EXT_ALT})?$")


def is_license_file(name: str) -> bool:
    """Return True when the base name of ``name`` looks like a license file."""
    return bool(LICENSE_FILE_RE.match(posixpath.basename(name).lower()))


def is_license_directory(name: str) -> bool:
    """Return True when a directory name is exactly a license pattern."""
    return bool(LICENSE_DIR_RE.match(name.lower()))


def is_readme_file(name: str) -> bool:
    return bool(README_FILE_RE.match(posixpath.basename(name).lower()))


def _in_license_directory(path: str) -> bool:
    parent = posixpath.dirname(path)
    return bool(parent) and is_license_directory(posixpath.basename(parent))


def _has_license_extension(path: str) -> bool:
    return posixpath.splitext(path)[1].lower() in FILE_EXTENSIONS


@dataclass(slots=True)
class CandidateSets:
    """Per-stage candidate paths selected from a flat tree listing.

    Attributes:
        license_files (list[str]): License-file paths in listing order.
        readmes (list[str]): README paths.
        sources (list[tuple[str, str]]): ``(path, lang)`` for source files
            the language classifier tagged confidently.
    """
    license_files: List[str] = field(default_factory=list)
    readmes: List[str] = field(default_factory=list)
    sources: List[Tuple[str, str]] = field(default_factory=list)


def list_tree_files(filer: Filer) -> List[str]:
    """Return root files plus the children of license directories.

    License directories are expanded one level only; nested directories
    inside them are ignored. An unreadable root produces an empty listing.
    """
    try:
        entries = filer.read_dir("")
    except (FilerError, OSError) as exc:
        log.error("Cannot list tree root: %s", exc)
        return []
    files: List[str] = []
    for entry in sorted(entries, key=lambda e: e.name):
        if not entry.is_dir:
            files.append(entry.name)
            continue
        if not is_license_directory(entry.name):
            continue
        try:
            children = filer.read_dir(entry.name)
        except (FilerError, OSError) as exc:
            log.warning("Skipping unreadable license directory %s: %s", entry.name, exc)
            continue
        for child in sorted(children, key=lambda e: e.name):
            if not child.is_dir:
                files.append(posixpath.join(entry.name, child.name))
    return files


def partition_candidates(
    files: Sequence[str],
    classifier: Optional[CodeLanguageClassifier] = None,
) -> CandidateSets:
    """Split a flat listing into license-file, README and source candidates.

    Files inside a license directory count as license files when their
    extension is one of :data:`FILE_EXTENSIONS`, whatever their base name.
    """
    sets = CandidateSets()
    for path in files:
        if is_license_file(path) or (_in_license_directory(path) and _has_license_extension(path)):
            sets.license_files.append(path)
        elif is_readme_file(path) and "/" not in path:
            sets.readmes.append(path)
        elif classifier is not None:
            lang, confident = classifier.classify(path)
            if is_source_tag(lang, confident):
                sets.sources.append((path, lang))  # type: ignore[arg-type]
    return sets


def _redirect_targets(path: str, target: str) -> List[str]:
    target = target.replace("\\", "/")
    base = posixpath.dirname(path)
    options: List[str] = []
    for candidate in (posixpath.join(base, target), target):
        norm = posixpath.normpath(candidate)
        if norm in (".", "") or norm.startswith("../") or norm == ".." or posixpath.isabs(norm):
            continue
        if norm != path and norm not in options:
            options.append(norm)
    return options


def read_license_candidate(filer: Filer, path: str, redirect_max_bytes: int = 128) -> Candidate:
    """Read a license file, following a single-line redirect when present.

    Content shorter than ``redirect_max_bytes`` is stripped; when it is one
    line it is tried as a path relative to the file's directory and then to
    the tree root. The first readable target replaces both path and data.

    Raises:
        FilerError: If ``path`` itself cannot be read.
    """
    data = filer.read_file(path)
    if len(data) >= redirect_max_bytes:
        return Candidate(path=path, data=data)
    target = data.strip().decode("utf-8", errors="ignore").strip()
    if not target or "\n" in target:
        return Candidate(path=path, data=data)
    for option in _redirect_targets(path, target):
        try:
            resolved = filer.read_file(option)
        except (FilerError, OSError):
            continue
        log.debug("License file %s redirects to %s", path, option)
        return Candidate(path=option, data=resolved)
    return Candidate(path=path, data=data)
