# interfaces.py
# SPDX-License-Identifier: MIT
"""Shared data types, protocols, and error types for license detection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

__all__ = [
    "ScoreMap",
    "DirEntry",
    "Candidate",
    "Filer",
    "CodeLanguageClassifier",
    "MentionExtractor",
    "LicenseDetectError",
    "NoLicenseFoundError",
    "CorpusInitializationError",
    "UnsupportedLanguageSyntax",
    "FilerError",
]

# License id -> confidence in [0.0, 1.0].
ScoreMap = Dict[str, float]


# -----------------------------------------------------------------------------
# Shared data types
# -----------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class DirEntry:
    """One entry of a directory listing returned by a :class:`Filer`.

    Attributes:
        name (str): Entry name without any directory component.
        is_dir (bool): True for directories.
    """
    name: str
    is_dir: bool = False


@dataclass(frozen=True, slots=True)
class Candidate:
    """
    A file whose content may carry license text.

    Attributes:
        path (str): Tree-relative POSIX path, e.g. ``LICENSE`` or
            ``licenses/MIT.txt``. For redirected license files this is the
            path of the redirect target.
        data (bytes): Raw file bytes as read from the tree.
        lang (str | None): Programming language tag for source-file
            candidates (e.g. ``python``); None for license files and READMEs.
    """
    path: str
    data: bytes
    lang: Optional[str] = None


# -----------------------------------------------------------------------------
# Collaborator protocols
# -----------------------------------------------------------------------------

@runtime_checkable
class Filer(Protocol):
    """Read-only access to a file tree.

    Paths are POSIX-style and relative to the tree root; the root itself is
    the empty string. Implementations raise :class:`FilerError` when a path
    does not exist or cannot be read.
    """

    def read_dir(self, path: str) -> List[DirEntry]:
        ...

    def read_file(self, path: str) -> bytes:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class CodeLanguageClassifier(Protocol):
    """Tags file paths with a programming-language identifier."""

    def classify(self, path: str) -> Tuple[Optional[str], bool]:
        """Return ``(lang_tag, confident)``; the tag may be None."""
        ...


@runtime_checkable
class MentionExtractor(Protocol):
    """Extracts candidate license names from free-form prose."""

    def extract(self, text: str, filer: Optional[Filer] = None) -> List[str]:
        ...


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------

class LicenseDetectError(RuntimeError):
    """Base class for errors raised by licensedetect."""


class NoLicenseFoundError(LicenseDetectError):
    """Raised when no detection stage produced a match."""

    def __init__(self, message: str = "no license file was found") -> None:
        super().__init__(message)


class CorpusInitializationError(LicenseDetectError):
    """Raised when the bundled reference corpus is missing or malformed."""


class UnsupportedLanguageSyntax(LicenseDetectError):
    """Raised when a source language has no registered comment syntax."""

    def __init__(self, lang: Optional[str]) -> None:
        super().__init__(f"no comment syntax registered for language {lang!r}")
        self.lang = lang


class FilerError(OSError):
    """Raised by filers when a path is missing, unreadable, or refused."""
