# language_id.py
# SPDX-License-Identifier: MIT
"""Programming-language tagging for source-file candidates.

The header-comment stage only looks at files whose language is known with
confidence. This module holds the extension hints, the dependency-free
baseline classifier and the backend factory; the Pygments-backed classifier
lives in :mod:`licensedetect.core.extras.langid_pygments`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath

from .interfaces import CodeLanguageClassifier

# -----------------------
# Extension classifications
# -----------------------
# Keep suffixes lowercase and include the leading dot.
EXT_LANG: dict[str, str] = {
    ".py": "python",
    ".pyw": "python",
    ".pyi": "python",
    ".ps1": "powershell",
    ".psm1": "powershell",
    ".sh": "bash",
    ".bash": "bash",
    ".zsh": "bash",
    ".c": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cc": "cpp",
    ".hh": "cpp",
    ".cxx": "cpp",
    ".hxx": "cpp",
    ".cs": "csharp",
    ".mm": "objective-c",
    ".java": "java",
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".scala": "scala",
    ".go": "go",
    ".rs": "rust",
    ".swift": "swift",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".rb": "ruby",
    ".php": "php",
    ".pl": "perl",
    ".pm": "perl",
    ".lua": "lua",
    ".r": "r",
    ".jl": "julia",
    ".hs": "haskell",
    ".css": "css",
    ".sql": "sql",
    ".xml": "xml",
    ".xsd": "xml",
    ".html": "html",
    ".htm": "html",
}

# Extensions shared by several languages; a classifier never reports these
# with confidence.
AMBIGUOUS_EXTS: dict[str, tuple[str, ...]] = {
    ".h": ("c", "cpp", "objective-c"),
    ".m": ("objective-c", "matlab"),
}

SPECIAL_FILENAMES: dict[str, str] = {
    "rakefile": "ruby",
    "gemfile": "ruby",
    "sconstruct": "python",
    "sconscript": "python",
    ".bashrc": "bash",
}

# Tags for documents and data files; they never feed the header stage.
NON_SOURCE_TAGS: frozenset[str] = frozenset(
    {
        "text",
        "markdown",
        "restructuredtext",
        "json",
        "json-object",
        "yaml",
        "toml",
        "ini",
    }
)


@dataclass(slots=True)
class LanguageConfig:
    """Configurable extension and filename hints for the baseline classifier."""

    ext_lang: dict[str, str] = field(default_factory=lambda: dict(EXT_LANG))
    ambiguous_exts: dict[str, tuple[str, ...]] = field(default_factory=lambda: dict(AMBIGUOUS_EXTS))
    special_filenames: dict[str, str] = field(default_factory=lambda: dict(SPECIAL_FILENAMES))


DEFAULT_LANGCFG = LanguageConfig()


class BaselineCodeLanguageClassifier:
    """Extension and special-filename driven classifier.

    Extensions listed in ``ambiguous_exts`` yield their first candidate
    language with ``confident=False``.
    """

    def __init__(self, cfg: LanguageConfig | None = None):
        self.cfg = cfg or DEFAULT_LANGCFG

    def classify(self, path: str) -> tuple[str | None, bool]:
        p = PurePosixPath(path)
        name = p.name.lower()
        if name in self.cfg.special_filenames:
            return self.cfg.special_filenames[name], True
        ext = p.suffix.lower()
        if ext in self.cfg.ambiguous_exts:
            return self.cfg.ambiguous_exts[ext][0], False
        lang = self.cfg.ext_lang.get(ext)
        return lang, lang is not None


class NullCodeLanguageClassifier:
    """Classifier that never recognizes anything; disables the header stage."""

    def classify(self, path: str) -> tuple[str | None, bool]:
        return None, False


def is_source_tag(lang: str | None, confident: bool) -> bool:
    """Return True when a classification result selects a source file."""
    return bool(confident and lang and lang not in NON_SOURCE_TAGS)


def make_code_language_classifier(
    backend: str,
    cfg: LanguageConfig | None = None,
) -> CodeLanguageClassifier:
    """Factory for code-language classifiers.

    Args:
        backend (str): ``"pygments"``, ``"baseline"`` or ``"none"``.
        cfg (LanguageConfig | None): Hints for the baseline classifier.

    Raises:
        ValueError: If the backend name is unknown.
        ImportError: If ``"pygments"`` is requested but not installed.
    """
    backend = (backend or "none").lower()
    if backend == "none":
        return NullCodeLanguageClassifier()
    if backend == "baseline":
        return BaselineCodeLanguageClassifier(cfg)
    if backend == "pygments":
        from .extras.langid_pygments import PygmentsCodeLanguageClassifier

        return PygmentsCodeLanguageClassifier()
    raise ValueError(f"Unknown code language classifier backend: {backend}")


__all__ = [
    "EXT_LANG",
    "AMBIGUOUS_EXTS",
    "SPECIAL_FILENAMES",
    "NON_SOURCE_TAGS",
    "LanguageConfig",
    "DEFAULT_LANGCFG",
    "BaselineCodeLanguageClassifier",
    "NullCodeLanguageClassifier",
    "is_source_tag",
    "make_code_language_classifier",
]
