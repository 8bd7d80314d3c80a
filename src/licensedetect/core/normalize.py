# normalize.py
# SPDX-License-Identifier: MIT
"""Turn candidate bytes into text the similarity engine can score.

License files and READMEs are decoded and, for markup formats, stripped of
formatting. Source files contribute only the comments found in their
leading window, extracted with a per-language regex table.
"""

from __future__ import annotations

import posixpath
import re
from typing import Dict, Optional

from .decode import decode_bytes, decode_prefix
from .interfaces import Candidate, UnsupportedLanguageSyntax
from .log import get_logger
from .markup import MARKUP_STRIPPERS

__all__ = [
    "DEFAULT_HEADER_WINDOW_BYTES",
    "COMMENT_SYNTAXES",
    "extract_header_comments",
    "normalize_document",
    "TextNormalizer",
]

log = get_logger(__name__)

DEFAULT_HEADER_WINDOW_BYTES = 1024

# Block comments may run past the end of the window, hence the ``\Z``
# alternative on every closing delimiter.
_C_LINE = r"//[^\n]*"
_C_BLOCK = r"/\*.*?(?:\*/|\Z)"
_HASH_LINE = r"#[^\n]*"
_DASH_LINE = r"--[^\n]*"

_C_STYLE = re.compile(rf"{_C_LINE}|{_C_BLOCK}", re.DOTALL)
_HASH_STYLE = re.compile(_HASH_LINE)

# Language tag -> comment matcher.
COMMENT_SYNTAXES: Dict[str, re.Pattern[str]] = {
    "c": _C_STYLE,
    "cpp": _C_STYLE,
    "csharp": _C_STYLE,
    "objective-c": _C_STYLE,
    "java": _C_STYLE,
    "javascript": _C_STYLE,
    "typescript": _C_STYLE,
    "go": _C_STYLE,
    "rust": _C_STYLE,
    "swift": _C_STYLE,
    "scala": _C_STYLE,
    "kotlin": _C_STYLE,
    "php": re.compile(rf"{_C_LINE}|{_HASH_LINE}|{_C_BLOCK}", re.DOTALL),
    "css": re.compile(_C_BLOCK, re.DOTALL),
    "haskell": re.compile(rf"{_DASH_LINE}|\{{-.*?(?:-\}}|\Z)", re.DOTALL),
    "matlab": re.compile(r"%\{.*?(?:%\}|\Z)|%[^\n]*", re.DOTALL),
    "python": re.compile(rf"{_HASH_LINE}|\"\"\".*?(?:\"\"\"|\Z)|'''.*?(?:'''|\Z)", re.DOTALL),
    "ruby": re.compile(rf"^=begin\b.*?(?:^=end\b|\Z)|{_HASH_LINE}", re.DOTALL | re.MULTILINE),
    "perl": re.compile(rf"^=[a-z]\w*.*?(?:^=cut\b|\Z)|{_HASH_LINE}", re.DOTALL | re.MULTILINE),
    "bash": _HASH_STYLE,
    "r": _HASH_STYLE,
    "powershell": re.compile(rf"<#.*?(?:#>|\Z)|{_HASH_LINE}", re.DOTALL),
    "lua": re.compile(rf"--\[(=*)\[.*?(?:\]\1\]|\Z)|{_DASH_LINE}", re.DOTALL),
    "sql": re.compile(rf"{_DASH_LINE}|{_C_BLOCK}", re.DOTALL),
    "html": re.compile(r"<!--.*?(?:-->|\Z)", re.DOTALL),
    "xml": re.compile(r"<!--.*?(?:-->|\Z)", re.DOTALL),
}


def extract_header_comments(text: str, lang: Optional[str]) -> Optional[str]:
    """Return all comments in ``text`` joined by newlines.

    Args:
        text (str): Leading window of a source file.
        lang (str | None): Language tag from the language classifier.

    Returns:
        str | None: The joined comments, or None when the window holds no
        comment.

    Raises:
        UnsupportedLanguageSyntax: If ``lang`` has no registered syntax.
    """
    syntax = COMMENT_SYNTAXES.get(lang or "")
    if syntax is None:
        raise UnsupportedLanguageSyntax(lang)
    comments = [m.group(0) for m in syntax.finditer(text)]
    comments = [c for c in comments if c.strip()]
    if not comments:
        return None
    return "\n".join(comments)


def normalize_document(path: str, data: bytes) -> str:
    """Decode a document and strip markup chosen by its extension."""
    text = decode_bytes(data).text
    stripper = MARKUP_STRIPPERS.get(posixpath.splitext(path)[1].lower())
    if stripper is not None:
        text = stripper(text)
    return text


class TextNormalizer:
    """Candidate -> normalized text, with a configurable source-file window."""

    def __init__(self, header_window_bytes: int = DEFAULT_HEADER_WINDOW_BYTES) -> None:
        self.header_window_bytes = header_window_bytes

    def normalize(self, candidate: Candidate) -> Optional[str]:
        """Return scoring text for ``candidate``.

        Returns None for a source file without comments in its window.

        Raises:
            UnsupportedLanguageSyntax: For source files in a language without
                a comment-syntax entry.
        """
        if candidate.lang is None:
            return normalize_document(candidate.path, candidate.data)
        window = decode_prefix(candidate.data, self.header_window_bytes)
        return extract_header_comments(window, candidate.lang)
