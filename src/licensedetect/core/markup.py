# markup.py
# SPDX-License-Identifier: MIT
"""Markup strippers for Markdown, reStructuredText and HTML documents.

Each stripper is a pure ``str -> str`` function that drops formatting syntax
and keeps the prose, which is all the similarity engine needs.
"""

from __future__ import annotations

import re
from html.parser import HTMLParser
from typing import Callable, Dict, List, Optional, Tuple

__all__ = [
    "strip_markdown",
    "strip_rst",
    "strip_html",
    "MARKUP_STRIPPERS",
]

# ---------------------------------------------------------------------------
# Markdown
# ---------------------------------------------------------------------------

_MD_FENCE = re.compile(r"^\s*(?:```|~~~).*$", re.MULTILINE)
_MD_HTML_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)
_MD_LINK_REF_DEF = re.compile(r"^\s*\[[^\]]+\]:\s+\S+.*$", re.MULTILINE)
_MD_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_MD_LINK = re.compile(r"\[([^\]]+)\](?:\([^)]*\)|\[[^\]]*\])")
_MD_AUTOLINK = re.compile(r"<((?:https?|ftp|mailto):[^>\s]+)>")
_MD_HTML_TAG = re.compile(r"</?[A-Za-z][^>]*>")
_MD_HEADING = re.compile(r"^\s{0,3}#{1,6}\s*(.*?)\s*#*\s*$", re.MULTILINE)
_MD_SETEXT = re.compile(r"^\s*(?:=+|-+)\s*$", re.MULTILINE)
_MD_RULE = re.compile(r"^\s*(?:[-*_]\s*){3,}$", re.MULTILINE)
_MD_BLOCKQUOTE = re.compile(r"^\s*>+\s?", re.MULTILINE)
_MD_BULLET = re.compile(r"^(\s*)(?:[-*+]|\d{1,3}[.)])\s+", re.MULTILINE)
_MD_TABLE_SEP = re.compile(r"^\s*\|?\s*:?-{3,}:?\s*(?:\|\s*:?-{3,}:?\s*)*\|?\s*$", re.MULTILINE)
_MD_EMPHASIS = re.compile(r"(\*{1,3}|_{1,3})(?=\S)(.+?)(?<=\S)\1")
_MD_INLINE_CODE = re.compile(r"`+([^`]*)`+")


def strip_markdown(text: str) -> str:
    """Return the prose of a Markdown document.

    Fenced code markers, headings markers, emphasis, links, images, inline
    HTML and table rules are removed; fenced content and link text stay.
    """
    out = _MD_HTML_COMMENT.sub(" ", text)
    out = _MD_FENCE.sub("", out)
    out = _MD_LINK_REF_DEF.sub("", out)
    out = _MD_IMAGE.sub(r"\1", out)
    out = _MD_LINK.sub(r"\1", out)
    out = _MD_AUTOLINK.sub(r"\1", out)
    out = _MD_HTML_TAG.sub(" ", out)
    out = _MD_TABLE_SEP.sub("", out)
    out = _MD_RULE.sub("", out)
    out = _MD_HEADING.sub(r"\1", out)
    out = _MD_SETEXT.sub("", out)
    out = _MD_BLOCKQUOTE.sub("", out)
    out = _MD_BULLET.sub(r"\1", out)
    out = _MD_EMPHASIS.sub(r"\2", out)
    out = _MD_INLINE_CODE.sub(r"\1", out)
    out = out.replace("|", " ")
    return out


# ---------------------------------------------------------------------------
# reStructuredText
# ---------------------------------------------------------------------------

_RST_DIRECTIVE = re.compile(r"^\s*\.\.\s+[\w:-]+::.*$", re.MULTILINE)
_RST_COMMENT = re.compile(r"^\s*\.\.(?:\s+(?![\w:-]+::).*)?$", re.MULTILINE)
_RST_FIELD = re.compile(r"^\s*:[\w -]+:\s*$", re.MULTILINE)
_RST_ADORNMENT = re.compile(r"^\s*([=\-`:'\"~^_*+#<>.])\1{2,}\s*$", re.MULTILINE)
_RST_LINK = re.compile(r"`([^`<]+?)\s*<[^>]*>`_{1,2}")
_RST_ROLE = re.compile(r":[\w-]+:`([^`]+)`")
_RST_LITERAL = re.compile(r"``([^`]+)``")
_RST_INTERPRETED = re.compile(r"`([^`]+)`_{0,2}")
_RST_STRONG = re.compile(r"\*\*(.+?)\*\*")
_RST_EMPHASIS = re.compile(r"\*(\S(?:.*?\S)?)\*")
_RST_SUBSTITUTION = re.compile(r"\|([\w -]+)\|_{0,2}")
_RST_BULLET = re.compile(r"^(\s*)(?:[-*+•]|#\.|\d{1,3}[.)])\s+", re.MULTILINE)


def strip_rst(text: str) -> str:
    """Return the prose of a reStructuredText document."""
    out = _RST_DIRECTIVE.sub("", text)
    out = _RST_COMMENT.sub("", out)
    out = _RST_FIELD.sub("", out)
    out = _RST_ADORNMENT.sub("", out)
    out = _RST_LINK.sub(r"\1", out)
    out = _RST_ROLE.sub(r"\1", out)
    out = _RST_LITERAL.sub(r"\1", out)
    out = _RST_INTERPRETED.sub(r"\1", out)
    out = _RST_STRONG.sub(r"\1", out)
    out = _RST_EMPHASIS.sub(r"\1", out)
    out = _RST_SUBSTITUTION.sub(r"\1", out)
    out = _RST_BULLET.sub(r"\1", out)
    return out


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

_HTML_BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "br", "dd", "div", "dl",
        "dt", "footer", "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr",
        "li", "main", "nav", "ol", "p", "pre", "section", "table", "td", "th",
        "tr", "ul",
    }
)
_HTML_SKIP_TAGS = frozenset({"script", "style", "head", "template", "noscript"})


class _TextCollector(HTMLParser):
    """Collect character data, skipping script-like elements."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: List[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        tag = tag.lower()
        if tag in _HTML_SKIP_TAGS:
            self._skip_depth += 1
        elif tag in _HTML_BLOCK_TAGS:
            self.parts.append("\n")

    def handle_endtag(self, tag: str) -> None:
        tag = tag.lower()
        if tag in _HTML_SKIP_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
        elif tag in _HTML_BLOCK_TAGS:
            self.parts.append("\n")

    def handle_data(self, data: str) -> None:
        if not self._skip_depth:
            self.parts.append(data)


def strip_html(text: str) -> str:
    """Return the visible text of an HTML document."""
    parser = _TextCollector()
    parser.feed(text)
    parser.close()
    return "".join(parser.parts)


# Lower-case extension -> stripper.
MARKUP_STRIPPERS: Dict[str, Callable[[str], str]] = {
    ".md": strip_markdown,
    ".markdown": strip_markdown,
    ".rst": strip_rst,
    ".html": strip_html,
    ".htm": strip_html,
}
