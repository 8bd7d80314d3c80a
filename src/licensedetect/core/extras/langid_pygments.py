# langid_pygments.py
# SPDX-License-Identifier: MIT
"""Optional Pygments backend for code-language classification."""

from __future__ import annotations

from fnmatch import fnmatchcase
from pathlib import PurePosixPath

# Pygments' first alias -> tag used by the comment-syntax table.
ALIAS_TAGS: dict[str, str] = {
    "splus": "r",
    "c++": "cpp",
    "objectivec": "objective-c",
    "sh": "bash",
    "shell": "bash",
    "zsh": "bash",
    "pwsh": "powershell",
    "js": "javascript",
    "ts": "typescript",
    "py": "python",
    "python3": "python",
}


class PygmentsCodeLanguageClassifier:
    """Classify paths by the filename globs registered with pygments lexers.

    A path is classified confidently when exactly one lexer claims its base
    name. File content is never inspected.
    """

    def __init__(self) -> None:
        try:
            from pygments.lexers import get_all_lexers
        except Exception as exc:  # pragma: no cover - optional dependency
            raise ImportError(
                "Pygments backend requires the 'pygments' package."
            ) from exc
        index: list[tuple[str, str]] = []
        for _name, aliases, filenames, _mimetypes in get_all_lexers():
            if not aliases:
                continue
            tag = ALIAS_TAGS.get(aliases[0], aliases[0])
            for pattern in filenames:
                index.append((pattern, tag))
        self._index = index
        self._cache: dict[str, tuple[str | None, bool]] = {}

    def _matches(self, name: str) -> list[str]:
        tags: list[str] = []
        for pattern, tag in self._index:
            if fnmatchcase(name, pattern) and tag not in tags:
                tags.append(tag)
        return tags

    def classify(self, path: str) -> tuple[str | None, bool]:
        name = PurePosixPath(path).name
        if not name:
            return None, False
        cached = self._cache.get(name)
        if cached is not None:
            return cached
        tags = self._matches(name)
        if not tags and name != name.lower():
            tags = self._matches(name.lower())
        if not tags:
            result: tuple[str | None, bool] = (None, False)
        else:
            result = (tags[0], len(tags) == 1)
        self._cache[name] = result
        return result


__all__ = ["PygmentsCodeLanguageClassifier", "ALIAS_TAGS"]
