# fs.py
# SPDX-License-Identifier: MIT
"""Read-only file tree access: local directories, zip archives, memory.

Every filer speaks tree-relative POSIX paths with the root as ``""`` and
raises :class:`~licensedetect.core.interfaces.FilerError` for anything it
cannot or will not read. Paths that would leave the tree (absolute paths,
``..`` components, symlinks pointing outside the root) are refused.
"""

from __future__ import annotations

import os
import stat
import zipfile
from collections.abc import Mapping
from pathlib import Path, PurePosixPath

from ..core.interfaces import DirEntry, FilerError
from ..core.log import get_logger

__all__ = [
    "DEFAULT_MAX_FILE_BYTES",
    "normalize_tree_path",
    "LocalFiler",
    "ZipFiler",
    "MemoryFiler",
    "open_filer",
]

log = get_logger(__name__)

DEFAULT_MAX_FILE_BYTES = 1024 * 1024
_CHUNK_SIZE = 64 * 1024


def normalize_tree_path(path: str) -> str:
    """Return ``path`` as a clean tree-relative POSIX path.

    ``""`` and ``"."`` denote the root.

    Raises:
        FilerError: For absolute paths or paths with ``..`` components.
    """
    raw = (path or "").replace("\\", "/")
    if raw.startswith("/") or PurePosixPath(raw).is_absolute() or (len(raw) > 1 and raw[1] == ":"):
        raise FilerError(f"refused absolute path: {path!r}")
    parts = [p for p in raw.split("/") if p not in ("", ".")]
    if any(p == ".." for p in parts):
        raise FilerError(f"refused path outside root: {path!r}")
    return "/".join(parts)


class _FilerBase:
    """Context-manager plumbing shared by the filers."""

    def close(self) -> None:
        return None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Local directory
# ---------------------------------------------------------------------------

class LocalFiler(_FilerBase):
    """Filer over a directory on the local filesystem.

    Args:
        root (str | Path): Tree root directory.
        max_file_bytes (int): Reads stop after this many bytes.

    Raises:
        FilerError: If ``root`` is not a directory.
    """

    def __init__(self, root: str | Path, max_file_bytes: int = DEFAULT_MAX_FILE_BYTES) -> None:
        self.root = Path(root)
        try:
            self.root_resolved = self.root.resolve(strict=True)
        except (OSError, RuntimeError) as exc:
            raise FilerError(f"cannot open tree root {str(root)!r}: {exc}") from exc
        if not self.root_resolved.is_dir():
            raise FilerError(f"tree root is not a directory: {str(root)!r}")
        self.max_file_bytes = max_file_bytes

    def _resolve(self, path: str) -> Path:
        rel = normalize_tree_path(path)
        candidate = self.root_resolved / rel if rel else self.root_resolved
        try:
            resolved = candidate.resolve(strict=True)
        except FileNotFoundError as exc:
            raise FilerError(f"no such path in tree: {path!r}") from exc
        except (OSError, RuntimeError) as exc:
            raise FilerError(f"cannot resolve {path!r}: {exc}") from exc
        try:
            resolved.relative_to(self.root_resolved)
        except ValueError:
            raise FilerError(f"refused path resolving outside root: {path!r}") from None
        return resolved

    def read_dir(self, path: str) -> list[DirEntry]:
        target = self._resolve(path)
        entries: list[DirEntry] = []
        try:
            with os.scandir(target) as it:
                for entry in it:
                    try:
                        is_dir = entry.is_dir()
                    except OSError:
                        is_dir = False
                    entries.append(DirEntry(name=entry.name, is_dir=is_dir))
        except OSError as exc:
            raise FilerError(f"cannot list {path!r}: {exc}") from exc
        entries.sort(key=lambda e: e.name)
        return entries

    def read_file(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            st = target.stat()
        except OSError as exc:
            raise FilerError(f"cannot stat {path!r}: {exc}") from exc
        if not stat.S_ISREG(st.st_mode):
            raise FilerError(f"not a regular file: {path!r}")
        buf = bytearray()
        remaining = max(0, self.max_file_bytes)
        try:
            with target.open("rb") as fh:
                while remaining > 0:
                    chunk = fh.read(min(_CHUNK_SIZE, remaining))
                    if not chunk:
                        break
                    buf.extend(chunk)
                    remaining -= len(chunk)
        except OSError as exc:
            raise FilerError(f"cannot read {path!r}: {exc}") from exc
        return bytes(buf)

    def __repr__(self) -> str:
        return f"LocalFiler({str(self.root)!r})"


# ---------------------------------------------------------------------------
# Zip archive
# ---------------------------------------------------------------------------

class ZipFiler(_FilerBase):
    """Filer over a zip archive.

    When every entry sits under one top-level directory (the layout of
    GitHub zipballs) that directory is treated as the tree root.

    Args:
        path (str | Path): Archive location.
        max_file_bytes (int): Reads stop after this many bytes.

    Raises:
        FilerError: If the archive cannot be opened.
    """

    def __init__(self, path: str | Path, max_file_bytes: int = DEFAULT_MAX_FILE_BYTES) -> None:
        self.path = Path(path)
        self.max_file_bytes = max_file_bytes
        try:
            self.zipf = zipfile.ZipFile(self.path)
        except (OSError, zipfile.BadZipFile) as exc:
            raise FilerError(f"cannot open zip archive {str(path)!r}: {exc}") from exc
        self.top_prefix = self._infer_top_prefix()
        self._files: dict[str, zipfile.ZipInfo] = {}
        self._dirs: dict[str, dict[str, bool]] = {"": {}}
        self._index()

    def _infer_top_prefix(self) -> str:
        """Infer the top-level directory created by GitHub zipballs."""
        components: set[str] = set()
        has_root_file = False
        for name in self.zipf.namelist():
            if not name or name.startswith("__MACOSX/"):
                continue
            first, sep, _rest = name.partition("/")
            if not sep:
                has_root_file = True
            elif first:
                components.add(first)
        if len(components) == 1 and not has_root_file:
            return next(iter(components)) + "/"
        return ""

    def _index(self) -> None:
        for info in self.zipf.infolist():
            name = info.filename
            if not name or name.startswith("__MACOSX/") or not name.startswith(self.top_prefix):
                continue
            rel = name[len(self.top_prefix):]
            is_dir = rel.endswith("/")
            try:
                rel = normalize_tree_path(rel)
            except FilerError:
                log.warning("Ignoring unsafe zip entry %s", name)
                continue
            if not rel:
                continue
            if not is_dir:
                self._files[rel] = info
            parts = rel.split("/")
            for depth in range(len(parts)):
                parent = "/".join(parts[:depth])
                child_is_dir = is_dir or depth < len(parts) - 1
                children = self._dirs.setdefault(parent, {})
                children[parts[depth]] = children.get(parts[depth], False) or child_is_dir
                if child_is_dir:
                    self._dirs.setdefault("/".join(parts[: depth + 1]), {})

    def read_dir(self, path: str) -> list[DirEntry]:
        rel = normalize_tree_path(path)
        entries = self._dirs.get(rel)
        if entries is None:
            raise FilerError(f"no such directory in archive: {path!r}")
        return [DirEntry(name=n, is_dir=d) for n, d in sorted(entries.items())]

    def read_file(self, path: str) -> bytes:
        rel = normalize_tree_path(path)
        info = self._files.get(rel)
        if info is None:
            raise FilerError(f"no such file in archive: {path!r}")
        try:
            with self.zipf.open(info) as fh:
                return fh.read(max(0, self.max_file_bytes))
        except (OSError, zipfile.BadZipFile, RuntimeError) as exc:
            raise FilerError(f"cannot read {path!r} from archive: {exc}") from exc

    def close(self) -> None:
        self.zipf.close()

    def __repr__(self) -> str:
        return f"ZipFiler({str(self.path)!r})"


# ---------------------------------------------------------------------------
# In-memory tree
# ---------------------------------------------------------------------------

class MemoryFiler(_FilerBase):
    """Filer over a mapping of tree paths to contents.

    Directories are implied by path prefixes; ``str`` values are encoded as
    UTF-8.
    """

    def __init__(self, files: Mapping[str, bytes | str]) -> None:
        self._files: dict[str, bytes] = {}
        for path, data in files.items():
            rel = normalize_tree_path(path)
            if not rel:
                raise FilerError("file path must not be empty")
            self._files[rel] = data.encode("utf-8") if isinstance(data, str) else bytes(data)

    def read_dir(self, path: str) -> list[DirEntry]:
        rel = normalize_tree_path(path)
        prefix = rel + "/" if rel else ""
        if rel and rel in self._files:
            raise FilerError(f"not a directory: {path!r}")
        found: dict[str, bool] = {}
        for name in self._files:
            if not name.startswith(prefix):
                continue
            head, sep, _rest = name[len(prefix):].partition("/")
            found[head] = found.get(head, False) or bool(sep)
        if rel and not found:
            raise FilerError(f"no such directory: {path!r}")
        return [DirEntry(name=n, is_dir=d) for n, d in sorted(found.items())]

    def read_file(self, path: str) -> bytes:
        rel = normalize_tree_path(path)
        try:
            return self._files[rel]
        except KeyError:
            raise FilerError(f"no such file: {path!r}") from None


def open_filer(path: str | Path, *, max_file_bytes: int = DEFAULT_MAX_FILE_BYTES):
    """Return a :class:`LocalFiler` for a directory or a :class:`ZipFiler`
    for a zip archive.

    Raises:
        FilerError: If ``path`` is neither.
    """
    p = Path(path)
    if p.is_dir():
        return LocalFiler(p, max_file_bytes=max_file_bytes)
    if p.is_file() and (p.suffix.lower() == ".zip" or zipfile.is_zipfile(p)):
        return ZipFiler(p, max_file_bytes=max_file_bytes)
    raise FilerError(f"not a directory or zip archive: {str(path)!r}")
