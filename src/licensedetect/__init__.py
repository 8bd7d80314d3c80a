# __init__.py
# SPDX-License-Identifier: MIT
"""
Top-level package exports for :mod:`licensedetect`.

Most callers need one function::

    >>> from licensedetect import detect_path
    >>> detect_path("path/to/repo")          # doctest: +SKIP
    {'MIT': 1.0}

:func:`detect` does the same for any :class:`Filer` (for example a
:class:`MemoryFiler` built in a test) and raises :class:`NoLicenseFoundError`
when none of the license-file, README or source-header stages finds
anything. :class:`DetectionPipeline` exposes the stage that produced the
result.

Settings come from :class:`DetectorConfig`, built in code or loaded from
TOML/JSON with :func:`load_config_from_path`. The bundled reference corpus is
loaded once per process on first use; :func:`get_corpus` returns it.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Package version
# ---------------------------------------------------------------------------
try:
    from importlib.metadata import version as _pkg_version

    __version__ = _pkg_version("licensedetect")
except Exception:  # PackageNotFoundError or runtime env oddities
    __version__ = "0.0.0+unknown"


from .core.aggregate import ScoreAccumulator, merge_score_maps
from .core.classify import is_license_directory, is_license_file, is_readme_file
from .core.config import DetectorConfig, load_config_from_path
from .core.corpus import ReferenceCorpus, ReferenceLicense, get_corpus, load_corpus
from .core.interfaces import (
    Candidate,
    CorpusInitializationError,
    DirEntry,
    Filer,
    FilerError,
    LicenseDetectError,
    NoLicenseFoundError,
    ScoreMap,
    UnsupportedLanguageSyntax,
)
from .core.log import configure_logging, get_logger, temp_level
from .core.normalize import TextNormalizer
from .core.pipeline import DetectionPipeline, DetectionResult, Stage, detect, detect_path
from .core.similarity import SimilarityEngine
from .sources.fs import LocalFiler, MemoryFiler, ZipFiler, open_filer

__all__ = [
    "__version__",
    "detect",
    "detect_path",
    "DetectionPipeline",
    "DetectionResult",
    "Stage",
    "DetectorConfig",
    "load_config_from_path",
    "SimilarityEngine",
    "TextNormalizer",
    "ReferenceCorpus",
    "ReferenceLicense",
    "get_corpus",
    "load_corpus",
    "merge_score_maps",
    "ScoreAccumulator",
    "is_license_file",
    "is_license_directory",
    "is_readme_file",
    "Candidate",
    "DirEntry",
    "Filer",
    "ScoreMap",
    "LocalFiler",
    "ZipFiler",
    "MemoryFiler",
    "open_filer",
    "LicenseDetectError",
    "NoLicenseFoundError",
    "CorpusInitializationError",
    "UnsupportedLanguageSyntax",
    "FilerError",
    "configure_logging",
    "get_logger",
    "temp_level",
]
