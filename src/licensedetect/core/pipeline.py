# pipeline.py
# SPDX-License-Identifier: MIT
"""Staged license detection over one file tree.

The pipeline tries license files, then README prose, then source-file
header comments, and stops at the first stage whose merged score map is
non-empty. Candidates inside a stage are independent and may be scored
concurrently; their scores are merged by per-id maximum.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from .aggregate import ScoreAccumulator
from .classify import CandidateSets, list_tree_files, partition_candidates, read_license_candidate
from .concurrency import resolve_executor_config, run_each
from .config import DetectorConfig
from .interfaces import (
    Candidate,
    CodeLanguageClassifier,
    Filer,
    FilerError,
    MentionExtractor,
    NoLicenseFoundError,
    ScoreMap,
    UnsupportedLanguageSyntax,
)
from .language_id import make_code_language_classifier
from .log import get_logger
from .mentions import make_mention_extractor
from .normalize import TextNormalizer
from .similarity import SimilarityEngine

__all__ = [
    "Stage",
    "STAGE_ORDER",
    "NEXT_STAGE",
    "DetectionResult",
    "DetectionPipeline",
    "detect",
    "detect_path",
]

log = get_logger(__name__)

T = TypeVar("T")


class Stage(str, Enum):
    LICENSE_FILES = "license_files"
    README = "readme"
    SOURCE_HEADERS = "source_headers"
    NOT_FOUND = "not_found"


STAGE_ORDER: Tuple[Stage, ...] = (Stage.LICENSE_FILES, Stage.README, Stage.SOURCE_HEADERS)

# Strictly forward; NOT_FOUND is terminal.
NEXT_STAGE: Dict[Stage, Stage] = {
    Stage.LICENSE_FILES: Stage.README,
    Stage.README: Stage.SOURCE_HEADERS,
    Stage.SOURCE_HEADERS: Stage.NOT_FOUND,
}


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of one pipeline run.

    Attributes:
        licenses (dict[str, float]): Merged confidences of the stage that
            ended the run; empty when nothing was found.
        stage (Stage): Stage that produced ``licenses``, or
            ``Stage.NOT_FOUND``.
    """
    licenses: ScoreMap = field(default_factory=dict)
    stage: Stage = Stage.NOT_FOUND

    @property
    def found(self) -> bool:
        return self.stage is not Stage.NOT_FOUND

    def ranked(self) -> List[Tuple[str, float]]:
        """Licenses sorted by confidence, highest first, then by id."""
        return sorted(self.licenses.items(), key=lambda item: (-item[1], item[0]))

    def as_dict(self) -> Dict[str, Any]:
        return {"licenses": dict(self.ranked()), "stage": self.stage.value}


@dataclass
class _RunState:
    """Listing and per-run bookkeeping shared by the stages of one run."""
    files: List[str]
    sets: CandidateSets
    warned_langs: set[str] = field(default_factory=set)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def first_unsupported(self, lang: Optional[str]) -> bool:
        """Return True the first time ``lang`` is reported in this run."""
        key = lang or ""
        with self.lock:
            if key in self.warned_langs:
                return False
            self.warned_langs.add(key)
            return True


class DetectionPipeline:
    """Run the license-file, README and source-header stages over a tree.

    Args:
        filer (Filer): Read-only access to the tree.
        config (DetectorConfig | None): Settings; defaults when omitted.
        engine (SimilarityEngine | None): Scorer; built over the shared
            corpus with the configured thresholds when omitted.
        classifier (CodeLanguageClassifier | None): Picks source files for
            the header stage; built from ``config.classifier.code_backend``
            when omitted.
        extractor (MentionExtractor | None): README mention extractor;
            built from ``config.matching.mention_backend`` when omitted.

    Raises:
        CorpusInitializationError: If the bundled corpus cannot be built.
        ValueError: If the configuration is invalid.
    """

    def __init__(
        self,
        filer: Filer,
        config: Optional[DetectorConfig] = None,
        *,
        engine: Optional[SimilarityEngine] = None,
        classifier: Optional[CodeLanguageClassifier] = None,
        extractor: Optional[MentionExtractor] = None,
    ) -> None:
        cfg = config or DetectorConfig()
        cfg.validate()
        self.filer = filer
        self.config = cfg
        if engine is None:
            if extractor is None and cfg.matching.mention_backend != "baseline":
                from .corpus import get_corpus

                extractor = make_mention_extractor(cfg.matching.mention_backend, get_corpus().vocabulary())
            engine = SimilarityEngine(
                min_similarity=cfg.matching.min_similarity,
                readme_min_similarity=cfg.matching.readme_min_similarity,
                extractor=extractor,
            )
        self.engine = engine
        self.extractor = extractor
        self._classifier = classifier
        self.normalizer = TextNormalizer(cfg.normalizer.header_window_bytes)
        self.executor_cfg = resolve_executor_config(cfg.concurrency)
        self._handlers: Dict[Stage, Callable[[_RunState], ScoreMap]] = {
            Stage.LICENSE_FILES: self._scan_license_files,
            Stage.README: self._scan_readmes,
            Stage.SOURCE_HEADERS: self._scan_source_headers,
        }

    @property
    def classifier(self) -> CodeLanguageClassifier:
        if self._classifier is None:
            self._classifier = make_code_language_classifier(self.config.classifier.code_backend)
        return self._classifier

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------
    def run(self) -> DetectionResult:
        """Run the stages in order and stop at the first non-empty result."""
        files = list_tree_files(self.filer)
        state = _RunState(files=files, sets=partition_candidates(files))
        log.debug(
            "Tree listing: %d files, %d license files, %d READMEs",
            len(files),
            len(state.sets.license_files),
            len(state.sets.readmes),
        )
        stage = STAGE_ORDER[0]
        while stage is not Stage.NOT_FOUND:
            scores = self._handlers[stage](state)
            if scores:
                log.info("Detected %d license(s) at stage %s", len(scores), stage.value)
                return DetectionResult(licenses=scores, stage=stage)
            nxt = NEXT_STAGE[stage]
            log.debug("Stage %s found nothing; moving to %s", stage.value, nxt.value)
            stage = nxt
        log.info("No license found")
        return DetectionResult(licenses={}, stage=Stage.NOT_FOUND)

    def _score_each(self, items: Iterable[T], fn: Callable[[T], ScoreMap]) -> ScoreMap:
        acc = ScoreAccumulator()
        run_each(items, fn, acc.add, self.executor_cfg, fail_fast=True, on_error=_log_candidate_error)
        return acc.result()

    def _read(self, path: str) -> Optional[bytes]:
        try:
            return self.filer.read_file(path)
        except (FilerError, OSError) as exc:
            log.debug("Skipping unreadable candidate %s: %s", path, exc)
            return None

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    def _scan_license_files(self, state: _RunState) -> ScoreMap:
        redirect_max = self.config.classifier.redirect_max_bytes

        def _one(path: str) -> ScoreMap:
            try:
                cand = read_license_candidate(self.filer, path, redirect_max)
            except (FilerError, OSError) as exc:
                log.debug("Skipping unreadable license file %s: %s", path, exc)
                return {}
            text = self.normalizer.normalize(cand)
            return self.engine.query_license_text(text) if text else {}

        return self._score_each(state.sets.license_files, _one)

    def _scan_readmes(self, state: _RunState) -> ScoreMap:
        def _one(path: str) -> ScoreMap:
            data = self._read(path)
            if data is None:
                return {}
            text = self.normalizer.normalize(Candidate(path=path, data=data))
            if not text:
                return {}
            return self.engine.query_readme_text(text, self.filer, self.extractor)

        return self._score_each(state.sets.readmes, _one)

    def _scan_source_headers(self, state: _RunState) -> ScoreMap:
        sources = partition_candidates(state.files, self.classifier).sources

        def _one(item: Tuple[str, str]) -> ScoreMap:
            path, lang = item
            data = self._read(path)
            if data is None:
                return {}
            try:
                text = self.normalizer.normalize(Candidate(path=path, data=data, lang=lang))
            except UnsupportedLanguageSyntax as exc:
                if state.first_unsupported(exc.lang):
                    log.warning(
                        "No comment syntax for language %r; skipping %s and other files in it", exc.lang, path
                    )
                return {}
            return self.engine.query_source_file(text) if text else {}

        return self._score_each(sources, _one)


def _log_candidate_error(exc: BaseException) -> None:
    log.error("Candidate scoring failed: %s", exc)


def detect(filer: Filer, config: Optional[DetectorConfig] = None) -> ScoreMap:
    """Detect the licenses of the tree behind ``filer``.

    Returns:
        dict[str, float]: License id to confidence for the first stage that
        found anything.

    Raises:
        NoLicenseFoundError: If no stage produced a match.
        CorpusInitializationError: If the bundled corpus cannot be built.
    """
    result = DetectionPipeline(filer, config).run()
    if not result.found:
        raise NoLicenseFoundError()
    return result.licenses


def detect_path(path: str | Path, config: Optional[DetectorConfig] = None) -> ScoreMap:
    """Open a directory or ``.zip`` archive and run :func:`detect` on it.

    Raises:
        FilerError: If ``path`` is neither a directory nor a zip archive.
        NoLicenseFoundError: If no stage produced a match.
    """
    from ..sources.fs import open_filer

    cfg = config or DetectorConfig()
    filer = open_filer(path, max_file_bytes=cfg.sources.max_file_bytes)
    try:
        return detect(filer, cfg)
    finally:
        filer.close()
