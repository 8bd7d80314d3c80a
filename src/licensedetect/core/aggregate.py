# aggregate.py
# SPDX-License-Identifier: MIT
"""
Merge per-candidate score maps into one map per license id.

The merge keeps the maximum confidence per id, so it is commutative and
associative and the result does not depend on the order in which
candidates finish.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping

from .interfaces import ScoreMap

__all__ = ["merge_score_maps", "ScoreAccumulator"]


def _merge_into(out: dict[str, float], scores: Mapping[str, float]) -> None:
    for lid, conf in scores.items():
        value = min(1.0, max(0.0, float(conf)))
        if lid not in out or value > out[lid]:
            out[lid] = value


def merge_score_maps(maps: Iterable[Mapping[str, float]]) -> ScoreMap:
    """Return the per-id maximum over ``maps``; empty input gives ``{}``."""
    merged: ScoreMap = {}
    for scores in maps:
        _merge_into(merged, scores)
    return merged


class ScoreAccumulator:
    """Thread-safe incremental form of :func:`merge_score_maps`."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._scores: ScoreMap = {}

    def add(self, scores: Mapping[str, float]) -> None:
        if not scores:
            return
        with self._lock:
            _merge_into(self._scores, scores)

    def result(self) -> ScoreMap:
        with self._lock:
            return dict(self._scores)

    def __bool__(self) -> bool:
        with self._lock:
            return bool(self._scores)
