# config.py
# SPDX-License-Identifier: MIT
"""Configuration models and helpers for license detection runs.

Declarative dataclasses cover file classification, text normalization,
similarity thresholds, concurrency, tree access limits, and logging, along
with helpers to load a configuration from JSON or TOML.
"""
from __future__ import annotations

import json
import os
try:  # pragma: no cover - optional dependency
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover
    try:
        import tomli as tomllib  # type: ignore[no-redef]
    except ModuleNotFoundError:  # pragma: no cover
        tomllib = None  # type: ignore[assignment]
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Type, TypeVar, Union, get_args, get_origin, get_type_hints

from .log import PACKAGE_LOGGER_NAME, configure_logging

__all__ = [
    "ClassifierConfig",
    "NormalizerConfig",
    "MatchingConfig",
    "ConcurrencyConfig",
    "SourceAccessConfig",
    "LoggingConfig",
    "DetectorConfig",
    "load_config_from_path",
]

CODE_BACKENDS = {"pygments", "baseline", "none"}
MENTION_BACKENDS = {"baseline", "spacy"}


# ---------------------------------------------------------------------------
# Section configs
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class ClassifierConfig:
    """File classification settings.

    Attributes:
        code_backend (str): Language classifier used to pick source files
            for the header-comment stage: ``pygments``, ``baseline`` or
            ``none`` (disables the stage).
        redirect_max_bytes (int): License files shorter than this are
            treated as possible redirects to another file in the tree.
    """
    code_backend: str = "pygments"
    redirect_max_bytes: int = 128


@dataclass(slots=True)
class NormalizerConfig:
    """Text normalization settings.

    Attributes:
        header_window_bytes (int): Leading bytes of a source file searched
            for header comments.
    """
    header_window_bytes: int = 1024


@dataclass(slots=True)
class MatchingConfig:
    """Similarity thresholds and README mention extraction.

    Attributes:
        min_similarity (float): Lowest Jaccard score reported for license
            files and source headers.
        readme_min_similarity (float): Lowest name similarity accepted when
            mapping README mentions to license ids.
        mention_backend (str): ``baseline`` (regular expressions) or
            ``spacy`` (requires the ``ner`` extra).
    """
    min_similarity: float = 0.75
    readme_min_similarity: float = 0.6
    mention_backend: str = "baseline"


@dataclass(slots=True)
class ConcurrencyConfig:
    """Per-stage candidate scoring concurrency.

    Attributes:
        max_workers (int): Thread count; 0 picks ``min(8, cpu_count)`` and
            1 scores candidates sequentially.
        window (int): Maximum in-flight candidates; 0 means twice the
            worker count.
    """
    max_workers: int = 0
    window: int = 0

    def resolved_workers(self) -> int:
        if self.max_workers > 0:
            return self.max_workers
        return max(1, min(8, os.cpu_count() or 1))

    def resolved_window(self) -> int:
        workers = self.resolved_workers()
        return self.window if self.window > 0 else workers * 2


@dataclass(slots=True)
class SourceAccessConfig:
    """Limits applied by filers when reading the tree.

    Attributes:
        max_file_bytes (int): Hard cap on bytes read per file.
    """
    max_file_bytes: int = 1024 * 1024


@dataclass(slots=True)
class LoggingConfig:
    """Controls the package logger; set propagate/logger_name to
    integrate with host apps.
    """
    level: Union[int, str] = "INFO"
    propagate: bool = False
    fmt: Optional[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    logger_name: str = PACKAGE_LOGGER_NAME

    def apply(self) -> None:
        """Apply this logging configuration to the package logger."""
        configure_logging(
            level=self.level,
            propagate=self.propagate,
            fmt=self.fmt,
            logger_name=self.logger_name or PACKAGE_LOGGER_NAME,
        )


# ---------------------------------------------------------------------------
# Master config
# ---------------------------------------------------------------------------

T = TypeVar("T")


@dataclass(slots=True)
class DetectorConfig:
    """Declarative settings for a detection run.

    Only plain configuration values live here; filers, classifiers, mention
    extractors and the similarity engine are built from it at run time.
    """
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    normalizer: NormalizerConfig = field(default_factory=NormalizerConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    concurrency: ConcurrencyConfig = field(default_factory=ConcurrencyConfig)
    sources: SourceAccessConfig = field(default_factory=SourceAccessConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Check value ranges and normalize backend names.

        Raises:
            ValueError: If a threshold, limit or backend name is invalid.
        """
        backend = (self.classifier.code_backend or "none").strip().lower()
        if backend not in CODE_BACKENDS:
            raise ValueError(
                f"classifier.code_backend must be one of {sorted(CODE_BACKENDS)}; got {self.classifier.code_backend!r}."
            )
        self.classifier.code_backend = backend
        if self.classifier.redirect_max_bytes < 0:
            raise ValueError("classifier.redirect_max_bytes must be >= 0.")

        if self.normalizer.header_window_bytes <= 0:
            raise ValueError("normalizer.header_window_bytes must be > 0.")

        for name in ("min_similarity", "readme_min_similarity"):
            value = float(getattr(self.matching, name))
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"matching.{name} must be between 0.0 and 1.0; got {value!r}.")
            setattr(self.matching, name, value)
        mention = (self.matching.mention_backend or "baseline").strip().lower()
        if mention not in MENTION_BACKENDS:
            raise ValueError(
                f"matching.mention_backend must be one of {sorted(MENTION_BACKENDS)}; got {self.matching.mention_backend!r}."
            )
        self.matching.mention_backend = mention

        if self.concurrency.max_workers < 0 or self.concurrency.window < 0:
            raise ValueError("concurrency.max_workers and concurrency.window must be >= 0.")
        if self.sources.max_file_bytes <= 0:
            raise ValueError("sources.max_file_bytes must be > 0.")

    # -------------------------
    # Serialization helpers
    # -------------------------
    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation of this configuration."""
        return _dataclass_to_dict(self)

    def to_json(self, path: Path | str, *, indent: int = 2) -> str:
        """Write the configuration as JSON and return the path written."""
        target = Path(path)
        target.write_text(json.dumps(self.to_dict(), indent=indent, sort_keys=True), encoding="utf-8")
        return str(target)

    @classmethod
    def from_dict(cls: Type[T], data: Mapping[str, Any]) -> T:
        """Instantiate a DetectorConfig from a mapping.

        Raises:
            ValueError: If the mapping contains unknown keys at any level.
        """
        return _dataclass_from_dict(cls, data)

    @classmethod
    def from_json(cls: Type[T], path: Path | str) -> T:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_dict(payload)

    @classmethod
    def from_toml(cls: Type[T], path: Path | str) -> T:
        """
        Load a DetectorConfig from a TOML file.

        The TOML layout mirrors the dataclass: top-level tables [classifier],
        [normalizer], [matching], [concurrency], [sources], [logging].
        """
        if tomllib is None:
            raise RuntimeError(
                "TOML support requires Python 3.11+ (tomllib) or installing the 'tomli' package."
            )
        data = tomllib.loads(Path(path).read_bytes().decode("utf-8"))
        if not isinstance(data, Mapping):
            raise TypeError(f"Top-level TOML document must be a mapping; got {type(data).__name__}.")
        return cls.from_dict(data)


def load_config_from_path(path: str | Path) -> DetectorConfig:
    """Load and validate a DetectorConfig from a ``.toml`` or ``.json`` file.

    Raises:
        ValueError: If the file extension is not ``.toml`` or ``.json`` or
            the content fails validation.
    """
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".toml":
        cfg = DetectorConfig.from_toml(p)
    elif suffix == ".json":
        cfg = DetectorConfig.from_json(p)
    else:
        raise ValueError(f"Unsupported config extension {p.suffix!r}; expected .toml or .json.")
    cfg.validate()
    return cfg


# ---------------------------------------------------------------------------
# Dataclass <-> mapping helpers
# ---------------------------------------------------------------------------

def _dataclass_to_dict(obj: Any) -> Dict[str, Any]:
    """Serialize dataclasses to JSON-friendly dicts, skipping None fields."""
    result: Dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        result[f.name] = _dataclass_to_dict(value) if is_dataclass(value) else value
    return result


def _dataclass_from_dict(cls: Type[T], data: Mapping[str, Any] | None) -> T:
    """Instantiate dataclass ``cls`` from ``data``, rejecting unknown keys."""
    if data is None:
        return cls()  # type: ignore[call-arg]
    if not isinstance(data, Mapping):
        raise TypeError(f"{cls.__name__} expects a mapping; got {type(data).__name__}.")
    field_names = {f.name for f in fields(cls)}
    unknown = sorted(k for k in data if k not in field_names)
    if unknown:
        raise ValueError(
            f"Unsupported options for {cls.__name__}: {', '.join(unknown)}. "
            f"Allowed keys: {', '.join(sorted(field_names))}"
        )
    type_hints = get_type_hints(cls)
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        kwargs[f.name] = _coerce_value(type_hints.get(f.name, f.type), data[f.name])
    return cls(**kwargs)  # type: ignore[arg-type]


def _coerce_value(expected_type: Any, value: Any) -> Any:
    """Coerce ``value`` into the shape implied by ``expected_type``."""
    base_type, _ = _strip_optional(expected_type)
    if value is None:
        return None
    if isinstance(base_type, type) and is_dataclass(base_type):
        return _dataclass_from_dict(base_type, value)
    if base_type is bool:
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)
    if base_type in {str, int, float}:
        return base_type(value)
    return value


def _strip_optional(typ: Any) -> Tuple[Any, bool]:
    """Strip ``None`` from a single-member Optional annotation."""
    if get_origin(typ) is Union:
        args = [arg for arg in get_args(typ) if arg is not type(None)]
        if len(args) == 1:
            base, _ = _strip_optional(args[0])
            return base, True
    return typ, False
