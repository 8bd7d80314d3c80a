# main.py
# SPDX-License-Identifier: MIT

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, Optional, Sequence

from ..core.config import DetectorConfig, load_config_from_path
from ..core.interfaces import FilerError
from ..core.pipeline import DetectionPipeline, DetectionResult
from ..sources.fs import open_filer

NOT_FOUND_MESSAGE = "no license file was found"


def _build_parser() -> argparse.ArgumentParser:
    """Build the licensedetect argument parser."""
    parser = argparse.ArgumentParser(
        prog="licensedetect",
        description="Detect the open-source licenses of directories and zip archives.",
    )
    parser.add_argument("paths", nargs="+", metavar="PATH", help="Directory or .zip archive to scan.")
    parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text).",
    )
    parser.add_argument("-c", "--config", help="Path to config file (TOML or JSON).")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g., DEBUG, INFO, WARNING). Overrides logging.level from the config.",
    )
    return parser


def _load_config(path: Optional[str]) -> DetectorConfig:
    if not path:
        cfg = DetectorConfig()
        cfg.validate()
        return cfg
    return load_config_from_path(path)


def _format_pct(conf: float) -> str:
    return f"{int(round(conf * 100))}%"


def _print_text(path: str, outcome: Dict[str, Any]) -> None:
    print(path)
    if "error" in outcome:
        print(f"\terror: {outcome['error']}")
        return
    result: DetectionResult = outcome["result"]
    if not result.found:
        print(f"\t{NOT_FOUND_MESSAGE}")
        return
    for lid, conf in result.ranked():
        print(f"\t{lid}\t{_format_pct(conf)}")


def _detect_one(path: str, cfg: DetectorConfig) -> Dict[str, Any]:
    try:
        filer = open_filer(path, max_file_bytes=cfg.sources.max_file_bytes)
    except FilerError as exc:
        return {"error": str(exc)}
    try:
        return {"result": DetectionPipeline(filer, cfg).run()}
    finally:
        filer.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the licensedetect command-line interface.

    Each PATH is scanned independently and reported in the order given.
    Paths that cannot be opened are reported inline and make the exit code
    non-zero; a path with no detectable license is a normal outcome.

    Args:
        argv (Sequence[str] | None): Optional list of argument strings to
            parse instead of ``sys.argv[1:]``. Primarily useful for tests.

    Returns:
        int: 0 when every path was scanned, 1 otherwise.
    """
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        cfg = _load_config(args.config)
        if args.log_level:
            cfg.logging.level = args.log_level.upper()
        cfg.logging.apply()
    except Exception as exc:  # noqa: BLE001
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    exit_code = 0
    report: Dict[str, Any] = {}
    try:
        for path in args.paths:
            outcome = _detect_one(path, cfg)
            if "error" in outcome:
                exit_code = 1
            if args.format == "json":
                if "error" in outcome:
                    report[path] = {"error": outcome["error"]}
                else:
                    report[path] = outcome["result"].as_dict()
            else:
                _print_text(path, outcome)
    except Exception as exc:  # noqa: BLE001
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.format == "json":
        print(json.dumps(report, indent=2))
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
