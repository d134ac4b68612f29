"""
Command-line entry point.

Usage:
    normalizer <input.csv> <output.csv> [--report report.json] [-q | -v]

Per-cell warnings go to stderr; nothing is written to stdout. A fatal error
exits 1 before the output file is created.
"""

from __future__ import annotations

import argparse
import csv
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .models import NormalizationReport
from .normalize import PipelineError, normalize_table_bytes


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="normalizer",
        description="Normalize timestamps, ZIPs, names, durations and text in a CSV file.",
    )
    parser.add_argument("input", type=Path, help="CSV file to read")
    parser.add_argument("output", type=Path, help="CSV file to write")
    parser.add_argument("--report", type=Path, default=None, help="also write the JSON report here")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-q", "--quiet", action="store_true", help="only print fatal errors")
    verbosity.add_argument("-v", "--verbose", action="store_true", help="log stage progress")
    return parser


def _fail(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.quiet:
        level = logging.ERROR
    elif args.verbose:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", stream=sys.stderr)

    try:
        raw = args.input.read_bytes()
    except OSError as exc:
        return _fail(f"Error opening input file: {exc}")

    try:
        normalized, report = normalize_table_bytes(raw)
    except csv.Error as exc:
        return _fail(f"Error reading input CSV: {exc}")
    except PipelineError as exc:
        return _fail(str(exc))

    try:
        args.output.write_bytes(normalized)
    except OSError as exc:
        return _fail(f"Error writing output CSV: {exc}")

    if args.report is not None:
        payload = NormalizationReport.model_validate(report).model_dump_json(indent=2)
        try:
            args.report.write_text(payload, encoding="utf-8")
        except OSError as exc:
            return _fail(f"Error writing report: {exc}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
