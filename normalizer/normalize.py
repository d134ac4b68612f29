"""
Pipeline orchestration and CSV byte handling.

Responsibilities:
- decode input bytes into a table (UTF-8, invalid bytes preserved per cell)
- run the fixed stage sequence
- encode the table back to CSV bytes
- build the report envelope
"""

from __future__ import annotations

import base64
import csv
import hashlib
import io
import logging
from typing import Any, Callable, Dict, List, Tuple

from charset_normalizer import from_bytes

from . import rules
from .stages import (
    StageError,
    Table,
    process_addresses,
    process_durations,
    process_first_names,
    process_notes,
    process_timestamps,
    process_total_durations,
    process_zips,
)

log = logging.getLogger(__name__)

Stage = Callable[[Table, List[dict]], Table]

# (name, failure description, stage); order matters: total durations read the
# seconds written by the durations stage.
PIPELINE: List[Tuple[str, str, Stage]] = [
    ("timestamp", "Error formatting timestamps", process_timestamps),
    ("zip", "Error normalizing ZIPs", process_zips),
    ("first_name", "Error processing FullName", process_first_names),
    ("address", "Error validating Address column", process_addresses),
    ("durations", "Error converting durations", process_durations),
    ("total_duration", "Error fixing TotalDuration", process_total_durations),
    ("notes", "Error validating Notes column", process_notes),
]


class PipelineError(Exception):
    """A stage aborted the run. No output is produced."""

    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def decode_table(raw: bytes) -> tuple[Table, Dict[str, Any]]:
    """
    Parse CSV bytes into a list of rows.

    Rules:
    - Input is read as UTF-8 whatever charset-normalizer detects; the detected
      encoding is only reported.
    - A leading UTF-8 BOM is dropped so the first header name matches.
    - Undecodable bytes are kept as surrogateescape code points so the
      Address and Notes stages can judge them per cell.
    - Blank lines are skipped; rows may have any number of fields.
    """
    detected = None
    match = from_bytes(raw).best()
    if match is not None:
        detected = match.encoding

    bom_stripped = raw.startswith(rules.UTF8_BOM)
    if bom_stripped:
        raw = raw[len(rules.UTF8_BOM):]

    text = raw.decode(rules.TEXT_ENCODING, "surrogateescape")

    inp = io.StringIO(text, newline="")
    reader = csv.reader(inp, delimiter=rules.NORMALIZED_DELIMITER)
    records = [row for row in reader if row]

    report = {
        "detected": detected,
        "decode_used": rules.TEXT_ENCODING,
        "bom_stripped": bom_stripped,
        "output": rules.TEXT_ENCODING,
        "notes": "Invalid byte sequences are kept per cell and handled by the Address and Notes stages.",
    }
    return records, report


def encode_table(records: Table) -> bytes:
    outp = io.StringIO(newline="")
    writer = csv.writer(
        outp,
        delimiter=rules.NORMALIZED_DELIMITER,
        lineterminator=rules.LINE_TERMINATOR,
    )
    writer.writerows(records)
    # untouched invalid bytes go back out exactly as they came in
    return outp.getvalue().encode(rules.TEXT_ENCODING, "surrogateescape")


def run_pipeline(records: Table) -> tuple[Table, list[dict]]:
    """Run every stage in order. Raises PipelineError on the first fatal stage."""
    warnings: list[dict] = []

    for name, failure, stage in PIPELINE:
        try:
            records = stage(records, warnings)
        except StageError as exc:
            raise PipelineError(name, f"{failure}: {exc}") from exc
        log.debug("stage %s done (%d warnings so far)", name, len(warnings))

    return records, warnings


def normalize_table_bytes(raw: bytes) -> tuple[bytes, Dict[str, Any]]:
    """
    Decode, normalize and re-encode a CSV file.

    Returns the output bytes and a dict matching NormalizationReport.
    Raises PipelineError (missing column, timezone data) and csv.Error.
    """
    records, enc_report = decode_table(raw)
    records, warnings = run_pipeline(records)
    normalized = encode_table(records)

    report = {
        "summary": {
            "rows": max(len(records) - 1, 0),
            "columns": len(records[0]) if records else 0,
            "warnings": len(warnings),
            "errors": 0,
            "deterministic": True,
        },
        "normalizations": {
            "encoding": enc_report,
            "pipeline": {
                "stages": [name for name, _, _ in PIPELINE],
                "source_timezone": rules.SOURCE_TIMEZONE,
                "target_timezone": rules.TARGET_TIMEZONE,
                "required_columns": list(rules.REQUIRED_COLUMNS),
            },
        },
        "warnings": warnings,
        "errors": [],
    }
    return normalized, report


def normalize_csv_bytes(raw: bytes) -> Dict[str, Any]:
    """
    Normalize an uploaded CSV.
    Returns a dict matching the API's response envelope.
    """
    normalized_bytes, report = normalize_table_bytes(raw)

    b64 = base64.b64encode(normalized_bytes).decode("ascii")
    return {
        "normalized_csv": {
            "sha256": _sha256_hex(normalized_bytes),
            "encoding": rules.TEXT_ENCODING,
            "content_b64": b64,
        },
        "report": report,
    }
