"""
Column-scoped pipeline stages.

Every stage takes the whole table (header first) plus the run's warning list,
resolves its column(s) once and returns a new table. Rows are copied, never
mutated in place.

Rules:
- A missing column raises StageError and aborts the run.
- Any per-cell problem is recorded as a warning and the cell is kept as is
  (TotalDuration is blanked instead).
- Cells beyond a short row's length are skipped.
"""

from __future__ import annotations

import logging
from typing import List

from zoneinfo import ZoneInfoNotFoundError

from . import rules
from .parsing import (
    display,
    format_seconds,
    is_valid_text,
    load_zone,
    parse_duration,
    parse_float,
    parse_int,
    parse_timestamp,
    sanitize_text,
)

log = logging.getLogger(__name__)

Table = List[List[str]]


class StageError(Exception):
    """Structural problem with the table; the pipeline cannot continue."""


def find_column(header: list[str], name: str, *, ignore_case: bool = False, strip: bool = False) -> int:
    wanted = name.casefold() if ignore_case else name
    for i, column in enumerate(header):
        if strip:
            column = column.strip()
        if ignore_case:
            column = column.casefold()
        if column == wanted:
            return i
    raise StageError(f"{name} column not found")


def _warn(warnings: list[dict], row: int, column: str, issue: str, value: str, action: str) -> None:
    shown = display(value)
    log.warning("row %d, %s: %s '%s' (%s)", row, column, issue, shown, action)
    warnings.append({
        "row": row,
        "column": column,
        "issue": issue,
        "value": shown,
        "action": action,
    })


def process_timestamps(records: Table, warnings: list[dict]) -> Table:
    """Convert Pacific ``M/D/YY h:mm:ss AM|PM`` timestamps to Eastern RFC3339."""
    if not records:
        return records

    header = records[0]
    index = find_column(header, rules.TIMESTAMP_COLUMN)

    try:
        source = load_zone(rules.SOURCE_TIMEZONE)
        target = load_zone(rules.TARGET_TIMEZONE)
    except ZoneInfoNotFoundError as exc:
        raise StageError(f"failed to load timezone: {exc}") from exc

    updated = [header]
    for line, row in enumerate(records[1:], start=2):
        new_row = list(row)

        if index < len(new_row):
            value = new_row[index]
            try:
                stamp = parse_timestamp(value, source)
            except ValueError:
                _warn(warnings, line, header[index], "invalid_timestamp", value, "kept_original")
            else:
                new_row[index] = stamp.astimezone(target).isoformat(timespec="seconds")

        updated.append(new_row)

    return updated


def process_zips(records: Table, warnings: list[dict]) -> Table:
    """Left-pad numeric ZIP codes with zeros to five characters."""
    if not records:
        return records

    header = records[0]
    index = find_column(header, rules.ZIP_COLUMN, ignore_case=True)

    updated = [header]
    for line, row in enumerate(records[1:], start=2):
        new_row = list(row)

        if index < len(new_row):
            zip_code = new_row[index].strip()
            if zip_code:
                try:
                    parse_int(zip_code)
                except ValueError:
                    _warn(warnings, line, header[index], "invalid_zip", zip_code, "kept_original")
                else:
                    # padding never truncates; a sign counts as a character
                    new_row[index] = zip_code.rjust(rules.ZIP_WIDTH, rules.ZIP_FILL)

        updated.append(new_row)

    return updated


def process_first_names(records: Table, warnings: list[dict]) -> Table:
    """Uppercase the first word of FullName and collapse inner whitespace."""
    if not records:
        return records

    header = records[0]
    index = find_column(header, rules.FULL_NAME_COLUMN, ignore_case=True)

    updated = [header]
    for row in records[1:]:
        new_row = list(row)

        if index < len(new_row):
            parts = new_row[index].split()
            if parts:
                parts[0] = parts[0].upper()
                new_row[index] = " ".join(parts)

        updated.append(new_row)

    return updated


def process_addresses(records: Table, warnings: list[dict]) -> Table:
    """Report Address cells that are not valid UTF-8. Cells are never changed."""
    if not records:
        return records

    header = records[0]
    index = find_column(header, rules.ADDRESS_COLUMN, ignore_case=True)

    updated = [header]
    for line, row in enumerate(records[1:], start=2):
        new_row = list(row)

        if index < len(new_row) and not is_valid_text(new_row[index]):
            _warn(warnings, line, header[index], "invalid_utf8", new_row[index], "reported")

        updated.append(new_row)

    return updated


def process_durations(records: Table, warnings: list[dict]) -> Table:
    """
    Rewrite FooDuration and BarDuration from ``H:MM:SS.fff`` to seconds.

    The two cells of a row are parsed independently.
    """
    if not records:
        return records

    header = records[0]
    foo = find_column(header, rules.FOO_DURATION_COLUMN, strip=True)
    bar = find_column(header, rules.BAR_DURATION_COLUMN, strip=True)

    updated = [header]
    for line, row in enumerate(records[1:], start=2):
        new_row = list(row)

        for index in (foo, bar):
            if index >= len(new_row):
                continue
            value = new_row[index]
            try:
                seconds = parse_duration(value)
            except ValueError as exc:
                log.debug("row %d: %s", line, exc)
                _warn(warnings, line, header[index].strip(), "invalid_duration", value, "kept_original")
            else:
                new_row[index] = format_seconds(seconds)

        updated.append(new_row)

    return updated


def process_total_durations(records: Table, warnings: list[dict]) -> Table:
    """
    Set TotalDuration to FooDuration + BarDuration.

    Reads the seconds written by process_durations, so it has to run after it.
    A row whose Foo or Bar is not a number gets an empty TotalDuration.
    """
    if not records:
        return records

    header = records[0]
    foo = find_column(header, rules.FOO_DURATION_COLUMN, strip=True)
    bar = find_column(header, rules.BAR_DURATION_COLUMN, strip=True)
    total = find_column(header, rules.TOTAL_DURATION_COLUMN, strip=True)

    updated = [header]
    for line, row in enumerate(records[1:], start=2):
        new_row = list(row)

        if total < len(new_row):
            foo_value = new_row[foo] if foo < len(new_row) else ""
            bar_value = new_row[bar] if bar < len(new_row) else ""
            try:
                seconds = parse_float(foo_value.strip()) + parse_float(bar_value.strip())
            except ValueError:
                new_row[total] = ""
                _warn(
                    warnings, line, header[total].strip(), "invalid_duration_sum",
                    f"{foo_value}, {bar_value}", "blanked",
                )
            else:
                new_row[total] = format_seconds(seconds)

        updated.append(new_row)

    return updated


def process_notes(records: Table, warnings: list[dict]) -> Table:
    """Replace invalid UTF-8 sequences in Notes with U+FFFD."""
    if not records:
        return records

    header = records[0]
    index = find_column(header, rules.NOTES_COLUMN, ignore_case=True)

    updated = [header]
    for line, row in enumerate(records[1:], start=2):
        new_row = list(row)

        if index < len(new_row):
            value = new_row[index]
            if not is_valid_text(value):
                try:
                    cleaned = sanitize_text(value)
                except UnicodeError:
                    _warn(warnings, line, header[index], "invalid_utf8", value, "kept_original")
                else:
                    new_row[index] = cleaned
                    _warn(warnings, line, header[index], "invalid_utf8", value, "replaced_invalid_sequences")

        updated.append(new_row)

    return updated
