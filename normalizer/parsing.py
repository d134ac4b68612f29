"""
Cell-level parsers shared by the pipeline stages.

Parsers raise ValueError on malformed input; the stages turn that into a
report warning and keep the original cell.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from zoneinfo import ZoneInfo

from .rules import (
    DURATION_PRECISION,
    TEXT_ENCODING,
    TIMESTAMP_PATTERN,
    TWO_DIGIT_YEAR_PIVOT,
)

# ASCII digits only: str.isdigit()/int() would also accept other scripts and "1_000".
_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
    r"|[+-]?(?:inf|infinity|nan)",
    re.IGNORECASE,
)
_TIMESTAMP_RE = re.compile(TIMESTAMP_PATTERN)


def parse_int(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer {text!r}")
    return int(text)


def parse_float(text: str) -> float:
    if not _FLOAT_RE.fullmatch(text):
        raise ValueError(f"invalid number {text!r}")
    value = float(text)
    # float() saturates to inf on overflow instead of failing
    if math.isinf(value) and "inf" not in text.lower():
        raise ValueError(f"value out of range {text!r}")
    return value


def parse_duration(text: str) -> float:
    """
    Parse ``H:MM:SS.fraction`` into total seconds.

    Exactly three colon-separated parts: integer hours, integer minutes and
    float seconds. The cell is not trimmed.
    """
    parts = text.split(":")
    if len(parts) != 3:
        raise ValueError(f"invalid format {text!r}")

    hours_text, minutes_text, seconds_text = parts
    try:
        hours = parse_int(hours_text)
    except ValueError as exc:
        raise ValueError(f"invalid hours: {exc}") from None
    try:
        minutes = parse_int(minutes_text)
    except ValueError as exc:
        raise ValueError(f"invalid minutes: {exc}") from None
    try:
        seconds = parse_float(seconds_text)
    except ValueError as exc:
        raise ValueError(f"invalid seconds: {exc}") from None

    return float(hours * 3600 + minutes * 60) + seconds


def format_seconds(seconds: float) -> str:
    return f"{seconds:.{DURATION_PRECISION}f}"


def load_zone(name: str) -> ZoneInfo:
    # ZoneInfoNotFoundError propagates; a missing tz database is fatal.
    return ZoneInfo(name)


def parse_timestamp(text: str, zone: ZoneInfo) -> datetime:
    """Parse ``M/D/YY h:mm:ss AM|PM`` as wall-clock time in ``zone``."""
    match = _TIMESTAMP_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid timestamp {text!r}")

    month, day, year, hour, minute, second = (int(part) for part in match.groups()[:6])
    meridiem = match.group(7)
    if hour > 12:
        raise ValueError(f"hour out of range {text!r}")
    if meridiem == "PM" and hour < 12:
        hour += 12
    elif meridiem == "AM" and hour == 12:
        hour = 0
    year += 1900 if year >= TWO_DIGIT_YEAR_PIVOT else 2000

    # datetime() rejects impossible dates, minutes and seconds with ValueError
    return datetime(year, month, day, hour, minute, second, tzinfo=zone)


def is_valid_text(value: str) -> bool:
    """True when the cell holds no undecodable bytes (lone surrogates)."""
    try:
        value.encode(TEXT_ENCODING)
    except UnicodeEncodeError:
        return False
    return True


def sanitize_text(value: str) -> str:
    """
    Replace every invalid byte sequence with U+FFFD.

    Cells carry undecodable input bytes as surrogateescape code points, so the
    original bytes are recovered first and decoded again with replacement.
    Raises UnicodeEncodeError for surrogates that did not come from the input.
    """
    raw = value.encode(TEXT_ENCODING, "surrogateescape")
    return raw.decode(TEXT_ENCODING, "replace")


def display(value: str) -> str:
    """Render a cell so it can go into a log line or a JSON report."""
    return value.encode(TEXT_ENCODING, "backslashreplace").decode(TEXT_ENCODING)
