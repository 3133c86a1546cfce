"""
Timestamp conversion helpers
"""

import math
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Range representable as an aware datetime: 0001-01-01 .. 9999-12-31T23:59:59.999Z
MIN_MILLIS = -62_135_596_800_000
MAX_MILLIS = 253_402_300_799_999


def now_millis() -> int:
    """Current wall-clock time in milliseconds since the epoch"""
    return time.time_ns() // 1_000_000


def millis_to_datetime(millis: int) -> datetime:
    """UTC datetime for a millisecond timestamp inside MIN_MILLIS..MAX_MILLIS"""
    return EPOCH + timedelta(milliseconds=millis)


def format_millis(millis: int) -> str:
    """ISO-8601 text with millisecond precision and a trailing Z"""
    text = millis_to_datetime(millis).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def _in_range(millis: int) -> Optional[int]:
    if MIN_MILLIS <= millis <= MAX_MILLIS:
        return millis
    return None


def iso_to_millis(value: str) -> Optional[int]:
    """
    Convert ISO-8601 text to milliseconds since the epoch

    Accepts a trailing "Z" as UTC; naive timestamps are treated as UTC.
    Returns None when the text cannot be parsed.
    """
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    delta = parsed - EPOCH
    return _in_range((delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000)


def to_millis(value: Any, numeric_unit: str = "s") -> Optional[int]:
    """
    Convert a JSON timestamp to milliseconds since the epoch

    Strings are parsed as ISO-8601, falling back to a plain integer string.
    Numbers are read as epoch seconds ("s") or milliseconds ("ms").
    Non-finite numbers and instants outside MIN_MILLIS..MAX_MILLIS give None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        scaled = value if numeric_unit == "ms" else value * 1000
        if isinstance(scaled, float) and not math.isfinite(scaled):
            return None
        return _in_range(int(scaled))
    if isinstance(value, str):
        millis = iso_to_millis(value)
        if millis is not None:
            return millis
        stripped = value.strip()
        if stripped.isdigit():
            return to_millis(int(stripped), numeric_unit)
    return None
