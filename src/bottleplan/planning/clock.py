"""24-hour clock helpers used when validating and ordering feeding slots."""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from typing import Optional, Pattern, Tuple

__all__ = [
    "MINUTES_PER_DAY",
    "format_clock",
    "is_clock",
    "minutes_since_midnight",
    "next_occurrence",
    "parse_clock",
    "parse_day",
    "slot_key",
]

MINUTES_PER_DAY = 24 * 60

_CLOCK_PATTERN: Pattern[str] = re.compile(r"^(\d{2}):(\d{2})$")
_DAY_PATTERN: Pattern[str] = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_clock(value: str) -> time:
    """Parse a strict ``HH:MM`` string (hour 0-23, minute 0-59)."""
    if not isinstance(value, str):
        raise ValueError(f"Clock time must be a string, got {type(value).__name__}")
    match = _CLOCK_PATTERN.match(value)
    if not match:
        raise ValueError(f"Clock time must look like HH:MM, got {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Clock time out of range: {value!r}")
    return time(hour, minute)


def is_clock(value: object) -> bool:
    try:
        parse_clock(value)  # type: ignore[arg-type]
    except ValueError:
        return False
    return True


def format_clock(moment: datetime | time) -> str:
    """Project a timestamp onto its ``HH:MM`` display form."""
    return f"{moment.hour:02d}:{moment.minute:02d}"


def minutes_since_midnight(value: str) -> int:
    parsed = parse_clock(value)
    return parsed.hour * 60 + parsed.minute


def parse_day(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` calendar day."""
    if not isinstance(value, str) or not _DAY_PATTERN.match(value):
        raise ValueError(f"Date must look like YYYY-MM-DD, got {value!r}")
    return date.fromisoformat(value)


def next_occurrence(clock: str, now: datetime) -> datetime:
    """Return the first moment at or after ``now`` whose clock reads ``clock``."""
    parsed = parse_clock(clock)
    candidate = now.replace(hour=parsed.hour, minute=parsed.minute, second=0, microsecond=0)
    if candidate < now:
        candidate += timedelta(days=1)
    return candidate


def slot_key(day: Optional[str], clock: str) -> Tuple[int, str]:
    """Ordering key for a plan slot: minutes since midnight, then calendar day.

    The day only separates two slots that share a clock time.
    """
    return (minutes_since_midnight(clock), day or "")
