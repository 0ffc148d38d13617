"""Map every historical record shape onto the canonical feeding records.

Older data used ``actualTime`` instead of ``time``, a unit-suffixed ``Amount``
string instead of a numeric ``amount``, dotted dates and unpadded hours. All
of that is resolved here, at the storage boundary, and nowhere else.
"""

from __future__ import annotations

import math
import re
from typing import Any, List, Mapping, Optional, Pattern

from pydantic import ValidationError

from ..errors import PersistenceFailure
from ..planning.schema import ActualFeeding, PlannedEntry

__all__ = [
    "normalize_actual_feeding",
    "normalize_actual_feedings",
    "normalize_planned_entries",
    "normalize_planned_entry",
    "parse_amount",
]

_NUMBER_PATTERN: Pattern[str] = re.compile(r"-?\d+(?:\.\d+)?")
_LOOSE_CLOCK_PATTERN: Pattern[str] = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")
_LOOSE_DAY_PATTERN: Pattern[str] = re.compile(r"^\s*(\d{4})[-./](\d{1,2})[-./](\d{1,2})")

_PLANNED_KEYS = ("id", "time", "amount", "isLocked", "isCompleted", "date")


def parse_amount(value: Any) -> Optional[float]:
    """Read a quantity from a number or a string such as ``"35 ml"``."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _NUMBER_PATTERN.search(value.replace(",", "."))
        if match:
            return float(match.group(0))
    return None


def _clock(value: Any) -> Any:
    if isinstance(value, str):
        match = _LOOSE_CLOCK_PATTERN.match(value)
        if match:
            return f"{int(match.group(1)):02d}:{match.group(2)}"
    return value


def _day(value: Any) -> Any:
    if isinstance(value, str):
        match = _LOOSE_DAY_PATTERN.match(value)
        if match:
            year, month, day = match.groups()
            return f"{year}-{int(month):02d}-{int(day):02d}"
    return value


def _first_present(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def normalize_planned_entry(record: Mapping[str, Any]) -> PlannedEntry:
    if not isinstance(record, Mapping):
        raise PersistenceFailure(f"Stored planned feeding is not an object: {record!r}")
    data = {key: record[key] for key in _PLANNED_KEYS if key in record}
    data["time"] = _clock(_first_present(record, "time", "actualTime", "planTime"))
    amount = _first_present(record, "amount", "Amount")
    data["amount"] = parse_amount(amount) if amount is not None else None
    if "date" in data:
        data["date"] = _day(data["date"]) or None
    try:
        return PlannedEntry.model_validate(data)
    except ValidationError as error:
        raise PersistenceFailure(f"Stored planned feeding cannot be read: {error}") from error


def normalize_actual_feeding(record: Mapping[str, Any]) -> ActualFeeding:
    if not isinstance(record, Mapping):
        raise PersistenceFailure(f"Stored actual feeding is not an object: {record!r}")
    amount = _first_present(record, "amount", "Amount")
    data: dict[str, Any] = {
        "date": _day(record.get("date")),
        "time": _clock(_first_present(record, "time", "actualTime")),
        "amount": parse_amount(amount) if amount is not None else None,
        "planTime": _clock(record.get("planTime")) or None,
        "notes": record.get("notes") or "",
    }
    if record.get("id"):
        data["id"] = str(record["id"])
    try:
        return ActualFeeding.model_validate(data)
    except ValidationError as error:
        raise PersistenceFailure(f"Stored actual feeding cannot be read: {error}") from error


def _as_list(document: Any, label: str) -> List[Mapping[str, Any]]:
    if document is None:
        return []
    if not isinstance(document, list):
        raise PersistenceFailure(f"Stored {label} must be a JSON array, found {type(document).__name__}")
    return document


def normalize_planned_entries(document: Any) -> List[PlannedEntry]:
    return [normalize_planned_entry(item) for item in _as_list(document, "plan")]


def normalize_actual_feedings(document: Any) -> List[ActualFeeding]:
    return [normalize_actual_feeding(item) for item in _as_list(document, "actual feedings")]
