"""Strict extraction of a feeding plan from free-form model output."""

from __future__ import annotations

import json
import math
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..errors import InvalidPlan, ProposalMalformed
from .clock import parse_clock
from .schema import FeedingSettings, PlannedEntry
from .validation import ensure_valid_plan, sort_entries

__all__ = ["ProposedEntry", "extract_first_array", "parse_proposal"]


class ProposedEntry(BaseModel):
    """Shape a single element of the model's JSON array must have.

    Keys outside the schema are ignored; ``id`` and ``isCompleted`` from the
    model are never trusted.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)

    time: str
    amount: float
    is_locked: bool = Field(strict=True)

    @field_validator("time", mode="before")
    @classmethod
    def _check_time(cls, value: Any) -> str:
        return _clock_string(value)

    @field_validator("amount", mode="before")
    @classmethod
    def _check_amount(cls, value: Any) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"amount must be a number, got {value!r}")
        if not math.isfinite(value):
            raise ValueError(f"amount must be finite, got {value!r}")
        return float(value)


def _clock_string(value: Any) -> str:
    parse_clock(value)
    return value


def _normalise_json_string(payload: str) -> str:
    """Normalise typographic punctuation that models emit around JSON."""
    translation = {
        0x201C: '"',
        0x201D: '"',
        0x2018: "'",
        0x2019: "'",
        0x00A0: " ",
        0xFEFF: "",
    }
    return payload.translate(str.maketrans(translation))


def extract_first_array(text: str) -> Optional[str]:
    """Return the first balanced ``[...]`` substring, skipping string contents."""
    start = text.find("[")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def _reject_constant(token: str) -> Any:
    raise ValueError(f"non-finite number {token} is not allowed")


def parse_proposal(raw_text: str, settings: FeedingSettings) -> List[PlannedEntry]:
    """Turn model output into a validated ten-entry plan.

    Any element failing validation rejects the whole proposal; nothing is
    coerced or defaulted.
    """
    if not raw_text or not raw_text.strip():
        raise ProposalMalformed("Model returned an empty response.")

    snippet = extract_first_array(_normalise_json_string(raw_text))
    if snippet is None:
        raise ProposalMalformed(f"No JSON array found in model output: {raw_text[:200]!r}")

    try:
        data = json.loads(snippet, parse_constant=_reject_constant)
    except ValueError as error:
        raise ProposalMalformed(f"Model returned invalid JSON: {error}") from error

    amounts = settings.feed_amounts
    entries: List[PlannedEntry] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ProposalMalformed(f"Entry {index} is not an object: {item!r}")
        try:
            proposed = ProposedEntry.model_validate(item)
        except ValidationError as error:
            details = "; ".join(
                f"{'.'.join(str(part) for part in problem['loc'])}: {problem['msg']}"
                for problem in error.errors()
            )
            raise ProposalMalformed(f"Entry {index} is invalid: {details}") from error
        if not amounts.admits(proposed.amount):
            raise ProposalMalformed(
                f"Entry {index} amount {proposed.amount} outside [{amounts.min}, {amounts.max}]"
            )
        entries.append(
            PlannedEntry(
                time=proposed.time,
                amount=proposed.amount,
                is_locked=proposed.is_locked,
                is_completed=False,
            )
        )

    ordered = sort_entries(entries)
    try:
        ensure_valid_plan(ordered, settings)
    except InvalidPlan as error:
        raise ProposalMalformed(str(error)) from error
    return ordered
