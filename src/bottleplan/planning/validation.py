"""Invariant checks applied to every plan before it is accepted or persisted."""

from __future__ import annotations

import math
from collections import Counter
from typing import List, Sequence

from ..errors import InvalidPlan
from .clock import slot_key
from .schema import PLAN_LENGTH, FeedingSettings, PlannedEntry

__all__ = ["ensure_valid_plan", "plan_violations", "sort_entries"]


def sort_entries(entries: Sequence[PlannedEntry]) -> List[PlannedEntry]:
    """Order entries by clock time; equal clock times are ordered by date."""
    return sorted(entries, key=lambda entry: slot_key(entry.date, entry.time))


def plan_violations(entries: Sequence[PlannedEntry], settings: FeedingSettings) -> List[str]:
    """Return a human-readable list of invariant violations (empty when valid)."""
    problems: List[str] = []

    if len(entries) != PLAN_LENGTH:
        problems.append(f"expected {PLAN_LENGTH} entries, found {len(entries)}")

    slots = Counter((entry.date, entry.time) for entry in entries)
    duplicates = sorted(
        f"{day} {clock}" if day else clock for (day, clock), count in slots.items() if count > 1
    )
    if duplicates:
        problems.append(f"duplicate slots: {', '.join(duplicates)}")

    keys = [slot_key(entry.date, entry.time) for entry in entries]
    if keys != sorted(keys):
        problems.append("entries are not in ascending clock order")

    amounts = settings.feed_amounts
    for entry in entries:
        if not amounts.admits(entry.amount):
            problems.append(
                f"amount {entry.amount} at {entry.time} outside [{amounts.min}, {amounts.max}]"
            )

    locked_times = settings.locked_feedings.active_times
    for clock in locked_times:
        occurrences = [entry for entry in entries if entry.time == clock]
        if len(occurrences) != 1:
            problems.append(f"locked time {clock} appears {len(occurrences)} times")
            continue
        entry = occurrences[0]
        if not entry.is_locked:
            problems.append(f"locked time {clock} is not flagged as locked")
        if not math.isclose(entry.amount, amounts.target):
            problems.append(f"locked time {clock} has amount {entry.amount}, expected {amounts.target}")

    return problems


def ensure_valid_plan(entries: Sequence[PlannedEntry], settings: FeedingSettings) -> None:
    problems = plan_violations(entries, settings)
    if problems:
        raise InvalidPlan(problems)
