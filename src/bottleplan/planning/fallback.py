"""Rule-based plan generator used whenever the model proposal is rejected."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import List, Set, Tuple

from ..errors import SchedulingExhausted
from .clock import format_clock, next_occurrence
from .schema import PLAN_LENGTH, FeedingSettings, PlannedEntry
from .validation import ensure_valid_plan, sort_entries

__all__ = ["build_fallback_plan", "step_budget"]

LOGGER = logging.getLogger(__name__)


def step_budget(settings: FeedingSettings) -> int:
    """Maximum number of cursor advances before giving up."""
    ideal = settings.feed_windows.ideal
    return PLAN_LENGTH * math.ceil(24 / ideal) + len(settings.locked_feedings.active_times)


def build_fallback_plan(settings: FeedingSettings, now: datetime) -> List[PlannedEntry]:
    """Space feedings ``ideal`` hours apart from ``now`` around the locked times.

    The cursor is a full timestamp, so the same clock time on two different
    days is two different slots. A step is skipped only when its clock time
    belongs to a locked feeding (or its slot is already taken).
    """
    amounts = settings.feed_amounts
    locked_times = settings.locked_feedings.active_times
    if len(locked_times) > PLAN_LENGTH:
        raise SchedulingExhausted(
            f"{len(locked_times)} locked times cannot fit in a {PLAN_LENGTH}-entry plan"
        )

    entries: List[PlannedEntry] = []
    used: Set[Tuple[str, str]] = set()
    for clock in locked_times:
        day = next_occurrence(clock, now).date().isoformat()
        entries.append(PlannedEntry(time=clock, amount=amounts.target, is_locked=True, date=day))
        used.add((day, clock))

    step = timedelta(hours=settings.feed_windows.ideal)
    budget = step_budget(settings)
    cursor = now
    steps = 0
    while len(entries) < PLAN_LENGTH:
        if steps >= budget:
            raise SchedulingExhausted(
                f"Placed {len(entries)} of {PLAN_LENGTH} feedings after {budget} steps of "
                f"{settings.feed_windows.ideal}h; every remaining step collides with a locked time"
            )
        steps += 1
        cursor += step
        clock = format_clock(cursor)
        day = cursor.date().isoformat()
        if clock in locked_times or (day, clock) in used:
            LOGGER.debug("Skipping %s %s: slot already taken", day, clock)
            continue
        entries.append(PlannedEntry(time=clock, amount=amounts.target, date=day))
        used.add((day, clock))

    ordered = sort_entries(entries)
    ensure_valid_plan(ordered, settings)
    LOGGER.debug("Fallback plan built in %d step(s)", steps)
    return ordered
