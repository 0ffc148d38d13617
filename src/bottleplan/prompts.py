"""Prompt templates used when asking the model for a feeding plan."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from .planning.schema import PLAN_LENGTH, FeedingSettings, PlannedEntry

SYSTEM_PROMPT = "You are a baby feeding planner assistant."

JSON_RESPONSE_INSTRUCTION = (
    "Return the schedule as a JSON array of objects with the keys "
    '"time" (24-hour HH:MM string), "amount" (number) and "isLocked" (boolean). '
    "Use double-quoted keys and strings."
)


def render_settings_block(settings: FeedingSettings) -> str:
    windows = settings.feed_windows
    amounts = settings.feed_amounts
    unit = "ml" if settings.use_metric else "oz"
    lines = [
        "Feeding settings:",
        f"- Minimum time between feedings: {windows.min} hours",
        f"- Maximum time between feedings: {windows.max} hours",
        f"- Ideal time between feedings: {windows.ideal} hours",
        f"- Minimum feeding amount: {amounts.min} {unit}",
        f"- Maximum feeding amount: {amounts.max} {unit}",
        f"- Target feeding amount: {amounts.target} {unit}",
    ]
    return "\n".join(lines)


def render_locked_block(settings: FeedingSettings) -> str:
    times = settings.locked_feedings.active_times
    if not times:
        return "No locked feedings."
    body = "\n".join(f"- {clock}" for clock in times)
    return (
        "Locked feedings (include each exactly once with isLocked true and the target amount):\n"
        f"{body}"
    )


def render_history_block(history: Sequence[PlannedEntry]) -> str:
    if not history:
        return "No recent feedings."
    body = "\n".join(
        f"- Time: {entry.time}, Amount: {entry.amount}, Completed: {str(entry.is_completed).lower()}"
        for entry in history
    )
    return f"Recent feedings:\n{body}"


def render_feeding_prompt(
    settings: FeedingSettings,
    history: Sequence[PlannedEntry],
    now: datetime,
) -> str:
    """Render the user prompt for the next ``PLAN_LENGTH`` feedings."""
    sections = [
        f"Create a feeding schedule for the next {PLAN_LENGTH} feedings.",
        f"Current time: {now.isoformat(timespec='minutes')}",
        render_settings_block(settings),
        render_locked_block(settings),
        render_history_block(history),
        JSON_RESPONSE_INSTRUCTION,
    ]
    return "\n\n".join(sections)


__all__ = [
    "JSON_RESPONSE_INSTRUCTION",
    "SYSTEM_PROMPT",
    "render_feeding_prompt",
    "render_history_block",
    "render_locked_block",
    "render_settings_block",
]
