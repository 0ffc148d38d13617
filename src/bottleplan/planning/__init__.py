"""Plan generation: canonical records, proposal parsing, fallback scheduling."""

from .fallback import build_fallback_plan
from .orchestrator import PlanOrchestrator, PlanOutcome, PlanSource
from .proposal import parse_proposal
from .schema import PLAN_LENGTH, ActualFeeding, FeedingSettings, PlannedEntry
from .validation import ensure_valid_plan, plan_violations, sort_entries

__all__ = [
    "PLAN_LENGTH",
    "ActualFeeding",
    "FeedingSettings",
    "PlanOrchestrator",
    "PlanOutcome",
    "PlanSource",
    "PlannedEntry",
    "build_fallback_plan",
    "ensure_valid_plan",
    "parse_proposal",
    "plan_violations",
    "sort_entries",
]
