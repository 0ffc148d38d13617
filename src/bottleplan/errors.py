"""Exception hierarchy shared by the planner, the store and the CLI."""

from __future__ import annotations

__all__ = [
    "BottlePlanError",
    "EntryNotFound",
    "InvalidPlan",
    "InvalidSettings",
    "PersistenceFailure",
    "PlanConflict",
    "ProposalMalformed",
    "ProposalUnavailable",
    "SchedulingExhausted",
]


class BottlePlanError(RuntimeError):
    """Base error raised by Bottle Plan components."""


class ProposalUnavailable(BottlePlanError):
    """Raised when the language model could not be reached or timed out."""


class ProposalMalformed(BottlePlanError):
    """Raised when model output does not contain a valid ten-entry plan."""


class SchedulingExhausted(BottlePlanError):
    """Raised when the fallback scheduler cannot place ten unique slots."""


class InvalidSettings(BottlePlanError):
    """Raised when feeding settings are missing or violate their bounds."""


class InvalidPlan(BottlePlanError):
    """Raised when a plan breaks one of the finalised-plan invariants."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__("Plan failed validation: " + "; ".join(self.problems))


class PersistenceFailure(BottlePlanError):
    """Raised when the store cannot be read or written."""


class PlanConflict(PersistenceFailure):
    """Raised when the stored plan changed between read and write."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Plan was modified concurrently (expected version {expected}, found {actual})."
        )


class EntryNotFound(BottlePlanError):
    """Raised when an entry id does not exist in the stored collection."""

    def __init__(self, entry_id: str) -> None:
        self.entry_id = entry_id
        super().__init__(f"No entry with id '{entry_id}'")
