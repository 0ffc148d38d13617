"""Operation surface used by the CLI: plans, settings, feeding log and profile."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, List, Optional

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from .errors import EntryNotFound, InvalidSettings
from .planning.clock import minutes_since_midnight
from .planning.orchestrator import PlanOrchestrator, PlanOutcome
from .planning.schema import ActualFeeding, FeedingSettings, PlannedEntry
from .profile import NewbornProfile, build_profile
from .storage.store import FeedingStore

__all__ = ["FeedingService", "HISTORY_SIZE"]

LOGGER = logging.getLogger(__name__)

HISTORY_SIZE = 5


class FeedingService:
    def __init__(
        self,
        store: FeedingStore,
        orchestrator: PlanOrchestrator,
        *,
        history_size: int = HISTORY_SIZE,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.orchestrator = orchestrator
        self.history_size = history_size
        self._today = today

    # Plan ----------------------------------------------------------------------------
    def regenerate_plan(self, now: datetime | None = None) -> PlanOutcome:
        """Generate ten feedings and replace the stored plan with them.

        The plan version is read before generation; a concurrent writer in the
        meantime makes the save fail with ``PlanConflict``.
        """
        settings = self.require_settings()
        version = self.store.get_plan_version()
        history = self.store.get_plan()[: self.history_size]
        outcome = self.orchestrator.run(settings, history, now)
        self.store.save_plan(outcome.entries, settings=settings, expected_version=version)
        LOGGER.info("Stored new plan from %s (previous version %d)", outcome.source.value, version)
        return outcome

    def get_current_plan(self) -> List[PlannedEntry]:
        return self.store.get_plan()

    def toggle_completed(self, entry_id: str) -> List[PlannedEntry]:
        return self.store.toggle_completed(entry_id)

    # Settings ------------------------------------------------------------------------
    def get_settings(self) -> Optional[FeedingSettings]:
        return self.store.get_settings()

    def require_settings(self) -> FeedingSettings:
        settings = self.store.get_settings()
        if settings is None:
            raise InvalidSettings("No feeding settings stored; run 'bottleplan init' first.")
        return settings

    def save_settings(self, settings: FeedingSettings) -> None:
        self.store.save_settings(settings)

    def update_settings(self, **changes: Any) -> FeedingSettings:
        """Apply camelCase or snake_case overrides to the stored settings."""
        current = self.require_settings().to_document()
        merged = _merge(current, changes)
        try:
            settings = FeedingSettings.model_validate(merged)
        except ValidationError as error:
            raise InvalidSettings(str(error)) from error
        self.store.save_settings(settings)
        return settings

    # Actual feedings -----------------------------------------------------------------
    def list_actual_feedings(self) -> List[ActualFeeding]:
        feedings = self.store.list_actual_feedings()
        return sorted(feedings, key=lambda item: (item.date, minutes_since_midnight(item.time)))

    def add_actual_feeding(
        self,
        *,
        date: str,
        time: str,
        amount: float,
        plan_time: Optional[str] = None,
        notes: str = "",
    ) -> ActualFeeding:
        feeding = ActualFeeding(date=date, time=time, amount=amount, plan_time=plan_time, notes=notes)
        self.store.add_actual_feeding(feeding)
        return feeding

    def update_actual_feeding(self, feeding_id: str, **changes: Any) -> ActualFeeding:
        current = next(
            (item for item in self.store.list_actual_feedings() if item.id == feeding_id), None
        )
        if current is None:
            raise EntryNotFound(feeding_id)
        data = current.model_dump()
        data.update({key: value for key, value in changes.items() if value is not None})
        updated = ActualFeeding.model_validate(data)
        self.store.replace_actual_feeding(updated)
        return updated

    def remove_actual_feeding(self, feeding_id: str) -> None:
        self.store.remove_actual_feeding(feeding_id)

    # Profile -------------------------------------------------------------------------
    def get_profile(self) -> Optional[NewbornProfile]:
        document = self.store.get_profile()
        if document is None:
            return None
        return build_profile(document, self._today())

    def set_birth_date(self, birth_date: str) -> NewbornProfile:
        profile = build_profile({"birthDate": birth_date}, self._today())
        self.store.save_profile({"birthDate": profile.birth_date.isoformat()})
        return profile


def _merge(base: dict, changes: dict) -> dict:
    merged = dict(base)
    for key, value in changes.items():
        if value is None:
            continue
        target = to_camel(key) if "_" in key else key
        if isinstance(value, dict) and isinstance(merged.get(target), dict):
            merged[target] = _merge(merged[target], value)
        else:
            merged[target] = value
    return merged
