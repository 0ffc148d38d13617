"""Produce one finalised plan: model proposal first, deterministic fallback second."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..errors import ProposalMalformed, ProposalUnavailable, SchedulingExhausted
from ..models.llm_client import LLMClient
from ..prompts import SYSTEM_PROMPT, render_feeding_prompt
from ..tools.plan_logs import PlanRunRecord, write_plan_log
from .fallback import build_fallback_plan
from .proposal import parse_proposal
from .schema import FeedingSettings, PlannedEntry

__all__ = ["PlanOrchestrator", "PlanOutcome", "PlanSource"]

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20.0


class PlanSource(str, Enum):
    MODEL = "model"
    FALLBACK = "fallback"


@dataclass(slots=True)
class PlanOutcome:
    """A finalised plan together with the path that produced it."""

    entries: List[PlannedEntry]
    source: PlanSource
    proposal_error: Optional[str] = None
    log_path: Optional[Path] = None


class PlanOrchestrator:
    """Coordinates a single generation request.

    The model gets exactly one attempt. Anything it raises, and anything
    wrong with what it returns, routes the request to the fallback scheduler.
    """

    def __init__(
        self,
        planner: LLMClient,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        logs_root: Path | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.planner = planner
        self.timeout = timeout
        self.logs_root = Path(logs_root) if logs_root is not None else None
        self._clock = clock

    def generate_plan(
        self,
        settings: FeedingSettings,
        recent_history: Sequence[PlannedEntry] = (),
        now: datetime | None = None,
    ) -> List[PlannedEntry]:
        return self.run(settings, recent_history, now).entries

    def run(
        self,
        settings: FeedingSettings,
        recent_history: Sequence[PlannedEntry] = (),
        now: datetime | None = None,
    ) -> PlanOutcome:
        moment = now or self._clock()
        prompt = render_feeding_prompt(settings, recent_history, moment)
        record = PlanRunRecord(source=PlanSource.MODEL.value, prompt=prompt, model=self.planner.model)

        try:
            raw = self._request_proposal(prompt)
            record.raw_response = raw
            entries = parse_proposal(raw, settings)
            source = PlanSource.MODEL
        except (ProposalUnavailable, ProposalMalformed) as error:
            LOGGER.info("Model proposal rejected, using fallback schedule: %s", error)
            record.proposal_error = f"{type(error).__name__}: {error}"
            record.source = PlanSource.FALLBACK.value
            try:
                entries = build_fallback_plan(settings, moment)
            except SchedulingExhausted as exhausted:
                record.error = str(exhausted)
                self._write_log(record)
                LOGGER.error("Fallback scheduler exhausted: %s", exhausted)
                raise
            source = PlanSource.FALLBACK

        record.entries = [entry.to_document() for entry in entries]
        log_path = self._write_log(record)
        LOGGER.info("Generated %d feedings from %s", len(entries), source.value)
        return PlanOutcome(
            entries=entries,
            source=source,
            proposal_error=record.proposal_error,
            log_path=log_path,
        )

    def _request_proposal(self, prompt: str) -> str:
        try:
            return self.planner.propose(prompt, system_prompt=SYSTEM_PROMPT, timeout=self.timeout)
        except Exception as error:  # any planner failure means no proposal
            raise ProposalUnavailable(f"{type(error).__name__}: {error}") from error

    def _write_log(self, record: PlanRunRecord) -> Optional[Path]:
        if self.logs_root is None:
            return None
        path = write_plan_log(self.logs_root, record)
        if path is None:
            LOGGER.warning("Unable to write plan log under %s", self.logs_root)
        return path
