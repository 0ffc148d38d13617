"""Structured JSON logs for each plan generation, and helpers to read them back."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

__all__ = ["PlanLogEntry", "PlanRunRecord", "latest_plan_log", "load_plan_log", "write_plan_log"]


@dataclass(slots=True)
class PlanRunRecord:
    """What happened during one generation request."""

    source: str
    prompt: Optional[str] = None
    model: Optional[str] = None
    raw_response: Optional[str] = None
    proposal_error: Optional[str] = None
    entries: list[dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": self.source,
            "model": self.model,
            "prompt": self.prompt,
            "raw_response": self.raw_response,
            "proposal_error": self.proposal_error,
            "entries": self.entries,
            "error": self.error,
        }


@dataclass(slots=True)
class PlanLogEntry:
    """In-memory representation of a stored generation log."""

    path: Path
    payload: Mapping[str, Any]

    @property
    def source(self) -> str:
        return str(self.payload.get("source") or "")

    @property
    def proposal_error(self) -> str | None:
        candidate = self.payload.get("proposal_error")
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
        return None

    @property
    def entries(self) -> list[Mapping[str, Any]]:
        value = self.payload.get("entries")
        if isinstance(value, list):
            return [item for item in value if isinstance(item, Mapping)]
        return []


def write_plan_log(logs_root: Path, record: PlanRunRecord) -> Optional[Path]:
    """Persist ``record`` under ``logs_root/plans``; returns None when the disk refuses."""
    plans_root = logs_root / "plans"
    try:
        plans_root.mkdir(parents=True, exist_ok=True)
    except OSError:
        return None

    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    file_name = "__".join(["plan", timestamp, record.source or "unknown", uuid.uuid4().hex[:8]]) + ".json"
    log_path = plans_root / file_name
    try:
        with log_path.open("w", encoding="utf-8") as handle:
            json.dump(record.to_payload(), handle, indent=2, sort_keys=True, ensure_ascii=False)
    except OSError:
        return None
    return log_path


def load_plan_log(path: Path | str) -> PlanLogEntry:
    """Load a structured generation log from disk."""
    log_path = Path(path).resolve()
    with log_path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return PlanLogEntry(path=log_path, payload=payload)


def latest_plan_log(logs_root: Path) -> Optional[PlanLogEntry]:
    plans_root = logs_root / "plans"
    if not plans_root.is_dir():
        return None
    candidates = sorted(plans_root.glob("plan__*.json"))
    if not candidates:
        return None
    return load_plan_log(candidates[-1])
