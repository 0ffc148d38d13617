from __future__ import annotations

import json
from pathlib import Path

from bottleplan.tools.plan_logs import PlanRunRecord, latest_plan_log, load_plan_log, write_plan_log


def test_write_and_load_round_trip(tmp_path: Path) -> None:
    record = PlanRunRecord(
        source="model",
        prompt="prompt text",
        model="gpt-4o",
        raw_response="[]",
        entries=[{"id": "a", "time": "09:00", "amount": 2.0, "isLocked": False, "isCompleted": False}],
    )

    path = write_plan_log(tmp_path, record)

    assert path is not None
    assert path.parent == tmp_path / "plans"
    assert path.name.startswith("plan__") and "__model__" in path.name
    entry = load_plan_log(path)
    assert entry.source == "model"
    assert entry.proposal_error is None
    assert entry.entries[0]["time"] == "09:00"
    assert "timestamp" in json.loads(path.read_text(encoding="utf-8"))


def test_latest_plan_log_picks_newest(tmp_path: Path) -> None:
    assert latest_plan_log(tmp_path) is None

    write_plan_log(tmp_path, PlanRunRecord(source="model"))
    write_plan_log(tmp_path, PlanRunRecord(source="fallback", proposal_error="  ProposalMalformed: x "))

    latest = latest_plan_log(tmp_path)
    assert latest is not None
    assert latest.source == "fallback"
    assert latest.proposal_error == "ProposalMalformed: x"


def test_write_returns_none_when_directory_is_unusable(tmp_path: Path) -> None:
    blocker = tmp_path / "logs"
    blocker.write_text("file, not a directory", encoding="utf-8")

    assert write_plan_log(blocker, PlanRunRecord(source="fallback")) is None
