from __future__ import annotations

import pytest
from pydantic import ValidationError

from bottleplan.planning.schema import ActualFeeding, FeedingSettings, PlannedEntry


def test_settings_round_trip_through_camel_case_document(make_settings) -> None:
    settings = make_settings()
    document = settings.to_document()

    assert document["feedWindows"] == {"min": 2, "max": 3, "ideal": 2.5}
    assert document["lockedFeedings"]["enabled"] is True
    assert FeedingSettings.model_validate(document) == settings


@pytest.mark.parametrize(
    "overrides",
    [
        {"ideal": 4},
        {"window_min": 0, "ideal": 1, "window_max": 1},
        {"target": 3},
        {"amount_min": 3, "amount_max": 2.5},
    ],
)
def test_settings_reject_inverted_bounds(make_settings, overrides) -> None:
    with pytest.raises(ValidationError):
        make_settings(**overrides)


def test_locked_times_must_be_valid_and_unique(make_settings) -> None:
    with pytest.raises(ValidationError):
        make_settings(times=["22:00", "22:00"])
    with pytest.raises(ValidationError):
        make_settings(times=["25:00"])


def test_more_than_ten_locked_times_are_rejected_only_when_enabled(make_settings) -> None:
    times = [f"{hour:02d}:00" for hour in range(11)]
    with pytest.raises(ValidationError):
        make_settings(times=times)
    assert make_settings(times=times, locked=False).locked_feedings.active_times == []


def test_settings_forbid_unknown_keys() -> None:
    with pytest.raises(ValidationError):
        FeedingSettings.model_validate(
            {
                "feedWindows": {"min": 2, "max": 3, "ideal": 2.5},
                "feedAmounts": {"min": 1, "max": 2, "target": 1.5},
                "bedtime": "20:00",
            }
        )


def test_planned_entry_document_omits_missing_date() -> None:
    entry = PlannedEntry(id="a1", time="09:00", amount=2)
    assert entry.to_document() == {
        "id": "a1",
        "time": "09:00",
        "amount": 2.0,
        "isLocked": False,
        "isCompleted": False,
    }


def test_planned_entry_validates_clock_and_date() -> None:
    with pytest.raises(ValidationError):
        PlannedEntry(time="9:00", amount=2)
    with pytest.raises(ValidationError):
        PlannedEntry(time="09:00", amount=2, date="23/03/2025")


def test_actual_feeding_rejects_negative_amount() -> None:
    with pytest.raises(ValidationError):
        ActualFeeding(date="2025-03-23", time="09:00", amount=-1)
    feeding = ActualFeeding(date="2025-03-23", time="09:00", amount=2, plan_time="08:00")
    assert feeding.to_document()["planTime"] == "08:00"
