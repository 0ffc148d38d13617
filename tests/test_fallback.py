from __future__ import annotations

from datetime import datetime

import pytest

from bottleplan.errors import SchedulingExhausted
from bottleplan.planning.fallback import build_fallback_plan, step_budget
from bottleplan.planning.schema import PLAN_LENGTH
from bottleplan.planning.validation import plan_violations


def _slots(entries) -> list[tuple[str, str]]:
    return [(entry.date, entry.time) for entry in entries]


def test_locked_times_with_generated_gaps(make_settings) -> None:
    settings = make_settings(ideal=2.5, target=2)
    now = datetime(2025, 3, 23, 8, 30)

    entries = build_fallback_plan(settings, now)

    assert _slots(entries) == [
        ("2025-03-24", "00:30"),
        ("2025-03-24", "03:00"),
        ("2025-03-24", "05:30"),
        ("2025-03-24", "08:00"),
        ("2025-03-23", "11:00"),
        ("2025-03-23", "13:30"),
        ("2025-03-23", "16:00"),
        ("2025-03-23", "18:30"),
        ("2025-03-23", "21:00"),
        ("2025-03-23", "22:00"),
    ]
    assert all(entry.amount == 2 for entry in entries)
    assert {entry.time for entry in entries if entry.is_locked} == {
        "22:00",
        "00:30",
        "03:00",
        "05:30",
        "08:00",
    }
    assert not any(entry.is_completed for entry in entries)


def test_plan_is_listed_by_clock_time_across_midnight(make_settings) -> None:
    settings = make_settings(ideal=2.5, target=2)

    entries = build_fallback_plan(settings, datetime(2025, 3, 23, 8, 30))

    assert [entry.time for entry in entries] == [
        "00:30",
        "03:00",
        "05:30",
        "08:00",
        "11:00",
        "13:30",
        "16:00",
        "18:30",
        "21:00",
        "22:00",
    ]


def test_configured_locked_order_does_not_change_the_plan(make_settings) -> None:
    now = datetime(2025, 3, 23, 8, 30)
    listed = make_settings(times=["22:00", "00:30", "03:00", "05:30", "08:00"])
    shuffled = make_settings(times=["05:30", "22:00", "08:00", "00:30", "03:00"])

    first = build_fallback_plan(listed, now)
    second = build_fallback_plan(shuffled, now)

    assert _slots(first) == _slots(second)
    for clock in ("22:00", "00:30", "03:00", "05:30", "08:00"):
        matches = [entry for entry in second if entry.time == clock]
        assert len(matches) == 1
        assert matches[0].is_locked
        assert matches[0].amount == shuffled.feed_amounts.target


def test_date_aware_cursor_allows_same_clock_on_next_day(make_settings) -> None:
    settings = make_settings(locked=False, ideal=3, window_max=3, target=2.5, amount_max=2.5)
    now = datetime(2025, 3, 23, 6, 0)

    entries = build_fallback_plan(settings, now)

    assert _slots(entries) == [
        ("2025-03-24", "00:00"),
        ("2025-03-24", "03:00"),
        ("2025-03-24", "06:00"),
        ("2025-03-23", "09:00"),
        ("2025-03-24", "09:00"),
        ("2025-03-23", "12:00"),
        ("2025-03-24", "12:00"),
        ("2025-03-23", "15:00"),
        ("2025-03-23", "18:00"),
        ("2025-03-23", "21:00"),
    ]
    assert len(set(_slots(entries))) == PLAN_LENGTH
    assert not any(entry.is_locked for entry in entries)
    assert all(entry.amount == 2.5 for entry in entries)


def test_locked_phase_collision_exhausts_the_step_limit(make_settings) -> None:
    settings = make_settings(ideal=12, window_max=12, times=["00:00", "12:00"])
    now = datetime(2025, 3, 23, 0, 0)

    assert step_budget(settings) == PLAN_LENGTH * 2 + 2
    with pytest.raises(SchedulingExhausted):
        build_fallback_plan(settings, now)


def test_locked_time_equal_to_now_is_scheduled_today(make_settings) -> None:
    settings = make_settings(times=["09:00"])
    now = datetime(2025, 3, 23, 9, 0)

    entries = build_fallback_plan(settings, now)

    locked = [entry for entry in entries if entry.is_locked]
    assert _slots(locked) == [("2025-03-23", "09:00")]
    assert _slots(entries)[:5] == [
        ("2025-03-24", "00:00"),
        ("2025-03-24", "02:30"),
        ("2025-03-24", "05:00"),
        ("2025-03-24", "07:30"),
        ("2025-03-23", "09:00"),
    ]


def test_fallback_is_idempotent(make_settings) -> None:
    settings = make_settings()
    now = datetime(2025, 3, 23, 14, 10)

    first = build_fallback_plan(settings, now)
    second = build_fallback_plan(settings, now)

    def shape(entries):
        return [(entry.date, entry.time, entry.amount, entry.is_locked) for entry in entries]

    assert shape(first) == shape(second)
    assert {entry.id for entry in first}.isdisjoint({entry.id for entry in second})


@pytest.mark.parametrize("ideal", [1.5, 2, 2.5, 3, 3.25])
@pytest.mark.parametrize("hour", [0, 5, 8, 13, 22])
@pytest.mark.parametrize("locked", [True, False])
def test_fallback_output_always_satisfies_plan_invariants(make_settings, ideal, hour, locked) -> None:
    settings = make_settings(ideal=ideal, window_min=1, window_max=4, locked=locked)
    now = datetime(2025, 3, 23, hour, 15)

    entries = build_fallback_plan(settings, now)

    assert plan_violations(entries, settings) == []
