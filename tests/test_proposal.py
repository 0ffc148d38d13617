from __future__ import annotations

import json

import pytest

from bottleplan.errors import ProposalMalformed
from bottleplan.planning.proposal import extract_first_array, parse_proposal
from bottleplan.planning.schema import PLAN_LENGTH

LOCKED = ["22:00", "00:30", "03:00", "05:30", "08:00"]
FREE = ["11:00", "13:30", "16:00", "18:30", "21:00"]


def _proposal(**overrides) -> list[dict]:
    items = [{"time": clock, "amount": 2, "isLocked": True} for clock in LOCKED]
    items += [{"time": clock, "amount": 2.25, "isLocked": False} for clock in FREE]
    for index, changes in overrides.items():
        items[int(index.lstrip("_"))].update(changes)
    return items


def test_valid_proposal_is_sorted_and_gets_fresh_ids(make_settings) -> None:
    raw = "Here is the plan:\n```json\n" + json.dumps(_proposal()) + "\n```\nEnjoy!"

    entries = parse_proposal(raw, make_settings())

    assert len(entries) == PLAN_LENGTH
    assert [entry.time for entry in entries] == sorted(LOCKED + FREE)
    assert len({entry.id for entry in entries}) == PLAN_LENGTH
    assert all(not entry.is_completed for entry in entries)
    assert all(entry.date is None for entry in entries)
    assert {entry.time for entry in entries if entry.is_locked} == set(LOCKED)


def test_model_supplied_ids_and_completion_are_discarded(make_settings) -> None:
    items = _proposal(_0={"id": "model-id", "isCompleted": True, "note": "extra keys are fine"})

    entries = parse_proposal(json.dumps(items), make_settings())

    assert "model-id" not in {entry.id for entry in entries}
    assert not any(entry.is_completed for entry in entries)


def test_prose_without_array_is_malformed(make_settings) -> None:
    with pytest.raises(ProposalMalformed):
        parse_proposal("I cannot comply.", make_settings())


def test_non_numeric_amount_rejects_whole_proposal(make_settings) -> None:
    items = _proposal(_6={"amount": "two ounces"})
    with pytest.raises(ProposalMalformed, match="amount"):
        parse_proposal(json.dumps(items), make_settings())


@pytest.mark.parametrize(
    "changes",
    [
        {"amount": True},
        {"amount": "2"},
        {"amount": 9},
        {"time": "25:00"},
        {"time": "9:00"},
        {"isLocked": "false"},
        {"isLocked": 0},
    ],
)
def test_single_bad_field_rejects_proposal(make_settings, changes) -> None:
    items = _proposal(_7=changes)
    with pytest.raises(ProposalMalformed):
        parse_proposal(json.dumps(items), make_settings())


def test_missing_key_and_non_object_elements_are_rejected(make_settings) -> None:
    items = _proposal()
    del items[3]["isLocked"]
    with pytest.raises(ProposalMalformed):
        parse_proposal(json.dumps(items), make_settings())

    items = _proposal()
    items[2] = "03:00"
    with pytest.raises(ProposalMalformed, match="not an object"):
        parse_proposal(json.dumps(items), make_settings())


def test_non_finite_amounts_are_rejected(make_settings) -> None:
    text = json.dumps(_proposal()).replace('"amount": 2.25', '"amount": NaN', 1)
    with pytest.raises(ProposalMalformed):
        parse_proposal(text, make_settings())


def test_invariant_failures_are_malformed(make_settings) -> None:
    nine = _proposal()[:-1]
    with pytest.raises(ProposalMalformed):
        parse_proposal(json.dumps(nine), make_settings())

    duplicated = _proposal(_9={"time": "11:00"})
    with pytest.raises(ProposalMalformed):
        parse_proposal(json.dumps(duplicated), make_settings())

    unlocked = _proposal(_0={"isLocked": False})
    with pytest.raises(ProposalMalformed):
        parse_proposal(json.dumps(unlocked), make_settings())


def test_locked_flag_on_unconfigured_time_is_accepted(make_settings) -> None:
    items = [{"time": clock, "amount": 2, "isLocked": False} for clock in LOCKED + FREE]
    items[1] = {"time": "02:00", "amount": 2, "isLocked": True}

    entries = parse_proposal(json.dumps(items), make_settings(locked=False))

    assert len(entries) == PLAN_LENGTH
    assert [entry.time for entry in entries if entry.is_locked] == ["02:00"]

    extra = _proposal(_5={"isLocked": True})
    entries = parse_proposal(json.dumps(extra), make_settings())
    assert {entry.time for entry in entries if entry.is_locked} == set(LOCKED) | {"11:00"}


def test_smart_quotes_are_normalised(make_settings) -> None:
    text = json.dumps(_proposal()).replace('"', "“", 1)
    entries = parse_proposal(text, make_settings())
    assert len(entries) == PLAN_LENGTH


def test_extract_first_array_skips_brackets_inside_strings() -> None:
    text = 'Note: [draft] ignored? {"x": 1} [{"time": "a]b", "amount": 1}] trailing ]'
    assert extract_first_array(text) == "[draft]"
    text = 'prefix [{"note": "contains ] and [", "v": [1, 2]}] suffix'
    assert extract_first_array(text) == '[{"note": "contains ] and [", "v": [1, 2]}]'
    assert extract_first_array("no arrays here") is None
    assert extract_first_array("[1, [2, 3]") is None


def test_empty_response_is_malformed(make_settings) -> None:
    with pytest.raises(ProposalMalformed):
        parse_proposal("   ", make_settings())
