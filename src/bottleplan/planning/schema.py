"""Canonical records for feeding settings, planned entries and actual feedings."""

from __future__ import annotations

from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .clock import parse_clock, parse_day

PLAN_LENGTH = 10


def new_entry_id() -> str:
    """Return a fresh opaque identifier for a feeding record."""
    return uuid4().hex


class RecordModel(BaseModel):
    """Base model: strict keys, camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_document(self) -> dict:
        """Render the record in its persisted JSON shape."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SettingsModel(RecordModel):
    model_config = ConfigDict(frozen=True)


class FeedWindows(SettingsModel):
    """Hours between feedings; ``ideal`` drives fallback spacing."""

    min: float
    max: float
    ideal: float

    @model_validator(mode="after")
    def _check_order(self) -> "FeedWindows":
        if not 0 < self.min <= self.ideal <= self.max:
            raise ValueError(
                f"feed windows must satisfy 0 < min <= ideal <= max "
                f"(got min={self.min}, ideal={self.ideal}, max={self.max})"
            )
        return self


class FeedAmounts(SettingsModel):
    """Per-feeding quantity bounds and the default amount."""

    min: float
    max: float
    target: float

    @model_validator(mode="after")
    def _check_order(self) -> "FeedAmounts":
        if not 0 < self.min <= self.target <= self.max:
            raise ValueError(
                f"feed amounts must satisfy 0 < min <= target <= max "
                f"(got min={self.min}, target={self.target}, max={self.max})"
            )
        return self

    def admits(self, amount: float) -> bool:
        return self.min <= amount <= self.max


class LockedFeedings(SettingsModel):
    """Clock times that must appear verbatim in every generated plan."""

    enabled: bool = False
    times: List[str] = Field(default_factory=list)

    @field_validator("times")
    @classmethod
    def _check_times(cls, value: List[str]) -> List[str]:
        for item in value:
            parse_clock(item)
        if len(set(value)) != len(value):
            raise ValueError("locked feeding times must be unique")
        return value

    @model_validator(mode="after")
    def _check_capacity(self) -> "LockedFeedings":
        if self.enabled and len(self.times) > PLAN_LENGTH:
            raise ValueError(f"at most {PLAN_LENGTH} locked feeding times are supported")
        return self

    @property
    def active_times(self) -> List[str]:
        return list(self.times) if self.enabled else []


class FeedingSettings(SettingsModel):
    """User-configured constraints; immutable for the duration of a request."""

    feed_windows: FeedWindows
    feed_amounts: FeedAmounts
    use_metric: bool = False
    locked_feedings: LockedFeedings = Field(default_factory=LockedFeedings)


class PlannedEntry(RecordModel):
    """One scheduled feeding slot."""

    id: str = Field(default_factory=new_entry_id)
    time: str
    amount: float
    is_locked: bool = False
    is_completed: bool = False
    date: Optional[str] = None

    @field_validator("time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        parse_clock(value)
        return value

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            parse_day(value)
        return value


class ActualFeeding(RecordModel):
    """A feeding that actually took place."""

    id: str = Field(default_factory=new_entry_id)
    date: str
    time: str
    amount: float
    plan_time: Optional[str] = None
    notes: str = ""

    @field_validator("time", "plan_time")
    @classmethod
    def _check_clock(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            parse_clock(value)
        return value

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        parse_day(value)
        return value

    @field_validator("amount")
    @classmethod
    def _check_amount(cls, value: float) -> float:
        if value < 0:
            raise ValueError("amount cannot be negative")
        return value


__all__ = [
    "PLAN_LENGTH",
    "ActualFeeding",
    "FeedAmounts",
    "FeedWindows",
    "FeedingSettings",
    "LockedFeedings",
    "PlannedEntry",
    "RecordModel",
    "new_entry_id",
]
