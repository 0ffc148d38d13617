"""Newborn profile and the built-in age-based feeding recommendations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .planning.clock import parse_day

__all__ = [
    "DEFAULT_RECOMMENDATIONS",
    "FeedingRecommendation",
    "NewbornProfile",
    "age_in_days",
    "build_profile",
    "recommendation_for_age",
]


class _Range(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class HoursRange(_Range):
    min_hours: float
    max_hours: float


class QuantityRange(_Range):
    min_oz: float
    max_oz: float
    min_ml: float
    max_ml: float


class FeedingRecommendation(_Range):
    age_in_days: int
    feeding_frequency: HoursRange
    amount_per_feeding: QuantityRange
    daily_intake: QuantityRange


def _row(age: int, hours: tuple, per_feeding: tuple, daily: tuple) -> FeedingRecommendation:
    return FeedingRecommendation(
        age_in_days=age,
        feeding_frequency=HoursRange(min_hours=hours[0], max_hours=hours[1]),
        amount_per_feeding=QuantityRange(
            min_oz=per_feeding[0], max_oz=per_feeding[1], min_ml=per_feeding[2], max_ml=per_feeding[3]
        ),
        daily_intake=QuantityRange(min_oz=daily[0], max_oz=daily[1], min_ml=daily[2], max_ml=daily[3]),
    )


DEFAULT_RECOMMENDATIONS: List[FeedingRecommendation] = [
    _row(5, (2, 3), (1.5, 2, 45, 60), (16, 20, 480, 600)),
    _row(6, (2, 3), (1.5, 2, 45, 60), (16, 20, 480, 600)),
    _row(7, (2, 3), (2, 2, 60, 60), (18, 20, 540, 600)),
    _row(8, (2, 3), (2, 2, 60, 60), (18, 20, 540, 600)),
    _row(9, (2, 3), (2, 2.5, 60, 75), (18, 22, 540, 660)),
    _row(10, (2, 3), (2, 2.5, 60, 75), (18, 22, 540, 660)),
    _row(11, (2, 3), (2, 2.5, 60, 75), (18, 22, 540, 660)),
    _row(12, (2, 3), (2.5, 2.5, 75, 75), (20, 24, 600, 720)),
    _row(13, (2, 3), (2.5, 2.5, 75, 75), (20, 24, 600, 720)),
    _row(14, (2, 3), (2.5, 3, 75, 90), (20, 24, 600, 720)),
    _row(15, (2, 3), (2.5, 3, 75, 90), (20, 24, 600, 720)),
    _row(16, (2, 3), (3, 3, 90, 90), (22, 26, 660, 780)),
    _row(17, (2, 3), (3, 3, 90, 90), (22, 26, 660, 780)),
    _row(18, (2, 4), (3, 3.5, 90, 105), (22, 28, 660, 840)),
    _row(19, (2, 4), (3, 3.5, 90, 105), (22, 28, 660, 840)),
    _row(20, (2, 4), (3, 3.5, 90, 105), (22, 28, 660, 840)),
]


def age_in_days(birth_date: date, today: date) -> int:
    return abs((today - birth_date).days)


def recommendation_for_age(
    age: int, table: Sequence[FeedingRecommendation] = DEFAULT_RECOMMENDATIONS
) -> FeedingRecommendation:
    """Exact row for ``age``, else the closest younger row, else the first row."""
    if not table:
        raise ValueError("recommendation table is empty")
    best: Optional[FeedingRecommendation] = None
    for row in table:
        if row.age_in_days == age:
            return row
        if row.age_in_days < age and (best is None or row.age_in_days > best.age_in_days):
            best = row
    return best or table[0]


@dataclass(slots=True)
class NewbornProfile:
    birth_date: date
    age_in_days: int
    recommendation: FeedingRecommendation

    def to_payload(self) -> Dict[str, Any]:
        return {
            "birthDate": self.birth_date.isoformat(),
            "ageInDays": self.age_in_days,
            "currentRecommendation": self.recommendation.model_dump(by_alias=True),
        }


def build_profile(document: Mapping[str, Any], today: date) -> NewbornProfile:
    """Derive the profile from a stored ``{"birthDate": ...}`` document."""
    raw = document.get("birthDate")
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError("profile document has no birthDate")
    birth = parse_day(raw.strip()[:10])
    age = age_in_days(birth, today)
    return NewbornProfile(birth_date=birth, age_in_days=age, recommendation=recommendation_for_age(age))
