from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Iterator, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from bottleplan.planning.schema import FeedingSettings  # noqa: E402
from bottleplan.storage.store import FeedingStore, RetryPolicy  # noqa: E402

DEFAULT_LOCKED_TIMES = ["22:00", "00:30", "03:00", "05:30", "08:00"]

SettingsFactory = Callable[..., FeedingSettings]


def build_settings(
    *,
    ideal: float = 2.5,
    window_min: float = 2,
    window_max: float = 3,
    amount_min: float = 1.5,
    amount_max: float = 2.5,
    target: float = 2,
    locked: bool = True,
    times: Sequence[str] | None = None,
    use_metric: bool = False,
) -> FeedingSettings:
    document: dict[str, Any] = {
        "feedWindows": {"min": window_min, "max": window_max, "ideal": ideal},
        "feedAmounts": {"min": amount_min, "max": amount_max, "target": target},
        "useMetric": use_metric,
        "lockedFeedings": {
            "enabled": locked,
            "times": list(DEFAULT_LOCKED_TIMES if times is None else times),
        },
    }
    return FeedingSettings.model_validate(document)


@pytest.fixture()
def make_settings() -> SettingsFactory:
    """Factory for feeding settings with the tracker's stock defaults."""

    return build_settings


@pytest.fixture()
def store(tmp_path: Path) -> Iterator[FeedingStore]:
    with FeedingStore(tmp_path / "data" / "bottleplan.sqlite", retry=RetryPolicy(attempts=1, delay=0)) as handle:
        yield handle
