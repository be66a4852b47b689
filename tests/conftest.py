from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from size_server.models.schema_models import Identity
from size_server.services.size_service import SizeService


class ManualClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class ScriptedRandom:
    """Plays back queued values, falling back to the middle of the range."""

    def __init__(self, values: List[int] | None = None) -> None:
        self.values = list(values or [])
        self.calls: List[tuple[int, int]] = []

    def push(self, *values: int) -> None:
        self.values.extend(values)

    def randint(self, lower: int, upper: int) -> int:
        self.calls.append((lower, upper))
        if self.values:
            value = self.values.pop(0)
            assert lower <= value <= upper, f"{value} outside [{lower}, {upper}]"
            return value
        return (lower + upper) // 2


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def rng() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture
def service(rng: ScriptedRandom, clock: ManualClock) -> SizeService:
    return SizeService(random_source=rng, clock=clock)


@pytest.fixture
def viewer() -> Identity:
    return Identity(id="1001", display_name="Viewer")


@pytest.fixture
def other_viewer() -> Identity:
    return Identity(id="1002", display_name="OtherViewer")


@pytest.fixture
def streamer() -> Identity:
    return Identity(id="2001", display_name="Streamer")


@pytest.fixture
def other_streamer() -> Identity:
    return Identity(id="2002", display_name="OtherStreamer")
