"""Shared fixtures: a controllable clock and a manager wired to it."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from core.event_bus import EventBus
from goals.lifecycle import GoalLifecycleManager

START = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def manager(clock: FakeClock, event_bus: EventBus) -> GoalLifecycleManager:
    return GoalLifecycleManager(event_bus=event_bus, clock=clock)
