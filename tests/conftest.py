"""Shared fixtures and fakes for the test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from whale_tracker.alerts.base import Notifier, NotifierChannel
from whale_tracker.alerts.models import Notification


class FakeMonotonic:
    """Monotonic clock whose sleep() advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeWallClock:
    """Aware-datetime clock advanced by hand."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingNotifier(Notifier):
    """Notifier that records deliveries and can be told to fail."""

    def __init__(self, fail_on: set[int] | None = None, raise_on: set[int] | None = None, **kwargs):
        super().__init__(**kwargs)
        self.delivered: list[tuple[float, Notification]] = []
        self.attempts = 0
        self.fail_on = fail_on or set()
        self.raise_on = raise_on or set()

    @property
    def channel(self) -> NotifierChannel:
        return NotifierChannel.CONSOLE

    async def deliver(self, notification: Notification) -> bool:
        index = self.attempts
        self.attempts += 1
        if index in self.raise_on:
            raise RuntimeError(f"delivery {index} exploded")
        if index in self.fail_on:
            return False
        self.delivered.append((self._clock(), notification))
        return True


@pytest.fixture
def fake_monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def wall_clock() -> FakeWallClock:
    return FakeWallClock()
