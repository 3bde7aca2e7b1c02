"""Pytest configuration and fixtures."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

import pytest

from activity_log.models import ActivityRecord
from activity_log.store import DailyLogStore

DAY = date(2024, 1, 3)


def make_record(
    clock: str, process_name: str = "chrome", window_title: str = "Tab A", day: date = DAY
) -> ActivityRecord:
    hour, minute, *rest = (int(part) for part in clock.split(":"))
    second = rest[0] if rest else 0
    return ActivityRecord(datetime(day.year, day.month, day.day, hour, minute, second), process_name, window_title)


class FakeProbe:
    """Foreground capability returning a scripted window."""

    def __init__(self, window: Optional[tuple[int, str]] = (42, "Tab A"), name: str = "chrome"):
        self.window = window
        self.name = name
        self.error: Optional[Exception] = None
        self.resolve_error: Optional[Exception] = None

    def get_foreground_window(self):
        if self.error is not None:
            raise self.error
        return self.window

    def resolve_process_name(self, process_id: int) -> str:
        if self.resolve_error is not None:
            raise self.resolve_error
        return self.name


class FakeIdleClock:
    def __init__(self, seconds: float = 0.0):
        self.seconds = seconds
        self.error: Optional[Exception] = None

    def idle_seconds(self) -> float:
        if self.error is not None:
            raise self.error
        return self.seconds


@pytest.fixture
def store(tmp_path):
    return DailyLogStore(tmp_path / "logs")


@pytest.fixture
def probe():
    return FakeProbe()


@pytest.fixture
def idle_clock():
    return FakeIdleClock()
