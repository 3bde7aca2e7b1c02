"""Domain models for recorded activity."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta


@dataclass(frozen=True, slots=True)
class ActivityRecord:
    """One observed foreground sample, nominally one minute of activity.

    Usage is measured by counting samples, so "minutes" everywhere in this
    package means "number of records" rather than elapsed wall-clock time.
    """

    timestamp: datetime
    process_name: str
    window_title: str

    @property
    def time_key(self) -> str:
        return self.timestamp.strftime("%H:%M:%S")


@dataclass(frozen=True, slots=True)
class TitleUsage:
    window_title: str
    minutes: int


@dataclass(frozen=True, slots=True)
class AppUsageSummary:
    process_name: str
    total_minutes: int
    percentage: float
    title_breakdown: list[TitleUsage] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class DailyUsage:
    date: date
    minutes: int


@dataclass(frozen=True, slots=True)
class TimelineBlock:
    """A contiguous run of same-process samples within one day.

    Offsets are measured from midnight; ``end_offset`` is exclusive.
    """

    start_offset: timedelta
    end_offset: timedelta
    process_name: str
    window_title: str
    minutes: int


@dataclass(frozen=True, slots=True)
class ActivityRow:
    """Today's usage grouped for display, flagged when it is the active window."""

    minutes: int
    process_name: str
    window_title: str
    is_active: bool


class AnalysisPeriod(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
