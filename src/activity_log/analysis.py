"""Aggregation of logged samples into usage summaries and date ranges."""

from __future__ import annotations

import calendar
from collections import Counter
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from .models import (
    ActivityRecord,
    ActivityRow,
    AnalysisPeriod,
    AppUsageSummary,
    DailyUsage,
    TitleUsage,
)
from .store import DailyLogStore

OTHER_BUCKET = "Other"
DEFAULT_TOP_N = 15


def get_date_range(reference: date, period: AnalysisPeriod) -> tuple[date, date]:
    """Return the inclusive ``(start, end)`` dates of the period containing ``reference``."""
    if period is AnalysisPeriod.WEEK:
        monday = reference - timedelta(days=reference.weekday())
        return monday, monday + timedelta(days=6)
    if period is AnalysisPeriod.MONTH:
        last_day = calendar.monthrange(reference.year, reference.month)[1]
        return reference.replace(day=1), reference.replace(day=last_day)
    return reference, reference


def navigate(current: date, period: AnalysisPeriod, direction: int) -> date:
    if period is AnalysisPeriod.WEEK:
        return current + timedelta(weeks=direction)
    if period is AnalysisPeriod.MONTH:
        return _add_months(current, direction)
    return current + timedelta(days=direction)


def period_label(reference: date, period: AnalysisPeriod) -> str:
    if period is AnalysisPeriod.WEEK:
        start, end = get_date_range(reference, period)
        week = start.isocalendar()[1]
        return f"{start:%m/%d} - {end:%m/%d} (Week {week})"
    if period is AnalysisPeriod.MONTH:
        return f"{reference:%Y/%m}"
    return f"{reference:%Y/%m/%d (%a)}"


def read_range(store: DailyLogStore, start: date, end: date) -> list[ActivityRecord]:
    records: list[ActivityRecord] = []
    day = start
    while day <= end:
        records.extend(store.read(day))
        day += timedelta(days=1)
    return records


def aggregate(
    records: Sequence[ActivityRecord], top_n: int = DEFAULT_TOP_N
) -> list[AppUsageSummary]:
    """Summarize samples per process, keeping the ``top_n`` largest.

    Processes beyond ``top_n`` are folded into a single ``Other`` summary.
    Percentages are taken against every sample, not just the visible ones.
    """
    total = len(records)
    if total == 0:
        return []

    grouped: dict[str, list[ActivityRecord]] = {}
    for record in records:
        grouped.setdefault(record.process_name, []).append(record)

    groups = sorted(
        ((name, len(items), _title_breakdown(items)) for name, items in grouped.items()),
        key=lambda item: item[1],
        reverse=True,
    )
    top_n = max(0, top_n)
    summaries = [
        AppUsageSummary(
            process_name=name,
            total_minutes=minutes,
            percentage=_percentage(minutes, total),
            title_breakdown=titles,
        )
        for name, minutes, titles in groups[:top_n]
    ]

    rest = groups[top_n:]
    if rest:
        other_minutes = sum(minutes for _, minutes, _ in rest)
        other_titles = sorted(
            (title for _, _, titles in rest for title in titles),
            key=lambda usage: usage.minutes,
            reverse=True,
        )
        summaries.append(
            AppUsageSummary(
                process_name=OTHER_BUCKET,
                total_minutes=other_minutes,
                percentage=_percentage(other_minutes, total),
                title_breakdown=other_titles,
            )
        )
    return summaries


def daily_breakdown(records: Iterable[ActivityRecord], process_name: str) -> list[DailyUsage]:
    counts = Counter(
        record.timestamp.date() for record in records if record.process_name == process_name
    )
    return [DailyUsage(date=day, minutes=counts[day]) for day in sorted(counts)]


def today_breakdown(
    records: Iterable[ActivityRecord],
    show_titles: bool = True,
    current_process: Optional[str] = None,
    current_title: Optional[str] = None,
) -> list[ActivityRow]:
    """Group samples for the live list, marking the row of the active window."""
    if show_titles:
        counts = Counter((record.process_name, record.window_title) for record in records)
    else:
        counts = Counter((record.process_name, "") for record in records)

    rows = [
        ActivityRow(
            minutes=minutes,
            process_name=process,
            window_title=title,
            is_active=(
                process == current_process
                and (not show_titles or title == current_title)
            ),
        )
        for (process, title), minutes in counts.items()
    ]
    rows.sort(key=lambda row: row.minutes, reverse=True)
    return rows


def format_minutes(minutes: int) -> str:
    if minutes >= 60:
        return f"{minutes // 60}h {minutes % 60:02d}m"
    return f"{minutes}m"


def _title_breakdown(records: Sequence[ActivityRecord]) -> list[TitleUsage]:
    counts = Counter(record.window_title for record in records)
    usages = [TitleUsage(window_title=title, minutes=minutes) for title, minutes in counts.items()]
    usages.sort(key=lambda usage: usage.minutes, reverse=True)
    return usages


def _percentage(minutes: int, total: int) -> float:
    return round(100.0 * minutes / total, 1)


def _add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
