"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from datetime import date
from pathlib import Path

from .analysis import (
    DEFAULT_TOP_N,
    aggregate,
    daily_breakdown,
    format_minutes,
    get_date_range,
    period_label,
    read_range,
)
from .models import AnalysisPeriod
from .store import DailyLogStore
from .timeline import build_timeline, format_offset

MAX_TITLE_WIDTH = 45


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, log_dir: Path) -> None:
        self.store = DailyLogStore(log_dir)

    def print_summary(
        self,
        reference: date,
        period: AnalysisPeriod = AnalysisPeriod.DAY,
        top_n: int = DEFAULT_TOP_N,
        titles: int = 5,
    ) -> None:
        start, end = get_date_range(reference, period)
        records = read_range(self.store, start, end)
        print(f"Summary for {period_label(reference, period)}")
        print("-" * 40)
        if not records:
            print("No activity recorded for the selected period.")
            return

        print(f"Total: {format_minutes(len(records))}")
        print()
        for summary in aggregate(records, top_n):
            print(
                f"  {summary.process_name:<30} "
                f"{format_minutes(summary.total_minutes):>8} {summary.percentage:5.1f}%"
            )
            for usage in summary.title_breakdown[:titles]:
                print(f"      {_clip(usage.window_title):<45} {format_minutes(usage.minutes):>8}")

    def print_timeline(self, day: date) -> None:
        blocks = build_timeline(self.store.read(day))
        if not blocks:
            print("No activity recorded for the selected day.")
            return
        print(f"Timeline for {period_label(day, AnalysisPeriod.DAY)}")
        print("-" * 40)
        for block in blocks:
            print(
                f"  {format_offset(block.start_offset)}-{format_offset(block.end_offset)} "
                f"{block.process_name:<20} {_clip(block.window_title)}"
            )

    def print_daily_breakdown(
        self, process_name: str, reference: date, period: AnalysisPeriod
    ) -> None:
        start, end = get_date_range(reference, period)
        rows = daily_breakdown(read_range(self.store, start, end), process_name)
        if not rows:
            print(f"No activity recorded for {process_name}.")
            return
        print(f"{process_name} - {period_label(reference, period)}")
        print("-" * 40)
        for row in rows:
            print(f"  {row.date:%m/%d (%a)}  {format_minutes(row.minutes)}")


def _clip(title: str) -> str:
    label = " ".join(title.split()) or "(no title)"
    if len(label) > MAX_TITLE_WIDTH:
        return label[: MAX_TITLE_WIDTH - 3] + "..."
    return label
