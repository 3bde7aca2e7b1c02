"""Import interval exports from other trackers into the daily logs."""

from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .models import ActivityRecord
from .store import DailyLogStore

logger = logging.getLogger(__name__)

MIN_COLUMNS = 5
TITLE_COLUMN = 0
START_COLUMN = 1
END_COLUMN = 2
PROCESS_COLUMN = 4

# strptime accepts one or two digits for month, day and hour.
DATETIME_FORMATS = (
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
)


def import_merge(import_path: Path, log_dir: Path | DailyLogStore) -> int:
    """Merge an external export into the daily logs; return records added.

    Each row ``title, start, end, <ignored>, process`` becomes one sample per
    whole minute from start through end. Samples whose time of day already
    exists in that day's log are dropped. A date whose file cannot be written
    is skipped and the other dates still merge.
    """
    store = log_dir if isinstance(log_dir, DailyLogStore) else DailyLogStore(Path(log_dir))
    with open(import_path, "r", encoding="utf-8-sig", newline="") as handle:
        text = handle.read()

    by_date: dict[date, list[ActivityRecord]] = {}
    for record in parse_export(text):
        by_date.setdefault(record.timestamp.date(), []).append(record)

    total = 0
    for day in sorted(by_date):
        try:
            added = store.merge(day, by_date[day])
        except OSError:
            logger.exception("Failed to merge %d imported records into %s", len(by_date[day]), day)
            continue
        if added:
            logger.info("Imported %d records into %s", added, store.path_for(day))
        total += added
    return total


def parse_export(text: str) -> Iterator[ActivityRecord]:
    header, _, body = text.partition("\n")
    if not body.strip():
        return
    if "\t" in header:
        reader = csv.reader(io.StringIO(body), delimiter="\t", quoting=csv.QUOTE_NONE)
    else:
        reader = csv.reader(io.StringIO(body))
    for row_number, row in enumerate(reader, start=2):
        records = _expand_row(row)
        if records is None:
            logger.debug("Skipping import row %d: %r", row_number, row)
            continue
        yield from records


def expand_minutes(
    start: datetime, end: datetime, process_name: str, window_title: str
) -> list[ActivityRecord]:
    """One record per whole minute from ``start`` through ``end``, at least one."""
    current = start.replace(second=0, microsecond=0)
    last = end.replace(second=0, microsecond=0)
    records = [ActivityRecord(current, process_name, window_title)]
    current += timedelta(minutes=1)
    while current <= last:
        records.append(ActivityRecord(current, process_name, window_title))
        current += timedelta(minutes=1)
    return records


def parse_datetime(value: str) -> Optional[datetime]:
    text = value.strip()
    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _expand_row(row: Iterable[str]) -> Optional[list[ActivityRecord]]:
    columns = list(row)
    if len(columns) < MIN_COLUMNS:
        return None
    start = parse_datetime(columns[START_COLUMN])
    end = parse_datetime(columns[END_COLUMN])
    process_name = columns[PROCESS_COLUMN].strip()
    if start is None or end is None or not process_name:
        return None
    return expand_minutes(start, end, process_name, columns[TITLE_COLUMN].strip())
