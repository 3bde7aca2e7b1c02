"""Timeline construction: contiguous same-process blocks for a single day."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Sequence

from .models import ActivityRecord, TimelineBlock

SAMPLE_LENGTH = timedelta(minutes=1)
MAX_GAP = timedelta(minutes=2)


def build_timeline(records: Sequence[ActivityRecord]) -> list[TimelineBlock]:
    """Collapse one day's samples into contiguous same-process blocks.

    A sample joins the open block when its process matches and it starts no
    more than ``MAX_GAP`` after the block ends, so a couple of missed ticks do
    not split a session. The block shows the most recent title.
    """
    if not records:
        return []

    ordered = sorted(records, key=lambda record: _time_of_day(record.timestamp))

    first = ordered[0]
    start = _time_of_day(first.timestamp)
    end = start + SAMPLE_LENGTH
    process_name = first.process_name
    window_title = first.window_title
    minutes = 1

    blocks: list[TimelineBlock] = []
    for record in ordered[1:]:
        offset = _time_of_day(record.timestamp)
        if record.process_name == process_name and offset - end <= MAX_GAP:
            end = offset + SAMPLE_LENGTH
            window_title = record.window_title
            minutes += 1
            continue

        blocks.append(TimelineBlock(start, end, process_name, window_title, minutes))
        start = offset
        end = offset + SAMPLE_LENGTH
        process_name = record.process_name
        window_title = record.window_title
        minutes = 1

    blocks.append(TimelineBlock(start, end, process_name, window_title, minutes))
    return blocks


def format_offset(offset: timedelta) -> str:
    total_minutes = int(offset.total_seconds()) // 60
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours:02d}:{minutes:02d}"


def _time_of_day(value: datetime) -> timedelta:
    return timedelta(hours=value.hour, minutes=value.minute, seconds=value.second)
