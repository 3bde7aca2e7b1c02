"""Line codec for activity log files.

Each record is stored as ``HH:MM:SS,<process>,<title>`` using minimal CSV
quoting: a field is wrapped in double quotes, with embedded quotes doubled,
when it contains a comma, a quote, a carriage return or a newline. The
calendar day is not part of the line; it comes from the name of the file that
holds it.
"""

from __future__ import annotations

import csv
import io
import re
from datetime import date, datetime
from typing import Iterator, Optional

from .models import ActivityRecord

TIME_FMT = "%H:%M:%S"
_TIME_FALLBACK_FMT = "%H:%M"
# Both characters in the terminator so the writer quotes a lone "\r" too.
_WRITER_TERMINATOR = "\r\n"
_RECORD_START = re.compile(r"^\d{1,2}:\d{2}(:\d{2})?,")


class FormatError(ValueError):
    """Raised when a log line cannot be decoded into a record."""


def encode(record: ActivityRecord) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator=_WRITER_TERMINATOR).writerow(
        (
            record.timestamp.strftime(TIME_FMT),
            record.process_name,
            record.window_title,
        )
    )
    return buffer.getvalue()[: -len(_WRITER_TERMINATOR)]


def decode(line: str, day: Optional[date] = None) -> ActivityRecord:
    """Decode one logical line, binding its time of day to ``day``.

    ``day`` defaults to today, matching how a bare time is interpreted.
    """
    parts = split_fields(line)
    if len(parts) < 3:
        raise FormatError(f"Expected at least 3 fields, got {len(parts)}: {line!r}")
    clock = _parse_time(parts[0])
    target = day or date.today()
    return ActivityRecord(
        timestamp=datetime.combine(target, clock.time()),
        process_name=parts[1],
        window_title=parts[2],
    )


def split_fields(line: str) -> list[str]:
    try:
        return next(csv.reader([line]), [])
    except csv.Error as exc:
        raise FormatError(f"Unparseable line {line!r}: {exc}") from exc


def iter_logical_lines(text: str) -> Iterator[str]:
    """Yield encoded records from file content, rejoining quoted newlines.

    A record whose quote never closes (a torn write) ends at the next physical
    line that starts with a time field, so later records are still seen.
    Blank lines between records are skipped.
    """
    pending: list[str] = []
    for physical in text.split("\n"):
        if pending and _RECORD_START.match(physical):
            yield from _finish("\n".join(pending))
            pending.clear()
        pending.append(physical)
        logical = "\n".join(pending)
        if logical.count('"') % 2 == 0:
            yield from _finish(logical)
            pending.clear()
    if pending:
        yield from _finish("\n".join(pending))


def time_key(line: str) -> Optional[str]:
    """Return the raw time field of an encoded line, or None if absent."""
    comma = line.find(",")
    if comma <= 0:
        return None
    return line[:comma]


def _finish(logical: str) -> Iterator[str]:
    # A trailing "\r" outside quotes is the tail of a CRLF terminator.
    if logical.endswith("\r"):
        logical = logical[:-1]
    if logical.strip():
        yield logical


def _parse_time(value: str) -> datetime:
    text = value.strip()
    for fmt in (TIME_FMT, _TIME_FALLBACK_FMT):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise FormatError(f"Invalid time field: {value!r}")
