"""Append-only daily log files, one per calendar date."""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Iterable, Iterator

from .codec import FormatError, decode, encode, iter_logical_lines, time_key
from .models import ActivityRecord

logger = logging.getLogger(__name__)

LOG_SUFFIX = ".csv"


class DailyLogStore:
    """Reads and writes ``<log_dir>/<YYYY-MM-DD>.csv`` files.

    Every mutation of a given day's file happens while holding that day's
    lock, so the capture thread and an import never interleave writes.
    """

    def __init__(self, log_dir: Path) -> None:
        self.log_dir = Path(log_dir)
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def path_for(self, day: date) -> Path:
        return self.log_dir / f"{day.isoformat()}{LOG_SUFFIX}"

    def lock_for(self, day: date) -> threading.RLock:
        key = day.isoformat()
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def locked(self, day: date) -> Iterator[None]:
        with self.lock_for(day):
            yield

    def append(self, day: date, record: ActivityRecord) -> None:
        line = encode(record) + "\n"
        path = self.path_for(day)
        with self.locked(day):
            self.log_dir.mkdir(parents=True, exist_ok=True)
            if not _ends_with_newline(path):
                # Previous write was cut short; start on a fresh line.
                line = "\n" + line
            with open(path, "a", encoding="utf-8", newline="") as handle:
                handle.write(line)

    def read(self, day: date) -> list[ActivityRecord]:
        """Return every decodable record for ``day``; bad lines are skipped."""
        records: list[ActivityRecord] = []
        for line in self.read_lines(day):
            try:
                records.append(decode(line, day))
            except FormatError:
                logger.debug("Skipping malformed line in %s: %r", day, line)
        return records

    def read_lines(self, day: date) -> list[str]:
        path = self.path_for(day)
        with self.locked(day):
            if not path.exists():
                return []
            with open(path, "r", encoding="utf-8", newline="") as handle:
                text = handle.read()
        return list(iter_logical_lines(text))

    def merge(self, day: date, records: Iterable[ActivityRecord]) -> int:
        """Add records whose time of day is not already logged for ``day``.

        Existing lines are kept verbatim and win over incoming duplicates. The
        file is rewritten only when at least one record is added. Returns the
        number of records added.
        """
        with self.locked(day):
            lines = self.read_lines(day)
            seen = {key for key in map(time_key, lines) if key}
            added = 0
            for record in records:
                key = record.time_key
                if key in seen:
                    continue
                lines.append(encode(record))
                seen.add(key)
                added += 1
            if added:
                self._rewrite(day, lines)
        return added

    def _rewrite(self, day: date, lines: list[str]) -> None:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        target = self.path_for(day)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.stem}-", suffix=".tmp", dir=self.log_dir
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.writelines(line + "\n" for line in lines)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def _ends_with_newline(path: Path) -> bool:
    """True for a missing or empty file, or one whose last byte is a newline."""
    try:
        with open(path, "rb") as handle:
            handle.seek(0, os.SEEK_END)
            if handle.tell() == 0:
                return True
            handle.seek(-1, os.SEEK_END)
            return handle.read(1) == b"\n"
    except FileNotFoundError:
        return True
