"""Tests for the daily log store."""

from __future__ import annotations

import threading
from datetime import date

from activity_log.store import DailyLogStore

from conftest import DAY, make_record


def test_read_missing_day_is_empty(store):
    assert store.read(DAY) == []


def test_append_creates_directory_and_file(store):
    record = make_record("09:00")
    store.append(DAY, record)

    path = store.path_for(DAY)
    assert path.name == "2024-01-03.csv"
    assert path.read_text(encoding="utf-8") == "09:00:00,chrome,Tab A\n"
    assert store.read(DAY) == [record]


def test_append_preserves_order(store):
    records = [make_record("09:05"), make_record("09:00", "code", "main.go")]
    for record in records:
        store.append(DAY, record)
    assert store.read(DAY) == records


def test_read_skips_malformed_and_blank_lines(store):
    store.log_dir.mkdir(parents=True)
    store.path_for(DAY).write_text(
        "09:00:00,chrome,Tab A\n\ngarbage\nxx:yy,chrome,Tab B\n09:01:00,code,main.go\n\n",
        encoding="utf-8",
    )
    records = store.read(DAY)
    assert [record.process_name for record in records] == ["chrome", "code"]


def test_multiline_title_survives_disk(store):
    record = make_record("10:00", "notepad", "notes\nmore, notes")
    store.append(DAY, record)
    store.append(DAY, make_record("10:01"))
    assert store.read(DAY)[0] == record


def test_merge_keeps_existing_and_skips_duplicate_times(store):
    store.append(DAY, make_record("09:00", "chrome", "Tab A"))
    added = store.merge(
        DAY,
        [make_record("09:00", "other", "X"), make_record("09:01", "other", "Y")],
    )
    assert added == 1
    assert store.path_for(DAY).read_text(encoding="utf-8") == (
        "09:00:00,chrome,Tab A\n09:01:00,other,Y\n"
    )


def test_merge_without_new_records_leaves_file_untouched(store):
    store.append(DAY, make_record("09:00"))
    path = store.path_for(DAY)
    before = path.stat().st_mtime_ns
    assert store.merge(DAY, [make_record("09:00", "other", "X")]) == 0
    assert path.stat().st_mtime_ns == before


def test_merge_does_not_create_file_when_nothing_added(store):
    assert store.merge(DAY, []) == 0
    assert not store.path_for(DAY).exists()


def test_lock_arena_reuses_lock_per_day(store):
    assert store.lock_for(DAY) is store.lock_for(date(2024, 1, 3))
    assert store.lock_for(DAY) is not store.lock_for(date(2024, 1, 4))


def test_concurrent_appends_write_whole_lines(tmp_path):
    store = DailyLogStore(tmp_path)

    def writer(process: str) -> None:
        for minute in range(50):
            store.append(DAY, make_record(f"10:{minute:02d}", process, "x" * 200))

    threads = [threading.Thread(target=writer, args=(name,)) for name in ("a", "b", "c")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store.read(DAY)) == 150


TORN = '09:00:00,chrome,"Tab A'


def _write_raw(store, text):
    store.log_dir.mkdir(parents=True, exist_ok=True)
    store.path_for(DAY).write_text(text, encoding="utf-8", newline="")


def test_torn_line_does_not_swallow_later_records(store):
    _write_raw(store, TORN + "\n09:01:00,code,x\n09:02:00,code,y\n")
    records = store.read(DAY)
    assert [(r.time_key, r.window_title) for r in records if r.process_name == "code"] == [
        ("09:01:00", "x"),
        ("09:02:00", "y"),
    ]


def test_appends_after_torn_write_stay_visible(store):
    _write_raw(store, TORN)
    store.append(DAY, make_record("09:01", "code", "x"))
    store.append(DAY, make_record("09:02", "code", "y"))

    keys = [r.time_key for r in store.read(DAY) if r.process_name == "code"]
    assert keys == ["09:01:00", "09:02:00"]


def test_merge_after_torn_line_still_dedups(store):
    _write_raw(store, TORN + "\n09:01:00,code,x\n")
    before = store.path_for(DAY).read_bytes()

    assert store.merge(DAY, [make_record("09:01", "other", "dup")]) == 0
    assert store.path_for(DAY).read_bytes() == before


def test_carriage_returns_in_titles_survive_disk(store):
    records = [
        make_record("11:00", "notepad", "a\r\nb"),
        make_record("11:01", "notepad", "title\r"),
        make_record("11:02", "notepad", "\rleading"),
    ]
    for record in records:
        store.append(DAY, record)
    assert store.read(DAY) == records


def test_crlf_terminated_file_is_read(store):
    _write_raw(store, "09:00:00,chrome,Tab A\r\n09:01:00,code,\"x\r\ny\"\r\n")
    assert [r.window_title for r in store.read(DAY)] == ["Tab A", "x\r\ny"]
