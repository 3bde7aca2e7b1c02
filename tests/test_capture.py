"""Tests for the capture scheduler."""

from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from activity_log.capture import (
    UNKNOWN_PROCESS,
    CaptureScheduler,
    ForegroundUnavailable,
    IdleQueryError,
    ProcessResolutionError,
)
from activity_log.config import CaptureSettings
from activity_log.models import ActivityRecord

from conftest import DAY

NOW = datetime(2024, 1, 3, 9, 0, 0, 250000)


@pytest.fixture
def scheduler(store, probe, idle_clock):
    return CaptureScheduler(store, probe, idle_clock, clock=lambda: NOW)


def test_tick_writes_sample_for_today(scheduler, store):
    record = scheduler.tick()

    assert record == ActivityRecord(datetime(2024, 1, 3, 9, 0, 0), "chrome", "Tab A")
    assert store.read(DAY) == [record]
    assert scheduler.current_process_name == "chrome"
    assert scheduler.current_window_title == "Tab A"


def test_idle_gate_skips_at_or_above_threshold(scheduler, store, idle_clock):
    idle_clock.seconds = 61
    assert scheduler.tick() is None
    idle_clock.seconds = 60
    assert scheduler.tick() is None
    assert store.read(DAY) == []

    idle_clock.seconds = 59
    assert scheduler.tick() is not None
    assert len(store.read(DAY)) == 1


def test_unresolvable_process_gets_sentinel(scheduler, store, probe):
    probe.resolve_error = ProcessResolutionError("access denied")
    record = scheduler.tick()
    assert record.process_name == UNKNOWN_PROCESS
    assert store.read(DAY)[0].process_name == UNKNOWN_PROCESS


def test_missing_foreground_window_skips_tick(scheduler, store, probe):
    probe.window = None
    assert scheduler.tick() is None
    assert store.read(DAY) == []


@pytest.mark.parametrize(
    "error",
    [ForegroundUnavailable("gone"), OSError("win32 failure"), RuntimeError("boom")],
)
def test_foreground_failures_never_escape(scheduler, store, probe, error):
    probe.error = error
    assert scheduler.tick() is None
    assert store.read(DAY) == []


@pytest.mark.parametrize("error", [IdleQueryError("no input info"), OSError("denied")])
def test_idle_query_failures_skip_tick(scheduler, store, idle_clock, error):
    idle_clock.error = error
    assert scheduler.tick() is None
    assert store.read(DAY) == []


def test_write_failure_skips_tick(scheduler, store):
    store.append = MagicMock(side_effect=OSError("disk full"))
    listener = MagicMock()
    scheduler.on_recorded(listener)

    assert scheduler.tick() is None
    listener.assert_not_called()


def test_next_tick_recovers_after_failure(scheduler, store, probe):
    probe.error = OSError("transient")
    scheduler.tick()
    probe.error = None
    scheduler.tick(NOW + timedelta(minutes=1))
    assert len(store.read(DAY)) == 1


def test_listeners_fire_on_record_and_change(scheduler, probe):
    recorded = MagicMock()
    changed = MagicMock()
    scheduler.on_recorded(recorded)
    scheduler.on_active_changed(changed)

    scheduler.tick()
    scheduler.tick(NOW + timedelta(minutes=1))

    assert recorded.call_count == 2
    assert changed.call_count == 1


def test_failing_listener_does_not_break_tick(scheduler, store):
    scheduler.on_recorded(MagicMock(side_effect=ValueError("ui gone")))
    assert scheduler.tick() is not None
    assert len(store.read(DAY)) == 1


def test_foreground_change_updates_state_without_logging(scheduler, store, probe):
    changed = MagicMock()
    scheduler.on_active_changed(changed)
    probe.window = (7, "main.go")
    probe.name = "code"

    assert scheduler.handle_foreground_changed() is True
    assert scheduler.snapshot() == ("code", "main.go")
    assert store.read(DAY) == []
    changed.assert_called_once()

    assert scheduler.handle_foreground_changed() is False
    changed.assert_called_once()


def test_foreground_change_failure_keeps_previous_state(scheduler, probe):
    scheduler.handle_foreground_changed()
    probe.error = ForegroundUnavailable("locked screen")
    assert scheduler.handle_foreground_changed() is False
    assert scheduler.snapshot() == ("chrome", "Tab A")


def test_tick_skipped_while_state_lock_is_held(store, probe, idle_clock):
    settings = CaptureSettings.from_seconds(60, 60, write_timeout_seconds=0.01)
    scheduler = CaptureScheduler(store, probe, idle_clock, settings, clock=lambda: NOW)
    scheduler._lock.acquire()
    try:
        assert scheduler.tick() is None
    finally:
        scheduler._lock.release()
    assert store.read(DAY) == []


def test_get_today_records(scheduler):
    scheduler.tick()
    assert [record.window_title for record in scheduler.get_today_records()] == ["Tab A"]


class FakeNotifier:
    def __init__(self):
        self.callback = None
        self.unsubscribed = False

    def subscribe(self, callback):
        self.callback = callback

        def unsubscribe():
            self.unsubscribed = True

        return unsubscribe


def test_start_subscribes_and_ticks_immediately(store, probe, idle_clock):
    notifier = FakeNotifier()
    settings = CaptureSettings.from_seconds(sample_seconds=3600)
    scheduler = CaptureScheduler(store, probe, idle_clock, settings, notifier, clock=lambda: NOW)
    ticked = threading.Event()
    scheduler.on_recorded(ticked.set)

    assert scheduler.start() is True
    assert scheduler.start() is False
    try:
        assert ticked.wait(5.0)
        assert notifier.callback is not None
        probe.window = (9, "Inbox")
        notifier.callback()
        assert scheduler.current_window_title == "Inbox"
    finally:
        scheduler.stop()

    assert notifier.unsubscribed
    assert not scheduler.is_running
    assert len(store.read(DAY)) == 1


def test_foreground_change_does_not_wait_for_a_long_tick(store, probe, idle_clock):
    settings = CaptureSettings.from_seconds(60, 60)
    scheduler = CaptureScheduler(store, probe, idle_clock, settings, clock=lambda: NOW)
    scheduler._lock.acquire()
    try:
        started = time.monotonic()
        assert scheduler.handle_foreground_changed() is False
        assert time.monotonic() - started < 1.0
    finally:
        scheduler._lock.release()
    assert scheduler.snapshot() == (None, None)


def test_properties_read_the_snapshot(scheduler):
    scheduler.tick()
    assert (scheduler.current_process_name, scheduler.current_window_title) == scheduler.snapshot()
