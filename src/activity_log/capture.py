"""Capture scheduler: periodic, idle-aware sampling of the foreground window."""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Callable, Optional, Protocol

from .config import CaptureSettings
from .models import ActivityRecord
from .store import DailyLogStore

logger = logging.getLogger(__name__)

UNKNOWN_PROCESS = "(unknown)"
# The foreground hook runs on the OS message pump; never hold it for a tick.
NOTIFY_LOCK_TIMEOUT = 0.1

Listener = Callable[[], None]
Unsubscribe = Callable[[], None]


class CaptureError(RuntimeError):
    """Base class for failures of an OS capability."""


class ForegroundUnavailable(CaptureError):
    """No foreground window could be determined."""


class IdleQueryError(CaptureError):
    """The idle time could not be read."""


class ProcessResolutionError(CaptureError):
    """The process owning a window could not be resolved."""


class ForegroundProbe(Protocol):
    def get_foreground_window(self) -> Optional[tuple[int, str]]:
        """Return ``(process_id, window_title)`` or None when nothing is focused."""

    def resolve_process_name(self, process_id: int) -> str:
        ...


class IdleClock(Protocol):
    def idle_seconds(self) -> float:
        ...


class ForegroundNotifier(Protocol):
    def subscribe(self, callback: Listener) -> Unsubscribe:
        ...


class CaptureScheduler:
    """Samples the foreground window once per interval and appends it to today's log.

    Two triggers share the ``current_*`` snapshot and the log file: the periodic
    tick and the foreground-change notification. Both go through one lock. A tick
    that cannot take it within ``write_timeout`` is skipped, not queued; a change
    notification waits only ``NOTIFY_LOCK_TIMEOUT`` before it is dropped.
    """

    def __init__(
        self,
        store: DailyLogStore,
        probe: ForegroundProbe,
        idle_clock: IdleClock,
        settings: Optional[CaptureSettings] = None,
        notifier: Optional[ForegroundNotifier] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.settings = settings or CaptureSettings()
        self._probe = probe
        self._idle_clock = idle_clock
        self._notifier = notifier
        self._clock = clock
        self._lock = threading.Lock()
        self._current_process_name: Optional[str] = None
        self._current_window_title: Optional[str] = None
        self._recorded_listeners: list[Listener] = []
        self._active_changed_listeners: list[Listener] = []
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._unsubscribe: Optional[Unsubscribe] = None

    @property
    def current_process_name(self) -> Optional[str]:
        return self.snapshot()[0]

    @property
    def current_window_title(self) -> Optional[str]:
        return self.snapshot()[1]

    def snapshot(self) -> tuple[Optional[str], Optional[str]]:
        """Return ``(process_name, window_title)`` as one consistent pair.

        Reading the two properties separately may mix two different windows.
        """
        with self._lock:
            return self._current_process_name, self._current_window_title

    def on_recorded(self, listener: Listener) -> None:
        self._recorded_listeners.append(listener)

    def on_active_changed(self, listener: Listener) -> None:
        self._active_changed_listeners.append(listener)

    def get_today_records(self) -> list[ActivityRecord]:
        return self.store.read(self._clock().date())

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        if self.is_running:
            return False
        self._stop_event.clear()
        if self._notifier is not None:
            self._unsubscribe = self._notifier.subscribe(self.handle_foreground_changed)
        self._thread = threading.Thread(
            target=self.run_until_stopped,
            args=(self._stop_event,),
            name="activity-log-capture",
            daemon=True,
        )
        self._thread.start()
        logger.info("Capture started; writing to %s", self.store.log_dir)
        return True

    def run_forever(self) -> None:
        """Sample on the calling thread until interrupted."""
        self._stop_event.clear()
        if self._notifier is not None:
            self._unsubscribe = self._notifier.subscribe(self.handle_foreground_changed)
        logger.info("Capture started; writing to %s", self.store.log_dir)
        try:
            self.run_until_stopped(self._stop_event)
        except KeyboardInterrupt:
            logger.info("Capture interrupted.")
        finally:
            self.stop()

    def stop(self, timeout_seconds: float = 5.0) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        thread = self._thread
        if thread is None:
            return
        self._stop_event.set()
        thread.join(timeout=timeout_seconds)
        self._thread = None
        logger.info("Capture stopped.")

    def run_until_stopped(self, stop_event: threading.Event) -> None:
        """Tick at a fixed rate, starting immediately, until ``stop_event`` is set."""
        interval = self.settings.sample_interval.total_seconds()
        next_due = time.monotonic()
        while not stop_event.is_set():
            now = time.monotonic()
            if now < next_due and stop_event.wait(next_due - now):
                break
            self.tick()
            next_due = max(next_due + interval, time.monotonic() + 0.05)

    def tick(self, now: Optional[datetime] = None) -> Optional[ActivityRecord]:
        """Run one sampling step; return the written record, or None if skipped.

        Failures never escape: a tick that cannot sample just writes nothing and
        the next one tries again.
        """
        timestamp = (now or self._clock()).replace(microsecond=0)
        if not self._lock.acquire(timeout=self.settings.lock_timeout_seconds):
            logger.warning("Tick at %s skipped; previous write still in progress.", timestamp)
            return None
        changed = False
        try:
            if self._is_idle():
                logger.debug("Tick at %s skipped; user idle.", timestamp)
                return None
            record = self._capture(timestamp)
            changed = self._set_current(record.process_name, record.window_title)
            self.store.append(timestamp.date(), record)
        except CaptureError as exc:
            logger.debug("Tick at %s skipped: %s", timestamp, exc)
            return None
        except OSError:
            logger.warning("Tick at %s skipped; could not write log.", timestamp, exc_info=True)
            return None
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected failure during tick at %s", timestamp)
            return None
        finally:
            self._lock.release()

        if changed:
            self._notify(self._active_changed_listeners)
        self._notify(self._recorded_listeners)
        return record

    def handle_foreground_changed(self) -> bool:
        """Refresh the current snapshot without logging. Returns True if it changed."""
        if not self._lock.acquire(timeout=NOTIFY_LOCK_TIMEOUT):
            logger.debug("Foreground change dropped; tick in progress.")
            return False
        try:
            process_name, window_title = self._query_foreground()
            changed = self._set_current(process_name, window_title)
        except CaptureError as exc:
            logger.debug("Foreground change ignored: %s", exc)
            return False
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected failure handling foreground change")
            return False
        finally:
            self._lock.release()

        if changed:
            self._notify(self._active_changed_listeners)
        return changed

    def _is_idle(self) -> bool:
        try:
            idle = self._idle_clock.idle_seconds()
        except OSError as exc:
            raise IdleQueryError(str(exc)) from exc
        return idle >= self.settings.idle_threshold.total_seconds()

    def _capture(self, timestamp: datetime) -> ActivityRecord:
        process_name, window_title = self._query_foreground()
        return ActivityRecord(
            timestamp=timestamp,
            process_name=process_name,
            window_title=window_title,
        )

    def _query_foreground(self) -> tuple[str, str]:
        try:
            window = self._probe.get_foreground_window()
        except OSError as exc:
            raise ForegroundUnavailable(str(exc)) from exc
        if window is None:
            raise ForegroundUnavailable("no foreground window")
        process_id, window_title = window
        try:
            process_name = self._probe.resolve_process_name(process_id) or UNKNOWN_PROCESS
        except (ProcessResolutionError, OSError) as exc:
            logger.debug("Could not resolve process %s: %s", process_id, exc)
            process_name = UNKNOWN_PROCESS
        return process_name, window_title or ""

    def _set_current(self, process_name: str, window_title: str) -> bool:
        changed = (process_name, window_title) != (
            self._current_process_name,
            self._current_window_title,
        )
        self._current_process_name = process_name
        self._current_window_title = window_title
        return changed

    @staticmethod
    def _notify(listeners: list[Listener]) -> None:
        for listener in list(listeners):
            try:
                listener()
            except Exception:  # noqa: BLE001
                logger.exception("Activity listener failed")
