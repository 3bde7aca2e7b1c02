"""Win32 implementations of the foreground, idle and change-notification capabilities."""

from __future__ import annotations

import ctypes
import logging
import threading
from ctypes import wintypes
from typing import Optional

import psutil

from .capture import (
    ForegroundUnavailable,
    IdleQueryError,
    Listener,
    ProcessResolutionError,
    Unsubscribe,
)

logger = logging.getLogger(__name__)

EVENT_SYSTEM_FOREGROUND = 0x0003
WINEVENT_OUTOFCONTEXT = 0x0000
WM_QUIT = 0x0012


class WindowsIdleClock:
    """Reads the time since the last keyboard or mouse input."""

    class LASTINPUTINFO(ctypes.Structure):
        _fields_ = [("cbSize", wintypes.UINT), ("dwTime", wintypes.DWORD)]

    def __init__(self) -> None:
        self._user32 = ctypes.windll.user32  # type: ignore[attr-defined]
        self._kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
        self._kernel32.GetTickCount.restype = wintypes.DWORD

    def idle_seconds(self) -> float:
        last_input = self.LASTINPUTINFO()
        last_input.cbSize = ctypes.sizeof(last_input)
        if not self._user32.GetLastInputInfo(ctypes.byref(last_input)):
            raise IdleQueryError(str(ctypes.WinError()))
        # Both values are 32-bit tick counts; mask to survive wraparound.
        elapsed = (self._kernel32.GetTickCount() - last_input.dwTime) & 0xFFFFFFFF
        return elapsed / 1000.0


class WindowsForegroundProbe:
    """Retrieves the foreground window title and owning process."""

    def __init__(self) -> None:
        self._user32 = ctypes.windll.user32  # type: ignore[attr-defined]

    def get_foreground_window(self) -> Optional[tuple[int, str]]:
        hwnd = self._user32.GetForegroundWindow()
        if not hwnd:
            return None

        length = self._user32.GetWindowTextLengthW(hwnd)
        buffer = ctypes.create_unicode_buffer(length + 1)
        self._user32.GetWindowTextW(hwnd, buffer, length + 1)

        pid = wintypes.DWORD()
        self._user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
        if not pid.value:
            raise ForegroundUnavailable(f"no process for window {hwnd:#x}")
        return pid.value, buffer.value

    def resolve_process_name(self, process_id: int) -> str:
        try:
            name = psutil.Process(process_id).name()
        except psutil.Error as exc:
            raise ProcessResolutionError(str(exc)) from exc
        # Log names match what Task Manager shows without the extension.
        return name[:-4] if name.lower().endswith(".exe") else name


class WindowsForegroundNotifier:
    """Delivers foreground-window switches from a WinEvent hook thread."""

    def __init__(self) -> None:
        self._user32 = ctypes.windll.user32  # type: ignore[attr-defined]
        self._kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]

    def subscribe(self, callback: Listener) -> Unsubscribe:
        ready = threading.Event()
        state: dict[str, int] = {}
        thread = threading.Thread(
            target=self._pump,
            args=(callback, ready, state),
            name="activity-log-foreground-hook",
            daemon=True,
        )
        thread.start()
        ready.wait(timeout=5.0)

        def unsubscribe() -> None:
            thread_id = state.get("thread_id")
            if thread_id:
                self._user32.PostThreadMessageW(thread_id, WM_QUIT, 0, 0)
            thread.join(timeout=5.0)

        return unsubscribe

    def _pump(
        self, callback: Listener, ready: threading.Event, state: dict[str, int]
    ) -> None:
        win_event_proc = ctypes.WINFUNCTYPE(  # type: ignore[attr-defined]
            None,
            wintypes.HANDLE,
            wintypes.DWORD,
            wintypes.HWND,
            wintypes.LONG,
            wintypes.LONG,
            wintypes.DWORD,
            wintypes.DWORD,
        )

        def handle_event(hook, event, hwnd, id_object, id_child, thread, timestamp):
            try:
                callback()
            except Exception:  # noqa: BLE001
                logger.exception("Foreground change callback failed")

        proc = win_event_proc(handle_event)
        state["thread_id"] = self._kernel32.GetCurrentThreadId()
        hook = self._user32.SetWinEventHook(
            EVENT_SYSTEM_FOREGROUND,
            EVENT_SYSTEM_FOREGROUND,
            0,
            proc,
            0,
            0,
            WINEVENT_OUTOFCONTEXT,
        )
        ready.set()
        if not hook:
            logger.warning("SetWinEventHook failed; foreground changes will not be observed.")
            return
        try:
            msg = wintypes.MSG()
            while self._user32.GetMessageW(ctypes.byref(msg), 0, 0, 0) > 0:
                self._user32.TranslateMessage(ctypes.byref(msg))
                self._user32.DispatchMessageW(ctypes.byref(msg))
        finally:
            self._user32.UnhookWinEvent(hook)
