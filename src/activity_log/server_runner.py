"""Helpers to launch the local query API."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import uvicorn

from .config import CaptureSettings
from .paths import get_log_dir
from .store import DailyLogStore
from .webapp import create_app


def run_server(
    *,
    host: str = "127.0.0.1",
    port: int = 8765,
    log_dir: Optional[Path] = None,
    settings: Optional[CaptureSettings] = None,
    collect_activity: bool = True,
    log_level: str = "info",
) -> None:
    """Start the FastAPI app, with the Windows sampler when requested."""
    resolved_log_dir = get_log_dir(log_dir)
    if collect_activity:
        from .capture import CaptureScheduler
        from .win32 import WindowsForegroundNotifier, WindowsForegroundProbe, WindowsIdleClock

        scheduler = CaptureScheduler(
            store=DailyLogStore(resolved_log_dir),
            probe=WindowsForegroundProbe(),
            idle_clock=WindowsIdleClock(),
            settings=settings or CaptureSettings(),
            notifier=WindowsForegroundNotifier(),
        )
        app = create_app(scheduler=scheduler)
    else:
        app = create_app(log_dir=resolved_log_dir)

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=host, port=port, log_level=log_level)
