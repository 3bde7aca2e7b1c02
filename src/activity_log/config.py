"""Configuration models and helpers for the activity log."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

LOG_DIR_ENV = "ACTIVITY_LOG_DIR"
TOP_N_ENV = "ACTIVITY_LOG_TOP_N"


@dataclass(slots=True)
class CaptureSettings:
    """Runtime configuration for the capture scheduler."""

    sample_interval: timedelta = timedelta(minutes=1)
    idle_threshold: timedelta = timedelta(seconds=60)
    write_timeout: Optional[timedelta] = None

    @property
    def lock_timeout_seconds(self) -> float:
        timeout = self.write_timeout or self.sample_interval
        return timeout.total_seconds()

    @classmethod
    def from_seconds(
        cls,
        sample_seconds: float = 60.0,
        idle_seconds: float = 60.0,
        write_timeout_seconds: float | None = None,
    ) -> "CaptureSettings":
        return cls(
            sample_interval=timedelta(seconds=sample_seconds),
            idle_threshold=timedelta(seconds=idle_seconds),
            write_timeout=(
                timedelta(seconds=write_timeout_seconds)
                if write_timeout_seconds is not None
                else None
            ),
        )


@dataclass(slots=True)
class AnalysisSettings:
    top_n: int = 15

    @classmethod
    def from_env(cls) -> "AnalysisSettings":
        value = os.getenv(TOP_N_ENV)
        if value is None:
            return cls()
        try:
            return cls(top_n=max(0, int(value)))
        except ValueError:
            logger.warning("Ignoring invalid %s=%r", TOP_N_ENV, value)
            return cls()


def log_dir_from_env() -> Optional[Path]:
    value = os.getenv(LOG_DIR_ENV)
    return Path(value).expanduser() if value else None
