"""Helpers for locating application directories."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from platformdirs import PlatformDirs

from .config import log_dir_from_env

APP_NAME = "ActivityLog"
APP_AUTHOR = "ActivityLog"


def get_data_dir() -> Path:
    """Return the base directory for persistent data."""
    dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=False)
    path = Path(dirs.user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_log_dir(override: Optional[Path] = None) -> Path:
    """Resolve the daily log directory: explicit path, environment, then default."""
    if override is not None:
        return Path(override)
    return log_dir_from_env() or get_data_dir() / "logs"
