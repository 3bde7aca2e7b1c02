"""Tests for configuration helpers."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from activity_log.config import AnalysisSettings, CaptureSettings
from activity_log.paths import get_log_dir


def test_capture_defaults():
    settings = CaptureSettings()
    assert settings.sample_interval == timedelta(minutes=1)
    assert settings.idle_threshold == timedelta(seconds=60)
    assert settings.lock_timeout_seconds == 60.0


def test_from_seconds():
    settings = CaptureSettings.from_seconds(30, 120, write_timeout_seconds=5)
    assert settings.sample_interval == timedelta(seconds=30)
    assert settings.idle_threshold == timedelta(minutes=2)
    assert settings.lock_timeout_seconds == 5.0


def test_top_n_from_env(monkeypatch):
    monkeypatch.setenv("ACTIVITY_LOG_TOP_N", "5")
    assert AnalysisSettings.from_env().top_n == 5
    monkeypatch.setenv("ACTIVITY_LOG_TOP_N", "lots")
    assert AnalysisSettings.from_env().top_n == 15
    monkeypatch.delenv("ACTIVITY_LOG_TOP_N")
    assert AnalysisSettings.from_env().top_n == 15


def test_log_dir_resolution(monkeypatch, tmp_path):
    monkeypatch.setenv("ACTIVITY_LOG_DIR", str(tmp_path / "env"))
    assert get_log_dir() == tmp_path / "env"
    assert get_log_dir(Path("/explicit")) == Path("/explicit")
