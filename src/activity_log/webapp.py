"""FastAPI application exposing the activity log to a local UI."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .analysis import (
    aggregate,
    daily_breakdown,
    format_minutes,
    get_date_range,
    period_label,
    read_range,
    today_breakdown,
)
from .capture import CaptureScheduler
from .config import AnalysisSettings
from .importer import import_merge
from .models import AnalysisPeriod
from .paths import get_log_dir
from .store import DailyLogStore
from .timeline import build_timeline, format_offset

logger = logging.getLogger(__name__)


class ImportRequest(BaseModel):
    path: str

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    log_dir: Optional[Path] = None,
    scheduler: Optional[CaptureScheduler] = None,
    analysis_settings: Optional[AnalysisSettings] = None,
) -> FastAPI:
    """Instantiate the FastAPI application.

    When a scheduler is given it is started and stopped with the app and its
    store is used for every query.
    """
    store = scheduler.store if scheduler is not None else DailyLogStore(get_log_dir(log_dir))
    resolved_analysis = analysis_settings or AnalysisSettings.from_env()

    app = FastAPI(title="Activity Log", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.store = store
    app.state.scheduler = scheduler

    @app.on_event("startup")
    async def _startup() -> None:
        if scheduler is not None:
            scheduler.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        if scheduler is not None:
            scheduler.stop()

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        runner = request.app.state.scheduler
        payload: Dict[str, Any] = {
            "collector_running": bool(runner and runner.is_running),
            "log_dir": str(request.app.state.store.log_dir),
            "top_n": resolved_analysis.top_n,
        }
        if runner is not None:
            payload["sample_seconds"] = runner.settings.sample_interval.total_seconds()
            payload["idle_seconds"] = runner.settings.idle_threshold.total_seconds()
        return payload

    @app.get("/api/current")
    def current(request: Request) -> Dict[str, Any]:
        runner = request.app.state.scheduler
        process_name, window_title = runner.snapshot() if runner else (None, None)
        return {"process_name": process_name, "window_title": window_title}

    @app.get("/api/today")
    def today(
        request: Request,
        titles: bool = Query(default=True, description="Group by window title too."),
    ) -> Dict[str, Any]:
        runner = request.app.state.scheduler
        current_process, current_title = runner.snapshot() if runner else (None, None)
        day = date.today()
        records = request.app.state.store.read(day)
        rows = today_breakdown(records, titles, current_process, current_title)
        return {
            "date": day.isoformat(),
            "total_minutes": len(records),
            "rows": [
                {**asdict(row), "time_text": format_minutes(row.minutes)} for row in rows
            ],
        }

    @app.get("/api/summary")
    def summary(
        request: Request,
        date_value: Optional[str] = Query(
            default=None,
            alias="date",
            description="Reference date in YYYY-MM-DD format.",
        ),
        period: AnalysisPeriod = Query(default=AnalysisPeriod.DAY),
        top: Optional[int] = Query(default=None, ge=0),
    ) -> Dict[str, Any]:
        reference = _parse_date(date_value)
        start, end = get_date_range(reference, period)
        records = read_range(request.app.state.store, start, end)
        summaries = aggregate(records, resolved_analysis.top_n if top is None else top)
        return {
            "start": start.isoformat(),
            "end": end.isoformat(),
            "label": period_label(reference, period),
            "total_minutes": len(records),
            "total_text": format_minutes(len(records)),
            "apps": [
                {
                    "process_name": item.process_name,
                    "total_minutes": item.total_minutes,
                    "percentage": item.percentage,
                    "titles": [asdict(title) for title in item.title_breakdown],
                }
                for item in summaries
            ],
        }

    @app.get("/api/daily")
    def daily(
        request: Request,
        process: str = Query(..., description="Process name to break down."),
        date_value: Optional[str] = Query(default=None, alias="date"),
        period: AnalysisPeriod = Query(default=AnalysisPeriod.WEEK),
    ) -> Dict[str, Any]:
        reference = _parse_date(date_value)
        start, end = get_date_range(reference, period)
        rows = daily_breakdown(read_range(request.app.state.store, start, end), process)
        return {
            "process_name": process,
            "start": start.isoformat(),
            "end": end.isoformat(),
            "days": [{"date": row.date.isoformat(), "minutes": row.minutes} for row in rows],
        }

    @app.get("/api/timeline")
    def timeline(
        request: Request,
        date_value: Optional[str] = Query(default=None, alias="date"),
    ) -> Dict[str, Any]:
        day = _parse_date(date_value)
        blocks = build_timeline(request.app.state.store.read(day))
        return {
            "date": day.isoformat(),
            "blocks": [
                {
                    "start": format_offset(block.start_offset),
                    "end": format_offset(block.end_offset),
                    "process_name": block.process_name,
                    "window_title": block.window_title,
                    "minutes": block.minutes,
                }
                for block in blocks
            ],
        }

    @app.post("/api/import")
    def import_export(payload: ImportRequest, request: Request) -> Dict[str, Any]:
        path = Path(payload.path).expanduser()
        if not path.is_file():
            raise HTTPException(status_code=404, detail="Import file not found")
        try:
            added = import_merge(path, request.app.state.store)
        except (OSError, UnicodeDecodeError) as exc:
            logger.exception("Import of %s failed", path)
            raise HTTPException(status_code=400, detail=f"Could not read {path.name}") from exc
        return {"added": added}

    return app


def _parse_date(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format") from exc
