"""Command-line interface for the activity log."""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import typer

from .config import AnalysisSettings, CaptureSettings
from .models import AnalysisPeriod
from .paths import get_log_dir

app = typer.Typer(help="Per-minute foreground activity logger.")


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _parse_day(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise typer.BadParameter("Expected YYYY-MM-DD.", param_hint="--date") from exc


LOG_DIR_OPTION = typer.Option(
    None,
    "--log-dir",
    path_type=Path,
    help="Directory holding the daily log files.",
)
DATE_OPTION = typer.Option(
    None,
    "--date",
    help="Reference date (YYYY-MM-DD). Defaults to today.",
)


@app.command()
def collect(
    log_dir: Optional[Path] = LOG_DIR_OPTION,
    sample_seconds: float = typer.Option(
        60.0,
        "--interval",
        min=1.0,
        help="Sampling interval in seconds.",
    ),
    idle_seconds: float = typer.Option(
        60.0,
        "--idle-threshold",
        min=1.0,
        help="Seconds without input before samples are skipped.",
    ),
) -> None:
    """Run the background sampler until interrupted."""
    from .capture import CaptureScheduler
    from .store import DailyLogStore
    from .win32 import WindowsForegroundNotifier, WindowsForegroundProbe, WindowsIdleClock

    scheduler = CaptureScheduler(
        store=DailyLogStore(get_log_dir(log_dir)),
        probe=WindowsForegroundProbe(),
        idle_clock=WindowsIdleClock(),
        settings=CaptureSettings.from_seconds(sample_seconds, idle_seconds),
        notifier=WindowsForegroundNotifier(),
    )
    scheduler.run_forever()


@app.command()
def summary(
    date_value: Optional[str] = DATE_OPTION,
    period: AnalysisPeriod = typer.Option(AnalysisPeriod.DAY, "--period", "-p"),
    top: Optional[int] = typer.Option(None, "--top", min=0, help="Processes listed before 'Other'."),
    log_dir: Optional[Path] = LOG_DIR_OPTION,
) -> None:
    """Print per-process usage for a day, week or month."""
    from .reporting import SummaryPrinter

    top_n = top if top is not None else AnalysisSettings.from_env().top_n
    SummaryPrinter(get_log_dir(log_dir)).print_summary(_parse_day(date_value), period, top_n)


@app.command()
def timeline(
    date_value: Optional[str] = DATE_OPTION,
    log_dir: Optional[Path] = LOG_DIR_OPTION,
) -> None:
    """Print the contiguous usage blocks of a single day."""
    from .reporting import SummaryPrinter

    SummaryPrinter(get_log_dir(log_dir)).print_timeline(_parse_day(date_value))


@app.command()
def daily(
    process_name: str = typer.Argument(..., help="Process name as it appears in the log."),
    date_value: Optional[str] = DATE_OPTION,
    period: AnalysisPeriod = typer.Option(AnalysisPeriod.WEEK, "--period", "-p"),
    log_dir: Optional[Path] = LOG_DIR_OPTION,
) -> None:
    """Print per-day minutes for one process."""
    from .reporting import SummaryPrinter

    SummaryPrinter(get_log_dir(log_dir)).print_daily_breakdown(
        process_name, _parse_day(date_value), period
    )


@app.command("import")
def import_file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Export to merge."),
    log_dir: Optional[Path] = LOG_DIR_OPTION,
) -> None:
    """Merge an external interval export into the daily logs."""
    from .importer import import_merge

    added = import_merge(path, get_log_dir(log_dir))
    typer.echo(f"Imported {added} records.")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    log_dir: Optional[Path] = LOG_DIR_OPTION,
    collect_activity: bool = typer.Option(
        True,
        "--collect/--no-collect",
        help="Run the sampler alongside the API.",
    ),
) -> None:
    """Serve the query API, optionally with the sampler in the background."""
    from .server_runner import run_server

    run_server(
        host=host,
        port=port,
        log_dir=get_log_dir(log_dir),
        collect_activity=collect_activity,
    )
