import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from loguru import logger

from config.settings import Settings, get_settings
from journal_sim.data import JournalStore
from journal_sim.data.storage import HistoryRepository
from journal_sim.engine import MonteCarloService
from journal_sim.models import SimulationProgress, SimulationResult, SimulationSummary
from journal_sim.utils import (
    HistoryStorageError,
    SimulationConfigError,
    TradeSourceError,
    setup_logging,
)

app = typer.Typer(no_args_is_help=True)


def _bootstrap() -> Settings:
    settings = get_settings()
    setup_logging(settings.log_level, settings.database.log_dir)
    return settings


def _format_metric(value: float, pct: bool = False) -> str:
    if value == float("inf"):
        return "inf"
    return f"{value:.2%}" if pct else f"{value:,.2f}"


def _print_summary(summary: SimulationSummary) -> None:
    rows = [
        ("Runs", str(summary.total_runs)),
        ("Median final", _format_metric(summary.median_final)),
        ("Average final", _format_metric(summary.avg_final)),
        ("P05 / P95", f"{_format_metric(summary.p05)} / {_format_metric(summary.p95)}"),
        ("P25 / P75", f"{_format_metric(summary.p25)} / {_format_metric(summary.p75)}"),
        ("Max drawdown", _format_metric(summary.max_drawdown, pct=True)),
        ("Worst drawdown", _format_metric(summary.worst_drawdown, pct=True)),
        ("CAGR", _format_metric(summary.cagr, pct=True)),
        ("Calmar", _format_metric(summary.calmar)),
        ("Sharpe", _format_metric(summary.sharpe)),
        ("Sortino", _format_metric(summary.sortino)),
        ("Profit factor", _format_metric(summary.profit_factor)),
        ("Expected value", _format_metric(summary.expected_value)),
        ("Skewness", _format_metric(summary.skewness)),
        ("Kurtosis", _format_metric(summary.kurtosis)),
        ("Excess kurtosis", _format_metric(summary.excess_kurtosis)),
        ("Prob. of ruin", _format_metric(summary.prob_ruin, pct=True)),
    ]
    typer.echo("=" * 50)
    for label, value in rows:
        typer.echo(f"{label:<20} | {value}")
    typer.echo("=" * 50)


@app.command()
def init() -> None:
    """Create the data directory and history database."""
    try:
        settings = _bootstrap()
        settings.database.db_dir.mkdir(parents=True, exist_ok=True)
        typer.echo(f"Created directory: {settings.database.db_dir}")

        with HistoryRepository(settings.database.sqlite_path) as history:
            history.initialize_schema()
            typer.echo("Initialized history schema")

        logger.info("Journal simulator initialized")

    except Exception as e:
        typer.echo(f"Initialization failed: {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def simulate(
    strategy: Optional[str] = typer.Option(None, help="Only use trades of this strategy"),
    category: Optional[str] = typer.Option(None, help="Only use trades of this category"),
    date_from: Optional[datetime] = typer.Option(None, "--from", formats=["%Y-%m-%d"]),
    date_to: Optional[datetime] = typer.Option(None, "--to", formats=["%Y-%m-%d"]),
    simulations: int = typer.Option(10000, help="Number of simulated runs"),
    max_trades: int = typer.Option(500, help="Trades per simulated run"),
    capital: float = typer.Option(10000.0, help="Initial capital"),
    seed: Optional[int] = typer.Option(None, help="Seed for reproducible runs"),
    unit: str = typer.Option("pnl", help="Outcome unit: pnl or r"),
    risk_per_r: float = typer.Option(1.0, help="Dollar value of 1R when --unit r"),
    risk_pct: Optional[float] = typer.Option(
        None, help="Risk this fraction of current equity per trade when --unit r"
    ),
    trades_per_year: Optional[float] = typer.Option(None, help="Override trade cadence"),
    drawdown_policy: str = typer.Option("mean", help="Drawdown summary: mean or worst"),
    journal: Optional[Path] = typer.Option(None, help="Journal export JSON file"),
    save: bool = typer.Option(True, help="Store the result in history"),
) -> None:
    """Run a Monte Carlo simulation over journal trades."""
    try:
        settings = _bootstrap()
        store = JournalStore(journal or settings.journal.journal_path)

        history = HistoryRepository(settings.database.sqlite_path)
        history.initialize_schema()

        config = {
            "strategy": strategy,
            "category": category,
            "date_from": date_from.date() if date_from else None,
            "date_to": date_to.date() if date_to else None,
            "simulations": simulations,
            "max_trades_per_run": max_trades,
            "initial_capital": capital,
            "seed": seed,
            "unit": unit,
            "risk_per_r": risk_per_r,
            "risk_per_trade_pct": risk_pct,
            "trades_per_year": trades_per_year,
            "drawdown_policy": drawdown_policy,
        }

        last_step = {"value": -1}

        def report(progress: SimulationProgress) -> None:
            step = int(progress.percentage // 10)
            if step > last_step["value"]:
                last_step["value"] = step
                typer.echo(f"Progress: {progress.percentage:.0f}%")

        with history, MonteCarloService(store, history, settings.simulation) as service:
            handle = service.start(config, on_progress=report, save=save)
            try:
                result: SimulationResult = handle.result()
            except KeyboardInterrupt:
                typer.echo("Stopping simulation...")
                service.stop_simulation()
                result = handle.result()

            if result.partial:
                typer.echo(f"Partial result: {result.status_label}")
            _print_summary(result.summary)
            if handle.history_id:
                typer.echo(f"Saved as {handle.history_id}")

    except SimulationConfigError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    except TradeSourceError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    except Exception as e:
        typer.echo(f"Simulation failed: {e}", err=True)
        logger.exception("Simulate command failed")
        raise typer.Exit(code=1)


@app.command()
def history() -> None:
    """List stored simulations, newest first."""
    try:
        settings = _bootstrap()
        with HistoryRepository(settings.database.sqlite_path) as repo:
            repo.initialize_schema()
            items = repo.list()

        if not items:
            typer.echo("No simulations stored")
            return

        typer.echo(
            f"{'ID':<36} | {'Created':<19} | {'Filter':<24} | {'Runs':<8} | {'CAGR':<9} | {'Status':<16}"
        )
        typer.echo("=" * 125)
        for item in items:
            status = f"stopped at {item.progress:.0f}%" if item.partial else "completed"
            typer.echo(
                f"{item.id:<36} | {item.created_at:%Y-%m-%d %H:%M:%S} | "
                f"{item.config.filter_label[:24]:<24} | {item.summary.total_runs:<8} | "
                f"{_format_metric(item.summary.cagr, pct=True):<9} | {status:<16}"
            )

    except HistoryStorageError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)


@app.command()
def show(
    item_id: str,
    as_json: bool = typer.Option(False, "--json", help="Print the stored record as JSON"),
) -> None:
    """Show one stored simulation."""
    try:
        settings = _bootstrap()
        with HistoryRepository(settings.database.sqlite_path) as repo:
            repo.initialize_schema()
            item = repo.get(item_id)

        if item is None:
            typer.echo(f"Simulation {item_id} not found", err=True)
            raise typer.Exit(code=1)

        if as_json:
            record = item.model_dump(by_alias=True, exclude={"sample_runs"})
            typer.echo(json.dumps(record, default=str, indent=2))
            return

        typer.echo(f"Simulation {item.id} ({item.created_at:%Y-%m-%d %H:%M:%S})")
        typer.echo(f"Filter: {item.config.filter_label}")
        if item.partial:
            typer.echo(f"Status: stopped at {item.progress:.0f}%")
        _print_summary(item.summary)

    except HistoryStorageError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)


@app.command()
def delete(item_id: str) -> None:
    """Delete a stored simulation."""
    try:
        settings = _bootstrap()
        with HistoryRepository(settings.database.sqlite_path) as repo:
            repo.initialize_schema()
            deleted = repo.delete(item_id)

        typer.echo(f"Deleted {item_id}" if deleted else f"Simulation {item_id} not found")

    except HistoryStorageError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)


@app.command()
def export(output: Path = typer.Argument(..., help="CSV file to write")) -> None:
    """Export all stored simulations to CSV."""
    try:
        settings = _bootstrap()
        with HistoryRepository(settings.database.sqlite_path) as repo:
            repo.initialize_schema()
            service = MonteCarloService(JournalStore(settings.journal.journal_path), repo)
            service.export_history_csv(path=output)
            service.shutdown()

        typer.echo(f"Exported history to {output}")

    except HistoryStorageError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
