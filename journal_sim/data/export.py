"""CSV export of simulation history."""
import csv
import io
from typing import Iterable

from journal_sim.models import HistoryItem


CSV_COLUMNS = [
    "createdAt",
    "strategy/category",
    "simulations",
    "maxTradesPerRun",
    "initialCapital",
    "cagr",
    "maxDrawdown",
    "profitFactor",
    "sharpe",
]


def history_row(item: HistoryItem) -> list:
    return [
        item.created_at.isoformat(),
        item.config.filter_label,
        item.config.simulations,
        item.config.max_trades_per_run,
        item.config.initial_capital,
        item.summary.cagr,
        item.summary.max_drawdown,
        item.summary.profit_factor,
        item.summary.sharpe,
    ]


def export_csv(items: Iterable[HistoryItem]) -> bytes:
    """One row per history item, columns in the fixed CSV_COLUMNS order."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for item in items:
        writer.writerow(history_row(item))
    return buffer.getvalue().encode("utf-8")
