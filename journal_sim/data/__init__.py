from journal_sim.data.pool import TradePool, estimate_trades_per_year, profit_factor
from journal_sim.data.journal import InMemoryTradeSource, JournalStore, TradeSource
from journal_sim.data.export import CSV_COLUMNS, export_csv

__all__ = [
    "TradePool",
    "estimate_trades_per_year",
    "profit_factor",
    "JournalStore",
    "InMemoryTradeSource",
    "TradeSource",
    "CSV_COLUMNS",
    "export_csv",
]
