from journal_sim.utils.exceptions import (
    JournalSimError,
    SimulationConfigError,
    TradeSourceError,
    HistoryStorageError,
    SimulationStateError,
)
from journal_sim.utils.logging import setup_logging

__all__ = [
    "JournalSimError",
    "SimulationConfigError",
    "TradeSourceError",
    "HistoryStorageError",
    "SimulationStateError",
    "setup_logging",
]
