from journal_sim.models.trade import Trade
from journal_sim.models.simulation import (
    SimulationConfig,
    SimulationRun,
    SimulationSummary,
    SimulationProgress,
    SimulationResult,
    HistoryItem,
)

__all__ = [
    "Trade",
    "SimulationConfig",
    "SimulationRun",
    "SimulationSummary",
    "SimulationProgress",
    "SimulationResult",
    "HistoryItem",
]
