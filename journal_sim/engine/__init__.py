from journal_sim.engine.resampler import draw, draw_indices, make_rng
from journal_sim.engine.executor import RunBatch, execute, execute_batch, max_drawdowns
from journal_sim.engine.statistics import (
    DEFAULT_TRADES_PER_YEAR,
    RunAccumulator,
    aggregate,
    percentiles,
    summarize,
)
from journal_sim.engine.scheduler import SimulationScheduler, collect_samples, plan_batches
from journal_sim.engine.service import MonteCarloService, SimulationHandle, parse_config

__all__ = [
    "draw",
    "draw_indices",
    "make_rng",
    "RunBatch",
    "execute",
    "execute_batch",
    "max_drawdowns",
    "DEFAULT_TRADES_PER_YEAR",
    "RunAccumulator",
    "aggregate",
    "percentiles",
    "summarize",
    "SimulationScheduler",
    "collect_samples",
    "plan_batches",
    "MonteCarloService",
    "SimulationHandle",
    "parse_config",
]
