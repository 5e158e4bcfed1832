"""
Run Executor - turns resampled trade sequences into equity trajectories.
"""
from dataclasses import dataclass
from typing import Optional

import numpy as np

from journal_sim.data.pool import TradePool
from journal_sim.engine.resampler import draw_indices
from journal_sim.models import SimulationRun


def max_drawdowns(equity: np.ndarray) -> np.ndarray:
    """
    Per-row maximum drawdown as a fraction of the running peak.

    Rows start at a positive initial capital, so the running peak is always
    positive. Drawdowns below zero equity are capped at a total loss (1.0).
    """
    peaks = np.maximum.accumulate(equity, axis=1)
    drawdowns = (peaks - equity) / peaks
    return np.minimum(drawdowns.max(axis=1), 1.0)


@dataclass
class RunBatch:
    """A contiguous block of completed runs kept as arrays."""

    start_index: int
    trade_idx: np.ndarray
    outcomes: np.ndarray
    equity: np.ndarray
    ruined: np.ndarray

    @property
    def size(self) -> int:
        return int(self.equity.shape[0])

    @property
    def final_equity(self) -> np.ndarray:
        return self.equity[:, -1]

    def to_runs(self, limit: Optional[int] = None) -> list[SimulationRun]:
        count = self.size if limit is None else max(0, min(limit, self.size))
        runs = []
        for row in range(count):
            series = self.equity[row].tolist()
            runs.append(SimulationRun(
                run_index=self.start_index + row,
                equity_series=series,
                final_equity=series[-1],
                trade_idx=self.trade_idx[row].tolist(),
                ruined=bool(self.ruined[row]),
            ))
        return runs


def execute_batch(
    pool: TradePool,
    rng: np.random.Generator,
    count: int,
    max_trades_per_run: int,
    initial_capital: float,
    start_index: int = 0,
    risk_per_trade_pct: Optional[float] = None,
) -> RunBatch:
    """
    Execute `count` independent runs with one random source.

    Every run has exactly `max_trades_per_run` trades; a run that reaches
    zero equity is flagged as ruined but keeps trading so that all runs stay
    comparable point by point.

    With `risk_per_trade_pct` the pool holds R multiples and each trade risks
    that fraction of the equity before it, so equity compounds. A trade that
    loses the whole account leaves equity at zero for the rest of the run.
    The returned `outcomes` are always the dollar changes between points.
    """
    trade_idx = draw_indices(pool, rng, (count, max_trades_per_run))
    drawn = pool.outcomes[trade_idx]

    equity = np.empty((count, max_trades_per_run + 1), dtype=np.float64)
    equity[:, 0] = initial_capital
    if risk_per_trade_pct is None:
        equity[:, 1:] = drawn
        np.cumsum(equity, axis=1, out=equity)
        outcomes = drawn
    else:
        growth = np.maximum(1.0 + risk_per_trade_pct * drawn, 0.0)
        equity[:, 1:] = growth
        np.cumprod(equity, axis=1, out=equity)
        outcomes = np.diff(equity, axis=1)

    ruined = (equity[:, 1:] <= 0).any(axis=1)

    return RunBatch(
        start_index=start_index,
        trade_idx=trade_idx,
        outcomes=outcomes,
        equity=equity,
        ruined=ruined,
    )


def execute(
    pool: TradePool,
    rng: np.random.Generator,
    max_trades_per_run: int,
    initial_capital: float,
    run_index: int = 0,
    risk_per_trade_pct: Optional[float] = None,
) -> SimulationRun:
    """Execute a single run."""
    batch = execute_batch(
        pool, rng, 1, max_trades_per_run, initial_capital, run_index, risk_per_trade_pct
    )
    return batch.to_runs()[0]
