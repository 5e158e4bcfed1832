"""
Statistics Aggregator - reduces simulated runs to a SimulationSummary.

All per-run quantities are folded into a RunAccumulator made of plain sums,
so accumulators built from disjoint run batches can be merged in any order.
The only step that needs every final equity at once is the percentile sort.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Optional

import numpy as np

from journal_sim.engine.executor import RunBatch, max_drawdowns
from journal_sim.models import SimulationConfig, SimulationRun, SimulationSummary


DEFAULT_TRADES_PER_YEAR = 252.0
PERCENTILES = (5.0, 25.0, 50.0, 75.0, 95.0)

# Largest exponent math.exp accepts without overflowing.
_MAX_EXP = 709.0


@dataclass
class RunAccumulator:
    """
    Mergeable running sums over a set of runs.

    Final-equity moments are accumulated on the offset from the initial
    capital, which keeps the raw power sums small for typical equity levels.
    """

    initial_capital: float
    count: int = 0
    ruined: int = 0
    moment_sums: np.ndarray = field(default_factory=lambda: np.zeros(4))
    drawdown_sum: float = 0.0
    drawdown_max: float = 0.0
    trade_count: int = 0
    trade_sum: float = 0.0
    return_sum: float = 0.0
    return_sq_sum: float = 0.0
    downside_sq_sum: float = 0.0
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    finals: list[np.ndarray] = field(default_factory=list)

    def add_batch(self, batch: RunBatch) -> None:
        self._add(batch.equity, batch.outcomes, batch.ruined)

    def add_runs(self, runs: Iterable[SimulationRun]) -> None:
        runs = list(runs)
        if not runs:
            return
        equity = np.array([run.equity_series for run in runs], dtype=np.float64)
        outcomes = np.diff(equity, axis=1)
        ruined = np.array([run.ruined for run in runs], dtype=bool)
        self._add(equity, outcomes, ruined)

    def merge(self, other: RunAccumulator) -> RunAccumulator:
        if other.initial_capital != self.initial_capital:
            raise ValueError("cannot merge accumulators with different initial capital")

        return RunAccumulator(
            initial_capital=self.initial_capital,
            count=self.count + other.count,
            ruined=self.ruined + other.ruined,
            moment_sums=self.moment_sums + other.moment_sums,
            drawdown_sum=self.drawdown_sum + other.drawdown_sum,
            drawdown_max=max(self.drawdown_max, other.drawdown_max),
            trade_count=self.trade_count + other.trade_count,
            trade_sum=self.trade_sum + other.trade_sum,
            return_sum=self.return_sum + other.return_sum,
            return_sq_sum=self.return_sq_sum + other.return_sq_sum,
            downside_sq_sum=self.downside_sq_sum + other.downside_sq_sum,
            gross_profit=self.gross_profit + other.gross_profit,
            gross_loss=self.gross_loss + other.gross_loss,
            finals=self.finals + other.finals,
        )

    def final_values(self) -> np.ndarray:
        if not self.finals:
            return np.empty(0, dtype=np.float64)
        return np.concatenate(self.finals)

    def _add(self, equity: np.ndarray, outcomes: np.ndarray, ruined: np.ndarray) -> None:
        finals = equity[:, -1].copy()
        offsets = finals - self.initial_capital
        drawdowns = max_drawdowns(equity)
        returns = outcomes / self.initial_capital

        self.count += int(finals.size)
        self.ruined += int(np.count_nonzero(ruined))
        self.moment_sums = self.moment_sums + np.array([
            offsets.sum(),
            (offsets ** 2).sum(),
            (offsets ** 3).sum(),
            (offsets ** 4).sum(),
        ])
        self.drawdown_sum += float(drawdowns.sum())
        self.drawdown_max = max(self.drawdown_max, float(drawdowns.max()))

        self.trade_count += int(outcomes.size)
        self.trade_sum += float(outcomes.sum())
        self.return_sum += float(returns.sum())
        self.return_sq_sum += float((returns ** 2).sum())
        self.downside_sq_sum += float((np.minimum(returns, 0.0) ** 2).sum())
        self.gross_profit += float(outcomes[outcomes > 0].sum())
        self.gross_loss += float(-outcomes[outcomes < 0].sum())

        self.finals.append(finals)


def percentiles(values: np.ndarray, fractiles: Iterable[float] = PERCENTILES) -> list[float]:
    """
    Linear-interpolation percentiles at rank p*(n-1) of the sorted values.

    Returned values are forced non-decreasing so rounding can never invert
    neighbouring percentiles.
    """
    fractiles = list(fractiles)
    if values.size == 0:
        return [0.0] * len(fractiles)

    points = np.percentile(np.sort(values), fractiles, method="linear")
    return [float(v) for v in np.maximum.accumulate(points)]


def compute_cagr(final_equity: float, initial_capital: float, years: float) -> float:
    if years <= 0:
        return 0.0
    if final_equity <= 0:
        return -1.0

    exponent = math.log(final_equity / initial_capital) / years
    if exponent > _MAX_EXP:
        return float("inf")
    return math.exp(exponent) - 1.0


def _safe_ratio(numerator: float, denominator: float) -> float:
    if denominator == 0 or not math.isfinite(denominator):
        return 0.0
    return numerator / denominator


def _standardized_moments(sums: np.ndarray, count: int) -> tuple[float, float, float]:
    """Mean offset, skewness and (non-excess) kurtosis from raw power sums."""
    s1, s2, s3, s4 = (float(s) / count for s in sums)
    mean = s1
    variance = s2 - mean ** 2
    if variance <= 1e-12 * max(1.0, s2):
        return mean, 0.0, 0.0

    m3 = s3 - 3 * mean * s2 + 2 * mean ** 3
    m4 = s4 - 4 * mean * s3 + 6 * mean ** 2 * s2 - 3 * mean ** 4
    skewness = m3 / variance ** 1.5
    kurtosis = max(m4, 0.0) / variance ** 2
    return mean, skewness, kurtosis


def summarize(
    acc: RunAccumulator,
    config: SimulationConfig,
    trades_per_year: Optional[float] = None,
) -> SimulationSummary:
    """
    Build the summary for everything folded into an accumulator.

    Args:
        acc: Accumulated runs (possibly only the completed part of a
            cancelled simulation)
        config: Configuration the runs were produced with
        trades_per_year: Trade cadence used for annualization; falls back to
            the config value, then to DEFAULT_TRADES_PER_YEAR

    Returns:
        SimulationSummary with no NaN values
    """
    tpy = trades_per_year or config.trades_per_year or DEFAULT_TRADES_PER_YEAR

    if acc.count == 0:
        return SimulationSummary(trades_per_year=tpy)

    p05, p25, median, p75, p95 = percentiles(acc.final_values())
    mean_offset, skewness, kurtosis = _standardized_moments(acc.moment_sums, acc.count)

    mean_drawdown = acc.drawdown_sum / acc.count
    max_drawdown = acc.drawdown_max if config.drawdown_policy == "worst" else mean_drawdown

    avg_final = config.initial_capital + mean_offset
    years = config.max_trades_per_run / tpy
    cagr = compute_cagr(avg_final, config.initial_capital, years)
    calmar = _safe_ratio(cagr, max_drawdown) if math.isfinite(cagr) else 0.0

    mean_return = acc.return_sum / acc.trade_count
    second_moment = acc.return_sq_sum / acc.trade_count
    return_variance = second_moment - mean_return ** 2
    if return_variance <= 1e-12 * second_moment:
        return_variance = 0.0
    downside_dev = math.sqrt(acc.downside_sq_sum / acc.trade_count)
    annualizer = math.sqrt(tpy)
    sharpe = _safe_ratio(mean_return, math.sqrt(return_variance)) * annualizer
    sortino = _safe_ratio(mean_return, downside_dev) * annualizer

    if acc.gross_loss == 0:
        profit_factor = float("inf") if acc.gross_profit > 0 else 0.0
    else:
        profit_factor = acc.gross_profit / acc.gross_loss

    return SimulationSummary(
        total_runs=acc.count,
        median_final=median,
        avg_final=avg_final,
        p05=p05,
        p25=p25,
        p75=p75,
        p95=p95,
        max_drawdown=max_drawdown,
        worst_drawdown=acc.drawdown_max,
        cagr=cagr,
        calmar=calmar,
        sharpe=sharpe,
        sortino=sortino,
        profit_factor=profit_factor,
        expected_value=acc.trade_sum / acc.trade_count,
        skewness=skewness,
        kurtosis=kurtosis,
        excess_kurtosis=kurtosis - 3.0 if kurtosis else 0.0,
        prob_ruin=acc.ruined / acc.count,
        trades_per_year=tpy,
    )


def aggregate(
    runs: Iterable[SimulationRun],
    config: SimulationConfig,
    trades_per_year: Optional[float] = None,
) -> SimulationSummary:
    acc = RunAccumulator(initial_capital=config.initial_capital)
    acc.add_runs(runs)
    return summarize(acc, config, trades_per_year)
