"""
Trade Pool - immutable snapshot of historical trade outcomes.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

import numpy as np
from loguru import logger

from journal_sim.models import SimulationConfig, Trade


SECONDS_PER_YEAR = 365.25 * 24 * 3600


def estimate_trades_per_year(timestamps: Sequence[datetime]) -> Optional[float]:
    """
    Estimate trade cadence from the spacing of trade timestamps.

    Returns None when fewer than two trades exist or all trades share
    the same timestamp.
    """
    if len(timestamps) < 2:
        return None

    ordered = sorted(timestamps)
    span_years = (ordered[-1] - ordered[0]).total_seconds() / SECONDS_PER_YEAR
    if span_years <= 0:
        return None

    return (len(ordered) - 1) / span_years


def profit_factor(outcomes: Iterable[float]) -> float:
    """
    Gross profit over gross loss.

    Infinity when there are profits but no losses, 0 when both are zero.
    """
    gains = 0.0
    losses = 0.0
    for value in outcomes:
        if value > 0:
            gains += value
        elif value < 0:
            losses += value

    if losses == 0:
        return float("inf") if gains > 0 else 0.0
    return gains / abs(losses)


class TradePool:
    """
    Read-only view of trade outcomes used as the resampling population.

    The outcome array is copied on construction and flagged read-only so
    the surrounding application can keep mutating its own trade list
    while a simulation is in flight.
    """

    def __init__(
        self,
        outcomes: Sequence[float],
        timestamps: Sequence[datetime] = (),
        label: str = "",
    ):
        values = np.array(outcomes, dtype=np.float64)
        values.setflags(write=False)
        self._outcomes = values
        self._timestamps: tuple[datetime, ...] = tuple(timestamps)
        self.label = label

    @classmethod
    def from_trades(cls, trades: Iterable[Trade], config: SimulationConfig) -> "TradePool":
        """
        Apply the config's strategy, category and date filters and convert
        each trade to the config's outcome unit.
        """
        outcomes: list[float] = []
        timestamps: list[datetime] = []
        skipped = 0

        for trade in trades:
            if config.strategy and trade.strategy != config.strategy:
                continue
            if config.category and trade.category != config.category:
                continue
            trade_day = trade.timestamp.date()
            if config.date_from and trade_day < config.date_from:
                continue
            if config.date_to and trade_day > config.date_to:
                continue

            value = trade.outcome(config.unit, config.outcome_scale)
            if value is None:
                skipped += 1
                continue

            outcomes.append(value)
            timestamps.append(trade.timestamp)

        if skipped:
            logger.warning(f"Skipped {skipped} trades without an R multiple")

        logger.debug(
            f"Trade pool for {config.filter_label}: {len(outcomes)} trades "
            f"in unit '{config.unit}'"
        )
        return cls(outcomes, timestamps, label=config.filter_label)

    @property
    def outcomes(self) -> np.ndarray:
        return self._outcomes

    @property
    def timestamps(self) -> tuple[datetime, ...]:
        return self._timestamps

    @property
    def is_empty(self) -> bool:
        return self._outcomes.size == 0

    @property
    def mean(self) -> float:
        if self.is_empty:
            return 0.0
        return float(self._outcomes.mean())

    @property
    def worst_loss(self) -> float:
        if self.is_empty:
            return 0.0
        return float(min(self._outcomes.min(), 0.0))

    def profit_factor(self) -> float:
        return profit_factor(self._outcomes.tolist())

    def trades_per_year(self) -> Optional[float]:
        return estimate_trades_per_year(self._timestamps)

    def __len__(self) -> int:
        return int(self._outcomes.size)

    def __repr__(self) -> str:
        return f"TradePool(label={self.label!r}, size={len(self)})"
