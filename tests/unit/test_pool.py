from datetime import date, datetime, timedelta

import numpy as np
import pytest

from journal_sim.data import TradePool, estimate_trades_per_year, profit_factor
from journal_sim.models import SimulationConfig


def test_profit_factor_of_scenario_pool(scenario_pool) -> None:
    assert scenario_pool.profit_factor() == pytest.approx(2.0)


def test_profit_factor_sentinels() -> None:
    assert profit_factor([10.0, 5.0]) == float("inf")
    assert profit_factor([0.0, 0.0]) == 0.0
    assert profit_factor([]) == 0.0
    assert profit_factor([-10.0]) == 0.0


def test_pool_is_read_only_copy() -> None:
    source = [1.0, 2.0, 3.0]
    pool = TradePool(source)
    source.append(4.0)

    assert len(pool) == 3
    with pytest.raises(ValueError):
        pool.outcomes[0] = 99.0


def test_pool_stats(scenario_pool) -> None:
    assert scenario_pool.mean == pytest.approx(25.0)
    assert scenario_pool.worst_loss == -50.0
    assert not scenario_pool.is_empty
    assert TradePool([]).is_empty


def test_from_trades_filters_by_strategy(sample_trades) -> None:
    pool = TradePool.from_trades(sample_trades, SimulationConfig(strategy="Breakout"))
    assert len(pool) == 20
    assert pool.label == "Breakout/any"


def test_from_trades_filters_by_category_and_dates(sample_trades) -> None:
    config = SimulationConfig(
        category="Futures",
        date_from=date(2024, 1, 11),
        date_to=date(2024, 1, 20),
    )
    pool = TradePool.from_trades(sample_trades, config)
    assert len(pool) == 10


def test_from_trades_unknown_strategy_is_empty(sample_trades) -> None:
    pool = TradePool.from_trades(sample_trades, SimulationConfig(strategy="Nope"))
    assert pool.is_empty


def test_from_trades_in_r_units(sample_trades) -> None:
    config = SimulationConfig(unit="r", risk_per_r=10.0)
    pool = TradePool.from_trades(sample_trades, config)

    expected = np.array([t.r_multiple * 10.0 for t in sample_trades])
    np.testing.assert_allclose(pool.outcomes, expected)


def test_estimate_trades_per_year_daily() -> None:
    start = datetime(2023, 1, 1)
    stamps = [start + timedelta(days=i) for i in range(366)]
    assert estimate_trades_per_year(stamps) == pytest.approx(365.25, rel=1e-3)


def test_estimate_trades_per_year_needs_spread() -> None:
    now = datetime(2024, 1, 1)
    assert estimate_trades_per_year([]) is None
    assert estimate_trades_per_year([now]) is None
    assert estimate_trades_per_year([now, now]) is None


def test_from_trades_keeps_raw_r_when_risk_compounds(sample_trades) -> None:
    config = SimulationConfig(unit="r", risk_per_r=10.0, risk_per_trade_pct=0.01)
    pool = TradePool.from_trades(sample_trades, config)

    expected = np.array([t.r_multiple for t in sample_trades])
    np.testing.assert_allclose(pool.outcomes, expected)
