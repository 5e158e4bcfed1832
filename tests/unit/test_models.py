from datetime import date, datetime

import pytest
from pydantic import ValidationError

from journal_sim.models import (
    HistoryItem,
    SimulationConfig,
    SimulationResult,
    SimulationRun,
    SimulationSummary,
    Trade,
)


def test_config_defaults() -> None:
    config = SimulationConfig()
    assert config.simulations == 10000
    assert config.max_trades_per_run == 500
    assert config.initial_capital == 10000.0
    assert config.seed is None
    assert config.unit == "pnl"
    assert config.drawdown_policy == "mean"


def test_config_accepts_camel_case_keys() -> None:
    config = SimulationConfig.model_validate({
        "simulations": 10,
        "maxTradesPerRun": 20,
        "initialCapital": 500,
        "dateFrom": "2024-01-01",
    })
    assert config.max_trades_per_run == 20
    assert config.initial_capital == 500.0
    assert config.date_from == date(2024, 1, 1)


@pytest.mark.parametrize("field,value", [
    ("simulations", 0),
    ("simulations", -5),
    ("max_trades_per_run", 0),
    ("initial_capital", 0.0),
    ("initial_capital", -100.0),
    ("seed", -1),
    ("seed", 2**64),
])
def test_config_rejects_invalid_values(field: str, value) -> None:
    with pytest.raises(ValidationError):
        SimulationConfig(**{field: value})


def test_config_rejects_inverted_date_range() -> None:
    with pytest.raises(ValidationError):
        SimulationConfig(date_from=date(2024, 6, 1), date_to=date(2024, 1, 1))


def test_config_is_immutable() -> None:
    config = SimulationConfig()
    with pytest.raises(ValidationError):
        config.simulations = 5


def test_filter_label() -> None:
    assert SimulationConfig().filter_label == "any/any"
    assert SimulationConfig(strategy="Breakout", category="Futures").filter_label == "Breakout/Futures"


def test_simulation_run_requires_consistent_series() -> None:
    with pytest.raises(ValidationError):
        SimulationRun(equity_series=[100.0, 110.0], final_equity=105.0, trade_idx=[0], ruined=False)

    with pytest.raises(ValidationError):
        SimulationRun(equity_series=[100.0, 110.0], final_equity=110.0, trade_idx=[0, 1], ruined=False)


def test_summary_rejects_out_of_range_ruin_probability() -> None:
    with pytest.raises(ValidationError):
        SimulationSummary(prob_ruin=1.5)


def test_summary_dumps_camel_case() -> None:
    dumped = SimulationSummary(total_runs=3, median_final=1.0).model_dump(by_alias=True)
    assert dumped["totalRuns"] == 3
    assert dumped["medianFinal"] == 1.0
    assert "probRuin" in dumped
    assert "p05" in dumped


def test_trade_outcome_units() -> None:
    trade = Trade(pnl=250.0, r_multiple=2.5, timestamp=datetime(2024, 1, 2))
    assert trade.outcome("pnl") == 250.0
    assert trade.outcome("r") == 2.5
    assert trade.outcome("r", risk_per_r=100.0) == 250.0

    no_r = Trade(pnl=-80.0, timestamp=datetime(2024, 1, 2))
    assert no_r.outcome("r") is None


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_trade_rejects_non_finite_outcomes(value: float) -> None:
    with pytest.raises(ValidationError):
        Trade(pnl=value, timestamp=datetime(2024, 1, 2))
    with pytest.raises(ValidationError):
        Trade(pnl=1.0, r_multiple=value, timestamp=datetime(2024, 1, 2))


def test_risk_pct_requires_r_unit() -> None:
    with pytest.raises(ValidationError):
        SimulationConfig(risk_per_trade_pct=0.01)
    for bad in (0.0, 1.0, -0.2):
        with pytest.raises(ValidationError):
            SimulationConfig(unit="r", risk_per_trade_pct=bad)


def test_outcome_scale() -> None:
    assert SimulationConfig().outcome_scale == 1.0
    assert SimulationConfig(unit="r", risk_per_r=50.0).outcome_scale == 50.0
    compounding = SimulationConfig.model_validate({"unit": "r", "riskPerR": 50.0, "riskPerTradePct": 0.02})
    assert compounding.risk_per_trade_pct == 0.02
    assert compounding.outcome_scale == 1.0


def test_result_status_label() -> None:
    config = SimulationConfig(simulations=100)
    partial = SimulationResult(
        config=config,
        summary=SimulationSummary(total_runs=50),
        partial=True,
        progress=50.0,
        requested_runs=100,
    )
    assert partial.status_label == "stopped at 50%"

    done = SimulationResult(config=config, summary=SimulationSummary(), requested_runs=100)
    assert done.status_label == "completed"


def test_history_item_from_result_caps_samples() -> None:
    runs = [
        SimulationRun(run_index=i, equity_series=[100.0, 101.0], final_equity=101.0, trade_idx=[0], ruined=False)
        for i in range(10)
    ]
    result = SimulationResult(
        config=SimulationConfig(simulations=10),
        summary=SimulationSummary(total_runs=10),
        sample_runs=runs,
        requested_runs=10,
    )

    item = HistoryItem.from_result("abc", result, sample_cap=3)
    assert item.id == "abc"
    assert [run.run_index for run in item.sample_runs] == [0, 1, 2]
    assert item.created_at.tzinfo is not None
    assert item.partial is False
