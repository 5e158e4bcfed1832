"""Simulation configuration, per-run output and aggregate summary models."""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)
_CAMEL_FROZEN = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class SimulationConfig(BaseModel):
    model_config = _CAMEL_FROZEN

    strategy: Optional[str] = None
    category: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    simulations: int = Field(default=10000, gt=0)
    max_trades_per_run: int = Field(default=500, gt=0)
    initial_capital: float = Field(default=10000.0, gt=0)
    seed: Optional[int] = Field(default=None, ge=0, lt=2**64)
    unit: Literal["pnl", "r"] = "pnl"
    risk_per_r: float = Field(default=1.0, gt=0)
    risk_per_trade_pct: Optional[float] = Field(default=None, gt=0, lt=1)
    trades_per_year: Optional[float] = Field(default=None, gt=0)
    drawdown_policy: Literal["mean", "worst"] = "mean"

    @model_validator(mode="after")
    def validate_combinations(self) -> "SimulationConfig":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        if self.risk_per_trade_pct is not None and self.unit != "r":
            raise ValueError("risk_per_trade_pct requires unit 'r'")
        return self

    @property
    def filter_label(self) -> str:
        """Human readable strategy/category selection, used in exports."""
        parts = [self.strategy or "any", self.category or "any"]
        return "/".join(parts)

    @property
    def outcome_scale(self) -> float:
        """Dollar value applied to each pooled R outcome; 1.0 when risk compounds."""
        if self.unit == "r" and self.risk_per_trade_pct is None:
            return self.risk_per_r
        return 1.0


class SimulationRun(BaseModel):
    model_config = _CAMEL

    run_index: int = 0
    equity_series: list[float]
    final_equity: float
    trade_idx: list[int]
    ruined: bool

    @model_validator(mode="after")
    def validate_series(self) -> "SimulationRun":
        if len(self.equity_series) != len(self.trade_idx) + 1:
            raise ValueError("equity_series must hold one point per trade plus the start")
        if self.final_equity != self.equity_series[-1]:
            raise ValueError("final_equity must equal the last equity point")
        return self


class SimulationSummary(BaseModel):
    model_config = _CAMEL_FROZEN

    total_runs: int = 0
    median_final: float = 0.0
    avg_final: float = 0.0
    p05: float = 0.0
    p25: float = 0.0
    p75: float = 0.0
    p95: float = 0.0
    max_drawdown: float = 0.0
    worst_drawdown: float = 0.0
    cagr: float = 0.0
    calmar: float = 0.0
    sharpe: float = 0.0
    sortino: float = 0.0
    profit_factor: float = 0.0
    expected_value: float = 0.0
    skewness: float = 0.0
    kurtosis: float = 0.0
    excess_kurtosis: float = 0.0
    prob_ruin: float = Field(default=0.0, ge=0.0, le=1.0)
    trades_per_year: float = 0.0


class SimulationProgress(BaseModel):
    model_config = _CAMEL_FROZEN

    completed_runs: int = 0
    total_runs: int
    percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    state: Literal["pending", "running", "completed", "cancelled", "failed"] = "pending"


class SimulationResult(BaseModel):
    model_config = _CAMEL

    config: SimulationConfig
    summary: SimulationSummary
    sample_runs: list[SimulationRun] = []
    partial: bool = False
    progress: float = 100.0
    requested_runs: int

    @property
    def status_label(self) -> str:
        if self.partial:
            return f"stopped at {self.progress:.0f}%"
        return "completed"


class HistoryItem(BaseModel):
    model_config = _CAMEL_FROZEN

    id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    config: SimulationConfig
    summary: SimulationSummary
    sample_runs: list[SimulationRun] = []
    partial: bool = False
    progress: float = 100.0

    @classmethod
    def from_result(cls, item_id: str, result: SimulationResult, sample_cap: int = 25) -> "HistoryItem":
        return cls(
            id=item_id,
            config=result.config,
            summary=result.summary,
            sample_runs=result.sample_runs[:sample_cap],
            partial=result.partial,
            progress=result.progress,
        )
