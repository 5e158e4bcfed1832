"""Shared test fixtures for the journal simulator."""

import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest

os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("SIM_WORKERS", "2")


@pytest.fixture
def sample_trades():
    """Two strategies over one year of daily trades."""
    from journal_sim.models import Trade

    start = datetime(2024, 1, 1, 9, 30)
    trades = []
    for i in range(40):
        strategy = "Breakout" if i % 2 == 0 else "Reversal"
        pnl = 100.0 if i % 4 in (0, 1) else -50.0
        trades.append(Trade(
            id=f"t{i}",
            pnl=pnl,
            r_multiple=pnl / 50.0,
            timestamp=start + timedelta(days=i),
            strategy=strategy,
            category="Futures" if i < 30 else "Forex",
        ))
    return trades


@pytest.fixture
def scenario_pool():
    from journal_sim.data import TradePool

    return TradePool([100.0, -50.0, 100.0, -50.0], label="scenario")


@pytest.fixture
def history_repo(tmp_path: Path):
    from journal_sim.data.storage import HistoryRepository

    repo = HistoryRepository(tmp_path / "history.db")
    repo.initialize_schema()
    yield repo
    repo.close()
