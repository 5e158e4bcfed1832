import csv
import io
import math
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

from journal_sim.data import CSV_COLUMNS, export_csv
from journal_sim.data.storage import HistoryRepository
from journal_sim.engine import SimulationScheduler
from journal_sim.models import HistoryItem, SimulationConfig, SimulationSummary
from journal_sim.utils.exceptions import HistoryStorageError


def _item(item_id: str, created_at: datetime, **summary) -> HistoryItem:
    return HistoryItem(
        id=item_id,
        created_at=created_at,
        config=SimulationConfig(
            strategy="Breakout",
            category="Futures",
            date_from=date(2024, 1, 1),
            simulations=100,
            max_trades_per_run=50,
            initial_capital=5000.0,
            seed=7,
        ),
        summary=SimulationSummary(total_runs=100, **summary),
    )


def test_initialize_schema(tmp_path: Path) -> None:
    with HistoryRepository(tmp_path / "history.db") as repo:
        repo.initialize_schema()
        cursor = repo.conn.cursor()
        cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
        table_names = [row[0] for row in cursor.fetchall()]
        assert "simulation_history" in table_names


def test_round_trip_simulation_result(history_repo: HistoryRepository, scenario_pool) -> None:
    config = SimulationConfig(simulations=200, max_trades_per_run=10, initial_capital=1000.0, seed=5)
    result = SimulationScheduler(workers=2, batch_size=50).run(config, scenario_pool)

    item = history_repo.save_result(result, sample_cap=25)
    stored = history_repo.get(item.id)

    assert stored == item
    assert len(stored.sample_runs) == 25
    assert stored.summary == result.summary


def test_round_trip_keeps_infinite_profit_factor(history_repo: HistoryRepository) -> None:
    item = _item("inf", datetime(2024, 5, 1, tzinfo=timezone.utc), profit_factor=math.inf)
    history_repo.save(item)

    stored = history_repo.get("inf")
    assert stored is not None
    assert stored.summary.profit_factor == math.inf
    assert stored == item


def test_list_newest_first(history_repo: HistoryRepository) -> None:
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)
    history_repo.save(_item("old", base))
    history_repo.save(_item("new", base + timedelta(hours=2)))
    history_repo.save(_item("mid", base + timedelta(hours=1)))

    assert [item.id for item in history_repo.list()] == ["new", "mid", "old"]
    assert history_repo.count() == 3


def test_get_unknown_returns_none(history_repo: HistoryRepository) -> None:
    assert history_repo.get("missing") is None


def test_delete(history_repo: HistoryRepository) -> None:
    history_repo.save(_item("a", datetime(2024, 5, 1, tzinfo=timezone.utc)))

    assert history_repo.delete("a") is True
    assert history_repo.get("a") is None
    assert history_repo.delete("a") is False


def test_failed_save_leaves_existing_items(history_repo: HistoryRepository) -> None:
    original = _item("dup", datetime(2024, 5, 1, tzinfo=timezone.utc), cagr=0.1)
    history_repo.save(original)

    with pytest.raises(HistoryStorageError):
        history_repo.save(_item("dup", datetime(2024, 6, 1, tzinfo=timezone.utc), cagr=0.5))

    assert history_repo.get("dup") == original
    assert history_repo.count() == 1


def test_closed_store_raises_storage_error(tmp_path: Path) -> None:
    repo = HistoryRepository(tmp_path / "history.db")
    repo.initialize_schema()
    repo.close()

    with pytest.raises(HistoryStorageError):
        repo.list()


def test_partial_flag_persisted(history_repo: HistoryRepository, scenario_pool) -> None:
    config = SimulationConfig(simulations=400, max_trades_per_run=5, initial_capital=1000.0, seed=1)
    scheduler = SimulationScheduler(workers=1, batch_size=100)
    scheduler.cancel()
    result = scheduler.run(config, scenario_pool)

    item = history_repo.save_result(result)
    stored = history_repo.get(item.id)
    assert stored.partial is True
    assert stored.progress == 0.0


def test_export_csv_columns_and_rows() -> None:
    items = [
        _item("a", datetime(2024, 5, 1, tzinfo=timezone.utc), cagr=0.25, max_drawdown=0.1,
              profit_factor=2.0, sharpe=1.5),
        _item("b", datetime(2024, 5, 2, tzinfo=timezone.utc), profit_factor=math.inf),
    ]

    rows = list(csv.reader(io.StringIO(export_csv(items).decode("utf-8"))))

    assert rows[0] == CSV_COLUMNS
    assert rows[0] == [
        "createdAt", "strategy/category", "simulations", "maxTradesPerRun",
        "initialCapital", "cagr", "maxDrawdown", "profitFactor", "sharpe",
    ]
    assert rows[1] == [
        "2024-05-01T00:00:00+00:00", "Breakout/Futures", "100", "50",
        "5000.0", "0.25", "0.1", "2.0", "1.5",
    ]
    assert rows[2][7] == "inf"
    assert len(rows) == 3


def test_export_csv_empty() -> None:
    assert export_csv([]).decode("utf-8").strip() == ",".join(CSV_COLUMNS)
