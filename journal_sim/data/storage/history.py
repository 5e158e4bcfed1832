from __future__ import annotations

import json
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Optional
from uuid import uuid4

from loguru import logger
from pydantic import ValidationError

from journal_sim.models import (
    HistoryItem,
    SimulationConfig,
    SimulationResult,
    SimulationRun,
    SimulationSummary,
)
from journal_sim.utils.exceptions import HistoryStorageError


class HistoryRepository:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        except (OSError, sqlite3.Error) as exc:
            raise HistoryStorageError(str(exc), "connect") from exc
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        logger.info(f"Connected to history store at {db_path}")

    def initialize_schema(self) -> None:
        try:
            with self.conn:
                self.conn.execute("""
                    CREATE TABLE IF NOT EXISTS simulation_history (
                        seq INTEGER PRIMARY KEY AUTOINCREMENT,
                        id TEXT NOT NULL UNIQUE,
                        created_at TEXT NOT NULL,
                        strategy TEXT,
                        category TEXT,
                        partial INTEGER NOT NULL DEFAULT 0,
                        progress REAL NOT NULL,
                        config TEXT NOT NULL,
                        summary TEXT NOT NULL,
                        sample_runs TEXT NOT NULL
                    )
                """)
                self.conn.execute("""
                    CREATE INDEX IF NOT EXISTS idx_history_created_at
                    ON simulation_history (created_at)
                """)
        except sqlite3.Error as exc:
            raise HistoryStorageError(str(exc), "initialize") from exc

        logger.info("History schema initialized")

    def save(self, item: HistoryItem) -> str:
        try:
            row = [
                item.id,
                item.created_at.isoformat(),
                item.config.strategy,
                item.config.category,
                int(item.partial),
                item.progress,
                json.dumps(item.config.model_dump(mode="json", by_alias=True)),
                json.dumps(item.summary.model_dump(by_alias=True)),
                json.dumps([run.model_dump(by_alias=True) for run in item.sample_runs]),
            ]
        except (TypeError, ValueError) as exc:
            raise HistoryStorageError(f"cannot serialize item: {exc}", "save", item.id) from exc

        try:
            with self._lock, self.conn:
                self.conn.execute("""
                    INSERT INTO simulation_history (
                        id, created_at, strategy, category, partial, progress,
                        config, summary, sample_runs
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, row)
        except sqlite3.Error as exc:
            raise HistoryStorageError(str(exc), "save", item.id) from exc

        logger.info(f"Saved simulation {item.id} ({len(item.sample_runs)} sample runs)")
        return item.id

    def save_result(self, result: SimulationResult, sample_cap: int = 25) -> HistoryItem:
        item = HistoryItem.from_result(str(uuid4()), result, sample_cap=sample_cap)
        self.save(item)
        return item

    def list(self) -> list[HistoryItem]:
        """All stored items, newest first."""
        rows = self._fetch(
            "SELECT * FROM simulation_history ORDER BY created_at DESC, seq DESC",
            [],
            "list",
        )
        return [self._to_item(row) for row in rows]

    def get(self, item_id: str) -> Optional[HistoryItem]:
        rows = self._fetch(
            "SELECT * FROM simulation_history WHERE id = ?",
            [item_id],
            "get",
        )
        return self._to_item(rows[0]) if rows else None

    def delete(self, item_id: str) -> bool:
        try:
            with self._lock, self.conn:
                cursor = self.conn.execute(
                    "DELETE FROM simulation_history WHERE id = ?", [item_id]
                )
        except sqlite3.Error as exc:
            raise HistoryStorageError(str(exc), "delete", item_id) from exc

        deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted simulation {item_id}")
        else:
            logger.debug(f"No simulation {item_id} to delete")
        return deleted

    def count(self) -> int:
        rows = self._fetch("SELECT COUNT(*) FROM simulation_history", [], "count")
        return int(rows[0][0])

    def close(self) -> None:
        self.conn.close()
        logger.info("Closed history store")

    def __enter__(self) -> "HistoryRepository":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def _fetch(self, query: str, params: list[Any], operation: str) -> list[sqlite3.Row]:
        try:
            with self._lock:
                cursor = self.conn.cursor()
                cursor.execute(query, params)
                return cursor.fetchall()
        except sqlite3.Error as exc:
            raise HistoryStorageError(str(exc), operation) from exc

    def _to_item(self, row: sqlite3.Row) -> HistoryItem:
        try:
            return HistoryItem(
                id=row["id"],
                created_at=datetime.fromisoformat(row["created_at"]),
                config=SimulationConfig.model_validate(json.loads(row["config"])),
                summary=SimulationSummary.model_validate(json.loads(row["summary"])),
                sample_runs=[
                    SimulationRun.model_validate(run)
                    for run in json.loads(row["sample_runs"])
                ],
                partial=bool(row["partial"]),
                progress=row["progress"],
            )
        except (ValueError, ValidationError) as exc:
            raise HistoryStorageError(f"corrupt record: {exc}", "read", row["id"]) from exc
