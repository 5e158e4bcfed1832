"""
Journal Store - reads trades from the journal's JSON export.
"""
import json
from datetime import datetime, time
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

from loguru import logger
from pydantic import ValidationError

from journal_sim.models import Trade
from journal_sim.utils.exceptions import TradeSourceError


class TradeSource(Protocol):
    def load(self) -> list[Trade]:
        ...


class InMemoryTradeSource:
    """Trade source over trades already held by the caller."""

    def __init__(self, trades: Sequence[Trade]):
        self._trades = list(trades)

    def load(self) -> list[Trade]:
        return list(self._trades)


class JournalStore:
    """
    Read-only access to a journal export file.

    The export holds a ``trades`` list and a ``strategies`` list. Trades
    reference strategies by ``strategyId``; the strategy name and category
    are resolved here so downstream filters work on names.
    """

    def __init__(self, journal_path: Path):
        self.journal_path = journal_path

    def load(self) -> list[Trade]:
        payload = self._read_payload()

        strategies = {
            str(s.get("id")): s
            for s in payload.get("strategies") or []
            if isinstance(s, dict) and s.get("id") is not None
        }

        trades: list[Trade] = []
        for raw in payload.get("trades") or []:
            if not isinstance(raw, dict):
                raise TradeSourceError("trade entries must be objects", str(self.journal_path))
            trades.append(self._to_trade(raw, strategies))

        logger.info(f"Loaded {len(trades)} trades from {self.journal_path}")
        return trades

    def strategy_names(self) -> list[str]:
        payload = self._read_payload()
        names = {
            s["name"] for s in payload.get("strategies") or []
            if isinstance(s, dict) and s.get("name")
        }
        return sorted(names)

    def categories(self) -> list[str]:
        return sorted({t.category for t in self.load() if t.category})

    def _read_payload(self) -> dict[str, Any]:
        if not self.journal_path.exists():
            raise TradeSourceError("journal file not found", str(self.journal_path))

        try:
            payload = json.loads(self.journal_path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise TradeSourceError(str(exc), str(self.journal_path)) from exc
        except json.JSONDecodeError as exc:
            raise TradeSourceError(
                f"invalid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})",
                str(self.journal_path),
            ) from exc

        if not isinstance(payload, dict):
            raise TradeSourceError("journal root must be a JSON object", str(self.journal_path))
        return payload

    def _to_trade(self, raw: dict[str, Any], strategies: dict[str, dict]) -> Trade:
        strategy_id = raw.get("strategyId")
        strategy = strategies.get(str(strategy_id)) if strategy_id is not None else None

        pnl = raw.get("result_net")
        if pnl is None:
            pnl = raw.get("result_gross", 0.0)

        try:
            return Trade(
                id=raw.get("id"),
                pnl=float(pnl or 0.0),
                r_multiple=_optional_float(raw.get("result_R")),
                timestamp=_parse_timestamp(raw.get("date"), raw.get("entry_time")),
                strategy=strategy.get("name") if strategy else _optional_str(strategy_id),
                category=(strategy or {}).get("category") or raw.get("marketCategory"),
            )
        except (TypeError, ValueError, ValidationError) as exc:
            raise TradeSourceError(
                f"trade {raw.get('id', '?')} is malformed: {exc}",
                str(self.journal_path),
            ) from exc


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _parse_timestamp(day: Any, entry_time: Any) -> datetime:
    if not day:
        raise ValueError("trade has no date")

    parsed = datetime.fromisoformat(str(day))
    if entry_time and len(str(day)) <= 10:
        hour_minute = time.fromisoformat(str(entry_time))
        parsed = datetime.combine(parsed.date(), hour_minute)
    return parsed


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)
