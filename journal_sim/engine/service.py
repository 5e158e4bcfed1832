"""
Monte Carlo Service - entry point used by the journal application.

Wires the trade source, scheduler and history repository together and
exposes simulations as handles that can be polled, subscribed to and
cancelled.
"""
from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

from loguru import logger
from pydantic import ValidationError

from config.settings import SimulationSettings
from journal_sim.data.export import export_csv
from journal_sim.data.journal import TradeSource
from journal_sim.data.pool import TradePool
from journal_sim.data.storage.history import HistoryRepository
from journal_sim.engine.scheduler import ProgressCallback, SimulationScheduler, validate_inputs
from journal_sim.models import HistoryItem, SimulationConfig, SimulationProgress, SimulationResult
from journal_sim.utils.exceptions import SimulationConfigError, SimulationStateError


ConfigInput = Union[SimulationConfig, Mapping[str, Any]]


def parse_config(config: ConfigInput) -> SimulationConfig:
    """Coerce user input into a SimulationConfig, raising SimulationConfigError."""
    if isinstance(config, SimulationConfig):
        return config
    try:
        return SimulationConfig.model_validate(config)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
            for err in exc.errors()
        )
        raise SimulationConfigError(problems) from exc


class SimulationHandle:
    """Live view of one running simulation."""

    def __init__(self, config: SimulationConfig, scheduler: SimulationScheduler):
        self.config = config
        self._scheduler = scheduler
        self._future: Optional[Future] = None
        self._lock = threading.RLock()
        self._progress = SimulationProgress(total_runs=config.simulations)
        self._subscribers: list[ProgressCallback] = []
        self.history_id: Optional[str] = None

    def progress(self) -> SimulationProgress:
        with self._lock:
            return self._progress

    def subscribe(self, callback: ProgressCallback) -> None:
        with self._lock:
            self._subscribers.append(callback)
            callback(self._progress)

    def cancel(self) -> None:
        self._scheduler.cancel()

    @property
    def cancelled(self) -> bool:
        return self._scheduler.cancelled

    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def result(self, timeout: Optional[float] = None) -> SimulationResult:
        if self._future is None:
            raise SimulationStateError("simulation has not been started")
        return self._future.result(timeout=timeout)

    def _attach(self, future: Future) -> None:
        self._future = future

    def _update(self, progress: SimulationProgress) -> None:
        with self._lock:
            # Percentages never move backwards for observers.
            if progress.percentage < self._progress.percentage:
                progress = progress.model_copy(update={"percentage": self._progress.percentage})
            self._progress = progress
            for callback in self._subscribers:
                callback(progress)


class MonteCarloService:
    """
    Runs simulations against a trade source and keeps their history.

    Only one simulation runs at a time; starting a new one while another is
    active is an error.
    """

    def __init__(
        self,
        trade_source: TradeSource,
        history: Optional[HistoryRepository] = None,
        settings: Optional[SimulationSettings] = None,
    ):
        self.trade_source = trade_source
        self.history = history
        self.settings = settings or SimulationSettings()
        self._runner = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mc-runner")
        self._active: Optional[SimulationHandle] = None
        self._lock = threading.Lock()

    def build_pool(self, config: SimulationConfig) -> TradePool:
        return TradePool.from_trades(self.trade_source.load(), config)

    def start(
        self,
        config: ConfigInput,
        on_progress: Optional[ProgressCallback] = None,
        save: bool = True,
    ) -> SimulationHandle:
        """
        Validate the config, snapshot the trade pool and start running.

        Configuration problems, including an empty pool, raise
        SimulationConfigError here, before any worker is dispatched.
        """
        config = parse_config(config)
        pool = self.build_pool(config)
        validate_inputs(config, pool)

        trades_per_year = (
            config.trades_per_year
            or pool.trades_per_year()
            or self.settings.default_trades_per_year
        )

        scheduler = SimulationScheduler(
            workers=self.settings.workers,
            batch_size=self.settings.batch_size,
            sample_cap=self.settings.sample_cap,
        )
        handle = SimulationHandle(config, scheduler)
        if on_progress is not None:
            handle.subscribe(on_progress)

        with self._lock:
            if self._active is not None and not self._active.done():
                raise SimulationStateError("another simulation is still running")
            self._active = handle

        def job() -> SimulationResult:
            result = scheduler.run(config, pool, handle._update, trades_per_year)
            if save and self.history is not None:
                item = self.history.save_result(result, sample_cap=self.settings.sample_cap)
                handle.history_id = item.id
            return result

        handle._attach(self._runner.submit(job))
        return handle

    def run_simulation(
        self,
        config: ConfigInput,
        on_progress: Optional[ProgressCallback] = None,
        save: bool = True,
    ) -> SimulationResult:
        return self.start(config, on_progress=on_progress, save=save).result()

    def stop_simulation(self) -> bool:
        """Cancel the active simulation. Returns False when none is running."""
        with self._lock:
            handle = self._active
        if handle is None or handle.done():
            return False
        handle.cancel()
        return True

    def list_history(self) -> list[HistoryItem]:
        return self._require_history().list()

    def get_history_item(self, item_id: str) -> Optional[HistoryItem]:
        return self._require_history().get(item_id)

    def delete_history_item(self, item_id: str) -> bool:
        return self._require_history().delete(item_id)

    def export_history_csv(
        self,
        items: Optional[Iterable[HistoryItem]] = None,
        path: Optional[Path] = None,
    ) -> bytes:
        if items is None:
            items = self.list_history()
        data = export_csv(items)
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
            logger.info(f"Exported history to {path}")
        return data

    def shutdown(self) -> None:
        self.stop_simulation()
        self._runner.shutdown(wait=True)

    def __enter__(self) -> "MonteCarloService":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.shutdown()

    def _require_history(self) -> HistoryRepository:
        if self.history is None:
            raise SimulationStateError("no history repository configured")
        return self.history
