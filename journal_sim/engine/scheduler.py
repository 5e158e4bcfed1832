"""
Simulation Scheduler - fans simulation runs out over a worker pool.
"""
from __future__ import annotations

import os
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from loguru import logger

from journal_sim.data.pool import TradePool
from journal_sim.engine.executor import execute_batch
from journal_sim.engine.resampler import make_rng
from journal_sim.engine.statistics import RunAccumulator, summarize
from journal_sim.models import SimulationConfig, SimulationProgress, SimulationResult, SimulationRun
from journal_sim.utils.exceptions import SimulationConfigError


ProgressCallback = Callable[[SimulationProgress], None]


@dataclass(frozen=True)
class BatchSpec:
    index: int
    start: int
    count: int


@dataclass
class BatchOutcome:
    spec: BatchSpec
    accumulator: RunAccumulator
    sample_runs: list[SimulationRun]


def plan_batches(simulations: int, batch_size: int) -> list[BatchSpec]:
    """Split run indices [0, simulations) into contiguous batches."""
    return [
        BatchSpec(index=i, start=start, count=min(batch_size, simulations - start))
        for i, start in enumerate(range(0, simulations, batch_size))
    ]


def collect_samples(outcomes: dict[int, BatchOutcome], sample_cap: int) -> list[SimulationRun]:
    """
    First `sample_cap` runs of the lowest-indexed completed batches.

    Batches skipped by a cancellation leave gaps; samples then come from
    whichever batches did finish.
    """
    samples: list[SimulationRun] = []
    for index in sorted(outcomes):
        if len(samples) >= sample_cap:
            break
        samples.extend(outcomes[index].sample_runs[:sample_cap - len(samples)])
    return samples


def validate_inputs(config: SimulationConfig, pool: TradePool) -> None:
    if config.simulations <= 0:
        raise SimulationConfigError("simulations must be a positive integer", field="simulations")
    if config.max_trades_per_run <= 0:
        raise SimulationConfigError(
            "maxTradesPerRun must be a positive integer", field="maxTradesPerRun"
        )
    if config.initial_capital <= 0:
        raise SimulationConfigError("initialCapital must be positive", field="initialCapital")
    if pool.is_empty:
        raise SimulationConfigError(
            f"no trades match filter '{config.filter_label}'", field="pool"
        )


class SimulationScheduler:
    """
    Runs one simulation in fixed-size batches on a thread pool.

    Each batch draws from its own random stream derived from the seed and
    the batch index, and accumulators are merged in batch order, so a seeded
    simulation gives identical output for any worker count. Cancellation is
    checked before a batch starts; batches already running always finish.
    A scheduler instance drives a single simulation.
    """

    def __init__(
        self,
        workers: Optional[int] = None,
        batch_size: int = 250,
        sample_cap: int = 25,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if sample_cap < 0:
            raise ValueError(f"sample_cap must be non-negative, got {sample_cap}")

        self.workers = workers or os.cpu_count() or 1
        self.batch_size = batch_size
        self.sample_cap = sample_cap
        self._cancel_event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        if not self._cancel_event.is_set():
            logger.info("Cancellation requested; waiting for in-flight batches")
        self._cancel_event.set()

    def run(
        self,
        config: SimulationConfig,
        pool: TradePool,
        on_progress: Optional[ProgressCallback] = None,
        trades_per_year: Optional[float] = None,
    ) -> SimulationResult:
        """
        Execute all runs of a simulation and aggregate them.

        Args:
            config: Validated simulation configuration
            pool: Read-only trade pool snapshot
            on_progress: Called on this thread after every finished batch
            trades_per_year: Cadence for annualized statistics

        Returns:
            SimulationResult, flagged partial when cancelled before all
            runs completed

        Raises:
            SimulationConfigError: If the config or pool cannot be simulated
        """
        validate_inputs(config, pool)

        batches = plan_batches(config.simulations, self.batch_size)
        outcomes: dict[int, BatchOutcome] = {}
        completed = 0

        logger.info(
            f"Starting {config.simulations} runs x {config.max_trades_per_run} trades "
            f"on {len(pool)} pooled trades ({len(batches)} batches, {self.workers} workers)"
        )
        self._publish(on_progress, config, completed, "running")

        spec_iter = iter(batches)
        with ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="mc-worker"
        ) as executor:
            pending: set[Future] = set()
            self._fill(executor, pending, spec_iter, config, pool)

            try:
                while pending:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        outcome = future.result()
                        if outcome is None:
                            continue
                        outcomes[outcome.spec.index] = outcome
                        completed += outcome.spec.count
                        logger.debug(
                            f"Batch {outcome.spec.index} done "
                            f"({completed}/{config.simulations} runs)"
                        )
                        self._publish(on_progress, config, completed, "running")
                    self._fill(executor, pending, spec_iter, config, pool)
            except Exception:
                self._cancel_event.set()
                self._publish(on_progress, config, completed, "failed")
                logger.exception("Simulation batch failed")
                raise

        accumulator = RunAccumulator(initial_capital=config.initial_capital)
        for index in sorted(outcomes):
            accumulator = accumulator.merge(outcomes[index].accumulator)
        sample_runs = collect_samples(outcomes, self.sample_cap)

        partial = completed < config.simulations
        summary = summarize(accumulator, config, trades_per_year)
        progress = 100.0 if not partial else completed / config.simulations * 100
        self._publish(on_progress, config, completed, "cancelled" if partial else "completed")

        if partial:
            logger.warning(f"Simulation stopped at {progress:.1f}% ({completed} runs)")
        else:
            logger.info(
                f"Simulation complete: median final {summary.median_final:,.2f}, "
                f"prob. ruin {summary.prob_ruin:.1%}"
            )

        return SimulationResult(
            config=config,
            summary=summary,
            sample_runs=sample_runs,
            partial=partial,
            progress=progress,
            requested_runs=config.simulations,
        )

    def _fill(
        self,
        executor: ThreadPoolExecutor,
        pending: set[Future],
        spec_iter: Iterator[BatchSpec],
        config: SimulationConfig,
        pool: TradePool,
    ) -> None:
        while len(pending) < self.workers and not self._cancel_event.is_set():
            spec = next(spec_iter, None)
            if spec is None:
                return
            pending.add(executor.submit(self._run_batch, spec, config, pool))

    def _run_batch(
        self,
        spec: BatchSpec,
        config: SimulationConfig,
        pool: TradePool,
    ) -> Optional[BatchOutcome]:
        if self._cancel_event.is_set():
            return None

        rng = make_rng(config.seed, spec.index)
        batch = execute_batch(
            pool,
            rng,
            spec.count,
            config.max_trades_per_run,
            config.initial_capital,
            start_index=spec.start,
            risk_per_trade_pct=config.risk_per_trade_pct,
        )

        accumulator = RunAccumulator(initial_capital=config.initial_capital)
        accumulator.add_batch(batch)
        return BatchOutcome(
            spec=spec,
            accumulator=accumulator,
            sample_runs=batch.to_runs(limit=self.sample_cap),
        )

    @staticmethod
    def _publish(
        on_progress: Optional[ProgressCallback],
        config: SimulationConfig,
        completed: int,
        state: str,
    ) -> None:
        if on_progress is None:
            return
        percentage = min(completed / config.simulations * 100, 100.0)
        on_progress(SimulationProgress(
            completed_runs=completed,
            total_runs=config.simulations,
            percentage=percentage,
            state=state,
        ))
