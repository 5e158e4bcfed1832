"""
Resampler - bootstrap draws from a trade pool.
"""
from typing import Optional

import numpy as np

from journal_sim.data.pool import TradePool
from journal_sim.utils.exceptions import SimulationConfigError


def make_rng(seed: Optional[int], stream: int = 0) -> np.random.Generator:
    """
    Build the random source for one stream of runs.

    With a seed, each stream gets an independent generator spawned from the
    same seed sequence, so a seed reproduces every stream bit-for-bit. Without
    one, the generator is seeded from OS entropy.
    """
    if seed is None:
        return np.random.default_rng()
    return np.random.default_rng(np.random.SeedSequence(seed, spawn_key=(stream,)))


def _require_trades(pool: TradePool) -> None:
    if pool.is_empty:
        raise SimulationConfigError("trade pool is empty after filtering", field="pool")


def draw(pool: TradePool, rng: np.random.Generator) -> float:
    """Draw one trade outcome uniformly, with replacement."""
    _require_trades(pool)
    index = int(rng.integers(0, len(pool)))
    return float(pool.outcomes[index])


def draw_indices(pool: TradePool, rng: np.random.Generator, shape: tuple[int, ...]) -> np.ndarray:
    """Draw a block of trade indices uniformly in [0, len(pool))."""
    _require_trades(pool)
    return rng.integers(0, len(pool), size=shape, dtype=np.int64)
