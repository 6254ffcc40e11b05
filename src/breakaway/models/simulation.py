"""Monte Carlo race simulation.

Each trial perturbs every rider's strength with Gaussian noise scaled by
their posterior std and ranks riders by noisy strength (highest = 1st).

Trials run in blocks. Block b draws from its own generator, spawned from
SeedSequence(seed, spawn_key=(stream,)), so a fixed seed gives identical
positions whatever the number of workers. Each worker owns a pre-allocated
buffer that is reused for every block it runs.

Key Classes:
    RaceSimulator - Draws finishing positions for a field

Usage:
    from breakaway.models.simulation import RaceSimulator

    sim = RaceSimulator(n_trials=10_000, seed=42)
    positions = sim.simulate(means, std_devs)   # (n_riders, n_trials)
    probs = position_probabilities(positions)   # (n_riders, 30)
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from breakaway import config

logger = logging.getLogger(__name__)


class _BlockBuffer:
    """Reusable arrays for simulating one block of trials."""

    def __init__(self, n_riders: int, block_size: int) -> None:
        self.noisy = np.empty((block_size, n_riders), dtype=np.float64)
        self.positions = np.empty((n_riders, block_size), dtype=np.int32)
        self.ranks = np.arange(1, n_riders + 1, dtype=np.int32)[np.newaxis, :]

    def run(
        self,
        rng: np.random.Generator,
        means: np.ndarray,
        std_devs: np.ndarray,
        size: int,
    ) -> np.ndarray:
        """Simulate `size` trials; returns a (n_riders, size) view into the buffer."""
        noisy = self.noisy[:size]
        rng.standard_normal(out=noisy)
        noisy *= std_devs
        noisy += means

        # Descending order of noisy strength per trial
        order = np.argsort(-noisy, axis=1, kind="stable")
        positions = self.positions[:, :size]
        np.put_along_axis(positions.T, order, self.ranks, axis=1)
        return positions


class RaceSimulator:
    """Monte Carlo simulator of finishing orders.

    Args:
        n_trials: Number of simulated races (default 10,000; enough for
            stable position probabilities in the scoring range).
        seed: Seed for reproducible results. None falls back to
            BREAKAWAY_SEED, and draws fresh entropy when that is unset too.
        n_workers: Threads running trial blocks concurrently.
        block_size: Trials per block.
        stream: Independent random stream under the same seed (e.g. the
            breakaway pass uses stream 1).
    """

    def __init__(
        self,
        n_trials: Optional[int] = None,
        seed: Optional[int] = None,
        n_workers: Optional[int] = None,
        block_size: int = config.DEFAULT_BLOCK_SIZE,
        stream: int = 0,
    ) -> None:
        self.n_trials = config.DEFAULT_N_TRIALS if n_trials is None else int(n_trials)
        self.seed = config.DEFAULT_SEED if seed is None else seed
        self.n_workers = config.DEFAULT_N_WORKERS if n_workers is None else int(n_workers)
        self.block_size = int(block_size)
        self.stream = int(stream)

        if self.n_trials < 1:
            raise ValueError(f"n_trials must be at least 1, got {self.n_trials}")
        if self.n_workers < 1:
            raise ValueError(f"n_workers must be at least 1, got {self.n_workers}")
        if self.block_size < 1:
            raise ValueError(f"block_size must be at least 1, got {self.block_size}")

    def _validate(
        self,
        means: Sequence[float],
        std_devs: Sequence[float],
    ) -> Tuple[np.ndarray, np.ndarray]:
        means_arr = np.asarray(means, dtype=np.float64)
        std_arr = np.asarray(std_devs, dtype=np.float64)
        if means_arr.ndim != 1 or std_arr.ndim != 1:
            raise ValueError("means and std_devs must be 1-dimensional")
        if len(means_arr) != len(std_arr):
            raise ValueError(
                f"Length mismatch: {len(means_arr)} means vs {len(std_arr)} std devs"
            )
        if len(means_arr) == 0:
            raise ValueError("Cannot simulate a race with no riders")
        if not np.all(np.isfinite(means_arr)):
            raise ValueError("Strength means must be finite")
        if not np.all(np.isfinite(std_arr)) or np.any(std_arr < 0):
            raise ValueError("Strength std devs must be finite and non-negative")
        return means_arr, std_arr

    def _block_sizes(self) -> List[int]:
        full, rest = divmod(self.n_trials, self.block_size)
        return [self.block_size] * full + ([rest] if rest else [])

    def _block_rngs(self, n_blocks: int) -> List[np.random.Generator]:
        root = np.random.SeedSequence(self.seed, spawn_key=(self.stream,))
        children = root.spawn(n_blocks)
        return [np.random.default_rng(child) for child in children]

    def iter_blocks(
        self,
        means: Sequence[float],
        std_devs: Sequence[float],
    ) -> Iterator[np.ndarray]:
        """Yield (n_riders, block) position arrays, in trial order.

        Yielded arrays are views into reused buffers: consume (or copy) each
        one before advancing the iterator.
        """
        means_arr, std_arr = self._validate(means, std_devs)
        sizes = self._block_sizes()
        rngs = self._block_rngs(len(sizes))
        n_workers = min(self.n_workers, len(sizes))
        buffers = [_BlockBuffer(len(means_arr), self.block_size) for _ in range(n_workers)]

        if n_workers == 1:
            for i, size in enumerate(sizes):
                logger.debug(f"Simulating block {i + 1}/{len(sizes)} ({size} trials)")
                yield buffers[0].run(rngs[i], means_arr, std_arr, size)
            return

        with ThreadPoolExecutor(max_workers=n_workers) as pool:
            # One wave = one block per worker; buffers are reused by the next wave
            for wave_start in range(0, len(sizes), n_workers):
                wave = range(wave_start, min(wave_start + n_workers, len(sizes)))
                futures = [
                    pool.submit(buffers[w].run, rngs[b], means_arr, std_arr, sizes[b])
                    for w, b in enumerate(wave)
                ]
                for future in futures:
                    yield future.result()

    def simulate(self, means: Sequence[float], std_devs: Sequence[float]) -> np.ndarray:
        """Simulate the race n_trials times.

        Returns:
            int32 array of shape (n_riders, n_trials); entry [i, t] is rider
            i's finishing position in trial t. Each column is a permutation
            of 1..n_riders.
        """
        means_arr, std_arr = self._validate(means, std_devs)
        positions = np.empty((len(means_arr), self.n_trials), dtype=np.int32)
        start = 0
        for block in self.iter_blocks(means_arr, std_arr):
            size = block.shape[1]
            positions[:, start : start + size] = block
            start += size
        return positions


def position_probabilities(
    positions: np.ndarray,
    max_position: int = config.MAX_SCORED_POSITION,
) -> np.ndarray:
    """Empirical P(rider i finishes k) for k = 1..max_position.

    Returns:
        Array of shape (n_riders, max_position).
    """
    positions = np.asarray(positions)
    n_riders, n_trials = positions.shape
    probs = np.zeros((n_riders, max_position), dtype=np.float64)
    for k in range(1, max_position + 1):
        probs[:, k - 1] = np.count_nonzero(positions == k, axis=1) / n_trials
    return probs
