"""Expected Velogames points from simulated finishing positions.

Three additive components per rider:

    finish     points for the simulated finishing position (top 30 score)
    assist     points when a teammate finishes 1st, 2nd or 3rd
    breakaway  points per sector spent in the leading group (one-day races)

Finish and assist points are accumulated as running sums over trial blocks,
so the full position matrix never has to be held in memory. Breakaway points
come from a separate simulation pass and a step function of finishing
position, configured in BreakawayConfig.

Key Classes:
    ExpectedPoints - Per-rider expected points by component
    BreakawayConfig - Sector-participation bands by finishing position
    ExpectedPointsAggregator - Running-sum accumulator over trial blocks

Key Functions:
    aggregate - Expected points from a materialised position matrix
    estimate_breakaway_points - Separate simulation pass for breakaway points
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from breakaway.config import N_ASSIST_POSITIONS
from breakaway.models.simulation import RaceSimulator
from breakaway.scoring.tables import ScoringTable

logger = logging.getLogger(__name__)


# (first_position, last_position, sectors). Bands are additive.
#   late sectors (20km, 10km to go): front group ~ top 20, maybe top 30 at 20km
#   early sectors (50% distance, 50km to go): breakaways of mid-ranked riders;
#   favourites sit in the peloton, weak riders cannot make the break
DEFAULT_BREAKAWAY_BANDS: Tuple[Tuple[int, int, int], ...] = (
    (1, 20, 2),
    (21, 30, 1),
    (15, 60, 1),
    (20, 50, 1),
)


@dataclass(frozen=True)
class BreakawayConfig:
    """Sector participation as a step function of finishing position.

    With the default bands: 1-14 -> 2 sectors, 15-19 -> 3, 20 -> 4,
    21-30 -> 3, 31-50 -> 2, 51-60 -> 1, 61+ -> 0. The jump at 20 is a
    known discontinuity of the heuristic.
    """

    bands: Tuple[Tuple[int, int, int], ...] = DEFAULT_BREAKAWAY_BANDS

    def __post_init__(self) -> None:
        for first, last, sectors in self.bands:
            if first < 1 or last < first or sectors < 0:
                raise ValueError(f"Invalid breakaway band: {(first, last, sectors)}")

    def sectors_by_position(self, n_positions: int) -> np.ndarray:
        """Sectors credited per position; index 0 is unused."""
        sectors = np.zeros(n_positions + 1, dtype=np.int64)
        for first, last, n in self.bands:
            if first <= n_positions:
                sectors[first : min(last, n_positions) + 1] += n
        return sectors


@dataclass
class ExpectedPoints:
    """Per-rider expected points, by component."""

    finish: np.ndarray
    assist: np.ndarray
    breakaway: np.ndarray
    n_trials: int

    @property
    def total(self) -> np.ndarray:
        return self.finish + self.assist + self.breakaway

    def to_frame(self, index: Optional[pd.Index] = None) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "expected_finish_pts": self.finish,
                "expected_assist_pts": self.assist,
                "expected_breakaway_pts": self.breakaway,
                "expected_points": self.total,
            },
            index=index,
        )


def _team_codes(teams: Sequence[object]) -> np.ndarray:
    """Integer team codes; riders without a team get a code of their own."""
    codes, _ = pd.factorize(pd.Series(list(teams), dtype=object))
    codes = codes.astype(np.int64)
    missing = codes < 0
    if missing.any():
        start = codes.max() + 1 if (~missing).any() else 0
        codes[missing] = np.arange(start, start + missing.sum())
    return codes


class ExpectedPointsAggregator:
    """Accumulate finish, assist and breakaway points over trial blocks.

    Example:
        >>> agg = ExpectedPointsAggregator(teams, SCORING_CAT1)
        >>> for block in simulator.iter_blocks(means, stds):
        ...     agg.accumulate(block)
        >>> points = agg.result()
    """

    def __init__(
        self,
        teams: Sequence[object],
        table: ScoringTable,
        breakaway: Optional[BreakawayConfig] = None,
    ) -> None:
        self.table = table
        self.breakaway = breakaway or BreakawayConfig()
        self.team_codes = _team_codes(teams)
        self.n_riders = len(self.team_codes)
        self.n_teams = int(self.team_codes.max()) + 1 if self.n_riders else 0

        self._finish_lookup = table.finish_array(self.n_riders)
        self._sector_lookup = np.minimum(
            self.breakaway.sectors_by_position(self.n_riders), table.n_sectors
        ) * table.breakaway_points

        self._finish_sum = np.zeros(self.n_riders, dtype=np.float64)
        self._assist_sum = np.zeros(self.n_riders, dtype=np.float64)
        self._breakaway_sum = np.zeros(self.n_riders, dtype=np.float64)
        self.n_trials = 0
        self.n_breakaway_trials = 0

    def _check_block(self, block: np.ndarray) -> np.ndarray:
        block = np.asarray(block)
        if block.ndim != 2 or block.shape[0] != self.n_riders:
            raise ValueError(
                f"Expected positions of shape ({self.n_riders}, n_trials), got {block.shape}"
            )
        return block

    def accumulate(self, block: np.ndarray) -> None:
        """Add finish and assist points for a (n_riders, n_trials) position block."""
        block = self._check_block(block)
        self._finish_sum += self._finish_lookup[block].sum(axis=1)

        for k in range(1, min(N_ASSIST_POSITIONS, self.n_riders) + 1):
            pts = self.table.assist_points[k - 1]
            if pts == 0:
                continue
            # Rider at position k in each trial
            placed = np.argmax(block == k, axis=0)
            per_rider = np.bincount(placed, minlength=self.n_riders)
            per_team = np.bincount(self.team_codes[placed], minlength=self.n_teams)
            # Teammates of the placed rider, excluding the rider themself
            self._assist_sum += pts * (per_team[self.team_codes] - per_rider)

        self.n_trials += block.shape[1]

    def accumulate_breakaway(self, block: np.ndarray) -> None:
        """Add breakaway points for a block from the breakaway simulation pass."""
        block = self._check_block(block)
        self._breakaway_sum += self._sector_lookup[block].sum(axis=1)
        self.n_breakaway_trials += block.shape[1]

    def breakaway_mean(self) -> np.ndarray:
        """Expected breakaway points so far (zeros before any breakaway block)."""
        if self.n_breakaway_trials == 0:
            return np.zeros(self.n_riders, dtype=np.float64)
        return self._breakaway_sum / self.n_breakaway_trials

    def result(self) -> ExpectedPoints:
        if self.n_trials == 0:
            raise ValueError("No trials accumulated")
        return ExpectedPoints(
            finish=self._finish_sum / self.n_trials,
            assist=self._assist_sum / self.n_trials,
            breakaway=self.breakaway_mean(),
            n_trials=self.n_trials,
        )


def aggregate(
    positions: np.ndarray,
    teams: Sequence[object],
    table: ScoringTable,
    breakaway_positions: Optional[np.ndarray] = None,
    breakaway: Optional[BreakawayConfig] = None,
) -> ExpectedPoints:
    """Expected points from a materialised (n_riders, n_trials) position matrix.

    Breakaway points are computed only when `breakaway_positions` (from an
    independent simulation pass) is given and the table awards them.
    """
    agg = ExpectedPointsAggregator(teams, table, breakaway)
    agg.accumulate(positions)
    if breakaway_positions is not None and table.has_breakaways:
        agg.accumulate_breakaway(breakaway_positions)
    return agg.result()


def estimate_breakaway_points(
    means: Sequence[float],
    std_devs: Sequence[float],
    table: ScoringTable,
    simulator: RaceSimulator,
    breakaway: Optional[BreakawayConfig] = None,
) -> np.ndarray:
    """Expected breakaway points per rider from a dedicated simulation pass."""
    n_riders = len(means)
    if not table.has_breakaways:
        return np.zeros(n_riders, dtype=np.float64)

    agg = ExpectedPointsAggregator([None] * n_riders, table, breakaway)
    for block in simulator.iter_blocks(means, std_devs):
        agg.accumulate_breakaway(block)
    return agg.breakaway_mean()
