"""Points lookups and expected points from probability distributions.

Pure functions over a ScoringTable. Out-of-table positions score 0;
that is never an error.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from breakaway.config import N_ASSIST_POSITIONS
from breakaway.scoring.tables import ScoringTable


def finish_points(position: int, table: ScoringTable) -> int:
    """Finish points for a position. Positions outside 1..len(table) score 0."""
    if 1 <= position <= table.max_position:
        return table.finish_points[position - 1]
    return 0


def assist_points(position: int, table: ScoringTable) -> int:
    """Points for a teammate of the rider finishing at `position` (1-3 only)."""
    if 1 <= position <= N_ASSIST_POSITIONS:
        return table.assist_points[position - 1]
    return 0


def sector_points(n_sectors: int, table: ScoringTable) -> int:
    """Breakaway points for being in the leading group at `n_sectors` sectors."""
    return max(0, min(n_sectors, table.n_sectors)) * table.breakaway_points


def expected_finish_points(position_probs: Sequence[float], table: ScoringTable) -> float:
    """Expected finish points from P(position = k), k = 1..len(position_probs).

    Probabilities beyond the table's last scoring position are ignored.
    """
    probs = np.asarray(position_probs, dtype=np.float64)
    n = min(len(probs), table.max_position)
    return float(np.dot(probs[:n], table.finish_points[:n]))


def expected_assist_points(teammate_top3_probs: Sequence[float], table: ScoringTable) -> float:
    """Expected assist points from P(a teammate finishes k), k = 1, 2, 3."""
    probs = np.asarray(teammate_top3_probs, dtype=np.float64)
    if len(probs) < N_ASSIST_POSITIONS:
        raise ValueError("Need probabilities for positions 1, 2, 3")
    return float(np.dot(probs[:N_ASSIST_POSITIONS], table.assist_points))


def expected_breakaway_points(sector_probs: Sequence[float], table: ScoringTable) -> float:
    """Expected breakaway points from P(in leading group at sector k)."""
    probs = np.asarray(sector_probs, dtype=np.float64)
    n = min(len(probs), table.n_sectors)
    return float(probs[:n].sum() * table.breakaway_points)
