"""Tagged strength signals and the transforms that produce them.

Every observation of rider ability is a Signal of one closed kind:

    EXTERNAL_RATING  PCS-style specialty rating (the prior)
    SEASONAL_FORM    Current-season Velogames points
    RACE_HISTORY     A past result in this race, with its age in years
    MARKET_ODDS      Betting-market win probability as log-odds strength

Kinds are fused in declaration order (broadest to most specific), with race
history ordered most-recent-first.

Key Functions:
    position_to_strength - Finishing position -> strength (logit of fractional rank)
    implied_probabilities - Decimal odds -> overround-normalised win probabilities
    odds_to_strength - Win probability -> log-odds strength vs a uniform field
    build_history_lookup - History table -> {key: [(strength, years_ago), ...]}
    build_odds_lookup - Odds table -> {key: probability}
    blended_stage_rating - Class-weighted specialty rating for stage races
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from breakaway.config import HISTORY_MAX_VALID_POSITION, HISTORY_MIN_FIELD_SIZE

logger = logging.getLogger(__name__)


class SignalKind(IntEnum):
    """Signal sources, valued in fusion order."""

    EXTERNAL_RATING = 0
    SEASONAL_FORM = 1
    RACE_HISTORY = 2
    MARKET_ODDS = 3


@dataclass(frozen=True)
class Signal:
    """A single noisy observation of rider strength on the z-score scale."""

    kind: SignalKind
    value: float
    variance: float
    age: Optional[int] = None  # years; RACE_HISTORY only

    def __post_init__(self) -> None:
        if not math.isfinite(self.value):
            raise ValueError(f"{self.kind.name} signal value must be finite, got {self.value}")
        if not math.isfinite(self.variance) or self.variance <= 0:
            raise ValueError(
                f"{self.kind.name} signal variance must be positive and finite, got {self.variance}"
            )
        if self.kind is SignalKind.RACE_HISTORY:
            if self.age is None or self.age < 0:
                raise ValueError(f"Race history signal needs a non-negative age, got {self.age}")


def order_signals(signals: Iterable[Signal]) -> List[Signal]:
    """Sort signals into fusion order: kind, then race history most-recent-first."""
    return sorted(
        signals,
        key=lambda s: (int(s.kind), s.age if s.kind is SignalKind.RACE_HISTORY else 0),
    )


# -----------------------------------------------------------------------------
# Race history
# -----------------------------------------------------------------------------


def position_to_strength(position: int, n_starters: int) -> float:
    """Convert a finishing position to a z-score-like strength.

    Uses the logit of the fractional rank: about +2.5 for a win in a
    150-rider race and about -2.5 for last. Fractions are clamped to
    (0.001, 0.999) so results from larger past fields stay finite.
    """
    if n_starters < 1:
        raise ValueError(f"n_starters must be positive, got {n_starters}")
    frac = position / (n_starters + 1)
    frac = min(max(frac, 0.001), 0.999)
    return -math.log(frac / (1.0 - frac))


def build_history_lookup(
    history_df: Optional[pd.DataFrame],
    n_starters: int,
    current_year: int,
) -> Dict[str, List[Tuple[float, int]]]:
    """Map rider key to [(strength, years_ago), ...] from past editions.

    Rows without a usable position (DNF/DNS sentinels, non-positive) or with a
    year after `current_year` are dropped.
    """
    lookup: Dict[str, List[Tuple[float, int]]] = {}
    if history_df is None or history_df.empty:
        return lookup

    missing = [c for c in ("key", "year", "position") if c not in history_df.columns]
    if missing:
        raise ValueError(f"History table missing columns: {missing}")

    field_size = max(n_starters, HISTORY_MIN_FIELD_SIZE)
    df = history_df.dropna(subset=["key", "year", "position"])
    valid = (
        (df["position"] > 0)
        & (df["position"] < HISTORY_MAX_VALID_POSITION)
        & (df["year"] <= current_year)
    )
    dropped = len(history_df) - int(valid.sum())
    if dropped:
        logger.warning(f"Dropped {dropped} history rows (DNF, missing or future results)")

    for row in df[valid].itertuples(index=False):
        strength = position_to_strength(int(row.position), field_size)
        years_ago = current_year - int(row.year)
        lookup.setdefault(str(row.key), []).append((strength, years_ago))
    return lookup


# -----------------------------------------------------------------------------
# Market odds
# -----------------------------------------------------------------------------


def implied_probabilities(odds: Iterable[float]) -> np.ndarray:
    """Decimal odds -> win probabilities normalised to remove the overround."""
    arr = np.asarray(list(odds), dtype=np.float64)
    if arr.size == 0:
        return arr
    if np.any(~np.isfinite(arr)) or np.any(arr <= 1.0):
        raise ValueError("Decimal odds must be finite and greater than 1.0")
    raw = 1.0 / arr
    return raw / raw.sum()


def odds_to_strength(implied_prob: float, n_starters: int, normalisation: float) -> float:
    """Log-odds of the win probability relative to a uniform field, rescaled.

    Positive means stronger than an average starter. Dividing by
    `normalisation` brings the value onto the z-score range.
    """
    if not 0.0 < implied_prob <= 1.0:
        raise ValueError(f"Implied probability must be in (0, 1], got {implied_prob}")
    if n_starters < 1:
        raise ValueError(f"n_starters must be positive, got {n_starters}")
    if normalisation <= 0:
        raise ValueError(f"Odds normalisation must be positive, got {normalisation}")
    baseline = 1.0 / n_starters
    return math.log(implied_prob / baseline) / normalisation


def build_odds_lookup(odds_df: Optional[pd.DataFrame]) -> Dict[str, float]:
    """Map rider key to overround-normalised implied win probability."""
    if odds_df is None or odds_df.empty:
        return {}
    missing = [c for c in ("key", "odds") if c not in odds_df.columns]
    if missing:
        raise ValueError(f"Odds table missing columns: {missing}")

    df = odds_df.dropna(subset=["key", "odds"])
    probs = implied_probabilities(df["odds"].astype(float))
    return dict(zip(df["key"].astype(str), probs.tolist()))


# -----------------------------------------------------------------------------
# Stage race ratings
# -----------------------------------------------------------------------------

# How each rider class converts specialty ratings into grand tour points
STAGE_RACE_RATING_WEIGHTS: Dict[str, Dict[str, float]] = {
    "allrounder": {"gc": 0.5, "tt": 0.25, "climber": 0.25, "sprint": 0.0, "oneday": 0.0},
    "climber": {"gc": 0.15, "tt": 0.15, "climber": 0.7, "sprint": 0.0, "oneday": 0.0},
    "sprinter": {"gc": 0.2, "tt": 0.2, "climber": 0.0, "sprint": 0.3, "oneday": 0.3},
    "unclassed": {"gc": 0.3, "tt": 0.15, "climber": 0.15, "sprint": 0.0, "oneday": 0.4},
}


def blended_stage_rating(row: Mapping[str, object], category: Optional[str]) -> float:
    """Class-weighted blend of specialty ratings; unknown class uses unclassed weights.

    A missing class (None or NaN) is unclassed. Missing specialty values count as 0.
    """
    label = category.lower() if isinstance(category, str) else "unclassed"
    weights = STAGE_RACE_RATING_WEIGHTS.get(label, STAGE_RACE_RATING_WEIGHTS["unclassed"])
    score = 0.0
    for col, weight in weights.items():
        if weight <= 0:
            continue
        value = row.get(col)
        if value is None or (isinstance(value, float) and math.isnan(value)):
            continue
        score += weight * float(value)
    return score
