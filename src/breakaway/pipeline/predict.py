"""End-to-end expected points prediction for a race.

Steps:
1. Z-score the raw signals (external rating, season form) over the field
2. Fuse rating prior, form, race history and odds into a strength posterior
3. Simulate finishing orders (streamed in blocks) and aggregate
   finish and assist points
4. One-day races only: a second, independent simulation pass for
   breakaway points

Race types:
    oneday - the one-day specialty rating is the prior; breakaway pass runs
    stage  - class-weighted blend of specialty ratings is the prior;
             no breakaway pass (stage scoring already includes it)

Usage:
    from breakaway.pipeline import predict_expected_points
    from breakaway.scoring import SCORING_CAT1

    predictions = predict_expected_points(pool_df, SCORING_CAT1, seed=42)
"""

from __future__ import annotations

import datetime
import logging
from typing import List, Optional

import numpy as np
import pandas as pd

from breakaway.config import RACE_TYPES
from breakaway.data.pool import normalise_categories, validate_pool
from breakaway.data.schemas import PredictionRecord
from breakaway.features.normalizer import zscore
from breakaway.features.signals import (
    blended_stage_rating,
    build_history_lookup,
    build_odds_lookup,
)
from breakaway.models.expected_points import (
    BreakawayConfig,
    ExpectedPointsAggregator,
    estimate_breakaway_points,
)
from breakaway.models.simulation import RaceSimulator
from breakaway.models.strength import StrengthConfig, StrengthEstimator
from breakaway.scoring.tables import ScoringTable

logger = logging.getLogger(__name__)

# Fallback prior column for one-day races when no "rating" column is present
ONEDAY_SPECIALTY_COL = "oneday"

# Reporting precision
STRENGTH_DIGITS = 3
POINTS_DIGITS = 1

STRENGTH_COLUMNS = ["strength", "uncertainty"]
POINTS_COLUMNS = [
    "expected_finish_pts",
    "expected_assist_pts",
    "expected_breakaway_pts",
    "expected_points",
]


def _raw_prior(df: pd.DataFrame, race_type: str, rating_col: str) -> pd.Series:
    if race_type == "stage":
        categories = df["category"] if "category" in df.columns else pd.Series(None, index=df.index)
        return pd.Series(
            [blended_stage_rating(row, cat) for row, cat in zip(df.to_dict("records"), categories)],
            index=df.index,
        )
    if rating_col in df.columns:
        return df[rating_col]
    if ONEDAY_SPECIALTY_COL in df.columns:
        return df[ONEDAY_SPECIALTY_COL]
    return pd.Series(np.nan, index=df.index)


def predict_expected_points(
    rider_df: pd.DataFrame,
    table: ScoringTable,
    history_df: Optional[pd.DataFrame] = None,
    odds_df: Optional[pd.DataFrame] = None,
    n_trials: Optional[int] = None,
    seed: Optional[int] = None,
    race_type: str = "oneday",
    n_workers: Optional[int] = None,
    strength_config: Optional[StrengthConfig] = None,
    breakaway_config: Optional[BreakawayConfig] = None,
    current_year: Optional[int] = None,
    rating_col: str = "rating",
    form_col: str = "form",
    round_output: bool = False,
) -> pd.DataFrame:
    """Predict expected Velogames points for every rider in the field.

    Args:
        rider_df: Pool with key, team, cost and signal columns.
        table: Scoring table for the race.
        history_df: Past results {key, year, position}.
        odds_df: Decimal win odds {key, odds}.
        n_trials: Simulated races per pass.
        seed: Random seed; a fixed seed gives identical output.
        race_type: "oneday" or "stage".
        n_workers: Threads for simulation blocks.
        strength_config: Variance hyperparameters.
        breakaway_config: Sector participation bands.
        current_year: Year used to age race history (default: this year).
        rating_col: Raw external rating column.
        form_col: Raw season form column.
        round_output: Round strength to 3 dp and points to 1 dp for reporting
            (default keeps full precision for selection and records).

    Returns:
        Copy of rider_df with strength, uncertainty, strength_variance and
        expected points columns (finish, assist, breakaway, total).

    Raises:
        ValueError: On an invalid pool (including unknown class labels), race type
            or signal.
    """
    if race_type not in RACE_TYPES:
        raise ValueError(f"Invalid race_type: {race_type!r}. Must be one of {RACE_TYPES}")
    if rider_df.empty:
        raise ValueError("Cannot predict an empty rider pool")
    validate_pool(rider_df)

    df = rider_df.reset_index(drop=True).copy()
    if "category" in df.columns:
        df["category"] = normalise_categories(df["category"])
    n_riders = len(df)
    n_starters = n_riders
    year = current_year if current_year is not None else datetime.date.today().year

    rating_z = zscore(_raw_prior(df, race_type, rating_col))
    form_z = zscore(df[form_col]) if form_col in df.columns else np.zeros(n_riders)

    history_lookup = build_history_lookup(history_df, n_starters, year)
    odds_lookup = build_odds_lookup(odds_df)
    unknown_odds = set(odds_lookup) - set(df["key"].astype(str))
    if unknown_odds:
        logger.warning(f"Ignoring odds for {len(unknown_odds)} riders not in the pool")

    estimator = StrengthEstimator(strength_config)
    means = np.empty(n_riders, dtype=np.float64)
    variances = np.empty(n_riders, dtype=np.float64)
    for i, key in enumerate(df["key"].astype(str)):
        posterior = estimator.estimate_rider(
            rating=rating_z[i],
            form=form_z[i],
            history=history_lookup.get(key, []),
            odds_prob=odds_lookup.get(key),
            n_starters=n_starters,
        )
        means[i] = posterior.mean
        variances[i] = posterior.variance
    std_devs = np.sqrt(variances)

    logger.info(
        f"Estimated strength for {n_riders} riders "
        f"({len(history_lookup)} with race history, {len(odds_lookup)} with odds)"
    )

    simulator = RaceSimulator(n_trials=n_trials, seed=seed, n_workers=n_workers, stream=0)
    logger.info(f"Running Monte Carlo simulation ({simulator.n_trials} trials, {n_riders} riders)...")

    teams = df["team"].tolist()
    aggregator = ExpectedPointsAggregator(teams, table, breakaway_config)
    for block in simulator.iter_blocks(means, std_devs):
        aggregator.accumulate(block)
    points = aggregator.result()

    if race_type == "oneday" and table.has_breakaways:
        breakaway_sim = RaceSimulator(
            n_trials=n_trials, seed=simulator.seed, n_workers=n_workers, stream=1
        )
        points.breakaway = estimate_breakaway_points(
            means, std_devs, table, breakaway_sim, breakaway_config
        )

    df["strength"] = means
    df["uncertainty"] = std_devs
    df["strength_variance"] = variances
    df = pd.concat([df, points.to_frame(df.index)], axis=1)

    if round_output:
        df = round_predictions(df)
    return df


def round_predictions(df: pd.DataFrame) -> pd.DataFrame:
    """Reporting view: strength to 3 dp, points to 1 dp."""
    out = df.copy()
    for col in STRENGTH_COLUMNS:
        if col in out.columns:
            out[col] = out[col].round(STRENGTH_DIGITS)
    for col in POINTS_COLUMNS:
        if col in out.columns:
            out[col] = out[col].round(POINTS_DIGITS)
    return out


def to_prediction_records(predictions_df: pd.DataFrame) -> List[PredictionRecord]:
    """Convert a prediction frame into PredictionRecord objects."""
    records = []
    for row in predictions_df.itertuples(index=False):
        records.append(
            PredictionRecord(
                key=str(row.key),
                strength_mean=float(row.strength),
                strength_variance=float(row.strength_variance),
                expected_score_total=float(row.expected_points),
                expected_score_finish=float(row.expected_finish_pts),
                expected_score_assist=float(row.expected_assist_pts),
                expected_score_bonus=float(row.expected_breakaway_pts),
            )
        )
    return records


def form_weighted_score(
    df: pd.DataFrame,
    formweight: float = 0.5,
    form_col: str = "form",
    rating_col: str = "rating",
) -> pd.Series:
    """Simulation-free score: formweight * form + (1 - formweight) * rating.

    Missing values count as 0.

    Raises:
        ValueError: If formweight is outside [0, 1].
    """
    if not 0 <= formweight <= 1:
        raise ValueError(f"formweight must be between 0 and 1, got {formweight}")
    form = df[form_col].fillna(0.0) if form_col in df.columns else 0.0
    rating = df[rating_col].fillna(0.0) if rating_col in df.columns else 0.0
    score = formweight * form + (1 - formweight) * rating
    return pd.Series(score, index=df.index, name="calcscore", dtype=np.float64)
