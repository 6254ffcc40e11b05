"""Race pipeline: predict expected points, then pick the roster.

Usage:
    from breakaway.config import setup_race
    from breakaway.pipeline import RacePipeline

    race = setup_race("Vlaanderen", 2025)
    pipeline = RacePipeline(race, seed=42)
    result = pipeline.run(pool_df, history_df=history_df, odds_df=odds_df)
    if result.roster.feasible:
        result.roster.print_roster()

    # Or step by step
    predictions = pipeline.predict(pool_df)
    roster = pipeline.select(predictions)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd

from breakaway.config import RaceConfig
from breakaway.data.pool import check_category_availability, quota_cost_summary
from breakaway.models.expected_points import BreakawayConfig
from breakaway.models.roster import RosterOptimizer, RosterResult
from breakaway.models.strength import StrengthConfig
from breakaway.pipeline.predict import predict_expected_points, round_predictions
from breakaway.scoring.tables import ScoringTable, get_scoring

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Predictions (full precision) and the selected roster."""

    race: RaceConfig
    predictions: pd.DataFrame
    roster: RosterResult

    def report_frame(self) -> pd.DataFrame:
        """Rounded predictions, best expected points first, selected riders flagged."""
        df = round_predictions(self.predictions)
        selected = set(self.roster.selected) if self.roster.feasible else set()
        df["selected"] = df["key"].astype(str).isin(selected)
        return df.sort_values("expected_points", ascending=False).reset_index(drop=True)

    def save(self, output_dir: Path) -> Path:
        """Write the report frame as CSV; returns the file path."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        slug = self.race.history_slug or self.race.name.lower().replace(" ", "-")
        path = output_dir / f"{slug}_{self.race.year}_predictions.csv"
        self.report_frame().to_csv(path, index=False)
        logger.info(f"Saved predictions to {path}")
        return path


class RacePipeline:
    """Predict and select for one configured race."""

    def __init__(
        self,
        race: RaceConfig,
        n_trials: Optional[int] = None,
        seed: Optional[int] = None,
        n_workers: Optional[int] = None,
        strength_config: Optional[StrengthConfig] = None,
        breakaway_config: Optional[BreakawayConfig] = None,
        table: Optional[ScoringTable] = None,
    ) -> None:
        self.race = race
        self.table = table or get_scoring(race.category)
        self.n_trials = n_trials
        self.seed = seed
        self.n_workers = n_workers
        self.strength_config = strength_config
        self.breakaway_config = breakaway_config

    def predict(
        self,
        pool_df: pd.DataFrame,
        history_df: Optional[pd.DataFrame] = None,
        odds_df: Optional[pd.DataFrame] = None,
    ) -> pd.DataFrame:
        """Full-precision expected points for every rider in the pool."""
        logger.info(f"Predicting {self.race.name} ({self.race.year}, {self.race.race_type})")
        return predict_expected_points(
            pool_df,
            self.table,
            history_df=history_df,
            odds_df=odds_df,
            n_trials=self.n_trials,
            seed=self.seed,
            race_type=self.race.race_type,
            n_workers=self.n_workers,
            strength_config=self.strength_config,
            breakaway_config=self.breakaway_config,
            current_year=self.race.year,
            round_output=False,
        )

    def select(self, predictions: pd.DataFrame, score_col: str = "expected_points") -> RosterResult:
        """Optimal roster under the race's team size, budget and class quotas."""
        for shortfall in check_category_availability(predictions, self.race.category_minima):
            logger.warning(shortfall)
        if self.race.category_minima:
            quota = quota_cost_summary(predictions, self.race.category_minima)
            if quota.feasible and not quota.fits_budget(self.race.budget):
                logger.warning(
                    f"Cheapest quota riders cost {quota.minimum_cost}, "
                    f"over the budget of {self.race.budget}"
                )
            elif quota.feasible:
                logger.info(f"Cheapest quota fill costs {quota.minimum_cost} of {self.race.budget}")

        optimizer = RosterOptimizer(
            predictions,
            team_size=self.race.team_size,
            budget=self.race.budget,
            category_minima=self.race.category_minima,
        )
        return optimizer.optimize(score_col=score_col)

    def run(
        self,
        pool_df: pd.DataFrame,
        history_df: Optional[pd.DataFrame] = None,
        odds_df: Optional[pd.DataFrame] = None,
    ) -> PipelineResult:
        """Predict then select."""
        predictions = self.predict(pool_df, history_df=history_df, odds_df=odds_df)
        roster = self.select(predictions)
        return PipelineResult(race=self.race, predictions=predictions, roster=roster)
