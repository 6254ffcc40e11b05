"""
Retrospective race analysis.

Looks back at a finished race using actual Velogames points:
- Counterfactual: the cheapest roster that would have reached a given
  score (e.g. the winning score of a mini-league)
- Hindsight optimum: the best roster the budget could have bought
- Prediction quality: rank correlation and error of expected points
  against actual points, plus regret of the selected roster

Responsibility:
- This module EXPLAINS outcomes post-hoc
- It does not make predictions; it consumes prediction frames and results
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from scipy.stats import spearmanr

from breakaway.config import BUDGET
from breakaway.models.roster import RosterOptimizer, RosterResult

logger = logging.getLogger(__name__)


def _merge_actuals(
    predictions_df: pd.DataFrame,
    results_df: pd.DataFrame,
    actual_col: str,
) -> pd.DataFrame:
    missing = [c for c in ("key", actual_col) if c not in results_df.columns]
    if missing:
        raise ValueError(f"Results table missing columns: {missing}")
    actuals = results_df[["key", actual_col]].drop_duplicates(subset="key")
    merged = predictions_df.merge(actuals, on="key", how="left")
    # Riders without a result scored nothing
    merged[actual_col] = merged[actual_col].fillna(0.0)
    return merged


def cheapest_roster_beating(
    results_df: pd.DataFrame,
    target_score: float,
    team_size: int,
    category_minima: Optional[Mapping[str, int]] = None,
    actual_col: str = "actual_points",
    budget: Optional[float] = None,
) -> RosterResult:
    """Cheapest roster whose actual points reach `target_score`.

    Args:
        results_df: One row per rider with key, cost, category and actual points.
        target_score: Score to reach, e.g. the league winner's total.
        team_size: Riders per roster.
        category_minima: Class quotas for the race.
        actual_col: Actual points column.
        budget: Optional cost cap; None leaves cost unconstrained.

    Returns:
        RosterSelection, or Infeasible if no roster reaches the target.
    """
    optimizer = RosterOptimizer(
        results_df,
        team_size=team_size,
        budget=BUDGET if budget is None else budget,
        category_minima=category_minima,
    )
    result = optimizer.minimize_cost(
        target_score,
        score_col=actual_col,
        enforce_budget=budget is not None,
    )
    if result.feasible:
        logger.info(
            f"Cheapest roster reaching {target_score:.0f} points costs {result.total_cost} credits"
        )
    return result


def hindsight_roster(
    results_df: pd.DataFrame,
    team_size: int,
    budget: float = BUDGET,
    category_minima: Optional[Mapping[str, int]] = None,
    actual_col: str = "actual_points",
) -> RosterResult:
    """Best roster the budget could have bought, knowing the actual points."""
    optimizer = RosterOptimizer(
        results_df,
        team_size=team_size,
        budget=budget,
        category_minima=category_minima,
    )
    return optimizer.optimize(score_col=actual_col)


@dataclass
class PredictionDiagnostics:
    """How well expected points ranked and sized the actual outcome."""

    spearman_corr: float
    spearman_pval: float
    mae: float
    mean_bias: float  # predicted - actual
    top_k: int
    top_k_overlap: float  # share of actual top-k that were predicted top-k
    n_riders: int

    def to_dict(self) -> dict:
        return {
            "spearman": round(self.spearman_corr, 3),
            "spearman_pval": round(self.spearman_pval, 4),
            "mae": round(self.mae, 2),
            "mean_bias": round(self.mean_bias, 2),
            f"top{self.top_k}_overlap": round(self.top_k_overlap, 3),
            "n_riders": self.n_riders,
        }

    def __repr__(self) -> str:
        return (
            f"Spearman: {self.spearman_corr:.3f}, MAE: {self.mae:.1f}, "
            f"top-{self.top_k} overlap: {self.top_k_overlap:.0%} (n={self.n_riders})"
        )


def evaluate_predictions(
    predictions_df: pd.DataFrame,
    results_df: pd.DataFrame,
    pred_col: str = "expected_points",
    actual_col: str = "actual_points",
    top_k: int = 10,
) -> PredictionDiagnostics:
    """Compare predicted expected points with actual points.

    Riders missing from the results are counted as scoring 0.
    """
    if pred_col not in predictions_df.columns:
        raise ValueError(f"Missing prediction column: {pred_col}")
    merged = _merge_actuals(predictions_df, results_df, actual_col)

    y_pred = merged[pred_col].to_numpy(dtype=float)
    y_true = merged[actual_col].to_numpy(dtype=float)
    n = len(y_true)

    # Ranking (handle constant arrays)
    if n >= 3 and np.std(y_true) > 0 and np.std(y_pred) > 0:
        spearman_corr, spearman_pval = spearmanr(y_true, y_pred)
        if np.isnan(spearman_corr):
            spearman_corr, spearman_pval = 0.0, 1.0
    else:
        spearman_corr, spearman_pval = 0.0, 1.0

    mae = float(np.mean(np.abs(y_true - y_pred))) if n else 0.0
    mean_bias = float(np.mean(y_pred - y_true)) if n else 0.0

    k = min(top_k, n)
    if k:
        pred_top = set(np.argsort(-y_pred, kind="stable")[:k])
        true_top = set(np.argsort(-y_true, kind="stable")[:k])
        overlap = len(pred_top & true_top) / k
    else:
        overlap = 0.0

    return PredictionDiagnostics(
        spearman_corr=float(spearman_corr),
        spearman_pval=float(spearman_pval),
        mae=mae,
        mean_bias=mean_bias,
        top_k=top_k,
        top_k_overlap=overlap,
        n_riders=n,
    )


@dataclass
class RosterReview:
    """Actual outcome of a selected roster against the hindsight optimum."""

    selected: List[str]
    actual_points: float
    optimal_points: float
    optimal_selected: List[str] = field(default_factory=list)

    @property
    def regret(self) -> float:
        return self.optimal_points - self.actual_points

    def summary(self) -> str:
        lines = [
            "=" * 50,
            "ROSTER REVIEW",
            "=" * 50,
            f"Selected roster scored: {self.actual_points:.0f}",
            f"Hindsight optimum:      {self.optimal_points:.0f}",
            f"Regret:                 {self.regret:.0f}",
            "=" * 50,
        ]
        return "\n".join(lines)


def review_roster(
    selected: Sequence[str],
    results_df: pd.DataFrame,
    team_size: int,
    budget: float = BUDGET,
    category_minima: Optional[Mapping[str, int]] = None,
    actual_col: str = "actual_points",
) -> RosterReview:
    """Score a selected roster on actual points and compare with hindsight.

    Raises:
        ValueError: If the hindsight problem itself is infeasible.
    """
    actuals = results_df.set_index("key")[actual_col]
    actual_points = float(sum(actuals.get(key, 0.0) for key in selected))

    best = hindsight_roster(results_df, team_size, budget, category_minima, actual_col)
    if not best.feasible:
        raise ValueError(f"No valid hindsight roster: {best.reason}")

    return RosterReview(
        selected=list(selected),
        actual_points=actual_points,
        optimal_points=best.total_expected_score,
        optimal_selected=list(best.selected),
    )
