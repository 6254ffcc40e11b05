"""Roster optimizer for Velogames.

Selects exactly N riders using binary integer programming. Maximizes total
expected points subject to the budget cap and rider class quotas. A second
variant finds the cheapest roster reaching a target score, used for
counterfactual "cheapest team that would have beaten X" analysis.

Infeasibility is an expected outcome, returned as an Infeasible value:
    - precondition: a class has fewer riders than its quota, or the quotas
      need more riders than the roster holds (detected before solving)
    - solver status: anything other than Optimal

A partial or best-effort roster is never returned.

Key Classes:
    RosterOptimizer - Builds and solves the selection problem
    RosterSelection - Optimal roster with totals
    Infeasible - Explicit no-roster outcome

Usage:
    from breakaway.models import RosterOptimizer

    optimizer = RosterOptimizer(predictions_df, team_size=6, budget=100)
    result = optimizer.optimize()
    if result.feasible:
        result.print_roster()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Union

import numpy as np
import pandas as pd
from pulp import (
    PULP_CBC_CMD,
    LpBinary,
    LpMaximize,
    LpMinimize,
    LpProblem,
    LpStatus,
    LpVariable,
    lpSum,
    value,
)

from breakaway.data.pool import normalise_categories
from breakaway.data.schemas import normalise_category

logger = logging.getLogger(__name__)

PRECONDITION_STATUS = "precondition"


@dataclass
class RosterSelection:
    """An optimal roster.

    Attributes:
        selected: Rider keys, best expected score first.
        total_cost: Sum of rider costs.
        total_expected_score: Sum of the optimized score column.
        riders: Selected rider rows as dicts.
        status: Solver status (always "Optimal").
    """

    selected: List[str]
    total_cost: int
    total_expected_score: float
    riders: List[Dict] = field(default_factory=list)
    status: str = "Optimal"

    @property
    def feasible(self) -> bool:
        return True

    def to_dict(self) -> dict:
        return {
            "selected": list(self.selected),
            "total_cost": self.total_cost,
            "total_expected_score": round(self.total_expected_score, 2),
        }

    def print_roster(self, score_col: str = "expected_points") -> None:
        """Print formatted roster."""
        RosterFormatter(self, score_col=score_col).print()


@dataclass
class Infeasible:
    """No roster satisfies the constraints.

    Attributes:
        reason: Human-readable explanation.
        status: "precondition" when detected before solving, else the solver status.
    """

    reason: str
    status: str = PRECONDITION_STATUS

    @property
    def feasible(self) -> bool:
        return False

    def to_dict(self) -> dict:
        return {"infeasible": True, "reason": self.reason, "status": self.status}


RosterResult = Union[RosterSelection, Infeasible]


class RosterFormatter:
    """Handles display formatting for RosterSelection."""

    HEADER_LABEL = "ROSTER"

    def __init__(self, result: RosterSelection, score_col: str = "expected_points"):
        self.result = result
        self.score_col = score_col

    def print(self) -> None:
        """Print full formatted roster output."""
        print("\n" + "=" * 70)
        print(self.HEADER_LABEL)
        print("=" * 70)
        print(f"Cost: {self.result.total_cost} | Expected points: {self.result.total_expected_score:.1f}")
        print("-" * 70)
        print(f"{'Rider':<26} {'Team':<22} {'Class':<10} {'Cost':>4} {'EV':>7}")
        print("-" * 70)
        for r in self.result.riders:
            category = r.get("category") or "-"
            print(
                f"{str(r.get('name', r['key']))[:26]:<26} {str(r.get('team', ''))[:22]:<22} "
                f"{category:<10} {int(r['cost']):>4} {float(r[self.score_col]):>7.1f}"
            )
        print("=" * 70)


class RosterOptimizer:
    """Binary integer program for roster selection.

    Args:
        pool_df: One row per rider with key, cost, category and score columns.
        team_size: Exact number of riders to select.
        budget: Maximum total cost.
        category_minima: Minimum riders per category, e.g. {"climber": 2}.

    Raises:
        ValueError: On contract violations (missing columns, duplicate keys,
            negative cost, team size outside 1..pool size, negative quota).

    Example:
        >>> optimizer = RosterOptimizer(df, team_size=9, budget=100,
        ...                             category_minima=STAGE_CATEGORY_MINIMA)
        >>> result = optimizer.optimize()
    """

    def __init__(
        self,
        pool_df: pd.DataFrame,
        team_size: int,
        budget: float,
        category_minima: Optional[Mapping[str, int]] = None,
        key_col: str = "key",
        cost_col: str = "cost",
        category_col: str = "category",
    ) -> None:
        self.df = pool_df.reset_index(drop=True).copy()
        self.team_size = int(team_size)
        self.budget = budget
        self.key_col = key_col
        self.cost_col = cost_col
        self.category_col = category_col
        self.category_minima = {
            normalise_category(category): minimum
            for category, minimum in (category_minima or {}).items()
        }
        if category_col in self.df.columns:
            self.df[category_col] = normalise_categories(self.df[category_col])

        self._validate()
        self.players = self.df.to_dict("records")
        self._solver_calls = 0

    def _validate(self) -> None:
        required = [self.key_col, self.cost_col]
        if self.category_minima:
            required.append(self.category_col)
        missing = [c for c in required if c not in self.df.columns]
        if missing:
            raise ValueError(f"Missing required columns: {missing}")

        duplicated = self.df[self.key_col][self.df[self.key_col].duplicated()].unique().tolist()
        if duplicated:
            raise ValueError(f"Duplicate rider keys: {duplicated}")

        costs = pd.to_numeric(self.df[self.cost_col], errors="coerce")
        if costs.isna().any():
            raise ValueError("Rider costs must be numeric and present")
        invalid = (costs <= 0) | (costs != np.floor(costs))
        if invalid.any():
            bad = self.df.loc[invalid, self.key_col].tolist()
            raise ValueError(f"Costs must be positive whole credits, invalid for riders: {bad}")

        if self.team_size < 1:
            raise ValueError(f"Team size must be at least 1, got {self.team_size}")
        if self.team_size > len(self.df):
            raise ValueError(
                f"Team size {self.team_size} exceeds pool size {len(self.df)}"
            )
        if self.budget < 0:
            raise ValueError(f"Budget must be non-negative, got {self.budget}")

        for category, minimum in self.category_minima.items():
            if minimum < 0:
                raise ValueError(f"Negative quota for {category}: {minimum}")

    def _check_scores(self, score_col: str) -> None:
        if score_col not in self.df.columns:
            raise ValueError(f"Missing score column: {score_col}")
        scores = pd.to_numeric(self.df[score_col], errors="coerce")
        if not np.all(np.isfinite(scores.to_numpy(dtype=float))):
            raise ValueError(f"Score column {score_col!r} has missing or non-finite values")

    def check_preconditions(self) -> Optional[Infeasible]:
        """Detect quota infeasibility without invoking the solver."""
        reasons = []
        if self.category_minima:
            counts = self.df[self.category_col].value_counts()
            for category, minimum in self.category_minima.items():
                available = int(counts.get(category, 0))
                if available < minimum:
                    reasons.append(f"only {available} {category} available, quota is {minimum}")

        quota_total = sum(self.category_minima.values())
        if quota_total > self.team_size:
            reasons.append(
                f"category quotas need {quota_total} riders but the roster holds {self.team_size}"
            )

        if reasons:
            reason = "; ".join(reasons)
            logger.warning(f"Roster infeasible before solving: {reason}")
            return Infeasible(reason=reason, status=PRECONDITION_STATUS)
        return None

    def _build_problem(self, name: str, sense: int) -> tuple:
        prob = LpProblem(name, sense)
        x = {i: LpVariable(f"x_{i}", cat=LpBinary) for i in range(len(self.players))}

        prob += lpSum(x.values()) == self.team_size, "TeamSize"

        for category, minimum in self.category_minima.items():
            members = [i for i, p in enumerate(self.players) if p[self.category_col] == category]
            prob += lpSum(x[i] for i in members) >= minimum, f"Min_{category}"

        return prob, x

    def _cost_expr(self, x: dict):
        return lpSum(x[i] * p[self.cost_col] for i, p in enumerate(self.players))

    def _score_expr(self, x: dict, score_col: str):
        return lpSum(x[i] * float(p[score_col]) for i, p in enumerate(self.players))

    def _solve(self, prob: LpProblem, x: dict, score_col: str) -> RosterResult:
        self._solver_calls += 1
        prob.solve(PULP_CBC_CMD(msg=False))
        status = LpStatus[prob.status]

        if status != "Optimal":
            logger.warning(f"Roster solver returned non-optimal status: {status}")
            return Infeasible(reason=f"solver status {status}", status=status)

        chosen = [i for i in x if value(x[i]) is not None and value(x[i]) > 0.5]
        riders = sorted(
            (self.players[i].copy() for i in chosen),
            key=lambda p: -float(p[score_col]),
        )
        total_cost = sum(p[self.cost_col] for p in riders)
        total_score = float(sum(float(p[score_col]) for p in riders))

        logger.info(
            f"Selected {len(riders)} riders with total cost {total_cost} "
            f"and expected score {total_score:.1f}"
        )
        return RosterSelection(
            selected=[str(p[self.key_col]) for p in riders],
            total_cost=int(total_cost) if float(total_cost).is_integer() else total_cost,
            total_expected_score=total_score,
            riders=riders,
        )

    def optimize(self, score_col: str = "expected_points") -> RosterResult:
        """Maximize total score subject to size, budget and quotas.

        Returns:
            RosterSelection with the optimal roster, or Infeasible.
        """
        self._check_scores(score_col)
        precondition = self.check_preconditions()
        if precondition is not None:
            return precondition

        prob, x = self._build_problem("RosterOptimizer", LpMaximize)
        prob += self._score_expr(x, score_col), "TotalScore"
        prob += self._cost_expr(x) <= self.budget, "Budget"
        return self._solve(prob, x, score_col)

    def minimize_cost(
        self,
        target_score: float,
        score_col: str = "expected_points",
        enforce_budget: bool = False,
    ) -> RosterResult:
        """Cheapest roster with total score at least `target_score`.

        Args:
            target_score: Score the roster must reach.
            score_col: Score column to sum.
            enforce_budget: Also keep the budget cap.

        Returns:
            RosterSelection with the cheapest qualifying roster, or Infeasible.
        """
        self._check_scores(score_col)
        precondition = self.check_preconditions()
        if precondition is not None:
            return precondition

        prob, x = self._build_problem("CheapestRoster", LpMinimize)
        prob += self._cost_expr(x), "TotalCost"
        prob += self._score_expr(x, score_col) >= target_score, "TargetScore"
        if enforce_budget:
            prob += self._cost_expr(x) <= self.budget, "Budget"
        return self._solve(prob, x, score_col)


def select_roster(
    predictions_df: pd.DataFrame,
    team_size: int,
    budget: float,
    category_minima: Optional[Mapping[str, int]] = None,
    score_col: str = "expected_points",
) -> RosterResult:
    """Convenience function to run the roster optimizer."""
    optimizer = RosterOptimizer(
        predictions_df,
        team_size=team_size,
        budget=budget,
        category_minima=category_minima,
    )
    return optimizer.optimize(score_col=score_col)
