"""Tests for the roster optimizer contract.

CONTRACT:
    - LP objective is sum(expected_points)
    - Exactly team_size riders
    - Budget constraint enforced (total cost <= budget)
    - Category quotas enforced (stage races)
    - Infeasibility is a value, never a partial roster
    - Quota preconditions are checked before the solver runs
"""

from unittest.mock import patch

import pandas as pd
import pytest

from breakaway.config import STAGE_CATEGORY_MINIMA, STAGE_TEAM_SIZE
from breakaway.models.roster import (
    PRECONDITION_STATUS,
    Infeasible,
    RosterOptimizer,
    RosterSelection,
    select_roster,
)


def _build_four_rider_df():
    """Four riders where cost and expected points rise together."""
    return pd.DataFrame({
        "key": ["r10", "r15", "r20", "r25"],
        "name": ["Ten", "Fifteen", "Twenty", "TwentyFive"],
        "team": ["A", "B", "C", "D"],
        "cost": [10, 15, 20, 25],
        "category": ["climber", "sprinter", "allrounder", "unclassed"],
        "expected_points": [50.0, 75.0, 100.0, 125.0],
    })


@pytest.fixture
def four_rider_df():
    return _build_four_rider_df()


@pytest.fixture
def scored_pool_df(pool_df):
    df = pool_df.copy()
    df["expected_points"] = df["rating"] / 10.0
    return df


class TestRosterObjective:
    """Maximize total expected points under the budget."""

    def test_budget_50_picks_two_most_expensive(self, four_rider_df):
        result = RosterOptimizer(four_rider_df, team_size=2, budget=50).optimize()
        assert isinstance(result, RosterSelection)
        assert result.feasible
        assert set(result.selected) == {"r20", "r25"}
        assert result.total_cost == 45
        assert result.total_expected_score == 225.0

    def test_budget_20_is_infeasible(self, four_rider_df):
        result = RosterOptimizer(four_rider_df, team_size=2, budget=20).optimize()
        assert isinstance(result, Infeasible)
        assert not result.feasible
        assert result.status != PRECONDITION_STATUS

    def test_budget_binds(self, four_rider_df):
        result = RosterOptimizer(four_rider_df, team_size=2, budget=35).optimize()
        assert result.total_cost <= 35
        assert result.total_expected_score == 175.0

    def test_riders_sorted_by_score(self, four_rider_df):
        result = RosterOptimizer(four_rider_df, team_size=3, budget=100).optimize()
        scores = [r["expected_points"] for r in result.riders]
        assert scores == sorted(scores, reverse=True)
        assert result.selected[0] == "r25"

    def test_custom_score_column(self, four_rider_df):
        four_rider_df["calcscore"] = [100.0, 1.0, 1.0, 1.0]
        result = RosterOptimizer(four_rider_df, team_size=1, budget=100).optimize(score_col="calcscore")
        assert result.selected == ["r10"]


class TestRosterQuotas:
    """Stage race class quotas."""

    def test_stage_quotas_satisfied(self, scored_pool_df):
        result = RosterOptimizer(
            scored_pool_df,
            team_size=STAGE_TEAM_SIZE,
            budget=100,
            category_minima=STAGE_CATEGORY_MINIMA,
        ).optimize()
        assert result.feasible
        assert len(result.selected) == STAGE_TEAM_SIZE
        assert result.total_cost <= 100
        counts = pd.Series([r["category"] for r in result.riders]).value_counts()
        for category, minimum in STAGE_CATEGORY_MINIMA.items():
            assert counts.get(category, 0) >= minimum

    def test_missing_climbers_detected_before_solving(self, four_rider_df):
        """One climber against a quota of two never reaches the solver."""
        optimizer = RosterOptimizer(
            four_rider_df, team_size=3, budget=100, category_minima={"climber": 2}
        )
        with patch("breakaway.models.roster.LpProblem.solve", side_effect=AssertionError("solver called")):
            result = optimizer.optimize()
        assert isinstance(result, Infeasible)
        assert result.status == PRECONDITION_STATUS
        assert "climber" in result.reason

    def test_raw_labels_count_towards_quotas(self, four_rider_df):
        four_rider_df["category"] = ["Climber", "SPRINTER", "All Rounder", "climber"]
        result = RosterOptimizer(
            four_rider_df, team_size=2, budget=100, category_minima={"climber": 2}
        ).optimize()
        assert result.feasible
        assert set(result.selected) == {"r10", "r25"}

    def test_quotas_exceeding_team_size(self, scored_pool_df):
        optimizer = RosterOptimizer(
            scored_pool_df, team_size=6, budget=100, category_minima={"climber": 4, "sprinter": 4}
        )
        with patch("breakaway.models.roster.LpProblem.solve", side_effect=AssertionError("solver called")):
            result = optimizer.optimize()
        assert result.status == PRECONDITION_STATUS

    def test_select_roster_helper(self, scored_pool_df):
        result = select_roster(scored_pool_df, team_size=6, budget=100)
        assert result.feasible
        assert len(result.selected) == 6


class TestMinimizeCost:
    """Cheapest roster reaching a target score."""

    def test_cheapest_reaching_target(self, four_rider_df):
        result = RosterOptimizer(four_rider_df, team_size=2, budget=100).minimize_cost(175.0)
        assert result.feasible
        assert result.total_cost == 35
        assert result.total_expected_score >= 175.0

    def test_unreachable_target(self, four_rider_df):
        result = RosterOptimizer(four_rider_df, team_size=2, budget=100).minimize_cost(300.0)
        assert isinstance(result, Infeasible)

    def test_budget_optional(self, four_rider_df):
        optimizer = RosterOptimizer(four_rider_df, team_size=2, budget=30)
        assert optimizer.minimize_cost(225.0).total_cost == 45
        assert not optimizer.minimize_cost(225.0, enforce_budget=True).feasible


class TestRosterValidation:
    """Contract violations raise ValueError."""

    def test_team_size_out_of_range(self, four_rider_df):
        with pytest.raises(ValueError):
            RosterOptimizer(four_rider_df, team_size=0, budget=100)
        with pytest.raises(ValueError):
            RosterOptimizer(four_rider_df, team_size=5, budget=100)

    def test_negative_cost(self, four_rider_df):
        four_rider_df.loc[0, "cost"] = -5
        with pytest.raises(ValueError):
            RosterOptimizer(four_rider_df, team_size=2, budget=100)

    @pytest.mark.parametrize("cost", [0, 12.5])
    def test_cost_must_be_positive_whole_credits(self, four_rider_df, cost):
        four_rider_df["cost"] = four_rider_df["cost"].astype(float)
        four_rider_df.loc[0, "cost"] = cost
        with pytest.raises(ValueError):
            RosterOptimizer(four_rider_df, team_size=2, budget=100)

    def test_duplicate_keys(self, four_rider_df):
        four_rider_df.loc[1, "key"] = "r10"
        with pytest.raises(ValueError):
            RosterOptimizer(four_rider_df, team_size=2, budget=100)

    def test_missing_columns(self, four_rider_df):
        with pytest.raises(ValueError):
            RosterOptimizer(four_rider_df.drop(columns=["cost"]), team_size=2, budget=100)
        with pytest.raises(ValueError):
            RosterOptimizer(
                four_rider_df.drop(columns=["category"]),
                team_size=2,
                budget=100,
                category_minima={"climber": 1},
            )

    def test_negative_minimum(self, four_rider_df):
        with pytest.raises(ValueError):
            RosterOptimizer(four_rider_df, team_size=2, budget=100, category_minima={"climber": -1})

    def test_missing_score(self, four_rider_df):
        four_rider_df.loc[2, "expected_points"] = float("nan")
        with pytest.raises(ValueError):
            RosterOptimizer(four_rider_df, team_size=2, budget=100).optimize()


class TestRosterOutput:
    """Serialisation and display."""

    def test_to_dict(self, four_rider_df):
        result = RosterOptimizer(four_rider_df, team_size=2, budget=50).optimize()
        data = result.to_dict()
        assert data["total_cost"] == 45
        assert set(data["selected"]) == {"r20", "r25"}

    def test_infeasible_to_dict(self):
        data = Infeasible(reason="no climbers").to_dict()
        assert data == {"infeasible": True, "reason": "no climbers", "status": PRECONDITION_STATUS}

    def test_print_roster(self, four_rider_df, capsys):
        RosterOptimizer(four_rider_df, team_size=2, budget=50).optimize().print_roster()
        out = capsys.readouterr().out
        assert "ROSTER" in out
        assert "TwentyFive" in out
