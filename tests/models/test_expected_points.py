"""Tests for expected points aggregation.

CONTRACT:
    - Finish points averaged over trials via the table
    - Assist points credited to teammates (not the rider) of the top 3
    - Breakaway points from a separate pass, zero when the table has none
    - Streaming block accumulation equals the materialised computation
"""

import numpy as np
import pytest

from breakaway.models.expected_points import (
    BreakawayConfig,
    ExpectedPointsAggregator,
    aggregate,
    estimate_breakaway_points,
)
from breakaway.models.simulation import RaceSimulator
from breakaway.scoring.tables import SCORING_CAT1, SCORING_STAGE, ScoringTable


SMALL_TABLE = ScoringTable(finish_points=(10, 5, 2), assist_points=(3, 2, 1))

# Riders 0 and 1 are teammates; rider 2 rides alone
TEAMS = ["A", "A", "B"]

# Trial 0: 1-2-3; trial 1: rider 1 wins, rider 2 second, rider 0 third
POSITIONS = np.array([
    [1, 3],
    [2, 1],
    [3, 2],
])


class TestFinishAndAssist:
    """Hand-computed two-trial race."""

    def test_finish_points(self):
        points = aggregate(POSITIONS, TEAMS, SMALL_TABLE)
        assert np.allclose(points.finish, [6.0, 7.5, 3.5])

    def test_assist_points_go_to_teammates(self):
        points = aggregate(POSITIONS, TEAMS, SMALL_TABLE)
        # rider 0: teammate 2nd (2) in trial 0, teammate won (3) in trial 1
        # rider 1: teammate won (3) in trial 0, teammate 3rd (1) in trial 1
        assert np.allclose(points.assist, [2.5, 2.0, 0.0])

    def test_no_assist_for_own_result(self):
        """A rider alone on their team never earns assists."""
        points = aggregate(POSITIONS, ["A", "B", "C"], SMALL_TABLE)
        assert np.allclose(points.assist, 0.0)

    def test_missing_team_is_not_a_team(self):
        points = aggregate(POSITIONS, [None, None, "B"], SMALL_TABLE)
        assert np.allclose(points.assist, 0.0)

    def test_total_is_sum_of_components(self):
        points = aggregate(POSITIONS, TEAMS, SMALL_TABLE)
        assert np.allclose(points.total, points.finish + points.assist + points.breakaway)
        frame = points.to_frame()
        assert list(frame.columns) == [
            "expected_finish_pts",
            "expected_assist_pts",
            "expected_breakaway_pts",
            "expected_points",
        ]

    def test_positions_beyond_table_score_zero(self):
        positions = np.arange(1, 41).reshape(40, 1)
        points = aggregate(positions, [f"T{i}" for i in range(40)], SCORING_CAT1)
        assert points.finish[0] == 600
        assert np.all(points.finish[30:] == 0)


class TestAggregatorStreaming:
    """Block accumulation."""

    def test_blocks_equal_full_matrix(self):
        means = np.linspace(2, -2, 12)
        stds = np.ones(12)
        teams = [f"T{i % 4}" for i in range(12)]
        sim = RaceSimulator(n_trials=900, seed=3, block_size=200)

        agg = ExpectedPointsAggregator(teams, SCORING_CAT1)
        for block in sim.iter_blocks(means, stds):
            agg.accumulate(block)
        streamed = agg.result()

        full = aggregate(sim.simulate(means, stds), teams, SCORING_CAT1)
        assert streamed.n_trials == 900
        assert np.allclose(streamed.finish, full.finish)
        assert np.allclose(streamed.assist, full.assist)

    def test_result_without_trials_raises(self):
        with pytest.raises(ValueError):
            ExpectedPointsAggregator(TEAMS, SMALL_TABLE).result()

    def test_wrong_block_shape_raises(self):
        agg = ExpectedPointsAggregator(TEAMS, SMALL_TABLE)
        with pytest.raises(ValueError):
            agg.accumulate(np.ones((2, 5), dtype=np.int32))


class TestBreakaway:
    """Sector step function and the separate pass."""

    def test_default_bands(self):
        sectors = BreakawayConfig().sectors_by_position(70)
        assert sectors[1] == 2 and sectors[14] == 2
        assert sectors[15] == 3 and sectors[19] == 3
        assert sectors[20] == 4
        assert sectors[21] == 3 and sectors[30] == 3
        assert sectors[31] == 2 and sectors[50] == 2
        assert sectors[51] == 1 and sectors[60] == 1
        assert sectors[61] == 0 and sectors[70] == 0

    def test_invalid_band_raises(self):
        with pytest.raises(ValueError):
            BreakawayConfig(bands=((10, 5, 1),))

    def test_breakaway_points_from_positions(self):
        positions = np.arange(1, 62).reshape(61, 1)
        teams = [f"T{i}" for i in range(61)]
        points = aggregate(positions, teams, SCORING_CAT1, breakaway_positions=positions)
        assert np.isclose(points.breakaway[0], 120.0)
        assert np.isclose(points.breakaway[19], 240.0)
        assert np.isclose(points.breakaway[60], 0.0)

    def test_capped_by_table_sectors(self):
        table = ScoringTable(finish_points=(10,), assist_points=(0, 0, 0), breakaway_points=10, n_sectors=2)
        positions = np.arange(1, 21).reshape(20, 1)
        points = aggregate(positions, [f"T{i}" for i in range(20)], table, breakaway_positions=positions)
        assert np.isclose(points.breakaway[0], 20.0)
        assert np.isclose(points.breakaway[19], 20.0)

    def test_stage_table_has_no_breakaway_pass(self):
        sim = RaceSimulator(n_trials=50, seed=1)
        result = estimate_breakaway_points([1.0, 0.0], [1.0, 1.0], SCORING_STAGE, sim)
        assert np.array_equal(result, np.zeros(2))

    def test_separate_pass_is_reproducible(self):
        means, stds = np.linspace(1, -1, 30), np.ones(30)
        a = estimate_breakaway_points(means, stds, SCORING_CAT1, RaceSimulator(n_trials=300, seed=4, stream=1))
        b = estimate_breakaway_points(means, stds, SCORING_CAT1, RaceSimulator(n_trials=300, seed=4, stream=1))
        assert np.array_equal(a, b)
        assert np.all(a >= 0) and np.all(a <= 4 * 60)
