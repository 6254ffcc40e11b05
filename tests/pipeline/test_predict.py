"""Tests for the end-to-end prediction pipeline.

CONTRACT:
    - Output keeps every input rider and adds strength and points columns
    - Fixed seed -> identical predictions, whatever the worker count
    - A rider without signals keeps the prior
    - Stage races get no breakaway points
    - Reporting view is rounded on request; default output is full precision
    - Raw class labels are normalised; a missing class is unclassed
"""

import numpy as np
import pandas as pd
import pytest

from breakaway.config import setup_race
from breakaway.pipeline import (
    RacePipeline,
    form_weighted_score,
    predict_expected_points,
    to_prediction_records,
)
from breakaway.scoring import SCORING_CAT1, SCORING_STAGE


N_TRIALS = 600


class TestPredictExpectedPoints:
    """One-day prediction on the fixture pool."""

    def test_output_columns(self, pool_df):
        df = predict_expected_points(pool_df, SCORING_CAT1, n_trials=N_TRIALS, seed=42)
        assert len(df) == len(pool_df)
        for col in [
            "strength",
            "uncertainty",
            "strength_variance",
            "expected_finish_pts",
            "expected_assist_pts",
            "expected_breakaway_pts",
            "expected_points",
        ]:
            assert col in df.columns
        assert list(df["key"]) == list(pool_df["key"])

    def test_default_keeps_full_precision(self, pool_df):
        df = predict_expected_points(pool_df, SCORING_CAT1, n_trials=N_TRIALS, seed=42)
        records = to_prediction_records(df)
        assert records[0].strength_mean == df.loc[0, "strength"]
        assert not np.allclose(df["strength"], df["strength"].round(3))

    def test_output_rounded_for_reporting(self, pool_df):
        df = predict_expected_points(
            pool_df, SCORING_CAT1, n_trials=N_TRIALS, seed=42, round_output=True
        )
        assert np.allclose(df["strength"], df["strength"].round(3))
        assert np.allclose(df["expected_points"], df["expected_points"].round(1))

    def test_components_add_up(self, pool_df):
        df = predict_expected_points(
            pool_df, SCORING_CAT1, n_trials=N_TRIALS, seed=42, round_output=False
        )
        total = df["expected_finish_pts"] + df["expected_assist_pts"] + df["expected_breakaway_pts"]
        assert np.allclose(df["expected_points"], total)

    def test_reproducible_with_seed(self, pool_df):
        a = predict_expected_points(pool_df, SCORING_CAT1, n_trials=N_TRIALS, seed=7, round_output=False)
        b = predict_expected_points(pool_df, SCORING_CAT1, n_trials=N_TRIALS, seed=7, round_output=False)
        pd.testing.assert_frame_equal(a, b)

    def test_worker_count_does_not_change_output(self, pool_df):
        kwargs = dict(n_trials=2_500, seed=3, round_output=False)
        serial = predict_expected_points(pool_df, SCORING_CAT1, n_workers=1, **kwargs)
        parallel = predict_expected_points(pool_df, SCORING_CAT1, n_workers=3, **kwargs)
        pd.testing.assert_frame_equal(serial, parallel)

    def test_stronger_riders_score_more(self, pool_df):
        df = predict_expected_points(pool_df, SCORING_CAT1, n_trials=2_000, seed=1, round_output=False)
        leader = df.loc[df["key"] == "rider-0-0", "expected_points"].iloc[0]
        weakest = df.loc[df["key"] == "rider-5-3", "expected_points"].iloc[0]
        assert leader > weakest

    def test_rider_without_signals_keeps_prior(self, pool_df):
        pool_df.loc[0, ["rating", "form"]] = np.nan
        df = predict_expected_points(
            pool_df, SCORING_CAT1, n_trials=N_TRIALS, seed=42, round_output=False
        )
        assert df.loc[0, "strength"] == 0.0
        assert df.loc[0, "strength_variance"] == 4.0

    def test_odds_and_history_sharpen_estimate(self, pool_df):
        key = "rider-5-2"
        history = pd.DataFrame({"key": [key, key], "year": [2024, 2023], "position": [1, 2]})
        odds = pd.DataFrame({"key": [key, "rider-0-0"], "odds": [3.0, 5.0]})
        base = predict_expected_points(
            pool_df, SCORING_CAT1, n_trials=N_TRIALS, seed=42, current_year=2025, round_output=False
        )
        informed = predict_expected_points(
            pool_df, SCORING_CAT1, history_df=history, odds_df=odds,
            n_trials=N_TRIALS, seed=42, current_year=2025, round_output=False,
        )
        row = pool_df.index[pool_df["key"] == key][0]
        assert informed.loc[row, "strength"] > base.loc[row, "strength"]
        assert informed.loc[row, "strength_variance"] < base.loc[row, "strength_variance"]

    def test_stage_race_has_no_breakaway_points(self, pool_df):
        df = predict_expected_points(
            pool_df, SCORING_STAGE, n_trials=N_TRIALS, seed=42, race_type="stage"
        )
        assert (df["expected_breakaway_pts"] == 0).all()
        assert (df["expected_assist_pts"] == 0).all()

    def test_stage_race_with_missing_category(self, pool_df):
        pool_df["gc"] = pool_df["rating"]
        pool_df.loc[0, "category"] = np.nan
        df = predict_expected_points(
            pool_df, SCORING_STAGE, n_trials=200, seed=1, race_type="stage"
        )
        assert pd.isna(df["category"].iloc[0])
        assert np.isfinite(df["expected_points"]).all()

    def test_raw_category_labels_match_canonical(self, pool_df):
        pool_df["gc"] = pool_df["rating"]
        pool_df["climber"] = pool_df["form"]
        relabelled = pool_df.copy()
        relabelled["category"] = relabelled["category"].replace(
            {"allrounder": "All Rounder", "climber": "CLIMBER"}
        )
        kwargs = dict(n_trials=N_TRIALS, seed=5, race_type="stage")
        canonical = predict_expected_points(pool_df, SCORING_STAGE, **kwargs)
        raw = predict_expected_points(relabelled, SCORING_STAGE, **kwargs)
        pd.testing.assert_frame_equal(canonical, raw)

    def test_unknown_category_label_raises(self, pool_df):
        pool_df.loc[0, "category"] = "domestique"
        with pytest.raises(ValueError):
            predict_expected_points(pool_df, SCORING_CAT1, n_trials=N_TRIALS, seed=1)

    def test_invalid_inputs(self, pool_df):
        with pytest.raises(ValueError):
            predict_expected_points(pool_df, SCORING_CAT1, race_type="track")
        with pytest.raises(ValueError):
            predict_expected_points(pool_df.iloc[0:0], SCORING_CAT1)


class TestPredictionRecords:
    """Full-precision output records."""

    def test_records_match_frame(self, pool_df):
        df = predict_expected_points(
            pool_df, SCORING_CAT1, n_trials=N_TRIALS, seed=42, round_output=False
        )
        records = to_prediction_records(df)
        assert len(records) == len(df)
        first = records[0]
        assert first.key == df.loc[0, "key"]
        assert first.expected_score_total == df.loc[0, "expected_points"]
        assert first.expected_score_bonus == df.loc[0, "expected_breakaway_pts"]
        assert first.strength_variance > 0


class TestFormWeightedScore:
    """Simulation-free fallback score."""

    def test_weighting(self):
        df = pd.DataFrame({"form": [100.0, np.nan], "rating": [50.0, 80.0]})
        score = form_weighted_score(df, formweight=0.25)
        assert np.allclose(score, [0.25 * 100 + 0.75 * 50, 0.75 * 80])

    def test_formweight_out_of_range(self):
        with pytest.raises(ValueError):
            form_weighted_score(pd.DataFrame({"form": [1.0]}), formweight=1.5)


class TestRacePipeline:
    """Predict then select."""

    def test_oneday_run(self, pool_df, tmp_path):
        race = setup_race("Roubaix", 2025)
        result = RacePipeline(race, n_trials=N_TRIALS, seed=42).run(pool_df)
        assert result.roster.feasible
        assert len(result.roster.selected) == race.team_size
        assert result.roster.total_cost <= race.budget

        path = result.save(tmp_path)
        report = pd.read_csv(path)
        assert report["selected"].sum() == race.team_size
        assert report["expected_points"].is_monotonic_decreasing

    def test_stage_run_meets_quotas(self, pool_df):
        race = setup_race("Tour de France", 2025, race_type="stage")
        result = RacePipeline(race, n_trials=N_TRIALS, seed=42).run(pool_df)
        assert result.roster.feasible
        counts = pd.Series([r["category"] for r in result.roster.riders]).value_counts()
        for category, minimum in race.category_minima.items():
            assert counts.get(category, 0) >= minimum

    def test_select_warns_when_quotas_exceed_budget(self, pool_df, caplog):
        race = setup_race("Tour de France", 2025, race_type="stage")
        predictions = pool_df.assign(expected_points=pool_df["rating"] / 10.0)
        predictions["cost"] = 30
        with caplog.at_level("WARNING", logger="breakaway.pipeline.runner"):
            roster = RacePipeline(race, n_trials=N_TRIALS, seed=42).select(predictions)
        assert not roster.feasible
        assert any("over the budget" in r.getMessage() for r in caplog.records)
