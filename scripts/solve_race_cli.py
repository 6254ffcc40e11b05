#!/usr/bin/env python
"""Race Solver: CLI wrapper for the prediction pipeline.

Decision Rule: Maximize Σ(expected_points)
subject to roster size, budget and (stage races) class quotas.

Inputs are CSV files already produced by the data acquisition layer:
    pool:    key, name, team, cost, category, rating, form, ...
    history: key, year, position          (optional)
    odds:    key, odds (decimal)          (optional)

Usage:
    PYTHONPATH=src python scripts/solve_race_cli.py "Vlaanderen" --pool pool.csv
    PYTHONPATH=src python scripts/solve_race_cli.py "Tour de France" --race-type stage \\
        --pool pool.csv --history history.csv --seed 42
    PYTHONPATH=src python scripts/solve_race_cli.py "Roubaix" --pool pool.csv --formweight 0.5
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pandas as pd

from breakaway.config import REPORTS_DIR, setup_race
from breakaway.data.pool import pool_from_frame
from breakaway.models.roster import RosterOptimizer
from breakaway.pipeline import PipelineResult, RacePipeline, form_weighted_score


def _read_optional(path):
    if path is None:
        return None
    return pd.read_csv(path)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Predict a race and pick the Velogames roster")
    parser.add_argument("race", help="Race name (partial match against the schedule)")
    parser.add_argument("--pool", required=True, help="Rider pool CSV")
    parser.add_argument("--history", default=None, help="Race history CSV (key, year, position)")
    parser.add_argument("--odds", default=None, help="Betting odds CSV (key, odds)")
    parser.add_argument("--year", type=int, default=2025, help="Race year (default: 2025)")
    parser.add_argument("--race-type", choices=["oneday", "stage"], default="oneday")
    parser.add_argument("--trials", type=int, default=None, help="Monte Carlo trials (default: 10000)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible output")
    parser.add_argument("--workers", type=int, default=None, help="Threads for simulation blocks")
    parser.add_argument(
        "--formweight",
        type=float,
        default=None,
        help="Skip simulation; score riders by formweight*form + (1-formweight)*rating",
    )
    parser.add_argument("--output-dir", default=str(REPORTS_DIR), help="Where to save the report CSV")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("\n" + "=" * 70)
    print("RACE SOLVER")
    print("=" * 70)

    try:
        race = setup_race(args.race, year=args.year, race_type=args.race_type)
        pool_df = pool_from_frame(pd.read_csv(args.pool))
        history_df = _read_optional(args.history)
        odds_df = _read_optional(args.odds)

        if args.formweight is not None:
            pool_df["expected_points"] = form_weighted_score(pool_df, formweight=args.formweight)
            roster = RosterOptimizer(
                pool_df,
                team_size=race.team_size,
                budget=race.budget,
                category_minima=race.category_minima,
            ).optimize()
            result = PipelineResult(race=race, predictions=pool_df, roster=roster)
            mode = f"form-weighted (formweight={args.formweight})"
        else:
            pipeline = RacePipeline(race, n_trials=args.trials, seed=args.seed, n_workers=args.workers)
            result = pipeline.run(pool_df, history_df=history_df, odds_df=odds_df)
            mode = "monte carlo"
    except (ValueError, FileNotFoundError, RuntimeError) as e:
        print(f"ERROR: {e}")
        return 1

    print(f"\n🚴 {race.name} ({race.year}) | category {race.category}, {mode}")
    if not result.roster.feasible:
        print(f"No valid roster: {result.roster.reason} (status: {result.roster.status})")
        return 1

    result.roster.print_roster()
    output_path = result.save(Path(args.output_dir))
    print(f"\nSaved to {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
