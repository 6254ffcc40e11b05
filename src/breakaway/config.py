"""Centralized configuration for The Breakaway.

All paths, game constants, and model parameters in one place.
Environment variables can override defaults.

Path Constants:
    PROJECT_ROOT - Root directory of the project
    STORAGE_DIR - Storage for input tables and reports
    REPORTS_DIR - CLI output (selected rosters, prediction tables)

Game Constants:
    BUDGET - Velogames credit cap for a roster
    ONEDAY_TEAM_SIZE / STAGE_TEAM_SIZE - riders per roster
    STAGE_CATEGORY_MINIMA - rider class quotas for stage races
    MAX_SCORED_POSITION - last finishing position that scores points

Environment Variables:
    BREAKAWAY_N_TRIALS - Override default Monte Carlo trial count
    BREAKAWAY_SEED - Default random seed (unset = non-deterministic)
    BREAKAWAY_N_WORKERS - Worker threads for trial blocks
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

# Project root (src/breakaway/config.py -> breakaway -> src -> project_root)
PROJECT_ROOT = Path(__file__).parent.parent.parent
STORAGE_DIR = PROJECT_ROOT / "storage"
REPORTS_DIR = STORAGE_DIR / "reports"


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return int(raw)


# Monte Carlo
DEFAULT_N_TRIALS = _env_int("BREAKAWAY_N_TRIALS", 10_000)
DEFAULT_SEED = _env_int("BREAKAWAY_SEED", None)
DEFAULT_N_WORKERS = _env_int("BREAKAWAY_N_WORKERS", 1)
DEFAULT_BLOCK_SIZE = 1_000

# Roster constraints
BUDGET = 100
ONEDAY_TEAM_SIZE = 6
STAGE_TEAM_SIZE = 9

# Rider classes (Velogames classification, normalised)
CATEGORIES = ("allrounder", "climber", "sprinter", "unclassed")

STAGE_CATEGORY_MINIMA: Dict[str, int] = {
    "allrounder": 2,
    "climber": 2,
    "sprinter": 1,
    "unclassed": 3,
}

# Scoring
MAX_SCORED_POSITION = 30
N_ASSIST_POSITIONS = 3
N_BREAKAWAY_SECTORS = 4

# Race history
HISTORY_MIN_FIELD_SIZE = 175  # classics and grand tours finish ~175 riders
DNF_POSITION = 999  # DNF/DNS/OTL code in result tables
HISTORY_MAX_VALID_POSITION = 900

# Strength model hyperparameters (see models.strength.StrengthConfig)
RATING_VARIANCE = 4.0
FORM_VARIANCE = 3.0
HIST_BASE_VARIANCE = 1.0
HIST_DECAY_RATE = 0.5
ODDS_VARIANCE = 0.5
ODDS_NORMALISATION = 2.0

# Race types
RACE_TYPES = ("oneday", "stage")


@dataclass(frozen=True)
class RaceConfig:
    """Settings for predicting and picking a single race.

    Attributes:
        name: Race identifier as given by the caller.
        year: Race year.
        race_type: "oneday" or "stage".
        team_size: Number of riders to select.
        budget: Credit cap for the roster.
        category: Scoring category (1, 2, 3) or "stage".
        category_minima: Rider class quotas (empty for one-day races).
        history_slug: Race identifier used to look up past editions ("" if unknown).
    """

    name: str
    year: int
    race_type: str
    team_size: int
    budget: int
    category: object
    category_minima: Dict[str, int]
    history_slug: str = ""


def setup_race(name: str, year: int = 2025, race_type: str = "oneday") -> RaceConfig:
    """Build a RaceConfig with standard team size, budget and scoring category.

    One-day races look up their scoring category in the classics schedule;
    stage races always use the aggregate stage table and class quotas.

    Raises:
        ValueError: If race_type is unknown, or a one-day race is not in the schedule.
    """
    if race_type not in RACE_TYPES:
        raise ValueError(f"Invalid race_type: {race_type!r}. Must be one of {RACE_TYPES}")

    if race_type == "stage":
        return RaceConfig(
            name=name,
            year=year,
            race_type="stage",
            team_size=STAGE_TEAM_SIZE,
            budget=BUDGET,
            category="stage",
            category_minima=dict(STAGE_CATEGORY_MINIMA),
        )

    from breakaway.scoring.tables import find_race

    race = find_race(name, year=year)
    if race is None:
        raise ValueError(f"Unknown one-day race: {name!r} ({year})")

    return RaceConfig(
        name=race.name,
        year=year,
        race_type="oneday",
        team_size=ONEDAY_TEAM_SIZE,
        budget=BUDGET,
        category=race.category,
        category_minima={},
        history_slug=race.history_slug,
    )
