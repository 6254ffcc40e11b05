"""Scoring module - Velogames scoring tables, race schedule and points lookups."""

from breakaway.scoring.points import (
    assist_points,
    expected_assist_points,
    expected_breakaway_points,
    expected_finish_points,
    finish_points,
    sector_points,
)
from breakaway.scoring.tables import (
    SCORING_CAT1,
    SCORING_CAT2,
    SCORING_CAT3,
    SCORING_STAGE,
    SUPERCLASICO_RACES_2025,
    RaceInfo,
    ScoringTable,
    find_race,
    get_scoring,
    races_in_category,
)

__all__ = [
    # Tables
    "ScoringTable",
    "SCORING_CAT1",
    "SCORING_CAT2",
    "SCORING_CAT3",
    "SCORING_STAGE",
    "get_scoring",
    # Schedule
    "RaceInfo",
    "SUPERCLASICO_RACES_2025",
    "find_race",
    "races_in_category",
    # Points
    "finish_points",
    "assist_points",
    "sector_points",
    "expected_finish_points",
    "expected_assist_points",
    "expected_breakaway_points",
]
