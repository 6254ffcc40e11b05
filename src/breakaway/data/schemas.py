"""Pydantic schemas for rider pools, scoring tables and prediction output.

Defines the validated shapes the prediction core consumes from the data
acquisition layer, and the records it hands to reporting.

Models:
    CompetitorSchema - One rider in the selection pool
    ScoringTableSchema - Structured scoring rules for one race category
    PredictionRecord - Per-rider prediction output
    HistoryRowSchema - One past result of a rider in this race
    OddsRowSchema - Decimal betting odds for one rider

Usage:
    from breakaway.data.schemas import CompetitorSchema

    rider = CompetitorSchema.model_validate(row)
    print(rider.key, rider.category)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from breakaway.config import CATEGORIES


def normalise_category(raw: Any) -> Optional[str]:
    """Map a raw class label ("All Rounder", "CLIMBER", "none") to a category.

    Returns None for missing labels and for formats without categories.
    Unknown labels raise ValueError rather than silently becoming unclassed.
    """
    if raw is None:
        return None
    if isinstance(raw, float) and raw != raw:  # NaN from pandas
        return None
    label = str(raw).replace(" ", "").replace("-", "").lower()
    if label in ("", "none", "nan"):
        return None
    if label not in CATEGORIES:
        raise ValueError(f"Unknown rider category: {raw!r}. Expected one of {CATEGORIES}")
    return label


class CompetitorSchema(BaseModel):
    """Rider in the selection pool."""

    key: str = Field(min_length=1)
    name: str
    team: str
    cost: int = Field(gt=0)
    category: Optional[str] = None
    signals: Dict[str, Optional[float]] = Field(default_factory=dict)

    @field_validator("category", mode="before")
    @classmethod
    def _normalise_category(cls, value: Any) -> Optional[str]:
        return normalise_category(value)

    @field_validator("signals", mode="before")
    @classmethod
    def _nan_to_none(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {
                k: (None if isinstance(v, float) and v != v else v)
                for k, v in value.items()
            }
        return value


class ScoringTableSchema(BaseModel):
    """Scoring rules as structured data (e.g. loaded from JSON)."""

    finish_points: List[int] = Field(min_length=1)
    assist_points: List[int] = Field(min_length=3, max_length=3)
    breakaway_points: int = Field(default=0, ge=0)
    n_sectors: int = Field(default=4, ge=0)


class HistoryRowSchema(BaseModel):
    """A rider's finishing position in a past edition of the race."""

    key: str
    year: int
    position: int


class OddsRowSchema(BaseModel):
    """Decimal odds for a rider to win."""

    key: str
    odds: float = Field(gt=1.0)


class PredictionRecord(BaseModel):
    """Per-rider prediction handed to reporting and backtesting."""

    key: str
    strength_mean: float
    strength_variance: float = Field(gt=0)
    expected_score_total: float
    expected_score_finish: float
    expected_score_assist: float
    expected_score_bonus: float
