"""Rider pool loading and validation.

Converts the acquisition layer's records (lists of dicts or DataFrames) into a
validated pool DataFrame with one row per rider, flat signal columns and a
normalised category column.

Key Functions:
    load_pool - Validate records into a pool DataFrame
    validate_pool - Check an existing pool DataFrame
    check_category_availability - List category quota shortfalls
    quota_cost_summary - Cheapest cost of filling every category quota

Usage:
    from breakaway.data.pool import load_pool

    pool_df = load_pool(records)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import pandas as pd
from pydantic import ValidationError

from breakaway.data.schemas import CompetitorSchema, normalise_category

logger = logging.getLogger(__name__)

POOL_COLUMNS = ["key", "name", "team", "cost", "category"]


def load_pool(records: Union[pd.DataFrame, Iterable[Mapping[str, Any]]]) -> pd.DataFrame:
    """Validate rider records into a pool DataFrame.

    Each record needs key, name, team, cost and optionally category and a
    ``signals`` mapping. Signals are flattened into one column per source;
    absent signals are NaN.

    Raises:
        ValueError: On a schema violation (with the offending row) or duplicate keys.
    """
    if isinstance(records, pd.DataFrame):
        rows = records.to_dict("records")
    else:
        rows = list(records)

    riders: List[CompetitorSchema] = []
    for i, row in enumerate(rows):
        try:
            riders.append(CompetitorSchema.model_validate(row))
        except ValidationError as e:
            raise ValueError(f"Invalid rider record at row {i} ({row.get('key', '?')}): {e}") from e

    source_names: List[str] = []
    for rider in riders:
        for name in rider.signals:
            if name not in source_names:
                source_names.append(name)

    data: Dict[str, list] = {col: [] for col in POOL_COLUMNS + source_names}
    for rider in riders:
        data["key"].append(rider.key)
        data["name"].append(rider.name)
        data["team"].append(rider.team)
        data["cost"].append(rider.cost)
        data["category"].append(rider.category)
        for name in source_names:
            value = rider.signals.get(name)
            data[name].append(float("nan") if value is None else value)

    pool_df = pd.DataFrame(data)
    validate_pool(pool_df)
    logger.info(f"Loaded pool of {len(pool_df)} riders ({len(source_names)} signal sources)")
    return pool_df


def pool_from_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Validate a flat table (e.g. read from CSV) into a pool DataFrame.

    Every column other than key, name, team, cost and category is treated as
    a signal source.
    """
    missing = [c for c in ("key", "cost") if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    signal_cols = [c for c in df.columns if c not in POOL_COLUMNS]
    records = []
    for row in df.to_dict("records"):
        record = {c: row.get(c) for c in POOL_COLUMNS if c in row}
        record["key"] = str(row["key"])
        record.setdefault("name", record["key"])
        record["signals"] = {c: row[c] for c in signal_cols}
        records.append(record)
    return load_pool(records)


def validate_pool(pool_df: pd.DataFrame) -> None:
    """Ensure required columns exist, keys are unique and costs are positive whole credits.

    Raises:
        ValueError: On any violation.
    """
    missing = [c for c in ("key", "team", "cost") if c not in pool_df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    duplicated = pool_df["key"][pool_df["key"].duplicated()].unique().tolist()
    if duplicated:
        raise ValueError(f"Duplicate rider keys in pool: {duplicated}")

    if pool_df["cost"].isna().any():
        raise ValueError("Rider cost is missing for some riders")
    costs = pd.to_numeric(pool_df["cost"], errors="coerce")
    if costs.isna().any():
        raise ValueError("Rider cost must be numeric")
    invalid = (costs <= 0) | (costs != costs.round())
    if invalid.any():
        bad = pool_df.loc[invalid, "key"].tolist()
        raise ValueError(f"Costs must be positive whole credits, invalid for riders: {bad}")


def normalise_categories(series: pd.Series) -> pd.Series:
    """Normalise a raw class column ("All Rounder" -> "allrounder")."""
    return series.map(normalise_category)


def check_category_availability(
    pool_df: pd.DataFrame,
    category_minima: Mapping[str, int],
    category_col: str = "category",
) -> List[str]:
    """Return a message for every category with fewer riders than its quota.

    An empty list means every quota can be met by the pool.
    """
    if not category_minima:
        return []

    if category_col in pool_df.columns:
        counts = normalise_categories(pool_df[category_col]).value_counts()
    else:
        counts = pd.Series(dtype=int)

    shortfalls = []
    for category, minimum in category_minima.items():
        available = int(counts.get(category, 0))
        if available < minimum:
            shortfalls.append(
                f"Insufficient {category}: found {available}, need at least {minimum}"
            )
    return shortfalls


@dataclass
class QuotaCostSummary:
    """Availability and cheapest fill of each category quota.

    minimum_cost is None when some quota cannot be met at all.
    """

    counts: Dict[str, int]
    cheapest: Dict[str, List[int]] = field(default_factory=dict)
    minimum_cost: Optional[int] = None

    @property
    def feasible(self) -> bool:
        return self.minimum_cost is not None

    def fits_budget(self, budget: float) -> bool:
        """Whether the quota riders alone fit under the budget."""
        return self.feasible and self.minimum_cost <= budget


def quota_cost_summary(
    pool_df: pd.DataFrame,
    category_minima: Mapping[str, int],
    category_col: str = "category",
    cost_col: str = "cost",
) -> QuotaCostSummary:
    """Count riders per quota category and price the cheapest way to fill each quota.

    The minimum cost is a lower bound on any roster meeting the quotas: if
    it exceeds the budget, no roster can be feasible.
    """
    if category_col in pool_df.columns:
        categories = normalise_categories(pool_df[category_col])
    else:
        categories = pd.Series(None, index=pool_df.index, dtype=object)

    counts: Dict[str, int] = {}
    cheapest: Dict[str, List[int]] = {}
    feasible = True
    for category, minimum in category_minima.items():
        costs = pool_df.loc[categories == category, cost_col].dropna()
        counts[category] = int(len(costs))
        if minimum <= 0:
            cheapest[category] = []
            continue
        if len(costs) < minimum:
            feasible = False
            cheapest[category] = []
            continue
        cheapest[category] = [int(c) for c in costs.sort_values().iloc[:minimum]]

    minimum_cost = sum(sum(c) for c in cheapest.values()) if feasible else None
    return QuotaCostSummary(counts=counts, cheapest=cheapest, minimum_cost=minimum_cost)
