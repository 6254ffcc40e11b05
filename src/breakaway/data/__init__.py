"""Data module - validated input records and prediction output shapes.

The core never fetches or caches data; it consumes rider pools, race
history and odds tables already materialised by the acquisition layer.
"""

from breakaway.data.pool import (
    QuotaCostSummary,
    check_category_availability,
    load_pool,
    normalise_categories,
    pool_from_frame,
    quota_cost_summary,
    validate_pool,
)
from breakaway.data.schemas import (
    CompetitorSchema,
    HistoryRowSchema,
    OddsRowSchema,
    PredictionRecord,
    ScoringTableSchema,
    normalise_category,
)

__all__ = [
    "load_pool",
    "pool_from_frame",
    "normalise_categories",
    "validate_pool",
    "check_category_availability",
    "quota_cost_summary",
    "QuotaCostSummary",
    "normalise_category",
    "CompetitorSchema",
    "HistoryRowSchema",
    "OddsRowSchema",
    "PredictionRecord",
    "ScoringTableSchema",
]
