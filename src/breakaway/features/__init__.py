"""Features module - signal normalisation and tagged strength signals."""

from breakaway.features.normalizer import zscore, zscore_column
from breakaway.features.signals import (
    STAGE_RACE_RATING_WEIGHTS,
    Signal,
    SignalKind,
    blended_stage_rating,
    build_history_lookup,
    build_odds_lookup,
    implied_probabilities,
    odds_to_strength,
    order_signals,
    position_to_strength,
)

__all__ = [
    "zscore",
    "zscore_column",
    "Signal",
    "SignalKind",
    "order_signals",
    "position_to_strength",
    "implied_probabilities",
    "odds_to_strength",
    "build_history_lookup",
    "build_odds_lookup",
    "blended_stage_rating",
    "STAGE_RACE_RATING_WEIGHTS",
]
