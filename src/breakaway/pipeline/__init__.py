"""
Race Pipeline Module

Orchestrates a race from rider pool to selected roster.

Components:
    predict_expected_points - Signals -> strength -> simulation -> expected points
    RacePipeline            - Predict then select for a configured race
    form_weighted_score     - Simulation-free fallback score
"""

from breakaway.pipeline.predict import (
    form_weighted_score,
    predict_expected_points,
    round_predictions,
    to_prediction_records,
)
from breakaway.pipeline.runner import PipelineResult, RacePipeline

__all__ = [
    "predict_expected_points",
    "round_predictions",
    "to_prediction_records",
    "form_weighted_score",
    "RacePipeline",
    "PipelineResult",
]
