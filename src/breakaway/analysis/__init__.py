"""Analysis module - post-race review of predictions and rosters.

Re-exports for convenience:
    - cheapest_roster_beating, hindsight_roster (counterfactual rosters)
    - evaluate_predictions, PredictionDiagnostics (prediction quality)
    - review_roster, RosterReview (selected roster vs hindsight)
"""

from breakaway.analysis.retrospective import (
    PredictionDiagnostics,
    RosterReview,
    cheapest_roster_beating,
    evaluate_predictions,
    hindsight_roster,
    review_roster,
)

__all__ = [
    "cheapest_roster_beating",
    "hindsight_roster",
    "evaluate_predictions",
    "PredictionDiagnostics",
    "review_roster",
    "RosterReview",
]
