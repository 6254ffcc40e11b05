"""
The Breakaway - Expected points and roster selection for cycling fantasy games

Predict each rider's expected Velogames points for a race, then pick the
roster that maximizes total expected points under the game's rules.

Structure:
    data/       - Input schemas and pool validation
    features/   - Signal normalisation and signal builders
    scoring/    - Scoring tables, race schedule, points lookups
    models/     - Strength estimation, simulation, aggregation, roster LP
    pipeline/   - End-to-end predict -> select workflow
    analysis/   - Retrospective (counterfactual) analysis

Usage:
    from breakaway.pipeline import RacePipeline, predict_expected_points
    from breakaway.models import RosterOptimizer
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
