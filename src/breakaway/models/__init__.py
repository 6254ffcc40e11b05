"""Models module - strength estimation, race simulation, scoring aggregation, roster optimization.

This module contains:
- strength: Bayesian fusion of rider signals into a strength posterior
- simulation: Monte Carlo finishing orders (block-parallel, seed-stable)
- expected_points: Finish/assist/breakaway expected points from simulations
- roster: Roster selection (PuLP binary integer program)
"""

from breakaway.models.strength import (
    BayesianPosterior,
    StrengthConfig,
    StrengthEstimator,
    bayesian_update,
    estimate,
)
from breakaway.models.simulation import RaceSimulator, position_probabilities
from breakaway.models.expected_points import (
    BreakawayConfig,
    ExpectedPoints,
    ExpectedPointsAggregator,
    aggregate,
    estimate_breakaway_points,
)
from breakaway.models.roster import (
    Infeasible,
    RosterOptimizer,
    RosterSelection,
    select_roster,
)

__all__ = [
    # Strength
    "BayesianPosterior",
    "StrengthConfig",
    "StrengthEstimator",
    "bayesian_update",
    "estimate",
    # Simulation
    "RaceSimulator",
    "position_probabilities",
    # Expected points
    "BreakawayConfig",
    "ExpectedPoints",
    "ExpectedPointsAggregator",
    "aggregate",
    "estimate_breakaway_points",
    # Roster
    "RosterOptimizer",
    "RosterSelection",
    "Infeasible",
    "select_roster",
]
