"""Bayesian rider strength estimation.

Fuses a prior (external rating) with zero or more observations through
sequential normal-normal conjugate updates:

    precision_post = precision_prior + precision_obs
    mean_post      = (precision_prior * mean_prior + precision_obs * value) / precision_post
    variance_post  = 1 / precision_post

Signal order (broadest to most specific):
    1. External rating (prior)       wide variance, general ability
    2. Season form                   current Velogames points
    3. Race history                  past results in this race, most recent first
    4. Market odds                   the most precise signal when available

Absent signals are dropped before fusion, so a rider with no data keeps the
prior. Invalid variances raise; they are never clamped.

Key Classes:
    BayesianPosterior - Normal belief about strength (mean, variance)
    StrengthConfig - Variance hyperparameters and odds calibration
    StrengthEstimator - Builds ordered signals for a rider and fuses them
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from breakaway import config
from breakaway.features.signals import Signal, SignalKind, odds_to_strength, order_signals


def _check_variance(variance: float, what: str) -> None:
    try:
        value = float(variance)
    except (TypeError, ValueError):
        raise ValueError(f"{what} must be a number, got {variance!r}") from None
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"{what} must be positive and finite, got {variance!r}")


@dataclass(frozen=True)
class BayesianPosterior:
    """Normal belief about a rider's strength."""

    mean: float
    variance: float

    def __post_init__(self) -> None:
        if not math.isfinite(self.mean):
            raise ValueError(f"Posterior mean must be finite, got {self.mean}")
        _check_variance(self.variance, "Posterior variance")

    @property
    def std(self) -> float:
        return math.sqrt(self.variance)

    @property
    def precision(self) -> float:
        return 1.0 / self.variance


def bayesian_update(
    prior: BayesianPosterior,
    observation: float,
    obs_variance: float,
) -> BayesianPosterior:
    """Update a normal prior with one observation (normal-normal conjugate)."""
    _check_variance(obs_variance, "Observation variance")
    if not math.isfinite(observation):
        raise ValueError(f"Observation must be finite, got {observation!r}")

    obs_precision = 1.0 / obs_variance
    post_precision = prior.precision + obs_precision
    post_mean = (prior.precision * prior.mean + obs_precision * observation) / post_precision
    return BayesianPosterior(post_mean, 1.0 / post_precision)


Observation = Union[Signal, Tuple[float, float]]


def estimate(
    prior_value: float,
    prior_variance: float,
    observations: Iterable[Observation] = (),
) -> BayesianPosterior:
    """Fold observations into a prior, in the order given.

    Args:
        prior_value: Prior mean.
        prior_variance: Prior variance (must be positive).
        observations: Signals or (value, variance) pairs. Only genuinely
            present observations may be passed.

    Returns:
        The posterior. With no observations this is exactly the prior.
    """
    _check_variance(prior_variance, "Prior variance")
    posterior = BayesianPosterior(float(prior_value), float(prior_variance))
    for obs in observations:
        if isinstance(obs, Signal):
            posterior = bayesian_update(posterior, obs.value, obs.variance)
        else:
            value, variance = obs
            posterior = bayesian_update(posterior, float(value), variance)
    return posterior


@dataclass(frozen=True)
class StrengthConfig:
    """Hyperparameters of the strength model.

    These materially change predictions and are exposed for calibration and
    backtesting. Defaults come from breakaway.config.

    Attributes:
        rating_variance: Prior variance of the external rating.
        form_variance: Observation variance of season form.
        hist_base_variance: Variance of a race history result from this year.
        hist_decay_rate: Extra variance per year of age (1yr = 1.5, 2yr = 2.0 by default).
        odds_variance: Observation variance of the market odds signal.
        odds_normalisation: Divisor scaling log-odds onto the z-score range.
    """

    rating_variance: float = field(default_factory=lambda: config.RATING_VARIANCE)
    form_variance: float = field(default_factory=lambda: config.FORM_VARIANCE)
    hist_base_variance: float = field(default_factory=lambda: config.HIST_BASE_VARIANCE)
    hist_decay_rate: float = field(default_factory=lambda: config.HIST_DECAY_RATE)
    odds_variance: float = field(default_factory=lambda: config.ODDS_VARIANCE)
    odds_normalisation: float = field(default_factory=lambda: config.ODDS_NORMALISATION)

    def __post_init__(self) -> None:
        _check_variance(self.rating_variance, "rating_variance")
        _check_variance(self.form_variance, "form_variance")
        _check_variance(self.hist_base_variance, "hist_base_variance")
        _check_variance(self.odds_variance, "odds_variance")
        _check_variance(self.odds_normalisation, "odds_normalisation")
        if not math.isfinite(self.hist_decay_rate) or self.hist_decay_rate < 0:
            raise ValueError(f"hist_decay_rate must be non-negative, got {self.hist_decay_rate}")

    def history_variance(self, years_ago: int) -> float:
        """Older results are fuzzier: base + decay * age."""
        if years_ago < 0:
            raise ValueError(f"years_ago must be non-negative, got {years_ago}")
        return self.hist_base_variance + self.hist_decay_rate * years_ago


class StrengthEstimator:
    """Estimate rider strength from the available signals.

    Example:
        >>> estimator = StrengthEstimator()
        >>> post = estimator.estimate_rider(rating=1.2, form=0.8,
        ...                                 history=[(2.1, 1)], odds_prob=0.05,
        ...                                 n_starters=150)
        >>> post.mean, post.std
    """

    def __init__(self, strength_config: Optional[StrengthConfig] = None) -> None:
        self.config = strength_config or StrengthConfig()

    def build_signals(
        self,
        form: Optional[float] = None,
        history: Sequence[Tuple[float, int]] = (),
        odds_prob: Optional[float] = None,
        n_starters: int = 150,
    ) -> List[Signal]:
        """Build the ordered observation signals for one rider.

        A form z-score of exactly 0.0 (the normaliser's "no data" value) and
        a missing or zero odds probability are not observations and are left out.
        """
        signals: List[Signal] = []

        if form is not None and not math.isnan(form) and form != 0.0:
            signals.append(Signal(SignalKind.SEASONAL_FORM, float(form), self.config.form_variance))

        for strength, years_ago in history:
            signals.append(
                Signal(
                    SignalKind.RACE_HISTORY,
                    float(strength),
                    self.config.history_variance(int(years_ago)),
                    age=int(years_ago),
                )
            )

        if odds_prob is not None and not math.isnan(odds_prob) and odds_prob > 0.0:
            value = odds_to_strength(odds_prob, n_starters, self.config.odds_normalisation)
            signals.append(Signal(SignalKind.MARKET_ODDS, value, self.config.odds_variance))

        return order_signals(signals)

    def estimate_rider(
        self,
        rating: Optional[float] = None,
        form: Optional[float] = None,
        history: Sequence[Tuple[float, int]] = (),
        odds_prob: Optional[float] = None,
        n_starters: int = 150,
    ) -> BayesianPosterior:
        """Posterior strength for one rider.

        Args:
            rating: External rating z-score (prior mean; missing = 0).
            form: Season form z-score.
            history: (strength, years_ago) pairs from past editions.
            odds_prob: Overround-normalised implied win probability.
            n_starters: Expected field size, used to scale odds.
        """
        prior_mean = 0.0 if rating is None or math.isnan(rating) else float(rating)
        signals = self.build_signals(form=form, history=history, odds_prob=odds_prob, n_starters=n_starters)
        return estimate(prior_mean, self.config.rating_variance, signals)
