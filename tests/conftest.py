"""Pytest fixtures/config for The Breakaway tests."""

import os
import sys

import pandas as pd
import pytest


def pytest_sessionstart(session) -> None:  # type: ignore[unused-argument]
    repo_root = os.path.dirname(os.path.dirname(__file__))
    src_path = os.path.join(repo_root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


def _build_pool_df(n_teams: int = 6, riders_per_team: int = 4) -> pd.DataFrame:
    """Small one-day pool: team leaders are strong and expensive.

    The expected columns are:
    - key: unique str
    - name, team: str
    - cost: int credits
    - category: allrounder / climber / sprinter / unclassed
    - rating, form: raw signal values (higher = better)
    """
    categories = ["allrounder", "climber", "sprinter", "unclassed"]
    riders = []
    for t in range(n_teams):
        for r in range(riders_per_team):
            riders.append({
                "key": f"rider-{t}-{r}",
                "name": f"Rider {t}-{r}",
                "team": f"Team{t}",
                "cost": 24 - 6 * r if r < 3 else 4,
                "category": categories[(t + r) % 4],
                "rating": 1000.0 - 150 * r - 20 * t,
                "form": 500.0 - 100 * r - 10 * t,
            })
    return pd.DataFrame(riders)


@pytest.fixture
def pool_df():
    """Fixture providing a 24-rider pool across 6 teams."""
    return _build_pool_df()
