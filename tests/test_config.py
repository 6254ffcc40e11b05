"""Tests for race configuration presets."""

import pytest

from breakaway.config import (
    BUDGET,
    ONEDAY_TEAM_SIZE,
    STAGE_CATEGORY_MINIMA,
    STAGE_TEAM_SIZE,
    setup_race,
)


class TestSetupRace:
    """Standard team size, budget and scoring category."""

    def test_oneday_race_from_schedule(self):
        race = setup_race("Sanremo", year=2025)
        assert race.name == "Milano-Sanremo"
        assert race.category == 1
        assert race.team_size == ONEDAY_TEAM_SIZE == 6
        assert race.budget == BUDGET == 100
        assert race.category_minima == {}
        assert race.history_slug == "milano-sanremo"

    def test_stage_race_preset(self):
        race = setup_race("Tour de France", year=2025, race_type="stage")
        assert race.category == "stage"
        assert race.team_size == STAGE_TEAM_SIZE == 9
        assert race.category_minima == STAGE_CATEGORY_MINIMA
        assert sum(race.category_minima.values()) <= race.team_size

    def test_unknown_oneday_race(self):
        with pytest.raises(ValueError):
            setup_race("Tour de Nowhere")

    def test_unknown_race_type(self):
        with pytest.raises(ValueError):
            setup_race("Sanremo", race_type="track")
