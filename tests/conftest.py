"""Shared fixtures for FM Club tests."""

import random
from datetime import date

import pytest

from fm_club.config import SimulationConfig
from fm_club.core.models import Competition, Fixture, GameState, LeagueId, Position
from fm_club.data.generators import generate_player, generate_team


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def make_team():
    """Factory for a generated club of a given visible strength."""
    rng = random.Random(42)

    def _make(name="Test FC", strength=75, league_id=LeagueId.LEAGUE):
        return generate_team(rng, name, league_id, strength)

    return _make


@pytest.fixture
def make_player():
    rng = random.Random(7)

    def _make(position=Position.CM, skill=70, age=25, team_id=""):
        return generate_player(rng, position, skill, team_id, age)

    return _make


@pytest.fixture
def make_fixture():
    counter = {"n": 0}

    def _make(home, away, day=date(2025, 8, 8), week=1, competition=Competition.LEAGUE):
        counter["n"] += 1
        return Fixture(
            id=f"fx{counter['n']}",
            week=week,
            date=day,
            home_team_id=home.id,
            away_team_id=away.id,
            competition_id=competition,
        )

    return _make


@pytest.fixture
def small_config():
    """A smaller world that keeps full-season tests quick."""
    return SimulationConfig(
        top_flight_teams=8,
        second_division_teams=8,
        foreign_teams=15,
        market_size=40,
    )


@pytest.fixture
def two_team_state(make_team):
    """User club and one rival in an open summer window."""
    user = make_team("User FC", 75)
    rival = make_team("Rival FC", 75)
    return GameState(
        current_date=date(2025, 7, 10),
        user_team_id=user.id,
        teams=[user, rival],
    )
