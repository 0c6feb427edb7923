"""Tests for the season calendar."""

from collections import Counter
from datetime import date

import pytest

from fm_club.core.models import Competition
from fm_club.engine.calendar import (
    LEAGUE_ROUNDS,
    find_first_leg,
    fixtures_due,
    generate_league_fixtures,
    has_fixture_this_season,
    is_transfer_window_open,
    next_fixture_for,
    round_complete,
    season_date,
    season_fixtures,
    season_label,
    season_year_of,
)


@pytest.fixture
def league():
    team_ids = [f"t{i}" for i in range(18)]
    return team_ids, generate_league_fixtures(team_ids, 2025)


class TestSeasonYear:
    """Tests for season year arithmetic."""

    @pytest.mark.parametrize("day,year", [
        (date(2025, 7, 1), 2025),
        (date(2025, 12, 31), 2025),
        (date(2026, 1, 1), 2025),
        (date(2026, 6, 30), 2025),
    ])
    def test_season_year_of(self, day, year):
        assert season_year_of(day) == year

    def test_season_label(self):
        assert season_label(2025) == "2025/2026"

    def test_season_date_wraps_new_year(self):
        assert season_date(2025, 8, 8) == date(2025, 8, 8)
        assert season_date(2025, 3, 1) == date(2026, 3, 1)


class TestLeagueFixtures:
    """Tests for the double round robin."""

    def test_fixture_count(self, league):
        team_ids, fixtures = league
        assert len(fixtures) == 18 * 17
        assert max(f.week for f in fixtures) == LEAGUE_ROUNDS

    def test_every_team_plays_once_per_round(self, league):
        team_ids, fixtures = league
        for week in range(1, LEAGUE_ROUNDS + 1):
            in_round = [f for f in fixtures if f.week == week]
            playing = Counter()
            for fixture in in_round:
                playing[fixture.home_team_id] += 1
                playing[fixture.away_team_id] += 1
            assert set(playing) == set(team_ids)
            assert all(count == 1 for count in playing.values())

    def test_every_pairing_home_and_away(self, league):
        _, fixtures = league
        pairs = Counter((f.home_team_id, f.away_team_id) for f in fixtures)
        assert all(count == 1 for count in pairs.values())
        assert len(pairs) == 18 * 17

    def test_rounds_stay_inside_the_season(self, league):
        _, fixtures = league
        for fixture in fixtures:
            assert date(2025, 8, 1) <= fixture.date <= date(2026, 6, 30)
            assert season_year_of(fixture.date) == 2025

    def test_too_few_teams(self):
        assert generate_league_fixtures(["only"], 2025) == []


class TestTransferWindow:
    """Tests for window dates."""

    @pytest.mark.parametrize("day,is_open", [
        (date(2025, 7, 1), True),
        (date(2025, 8, 31), True),
        (date(2025, 9, 1), True),
        (date(2025, 9, 2), False),
        (date(2025, 12, 31), False),
        (date(2026, 1, 1), True),
        (date(2026, 2, 1), True),
        (date(2026, 2, 2), False),
    ])
    def test_window(self, day, is_open):
        assert is_transfer_window_open(day) is is_open


class TestFixtureQueries:
    """Tests for fixture lookups."""

    def test_season_fixtures_filters_week(self, league):
        _, fixtures = league
        week_one = season_fixtures(fixtures, 2025, [Competition.LEAGUE], week=1)
        assert len(week_one) == 9
        assert season_fixtures(fixtures, 2026, [Competition.LEAGUE]) == []

    def test_has_fixture_this_season(self, league):
        _, fixtures = league
        assert has_fixture_this_season(fixtures, 2025, Competition.LEAGUE, 1)
        assert not has_fixture_this_season(fixtures, 2026, Competition.LEAGUE, 1)
        assert not has_fixture_this_season(fixtures, 2025, Competition.CUP, 100)

    def test_round_complete(self, league):
        _, fixtures = league
        week_one = season_fixtures(fixtures, 2025, [Competition.LEAGUE], week=1)
        assert not round_complete(week_one)
        for fixture in week_one:
            fixture.record_result(1, 0)
        assert round_complete(week_one)
        assert not round_complete([])

    def test_fixtures_due_and_next(self, league):
        _, fixtures = league
        first_day = min(f.date for f in fixtures)
        assert fixtures_due(fixtures, date(2025, 7, 15)) == []
        assert all(f.date == first_day for f in fixtures_due(fixtures, first_day))

        upcoming = next_fixture_for(fixtures, "t0", date(2025, 7, 1))
        assert upcoming is not None
        assert upcoming.week == 1

    def test_find_first_leg(self, make_team, make_fixture):
        a = make_team("A FC", 75)
        b = make_team("B FC", 75)
        leg1 = make_fixture(a, b, date(2026, 3, 4), 211, Competition.EUROPE)
        leg2 = make_fixture(b, a, date(2026, 3, 11), 212, Competition.EUROPE)

        assert find_first_leg([leg1, leg2], leg2) is leg1
