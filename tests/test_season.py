"""Tests for the season state machine."""

from dataclasses import replace
from datetime import date, timedelta

import pytest

from fm_club.config import SimulationConfig
from fm_club.core.errors import FMClubError, GameOverError
from fm_club.core.models import Competition, LeagueId
from fm_club.core.models.match import CUP_FINAL_WEEK
from fm_club.engine.board_system import RESULT_TRUST_SWING
from fm_club.engine.calendar import has_fixture_this_season, season_fixtures, season_label
from fm_club.engine.season import (
    NEWS_LIMIT,
    SeasonEngine,
    reset_for_new_season,
    season_trophies,
    snapshot,
)


@pytest.fixture
def career(small_config):
    engine = SeasonEngine(seed=42, config=small_config)
    return engine, engine.new_game(manager_name="Tester")


@pytest.fixture(scope="module")
def full_season():
    """One complete season in a small world, played up to the rollover."""
    config = SimulationConfig(
        top_flight_teams=8,
        second_division_teams=8,
        foreign_teams=15,
        market_size=40,
    )
    engine = SeasonEngine(seed=42, config=config)
    state = engine.new_game()
    longest_feed = 0

    while state.current_date < date(2026, 7, 1):
        # Keep the manager in the job so the whole calendar is covered
        state.manager.board_trust = 100.0
        state.manager.fan_trust = 100.0
        state = engine.advance_one_day(state).state
        longest_feed = max(longest_feed, len(state.news))

    return engine, state, longest_feed


class TestNewGame:
    """Tests for starting a career."""

    def test_world_and_fixtures(self, career, small_config):
        engine, state = career

        assert state.current_date == small_config.start_date
        assert state.user_team.league_id == LeagueId.LEAGUE
        assert state.manager.name == "Tester"
        assert len(state.teams) == 8 + 8 + 15
        assert has_fixture_this_season(state.fixtures, 2025, Competition.LEAGUE, 1)
        assert has_fixture_this_season(state.fixtures, 2025, Competition.LEAGUE_1, 1)
        assert len(state.transfer_market) == 40
        assert state.news

    def test_named_club(self, small_config):
        engine = SeasonEngine(seed=42, config=small_config)
        world = engine.new_game()
        name = next(t.name for t in world.teams if t.league_id == LeagueId.LEAGUE_1)

        state = SeasonEngine(seed=42, config=small_config).new_game(team_name=name)

        assert state.user_team.name == name

    def test_unknown_or_foreign_club(self, career, small_config):
        _, state = career
        foreign = next(t.name for t in state.teams if t.league_id == LeagueId.EUROPE_LEAGUE)
        engine = SeasonEngine(seed=1, config=small_config)

        with pytest.raises(KeyError):
            engine.new_game(team_name="Nowhere Athletic")
        with pytest.raises(KeyError):
            engine.new_game(team_name=foreign)


class TestAdvanceOneDay:
    """Tests for the daily loop."""

    def test_input_state_is_untouched(self, career):
        engine, state = career
        start = state.current_date
        budget = state.user_team.budget
        news = list(state.news)

        result = engine.advance_one_day(state)

        assert state.current_date == start
        assert state.user_team.budget == budget
        assert state.news == news
        assert result.state.current_date == start + timedelta(days=1)
        assert result.state.teams is not state.teams

    def test_snapshot_shares_only_played_fixtures(self, career):
        _, state = career
        state.fixtures[0].record_result(1, 0)

        copy = snapshot(state)

        assert copy.fixtures[0] is state.fixtures[0]
        assert copy.fixtures[1] is not state.fixtures[1]
        assert copy.teams[0] is not state.teams[0]

    def test_training_once_per_day(self, career):
        engine, state = career

        assert engine.train_team(state)
        assert state.training_performed
        with pytest.raises(FMClubError):
            engine.train_team(state)

        state = engine.advance_one_day(state).state
        assert not state.training_performed
        engine.train_team(state)

    def test_user_fixture_waits_for_manager(self, career):
        engine, state = career
        fixture = min(
            (f for f in state.fixtures if f.involves(state.user_team_id)), key=lambda f: f.date
        )
        state = replace(state, current_date=fixture.date - timedelta(days=1))

        state = engine.advance_one_day(state).state
        waiting = next(f for f in state.fixtures if f.id == fixture.id)
        assert state.current_date == fixture.date
        assert not waiting.played
        fans = state.manager.fan_trust

        played = engine.play_user_fixtures(state)

        assert [f.id for f in played] == [fixture.id]
        assert waiting.played
        assert waiting.stats is not None
        assert state.manager.matches == 1
        # live results move the fans like holiday ones
        home = waiting.home_team_id == state.user_team_id
        scored = waiting.home_score if home else waiting.away_score
        conceded = waiting.away_score if home else waiting.home_score
        swing = RESULT_TRUST_SWING * ((scored > conceded) - (scored < conceded))
        assert state.manager.fan_trust == max(0.0, min(100.0, fans + swing))

    def test_dismissal_ends_the_career(self, career):
        engine, state = career
        state.manager.board_trust = 0.0

        result = engine.advance_one_day(state)

        assert result.game_over is not None
        assert result.state.game_over_reason == result.game_over.reason
        with pytest.raises(GameOverError):
            engine.train_team(result.state)
        with pytest.raises(GameOverError):
            engine.play_user_fixtures(result.state)

    def test_no_days_pass_after_dismissal(self, career):
        """A dismissed career is terminal: the calendar stops."""
        engine, state = career
        state.manager.board_trust = 0.0
        over = engine.advance_one_day(state).state
        stopped_on = over.current_date

        with pytest.raises(GameOverError):
            engine.advance_one_day(over)
        assert over.current_date == stopped_on


class TestFullSeason:
    """Tests over a whole simulated season."""

    def test_rollover_starts_new_season(self, full_season):
        _, state, _ = full_season

        assert state.current_date == date(2026, 7, 1)
        assert state.current_week == 1
        assert state.last_season_summary is not None
        assert state.last_season_summary.season == season_label(2025)
        assert len(state.season_history) == 1
        assert has_fixture_this_season(state.fixtures, 2026, Competition.LEAGUE, 1)

    def test_every_league_match_was_played(self, full_season):
        _, state, _ = full_season
        for competition in (Competition.LEAGUE, Competition.LEAGUE_1):
            fixtures = season_fixtures(state.fixtures, 2025, [competition])
            assert fixtures
            assert all(f.played for f in fixtures)

    def test_divisions_keep_their_size(self, full_season):
        _, state, _ = full_season
        assert sum(t.league_id == LeagueId.LEAGUE for t in state.teams) == 8
        assert sum(t.league_id == LeagueId.LEAGUE_1 for t in state.teams) == 8

    def test_players_stay_in_bounds(self, full_season):
        _, state, _ = full_season
        for team in state.teams:
            for player in team.players:
                assert 1 <= player.skill <= player.potential <= 99
                assert 0 <= player.condition <= 100
                assert 0 <= player.morale <= 100

    def test_news_feed_is_capped(self, full_season):
        _, _, longest_feed = full_season
        assert longest_feed <= NEWS_LIMIT

    def test_rollover_runs_once(self, full_season):
        """Replaying June 30 does not schedule the new season twice."""
        engine, state, _ = full_season
        count = len(state.fixtures)

        replayed = engine.advance_one_day(replace(state, current_date=date(2026, 6, 30))).state

        assert len(replayed.fixtures) == count
        assert len(replayed.season_history) == 1

    def test_dismissal_checked_on_rollover_day(self, full_season):
        """July 1 still ends with the board's verdict."""
        engine, state, _ = full_season
        doomed = replace(
            state,
            current_date=date(2026, 6, 30),
            manager=replace(state.manager, board_trust=0.0),
        )

        result = engine.advance_one_day(doomed)

        assert result.state.current_date == date(2026, 7, 1)
        assert result.game_over is not None
        assert result.state.game_over_reason == result.game_over.reason


class TestSeasonHelpers:
    """Tests for season-end bookkeeping."""

    def test_reset_ages_players_and_clears_records(self, make_team):
        team = make_team("Reset FC", 75)
        player = team.players[0]
        age = player.age
        player.season_stats.goals = 12
        player.suspensions["LEAGUE"] = 2
        team.stats.points = 70

        reset_for_new_season([team])

        assert player.age == age + 1
        assert player.season_stats.goals == 0
        assert player.suspensions == {}
        assert team.stats.points == 0

    def test_trophies_for_league_and_cup(self, make_team, make_fixture):
        winner = make_team("Double FC", 85)
        rival = make_team("Rival FC", 80)
        final = make_fixture(winner, rival, date(2026, 5, 20), CUP_FINAL_WEEK, Competition.CUP)
        final.record_result(2, 1)

        trophies = season_trophies(winner, [final], 2025, rank=1)

        assert trophies == ["League", "Cup"]
        assert season_trophies(rival, [final], 2025, rank=2) == []
