"""Tests for the minute-by-minute match engine."""

import math
from datetime import date
from unittest.mock import MagicMock

from fm_club.core.models import Competition, MatchEvent, MatchEventType
from fm_club.engine.match_engine import (
    MatchSimulator,
    PitchState,
    aggregate_score,
    calculate_odds,
    live_possession,
    pick_lineup,
    requires_shootout,
)


class TestMatchSimulation:
    """Tests for full match simulation."""

    def test_match_produces_consistent_result(self, make_team):
        """Goals in the event list add up to the final score."""
        home = make_team("Home FC", 78)
        away = make_team("Away FC", 72)
        result = MatchSimulator(seed=42).simulate_match(home, away)

        home_goals = sum(
            1 for e in result.events
            if e.event_type == MatchEventType.GOAL and e.team_id == home.id
        )
        away_goals = sum(
            1 for e in result.events
            if e.event_type == MatchEventType.GOAL and e.team_id == away.id
        )
        assert (home_goals, away_goals) == (result.home_score, result.away_score)
        assert len(result.home_lineup) == 11
        assert len(result.away_lineup) == 11
        assert result.stats is not None
        assert result.stats.home_possession + result.stats.away_possession == 100

    def test_same_seed_same_match(self, make_team):
        """Simulation is deterministic for a fixed seed."""
        home = make_team("Home FC", 78)
        away = make_team("Away FC", 72)

        first = MatchSimulator(seed=42).simulate_match(home, away)
        second = MatchSimulator(seed=42).simulate_match(home, away)

        assert (first.home_score, first.away_score) == (second.home_score, second.away_score)
        assert len(first.events) == len(second.events)

    def test_stronger_side_wins_most_matches(self, make_team):
        """A 90-rated side beats a 60-rated side well over half the time."""
        strong = make_team("Strong FC", 90)
        weak = make_team("Weak FC", 60)
        sim = MatchSimulator(seed=42)

        wins = 0
        for i in range(1000):
            if i % 2 == 0:
                result = sim.simulate_match(strong, weak)
                wins += result.home_score > result.away_score
            else:
                result = sim.simulate_match(weak, strong)
                wins += result.away_score > result.home_score

        assert wins / 1000 > 0.6

    def test_league_match_never_goes_to_penalties(self, make_team):
        home = make_team("Home FC", 75)
        away = make_team("Away FC", 75)
        sim = MatchSimulator(seed=42)

        for _ in range(30):
            result = sim.simulate_match(home, away)
            assert result.pk_home is None
            assert not result.went_to_penalties

    def test_knockout_draw_goes_to_shootout(self, make_team):
        """Level knockout ties always end with a shootout winner."""
        home = make_team("Home FC", 75)
        away = make_team("Away FC", 75)
        sim = MatchSimulator(seed=42)

        for _ in range(60):
            result = sim.simulate_match(home, away, knockout=True)
            if result.home_score == result.away_score:
                assert result.pk_home is not None
                assert result.pk_home != result.pk_away
            else:
                assert result.pk_home is None

    def test_background_match_has_no_fights_or_invasions(self, make_team):
        """Background mode records fights as red cards and drops invasions."""
        home = make_team("Home FC", 75)
        away = make_team("Away FC", 75)
        sim = MatchSimulator(seed=42)

        for _ in range(50):
            result = sim.simulate_match(home, away, background=True)
            kinds = {e.event_type for e in result.events}
            assert MatchEventType.FIGHT not in kinds
            assert MatchEventType.ARGUMENT not in kinds
            assert MatchEventType.PITCH_INVASION not in kinds

    def test_penalty_event_is_followed_by_outcome(self, make_team):
        """Every awarded penalty is immediately resolved as a goal or a miss."""
        home = make_team("Home FC", 80)
        away = make_team("Away FC", 70)
        sim = MatchSimulator(seed=42)

        for _ in range(80):
            events = sim.simulate_match(home, away).events
            for index, event in enumerate(events):
                if event.event_type != MatchEventType.PENALTY:
                    continue
                outcome = events[index + 1]
                assert outcome.event_type in (MatchEventType.GOAL, MatchEventType.MISS)
                assert outcome.penalty_scored is not None


class TestShootout:
    """Tests for penalty shootouts."""

    def test_shootout_never_level(self):
        sim = MatchSimulator(seed=42)
        for _ in range(200):
            home, away = sim.simulate_shootout(75, 75)
            assert home != away

    def test_two_leg_aggregate_draw_requires_shootout(self, make_team, make_fixture):
        """A 1-1 aggregate after the second leg is settled on penalties."""
        a = make_team("A FC", 75)
        b = make_team("B FC", 75)
        first_leg = make_fixture(a, b, date(2026, 3, 4), 210, Competition.EUROPE)
        first_leg.record_result(1, 0)

        # b hosts the second leg; 1-0 to b levels the tie
        assert requires_shootout(1, 0, knockout=True, first_leg=first_leg)
        assert not requires_shootout(2, 0, knockout=True, first_leg=first_leg)
        assert not requires_shootout(1, 0, knockout=False, first_leg=first_leg)

    def test_second_leg_shootout_has_winner(self, make_team, make_fixture):
        """Simulated second legs that finish level on aggregate have a shootout."""
        a = make_team("A FC", 75)
        b = make_team("B FC", 75)
        first_leg = make_fixture(a, b, date(2026, 3, 4), 209, Competition.EUROPE)
        first_leg.record_result(1, 1)
        sim = MatchSimulator(seed=42)

        for _ in range(40):
            result = sim.simulate_match(b, a, knockout=True, first_leg=first_leg)
            if result.home_score == result.away_score:
                assert result.pk_home is not None
                assert result.pk_home != result.pk_away

    def test_aggregate_uses_reversed_first_leg(self, make_team, make_fixture):
        a = make_team("A FC", 75)
        b = make_team("B FC", 75)
        first_leg = make_fixture(a, b, date(2026, 3, 4), 209, Competition.EUROPE)
        first_leg.record_result(3, 1)
        second_leg = make_fixture(b, a, date(2026, 3, 11), 210, Competition.EUROPE)
        second_leg.record_result(2, 0)

        assert aggregate_score(second_leg, first_leg) == (3, 3)


class TestOddsAndPossession:
    """Tests for pre-match odds and live possession."""

    def test_favourite_has_shorter_odds(self, make_team):
        strong = make_team("Strong FC", 85)
        weak = make_team("Weak FC", 65)

        odds = calculate_odds(strong, weak)

        assert odds.home < odds.away
        assert min(odds.home, odds.draw, odds.away) >= 1.01

    def test_stronger_home_side_is_shorter_priced(self, make_team):
        strong = make_team("Strong FC", 85)
        weak = make_team("Weak FC", 65)

        odds = calculate_odds(strong, weak)

        assert odds.home < odds.draw
        assert odds.home < calculate_odds(weak, strong).home

    def test_zero_strength_gives_finite_prices(self):
        """No strength on either side is priced as an even match."""
        home = MagicMock(strength=-5.0)
        away = MagicMock(strength=0.0)

        odds = calculate_odds(home, away)

        assert all(math.isfinite(p) for p in (odds.home, odds.draw, odds.away))
        assert odds.home == odds.away == 3.2
        assert odds.draw == 3.73
        assert str(odds) == "3.20 / 3.73 / 3.20"

    def test_home_side_gets_advantage(self, make_team):
        """Equal sides: the home team is the favourite."""
        a = make_team("A FC", 75)
        b = make_team("B FC", 75)

        odds = calculate_odds(a, b)

        assert odds.home < odds.away

    def test_possession_is_clamped(self):
        assert live_possession(99, 1, (0, 0)) == 80
        assert live_possession(1, 99, (0, 0)) == 20

    def test_leading_side_concedes_possession(self):
        assert live_possession(75, 75, (2, 0)) == 46


class TestSimulateMinute:
    def test_one_event_at_most_per_minute(self, make_team):
        home = make_team("Home FC", 75)
        away = make_team("Away FC", 75)
        sim = MatchSimulator(seed=42)
        events = []

        for minute in range(1, 91):
            event = sim.simulate_minute(minute, home, away, (0, 0), events)
            if event is not None:
                assert event.minute == minute
                assert event.team_id in (home.id, away.id)
                events.append(event)

        assert events


class TestPitchState:
    """Tests for in-match availability."""

    def test_second_injury_event_takes_player_off(self):
        one = [MatchEvent(10, MatchEventType.INJURY, "t", "p1")]
        two = one + [MatchEvent(50, MatchEventType.INJURY, "t", "p1")]

        assert "p1" not in PitchState.from_events(one).unavailable()
        assert "p1" in PitchState.from_events(two).unavailable()

    def test_red_card_sends_player_off(self):
        events = [MatchEvent(30, MatchEventType.CARD_RED, "t", "p2")]
        assert "p2" in PitchState.from_events(events).unavailable()

    def test_lineup_skips_suspended_players(self, make_team):
        team = make_team("Lineup FC", 75)
        banned = team.players[0]
        banned.suspensions["LEAGUE"] = 1

        lineup = pick_lineup(team, "LEAGUE")

        assert banned not in lineup
        assert len(lineup) == 11
