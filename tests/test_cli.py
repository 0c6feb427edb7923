"""Tests for the status lines shown by the CLI."""

from fm_club.cli.main import next_match_line, trust_line
from fm_club.core.models import ManagerProfile
from fm_club.engine.match_engine import calculate_odds


class TestStatusLines:
    """Tests for the one-line status summaries."""

    def test_next_match_shows_odds(self, two_team_state, make_fixture):
        state = two_team_state
        user, rival = state.teams
        state.fixtures = [make_fixture(user, rival)]

        line = next_match_line(state)

        assert line.startswith("2025-08-08 vs Rival FC")
        assert line.endswith(f"Odds {calculate_odds(user, rival)}")

    def test_odds_follow_the_home_side(self, two_team_state, make_fixture):
        """An away fixture prices the rival as the home side."""
        state = two_team_state
        user, rival = state.teams
        state.fixtures = [make_fixture(rival, user)]

        assert next_match_line(state).endswith(f"Odds {calculate_odds(rival, user)}")

    def test_no_upcoming_fixture(self, two_team_state):
        assert next_match_line(two_team_state) == "-"

    def test_trust_line_names_confidence(self):
        line = trust_line(ManagerProfile(board_trust=62.0, fan_trust=40.0))
        assert line == "Board 62 (high)  Fans 40"
