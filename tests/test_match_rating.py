"""Tests for match ratings."""

from fm_club.core.models import Injury, MatchEvent, MatchEventType
from fm_club.engine.match_rating import (
    MatchFacts,
    MatchRatingCalculator,
    build_match_ratings,
    select_mvp,
)


class TestMatchRatingCalculator:
    """Tests for the pure rating function."""

    def test_rating_is_deterministic(self):
        """Identical facts always give the identical rating."""
        facts = MatchFacts(position="ST", skill=78, won=True, goals=1, assists=1)
        assert MatchRatingCalculator.rate(facts) == MatchRatingCalculator.rate(facts)

    def test_quiet_match_is_around_base(self):
        facts = MatchFacts(position="CM", skill=70)
        assert MatchRatingCalculator.rate(facts) == 6.0

    def test_defender_goal_worth_more_than_forward_goal(self):
        defender = MatchFacts(position="CB", skill=70, goals=1, goals_conceded=1)
        forward = MatchFacts(position="ST", skill=70, goals=1, goals_conceded=1)
        assert MatchRatingCalculator.rate(defender) > MatchRatingCalculator.rate(forward)

    def test_loser_floor_without_major_error(self):
        """A losing player without a major error never drops below 4.5."""
        facts = MatchFacts(
            position="GK", skill=50, lost=True, goals_conceded=7, yellow_cards=1
        )
        assert MatchRatingCalculator.rate(facts) == 4.5

    def test_red_card_breaks_loser_floor(self):
        facts = MatchFacts(position="CB", skill=60, lost=True, red_cards=1, goals_conceded=4)
        assert MatchRatingCalculator.rate(facts) < 4.5

    def test_rating_never_below_three(self):
        facts = MatchFacts(
            position="CB", skill=40, lost=True, red_cards=1,
            penalties_caused=1, own_goals=1, goals_conceded=5,
        )
        assert MatchRatingCalculator.rate(facts) == 3.0

    def test_goalkeeper_capped_at_nine(self):
        facts = MatchFacts(position="GK", skill=90, won=True, saves=15, goals=1)
        assert MatchRatingCalculator.rate(facts) == 9.0

    def test_outfield_cap_without_hat_trick(self):
        facts = MatchFacts(position="ST", skill=90, won=True, goals=2, assists=0)
        assert MatchRatingCalculator.rate(facts) <= 9.5

    def test_perfect_ten_needs_hat_trick(self):
        hat_trick = MatchFacts(position="CB", skill=90, won=True, goals=3, assists=1)
        assert MatchRatingCalculator.rate(hat_trick) == 10.0

    def test_injury_halves_rating(self):
        healthy = MatchFacts(position="CM", skill=70)
        injured = MatchFacts(position="CM", skill=70, injured=True)
        assert MatchRatingCalculator.rate(injured) == 3.0
        assert MatchRatingCalculator.rate(healthy) == 6.0

    def test_injury_halves_after_floor_and_cap(self):
        """Halving comes after the loser floor and the cap, then 3.0 holds."""
        loser = MatchFacts(position="CM", skill=70, lost=True, injured=True)
        hat_trick = MatchFacts(
            position="CB", skill=90, won=True, goals=3, assists=1, injured=True
        )
        assert MatchRatingCalculator.rate(loser) == 3.0
        assert MatchRatingCalculator.rate(hat_trick) == 5.0

    def test_discipline_penalties_apply_once(self):
        """Repeat cards or missed penalties cost no more than the first."""
        one_yellow = MatchFacts(position="CM", skill=70, yellow_cards=1)
        two_yellows = MatchFacts(position="CM", skill=70, yellow_cards=2)
        sent_off = MatchFacts(position="CM", skill=70, yellow_cards=2, red_cards=1)
        two_misses = MatchFacts(position="ST", skill=70, penalties_missed=2)

        assert MatchRatingCalculator.rate(two_yellows) == MatchRatingCalculator.rate(one_yellow) == 5.7
        assert MatchRatingCalculator.rate(sent_off) == 3.7
        assert MatchRatingCalculator.rate(two_misses) == 5.0

    def test_short_cameo_is_pulled_toward_base(self):
        """Fewer than 15 minutes halves the distance from 6.0."""
        full = MatchFacts(position="CM", skill=70, penalties_missed=1)
        cameo = MatchFacts(position="CM", skill=70, penalties_missed=1, minutes=10)
        assert MatchRatingCalculator.rate(full) == 5.0
        assert MatchRatingCalculator.rate(cameo) == 5.5


class TestBuildMatchRatings:
    """Tests for ratings built from an event list."""

    def test_scorer_rated_above_teammates(self, make_team):
        home = make_team("Home FC", 75)
        away = make_team("Away FC", 75)
        home_lineup = home.players[:11]
        away_lineup = away.players[:11]
        scorer = home_lineup[10]
        events = [
            MatchEvent(23, MatchEventType.GOAL, home.id, scorer.id, home_lineup[9].id),
        ]

        home_ratings, away_ratings = build_match_ratings(
            events, home_lineup, away_lineup, 1, 0
        )

        assert len(home_ratings) == 11
        assert len(away_ratings) == 11
        by_id = {r.player_id: r for r in home_ratings}
        assert by_id[scorer.id].goals == 1
        assert by_id[home_lineup[9].id].assists == 1
        assert select_mvp(home_ratings + away_ratings).player_id == scorer.id

    def test_select_mvp_of_nothing(self):
        assert select_mvp([]) is None

    def test_player_fielded_injured_is_halved(self, make_team):
        """An injury carried into the match halves; one picked up during it does not."""
        home = make_team("Home FC", 75)
        away = make_team("Away FC", 75)
        home_lineup = home.players[:11]
        away_lineup = away.players[:11]
        carried = home_lineup[5]
        carried.injury = Injury(type="Knock", days_remaining=3)
        hurt = home_lineup[6]
        events = [MatchEvent(80, MatchEventType.INJURY, home.id, hurt.id)]

        home_ratings, _ = build_match_ratings(events, home_lineup, away_lineup, 0, 0)

        by_id = {r.player_id: r.rating for r in home_ratings}
        assert by_id[carried.id] == MatchRatingCalculator.rate(
            MatchFacts(position=carried.position.value, skill=carried.skill, injured=True)
        )
        assert by_id[hurt.id] == MatchRatingCalculator.rate(
            MatchFacts(position=hurt.position.value, skill=hurt.skill)
        )

    def test_own_goal_counts_against_scorer(self, make_team):
        """A goal credited to the opponents is an own goal, not a goal."""
        home = make_team("Home FC", 75)
        away = make_team("Away FC", 75)
        home_lineup = home.players[:11]
        away_lineup = away.players[:11]
        culprit = home_lineup[3]
        events = [MatchEvent(55, MatchEventType.GOAL, away.id, culprit.id)]

        home_ratings, _ = build_match_ratings(events, home_lineup, away_lineup, 0, 1)

        rating = next(r for r in home_ratings if r.player_id == culprit.id)
        assert rating.goals == 0
        assert rating.rating == MatchRatingCalculator.rate(MatchFacts(
            position=culprit.position.value,
            skill=culprit.skill,
            lost=True,
            goals_conceded=1,
            own_goals=1,
        ))
