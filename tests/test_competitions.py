"""Tests for cups, continental draws, playoffs and season-end movements."""

import random
from collections import Counter
from datetime import date

import pytest

from fm_club.core.models import Competition, LeagueId
from fm_club.core.models.match import (
    CUP_WEEKS,
    EUROPE_LEAGUE_WEEKS,
    PLAYOFF_FINAL_WEEK,
    PLAYOFF_SEMI_WEEK,
    SUPER_CUP_FINAL_WEEK,
    SUPER_CUP_SEMI_WEEK,
)
from fm_club.data.generators import initialize_teams
from fm_club.engine.competitions import CompetitionManager, TwoLegTie
from fm_club.engine.league_table import standings


@pytest.fixture
def world():
    return initialize_teams(random.Random(42))


def _play_all(fixtures, home_wins=True):
    for fixture in fixtures:
        if home_wins:
            fixture.record_result(2, 0)
        else:
            fixture.record_result(0, 1)


def _set_table(teams, league_id):
    """Give a league a strict points order: first team listed leads."""
    table = [t for t in teams if t.league_id == league_id]
    for index, team in enumerate(table):
        team.stats.points = 100 - index
    return table


class TestSuperCup:
    """Tests for super cup draws."""

    def test_semis_seed_one_v_three(self, make_team):
        seeds = [make_team(f"Seed {i}", 80) for i in range(4)]
        semis = CompetitionManager(seed=42).super_cup_semis(seeds, 2025)

        assert len(semis) == 2
        assert (semis[0].home_team_id, semis[0].away_team_id) == (seeds[0].id, seeds[2].id)
        assert (semis[1].home_team_id, semis[1].away_team_id) == (seeds[1].id, seeds[3].id)
        assert semis[0].date == date(2026, 1, 5)
        assert all(f.week == SUPER_CUP_SEMI_WEEK for f in semis)

    def test_semis_need_four_teams(self, make_team):
        seeds = [make_team(f"Seed {i}", 80) for i in range(3)]
        assert CompetitionManager(seed=42).super_cup_semis(seeds, 2025) == []

    def test_initial_super_cup_uses_top_flight(self, world):
        semis = CompetitionManager(seed=42).initial_super_cup(world, 2025)
        by_id = {t.id: t for t in world}

        assert len(semis) == 2
        for fixture in semis:
            assert by_id[fixture.home_team_id].league_id == LeagueId.LEAGUE
            assert by_id[fixture.away_team_id].league_id == LeagueId.LEAGUE

    def test_final_waits_for_both_semis(self, make_team):
        seeds = [make_team(f"Seed {i}", 80) for i in range(4)]
        manager = CompetitionManager(seed=42)
        semis = manager.super_cup_semis(seeds, 2025)

        semis[0].record_result(1, 0)
        assert manager.super_cup_final(semis, 2025) == []

        semis[1].record_result(0, 2)
        final = manager.super_cup_final(semis, 2025)
        assert len(final) == 1
        assert final[0].week == SUPER_CUP_FINAL_WEEK
        assert (final[0].home_team_id, final[0].away_team_id) == (seeds[0].id, seeds[3].id)


class TestDomesticCup:
    """Tests for the single-leg domestic cup."""

    def test_r32_has_sixteen_ties_without_banned_clubs(self, world):
        banned = [t for t in world if t.league_id == LeagueId.LEAGUE][:2]
        for team in banned:
            team.cup_ban = True

        ties = CompetitionManager(seed=42).cup_round("R32", world, [], 2025)

        assert len(ties) == 16
        entrants = {f.home_team_id for f in ties} | {f.away_team_id for f in ties}
        assert len(entrants) == 32
        assert not entrants & {t.id for t in banned}
        foreign = {t.id for t in world if t.league_id == LeagueId.EUROPE_LEAGUE}
        assert not entrants & foreign

    def test_next_round_needs_complete_previous_round(self, world):
        manager = CompetitionManager(seed=42)
        r32 = manager.cup_round("R32", world, [], 2025)

        _play_all(r32[:-1])
        assert manager.cup_round("R16", world, r32, 2025) == []

        _play_all(r32[-1:])
        r16 = manager.cup_round("R16", world, r32, 2025)
        winners = {f.home_team_id for f in r32}
        assert len(r16) == 8
        assert all(f.week == CUP_WEEKS["R16"] for f in r16)
        assert {f.home_team_id for f in r16} | {f.away_team_id for f in r16} == winners

    def test_cup_winner(self, world):
        manager = CompetitionManager(seed=42)
        fixtures = []
        for round_name in ("R32", "R16", "QF", "SF", "FINAL"):
            drawn = manager.cup_round(round_name, world, fixtures, 2025)
            _play_all(drawn)
            fixtures.extend(drawn)

        final = [f for f in fixtures if f.week == CUP_WEEKS["FINAL"]]
        assert len(final) == 1
        assert manager.cup_winner(fixtures, 2025) == final[0].home_team_id


class TestContinental:
    """Tests for the continental competition."""

    def test_participants_are_foreign_plus_five(self, world):
        participants = CompetitionManager(seed=42).europe_participants(world, [], 2025)
        domestic = [t for t in participants if t.league_id == LeagueId.LEAGUE]

        assert len(domestic) == 5
        assert len(participants) == 36

    def test_participants_follow_last_season_table(self, world):
        top_flight = [t for t in world if t.league_id == LeagueId.LEAGUE]
        for rank, team in enumerate(reversed(top_flight), start=1):
            team.league_history.append({"year": "2024/2025", "rank": rank, "competition_id": "LEAGUE"})

        participants = CompetitionManager(seed=42).europe_participants(world, [], 2025)
        domestic = [t for t in participants if t.league_id == LeagueId.LEAGUE]

        assert {t.id for t in domestic} == {t.id for t in list(reversed(top_flight))[:5]}

    def test_league_phase_gives_everyone_eight_matches(self, world):
        manager = CompetitionManager(seed=42)
        participants = manager.europe_participants(world, [], 2025)
        fixtures = manager.europe_league_phase(participants, 2025)

        appearances = Counter()
        for fixture in fixtures:
            appearances[fixture.home_team_id] += 1
            appearances[fixture.away_team_id] += 1
            assert fixture.week in EUROPE_LEAGUE_WEEKS
            assert fixture.competition_id == Competition.EUROPE

        assert len(fixtures) == 144
        assert set(appearances.values()) == {8}

    def test_two_leg_tie_winner_on_aggregate(self, make_team, make_fixture):
        a = make_team("A FC", 75)
        b = make_team("B FC", 75)
        leg1 = make_fixture(a, b, date(2026, 3, 4), 211, Competition.EUROPE)
        leg2 = make_fixture(b, a, date(2026, 3, 11), 212, Competition.EUROPE)
        leg1.record_result(2, 0)
        leg2.record_result(1, 0)

        tie = TwoLegTie(first_leg=leg1, second_leg=leg2)

        assert tie.aggregate == (1, 2)
        assert tie.winner_id() == a.id

    def test_two_leg_tie_on_penalties(self, make_team, make_fixture):
        a = make_team("A FC", 75)
        b = make_team("B FC", 75)
        leg1 = make_fixture(a, b, date(2026, 3, 4), 211, Competition.EUROPE)
        leg2 = make_fixture(b, a, date(2026, 3, 11), 212, Competition.EUROPE)
        leg1.record_result(1, 0)
        leg2.record_result(1, 0, pk_home=5, pk_away=4)

        assert TwoLegTie(first_leg=leg1, second_leg=leg2).winner_id() == b.id

    def test_knockout_waits_for_league_phase(self, world):
        manager = CompetitionManager(seed=42)
        participants = manager.europe_participants(world, [], 2025)
        phase = manager.europe_league_phase(participants, 2025)

        assert manager.europe_knockout("PLAYOFF", phase, 2025) == []

        _play_all(phase)
        playoff = manager.europe_knockout("PLAYOFF", phase, 2025)
        assert len(playoff) == 16
        assert {f.week for f in playoff} == {209, 210}


class TestPlayoffsAndMovements:
    """Tests for second-division playoffs and league movements."""

    def test_playoff_semis_third_v_fifth(self, world):
        table = _set_table(world, LeagueId.LEAGUE_1)
        semis = CompetitionManager(seed=42).playoff_semis(world, 2025)

        assert len(semis) == 2
        assert (semis[0].home_team_id, semis[0].away_team_id) == (table[2].id, table[4].id)
        assert (semis[1].home_team_id, semis[1].away_team_id) == (table[3].id, table[5].id)
        assert semis[0].date == date(2026, 6, 8)
        assert semis[0].week == PLAYOFF_SEMI_WEEK

    def test_playoff_final_and_winner(self, world):
        table = _set_table(world, LeagueId.LEAGUE_1)
        manager = CompetitionManager(seed=42)
        semis = manager.playoff_semis(world, 2025)
        _play_all(semis)
        final = manager.playoff_final(semis, 2025)

        assert len(final) == 1
        assert final[0].week == PLAYOFF_FINAL_WEEK
        assert final[0].date == date(2026, 6, 15)

        _play_all(final, home_wins=False)
        winner = manager.playoff_winner(world, semis + final, 2025)
        assert winner.id == table[3].id

    def test_no_playoff_final_promotes_third(self, world):
        table = _set_table(world, LeagueId.LEAGUE_1)
        winner = CompetitionManager(seed=42).playoff_winner(world, [], 2025)
        assert winner.id == table[2].id

    def test_promotion_and_relegation(self, world):
        top = _set_table(world, LeagueId.LEAGUE)
        second = _set_table(world, LeagueId.LEAGUE_1)

        relegated, promoted = CompetitionManager(seed=42).apply_promotion_relegation(
            world, [], 2025
        )

        assert [t.id for t in relegated] == [t.id for t in top[-3:]]
        assert [t.id for t in promoted] == [t.id for t in second[:3]]
        assert all(t.league_id == LeagueId.LEAGUE_1 for t in relegated)
        assert all(t.league_id == LeagueId.LEAGUE for t in promoted)
        assert len(standings(world, LeagueId.LEAGUE)) == 18
        assert len(standings(world, LeagueId.LEAGUE_1)) == 18

    def test_bottom_two_of_each_division_are_banned_from_cup(self, world):
        top = _set_table(world, LeagueId.LEAGUE)
        second = _set_table(world, LeagueId.LEAGUE_1)

        CompetitionManager(seed=42).apply_promotion_relegation(world, [], 2025)

        banned = {t.id for t in world if t.cup_ban}
        assert banned == {t.id for t in top[-2:]} | {t.id for t in second[-2:]}
