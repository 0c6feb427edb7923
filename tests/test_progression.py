"""Tests for player progression and training."""

from datetime import date

import pytest

from fm_club.core.models import (
    Injury,
    Personality,
    Position,
    TrainingFocus,
    TrainingIntensity,
)
from fm_club.engine.progression import (
    INDIVIDUAL_PROGRAMS,
    ProgressionEngine,
    age_growth_factor,
    improvement_threshold,
    optimize_ai_squad,
    potential_factor,
    program_cycle_days,
    recovery_multiplier,
)


class TestProgressionHelpers:
    """Tests for the progression lookup tables."""

    def test_thresholds_rise_with_value(self):
        values = [improvement_threshold(v) for v in (3, 8, 12, 15, 17, 18, 19)]
        assert values == sorted(values)

    def test_old_players_do_not_grow(self):
        assert age_growth_factor(19) > age_growth_factor(26) > age_growth_factor(31)
        assert age_growth_factor(31) == 0.0

    def test_no_growth_at_potential(self):
        assert potential_factor(80, 80) == 0.0
        assert potential_factor(60, 80) == 1.5

    def test_hard_workers_finish_programs_sooner(self):
        assert program_cycle_days(Personality.HARDWORKING) < program_cycle_days(Personality.LAZY)

    def test_training_slows_recovery(self):
        assert recovery_multiplier(0, trained=True) == 0.5
        assert recovery_multiplier(0, trained=False) == 1.2
        assert recovery_multiplier(60, trained=False) < recovery_multiplier(7, trained=False)


class TestDailyUpdate:
    """Tests for the daily squad update."""

    def test_rest_day_recovers_condition(self, make_team):
        team = make_team("Tired FC", 75)
        for player in team.players:
            player.condition = 50.0
            player.injury_susceptibility = 0

        ProgressionEngine(seed=42).daily_update(team, trained=False, today=date(2025, 9, 1))

        fit = [p for p in team.players if not p.is_injured]
        assert all(p.condition > 50.0 for p in fit)

    def test_injury_counts_down(self, make_team):
        team = make_team("Crocked FC", 75)
        player = team.players[0]
        player.injury = Injury(type="Knock", days_remaining=2)
        engine = ProgressionEngine(seed=42)

        engine.daily_update(team, trained=True, today=date(2025, 9, 1))
        assert player.is_injured
        assert player.condition == 0.0

        engine.daily_update(team, trained=True, today=date(2025, 9, 2))
        assert not player.is_injured

    def test_long_run_keeps_invariants(self, make_team):
        """A season of daily updates keeps every player inside the bounds."""
        team = make_team("Bounds FC", 75)
        engine = ProgressionEngine(seed=42)

        for day in range(300):
            engine.daily_update(team, trained=day % 2 == 0, today=date(2025, 7, 2))

        for player in team.players:
            assert 1 <= player.skill <= player.potential <= 99
            assert 0 <= player.condition <= 100
            assert 0 <= player.morale <= 100
            assert all(1 <= v <= 20 for v in player.attributes.values())

    def test_veteran_never_grows(self, make_player):
        veteran = make_player(Position.CB, 80, age=36)
        skill = veteran.skill
        engine = ProgressionEngine(seed=42)

        for _ in range(365):
            engine.develop_and_age(veteran, trained=True)

        assert veteran.skill <= skill


class TestIndividualPrograms:
    """Tests for individual training programs."""

    def test_unknown_program(self, make_player):
        with pytest.raises(KeyError):
            ProgressionEngine(seed=42).assign_program(make_player(), "juggling")

    def test_program_completes_after_cycle(self, make_player):
        player = make_player(Position.ST, 65, age=20)
        player.potential = 85
        player.personality = Personality.HARDWORKING
        engine = ProgressionEngine(seed=42)
        engine.assign_program(player, "finishing")

        reports = [engine.individual_training_day(player) for _ in range(program_cycle_days(player.personality))]

        assert all(r is None for r in reports[:-1])
        assert reports[-1] is not None
        assert "Finishing" in reports[-1].message
        assert player.individual_training is None
        assert player.skill <= player.potential

    def test_all_programs_name_real_attributes(self, make_player):
        player = make_player()
        for program in INDIVIDUAL_PROGRAMS.values():
            for name in program.attributes:
                assert name in player.attributes


class TestTeamTraining:
    """Tests for team sessions."""

    def test_session_costs_condition(self, make_team):
        team = make_team("Train FC", 75)
        engine = ProgressionEngine(seed=42)

        reports = engine.run_team_training(team, TrainingIntensity.HIGH, TrainingFocus.ATTACK)

        assert all(p.condition < 100 for p in team.players)
        assert len(reports) >= 5

    def test_low_intensity_is_gentler(self, make_team):
        hard = make_team("Hard FC", 75)
        easy = make_team("Easy FC", 75)

        ProgressionEngine(seed=42).run_team_training(hard, TrainingIntensity.HIGH)
        ProgressionEngine(seed=42).run_team_training(easy, TrainingIntensity.LOW)

        avg = lambda team: sum(p.condition for p in team.players) / len(team.players)
        assert avg(easy) > avg(hard)

    def test_assistant_session_reports(self, make_team):
        team = make_team("Assistant FC", 75)
        assert ProgressionEngine(seed=42).assistant_session(team)


class TestOptimizeAISquad:
    """Tests for AI lineup ordering."""

    def test_goalkeeper_first_injured_last(self, make_team):
        team = make_team("AI FC", 75)
        injured = team.players[5]
        injured.injury = Injury(type="Knock", days_remaining=5)

        optimize_ai_squad(team)

        assert team.players[0].position == Position.GK
        assert team.players[-1] is injured
        assert len(team.players) == 30

    def test_no_keeper_uses_best_outfielder(self, make_team):
        team = make_team("No Keeper FC", 75)
        team.players = [p for p in team.players if p.position != Position.GK]
        best = max(team.players, key=lambda p: p.skill)

        optimize_ai_squad(team)

        assert team.players[0] is best
