"""Tests for holiday fast-forward."""

from dataclasses import replace
from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from fm_club.core.errors import FMClubError, GameOverError
from fm_club.core.models import HolidayKind
from fm_club.engine.holiday import HolidayDriver, StopReason, start_holiday, user_plays_on
from fm_club.engine.season import SeasonEngine


@pytest.fixture
def career(small_config):
    engine = SeasonEngine(seed=42, config=small_config)
    return engine, engine.new_game()


def _first_user_fixture(state):
    return min(
        (f for f in state.fixtures if f.involves(state.user_team_id)), key=lambda f: f.date
    )


class TestStartHoliday:
    """Tests for holiday plans."""

    def test_returns_copy_with_plan(self, career):
        _, state = career

        on_holiday = start_holiday(state, HolidayKind.DURATION, days=3)

        assert state.active_holiday is None
        assert on_holiday.active_holiday.kind == HolidayKind.DURATION
        assert on_holiday.active_holiday.remaining_days == 3

    @pytest.mark.parametrize(
        "kind,target,days",
        [
            (HolidayKind.DATE, None, 0),
            (HolidayKind.DATE, date(2025, 6, 1), 0),
            (HolidayKind.DURATION, None, 0),
        ],
    )
    def test_invalid_plans(self, career, kind, target, days):
        _, state = career
        with pytest.raises(ValueError):
            start_holiday(state, kind, target_date=target, days=days)

    def test_no_holiday_after_dismissal(self, career):
        _, state = career
        state.game_over_reason = "Sacked"
        with pytest.raises(GameOverError):
            start_holiday(state, HolidayKind.INDEFINITE)


class TestHolidayDriver:
    """Tests for running a holiday day by day."""

    def test_duration(self, career):
        engine, state = career

        outcome = HolidayDriver(engine).run(start_holiday(state, HolidayKind.DURATION, days=5))

        assert outcome.stop_reason == StopReason.TARGET_REACHED
        assert outcome.days_played == 5
        assert outcome.state.current_date == state.current_date + timedelta(days=5)
        assert outcome.state.active_holiday is None

    def test_target_date(self, career):
        engine, state = career
        target = date(2025, 7, 10)

        outcome = HolidayDriver(engine).run(start_holiday(state, HolidayKind.DATE, target_date=target))

        assert outcome.stop_reason == StopReason.TARGET_REACHED
        assert outcome.state.current_date == target
        assert outcome.days_played == 9

    def test_next_match_stops_on_match_day(self, career):
        """The match day is reached, but the match waits for the manager."""
        engine, state = career
        fixture = _first_user_fixture(state)
        state.manager.board_trust = 100.0

        outcome = HolidayDriver(engine).run(start_holiday(state, HolidayKind.NEXT_MATCH))

        assert outcome.stop_reason == StopReason.NEXT_MATCH
        assert outcome.state.current_date == fixture.date
        assert user_plays_on(outcome.state, fixture.date)
        assert outcome.state.active_holiday is None

    def test_stops_before_rollover(self, career):
        engine, state = career
        state = replace(state, current_date=date(2026, 6, 20), fixtures=[])

        outcome = HolidayDriver(engine).run(start_holiday(state, HolidayKind.INDEFINITE))

        assert outcome.stop_reason == StopReason.SEASON_END
        assert outcome.state.current_date == date(2026, 6, 30)
        assert outcome.days_played == 10

    def test_cancel_between_days(self, career):
        engine, state = career
        seen = []

        def on_day(result):
            seen.append(result.state.current_date)
            driver.cancel()

        driver = HolidayDriver(engine, on_day=on_day)
        outcome = driver.run(start_holiday(state, HolidayKind.INDEFINITE))

        assert outcome.stop_reason == StopReason.CANCELLED
        assert outcome.days_played == 1
        assert seen == [outcome.state.current_date]
        assert driver.cancelled

    def test_max_days_cap(self, career):
        engine, state = career
        on_day = MagicMock()

        outcome = HolidayDriver(engine, on_day=on_day).run(
            start_holiday(state, HolidayKind.INDEFINITE), max_days=3
        )

        assert outcome.stop_reason == StopReason.CANCELLED
        assert outcome.days_played == 3
        assert on_day.call_count == 3

    def test_requires_active_holiday(self, career):
        engine, state = career
        with pytest.raises(FMClubError):
            HolidayDriver(engine).run(state)

    def test_dismissal_stops_holiday(self, career):
        engine, state = career
        on_holiday = start_holiday(state, HolidayKind.INDEFINITE)
        on_holiday.manager.board_trust = 0.0

        outcome = HolidayDriver(engine).run(on_holiday)

        assert outcome.stop_reason == StopReason.GAME_OVER
        assert outcome.days_played == 1
        assert outcome.state.game_over_reason

    def test_holiday_results_are_played(self, career):
        """Matches on holiday days are simulated by the assistant."""
        engine, state = career
        fixture = _first_user_fixture(state)
        state.manager.board_trust = 100.0
        target = fixture.date + timedelta(days=2)

        outcome = HolidayDriver(engine).run(start_holiday(state, HolidayKind.DATE, target_date=target))

        played = next(f for f in outcome.state.fixtures if f.id == fixture.id)
        assert played.played
        assert outcome.state.manager.matches >= 1
