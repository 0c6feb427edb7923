"""Holiday fast-forward for FM Club.

The manager leaves the assistant in charge while days are simulated
back to back. The driver stops:
- Before July 1, so the season rollover is always triggered by hand
- On the target date or after the requested number of days
- The day before the user's next match (that day is played normally)
- On game over
- When cancelled, between two days
"""

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from enum import Enum
from typing import Callable, List, Optional

from fm_club.core.errors import FMClubError
from fm_club.core.models import GameState, HolidayKind, HolidayPlan, NewsItem
from fm_club.engine.board_system import ensure_not_over
from fm_club.engine.season import DayResult, SeasonEngine

logger = logging.getLogger(__name__)


class StopReason(Enum):
    """Why a holiday ended."""
    SEASON_END = "season_end"
    TARGET_REACHED = "target_reached"
    NEXT_MATCH = "next_match"
    GAME_OVER = "game_over"
    CANCELLED = "cancelled"


@dataclass
class HolidayOutcome:
    state: GameState
    stop_reason: StopReason
    days_played: int = 0
    news: List[NewsItem] = field(default_factory=list)


def user_plays_on(state: GameState, day: date) -> bool:
    return any(
        not f.played and f.date == day and f.involves(state.user_team_id)
        for f in state.fixtures
    )


def start_holiday(
    state: GameState,
    kind: HolidayKind,
    target_date: Optional[date] = None,
    days: int = 0,
) -> GameState:
    """Return a copy of the state with the holiday plan attached.

    Raises:
        GameOverError: If the career is already over
        ValueError: If the plan has no usable target
    """
    ensure_not_over(state)
    if kind == HolidayKind.DATE and (target_date is None or target_date <= state.current_date):
        raise ValueError("A date holiday needs a target after the current date")
    if kind == HolidayKind.DURATION and days <= 0:
        raise ValueError("A duration holiday needs a positive number of days")
    plan = HolidayPlan(kind=kind, target_date=target_date, remaining_days=days)
    return replace(state, active_holiday=plan)


class HolidayDriver:
    """Runs a holiday plan one day at a time.

    Usage:
        driver = HolidayDriver(engine)
        outcome = driver.run(start_holiday(state, HolidayKind.NEXT_MATCH))
    """

    def __init__(
        self,
        engine: SeasonEngine,
        tick_seconds: float = 0.0,
        on_day: Optional[Callable[[DayResult], None]] = None,
    ):
        self.engine = engine
        self.tick_seconds = tick_seconds
        self.on_day = on_day
        self._lock = threading.Lock()
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Stop after the day currently being simulated."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _stop_reason(self, state: GameState) -> Optional[StopReason]:
        plan = state.active_holiday
        tomorrow = state.current_date + timedelta(days=1)

        if state.game_over_reason:
            return StopReason.GAME_OVER
        if tomorrow.month == 7 and tomorrow.day == 1:
            return StopReason.SEASON_END
        if plan.kind == HolidayKind.DATE and plan.target_date is not None:
            if state.current_date >= plan.target_date:
                return StopReason.TARGET_REACHED
        elif plan.kind == HolidayKind.DURATION:
            if plan.remaining_days <= 0:
                return StopReason.TARGET_REACHED
        elif plan.kind == HolidayKind.NEXT_MATCH:
            if user_plays_on(state, state.current_date):
                return StopReason.NEXT_MATCH
        return None

    def step(self, state: GameState) -> DayResult:
        """Advance exactly one day under the lock."""
        with self._lock:
            return self.engine.advance_one_day(state)

    def run(self, state: GameState, max_days: Optional[int] = None) -> HolidayOutcome:
        """Fast-forward until a stop condition is met.

        Args:
            state: State with an active holiday plan
            max_days: Optional safety cap on simulated days

        Returns:
            HolidayOutcome with the final state (holiday cleared)

        Raises:
            FMClubError: If the state has no active holiday
        """
        if state.active_holiday is None:
            raise FMClubError("No holiday is active")
        self._cancelled.clear()
        outcome = HolidayOutcome(state=state, stop_reason=StopReason.CANCELLED)

        while True:
            if self.cancelled:
                outcome.stop_reason = StopReason.CANCELLED
                break
            if max_days is not None and outcome.days_played >= max_days:
                outcome.stop_reason = StopReason.CANCELLED
                break

            current = outcome.state
            plan = current.active_holiday

            # The match day itself is played as a normal day
            if plan.kind == HolidayKind.NEXT_MATCH and user_plays_on(
                current, current.current_date + timedelta(days=1)
            ):
                result = self.step(replace(current, active_holiday=None))
                self._record(outcome, result)
                outcome.stop_reason = (
                    StopReason.GAME_OVER if result.game_over else StopReason.NEXT_MATCH
                )
                break

            reason = self._stop_reason(current)
            if reason is not None:
                outcome.stop_reason = reason
                break

            result = self.step(current)
            if result.state.active_holiday is not None and plan.kind == HolidayKind.DURATION:
                result.state.active_holiday = replace(
                    plan, remaining_days=plan.remaining_days - 1
                )
            self._record(outcome, result)
            if result.game_over:
                outcome.stop_reason = StopReason.GAME_OVER
                break

            if self.tick_seconds:
                time.sleep(self.tick_seconds)

        outcome.state = replace(outcome.state, active_holiday=None)
        logger.info(
            "Holiday ended after %d days (%s) on %s",
            outcome.days_played, outcome.stop_reason.value, outcome.state.current_date,
        )
        return outcome

    def _record(self, outcome: HolidayOutcome, result: DayResult) -> None:
        outcome.state = result.state
        outcome.days_played += 1
        outcome.news.extend(result.news)
        if self.on_day is not None:
            self.on_day(result)
