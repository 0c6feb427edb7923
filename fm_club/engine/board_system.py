"""Board and fan trust for FM Club.

Manages:
- Daily board trust from the club's finances
- Board and fan reactions to the managed club's results
- Season-end reputation changes by final rank
- Season objectives and the board's confidence level
- Manager dismissal, the only way a career ends
"""

import logging
from enum import Enum
from typing import Optional

from fm_club.core.errors import GameOverError
from fm_club.core.models import BoardExpectation, Fixture, GameState, ManagerProfile, Team

logger = logging.getLogger(__name__)


BOARD_DISMISSAL_THRESHOLD = 30
FAN_DISMISSAL_THRESHOLD = 35
RESULT_TRUST_SWING = 2.0
WAGE_OVERSPEND_PENALTY = 0.3
REPUTATION_GROWTH_BONUS = 0.1

BOARD_DISMISSAL = "The board has terminated your contract after an emergency meeting: poor results and lost confidence."
FAN_DISMISSAL = "Fan pressure became unbearable. The board has terminated your contract at the supporters' request."


class BoardConfidence(Enum):
    """Board confidence levels."""
    FULL = "full"              # 80-100
    HIGH = "high"              # 60-79
    MODERATE = "moderate"      # 45-59
    LOW = "low"                # 30-44
    CRITICAL = "critical"      # below 30


def confidence_level(board_trust: float) -> BoardConfidence:
    if board_trust >= 80:
        return BoardConfidence.FULL
    if board_trust >= 60:
        return BoardConfidence.HIGH
    if board_trust >= 45:
        return BoardConfidence.MODERATE
    if board_trust >= BOARD_DISMISSAL_THRESHOLD:
        return BoardConfidence.LOW
    return BoardConfidence.CRITICAL


def _clamp_trust(value: float) -> float:
    return max(0.0, min(100.0, value))


def objective_met(expectation: BoardExpectation, rank: int) -> bool:
    """Title means first, upper means top five, survival means 15th or better."""
    if expectation == BoardExpectation.TITLE:
        return rank == 1
    if expectation == BoardExpectation.UPPER:
        return rank <= 5
    return rank <= 15


def season_reputation_change(strength: float, rank: int, relegated: bool) -> float:
    """Reputation delta for a final top-flight position.

    Strong clubs lose standing for poor finishes; weaker clubs gain it
    for finishing near the top.
    """
    change = 0.0
    if strength > 80:
        if relegated:
            change -= 1.0
        elif rank > 10:
            change -= 0.1
    elif strength > 75 and rank > 15:
        change -= 0.1

    if strength < 80 and relegated:
        change -= 0.3

    if 74 <= strength < 80 and rank <= 3:
        change += 0.1
    elif 70 <= strength < 74 and rank <= 5:
        change += 0.1
    elif 60 <= strength < 70 and rank <= 5:
        change += 0.1
    return change


def apply_reputation_change(team: Team, change: float) -> None:
    team.reputation = round(max(0.1, min(5.0, team.reputation + change)), 1)


def ensure_not_over(state: GameState) -> None:
    """Refuse to act on a finished career.

    Raises:
        GameOverError: If the manager has been dismissed
    """
    if state.game_over_reason:
        raise GameOverError(state.game_over_reason)


class BoardSystem:
    """Board and fan trust for the user's manager."""

    def daily_update(self, manager: ManagerProfile, team: Team) -> float:
        """Apply one day of financial judgement. Returns the trust change."""
        change = 0.0
        if team.budget < 0:
            if team.budget >= -10:
                change -= 0.2
            elif team.budget >= -30:
                change -= 0.5
            else:
                change -= 1.0
        if team.wage_budget and team.wage_bill > team.wage_budget:
            change -= WAGE_OVERSPEND_PENALTY
        if team.initial_reputation and team.reputation >= team.initial_reputation + 0.1:
            change += REPUTATION_GROWTH_BONUS

        if change:
            manager.board_trust = _clamp_trust(manager.board_trust + change)
        return change

    def record_result(self, manager: ManagerProfile, team_id: str, fixture: Fixture) -> None:
        """Career record and trust swing for any result of the managed club.

        Applies to matches the manager takes live and to those the
        assistant plays while the manager is on holiday.

        A shootout counts as a draw in the record but still moves the
        board, never the fans.
        """
        home = fixture.home_team_id == team_id
        scored = fixture.home_score if home else fixture.away_score
        conceded = fixture.away_score if home else fixture.home_score
        manager.matches += 1

        if scored > conceded:
            manager.wins += 1
            manager.board_trust = _clamp_trust(manager.board_trust + RESULT_TRUST_SWING)
            manager.fan_trust = _clamp_trust(manager.fan_trust + RESULT_TRUST_SWING)
        elif scored < conceded:
            manager.losses += 1
            manager.board_trust = _clamp_trust(manager.board_trust - RESULT_TRUST_SWING)
            manager.fan_trust = _clamp_trust(manager.fan_trust - RESULT_TRUST_SWING)
        else:
            manager.draws += 1
            if fixture.pk_home is not None:
                won = fixture.winner_id() == team_id
                swing = RESULT_TRUST_SWING if won else -RESULT_TRUST_SWING
                manager.board_trust = _clamp_trust(manager.board_trust + swing)

    def check_dismissal(self, manager: ManagerProfile) -> Optional[str]:
        """Dismissal reason, or None while the manager keeps the job."""
        if manager.board_trust < BOARD_DISMISSAL_THRESHOLD:
            reason = BOARD_DISMISSAL
        elif manager.fan_trust < FAN_DISMISSAL_THRESHOLD:
            reason = FAN_DISMISSAL
        else:
            return None
        logger.info(
            "Manager dismissed (board %.1f, fans %.1f)", manager.board_trust, manager.fan_trust
        )
        return reason

    def crown_champion(self, manager: ManagerProfile) -> None:
        """League title: trophy, record and full trust."""
        manager.league_titles += 1
        manager.board_trust = 100.0
        manager.fan_trust = 100.0
