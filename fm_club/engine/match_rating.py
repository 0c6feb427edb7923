"""Match rating calculation system.

Ratings are a pure function of a player's match facts, so identical inputs
always give identical ratings. Facts are derived from the event list of a
finished match.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from fm_club.core.models import MatchEvent, MatchEventType, Player, PlayerRating


@dataclass(frozen=True)
class MatchFacts:
    """Everything a rating depends on."""
    position: str
    skill: int
    won: bool = False
    lost: bool = False
    goals: int = 0
    assists: int = 0
    saves: int = 0
    goals_conceded: int = 0
    minutes: int = 90
    yellow_cards: int = 0
    red_cards: int = 0
    penalties_caused: int = 0
    own_goals: int = 0
    penalties_missed: int = 0
    injured: bool = False

    @property
    def major_error(self) -> bool:
        return self.red_cards > 0 or self.penalties_caused > 0 or self.own_goals > 0


class MatchRatingCalculator:
    """
    Calculate match ratings from match facts.

    Rating system:
    - Base rating: 6.0, nudged by skill and result
    - Goal bonus scaled by position, defenders and keepers earn more
    - Keeper save/clean-sheet bonus capped at +2.0
    - Cards, penalties caused, own goals and missed penalties each cost a
      flat amount once, however many times they happened
    - Range: 3.0 - 10.0, keepers capped at 9.0

    Order after the raw sum: short cameos are pulled halfway to 6.0, the
    4.5 loser floor applies unless there was a major error, the position
    cap applies, an injured player is halved, and the 3.0 floor applies
    last. Halving therefore never takes a rating below 3.0.
    """

    BASE_RATING = 6.0
    MIN_RATING = 3.0
    LOSER_FLOOR = 4.5
    GK_CAP = 9.0
    OUTFIELD_CAP = 9.5
    MAX_RATING = 10.0

    GOAL_MULTIPLIERS = {"FWD": 1.0, "MID": 1.2, "DEF": 1.5, "GK": 1.5}
    ASSIST_VALUE = 0.8

    @classmethod
    def rate(cls, facts: MatchFacts) -> float:
        """Rate one player's match. Pure and deterministic."""
        group = position_group_of(facts.position)
        rating = cls.BASE_RATING

        rating += max(-0.5, min(0.5, (facts.skill - 70) / 40))

        if facts.won:
            rating += 0.2
        elif facts.lost:
            rating -= 0.2

        rating += facts.goals * cls.GOAL_MULTIPLIERS[group]
        rating += facts.assists * cls.ASSIST_VALUE

        clean_sheet = facts.goals_conceded == 0 and facts.minutes > 60
        if group == "GK":
            bonus = facts.saves * 0.2 + (0.5 if clean_sheet else 0.0)
            rating += min(2.0, bonus)
            if facts.goals_conceded > 1:
                rating -= (facts.goals_conceded - 1) * 0.2
        elif group == "DEF":
            if clean_sheet:
                rating += 0.4
            if facts.goals_conceded > 1:
                rating -= (facts.goals_conceded - 1) * 0.1

        if facts.yellow_cards > 0:
            rating -= 0.3
        if facts.red_cards > 0:
            rating -= 2.0
        if facts.penalties_caused > 0:
            rating -= 1.5
        if facts.own_goals > 0:
            rating -= 1.5
        if facts.penalties_missed > 0:
            rating -= 1.0

        if (
            facts.minutes < 15
            and facts.goals == 0
            and facts.assists == 0
            and facts.red_cards == 0
        ):
            rating = cls.BASE_RATING + (rating - cls.BASE_RATING) / 2

        if facts.lost and not facts.major_error:
            rating = max(cls.LOSER_FLOOR, rating)

        if group == "GK":
            cap = cls.GK_CAP
        elif facts.goals >= 3 or (facts.goals >= 2 and facts.assists >= 1):
            cap = cls.MAX_RATING
        else:
            cap = cls.OUTFIELD_CAP
        rating = min(cap, rating)

        if facts.injured:
            rating *= 0.5

        rating = max(cls.MIN_RATING, rating)

        return round(rating, 1)


def position_group_of(position: str) -> str:
    position = position.upper()
    if position == "GK":
        return "GK"
    if position in ("LB", "CB", "RB"):
        return "DEF"
    if position in ("CM", "AM"):
        return "MID"
    return "FWD"


class _FactSheet:
    """Mutable per-player counters while walking the event list."""

    def __init__(self, player: Player):
        self.player = player
        self.goals = 0
        self.assists = 0
        self.saves = 0
        self.yellow_cards = 0
        self.red_cards = 0
        self.penalties_caused = 0
        self.own_goals = 0
        self.penalties_missed = 0
        self.injuries = 0
        self.minutes = 90


def _on_goal(event: MatchEvent, sheets: Dict[str, _FactSheet]) -> None:
    scorer = sheets.get(event.player_id)
    if scorer is not None and _is_own_goal(event, scorer):
        scorer.own_goals += 1
        return
    if scorer is not None:
        scorer.goals += 1
    if event.secondary_player_id in sheets:
        sheets[event.secondary_player_id].assists += 1


def _is_own_goal(event: MatchEvent, sheet: _FactSheet) -> bool:
    """A goal credited to the other side than the scorer's club."""
    club = sheet.player.team_id
    return bool(event.team_id and club) and event.team_id != club


def _on_save(event: MatchEvent, sheets: Dict[str, _FactSheet]) -> None:
    if event.player_id in sheets:
        sheets[event.player_id].saves += 1


def _on_miss(event: MatchEvent, sheets: Dict[str, _FactSheet]) -> None:
    if event.penalty_scored is False and event.player_id in sheets:
        sheets[event.player_id].penalties_missed += 1


def _on_yellow(event: MatchEvent, sheets: Dict[str, _FactSheet]) -> None:
    if event.player_id in sheets:
        sheets[event.player_id].yellow_cards += 1


def _on_red(event: MatchEvent, sheets: Dict[str, _FactSheet]) -> None:
    sheet = sheets.get(event.player_id)
    if sheet is not None:
        sheet.red_cards += 1
        sheet.minutes = min(sheet.minutes, event.minute)


def _on_penalty(event: MatchEvent, sheets: Dict[str, _FactSheet]) -> None:
    if event.secondary_player_id in sheets:
        sheets[event.secondary_player_id].penalties_caused += 1


def _on_injury(event: MatchEvent, sheets: Dict[str, _FactSheet]) -> None:
    sheet = sheets.get(event.player_id)
    if sheet is not None:
        sheet.injuries += 1
        if sheet.injuries >= 2:
            sheet.minutes = min(sheet.minutes, event.minute)


def _ignore(event: MatchEvent, sheets: Dict[str, _FactSheet]) -> None:
    return None


EVENT_HANDLERS: Dict[MatchEventType, Callable[[MatchEvent, Dict[str, _FactSheet]], None]] = {
    MatchEventType.GOAL: _on_goal,
    MatchEventType.SAVE: _on_save,
    MatchEventType.MISS: _on_miss,
    MatchEventType.FOUL: _ignore,
    MatchEventType.CARD_YELLOW: _on_yellow,
    MatchEventType.CARD_RED: _on_red,
    MatchEventType.PENALTY: _on_penalty,
    MatchEventType.INJURY: _on_injury,
    MatchEventType.OFFSIDE: _ignore,
    MatchEventType.CORNER: _ignore,
    MatchEventType.FIGHT: _on_red,
    MatchEventType.ARGUMENT: _on_red,
    MatchEventType.PITCH_INVASION: _ignore,
    MatchEventType.INFO: _ignore,
}


def build_match_ratings(
    events: List[MatchEvent],
    home_lineup: List[Player],
    away_lineup: List[Player],
    home_score: int,
    away_score: int,
) -> Tuple[List[PlayerRating], List[PlayerRating]]:
    """Rate both line-ups from a finished match's events.

    Line-ups are read as they stood at kickoff: a player who took the field
    already injured is halved, one hurt during the match is not.
    """
    sheets = {p.id: _FactSheet(p) for p in list(home_lineup) + list(away_lineup)}
    for event in events:
        EVENT_HANDLERS[event.event_type](event, sheets)

    def rate_side(lineup: List[Player], scored: int, conceded: int) -> List[PlayerRating]:
        ratings = []
        for player in lineup:
            sheet = sheets[player.id]
            facts = MatchFacts(
                position=player.position.value,
                skill=player.skill,
                won=scored > conceded,
                lost=scored < conceded,
                goals=sheet.goals,
                assists=sheet.assists,
                saves=sheet.saves,
                goals_conceded=conceded,
                minutes=sheet.minutes,
                yellow_cards=sheet.yellow_cards,
                red_cards=sheet.red_cards,
                penalties_caused=sheet.penalties_caused,
                own_goals=sheet.own_goals,
                penalties_missed=sheet.penalties_missed,
                injured=player.is_injured,
            )
            ratings.append(PlayerRating(
                player_id=player.id,
                name=player.name,
                position=player.position.value,
                rating=MatchRatingCalculator.rate(facts),
                goals=sheet.goals,
                assists=sheet.assists,
            ))
        return ratings

    return (
        rate_side(home_lineup, home_score, away_score),
        rate_side(away_lineup, away_score, home_score),
    )


def select_mvp(ratings: List[PlayerRating]) -> Optional[PlayerRating]:
    """Highest rating, then goals, then assists."""
    if not ratings:
        return None
    return max(ratings, key=lambda r: (r.rating, r.goals, r.assists))
