"""Post-match processing.

Applies a played fixture to both squads:
- Serving suspensions are decremented once per team match
- Goals, assists, cards, appearances and ratings are accumulated
- Four accumulated yellows or any red earn a one-match ban
- Players who appeared lose 20-30 condition
- INJURY events become real injuries of a weighted type

Each (player, fixture) pair is processed at most once, tracked through
``Player.processed_match_ids``.
"""

import logging
import random
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from fm_club.core.models import (
    Competition,
    Fixture,
    Injury,
    InjuryRecord,
    LeagueId,
    MatchEvent,
    MatchEventType,
    Player,
    Team,
)

logger = logging.getLogger(__name__)


YELLOW_CARD_LIMIT = 4
MIN_CONDITION_LOSS = 20
CONDITION_LOSS_SPREAD = 10


@dataclass(frozen=True)
class InjuryType:
    """An injury with its weight and duration range in days."""
    name: str
    weight: int
    min_days: int
    max_days: int


INJURY_TYPES = [
    InjuryType("Knock", 30, 2, 6),
    InjuryType("Muscle strain", 22, 7, 14),
    InjuryType("Hamstring strain", 16, 14, 28),
    InjuryType("Ankle sprain", 14, 10, 24),
    InjuryType("Groin strain", 8, 14, 30),
    InjuryType("Broken foot", 5, 42, 70),
    InjuryType("Knee ligament damage", 3, 60, 120),
    InjuryType("Cruciate ligament rupture", 2, 150, 240),
]


def weighted_injury(rng: random.Random) -> InjuryType:
    """Pick an injury type proportionally to its weight."""
    total = sum(t.weight for t in INJURY_TYPES)
    roll = rng.random() * total
    for injury_type in INJURY_TYPES:
        if roll < injury_type.weight:
            return injury_type
        roll -= injury_type.weight
    return INJURY_TYPES[0]


def suspension_competition(fixture: Fixture, team: Team) -> str:
    """Competition id under which bans from this fixture are served.

    The playoff final shares the playoff's ban pool, and second-division
    clubs serve playoff bans in their league.
    """
    competition = fixture.competition_id
    if competition == Competition.PLAYOFF_FINAL:
        competition = Competition.PLAYOFF
    if competition == Competition.PLAYOFF and team.league_id == LeagueId.LEAGUE_1:
        competition = Competition.LEAGUE_1
    return competition.value


@dataclass
class _PlayerLine:
    goals: int = 0
    assists: int = 0
    yellows: int = 0
    reds: int = 0
    injured: bool = False


def _on_goal(event: MatchEvent, lines: Dict[str, _PlayerLine]) -> None:
    if event.player_id:
        lines.setdefault(event.player_id, _PlayerLine()).goals += 1
    if event.secondary_player_id:
        lines.setdefault(event.secondary_player_id, _PlayerLine()).assists += 1


def _on_yellow(event: MatchEvent, lines: Dict[str, _PlayerLine]) -> None:
    if event.player_id:
        lines.setdefault(event.player_id, _PlayerLine()).yellows += 1


def _on_red(event: MatchEvent, lines: Dict[str, _PlayerLine]) -> None:
    if not event.player_id:
        return
    line = lines.setdefault(event.player_id, _PlayerLine())
    line.reds += 1
    if event.is_second_yellow:
        line.yellows += 1


def _on_injury(event: MatchEvent, lines: Dict[str, _PlayerLine]) -> None:
    if event.player_id:
        lines.setdefault(event.player_id, _PlayerLine()).injured = True


def _skip(event: MatchEvent, lines: Dict[str, _PlayerLine]) -> None:
    return None


EVENT_HANDLERS: Dict[MatchEventType, Callable[[MatchEvent, Dict[str, _PlayerLine]], None]] = {
    MatchEventType.GOAL: _on_goal,
    MatchEventType.SAVE: _skip,
    MatchEventType.MISS: _skip,
    MatchEventType.FOUL: _skip,
    MatchEventType.CARD_YELLOW: _on_yellow,
    MatchEventType.CARD_RED: _on_red,
    MatchEventType.PENALTY: _skip,
    MatchEventType.INJURY: _on_injury,
    MatchEventType.OFFSIDE: _skip,
    MatchEventType.CORNER: _skip,
    MatchEventType.FIGHT: _on_red,
    MatchEventType.ARGUMENT: _on_red,
    MatchEventType.PITCH_INVASION: _skip,
    MatchEventType.INFO: _skip,
}


def tally_events(events: Iterable[MatchEvent], team_id: str) -> Dict[str, _PlayerLine]:
    """Per-player goals, assists, cards and injuries for one side."""
    lines: Dict[str, _PlayerLine] = {}
    for event in events:
        if event.team_id != team_id:
            continue
        EVENT_HANDLERS[event.event_type](event, lines)
    return lines


class PostMatchProcessor:
    """Applies played fixtures to player records."""

    def __init__(self, seed: Optional[int] = None):
        self.rng = random.Random(seed)

    def process_fixture(
        self, fixture: Fixture, teams: Iterable[Team]
    ) -> List[Tuple[Team, Player]]:
        """Apply one played fixture to both squads.

        Returns:
            (team, player) pairs for every new injury
        """
        if not fixture.played:
            return []

        new_injuries: List[Tuple[Team, Player]] = []
        for team in teams:
            if not fixture.involves(team.id):
                continue
            new_injuries.extend(self._process_team(fixture, team))
        return new_injuries

    def process_fixtures(
        self, fixtures: Iterable[Fixture], teams: List[Team]
    ) -> List[Tuple[Team, Player]]:
        new_injuries = []
        for fixture in fixtures:
            new_injuries.extend(self.process_fixture(fixture, teams))
        return new_injuries

    def _process_team(self, fixture: Fixture, team: Team) -> List[Tuple[Team, Player]]:
        competition = suspension_competition(fixture, team)
        lines = tally_events(fixture.events, team.id)

        ratings = {}
        if fixture.stats is not None:
            side = (
                fixture.stats.home_ratings
                if fixture.home_team_id == team.id
                else fixture.stats.away_ratings
            )
            ratings = {r.player_id: r.rating for r in side}

        injured: List[Tuple[Team, Player]] = []
        for player in team.players:
            if fixture.id in player.processed_match_ids:
                continue

            processed = False
            serving = player.suspensions.get(competition, 0)
            if serving > 0:
                serving -= 1
                if serving <= 0:
                    del player.suspensions[competition]
                else:
                    player.suspensions[competition] = serving
                processed = True

            if player.id in ratings:
                line = lines.get(player.id, _PlayerLine())
                self._record_appearance(player, line, ratings[player.id], competition)
                player.condition = max(
                    0.0,
                    player.condition
                    - (MIN_CONDITION_LOSS + self.rng.random() * CONDITION_LOSS_SPREAD),
                )
                if line.injured:
                    self._injure(player, fixture)
                    injured.append((team, player))
                processed = True

            if processed:
                player.processed_match_ids.append(fixture.id)
            player.clamp()
        return injured

    @staticmethod
    def _record_appearance(
        player: Player, line: _PlayerLine, rating: float, competition: str
    ) -> None:
        stats = player.season_stats
        stats.goals += line.goals
        stats.assists += line.assists
        stats.yellow_cards += line.yellows
        stats.red_cards += line.reds
        stats.matches_played += 1
        stats.add_rating(rating)

        accumulated = player.yellow_card_accumulation.get(competition, 0) + line.yellows
        if accumulated >= YELLOW_CARD_LIMIT:
            player.suspensions[competition] = player.suspensions.get(competition, 0) + 1
            accumulated = 0
        player.yellow_card_accumulation[competition] = accumulated

        if line.reds > 0:
            player.suspensions[competition] = player.suspensions.get(competition, 0) + 1

    def _injure(self, player: Player, fixture: Fixture) -> None:
        injury_type = weighted_injury(self.rng)
        days = self.rng.randint(injury_type.min_days, injury_type.max_days)
        player.injury = Injury(type=injury_type.name, days_remaining=days)
        player.injury_history.append(
            InjuryRecord(type=injury_type.name, start_date=fixture.date, duration_days=days)
        )
        player.condition = 0.0
        logger.debug("%s injured (%s, %d days)", player.name, injury_type.name, days)
