"""Competition draws and knockout progression.

Handles every non-league competition:
- Super cup (semis seeded from last season's top four, final on Jan 10)
- Domestic cup, single-leg rounds R32 to the final
- Continental league phase (four pots, backtracking weekly scheduler)
- Continental two-leg knockouts and a single-leg final
- Second-division playoffs, promotion, relegation and cup bans

Every generator works on the current season only and returns new
fixtures; callers append them to the state's fixture log.
"""

import logging
import math
import random
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Set, Tuple

from fm_club.core.models import Competition, Fixture, LeagueId, Team
from fm_club.core.models.match import (
    CUP_FINAL_WEEK,
    CUP_WEEKS,
    EUROPE_FINAL_WEEK,
    EUROPE_KNOCKOUT_WEEKS,
    PLAYOFF_FINAL_WEEK,
    PLAYOFF_SEMI_WEEK,
    SUPER_CUP_FINAL_WEEK,
    SUPER_CUP_SEMI_WEEK,
)
from fm_club.data.templates import INITIAL_EUROPE_TEAMS, INITIAL_SUPER_CUP_TEAMS
from fm_club.engine.calendar import (
    new_fixture_id,
    round_complete,
    season_date,
    season_fixtures,
    find_first_leg,
)
from fm_club.engine.league_table import europe_table, standings
from fm_club.engine.match_engine import aggregate_score

logger = logging.getLogger(__name__)


DOMESTIC_EUROPE_SLOTS = 5
EUROPE_MATCHDAY_COUNT = 8
SCHEDULER_RETRIES = 50
MAX_HOME_GAMES = 4

# League phase matchday dates (month, day)
EUROPE_MATCHDAYS = [
    (9, 24), (10, 1), (10, 22), (11, 5), (11, 26), (12, 10), (1, 21), (1, 28),
]

# Leg dates (month, day) per knockout round
EUROPE_LEG_DATES = {
    "PLAYOFF": ((2, 19), (2, 26)),
    "R16": ((3, 4), (3, 11)),
    "QF": ((4, 1), (4, 8)),
    "SF": ((4, 29), (5, 6)),
}
EUROPE_FINAL_DATE = (6, 6)

# Second-division playoffs follow the last league round
PLAYOFF_SEMI_DATE = (6, 8)
PLAYOFF_FINAL_DATE = (6, 15)

POT_PAIRS = [(0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3)]

RELEGATION_SPOTS = 3
AUTOMATIC_PROMOTION_SPOTS = 2
CUP_BAN_SPOTS = 2


@dataclass
class TwoLegTie:
    """A two-legged knockout tie, seen from the second leg."""
    first_leg: Fixture
    second_leg: Fixture

    @property
    def aggregate(self) -> Tuple[int, int]:
        """(second-leg home, second-leg away) aggregate goals."""
        return aggregate_score(self.second_leg, self.first_leg)

    def winner_id(self) -> str:
        home, away = self.aggregate
        if home > away:
            return self.second_leg.home_team_id
        if away > home:
            return self.second_leg.away_team_id
        if (self.second_leg.pk_away or 0) > (self.second_leg.pk_home or 0):
            return self.second_leg.away_team_id
        return self.second_leg.home_team_id


def _make_fixture(
    week: int, day: date, home_id: str, away_id: str, competition: Competition
) -> Fixture:
    return Fixture(
        id=new_fixture_id(),
        week=week,
        date=day,
        home_team_id=home_id,
        away_team_id=away_id,
        competition_id=competition,
    )


class CompetitionManager:
    """Generates knockout rounds and resolves season-end movements."""

    def __init__(self, seed: Optional[int] = None):
        self.rng = random.Random(seed)

    # ------------------------------------------------------------------
    # Super cup
    # ------------------------------------------------------------------

    def super_cup_semis(self, seeds: Sequence[Team], season_year: int) -> List[Fixture]:
        """Seed 1 v 3 on Jan 5, seed 2 v 4 on Jan 6."""
        if len(seeds) < 4:
            logger.warning("Super cup needs four teams, got %d", len(seeds))
            return []
        t1, t2, t3, t4 = seeds[:4]
        return [
            _make_fixture(SUPER_CUP_SEMI_WEEK, season_date(season_year, 1, 5),
                          t1.id, t3.id, Competition.SUPER_CUP),
            _make_fixture(SUPER_CUP_SEMI_WEEK, season_date(season_year, 1, 6),
                          t2.id, t4.id, Competition.SUPER_CUP),
        ]

    def initial_super_cup(self, teams: Sequence[Team], season_year: int) -> List[Fixture]:
        """First season semis from the founding clubs, topped up by strength."""
        by_name = {t.name: t for t in teams}
        seeds = [by_name[name] for name in INITIAL_SUPER_CUP_TEAMS if name in by_name]
        if len(seeds) < 4:
            chosen = {t.id for t in seeds}
            extras = sorted(
                (t for t in teams if t.league_id == LeagueId.LEAGUE and t.id not in chosen),
                key=lambda t: t.strength,
                reverse=True,
            )
            seeds.extend(extras[:4 - len(seeds)])
        return self.super_cup_semis(seeds, season_year)

    def super_cup_final(self, fixtures: Sequence[Fixture], season_year: int) -> List[Fixture]:
        semis = season_fixtures(
            fixtures, season_year, [Competition.SUPER_CUP], SUPER_CUP_SEMI_WEEK
        )
        if len(semis) < 2 or not round_complete(semis):
            return []
        semis.sort(key=lambda f: f.date)
        return [_make_fixture(
            SUPER_CUP_FINAL_WEEK, season_date(season_year, 1, 10),
            semis[0].winner_id(), semis[1].winner_id(), Competition.SUPER_CUP,
        )]

    # ------------------------------------------------------------------
    # Domestic cup
    # ------------------------------------------------------------------

    def cup_round(
        self,
        round_name: str,
        teams: Sequence[Team],
        fixtures: Sequence[Fixture],
        season_year: int,
    ) -> List[Fixture]:
        """Draw one domestic cup round.

        R32 draws from every domestic club without a cup ban, truncated to
        32 after shuffling. Later rounds draw the previous round's winners,
        and only once that round is fully played.
        """
        week = CUP_WEEKS[round_name]
        if round_name == "R32":
            pool = [
                t.id for t in teams
                if not t.cup_ban and t.league_id in (LeagueId.LEAGUE, LeagueId.LEAGUE_1)
            ]
            self.rng.shuffle(pool)
            pool = pool[:32]
        else:
            previous = season_fixtures(fixtures, season_year, [Competition.CUP], week - 1)
            if not round_complete(previous):
                return []
            pool = [f.winner_id() for f in previous]
            self.rng.shuffle(pool)

        new_fixtures = []
        for i in range(0, len(pool) - 1, 2):
            new_fixtures.append(_make_fixture(
                week, self._cup_date(round_name, season_year, i),
                pool[i], pool[i + 1], Competition.CUP,
            ))
        return new_fixtures

    @staticmethod
    def _cup_date(round_name: str, season_year: int, index: int) -> date:
        if round_name == "R32":
            return season_date(season_year, 12, 28 if index % 4 == 0 else 29)
        if round_name == "R16":
            return season_date(season_year, 1, 14 if index % 4 == 0 else 15)
        if round_name == "QF":
            return season_date(season_year, 3, 27 if index % 4 == 0 else 28)
        if round_name == "SF":
            return season_date(season_year, 5, 1 if index == 0 else 2)
        return season_date(season_year, 5, 14)

    def cup_winner(self, fixtures: Sequence[Fixture], season_year: int) -> Optional[str]:
        finals = season_fixtures(fixtures, season_year, [Competition.CUP], CUP_FINAL_WEEK)
        played = [f for f in finals if f.played]
        return played[0].winner_id() if played else None

    # ------------------------------------------------------------------
    # Continental competition
    # ------------------------------------------------------------------

    def europe_participants(
        self, teams: Sequence[Team], fixtures: Sequence[Fixture], season_year: int
    ) -> List[Team]:
        """Foreign clubs plus five domestic representatives.

        Domestic order of precedence: last season's top four plus the cup
        winner if it finished outside the top four, otherwise the top five.
        The first season uses the founding clubs. Short lists are topped
        up by strength.
        """
        foreign = [t for t in teams if t.league_id == LeagueId.EUROPE_LEAGUE]
        candidates = [t for t in teams if t.league_id == LeagueId.LEAGUE]

        if any(t.league_history for t in candidates):
            def last_rank(team: Team) -> int:
                if not team.league_history:
                    return 99
                entry = team.league_history[-1]
                if entry.get("competition_id", "LEAGUE") != LeagueId.LEAGUE.value:
                    return 99
                return entry.get("rank", 99)

            ranked = sorted(candidates, key=last_rank)
            top4 = ranked[:4]
            cup_winner_id = self.cup_winner(fixtures, season_year - 1)
            cup_winner = next((t for t in candidates if t.id == cup_winner_id), None)
            if cup_winner is not None and cup_winner not in top4:
                domestic = top4 + [cup_winner]
            else:
                domestic = ranked[:DOMESTIC_EUROPE_SLOTS]
        else:
            by_name = {t.name: t for t in candidates}
            domestic = [by_name[name] for name in INITIAL_EUROPE_TEAMS if name in by_name]

        if len(domestic) < DOMESTIC_EUROPE_SLOTS:
            chosen = {t.id for t in domestic}
            extras = sorted(
                (t for t in candidates if t.id not in chosen),
                key=lambda t: t.strength,
                reverse=True,
            )
            domestic.extend(extras[:DOMESTIC_EUROPE_SLOTS - len(domestic)])

        return foreign + domestic[:DOMESTIC_EUROPE_SLOTS]

    def europe_league_phase(self, participants: Sequence[Team], season_year: int) -> List[Fixture]:
        """Pot-based league phase, eight matchdays, every team once per week."""
        ranked = sorted(
            participants,
            key=lambda t: t.reputation * 2 + self.rng.random(),
            reverse=True,
        )
        if len(ranked) % 4 != 0:
            logger.warning(
                "%d continental teams is not divisible by 4; pots will be uneven", len(ranked)
            )
        pot_size = math.ceil(len(ranked) / 4)
        pots = [ranked[i * pot_size:(i + 1) * pot_size] for i in range(4)]

        pairings: List[Tuple[str, str]] = []
        for pot in pots:
            n = len(pot)
            if n < 2:
                continue
            for i in range(n):
                pairings.append((pot[i].id, pot[(i + 1) % n].id))
        for a, b in POT_PAIRS:
            pot_a, pot_b = pots[a], pots[b]
            n = min(len(pot_a), len(pot_b))
            for i in range(n):
                pairings.append((pot_a[i].id, pot_b[i].id))
                pairings.append((pot_a[i].id, pot_b[(i + 1) % n].id))

        team_ids = [t.id for t in ranked]
        schedule = None
        for _ in range(SCHEDULER_RETRIES):
            schedule = self._solve_schedule(pairings, team_ids, EUROPE_MATCHDAY_COUNT)
            if schedule is not None:
                break
        if schedule is None:
            logger.warning("Continental schedule unsolved after %d tries; using sequential fallback",
                           SCHEDULER_RETRIES)
            per_week = max(1, len(pairings) / EUROPE_MATCHDAY_COUNT)
            schedule = [min(EUROPE_MATCHDAY_COUNT - 1, int(i // per_week)) for i in range(len(pairings))]

        home_counts: Dict[str, int] = {tid: 0 for tid in team_ids}
        fixtures = []
        for index, (t1, t2) in enumerate(pairings):
            week_index = schedule[index]
            h1, h2 = home_counts[t1], home_counts[t2]
            if h1 > h2:
                home, away = t2, t1
            elif h2 > h1:
                home, away = t1, t2
            else:
                home, away = (t2, t1) if t1 > t2 else (t1, t2)
            if home_counts[home] >= MAX_HOME_GAMES and home_counts[away] < MAX_HOME_GAMES:
                home, away = away, home
            home_counts[home] += 1

            month, day = EUROPE_MATCHDAYS[min(week_index, EUROPE_MATCHDAY_COUNT - 1)]
            match_date = season_date(season_year, month, day)
            if index % 2 == 0 and week_index != EUROPE_MATCHDAY_COUNT - 1:
                match_date += timedelta(days=1)
            fixtures.append(_make_fixture(201 + week_index, match_date, home, away, Competition.EUROPE))
        return fixtures

    def _solve_schedule(
        self, pairings: List[Tuple[str, str]], team_ids: List[str], weeks: int
    ) -> Optional[List[int]]:
        """Assign each pairing a week so every team plays once per week.

        Weeks are solved one at a time by backtracking, always branching on
        the team with the fewest remaining options. Candidate order is
        shuffled so a retry explores a different search tree.
        """
        team_matches: Dict[str, List[int]] = {tid: [] for tid in team_ids}
        for index, (t1, t2) in enumerate(pairings):
            team_matches[t1].append(index)
            team_matches[t2].append(index)

        assignment = [-1] * len(pairings)
        used: Set[int] = set()

        for week in range(weeks):
            chosen: List[int] = []
            busy: Set[str] = set()

            def options(team_id: str) -> List[int]:
                result = []
                for index in team_matches[team_id]:
                    if index in used:
                        continue
                    t1, t2 = pairings[index]
                    opponent = t2 if t1 == team_id else t1
                    if opponent not in busy:
                        result.append(index)
                return result

            def solve_week() -> bool:
                if len(busy) == len(team_ids):
                    return True
                best_team, best_options = None, None
                for team_id in team_ids:
                    if team_id in busy:
                        continue
                    team_options = options(team_id)
                    if best_options is None or len(team_options) < len(best_options):
                        best_team, best_options = team_id, team_options
                        if not team_options:
                            return False
                if best_team is None:
                    return False

                self.rng.shuffle(best_options)
                for index in best_options:
                    t1, t2 = pairings[index]
                    chosen.append(index)
                    used.add(index)
                    busy.update((t1, t2))
                    if solve_week():
                        return True
                    chosen.pop()
                    used.discard(index)
                    busy.difference_update((t1, t2))
                return False

            if not solve_week():
                return None
            for index in chosen:
                assignment[index] = week

        if any(week < 0 for week in assignment):
            return None
        return assignment

    def completed_ties(
        self, fixtures: Sequence[Fixture], season_year: int, second_leg_week: int
    ) -> List[TwoLegTie]:
        """All two-leg ties whose second leg is played, this season only."""
        ties = []
        for leg2 in season_fixtures(fixtures, season_year, [Competition.EUROPE], second_leg_week):
            if not leg2.played:
                continue
            leg1 = find_first_leg(fixtures, leg2)
            if leg1 is None or not leg1.played:
                logger.warning("First leg missing for continental tie %s", leg2.id)
                continue
            ties.append(TwoLegTie(first_leg=leg1, second_leg=leg2))
        return ties

    def europe_knockout(
        self, round_name: str, fixtures: Sequence[Fixture], season_year: int
    ) -> List[Fixture]:
        """Generate a continental knockout round if its predecessor is done.

        PLAYOFF: seeds 9-24 of the league phase, 9 v 24 and so on, lower
        seed at home first. R16: playoff winners at home first against the
        shuffled top eight. Later rounds pair the previous winners at
        random. The final is a single leg.
        """
        pairs: List[Tuple[str, str]] = []

        if round_name == "PLAYOFF":
            phase = season_fixtures(fixtures, season_year, [Competition.EUROPE], 208)
            if not round_complete(phase):
                return []
            table = europe_table(fixtures, season_year)
            seeds = table[8:24]
            for i in range(min(8, len(seeds) // 2)):
                high, low = seeds[i], seeds[len(seeds) - 1 - i]
                pairs.append((low.team_id, high.team_id))
        else:
            previous_second_leg = {
                "R16": EUROPE_KNOCKOUT_WEEKS["PLAYOFF"][1],
                "QF": EUROPE_KNOCKOUT_WEEKS["R16"][1],
                "SF": EUROPE_KNOCKOUT_WEEKS["QF"][1],
                "FINAL": EUROPE_KNOCKOUT_WEEKS["SF"][1],
            }[round_name]
            legs = season_fixtures(fixtures, season_year, [Competition.EUROPE], previous_second_leg)
            if not round_complete(legs):
                return []
            winners = [tie.winner_id() for tie in self.completed_ties(
                fixtures, season_year, previous_second_leg
            )]
            self.rng.shuffle(winners)

            if round_name == "R16":
                top8 = [row.team_id for row in europe_table(fixtures, season_year)[:8]]
                self.rng.shuffle(top8)
                pairs = list(zip(winners, top8))
            else:
                pairs = [(winners[i], winners[i + 1]) for i in range(0, len(winners) - 1, 2)]

        if round_name == "FINAL":
            month, day = EUROPE_FINAL_DATE
            return [
                _make_fixture(EUROPE_FINAL_WEEK, season_date(season_year, month, day),
                              home, away, Competition.EUROPE)
                for home, away in pairs[:1]
            ]

        first_week, second_week = EUROPE_KNOCKOUT_WEEKS[round_name]
        (m1, d1), (m2, d2) = EUROPE_LEG_DATES[round_name]
        new_fixtures = []
        for home, away in pairs:
            new_fixtures.append(_make_fixture(
                first_week, season_date(season_year, m1, d1), home, away, Competition.EUROPE
            ))
            new_fixtures.append(_make_fixture(
                second_week, season_date(season_year, m2, d2), away, home, Competition.EUROPE
            ))
        return new_fixtures

    # ------------------------------------------------------------------
    # Second division playoffs and season-end movements
    # ------------------------------------------------------------------

    def playoff_semis(self, teams: Sequence[Team], season_year: int) -> List[Fixture]:
        """3rd v 5th and 4th v 6th of the second division."""
        table = standings(teams, LeagueId.LEAGUE_1)
        if len(table) < 6:
            return []
        month, day = PLAYOFF_SEMI_DATE
        semi_date = season_date(season_year, month, day)
        return [
            _make_fixture(PLAYOFF_SEMI_WEEK, semi_date, table[2].id, table[4].id, Competition.PLAYOFF),
            _make_fixture(PLAYOFF_SEMI_WEEK, semi_date, table[3].id, table[5].id, Competition.PLAYOFF),
        ]

    def playoff_final(self, fixtures: Sequence[Fixture], season_year: int) -> List[Fixture]:
        semis = season_fixtures(fixtures, season_year, [Competition.PLAYOFF], PLAYOFF_SEMI_WEEK)
        if len(semis) != 2 or not round_complete(semis):
            return []
        month, day = PLAYOFF_FINAL_DATE
        return [_make_fixture(
            PLAYOFF_FINAL_WEEK, season_date(season_year, month, day),
            semis[0].winner_id(), semis[1].winner_id(), Competition.PLAYOFF_FINAL,
        )]

    def playoff_winner(
        self, teams: Sequence[Team], fixtures: Sequence[Fixture], season_year: int
    ) -> Optional[Team]:
        """Playoff final winner, or the third-placed team if no final was played."""
        finals = season_fixtures(fixtures, season_year, [Competition.PLAYOFF_FINAL])
        played = [f for f in finals if f.played]
        by_id = {t.id: t for t in teams}
        if played:
            return by_id.get(played[0].winner_id())
        table = standings(teams, LeagueId.LEAGUE_1)
        return table[2] if len(table) >= 3 else None

    def season_movements(
        self, teams: Sequence[Team], fixtures: Sequence[Fixture], season_year: int
    ) -> Tuple[List[Team], List[Team], Set[str]]:
        """(relegated, promoted, cup-banned ids) from the final tables."""
        top = standings(teams, LeagueId.LEAGUE)
        second = standings(teams, LeagueId.LEAGUE_1)

        relegated = top[-RELEGATION_SPOTS:] if len(top) > RELEGATION_SPOTS else []
        promoted = list(second[:AUTOMATIC_PROMOTION_SPOTS])
        winner = self.playoff_winner(teams, fixtures, season_year)
        if winner is not None and winner not in promoted:
            promoted.append(winner)

        banned = {t.id for t in top[-CUP_BAN_SPOTS:]} | {t.id for t in second[-CUP_BAN_SPOTS:]}
        return relegated, promoted, banned

    def apply_promotion_relegation(
        self, teams: Sequence[Team], fixtures: Sequence[Fixture], season_year: int
    ) -> Tuple[List[Team], List[Team]]:
        relegated, promoted, banned = self.season_movements(teams, fixtures, season_year)
        for team in relegated:
            team.league_id = LeagueId.LEAGUE_1
        for team in promoted:
            team.league_id = LeagueId.LEAGUE
        for team in teams:
            if team.league_id in (LeagueId.LEAGUE, LeagueId.LEAGUE_1):
                team.cup_ban = team.id in banned
        logger.info(
            "Season %d: relegated %s, promoted %s",
            season_year,
            [t.name for t in relegated],
            [t.name for t in promoted],
        )
        return relegated, promoted
