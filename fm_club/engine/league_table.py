"""League tables rebuilt from season-filtered results."""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from fm_club.core.models import Competition, Fixture, LeagueId, TableStats, Team
from fm_club.engine.calendar import LEAGUE_COMPETITIONS, season_year_of


@dataclass
class EuropeRow:
    """League-phase record of one continental participant."""
    team_id: str
    played: int = 0
    points: int = 0
    goals_for: int = 0
    goals_against: int = 0
    away_goals: int = 0

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against


def standing_key(team: Team):
    return (-team.stats.points, -team.stats.goal_difference)


def refresh_league_stats(teams: List[Team], fixtures: Iterable[Fixture], season_year: int) -> None:
    """Recompute every team's table record from this season's league results."""
    records: Dict[str, TableStats] = {t.id: TableStats() for t in teams}
    for fixture in fixtures:
        if not fixture.played or fixture.competition_id not in LEAGUE_COMPETITIONS:
            continue
        if season_year_of(fixture.date) != season_year:
            continue
        home = records.get(fixture.home_team_id)
        away = records.get(fixture.away_team_id)
        if home is not None:
            home.record(fixture.home_score, fixture.away_score)
        if away is not None:
            away.record(fixture.away_score, fixture.home_score)
    for team in teams:
        team.stats = records[team.id]


def standings(teams: Iterable[Team], league_id: LeagueId) -> List[Team]:
    """Teams of one league ordered by points, then goal difference."""
    return sorted((t for t in teams if t.league_id == league_id), key=standing_key)


def rank_of(teams: Iterable[Team], team: Team) -> int:
    table = standings(teams, team.league_id)
    for index, entry in enumerate(table):
        if entry.id == team.id:
            return index + 1
    return len(table) + 1


def europe_table(fixtures: Iterable[Fixture], season_year: int) -> List[EuropeRow]:
    """Continental league phase table.

    Sorted by points, goal difference, goals scored, then away goals.
    """
    rows: Dict[str, EuropeRow] = {}
    for fixture in fixtures:
        if fixture.competition_id != Competition.EUROPE or fixture.week > 208:
            continue
        if season_year_of(fixture.date) != season_year:
            continue
        home = rows.setdefault(fixture.home_team_id, EuropeRow(fixture.home_team_id))
        away = rows.setdefault(fixture.away_team_id, EuropeRow(fixture.away_team_id))
        if not fixture.played:
            continue
        hs, as_ = fixture.home_score, fixture.away_score
        home.played += 1
        away.played += 1
        home.goals_for += hs
        home.goals_against += as_
        away.goals_for += as_
        away.goals_against += hs
        away.away_goals += as_
        if hs > as_:
            home.points += 3
        elif as_ > hs:
            away.points += 3
        else:
            home.points += 1
            away.points += 1

    return sorted(
        rows.values(),
        key=lambda r: (-r.points, -r.goal_difference, -r.goals_for, -r.away_goals),
    )


def recent_form(fixtures: Iterable[Fixture], team_id: str, count: int = 5) -> str:
    """Last results as a W/D/L string, most recent last."""
    played = sorted(
        (f for f in fixtures if f.played and f.involves(team_id)),
        key=lambda f: f.date,
    )[-count:]
    form = []
    for fixture in played:
        home = fixture.home_team_id == team_id
        scored = fixture.home_score if home else fixture.away_score
        conceded = fixture.away_score if home else fixture.home_score
        form.append("W" if scored > conceded else "D" if scored == conceded else "L")
    return "".join(form)


def leader_and_runner_up(teams: Iterable[Team], league_id: LeagueId) -> Optional[tuple]:
    table = standings(teams, league_id)
    if len(table) < 2:
        return None
    return table[0], table[1]
