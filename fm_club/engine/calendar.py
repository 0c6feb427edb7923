"""Season calendar for FM Club.

Provides the date arithmetic every season-scoped query goes through:
- Season start year of any date (seasons run July to June)
- Fixed league round dates, 34 rounds per season
- Circle-method double round robin
- Transfer window predicate
- Season-filtered fixture lookups and two-leg pairing
"""

import math
import uuid
from datetime import date, timedelta
from typing import Iterable, List, Optional

from fm_club.core.models import Competition, Fixture

LEAGUE_COMPETITIONS = {Competition.LEAGUE, Competition.LEAGUE_1}
ROUND_COMPETITIONS = {
    Competition.LEAGUE,
    Competition.LEAGUE_1,
    Competition.PLAYOFF,
    Competition.PLAYOFF_FINAL,
}

LEAGUE_ROUNDS = 34

# (month, day) of each league round; months before July fall in the second year
LEAGUE_WEEK_DATES = [
    (8, 8), (8, 15), (8, 22), (8, 29),
    (9, 5), (9, 12), (9, 19),
    (10, 6), (10, 13), (10, 27),
    (11, 2), (11, 9), (11, 16),
    (12, 1), (12, 7), (12, 15), (12, 22),
    (2, 2), (2, 9), (2, 16), (2, 23),
    (3, 2), (3, 9), (3, 16), (3, 23),
    (4, 6), (4, 13), (4, 20), (4, 27),
    (5, 4), (5, 11), (5, 18), (5, 25),
    (6, 1),
]


def new_fixture_id() -> str:
    return uuid.uuid4().hex[:12]


def season_year_of(day: date) -> int:
    """Start year of the season a date belongs to (July to June)."""
    return day.year if day.month >= 7 else day.year - 1


def season_label(season_year: int) -> str:
    return f"{season_year}/{season_year + 1}"


def season_date(season_year: int, month: int, day: int) -> date:
    """Calendar date of (month, day) inside the given season."""
    year = season_year if month >= 7 else season_year + 1
    return date(year, month, day)


def league_round_date(season_year: int, round_number: int) -> date:
    """Base date of a league round; rounds past the table step a week each."""
    if round_number <= len(LEAGUE_WEEK_DATES):
        month, day = LEAGUE_WEEK_DATES[round_number - 1]
        return season_date(season_year, month, day)
    month, day = LEAGUE_WEEK_DATES[-1]
    extra = round_number - len(LEAGUE_WEEK_DATES)
    return season_date(season_year, month, day) + timedelta(days=7 * extra)


def generate_league_fixtures(
    team_ids: List[str],
    season_year: int,
    competition: Competition = Competition.LEAGUE,
) -> List[Fixture]:
    """Double round robin by the circle method.

    The first team stays fixed while the rest rotate. Home and away flip
    with round parity and the second half of each round's matches plays
    the following day.
    """
    if len(team_ids) < 2:
        return []

    rotation = list(team_ids)
    if len(rotation) % 2 == 1:
        rotation.append("")
    fixed = rotation.pop(0)
    matches_per_round = (len(rotation) + 1) // 2
    split_index = math.ceil(matches_per_round / 2)
    total_rounds = len(rotation) * 2

    fixtures: List[Fixture] = []
    for round_index in range(total_rounds):
        base = league_round_date(season_year, round_index + 1)
        pairs = [(fixed, rotation[-1])]
        for i in range((len(rotation) - 1) // 2):
            pairs.append((rotation[i], rotation[len(rotation) - 2 - i]))

        for index, (first, second) in enumerate(pairs):
            if not first or not second:
                continue
            home, away = (first, second) if round_index % 2 == 0 else (second, first)
            fixtures.append(Fixture(
                id=new_fixture_id(),
                week=round_index + 1,
                date=base + timedelta(days=1) if index >= split_index else base,
                home_team_id=home,
                away_team_id=away,
                competition_id=competition,
            ))

        rotation.insert(0, rotation.pop())

    fixtures.sort(key=lambda f: f.date)
    return fixtures


def is_transfer_window_open(day: date) -> bool:
    """Summer window Jul 1 - Sep 1, winter window Jan 1 - Feb 1, inclusive."""
    if day.month in (7, 8) or (day.month == 9 and day.day <= 1):
        return True
    if day.month == 1 or (day.month == 2 and day.day <= 1):
        return True
    return False


def season_fixtures(
    fixtures: Iterable[Fixture],
    season_year: int,
    competitions: Optional[Iterable[Competition]] = None,
    week: Optional[int] = None,
) -> List[Fixture]:
    """Fixtures of one season, optionally narrowed by competition and week."""
    wanted = set(competitions) if competitions is not None else None
    result = []
    for fixture in fixtures:
        if season_year_of(fixture.date) != season_year:
            continue
        if wanted is not None and fixture.competition_id not in wanted:
            continue
        if week is not None and fixture.week != week:
            continue
        result.append(fixture)
    return result


def has_fixture_this_season(
    fixtures: Iterable[Fixture], season_year: int, competition: Competition, week: int
) -> bool:
    return any(
        f.competition_id == competition and f.week == week and season_year_of(f.date) == season_year
        for f in fixtures
    )


def round_complete(fixtures: List[Fixture]) -> bool:
    """A round is complete when it exists and every match is played."""
    return bool(fixtures) and all(f.played for f in fixtures)


def find_first_leg(fixtures: Iterable[Fixture], second_leg: Fixture) -> Optional[Fixture]:
    """The previous leg: reversed sides, week - 1, same competition and season."""
    season = season_year_of(second_leg.date)
    for fixture in fixtures:
        if (
            fixture.competition_id == second_leg.competition_id
            and fixture.week == second_leg.week - 1
            and fixture.home_team_id == second_leg.away_team_id
            and fixture.away_team_id == second_leg.home_team_id
            and season_year_of(fixture.date) == season
        ):
            return fixture
    return None


def fixtures_due(fixtures: Iterable[Fixture], day: date) -> List[Fixture]:
    """Unplayed fixtures dated on or before the given day."""
    return [f for f in fixtures if not f.played and f.date <= day]


def next_fixture_for(fixtures: Iterable[Fixture], team_id: str, after: date) -> Optional[Fixture]:
    upcoming = [f for f in fixtures if not f.played and f.involves(team_id) and f.date >= after]
    return min(upcoming, key=lambda f: f.date) if upcoming else None
