"""Season state machine for FM Club.

Advances a career one day at a time:
- Loan returns, then the July 1 rollover or a regular day
- Competition draws on fixed calendar dates, guarded per season
- Background simulation of due fixtures, two-leg ties included
- Post-match processing, finances, board trust and the news feed
- AI transfers, the shared market and incoming offers
- Player progression and strength recalculation
- League tables, week counter, champion and game-over checks

Every day is simulated on a working copy, so a failing day leaves the
caller's state untouched.
"""

import copy
import logging
import random
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import List, Optional, Tuple

from fm_club.config import SimulationConfig
from fm_club.core.errors import FMClubError
from fm_club.core.models import (
    Competition,
    Fixture,
    GameState,
    IncomingOffer,
    LeagueId,
    ManagerProfile,
    NewsItem,
    NewsPriority,
    SeasonStats,
    SeasonSummary,
    TableStats,
    Team,
    TrainingFocus,
    TrainingIntensity,
)
from fm_club.core.models.match import (
    CUP_FINAL_WEEK,
    CUP_WEEKS,
    EUROPE_FINAL_WEEK,
    EUROPE_KNOCKOUT_WEEKS,
    EUROPE_LEAGUE_WEEKS,
    PLAYOFF_FINAL_WEEK,
    SECOND_LEGS,
    SUPER_CUP_FINAL_WEEK,
)
from fm_club.core.models.team import empty_ledger
from fm_club.data.generators import initialize_teams
from fm_club.engine.board_system import (
    BoardSystem,
    apply_reputation_change,
    ensure_not_over,
    objective_met,
    season_reputation_change,
)
from fm_club.engine.calendar import (
    LEAGUE_ROUNDS,
    ROUND_COMPETITIONS,
    find_first_leg,
    fixtures_due,
    generate_league_fixtures,
    has_fixture_this_season,
    round_complete,
    season_fixtures,
    season_label,
    season_year_of,
)
from fm_club.engine.competitions import CompetitionManager
from fm_club.engine.finance_engine import FinanceEngine, manager_power, manager_salary
from fm_club.engine.league_table import (
    leader_and_runner_up,
    rank_of,
    refresh_league_stats,
    standings,
)
from fm_club.engine.match_engine import MatchSimulator
from fm_club.engine.news_system import COMPETITION_NAMES, NewsGenerator
from fm_club.engine.post_match import PostMatchProcessor, suspension_competition
from fm_club.engine.progression import ProgressionEngine, TrainingReport, optimize_ai_squad
from fm_club.engine.strength import recalculate_team_strength
from fm_club.engine.transfer_engine import TransferEngine

logger = logging.getLogger(__name__)


NEWS_LIMIT = 30

# (month, day) -> domestic cup round drawn that day
CUP_DRAW_DATES = {
    (12, 1): "R32",
    (12, 30): "R16",
    (1, 16): "QF",
    (3, 29): "SF",
    (5, 3): "FINAL",
}

# (month, day) -> continental knockout round drawn that day
EUROPE_DRAW_DATES = {
    (1, 30): "PLAYOFF",
    (2, 28): "R16",
    (3, 14): "QF",
    (4, 11): "SF",
    (5, 9): "FINAL",
}

EUROPE_DRAW_DAY = (9, 1)
SUPER_CUP_FINAL_DRAW_DAY = (1, 7)

# Competitions whose ties are settled on the day
SINGLE_LEG_KNOCKOUTS = {
    Competition.CUP,
    Competition.SUPER_CUP,
    Competition.PLAYOFF,
    Competition.PLAYOFF_FINAL,
}

FINAL_WEEKS = {
    Competition.CUP: CUP_FINAL_WEEK,
    Competition.SUPER_CUP: SUPER_CUP_FINAL_WEEK,
    Competition.EUROPE: EUROPE_FINAL_WEEK,
}


@dataclass
class GameOverSignal:
    """The manager has been dismissed."""
    reason: str


@dataclass
class SeasonChampion:
    """League champion, declared early or after the last round."""
    team_id: str
    team_name: str
    season: str


@dataclass
class DayResult:
    """The new state plus what happened on the simulated day."""
    state: GameState
    news: List[NewsItem] = field(default_factory=list)
    offers: List[IncomingOffer] = field(default_factory=list)
    champion: Optional[SeasonChampion] = None
    played_fixtures: List[Fixture] = field(default_factory=list)
    training_reports: List[TrainingReport] = field(default_factory=list)
    game_over: Optional[GameOverSignal] = None


def snapshot(state: GameState) -> GameState:
    """Working copy for one simulated day.

    Played fixtures are never written again, so they are shared with the
    original; everything else the day can touch is copied.
    """
    return replace(
        state,
        teams=copy.deepcopy(state.teams),
        fixtures=[f if f.played else copy.copy(f) for f in state.fixtures],
        transfer_market=copy.deepcopy(state.transfer_market),
        incoming_offers=copy.deepcopy(state.incoming_offers),
        news=list(state.news),
        manager=copy.deepcopy(state.manager),
        last_season_summary=copy.deepcopy(state.last_season_summary),
        season_history=list(state.season_history),
        active_holiday=copy.copy(state.active_holiday),
    )


def _reset_player_season(player) -> None:
    player.age += 1
    player.season_stats = SeasonStats()
    player.suspensions = {}
    player.yellow_card_accumulation = {}
    player.processed_match_ids = []


def reset_for_new_season(teams: List[Team]) -> None:
    """Clear per-season records and age every player, loanees included."""
    for team in teams:
        team.stats = TableStats()
        team.transfer_history = []
        team.financial_records = empty_ledger()
        for player in team.players + team.loaned_out_players:
            _reset_player_season(player)


def season_trophies(team: Team, fixtures: List[Fixture], season_year: int, rank: int) -> List[str]:
    """Trophy names a club won in one season."""
    trophies = []
    if rank == 1 and team.league_id in (LeagueId.LEAGUE, LeagueId.LEAGUE_1):
        trophies.append(COMPETITION_NAMES[team.league_id.value])
    finals = [
        (Competition.CUP, CUP_FINAL_WEEK),
        (Competition.SUPER_CUP, SUPER_CUP_FINAL_WEEK),
        (Competition.EUROPE, EUROPE_FINAL_WEEK),
        (Competition.PLAYOFF_FINAL, PLAYOFF_FINAL_WEEK),
    ]
    for competition, week in finals:
        for fixture in season_fixtures(fixtures, season_year, [competition], week):
            if fixture.played and fixture.winner_id() == team.id:
                trophies.append(COMPETITION_NAMES[competition.value])
    return trophies


def archive_season(state: GameState, season_year: int) -> SeasonSummary:
    """Summary of the user's finished season."""
    team = state.user_team
    rank = rank_of(state.teams, team)
    players = [p for t in state.teams for p in t.players]

    top_scorer = max(players, key=lambda p: p.season_stats.goals, default=None)
    top_assister = max(players, key=lambda p: p.season_stats.assists, default=None)
    regulars = [p for p in players if p.season_stats.matches_played > 5]
    top_rated = max(regulars, key=lambda p: p.season_stats.average_rating, default=None)

    return SeasonSummary(
        season=season_label(season_year),
        league_id=team.league_id.value,
        rank=rank,
        played=team.stats.played,
        won=team.stats.won,
        drawn=team.stats.drawn,
        lost=team.stats.lost,
        goals_for=team.stats.goals_for,
        goals_against=team.stats.goals_against,
        points=team.stats.points,
        top_scorer=top_scorer.name if top_scorer else None,
        top_assister=top_assister.name if top_assister else None,
        top_rated=top_rated.name if top_rated else None,
        trophies=season_trophies(team, state.fixtures, season_year, rank),
        objective_met=objective_met(team.board_expectation, rank),
    )


class SeasonEngine:
    """Drives a career through the calendar.

    Usage:
        engine = SeasonEngine(seed=42)
        state = engine.new_game()
        result = engine.advance_one_day(state)
        state = result.state
    """

    def __init__(self, seed: Optional[int] = None, config: Optional[SimulationConfig] = None):
        self.rng = random.Random(seed)
        self.config = config or SimulationConfig()
        self.matches = MatchSimulator(seed)
        self.competitions = CompetitionManager(seed)
        self.post_match = PostMatchProcessor(seed)
        self.finance = FinanceEngine(self.config.economy)
        self.news = NewsGenerator(seed)
        self.transfers = TransferEngine(seed, self.config, self.finance, self.news)
        self.progression = ProgressionEngine(seed)
        self.board = BoardSystem()

    # ------------------------------------------------------------------
    # New career
    # ------------------------------------------------------------------

    def new_game(
        self,
        team_name: Optional[str] = None,
        manager_name: str = "Manager",
    ) -> GameState:
        """Generate the world and the first season's fixtures.

        Args:
            team_name: Club to manage; a random top-flight club if omitted
            manager_name: The manager's name

        Raises:
            KeyError: If no club has the requested name
        """
        start = self.config.start_date
        season_year = season_year_of(start)
        teams = initialize_teams(self.rng, self.config)

        top_flight = [t for t in teams if t.league_id == LeagueId.LEAGUE]
        second = [t for t in teams if t.league_id == LeagueId.LEAGUE_1]
        fixtures = generate_league_fixtures([t.id for t in top_flight], season_year, Competition.LEAGUE)
        fixtures += generate_league_fixtures([t.id for t in second], season_year, Competition.LEAGUE_1)
        fixtures += self.competitions.initial_super_cup(teams, season_year)

        if team_name is None:
            user_team = self.rng.choice(top_flight)
        else:
            user_team = next((t for t in teams if t.name == team_name), None)
            if user_team is None or user_team.league_id == LeagueId.EUROPE_LEAGUE:
                raise KeyError(f"No domestic club named {team_name}")

        manager = ManagerProfile(name=manager_name, salary=manager_salary(user_team.strength))
        manager.power = manager_power(manager)

        state = GameState(
            current_date=start,
            user_team_id=user_team.id,
            teams=teams,
            fixtures=fixtures,
            transfer_market=self.transfers.generate_market(start),
            manager=manager,
        )
        state.news.append(self.news.announcement(
            f"{manager_name} Appointed at {user_team.name}",
            f"The board expects: {user_team.board_expectation.value}.",
            start,
            priority=NewsPriority.HIGH,
            team_id=user_team.id,
        ))
        logger.info("New career: %s at %s (%d clubs)", manager_name, user_team.name, len(teams))
        return state

    # ------------------------------------------------------------------
    # Daily loop
    # ------------------------------------------------------------------

    def advance_one_day(self, state: GameState) -> DayResult:
        """Simulate the next calendar day on a copy of the state.

        Every day, the July 1 rollover included, ends with the board's daily
        review and the dismissal check.

        Raises:
            GameOverError: If the career is already over
        """
        ensure_not_over(state)
        state = snapshot(state)
        today = state.current_date
        day = today + timedelta(days=1)
        result = DayResult(state=state)

        result.news.extend(self.transfers.process_loan_returns(state, day))

        if day.month == 7 and day.day == 1:
            self._rollover(state, day, result)
            self.board.daily_update(state.manager, state.user_team)
        else:
            self._regular_day(state, today, day, result)
        self._check_dismissal(state, result)

        state.current_date = day
        state.training_performed = False
        state.news = (list(reversed(result.news)) + state.news)[:NEWS_LIMIT]
        return result

    def _regular_day(self, state: GameState, today: date, day: date, result: DayResult) -> None:
        season = season_year_of(day)
        holiday = state.active_holiday is not None
        user_team = state.user_team

        for team in state.teams:
            if team.id != state.user_team_id:
                optimize_ai_squad(team)

        result.news.extend(self._draws(state, day, season))

        self.board.daily_update(state.manager, user_team)

        result.news.extend(self.transfers.simulate_ai_day(state, day))
        self.transfers.refresh_market(state, day)
        offers, offer_news = self.transfers.process_offers(state, today, day)
        result.offers.extend(offers)
        result.news.extend(offer_news)

        played = self._simulate_due(state, today, day, holiday)
        result.played_fixtures = played
        result.news.extend(self._finals(state, played, day))

        for team, player in self.post_match.process_fixtures(played, state.teams):
            if team.id == state.user_team_id:
                result.news.append(self.news.injury(team, player, day))

        self.finance.apply_daily_finances(user_team)
        state.manager.salary = manager_salary(user_team.strength)
        state.manager.power = manager_power(state.manager)

        refresh_league_stats(state.teams, state.fixtures, season)
        if played:
            result.news.extend(self.news.daily_results(played, state.teams, state.user_team_id))

        result.training_reports = self._progress(state, day, holiday, result)
        for team in state.teams:
            recalculate_team_strength(team)

        result.champion = self._advance_week(state, day, season, result)

    def _check_dismissal(self, state: GameState, result: DayResult) -> None:
        reason = self.board.check_dismissal(state.manager)
        if reason is not None:
            state.game_over_reason = reason
            result.game_over = GameOverSignal(reason)

    # ------------------------------------------------------------------
    # Draws
    # ------------------------------------------------------------------

    def _draws(self, state: GameState, day: date, season: int) -> List[NewsItem]:
        """Competition draws due on this date; each runs once per season."""
        news: List[NewsItem] = []
        fixtures = state.fixtures
        key = (day.month, day.day)
        new: List[Fixture] = []

        if key == EUROPE_DRAW_DAY and not has_fixture_this_season(
            fixtures, season, Competition.EUROPE, EUROPE_LEAGUE_WEEKS[0]
        ):
            participants = self.competitions.europe_participants(state.teams, fixtures, season)
            new = self.competitions.europe_league_phase(participants, season)
            domestic = [t.name for t in participants if t.league_id == LeagueId.LEAGUE]
            news.append(self.news.announcement(
                "Continental Cup Draw Made",
                f"Representing the league: {', '.join(domestic)}.",
                day,
            ))

        round_name = CUP_DRAW_DATES.get(key)
        if round_name is not None:
            week = CUP_WEEKS[round_name]
            if not has_fixture_this_season(fixtures, season, Competition.CUP, week):
                new = self.competitions.cup_round(round_name, state.teams, fixtures, season)

        round_name = EUROPE_DRAW_DATES.get(key)
        if round_name is not None:
            if round_name == "FINAL":
                week = EUROPE_FINAL_WEEK
            else:
                week = EUROPE_KNOCKOUT_WEEKS[round_name][0]
            if not has_fixture_this_season(fixtures, season, Competition.EUROPE, week):
                new = self.competitions.europe_knockout(round_name, fixtures, season)

        if key == SUPER_CUP_FINAL_DRAW_DAY and not has_fixture_this_season(
            fixtures, season, Competition.SUPER_CUP, SUPER_CUP_FINAL_WEEK
        ):
            new = self.competitions.super_cup_final(fixtures, season)

        fixtures.extend(new)

        # Second-division playoffs follow the last round
        if not season_fixtures(fixtures, season, [Competition.PLAYOFF]):
            last_round = season_fixtures(fixtures, season, [Competition.LEAGUE_1], LEAGUE_ROUNDS)
            if round_complete(last_round):
                fixtures.extend(self.competitions.playoff_semis(state.teams, season))
        elif not season_fixtures(fixtures, season, [Competition.PLAYOFF_FINAL]):
            fixtures.extend(self.competitions.playoff_final(fixtures, season))

        if new:
            logger.debug("%s: %d fixtures drawn", day, len(new))
        return news

    # ------------------------------------------------------------------
    # Matches
    # ------------------------------------------------------------------

    def _knockout_context(self, state: GameState, fixture: Fixture) -> Tuple[bool, Optional[Fixture]]:
        """(knockout, first leg) for a fixture about to be played."""
        if fixture.competition_id in SINGLE_LEG_KNOCKOUTS:
            return True, None
        if fixture.competition_id != Competition.EUROPE:
            return False, None
        if fixture.week == EUROPE_FINAL_WEEK:
            return True, None
        if fixture.week in SECOND_LEGS:
            first_leg = find_first_leg(state.fixtures, fixture)
            if first_leg is None or not first_leg.played:
                logger.warning(
                    "Continental fixture %s (week %d) has no first leg; playing it as a single match",
                    fixture.id, fixture.week,
                )
                return False, None
            return True, first_leg
        return False, None

    def _play(self, state: GameState, fixture: Fixture, background: bool = True) -> None:
        home = state.team(fixture.home_team_id)
        away = state.team(fixture.away_team_id)
        if home is None or away is None:
            logger.warning("Fixture %s references a missing team", fixture.id)
            return
        knockout, first_leg = self._knockout_context(state, fixture)
        outcome = self.matches.simulate_match(
            home, away,
            competition_id=suspension_competition(fixture, home),
            knockout=knockout,
            first_leg=first_leg,
            background=background,
        )
        fixture.record_result(
            outcome.home_score,
            outcome.away_score,
            events=outcome.events,
            stats=outcome.stats,
            pk_home=outcome.pk_home,
            pk_away=outcome.pk_away,
        )

    def _simulate_due(
        self, state: GameState, today: date, day: date, holiday: bool
    ) -> List[Fixture]:
        """Play every due fixture the manager is not taking charge of.

        The user's fixtures wait for the manager on their own day, unless
        a holiday is active or the day has already passed.
        """
        user_id = state.user_team_id
        due = [
            f for f in fixtures_due(state.fixtures, day)
            if not f.involves(user_id) or holiday or f.date <= today
        ]
        due.sort(key=lambda f: (f.date, f.week))

        played = []
        for fixture in due:
            self._play(state, fixture)
            if not fixture.played:
                continue
            played.append(fixture)
            if fixture.involves(user_id):
                self.board.record_result(state.manager, user_id, fixture)
        return played

    def train_team(
        self,
        state: GameState,
        intensity: Optional[TrainingIntensity] = None,
        focus: Optional[TrainingFocus] = None,
    ) -> List[TrainingReport]:
        """Run today's team session for the user's club.

        Raises:
            GameOverError: If the career is over
            FMClubError: If the squad already trained today
        """
        ensure_not_over(state)
        if state.training_performed:
            raise FMClubError("The squad has already trained today")
        reports = self.progression.run_team_training(state.user_team, intensity, focus)
        state.training_performed = True
        return reports

    def play_user_fixtures(self, state: GameState) -> List[Fixture]:
        """Play the user's fixtures scheduled up to today, in the foreground."""
        ensure_not_over(state)
        user_id = state.user_team_id
        due = [f for f in fixtures_due(state.fixtures, state.current_date) if f.involves(user_id)]
        for fixture in sorted(due, key=lambda f: f.date):
            self._play(state, fixture, background=False)
            self.board.record_result(state.manager, user_id, fixture)
        played = [f for f in due if f.played]
        self.post_match.process_fixtures(played, state.teams)
        refresh_league_stats(state.teams, state.fixtures, season_year_of(state.current_date))
        self._finals(state, played, state.current_date)
        return played

    def _finals(self, state: GameState, played: List[Fixture], day: date) -> List[NewsItem]:
        """Trophy counters for finals played today."""
        news = []
        for fixture in played:
            if FINAL_WEEKS.get(fixture.competition_id) != fixture.week:
                continue
            winner = state.team(fixture.winner_id())
            if winner is None:
                continue
            competition = fixture.competition_id
            if competition == Competition.CUP:
                winner.trophies.cup += 1
            elif competition == Competition.SUPER_CUP:
                winner.trophies.super_cup += 1
            else:
                winner.trophies.europe += 1

            if winner.id == state.user_team_id:
                manager = state.manager
                if competition == Competition.EUROPE:
                    manager.european_cups += 1
                else:
                    manager.domestic_cups += 1
                manager.trophies.append({
                    "season": season_label(season_year_of(day)),
                    "competition": competition.value,
                })
            news.append(self.news.trophy(winner, competition.value, day))
        return news

    # ------------------------------------------------------------------
    # Progression
    # ------------------------------------------------------------------

    def _progress(
        self, state: GameState, day: date, holiday: bool, result: DayResult
    ) -> List[TrainingReport]:
        reports: List[TrainingReport] = []
        for team in state.teams:
            is_user = team.id == state.user_team_id
            trained = True
            if is_user:
                trained = state.training_performed
                if holiday:
                    reports.extend(self.progression.assistant_session(team))
                    trained = True
            progress = self.progression.daily_update(team, trained, day, individual=is_user)
            if is_user:
                reports.extend(progress.reports)
                for player in progress.new_injuries:
                    result.news.append(self.news.injury(team, player, day))
        return reports

    # ------------------------------------------------------------------
    # Weeks and the end of the league season
    # ------------------------------------------------------------------

    def _advance_week(
        self, state: GameState, day: date, season: int, result: DayResult
    ) -> Optional[SeasonChampion]:
        """Move to the next week once the current round is fully played."""
        current = season_fixtures(
            state.fixtures, season, ROUND_COMPETITIONS, week=state.current_week
        )
        if not round_complete(current):
            return None

        champion = None
        pair = leader_and_runner_up(state.teams, LeagueId.LEAGUE)
        if pair is not None and not state.champion_declared:
            leader, runner_up = pair
            remaining = LEAGUE_ROUNDS - state.current_week
            if leader.stats.points > runner_up.stats.points + remaining * 3:
                champion = SeasonChampion(leader.id, leader.name, season_label(season))
                state.champion_declared = True
                result.news.append(self.news.announcement(
                    f"{leader.name} Are Champions!",
                    f"{leader.name} have won the title with {remaining} rounds to spare.",
                    day,
                    priority=NewsPriority.BREAKING,
                    team_id=leader.id,
                ))

        if state.current_week == LEAGUE_ROUNDS:
            champion = self._close_league_season(state, day, season, result)

        state.current_week += 1
        return champion

    def _close_league_season(
        self, state: GameState, day: date, season: int, result: DayResult
    ) -> Optional[SeasonChampion]:
        """Reputation, trophies and history once round 34 is complete."""
        table = standings(state.teams, LeagueId.LEAGUE)
        if not table:
            return None

        relegation_line = len(table) - 3
        for rank, team in enumerate(table, start=1):
            change = season_reputation_change(team.strength, rank, rank > relegation_line)
            apply_reputation_change(team, change)

        champion = table[0]
        champion.trophies.league += 1

        for league_id in (LeagueId.LEAGUE, LeagueId.LEAGUE_1):
            for rank, team in enumerate(standings(state.teams, league_id), start=1):
                team.league_history.append({
                    "year": season_label(season),
                    "rank": rank,
                    "competition_id": league_id.value,
                })

        if champion.id == state.user_team_id:
            self.board.crown_champion(state.manager)
            state.manager.trophies.append({
                "season": season_label(season),
                "competition": Competition.LEAGUE.value,
            })
            result.news.append(self.news.trophy(champion, Competition.LEAGUE.value, day))

        state.champion_declared = True
        logger.info("Season %s champion: %s", season_label(season), champion.name)
        return SeasonChampion(champion.id, champion.name, season_label(season))

    # ------------------------------------------------------------------
    # Rollover
    # ------------------------------------------------------------------

    def _rollover(self, state: GameState, day: date, result: DayResult) -> None:
        """July 1: archive, promote and relegate, reset, schedule the new season."""
        new_season = season_year_of(day)
        old_season = new_season - 1

        if has_fixture_this_season(state.fixtures, new_season, Competition.LEAGUE, 1):
            logger.warning("Season %s already scheduled; skipping rollover", season_label(new_season))
            return

        refresh_league_stats(state.teams, state.fixtures, old_season)
        summary = archive_season(state, old_season)
        seeds = standings(state.teams, LeagueId.LEAGUE)[:4]

        relegated, promoted = self.competitions.apply_promotion_relegation(
            state.teams, state.fixtures, old_season
        )

        user_team = state.user_team
        if user_team.wage_budget and user_team.wage_bill <= user_team.wage_budget:
            user_team.ffp_years += 1
        else:
            user_team.ffp_years = 0

        reset_for_new_season(state.teams)

        top_flight = [t.id for t in state.teams if t.league_id == LeagueId.LEAGUE]
        second = [t.id for t in state.teams if t.league_id == LeagueId.LEAGUE_1]
        state.fixtures.extend(generate_league_fixtures(top_flight, new_season, Competition.LEAGUE))
        state.fixtures.extend(generate_league_fixtures(second, new_season, Competition.LEAGUE_1))
        state.fixtures.extend(self.competitions.super_cup_semis(seeds, new_season))

        state.incoming_offers = []
        state.manager.years_at_club += 1
        state.current_week = 1
        state.champion_declared = False
        state.last_season_summary = summary
        state.season_history.append(summary)

        result.news.append(self.news.announcement(
            f"Season {season_label(new_season)} Begins",
            f"Promoted: {', '.join(t.name for t in promoted) or 'none'}. "
            f"Relegated: {', '.join(t.name for t in relegated) or 'none'}.",
            day,
            priority=NewsPriority.HIGH,
        ))
        logger.info(
            "Rolled over to %s; %s finished %d", season_label(new_season), user_team.name, summary.rank
        )
