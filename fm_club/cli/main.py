#!/usr/bin/env python3
"""FM Club CLI.

Rich-based terminal interface for a single-player club career.
"""

import argparse
import sys
from datetime import date
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from fm_club.config import get_config
from fm_club.core.config import settings
from fm_club.core.errors import FMClubError, GameOverError
from fm_club.core.logging_config import configure_logging
from fm_club.core.models import (
    GameState,
    HolidayKind,
    LeagueId,
    ManagerProfile,
    OfferType,
    TrainingFocus,
    TrainingIntensity,
)
from fm_club.core.save_load import SaveLoadManager
from fm_club.engine.board_system import confidence_level
from fm_club.engine.calendar import next_fixture_for, season_label, season_year_of
from fm_club.engine.holiday import HolidayDriver, start_holiday
from fm_club.engine.league_table import recent_form, standings
from fm_club.engine.match_engine import calculate_odds
from fm_club.engine.news_system import COMPETITION_NAMES
from fm_club.engine.progression import INDIVIDUAL_PROGRAMS
from fm_club.engine.season import DayResult, SeasonEngine

console = Console()


def next_match_line(state: GameState) -> str:
    """Date, opponent, competition and 1X2 odds of the next user fixture."""
    team = state.user_team
    upcoming = next_fixture_for(state.fixtures, team.id, state.current_date)
    if upcoming is None:
        return "-"
    home = state.team(upcoming.home_team_id)
    away = state.team(upcoming.away_team_id)
    opponent = away if upcoming.home_team_id == team.id else home
    name = COMPETITION_NAMES.get(upcoming.competition_id.value, upcoming.competition_id.value)
    line = f"{upcoming.date} vs {opponent.name if opponent else '?'} ({name})"
    if home is not None and away is not None:
        line += f"  Odds {calculate_odds(home, away)}"
    return line


def trust_line(manager: ManagerProfile) -> str:
    level = confidence_level(manager.board_trust)
    return f"Board {manager.board_trust:.0f} ({level.value})  Fans {manager.fan_trust:.0f}"


class FMClubCLI:
    """Main CLI application."""

    def __init__(self, seed: Optional[int] = None):
        self.engine = SeasonEngine(seed=seed, config=get_config().get_simulation_config())
        self.saves = SaveLoadManager()
        self.state: Optional[GameState] = None
        self.running = True

    # ========================================================================
    # Main Menu
    # ========================================================================

    def run(self):
        """Main entry point."""
        console.print(Panel.fit(
            f"[bold blue]{settings.app_name}[/bold blue] [dim]v{settings.app_version}[/dim]\n"
            "Take charge of a club: league, cups, transfers and the board.",
            title="Welcome",
        ))

        if self.state is None:
            self._start_flow()

        while self.running:
            if self.state.game_over_reason:
                self._show_game_over()
                break
            self._show_status()
            choice = Prompt.ask(
                "\nMenu",
                choices=[
                    "next", "play", "holiday", "table", "squad", "offers",
                    "market", "train", "program", "news", "save", "load", "exit",
                ],
                default="next",
            )
            try:
                self._dispatch(choice)
            except GameOverError as e:
                console.print(f"[red]{e.reason}[/red]")
            except FMClubError as e:
                console.print(f"[red]✗ {e}[/red]")
            except KeyError as e:
                console.print(f"[red]✗ Not found: {e}[/red]")

    def _dispatch(self, choice: str):
        handlers = {
            "next": self._advance,
            "play": self._play_match,
            "holiday": self._holiday_flow,
            "table": self._show_table,
            "squad": self._show_squad,
            "offers": self._offers_flow,
            "market": self._market_flow,
            "train": self._train_flow,
            "program": self._program_flow,
            "news": self._show_news,
            "save": self._save_game,
            "load": self._load_game,
            "exit": self._exit,
        }
        handlers[choice]()

    def _start_flow(self):
        if self.saves.exists() and Confirm.ask("Continue your saved career?", default=True):
            self._load_game()
            if self.state is not None:
                return
        manager_name = Prompt.ask("Your name", default="Manager")
        club = Prompt.ask("Club to manage (blank for a random top-flight club)", default="")
        self.state = self.engine.new_game(club or None, manager_name)
        team = self.state.user_team
        console.print(f"[green]✓ {manager_name} takes charge of {team.name}[/green]")
        console.print(f"[dim]Board expectation: {team.board_expectation.value}[/dim]")

    def _exit(self):
        if Confirm.ask("Save before leaving?", default=True):
            self._save_game()
        self.running = False

    # ========================================================================
    # Days and matches
    # ========================================================================

    def _show_status(self):
        state = self.state
        team = state.user_team
        console.print(
            f"\n[bold]{state.current_date}[/bold]  Season {season_label(season_year_of(state.current_date))}"
            f"  Week {state.current_week}  |  [cyan]{team.name}[/cyan]"
            f"  Budget {team.budget:.1f}M  Squad value {team.squad_value:.1f}M  Strength {team.strength:.1f}"
        )
        console.print(
            f"[dim]{trust_line(state.manager)}"
            f"  Form {recent_form(state.fixtures, team.id) or '-'}  Next: {next_match_line(state)}[/dim]"
        )

    def _report_day(self, result: DayResult):
        for fixture in result.played_fixtures:
            if fixture.involves(self.state.user_team_id):
                self._print_fixture(fixture)
        for item in result.news[:5]:
            console.print(f"  [yellow]•[/yellow] {item.headline}")
        if result.champion is not None:
            console.print(
                f"[bold green]{result.champion.team_name} are {result.champion.season} champions![/bold green]"
            )

    def _print_fixture(self, fixture):
        home = self.state.team(fixture.home_team_id)
        away = self.state.team(fixture.away_team_id)
        console.print(
            f"  [bold]{home.name if home else '?'}[/bold] {fixture.result_str} "
            f"[bold]{away.name if away else '?'}[/bold]"
        )

    def _advance(self):
        result = self.engine.advance_one_day(self.state)
        self.state = result.state
        self._report_day(result)
        if result.offers:
            console.print(f"[cyan]{len(result.offers)} new offer(s) received[/cyan]")

    def _play_match(self):
        played = self.engine.play_user_fixtures(self.state)
        if not played:
            console.print("[dim]No match today[/dim]")
        for fixture in played:
            self._print_fixture(fixture)

    def _holiday_flow(self):
        kind = HolidayKind(Prompt.ask(
            "Holiday until",
            choices=[k.value for k in HolidayKind],
            default=HolidayKind.NEXT_MATCH.value,
        ))
        days = 0
        target = None
        if kind == HolidayKind.DURATION:
            days = IntPrompt.ask("Days", default=7)
        elif kind == HolidayKind.DATE:
            target = date.fromisoformat(Prompt.ask("Return date (YYYY-MM-DD)"))

        driver = HolidayDriver(self.engine, tick_seconds=settings.holiday_tick_ms / 1000)
        state = start_holiday(self.state, kind, target_date=target, days=days)
        with console.status("[yellow]On holiday...[/yellow]"):
            try:
                outcome = driver.run(state)
            except KeyboardInterrupt:
                driver.cancel()
                return
        self.state = outcome.state
        console.print(
            f"[green]Back from holiday after {outcome.days_played} days "
            f"({outcome.stop_reason.value})[/green]"
        )
        for item in outcome.news[-5:]:
            console.print(f"  [yellow]•[/yellow] {item.headline}")

    # ========================================================================
    # Views
    # ========================================================================

    def _show_table(self):
        league_id = self.state.user_team.league_id
        if league_id == LeagueId.EUROPE_LEAGUE:
            league_id = LeagueId.LEAGUE
        table = Table(title=COMPETITION_NAMES[league_id.value])
        for column in ("#", "Club", "P", "W", "D", "L", "GF", "GA", "GD", "Pts"):
            table.add_column(column, justify="left" if column == "Club" else "right")

        for position, team in enumerate(standings(self.state.teams, league_id), start=1):
            s = team.stats
            style = "bold cyan" if team.id == self.state.user_team_id else None
            table.add_row(
                str(position), team.name, str(s.played), str(s.won), str(s.drawn),
                str(s.lost), str(s.goals_for), str(s.goals_against),
                str(s.goal_difference), str(s.points),
                style=style,
            )
        console.print(table)

    def _show_squad(self):
        team = self.state.user_team
        table = Table(title=f"{team.name} squad")
        for column in ("Name", "Pos", "Age", "Skill", "Pot", "Cond", "Morale", "Value", "Status"):
            table.add_column(column)

        for player in sorted(team.players, key=lambda p: p.skill, reverse=True):
            status = player.squad_status.value
            if player.is_injured:
                status = f"[red]injured ({player.injury.days_remaining}d)[/red]"
            elif player.is_suspended():
                status = "[yellow]suspended[/yellow]"
            table.add_row(
                player.name, player.position.value, str(player.age), str(player.skill),
                str(player.potential), f"{player.condition:.0f}", f"{player.morale:.0f}",
                f"{player.value:.1f}M", status,
            )
        console.print(table)

    def _show_news(self):
        if not self.state.news:
            console.print("[dim]No news[/dim]")
            return
        for item in self.state.news[:15]:
            console.print(f"[dim]{item.date}[/dim] [bold]{item.headline}[/bold]")
            if item.content:
                console.print(f"    {item.content}")

    # ========================================================================
    # Transfers and training
    # ========================================================================

    def _offers_flow(self):
        offers = self.state.incoming_offers
        if not offers:
            console.print("[dim]No offers on the table[/dim]")
            return
        team = self.state.user_team
        table = Table(title="Incoming offers")
        for column in ("#", "Player", "Club", "Type", "Amount", "Expires"):
            table.add_column(column)
        for i, offer in enumerate(offers, 1):
            player = team.find_player(offer.player_id)
            amount = offer.amount if offer.offer_type == OfferType.TRANSFER else offer.monthly_fee
            table.add_row(
                str(i), player.name if player else "?", offer.from_team_name,
                offer.offer_type.value, f"{amount:.2f}M", str(offer.expires_date),
            )
        console.print(table)

        choice = IntPrompt.ask("Select offer (0 to go back)", default=0)
        if not 1 <= choice <= len(offers):
            return
        offer = offers[choice - 1]
        action = Prompt.ask("Action", choices=["accept", "reject", "back"], default="back")
        if action == "accept":
            outcome = self.engine.transfers.accept_offer(self.state, offer.id, self.state.current_date)
            colour = "green" if outcome.accepted else "yellow"
            console.print(f"[{colour}]{outcome.message}[/{colour}]")
            if outcome.settlement is not None:
                console.print(
                    f"[dim]{outcome.settlement.retention_pct}% of the fee goes to the budget[/dim]"
                )
            self.state.news[:0] = outcome.news
        elif action == "reject":
            self.engine.transfers.reject_offer(self.state, offer.id)
            console.print("[dim]Offer rejected[/dim]")

    def _market_flow(self):
        market = sorted(self.state.transfer_market, key=lambda p: p.skill, reverse=True)[:20]
        table = Table(title="Transfer market")
        for column in ("#", "Name", "Pos", "Age", "Skill", "Value", "Loan"):
            table.add_column(column)
        for i, player in enumerate(market, 1):
            table.add_row(
                str(i), player.name, player.position.value, str(player.age),
                str(player.skill), f"{player.value:.1f}M", "yes" if player.is_loan_listed else "",
            )
        console.print(table)

        choice = IntPrompt.ask("Select player (0 to go back)", default=0)
        if not 1 <= choice <= len(market):
            return
        player = market[choice - 1]
        action = Prompt.ask("Action", choices=["buy", "loan", "back"], default="back")
        if action == "buy":
            item = self.engine.transfers.buy_player(self.state, player.id, self.state.current_date)
        elif action == "loan":
            item = self.engine.transfers.loan_in_player(self.state, player.id, self.state.current_date)
        else:
            return
        self.state.news.insert(0, item)
        console.print(f"[green]✓ {item.headline}[/green]")

    def _train_flow(self):
        team = self.state.user_team
        intensity = TrainingIntensity(Prompt.ask(
            "Intensity",
            choices=[i.value for i in TrainingIntensity],
            default=team.training_intensity.value,
        ))
        focus = TrainingFocus(Prompt.ask(
            "Focus",
            choices=[f.value for f in TrainingFocus],
            default=team.training_focus.value,
        ))
        team.training_intensity = intensity
        team.training_focus = focus
        for report in self.engine.train_team(self.state, intensity, focus):
            console.print(f"  [cyan]{report.player_name}[/cyan]: {report.message}")

    def _program_flow(self):
        team = self.state.user_team
        name = Prompt.ask("Player name")
        player = next((p for p in team.players if p.name.lower() == name.lower()), None)
        if player is None:
            console.print("[red]No such player in the squad[/red]")
            return
        program_id = Prompt.ask("Program", choices=sorted(INDIVIDUAL_PROGRAMS))
        self.engine.progression.assign_program(player, program_id)
        console.print(f"[green]✓ {player.name} starts {INDIVIDUAL_PROGRAMS[program_id].label}[/green]")

    # ========================================================================
    # Persistence
    # ========================================================================

    def _save_game(self):
        if self.saves.save(self.state):
            console.print(f"[green]✓ Game saved to {self.saves.save_dir}[/green]")
        else:
            console.print("[red]✗ Failed to save[/red]")

    def _load_game(self):
        state = self.saves.load()
        if state is None:
            console.print("[dim]No saved game found[/dim]")
            return
        self.state = state
        console.print(f"[green]✓ Loaded career at {state.user_team.name} ({state.current_date})[/green]")

    def _show_game_over(self):
        manager = self.state.manager
        console.print(Panel.fit(
            f"[red]{self.state.game_over_reason}[/red]\n\n"
            f"Matches {manager.matches}  W {manager.wins}  D {manager.draws}  L {manager.losses}\n"
            f"League titles {manager.league_titles}  Cups {manager.domestic_cups}"
            f"  Continental {manager.european_cups}",
            title="Game Over",
        ))
        self.saves.clear()


# ============================================================================
# Entry Point
# ============================================================================

def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="FM Club career mode")
    parser.add_argument("--seed", type=int, default=settings.random_seed, help="Random seed")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")
    args = parser.parse_args()

    configure_logging("DEBUG" if settings.debug else args.log_level)
    cli = FMClubCLI(args.seed)

    try:
        cli.run()
    except KeyboardInterrupt:
        console.print("\n[yellow]Goodbye![/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
