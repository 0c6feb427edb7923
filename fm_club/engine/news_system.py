"""News system for FM Club.

Generates the news feed:
- Match reports for the user's club and headline results elsewhere
- Confirmed transfers, sales and loans
- Injuries, offers and withdrawn offers
- Trophies, draws and board announcements
"""

import random
from datetime import date
from typing import Iterable, List, Optional

from fm_club.core.models import (
    Fixture,
    IncomingOffer,
    NewsCategory,
    NewsItem,
    NewsPriority,
    Player,
    Team,
)
from fm_club.data.templates import fill_template, pick_template

COMPETITION_NAMES = {
    "LEAGUE": "League",
    "LEAGUE_1": "League One",
    "PLAYOFF": "Playoffs",
    "PLAYOFF_FINAL": "Playoff Final",
    "CUP": "Cup",
    "SUPER_CUP": "Super Cup",
    "EUROPE": "Continental Cup",
}

# Goal margin that makes a result elsewhere newsworthy
THRASHING_MARGIN = 4


class NewsGenerator:
    """Generate news content."""

    def __init__(self, seed: Optional[int] = None):
        self.rng = random.Random(seed)

    def _headline(self, category: str, **variables) -> str:
        return fill_template(pick_template(category, self.rng), variables)

    def match_report(self, fixture: Fixture, home: Team, away: Team, focus_team_id: str) -> NewsItem:
        """Report a result from the point of view of one team."""
        focus_home = focus_team_id == home.id
        team, opponent = (home, away) if focus_home else (away, home)
        scored = fixture.home_score if focus_home else fixture.away_score
        conceded = fixture.away_score if focus_home else fixture.home_score

        if scored > conceded:
            category = "news_win"
        elif scored < conceded:
            category = "news_loss"
        else:
            category = "news_draw"

        content = f"{home.name} {fixture.result_str} {away.name}"
        competition = COMPETITION_NAMES.get(fixture.competition_id.value, "")
        if competition:
            content = f"{competition}: {content}"
        if fixture.stats and fixture.stats.mvp_player_name:
            content += f". Man of the match: {fixture.stats.mvp_player_name}"

        return NewsItem(
            headline=self._headline(category, team=team.name, opponent=opponent.name),
            date=fixture.date,
            content=content,
            category=NewsCategory.MATCH_RESULT,
            priority=NewsPriority.HIGH,
            team_id=team.id,
        )

    def daily_results(
        self,
        fixtures: Iterable[Fixture],
        teams: List[Team],
        user_team_id: str,
    ) -> List[NewsItem]:
        """The user's results plus heavy wins anywhere else."""
        by_id = {t.id: t for t in teams}
        items = []
        for fixture in fixtures:
            if not fixture.played:
                continue
            home = by_id.get(fixture.home_team_id)
            away = by_id.get(fixture.away_team_id)
            if home is None or away is None:
                continue
            if fixture.involves(user_team_id):
                items.append(self.match_report(fixture, home, away, user_team_id))
            elif abs(fixture.home_score - fixture.away_score) >= THRASHING_MARGIN:
                winner = home.id if fixture.home_score > fixture.away_score else away.id
                item = self.match_report(fixture, home, away, winner)
                item.priority = NewsPriority.LOW
                items.append(item)
        return items

    def signing(self, team: Team, player: Player, fee: float, day: date, reason: str = "") -> NewsItem:
        content = f"{team.name} complete the signing of {player.name} for {fee:.1f}M."
        if reason:
            content = f"{reason} {content}"
        return NewsItem(
            headline=self._headline("news_signing", club=team.name, player=player.name),
            date=day,
            content=content,
            category=NewsCategory.TRANSFER_CONFIRMED,
            priority=NewsPriority.MEDIUM if fee < 20 else NewsPriority.HIGH,
            team_id=team.id,
            player_id=player.id,
        )

    def sale(self, team: Team, player: Player, fee: float, day: date, buyer: str) -> NewsItem:
        return NewsItem(
            headline=self._headline("news_sale", club=team.name, player=player.name),
            date=day,
            content=f"{player.name} joins {buyer} from {team.name} for {fee:.1f}M.",
            category=NewsCategory.TRANSFER_CONFIRMED,
            team_id=team.id,
            player_id=player.id,
        )

    def loan(self, team: Team, player: Player, destination: str, day: date, until: date) -> NewsItem:
        return NewsItem(
            headline=f"{player.name} Loaned to {destination}",
            date=day,
            content=f"{team.name} send {player.name} to {destination} until {until.isoformat()}.",
            category=NewsCategory.LOAN,
            priority=NewsPriority.LOW,
            team_id=team.id,
            player_id=player.id,
        )

    def loan_return(self, team: Team, player: Player, day: date) -> NewsItem:
        return NewsItem(
            headline=f"{player.name} Returns to {team.name}",
            date=day,
            content=f"{player.name}'s loan spell is over. Back at {team.name}.",
            category=NewsCategory.LOAN,
            priority=NewsPriority.LOW,
            team_id=team.id,
            player_id=player.id,
        )

    def injury(self, team: Team, player: Player, day: date) -> NewsItem:
        injury_name = player.injury.type if player.injury else "Injury"
        days = player.injury.days_remaining if player.injury else 0
        return NewsItem(
            headline=self._headline(
                "news_injury", club=team.name, player=player.name, injury=injury_name
            ),
            date=day,
            content=f"{player.name} ({injury_name}) is expected to miss {days} days.",
            category=NewsCategory.INJURY,
            priority=NewsPriority.HIGH if days >= 28 else NewsPriority.MEDIUM,
            team_id=team.id,
            player_id=player.id,
        )

    def offer_received(self, offer: IncomingOffer, player: Player, day: date) -> NewsItem:
        if offer.offer_type.value == "loan":
            terms = (
                f"a loan with a {offer.monthly_fee:.2f}M monthly fee "
                f"and {offer.wage_contribution}% of wages covered"
            )
        else:
            terms = f"a {offer.amount:.1f}M transfer"
        return NewsItem(
            headline=self._headline("news_offer", club=offer.from_team_name, player=player.name),
            date=day,
            content=f"{offer.from_team_name} have offered {terms} for {player.name}.",
            category=NewsCategory.OFFER,
            priority=NewsPriority.HIGH,
            player_id=player.id,
        )

    def offer_withdrawn(self, offer: IncomingOffer, player_name: str, day: date) -> NewsItem:
        return NewsItem(
            headline=f"{offer.from_team_name} Withdraw Offer",
            date=day,
            content=f"{offer.from_team_name} have withdrawn their offer for {player_name}.",
            category=NewsCategory.OFFER,
            priority=NewsPriority.LOW,
            player_id=offer.player_id,
        )

    def window_closed(self, day: date) -> NewsItem:
        return NewsItem(
            headline="Transfer Window Closed",
            date=day,
            content="The transfer window has closed. All pending offers have been withdrawn.",
            category=NewsCategory.OFFER,
            priority=NewsPriority.MEDIUM,
        )

    def trophy(self, team: Team, competition: str, day: date) -> NewsItem:
        name = COMPETITION_NAMES.get(competition, competition)
        return NewsItem(
            headline=self._headline("news_trophy", club=team.name, competition=name),
            date=day,
            content=f"{team.name} are the {name} winners!",
            category=NewsCategory.AWARD,
            priority=NewsPriority.BREAKING,
            team_id=team.id,
        )

    def announcement(
        self,
        headline: str,
        content: str,
        day: date,
        priority: NewsPriority = NewsPriority.MEDIUM,
        category: NewsCategory = NewsCategory.COMPETITION,
        team_id: Optional[str] = None,
    ) -> NewsItem:
        return NewsItem(
            headline=headline,
            date=day,
            content=content,
            category=category,
            priority=priority,
            team_id=team_id,
        )
