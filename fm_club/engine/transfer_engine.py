"""Transfer engine for FM Club.

Handles all transfer-related functionality:
- Transfer window periods and AI club activity
- Squad needs analysis for AI clubs
- Shared transfer market generation and refill
- Incoming offers for the user's players
- Accepting, rejecting, buying and loaning in
- Loan return dates and daily loan returns
"""

import logging
import random
import uuid
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from fm_club.config import SimulationConfig
from fm_club.core.errors import (
    InsufficientFundsError,
    SquadSizeViolation,
    TransferWindowClosedError,
)
from fm_club.core.models import (
    IMPORTANT_STATUSES,
    SEASON_END,
    GameState,
    IncomingOffer,
    LeagueId,
    NewsItem,
    OfferType,
    Player,
    SquadStatus,
    Team,
    position_group,
)
from fm_club.data.generators import FOREIGN, FREE_AGENT, generate_market_player
from fm_club.data.templates import FOREIGN_CITIES, TEAM_PREFIXES
from fm_club.engine.calendar import is_transfer_window_open, season_year_of
from fm_club.engine.finance_engine import FinanceEngine, SaleSettlement
from fm_club.engine.league_table import standings
from fm_club.engine.news_system import NewsGenerator
from fm_club.engine.strength import (
    recalculate_team_strength,
    squad_status_for_skill,
    transfer_strength_impact,
)

logger = logging.getLogger(__name__)


MAX_SQUAD_SIZE = 34
HEALTHY_SQUAD_SIZE = 20
IRRESISTIBLE_MIN_SQUAD = 15
AI_COOLDOWN_DAYS = 4
OFFER_LIFETIME_DAYS = 5
LOAN_FEE_MONTHS = 10
LOAN_IN_MONTHLY_RATE = 0.02
STAR_LOAN_MORALE_PENALTY = 15
NEWSWORTHY_SALE = 3.0

POSITION_GROUPS = ("GK", "DEF", "MID", "FWD")


@dataclass
class MarketPeriod:
    """AI activity for one part of a transfer window."""
    activity: float
    max_transfers: int


CLOSED_PERIOD = MarketPeriod(0.0, 0)


def is_deadline_day(day: date) -> bool:
    return day.day == 1 and day.month in (9, 2)


def market_period(day: date) -> MarketPeriod:
    """AI activity and global transfer cap for a window day."""
    if is_deadline_day(day):
        return MarketPeriod(0.55, 60)
    if day.month == 7:
        return MarketPeriod(0.08, 3) if day.day <= 15 else MarketPeriod(0.12, 7)
    if day.month == 8:
        return MarketPeriod(0.70, 25) if day.day <= 15 else MarketPeriod(0.85, 30)
    if day.month == 1:
        return MarketPeriod(0.35, 10)
    return CLOSED_PERIOD


def is_summer_window(day: date) -> bool:
    return day.month in (7, 8) or (day.month == 9 and day.day <= 1)


def loan_return_date(today: date, duration: str) -> date:
    """June 30 ending the current season, or today plus N months."""
    if duration == SEASON_END:
        return date(season_year_of(today) + 1, 6, 30)
    months = int(duration)
    month_index = today.month - 1 + months
    year = today.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(today.day, monthrange(year, month)[1]))


@dataclass
class BuyTarget:
    """What an AI club is looking for."""
    group: str
    min_skill: float
    reason: str


@dataclass
class SquadProfile:
    counts: Dict[str, int]
    avg_skill: Dict[str, float]
    team_avg: float


def squad_profile(team: Team) -> SquadProfile:
    counts = {g: 0 for g in POSITION_GROUPS}
    totals = {g: 0.0 for g in POSITION_GROUPS}
    for player in team.players:
        group = position_group(player.position)
        counts[group] += 1
        totals[group] += player.skill
    avg = {g: (totals[g] / counts[g] if counts[g] else 0.0) for g in POSITION_GROUPS}
    team_avg = sum(totals.values()) / len(team.players) if team.players else 0.0
    return SquadProfile(counts=counts, avg_skill=avg, team_avg=team_avg)


def analyze_squad_needs(
    team: Team,
    rank: int,
    league_size: int,
    rng: random.Random,
) -> Optional[BuyTarget]:
    """Decide which position group, if any, an AI club wants to strengthen."""
    profile = squad_profile(team)
    thinnest = min(POSITION_GROUPS, key=lambda g: profile.counts[g])

    if profile.counts["GK"] < 2:
        return BuyTarget("GK", profile.team_avg - 5, "Short of goalkeepers,")
    if len(team.players) < HEALTHY_SQUAD_SIZE:
        return BuyTarget(thinnest, profile.team_avg - 5, "Adding squad depth,")

    bought = sum(1 for r in team.transfer_history if r.get("type") == "BOUGHT")
    sold = sum(1 for r in team.transfer_history if r.get("type") == "SOLD")
    if sold > bought and rng.random() < 0.5:
        return BuyTarget(thinnest, profile.team_avg, "Replacing departed players,")
    if rank >= league_size - 3:
        weakest = min(POSITION_GROUPS, key=lambda g: profile.avg_skill[g])
        return BuyTarget(weakest, profile.team_avg + 2, "Fighting relegation,")
    if rank <= 4:
        return BuyTarget(thinnest, profile.team_avg - 2, "Chasing the title,")
    if rng.random() < 0.2:
        return BuyTarget(rng.choice(("DEF", "MID", "FWD")), profile.team_avg, "Planning ahead,")
    return None


@dataclass
class OfferOutcome:
    """Result of the user answering an incoming offer."""
    accepted: bool
    message: str
    settlement: Optional[SaleSettlement] = None
    news: List[NewsItem] = field(default_factory=list)


def _objectives_met(state: GameState) -> bool:
    summary = state.last_season_summary
    return summary.objective_met if summary is not None else False


def _history_record(day: date, player: Player, kind: str, counterparty: str, fee: float) -> dict:
    return {
        "date": day.isoformat(),
        "player_name": player.name,
        "type": kind,
        "counterparty": counterparty,
        "fee": round(fee, 2),
    }


def apply_transfer_impact(team: Team, player: Player, buying: bool) -> None:
    """Nudge visible strength for a signing or sale, then refresh it."""
    impact = transfer_strength_impact(team.strength, player.skill, buying)
    team.strength = max(0.0, min(100.0, team.strength + impact))
    recalculate_team_strength(team)


def _clear_listing(player: Player) -> None:
    player.is_transfer_listed = False
    player.is_loan_listed = False


class TransferEngine:
    """AI transfers, the shared market and the user's offers."""

    def __init__(
        self,
        seed: Optional[int] = None,
        config: Optional[SimulationConfig] = None,
        finance: Optional[FinanceEngine] = None,
        news: Optional[NewsGenerator] = None,
    ):
        self.rng = random.Random(seed)
        self.config = config or SimulationConfig()
        self.finance = finance or FinanceEngine(self.config.economy)
        self.news = news or NewsGenerator(seed)

    # ------------------------------------------------------------------
    # AI clubs
    # ------------------------------------------------------------------

    def _ranks(self, teams: List[Team]) -> Tuple[Dict[str, int], Dict[LeagueId, int]]:
        ranks: Dict[str, int] = {}
        sizes: Dict[LeagueId, int] = {}
        for league_id in LeagueId:
            table = standings(teams, league_id)
            sizes[league_id] = len(table)
            for index, team in enumerate(table):
                ranks[team.id] = index + 1
        return ranks, sizes

    def simulate_ai_day(self, state: GameState, today: date) -> List[NewsItem]:
        """One day of AI buying and selling while a window is open.

        Clubs are visited in random order until the period's global
        transfer cap is reached. Each club acts at most once per day and
        rests four days after a deal, except on deadline day.
        """
        if not is_transfer_window_open(today):
            return []

        period = market_period(today)
        deadline = is_deadline_day(today)
        reserve_ratio = 0.0
        if is_summer_window(today) and not deadline:
            reserve_ratio = 0.20 + self.rng.random() * 0.10

        ranks, sizes = self._ranks(state.teams)
        news: List[NewsItem] = []
        transactions = 0

        ai_teams = [t for t in state.teams if t.id != state.user_team_id]
        self.rng.shuffle(ai_teams)

        for team in ai_teams:
            if transactions >= period.max_transfers:
                break
            if team.last_transfer_date and not deadline:
                if (today - team.last_transfer_date).days < AI_COOLDOWN_DAYS:
                    continue

            squad_size = len(team.players)
            budget_to_use = team.budget if deadline else max(0.0, team.budget * (1 - reserve_ratio))
            can_buy = budget_to_use > 2 and squad_size < MAX_SQUAD_SIZE

            target = analyze_squad_needs(
                team, ranks.get(team.id, 10), sizes.get(team.league_id, 18), self.rng
            )
            needs_to_buy = target is not None or deadline

            chance = period.activity + (0.2 if needs_to_buy else 0.0)
            if self.rng.random() > chance:
                continue

            sale = self._ai_sell(team, today)
            if sale is not None:
                player, price = sale
                transactions += 1
                if price > NEWSWORTHY_SALE:
                    buyer = f"{self.rng.choice(TEAM_PREFIXES)} {self.rng.choice(FOREIGN_CITIES)}"
                    news.append(self.news.sale(team, player, price, today, buyer))
                continue

            if can_buy and needs_to_buy:
                item = self._ai_buy(state, team, target, budget_to_use, today)
                if item is not None:
                    transactions += 1
                    news.append(item)

        if transactions:
            logger.debug("%d AI transfers on %s", transactions, today.isoformat())
        return news

    def _ai_sell(self, team: Team, today: date) -> Optional[Tuple[Player, float]]:
        """Sell one player abroad; returns (player, price) when a sale happens."""
        squad_size = len(team.players)
        small_club = team.strength < 75

        needs_to_sell = team.budget < 3 or squad_size >= MAX_SQUAD_SIZE
        opportunity = squad_size > HEALTHY_SQUAD_SIZE and self.rng.random() < (
            0.15 if small_club else 0.06
        )
        irresistible = self.rng.random() < (0.10 if small_club else 0.02)
        can_sell = squad_size > HEALTHY_SQUAD_SIZE or (
            irresistible and squad_size > IRRESISTIBLE_MIN_SQUAD
        )

        if not (needs_to_sell or opportunity or irresistible) or not can_sell:
            return None

        if needs_to_sell:
            sell_chance = 0.95
        elif irresistible:
            sell_chance = 0.90
        else:
            sell_chance = 0.25
        if self.rng.random() >= sell_chance:
            return None

        owned = [p for p in team.players if p.loaned_from_team_id is None]
        candidates = [p for p in owned if not p.is_transfer_listed]
        if needs_to_sell:
            candidates = [
                p for p in candidates
                if p.squad_status != SquadStatus.STAR and p.skill < team.strength
            ] or owned
        elif irresistible:
            candidates = [p for p in candidates if p.value > 5]
        if not candidates:
            return None

        player = self.rng.choice(candidates)
        price = player.value * (1.3 if irresistible else 1.0)
        team.players.remove(player)
        team.budget += price
        team.last_transfer_date = today
        team.transfer_history.append(_history_record(today, player, "SOLD", FOREIGN, price))
        apply_transfer_impact(team, player, buying=False)
        return player, price

    def _ai_buy(
        self,
        state: GameState,
        team: Team,
        target: Optional[BuyTarget],
        budget_to_use: float,
        today: date,
    ) -> Optional[NewsItem]:
        squad_size = len(team.players)
        bought = sum(1 for r in team.transfer_history if r.get("type") == "BOUGHT")

        if today.month == 7 and today.day <= 15:
            buy_chance = 0.35
        else:
            buy_chance = 0.70 if bought < 5 else 0.30
        if squad_size < HEALTHY_SQUAD_SIZE:
            buy_chance = 0.95
        if is_deadline_day(today):
            buy_chance += 0.3
        if self.rng.random() >= buy_chance:
            return None

        candidates = [p for p in state.transfer_market if p.value <= budget_to_use]
        if target is not None:
            candidates = [
                p for p in candidates
                if p.skill >= target.min_skill and position_group(p.position) == target.group
            ]
        else:
            candidates = [p for p in candidates if p.skill >= team.strength - 5]
        if not candidates:
            return None

        candidates.sort(key=lambda p: p.skill, reverse=True)
        player = self.rng.choice(candidates[:3])

        team.budget -= player.value
        team.last_transfer_date = today
        if player.team_id not in (FOREIGN, FREE_AGENT):
            seller = state.team(player.team_id)
            if seller is not None:
                seller.budget += player.value
                if player in seller.players:
                    seller.players.remove(player)

        state.transfer_market.remove(player)
        counterparty = player.team_id
        player.team_id = team.id
        _clear_listing(player)
        team.players.append(player)
        team.transfer_history.append(
            _history_record(today, player, "BOUGHT", counterparty, player.value)
        )
        apply_transfer_impact(team, player, buying=True)

        reason = target.reason if target else "Widening the squad rotation,"
        return self.news.signing(team, player, player.value, today, reason)

    # ------------------------------------------------------------------
    # Shared market
    # ------------------------------------------------------------------

    def generate_market(self, today: date, count: Optional[int] = None) -> List[Player]:
        count = self.config.market_size if count is None else count
        return [generate_market_player(self.rng, today) for _ in range(count)]

    def refresh_market(self, state: GameState, today: date) -> None:
        """Keep the shared market stocked and moving while a window is open."""
        if not is_transfer_window_open(today):
            return
        market = state.transfer_market
        if len(market) < self.config.market_refill_threshold:
            market.extend(self.generate_market(today, self.config.market_refill_batch))
        if len(market) > 5 and self.rng.random() < 0.3:
            market.pop(self.rng.randrange(len(market)))
        if self.rng.random() < 0.4:
            market.append(generate_market_player(self.rng, today))

    # ------------------------------------------------------------------
    # Incoming offers
    # ------------------------------------------------------------------

    def _bidder(self, state: GameState) -> Tuple[str, str]:
        foreign = [t for t in state.teams if t.league_id == LeagueId.EUROPE_LEAGUE]
        if foreign:
            team = self.rng.choice(foreign)
            return team.id, team.name
        city = self.rng.choice(FOREIGN_CITIES)
        return FOREIGN, f"{self.rng.choice(TEAM_PREFIXES)} {city}"

    def process_offers(
        self, state: GameState, today: date, tomorrow: date
    ) -> Tuple[List[IncomingOffer], List[NewsItem]]:
        """Withdraw, expire and generate offers for the user's players.

        Returns:
            (new offers, news)
        """
        news: List[NewsItem] = []
        if not is_transfer_window_open(tomorrow):
            if state.incoming_offers:
                news.append(self.news.window_closed(today))
                state.incoming_offers.clear()
            return [], news

        user_team = state.user_team
        kept = []
        for offer in state.incoming_offers:
            if offer.expires_date < today:
                player = user_team.find_player(offer.player_id)
                news.append(self.news.offer_withdrawn(
                    offer, player.name if player else "the player", today
                ))
            else:
                kept.append(offer)
        state.incoming_offers = kept

        offer = self.generate_offer(state, user_team, today)
        if offer is None:
            return [], news
        state.incoming_offers.append(offer)
        player = user_team.find_player(offer.player_id)
        news.append(self.news.offer_received(offer, player, today))
        return [offer], news

    def generate_offer(self, state: GameState, team: Team, today: date) -> Optional[IncomingOffer]:
        """At most one new AI offer per day for the user's players."""
        healthy = [p for p in team.players if not p.is_injured and p.loaned_from_team_id is None]
        listed = [p for p in healthy if p.is_transfer_listed or p.is_loan_listed]
        unlisted = [p for p in healthy if not p.is_transfer_listed and not p.is_loan_listed]

        forced: Optional[OfferType] = None
        player: Optional[Player] = None
        if listed and self.rng.random() < 0.6:
            player = self.rng.choice(listed)
            if player.is_transfer_listed and player.is_loan_listed:
                forced = OfferType.LOAN if self.rng.random() < 0.5 else OfferType.TRANSFER
            elif player.is_loan_listed:
                forced = OfferType.LOAN
            else:
                forced = OfferType.TRANSFER
        elif unlisted and self.rng.random() < 0.15:
            player = self.rng.choice(unlisted)
        if player is None:
            return None

        if forced is not None:
            offer_type = forced
        else:
            loan_probability = 0.02 if player.squad_status in IMPORTANT_STATUSES else 0.40
            offer_type = OfferType.LOAN if self.rng.random() < loan_probability else OfferType.TRANSFER

        from_id, from_name = self._bidder(state)
        offer = IncomingOffer(
            id=uuid.uuid4().hex[:12],
            player_id=player.id,
            from_team_id=from_id,
            from_team_name=from_name,
            offer_type=offer_type,
            amount=0.0,
            created_date=today,
            expires_date=today + timedelta(days=OFFER_LIFETIME_DAYS),
        )
        if offer_type == OfferType.LOAN:
            base = 70 if player.is_loan_listed else 40
            offer.wage_contribution = min(100, self.rng.randint(base, 100))
            offer.monthly_fee = round(max(0.01, player.value * self.rng.random() * 0.05), 3)
            offer.duration = SEASON_END
        else:
            if player.is_transfer_listed:
                ratio = 0.8 + self.rng.random() * 0.3
            else:
                ratio = 0.9 + self.rng.random() * 0.4
            offer.amount = round(player.value * ratio, 1)
        return offer

    def _find_offer(self, state: GameState, offer_id: str) -> IncomingOffer:
        for offer in state.incoming_offers:
            if offer.id == offer_id:
                return offer
        raise KeyError(f"Offer {offer_id} not found")

    def reject_offer(self, state: GameState, offer_id: str) -> IncomingOffer:
        offer = self._find_offer(state, offer_id)
        state.incoming_offers.remove(offer)
        return offer

    def accept_offer(self, state: GameState, offer_id: str, today: date) -> OfferOutcome:
        """Sell or loan out a player to the bidding club.

        Raises:
            KeyError: unknown offer or player
            SquadSizeViolation: the squad is already at the minimum size
        """
        offer = self._find_offer(state, offer_id)
        team = state.user_team
        player = team.find_player(offer.player_id)
        if player is None:
            state.incoming_offers.remove(offer)
            raise KeyError(f"Player {offer.player_id} is no longer at the club")

        if len(team.players) <= self.config.min_squad_size:
            raise SquadSizeViolation(len(team.players), self.config.min_squad_size)

        if offer.offer_type == OfferType.LOAN and player.squad_status in IMPORTANT_STATUSES:
            player.morale = max(0.0, player.morale - STAR_LOAN_MORALE_PENALTY)
            state.incoming_offers.remove(offer)
            return OfferOutcome(
                accepted=False,
                message=f"{player.name} refuses to go out on loan.",
            )

        if offer.offer_type == OfferType.LOAN:
            fee = offer.monthly_fee * LOAN_FEE_MONTHS
        else:
            fee = offer.amount
        settlement = self.finance.settle_sale(
            team, fee, state.fixtures, today, _objectives_met(state)
        )

        team.players.remove(player)
        _clear_listing(player)
        destination = state.team(offer.from_team_id)

        if offer.offer_type == OfferType.LOAN:
            until = loan_return_date(today, offer.duration)
            player.loaned_from_team_id = team.id
            player.loan_return_date = until
            if destination is not None:
                player.team_id = destination.id
                destination.players.append(player)
                recalculate_team_strength(destination)
            else:
                team.loaned_out_players.append(player)
            kind = "LOAN_OUT"
            item = self.news.loan(team, player, offer.from_team_name, today, until)
        else:
            if destination is not None:
                destination.budget -= fee
                player.team_id = destination.id
                destination.players.append(player)
                recalculate_team_strength(destination)
            kind = "SOLD"
            item = self.news.sale(team, player, fee, today, offer.from_team_name)

        team.transfer_history.append(
            _history_record(today, player, kind, offer.from_team_name, fee)
        )
        apply_transfer_impact(team, player, buying=False)
        state.incoming_offers = [o for o in state.incoming_offers if o.player_id != player.id]

        logger.info(
            "%s %s to %s for %.2fM (%d%% to budget)",
            team.name, kind.lower(), offer.from_team_name, fee, settlement.retention_pct,
        )
        return OfferOutcome(
            accepted=True,
            message=f"{player.name} leaves for {offer.from_team_name}.",
            settlement=settlement,
            news=[item],
        )

    # ------------------------------------------------------------------
    # User purchases
    # ------------------------------------------------------------------

    def _market_player(self, state: GameState, player_id: str) -> Player:
        for player in state.transfer_market:
            if player.id == player_id:
                return player
        raise KeyError(f"Player {player_id} is not on the market")

    def buy_player(self, state: GameState, player_id: str, today: date) -> NewsItem:
        """Sign a market player for the user's club at the listed value.

        Raises:
            TransferWindowClosedError: outside a window
            InsufficientFundsError: the value exceeds the transfer budget
        """
        if not is_transfer_window_open(today):
            raise TransferWindowClosedError("The transfer window is closed")
        player = self._market_player(state, player_id)
        team = state.user_team
        if player.value > team.budget:
            raise InsufficientFundsError(player.value, team.budget)

        seller = state.team(player.team_id)
        if seller is not None:
            seller.budget += player.value
        counterparty = seller.name if seller is not None else player.team_id

        state.transfer_market.remove(player)
        team.budget -= player.value
        team.financial_records["expense"]["transfers"] += player.value
        player.team_id = team.id
        player.squad_status = squad_status_for_skill(player.skill)
        _clear_listing(player)
        team.players.append(player)
        team.transfer_history.append(
            _history_record(today, player, "BOUGHT", counterparty, player.value)
        )
        apply_transfer_impact(team, player, buying=True)
        logger.info("%s sign %s for %.2fM", team.name, player.name, player.value)
        return self.news.signing(team, player, player.value, today)

    def loan_in_player(self, state: GameState, player_id: str, today: date) -> NewsItem:
        """Take a loan-listed market player until the end of the season.

        The whole season's fee is paid up front.
        """
        if not is_transfer_window_open(today):
            raise TransferWindowClosedError("The transfer window is closed")
        player = self._market_player(state, player_id)
        if not player.is_loan_listed:
            raise KeyError(f"{player.name} is not available on loan")
        team = state.user_team
        fee = round(player.value * LOAN_IN_MONTHLY_RATE * LOAN_FEE_MONTHS, 2)
        if fee > team.budget:
            raise InsufficientFundsError(fee, team.budget)

        state.transfer_market.remove(player)
        team.budget -= fee
        team.financial_records["expense"]["transfers"] += fee
        player.loaned_from_team_id = player.team_id
        player.loan_return_date = loan_return_date(today, SEASON_END)
        player.team_id = team.id
        _clear_listing(player)
        team.players.append(player)
        team.transfer_history.append(_history_record(today, player, "LOAN_IN", FOREIGN, fee))
        apply_transfer_impact(team, player, buying=True)
        return self.news.loan(team, player, team.name, today, player.loan_return_date)

    # ------------------------------------------------------------------
    # Loans
    # ------------------------------------------------------------------

    def process_loan_returns(self, state: GameState, today: date) -> List[NewsItem]:
        """Send loanees home once their return date has come.

        Only the loan metadata is cleared; the player comes back exactly
        as they left.
        """
        news: List[NewsItem] = []
        touched = set()

        for team in state.teams:
            due = [
                p for p in team.players
                if p.loaned_from_team_id and p.loan_return_date and p.loan_return_date <= today
            ]
            for player in due:
                team.players.remove(player)
                owner = state.team(player.loaned_from_team_id)
                player.loaned_from_team_id = None
                player.loan_return_date = None
                touched.add(team.id)
                if owner is None:
                    continue
                player.team_id = owner.id
                owner.players.append(player)
                touched.add(owner.id)
                if owner.id == state.user_team_id:
                    news.append(self.news.loan_return(owner, player, today))

            returning = [
                p for p in team.loaned_out_players
                if p.loan_return_date and p.loan_return_date <= today
            ]
            for player in returning:
                team.loaned_out_players.remove(player)
                player.loaned_from_team_id = None
                player.loan_return_date = None
                player.team_id = team.id
                team.players.append(player)
                touched.add(team.id)
                if team.id == state.user_team_id:
                    news.append(self.news.loan_return(team, player, today))

        for team in state.teams:
            if team.id in touched:
                recalculate_team_strength(team)
        return news
