"""Finance engine for FM Club.

Handles the money side of club management:
- Monthly net flow: sponsors, merchandise, TV, gate against wages and running costs
- Transfer revenue retention driven by reputation, debt and cash flow
- Daily ledger for the user's club
- Manager salary tiers and manager power
"""

import logging
from calendar import monthrange
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from fm_club.config import EconomyConfig
from fm_club.core.models import Fixture, ManagerProfile, Team

logger = logging.getLogger(__name__)


# (minimum strength, annual salary in millions), highest first
MANAGER_SALARY_TIERS = [
    (90, 2.5), (88, 2.25), (86, 2.0), (84, 1.8), (82, 1.5), (80, 1.25),
    (78, 1.0), (76, 0.75), (75, 0.6), (73, 0.46), (72, 0.39), (71, 0.32),
    (70, 0.25), (68, 0.20), (60, 0.15),
]
MANAGER_BASE_SALARY = 0.10

TITLE_MULTIPLIERS = [1.50, 1.20, 1.00, 0.80, 0.60, 0.45, 0.35]
TITLE_TAIL_MULTIPLIER = 0.25
LEAGUE_TITLE_POWER = 3
DOMESTIC_CUP_POWER = 1
EUROPEAN_CUP_POWER = [9, 3, 2]


@dataclass
class SaleSettlement:
    """How a transfer or loan fee is split between budget, debt and cash."""
    fee: float
    retention_pct: int
    budget_credit: float
    debt_repayment: float
    club_cash: float


def manager_salary(strength: float) -> float:
    for minimum, salary in MANAGER_SALARY_TIERS:
        if strength >= minimum:
            return salary
    return MANAGER_BASE_SALARY


def manager_power(manager: ManagerProfile) -> int:
    """Power grows with trophies, with diminishing returns per title."""
    power = 50.0
    for i in range(manager.league_titles):
        mult = TITLE_MULTIPLIERS[i] if i < len(TITLE_MULTIPLIERS) else TITLE_TAIL_MULTIPLIER
        power += LEAGUE_TITLE_POWER * mult
    for i in range(manager.domestic_cups):
        mult = TITLE_MULTIPLIERS[i] if i < len(TITLE_MULTIPLIERS) else TITLE_TAIL_MULTIPLIER
        power += DOMESTIC_CUP_POWER * mult
    for i in range(manager.european_cups):
        power += EUROPEAN_CUP_POWER[i] if i < len(EUROPEAN_CUP_POWER) else 1
    return round(power)


def _same_month(day: date, other: date) -> bool:
    return day.year == other.year and day.month == other.month


def _transfer_totals(team: Team, today: date) -> tuple:
    income = spend = 0.0
    for record in team.transfer_history:
        when = record.get("date")
        if not when or not _same_month(date.fromisoformat(when), today):
            continue
        fee = record.get("fee", 0.0)
        if record.get("type") in ("SOLD", "LOAN_OUT"):
            income += fee
        elif record.get("type") in ("BOUGHT", "LOAN_IN"):
            spend += fee
    return income, spend


class FinanceEngine:
    """Club money flows."""

    def __init__(self, economy: Optional[EconomyConfig] = None):
        self.economy = economy or EconomyConfig()

    def monthly_net_flow(
        self,
        team: Team,
        fixtures: Iterable[Fixture],
        today: date,
        include_transfers: bool = True,
    ) -> float:
        """Projected net cash flow of the current month in millions.

        Sponsor income accrues pro rata to the day of the month; match
        income counts this month's played fixtures.
        """
        days_in_month = monthrange(today.year, today.month)[1]
        strength_factor = team.strength / 100
        fan_factor = team.fan_base / 1_000_000

        sponsor = team.sponsors.annual_total / 12 / days_in_month * today.day

        merch_seed = ord(team.id[0]) + today.month - 1 + today.year if team.id else today.month
        fluctuation = 0.8 + (merch_seed % 40) / 100
        stars = sum(1 for p in team.players if p.skill >= 86)
        merchandise = (
            fan_factor * 0.8 / 12 * fluctuation * (1.2 if team.strength > 80 else 1.0)
            + stars * 0.2
        )
        trade = merchandise * 0.2

        played = [
            f for f in fixtures
            if f.played and f.involves(team.id) and _same_month(f.date, today)
        ]
        home_played = [f for f in played if f.home_team_id == team.id]
        tv = len(played) * (0.20 + strength_factor * 0.10)
        gate = len(home_played) * fan_factor * 0.01944444
        local = gate * 0.45

        transfer_income = transfer_spend = 0.0
        if include_transfers:
            transfer_income, transfer_spend = _transfer_totals(team, today)

        income = sponsor + merchandise + trade + tv + gate + local + transfer_income

        monthly_wages = team.wage_bill / 12
        staff = monthly_wages * 0.15
        stadium = team.stadium_capacity / 100_000 * 0.5
        academy = strength_factor * 0.4
        debt_service = team.initial_debt / 60

        expense = (
            monthly_wages + staff + stadium + academy + debt_service
            + transfer_spend + self.economy.monthly_fixed_expense
        )
        return income - expense

    def debt_threshold(self, reputation: float) -> float:
        for minimum, threshold in self.economy.retention_thresholds:
            if reputation >= minimum:
                return threshold
        return self.economy.retention_default_threshold

    def retention_pct(self, team: Team, monthly_net: float, objectives_met: bool) -> int:
        """Share of a sale fee (5-100%) that reaches the transfer budget.

        Effective debt is the club's debt plus any overdraft, so a negative
        budget shrinks what the board releases.
        """
        threshold = self.debt_threshold(team.reputation or 1.0)
        debt = team.initial_debt + max(0.0, -team.budget)

        if debt > threshold:
            base = 10 + 39 * threshold / debt
        else:
            base = 100 - 30 * debt / threshold

        if objectives_met:
            base += self.economy.objective_bonus

        if monthly_net > 10:
            penalty = 0
        elif monthly_net > 0:
            penalty = 5
        elif monthly_net >= -5:
            penalty = 10
        else:
            penalty = 20

        return int(max(5.0, min(100.0, base - penalty)))

    def settle_sale(
        self,
        team: Team,
        fee: float,
        fixtures: Iterable[Fixture],
        today: date,
        objectives_met: bool,
    ) -> SaleSettlement:
        """Split a sale fee and apply it to the club.

        Budget receives ``fee * pct``; the retained rest is halved between
        debt repayment and club cash.
        """
        pct = self.retention_pct(team, self.monthly_net_flow(team, fixtures, today), objectives_met)
        credit = fee * pct / 100
        retained = fee - credit
        settlement = SaleSettlement(
            fee=fee,
            retention_pct=pct,
            budget_credit=credit,
            debt_repayment=retained / 2,
            club_cash=retained / 2,
        )
        team.budget += credit
        team.initial_debt = max(0.0, team.initial_debt - settlement.debt_repayment)
        team.financial_records["income"]["transfers"] += fee
        logger.debug(
            "%s sale of %.2fM: %d%% to budget, %.2fM to debt",
            team.name, fee, pct, settlement.debt_repayment,
        )
        return settlement

    def apply_daily_finances(self, team: Team) -> None:
        """Accrue one day of the user's income and running costs."""
        ledger = team.financial_records
        daily_wages = team.wage_bill / 365
        ledger["income"]["sponsor"] += team.sponsors.annual_total / 365
        ledger["expense"]["wages"] += daily_wages
        ledger["expense"]["staff"] += daily_wages * 0.15
        ledger["expense"]["maintenance"] += team.stadium_capacity / 100_000 * 0.5 / 30
        ledger["expense"]["academy"] += team.strength / 100 * 0.4 / 30
        ledger["expense"]["admin"] += self.economy.daily_admin_cost

    def season_balance(self, team: Team) -> float:
        ledger = team.financial_records
        return sum(ledger["income"].values()) - sum(ledger["expense"].values())
