"""Tests for club finances."""

from datetime import date

import pytest

from fm_club.config import EconomyConfig
from fm_club.core.models import ManagerProfile
from fm_club.engine.finance_engine import FinanceEngine, manager_power, manager_salary


class TestRetention:
    """Tests for the share of a sale that reaches the transfer budget."""

    def test_indebted_small_club_keeps_little(self, make_team):
        """An overdrawn low-reputation club keeps well under half of a fee."""
        team = make_team("Broke FC", 60)
        team.budget = -40.0
        team.initial_debt = 0.0
        team.reputation = 1.0

        pct = FinanceEngine().retention_pct(team, monthly_net=0.0, objectives_met=False)

        assert pct < 50
        assert pct >= 5

    def test_debt_free_club_keeps_most(self, make_team):
        team = make_team("Rich FC", 85)
        team.budget = 50.0
        team.initial_debt = 0.0

        pct = FinanceEngine().retention_pct(team, monthly_net=20.0, objectives_met=False)

        assert pct == 100

    def test_objectives_add_bonus(self, make_team):
        team = make_team("Mid FC", 75)
        team.budget = 10.0
        team.initial_debt = 2.0
        team.reputation = 2.0
        engine = FinanceEngine()

        without = engine.retention_pct(team, monthly_net=1.0, objectives_met=False)
        with_bonus = engine.retention_pct(team, monthly_net=1.0, objectives_met=True)

        assert with_bonus - without == EconomyConfig().objective_bonus

    def test_threshold_follows_reputation(self):
        engine = FinanceEngine()
        assert engine.debt_threshold(4.6) == 800.0
        assert engine.debt_threshold(3.2) == 20.0
        assert engine.debt_threshold(1.0) == 3.0

    def test_sale_settlement_splits_fee(self, make_team):
        team = make_team("Seller FC", 75)
        team.initial_debt = 10.0
        budget_before = team.budget

        settlement = FinanceEngine().settle_sale(team, 20.0, [], date(2025, 7, 15), False)

        assert settlement.budget_credit == pytest.approx(20.0 * settlement.retention_pct / 100)
        assert settlement.debt_repayment == pytest.approx(settlement.club_cash)
        assert team.budget == pytest.approx(budget_before + settlement.budget_credit)
        assert team.initial_debt == pytest.approx(max(0.0, 10.0 - settlement.debt_repayment))
        assert team.financial_records["income"]["transfers"] == 20.0


class TestDailyFinances:
    """Tests for the daily ledger."""

    def test_daily_costs_accrue(self, make_team):
        team = make_team("Ledger FC", 75)
        engine = FinanceEngine()

        for _ in range(30):
            engine.apply_daily_finances(team)

        ledger = team.financial_records
        assert ledger["expense"]["wages"] == pytest.approx(team.wage_bill / 365 * 30)
        assert ledger["income"]["sponsor"] > 0
        assert engine.season_balance(team) == pytest.approx(
            sum(ledger["income"].values()) - sum(ledger["expense"].values())
        )

    def test_monthly_flow_counts_home_gates(self, make_team, make_fixture):
        team = make_team("Gate FC", 75)
        rival = make_team("Rival FC", 75)
        engine = FinanceEngine()
        today = date(2025, 8, 20)
        quiet = engine.monthly_net_flow(team, [], today)

        fixture = make_fixture(team, rival, date(2025, 8, 8))
        fixture.record_result(1, 1)
        busy = engine.monthly_net_flow(team, [fixture], today)

        assert busy > quiet


class TestManager:
    """Tests for manager salary and power."""

    def test_salary_tiers(self):
        assert manager_salary(91) == 2.5
        assert manager_salary(70) == 0.25
        assert manager_salary(40) == 0.10

    def test_titles_raise_power(self):
        rookie = ManagerProfile()
        champion = ManagerProfile(league_titles=2, domestic_cups=1)

        assert manager_power(champion) > manager_power(rookie)
