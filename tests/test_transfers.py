"""Tests for transfers, loans and the market."""

from datetime import date, timedelta

import pytest

from fm_club.core.errors import (
    InsufficientFundsError,
    ResourceViolation,
    SquadSizeViolation,
    TransferWindowClosedError,
)
from fm_club.core.models import IncomingOffer, OfferType, Position, SquadStatus
from fm_club.engine.transfer_engine import (
    LOAN_FEE_MONTHS,
    LOAN_IN_MONTHLY_RATE,
    STAR_LOAN_MORALE_PENALTY,
    TransferEngine,
    loan_return_date,
    market_period,
)


def _offer(state, player, offer_type=OfferType.TRANSFER, amount=5.0):
    rival = state.teams[1]
    offer = IncomingOffer(
        id=f"offer-{player.id}",
        player_id=player.id,
        from_team_id=rival.id,
        from_team_name=rival.name,
        offer_type=offer_type,
        amount=amount if offer_type == OfferType.TRANSFER else 0.0,
        created_date=state.current_date,
        expires_date=state.current_date + timedelta(days=5),
        monthly_fee=0.5 if offer_type == OfferType.LOAN else 0.0,
        wage_contribution=80,
    )
    state.incoming_offers.append(offer)
    return offer


def _squad_player(state, status=SquadStatus.ROTATION):
    player = state.user_team.players[-1]
    player.squad_status = status
    return player


class TestAcceptOffer:
    """Tests for answering incoming offers."""

    def test_accept_transfer_moves_player(self, two_team_state):
        state = two_team_state
        player = _squad_player(state)
        offer = _offer(state, player, amount=8.0)
        rival = state.teams[1]
        budget_before = state.user_team.budget

        outcome = TransferEngine(seed=42).accept_offer(state, offer.id, state.current_date)

        assert outcome.accepted
        assert player not in state.user_team.players
        assert player in rival.players
        assert player.team_id == rival.id
        assert state.user_team.budget == pytest.approx(
            budget_before + outcome.settlement.budget_credit
        )
        assert state.incoming_offers == []
        assert state.user_team.transfer_history[-1]["type"] == "SOLD"

    def test_minimum_squad_blocks_sale(self, two_team_state):
        """A squad at the minimum cannot sell, and nothing changes."""
        state = two_team_state
        team = state.user_team
        team.players = team.players[:22]
        player = _squad_player(state)
        offer = _offer(state, player)
        budget_before = team.budget

        with pytest.raises(SquadSizeViolation) as exc_info:
            TransferEngine(seed=42).accept_offer(state, offer.id, state.current_date)

        assert isinstance(exc_info.value, ResourceViolation)
        assert exc_info.value.squad_size == 22
        assert player in team.players
        assert team.budget == budget_before
        assert offer in state.incoming_offers

    def test_star_refuses_loan(self, two_team_state):
        state = two_team_state
        player = _squad_player(state, SquadStatus.STAR)
        player.morale = 70.0
        offer = _offer(state, player, OfferType.LOAN)

        outcome = TransferEngine(seed=42).accept_offer(state, offer.id, state.current_date)

        assert not outcome.accepted
        assert player in state.user_team.players
        assert player.morale == 70.0 - STAR_LOAN_MORALE_PENALTY
        assert offer not in state.incoming_offers

    def test_loan_out_and_return(self, two_team_state):
        state = two_team_state
        player = _squad_player(state)
        offer = _offer(state, player, OfferType.LOAN)
        rival = state.teams[1]
        engine = TransferEngine(seed=42)

        outcome = engine.accept_offer(state, offer.id, state.current_date)

        assert outcome.accepted
        assert outcome.settlement.fee == pytest.approx(0.5 * LOAN_FEE_MONTHS)
        assert player in rival.players
        assert player.loaned_from_team_id == state.user_team_id
        assert player.loan_return_date == date(2026, 6, 30)

        news = engine.process_loan_returns(state, date(2026, 6, 30))

        assert player in state.user_team.players
        assert player not in rival.players
        assert player.loaned_from_team_id is None
        assert len(news) == 1

    def test_reject_offer(self, two_team_state):
        state = two_team_state
        offer = _offer(state, _squad_player(state))

        TransferEngine(seed=42).reject_offer(state, offer.id)

        assert state.incoming_offers == []

    def test_unknown_offer(self, two_team_state):
        with pytest.raises(KeyError):
            TransferEngine(seed=42).accept_offer(two_team_state, "missing", date(2025, 7, 10))


class TestUserPurchases:
    """Tests for buying and loaning in from the market."""

    def test_buy_player(self, two_team_state, make_player):
        state = two_team_state
        target = make_player(Position.ST, 80)
        target.value = 5.0
        state.transfer_market.append(target)
        state.user_team.budget = 20.0

        TransferEngine(seed=42).buy_player(state, target.id, state.current_date)

        assert target in state.user_team.players
        assert target not in state.transfer_market
        assert target.team_id == state.user_team_id
        assert state.user_team.budget == pytest.approx(15.0)
        assert state.user_team.financial_records["expense"]["transfers"] == 5.0

    def test_buy_without_funds(self, two_team_state, make_player):
        state = two_team_state
        target = make_player(Position.ST, 85)
        target.value = 50.0
        state.transfer_market.append(target)
        state.user_team.budget = 10.0

        with pytest.raises(InsufficientFundsError) as exc_info:
            TransferEngine(seed=42).buy_player(state, target.id, state.current_date)

        assert exc_info.value.required == 50.0
        assert target in state.transfer_market

    def test_buy_outside_window(self, two_team_state, make_player):
        state = two_team_state
        target = make_player(Position.ST, 70)
        state.transfer_market.append(target)

        with pytest.raises(TransferWindowClosedError):
            TransferEngine(seed=42).buy_player(state, target.id, date(2025, 10, 10))

    def test_loan_in_charges_season_fee(self, two_team_state, make_player):
        state = two_team_state
        target = make_player(Position.CB, 74)
        target.value = 4.0
        target.team_id = "foreign"
        target.is_loan_listed = True
        state.transfer_market.append(target)
        state.user_team.budget = 10.0

        TransferEngine(seed=42).loan_in_player(state, target.id, state.current_date)

        fee = round(4.0 * LOAN_IN_MONTHLY_RATE * LOAN_FEE_MONTHS, 2)
        assert state.user_team.budget == pytest.approx(10.0 - fee)
        assert target.loaned_from_team_id == "foreign"
        assert target.loan_return_date == date(2026, 6, 30)
        assert not target.is_loan_listed

    def test_loan_in_requires_loan_listing(self, two_team_state, make_player):
        state = two_team_state
        target = make_player(Position.CB, 74)
        state.transfer_market.append(target)

        with pytest.raises(KeyError):
            TransferEngine(seed=42).loan_in_player(state, target.id, state.current_date)


class TestMarketAndOffers:
    """Tests for the shared market and incoming offers."""

    def test_generate_market(self):
        market = TransferEngine(seed=42).generate_market(date(2025, 7, 1), count=25)
        assert len(market) == 25
        assert len({p.id for p in market}) == 25

    def test_offers_cleared_when_window_closes(self, two_team_state):
        state = two_team_state
        _offer(state, _squad_player(state))

        new, news = TransferEngine(seed=42).process_offers(
            state, date(2025, 9, 1), date(2025, 9, 2)
        )

        assert new == []
        assert state.incoming_offers == []
        assert len(news) == 1

    def test_expired_offers_are_withdrawn(self, two_team_state):
        state = two_team_state
        offer = _offer(state, _squad_player(state))
        later = offer.expires_date + timedelta(days=1)

        TransferEngine(seed=42).process_offers(state, later, later + timedelta(days=1))

        assert offer not in state.incoming_offers

    def test_listed_player_attracts_offers(self, two_team_state):
        state = two_team_state
        player = _squad_player(state)
        player.is_transfer_listed = True
        engine = TransferEngine(seed=42)

        offers = [engine.generate_offer(state, state.user_team, state.current_date) for _ in range(50)]
        made = [o for o in offers if o is not None]

        assert made
        assert any(o.player_id == player.id for o in made)
        assert all(o.offer_type == OfferType.TRANSFER for o in made if o.player_id == player.id)

    def test_ai_is_quiet_outside_window(self, two_team_state):
        assert TransferEngine(seed=42).simulate_ai_day(two_team_state, date(2025, 11, 3)) == []


class TestCalendarHelpers:
    """Tests for loan dates and window periods."""

    def test_season_loan_ends_june_30(self):
        assert loan_return_date(date(2026, 1, 15), "season_end") == date(2026, 6, 30)

    def test_monthly_loan_clamps_day(self):
        assert loan_return_date(date(2025, 8, 31), "6") == date(2026, 2, 28)

    def test_deadline_day_is_busiest(self):
        assert market_period(date(2025, 9, 1)).max_transfers == 60
        assert market_period(date(2025, 11, 1)).max_transfers == 0
