"""Game state: the single save unit of a career."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from fm_club.core.models.match import Fixture
from fm_club.core.models.news import NewsItem
from fm_club.core.models.player import Player
from fm_club.core.models.team import Team


class OfferType(Enum):
    """Types of incoming offers."""
    TRANSFER = "transfer"
    LOAN = "loan"


SEASON_END = "season_end"


@dataclass
class IncomingOffer:
    """An AI club's offer for one of the user's players."""
    id: str
    player_id: str
    from_team_id: str
    from_team_name: str
    offer_type: OfferType
    amount: float
    created_date: date
    expires_date: date
    monthly_fee: float = 0.0
    wage_contribution: int = 0
    # SEASON_END or a number of months
    duration: str = SEASON_END

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "player_id": self.player_id,
            "from_team_id": self.from_team_id,
            "from_team_name": self.from_team_name,
            "offer_type": self.offer_type.value,
            "amount": self.amount,
            "created_date": self.created_date.isoformat(),
            "expires_date": self.expires_date.isoformat(),
            "monthly_fee": self.monthly_fee,
            "wage_contribution": self.wage_contribution,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "IncomingOffer":
        return cls(
            id=data["id"],
            player_id=data["player_id"],
            from_team_id=data.get("from_team_id", "foreign"),
            from_team_name=data.get("from_team_name", ""),
            offer_type=OfferType(data.get("offer_type", "transfer")),
            amount=data.get("amount", 0.0),
            created_date=date.fromisoformat(data["created_date"]),
            expires_date=date.fromisoformat(data["expires_date"]),
            monthly_fee=data.get("monthly_fee", 0.0),
            wage_contribution=data.get("wage_contribution", 0),
            duration=str(data.get("duration", SEASON_END)),
        )


@dataclass
class ManagerProfile:
    """The human manager: trust meters and career record."""
    name: str = "Manager"
    board_trust: float = 50.0
    fan_trust: float = 50.0
    player_trust: float = 50.0
    power: int = 50
    salary: float = 0.1
    matches: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    league_titles: int = 0
    domestic_cups: int = 0
    european_cups: int = 0
    trophies: List[Dict[str, Any]] = field(default_factory=list)
    years_at_club: int = 0

    def to_dict(self) -> dict:
        return dict(self.__dict__, trophies=list(self.trophies))

    @classmethod
    def from_dict(cls, data: dict) -> "ManagerProfile":
        profile = cls()
        for key, value in data.items():
            if hasattr(profile, key):
                setattr(profile, key, value)
        return profile


@dataclass
class SeasonSummary:
    """Archive of the user's finished season."""
    season: str
    league_id: str
    rank: int
    played: int
    won: int
    drawn: int
    lost: int
    goals_for: int
    goals_against: int
    points: int
    top_scorer: Optional[str] = None
    top_assister: Optional[str] = None
    top_rated: Optional[str] = None
    trophies: List[str] = field(default_factory=list)
    objective_met: bool = False

    def to_dict(self) -> dict:
        return dict(self.__dict__, trophies=list(self.trophies))

    @classmethod
    def from_dict(cls, data: dict) -> "SeasonSummary":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


class HolidayKind(Enum):
    """Stop conditions of a holiday fast-forward."""
    DATE = "date"
    DURATION = "duration"
    INDEFINITE = "indefinite"
    NEXT_MATCH = "next_match"


@dataclass
class HolidayPlan:
    """An active holiday: fast-forward until the stop condition is met."""
    kind: HolidayKind
    target_date: Optional[date] = None
    remaining_days: int = 0

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "target_date": self.target_date.isoformat() if self.target_date else None,
            "remaining_days": self.remaining_days,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HolidayPlan":
        target = data.get("target_date")
        return cls(
            kind=HolidayKind(data.get("kind", "indefinite")),
            target_date=date.fromisoformat(target) if target else None,
            remaining_days=data.get("remaining_days", 0),
        )


@dataclass
class GameState:
    """Complete game state for one career."""
    current_date: date
    user_team_id: str
    teams: List[Team] = field(default_factory=list)
    fixtures: List[Fixture] = field(default_factory=list)
    current_week: int = 1
    transfer_market: List[Player] = field(default_factory=list)
    incoming_offers: List[IncomingOffer] = field(default_factory=list)
    news: List[NewsItem] = field(default_factory=list)
    manager: ManagerProfile = field(default_factory=ManagerProfile)
    champion_declared: bool = False
    last_season_summary: Optional[SeasonSummary] = None
    season_history: List[SeasonSummary] = field(default_factory=list)
    active_holiday: Optional[HolidayPlan] = None
    game_over_reason: Optional[str] = None
    # The user ran a team session today
    training_performed: bool = False
    # Minutes spent in this career
    play_time: int = 0

    def team(self, team_id: str) -> Optional[Team]:
        for team in self.teams:
            if team.id == team_id:
                return team
        return None

    @property
    def user_team(self) -> Team:
        team = self.team(self.user_team_id)
        if team is None:
            raise KeyError(f"User team {self.user_team_id} not found")
        return team

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_date": self.current_date.isoformat(),
            "user_team_id": self.user_team_id,
            "teams": [t.to_dict() for t in self.teams],
            "fixtures": [f.to_dict() for f in self.fixtures],
            "current_week": self.current_week,
            "transfer_market": [p.to_dict() for p in self.transfer_market],
            "incoming_offers": [o.to_dict() for o in self.incoming_offers],
            "news": [n.to_dict() for n in self.news],
            "manager": self.manager.to_dict(),
            "champion_declared": self.champion_declared,
            "last_season_summary": (
                self.last_season_summary.to_dict() if self.last_season_summary else None
            ),
            "season_history": [s.to_dict() for s in self.season_history],
            "active_holiday": self.active_holiday.to_dict() if self.active_holiday else None,
            "game_over_reason": self.game_over_reason,
            "training_performed": self.training_performed,
            "play_time": self.play_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameState":
        """Create from dictionary, defaulting fields missing from older saves."""
        summary = data.get("last_season_summary")
        holiday = data.get("active_holiday")
        return cls(
            current_date=date.fromisoformat(data["current_date"]),
            user_team_id=data["user_team_id"],
            teams=[Team.from_dict(t) for t in data.get("teams", [])],
            fixtures=[Fixture.from_dict(f) for f in data.get("fixtures", [])],
            current_week=data.get("current_week", 1),
            transfer_market=[Player.from_dict(p) for p in data.get("transfer_market", [])],
            incoming_offers=[IncomingOffer.from_dict(o) for o in data.get("incoming_offers", [])],
            news=[NewsItem.from_dict(n) for n in data.get("news", [])],
            manager=ManagerProfile.from_dict(data.get("manager", {})),
            champion_declared=data.get("champion_declared", False),
            last_season_summary=SeasonSummary.from_dict(summary) if summary else None,
            season_history=[SeasonSummary.from_dict(s) for s in data.get("season_history", [])],
            active_holiday=HolidayPlan.from_dict(holiday) if holiday else None,
            game_over_reason=data.get("game_over_reason"),
            training_performed=data.get("training_performed", False),
            play_time=data.get("play_time", 0),
        )
