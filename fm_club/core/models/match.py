"""Fixture and match event models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum, auto
from typing import Any, Dict, List, Optional

from fm_club.core.errors import FixtureAlreadyPlayedError


class MatchEventType(Enum):
    """Types of events that can occur during a match."""
    GOAL = auto()
    SAVE = auto()
    MISS = auto()
    FOUL = auto()
    CARD_YELLOW = auto()
    CARD_RED = auto()
    PENALTY = auto()
    INJURY = auto()
    OFFSIDE = auto()
    CORNER = auto()
    FIGHT = auto()
    ARGUMENT = auto()
    PITCH_INVASION = auto()
    INFO = auto()


RED_CARD_EVENTS = {MatchEventType.CARD_RED, MatchEventType.FIGHT, MatchEventType.ARGUMENT}


class Competition(Enum):
    """Competition ids used on fixtures and suspensions."""
    LEAGUE = "LEAGUE"
    LEAGUE_1 = "LEAGUE_1"
    PLAYOFF = "PLAYOFF"
    PLAYOFF_FINAL = "PLAYOFF_FINAL"
    CUP = "CUP"
    SUPER_CUP = "SUPER_CUP"
    EUROPE = "EUROPE"


# Week codes for knockout stages
PLAYOFF_SEMI_WEEK = 35
PLAYOFF_FINAL_WEEK = 36
SUPER_CUP_SEMI_WEEK = 90
SUPER_CUP_FINAL_WEEK = 91
CUP_WEEKS = {"R32": 100, "R16": 101, "QF": 102, "SF": 103, "FINAL": 104}
CUP_FINAL_WEEK = 104
EUROPE_LEAGUE_WEEKS = range(201, 209)
EUROPE_KNOCKOUT_WEEKS = {
    "PLAYOFF": (209, 210),
    "R16": (211, 212),
    "QF": (213, 214),
    "SF": (215, 216),
}
EUROPE_FINAL_WEEK = 217
SECOND_LEGS = {210, 212, 214, 216}


@dataclass
class MatchEvent:
    """A single event during a match."""
    minute: int
    event_type: MatchEventType
    team_id: str = ""
    player_id: Optional[str] = None
    secondary_player_id: Optional[str] = None
    description: str = ""
    is_second_yellow: bool = False
    penalty_scored: Optional[bool] = None

    def to_dict(self) -> dict:
        return {
            "minute": self.minute,
            "event_type": self.event_type.name,
            "team_id": self.team_id,
            "player_id": self.player_id,
            "secondary_player_id": self.secondary_player_id,
            "description": self.description,
            "is_second_yellow": self.is_second_yellow,
            "penalty_scored": self.penalty_scored,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MatchEvent":
        return cls(
            minute=data.get("minute", 0),
            event_type=MatchEventType[data.get("event_type", "INFO")],
            team_id=data.get("team_id", ""),
            player_id=data.get("player_id"),
            secondary_player_id=data.get("secondary_player_id"),
            description=data.get("description", ""),
            is_second_yellow=data.get("is_second_yellow", False),
            penalty_scored=data.get("penalty_scored"),
        )


@dataclass
class PlayerRating:
    """A player's rating record for one match."""
    player_id: str
    name: str
    position: str
    rating: float
    goals: int = 0
    assists: int = 0

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "name": self.name,
            "position": self.position,
            "rating": self.rating,
            "goals": self.goals,
            "assists": self.assists,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PlayerRating":
        return cls(
            player_id=data["player_id"],
            name=data.get("name", ""),
            position=data.get("position", "CM"),
            rating=data.get("rating", 6.0),
            goals=data.get("goals", 0),
            assists=data.get("assists", 0),
        )


@dataclass
class MatchStats:
    """Box score of a finished match."""
    home_possession: int = 50
    away_possession: int = 50
    home_shots: int = 0
    away_shots: int = 0
    home_shots_on_target: int = 0
    away_shots_on_target: int = 0
    home_corners: int = 0
    away_corners: int = 0
    home_fouls: int = 0
    away_fouls: int = 0
    home_offsides: int = 0
    away_offsides: int = 0
    home_yellow_cards: int = 0
    away_yellow_cards: int = 0
    home_red_cards: int = 0
    away_red_cards: int = 0
    mvp_player_id: str = ""
    mvp_player_name: str = ""
    home_ratings: List[PlayerRating] = field(default_factory=list)
    away_ratings: List[PlayerRating] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {k: v for k, v in self.__dict__.items() if not k.endswith("_ratings")}
        data["home_ratings"] = [r.to_dict() for r in self.home_ratings]
        data["away_ratings"] = [r.to_dict() for r in self.away_ratings]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "MatchStats":
        stats = cls()
        for key, value in data.items():
            if key in ("home_ratings", "away_ratings"):
                setattr(stats, key, [PlayerRating.from_dict(r) for r in value])
            elif hasattr(stats, key):
                setattr(stats, key, value)
        return stats


@dataclass
class Fixture:
    """A scheduled or played match."""
    id: str
    week: int
    date: date
    home_team_id: str
    away_team_id: str
    competition_id: Competition
    played: bool = False
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    pk_home: Optional[int] = None
    pk_away: Optional[int] = None
    events: List[MatchEvent] = field(default_factory=list)
    stats: Optional[MatchStats] = None

    @property
    def result_str(self) -> str:
        if not self.played:
            return "vs"
        score = f"{self.home_score}-{self.away_score}"
        if self.pk_home is not None:
            score += f" ({self.pk_home}-{self.pk_away} pens)"
        return score

    def involves(self, team_id: str) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    def record_result(
        self,
        home_score: int,
        away_score: int,
        events: List[MatchEvent] | None = None,
        stats: MatchStats | None = None,
        pk_home: int | None = None,
        pk_away: int | None = None,
    ) -> None:
        """Record the match result. A fixture can only be played once."""
        if self.played:
            raise FixtureAlreadyPlayedError(f"Fixture {self.id} already played")
        self.home_score = home_score
        self.away_score = away_score
        self.events = list(events or [])
        self.stats = stats
        self.pk_home = pk_home
        self.pk_away = pk_away
        self.played = True

    def winner_id(self) -> Optional[str]:
        """Single-match winner; penalties decide a level score."""
        if not self.played:
            return None
        if self.home_score > self.away_score:
            return self.home_team_id
        if self.away_score > self.home_score:
            return self.away_team_id
        if (self.pk_home or 0) > (self.pk_away or 0):
            return self.home_team_id
        return self.away_team_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "week": self.week,
            "date": self.date.isoformat(),
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "competition_id": self.competition_id.value,
            "played": self.played,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "pk_home": self.pk_home,
            "pk_away": self.pk_away,
            "events": [e.to_dict() for e in self.events],
            "stats": self.stats.to_dict() if self.stats else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Fixture":
        stats = data.get("stats")
        return cls(
            id=data["id"],
            week=data["week"],
            date=date.fromisoformat(data["date"]),
            home_team_id=data["home_team_id"],
            away_team_id=data["away_team_id"],
            competition_id=Competition(data.get("competition_id", "LEAGUE")),
            played=data.get("played", False),
            home_score=data.get("home_score"),
            away_score=data.get("away_score"),
            pk_home=data.get("pk_home"),
            pk_away=data.get("pk_away"),
            events=[MatchEvent.from_dict(e) for e in data.get("events", [])],
            stats=MatchStats.from_dict(stats) if stats else None,
        )
