"""Team model definition."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from fm_club.core.models.player import Player


class LeagueId(Enum):
    """Competition membership of a team."""
    LEAGUE = "LEAGUE"
    LEAGUE_1 = "LEAGUE_1"
    EUROPE_LEAGUE = "EUROPE_LEAGUE"


class Mentality(Enum):
    VERY_DEFENSIVE = "very_defensive"
    DEFENSIVE = "defensive"
    BALANCED = "balanced"
    ATTACKING = "attacking"
    VERY_ATTACKING = "very_attacking"


class Tempo(Enum):
    SLOW = "slow"
    NORMAL = "normal"
    FAST = "fast"
    BEAST_MODE = "beast_mode"


class Pressing(Enum):
    LOW = "low"
    STANDARD = "standard"
    HIGH = "high"
    VERY_HIGH = "very_high"


class Tackling(Enum):
    CAUTIOUS = "cautious"
    STANDARD = "standard"
    AGGRESSIVE = "aggressive"


class DefensiveLine(Enum):
    VERY_DEEP = "very_deep"
    DEEP = "deep"
    STANDARD = "standard"
    HIGH = "high"


class PassingStyle(Enum):
    SHORT = "short"
    MIXED = "mixed"
    DIRECT = "direct"


class Width(Enum):
    NARROW = "narrow"
    BALANCED = "balanced"
    WIDE = "wide"


class BoardExpectation(Enum):
    """What the board expects from the season."""
    TITLE = "title"
    UPPER = "upper"
    SURVIVE = "survive"


class TrainingIntensity(Enum):
    LOW = "low"
    STANDARD = "standard"
    HIGH = "high"


class TrainingFocus(Enum):
    ATTACK = "attack"
    DEFENSE = "defense"
    PHYSICAL = "physical"
    TACTICAL = "tactical"
    MATCH_PREP = "match_prep"
    SET_PIECES = "set_pieces"


@dataclass
class Tactics:
    """Tactical configuration of a team."""
    mentality: Mentality = Mentality.BALANCED
    tempo: Tempo = Tempo.NORMAL
    pressing: Pressing = Pressing.STANDARD
    tackling: Tackling = Tackling.STANDARD
    defensive_line: DefensiveLine = DefensiveLine.STANDARD
    passing: PassingStyle = PassingStyle.MIXED
    width: Width = Width.BALANCED

    def to_dict(self) -> dict:
        return {
            "mentality": self.mentality.value,
            "tempo": self.tempo.value,
            "pressing": self.pressing.value,
            "tackling": self.tackling.value,
            "defensive_line": self.defensive_line.value,
            "passing": self.passing.value,
            "width": self.width.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Tactics":
        return cls(
            mentality=Mentality(data.get("mentality", "balanced")),
            tempo=Tempo(data.get("tempo", "normal")),
            pressing=Pressing(data.get("pressing", "standard")),
            tackling=Tackling(data.get("tackling", "standard")),
            defensive_line=DefensiveLine(data.get("defensive_line", "standard")),
            passing=PassingStyle(data.get("passing", "mixed")),
            width=Width(data.get("width", "balanced")),
        )


@dataclass
class TableStats:
    """Season league table record."""
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    points: int = 0

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against

    def record(self, scored: int, conceded: int) -> None:
        self.played += 1
        self.goals_for += scored
        self.goals_against += conceded
        if scored > conceded:
            self.won += 1
            self.points += 3
        elif scored == conceded:
            self.drawn += 1
            self.points += 1
        else:
            self.lost += 1

    def to_dict(self) -> dict:
        return {
            "played": self.played,
            "won": self.won,
            "drawn": self.drawn,
            "lost": self.lost,
            "goals_for": self.goals_for,
            "goals_against": self.goals_against,
            "points": self.points,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TableStats":
        return cls(**{k: data.get(k, 0) for k in (
            "played", "won", "drawn", "lost", "goals_for", "goals_against", "points"
        )})


@dataclass
class Sponsors:
    """Annual sponsorship income in millions."""
    main: float = 0.0
    stadium: float = 0.0
    sleeve: float = 0.0

    @property
    def annual_total(self) -> float:
        return self.main + self.stadium + self.sleeve


@dataclass
class Trophies:
    league: int = 0
    cup: int = 0
    super_cup: int = 0
    europe: int = 0


INCOME_KEYS = ("sponsor", "merchandise", "tv", "gate", "transfers")
EXPENSE_KEYS = ("wages", "staff", "maintenance", "academy", "admin", "transfers")


def empty_ledger() -> Dict[str, Dict[str, float]]:
    """Season income/expense ledger, all values in millions."""
    return {
        "income": {key: 0.0 for key in INCOME_KEYS},
        "expense": {key: 0.0 for key in EXPENSE_KEYS},
    }


def _ledger_from(data: Optional[Dict[str, Dict[str, float]]]) -> Dict[str, Dict[str, float]]:
    ledger = empty_ledger()
    if isinstance(data, dict):
        for side in ("income", "expense"):
            for key, value in (data.get(side) or {}).items():
                ledger[side][key] = value
    return ledger


@dataclass
class Team:
    """A football club."""
    id: str
    name: str
    league_id: LeagueId
    players: List[Player] = field(default_factory=list)

    strength: float = 0.0
    raw_strength: float = 0.0
    strength_delta: float = 0.0

    stats: TableStats = field(default_factory=TableStats)
    tactics: Tactics = field(default_factory=Tactics)
    set_piece_takers: Dict[str, str] = field(default_factory=dict)

    # Finance (millions)
    budget: float = 10.0
    wage_budget: float = 10.0
    initial_debt: float = 0.0
    sponsors: Sponsors = field(default_factory=Sponsors)
    fan_base: int = 500_000
    stadium_capacity: int = 30_000

    reputation: float = 2.0
    initial_reputation: float = 2.0
    board_expectation: BoardExpectation = BoardExpectation.SURVIVE
    board_patience: int = 50

    trophies: Trophies = field(default_factory=Trophies)
    cup_ban: bool = False
    ffp_years: int = 0

    training_intensity: TrainingIntensity = TrainingIntensity.STANDARD
    training_focus: TrainingFocus = TrainingFocus.TACTICAL

    transfer_history: List[Dict[str, Any]] = field(default_factory=list)
    financial_records: Dict[str, Dict[str, float]] = field(default_factory=empty_ledger)
    league_history: List[Dict[str, Any]] = field(default_factory=list)
    loaned_out_players: List[Player] = field(default_factory=list)
    last_transfer_date: Optional[date] = None

    @property
    def wage_bill(self) -> float:
        return sum(p.wage for p in self.players)

    @property
    def squad_value(self) -> float:
        return sum(p.value for p in self.players)

    def find_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "league_id": self.league_id.value,
            "players": [p.to_dict() for p in self.players],
            "strength": self.strength,
            "raw_strength": self.raw_strength,
            "strength_delta": self.strength_delta,
            "stats": self.stats.to_dict(),
            "tactics": self.tactics.to_dict(),
            "set_piece_takers": dict(self.set_piece_takers),
            "budget": self.budget,
            "wage_budget": self.wage_budget,
            "initial_debt": self.initial_debt,
            "sponsors": {
                "main": self.sponsors.main,
                "stadium": self.sponsors.stadium,
                "sleeve": self.sponsors.sleeve,
            },
            "fan_base": self.fan_base,
            "stadium_capacity": self.stadium_capacity,
            "reputation": self.reputation,
            "initial_reputation": self.initial_reputation,
            "board_expectation": self.board_expectation.value,
            "board_patience": self.board_patience,
            "trophies": {
                "league": self.trophies.league,
                "cup": self.trophies.cup,
                "super_cup": self.trophies.super_cup,
                "europe": self.trophies.europe,
            },
            "cup_ban": self.cup_ban,
            "ffp_years": self.ffp_years,
            "training_intensity": self.training_intensity.value,
            "training_focus": self.training_focus.value,
            "transfer_history": list(self.transfer_history),
            "financial_records": {k: dict(v) for k, v in self.financial_records.items()},
            "league_history": list(self.league_history),
            "loaned_out_players": [p.to_dict() for p in self.loaned_out_players],
            "last_transfer_date": (
                self.last_transfer_date.isoformat() if self.last_transfer_date else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Team":
        sponsors = data.get("sponsors", {})
        trophies = data.get("trophies", {})
        last_transfer = data.get("last_transfer_date")
        return cls(
            id=data["id"],
            name=data.get("name", "Unknown"),
            league_id=LeagueId(data.get("league_id", "LEAGUE")),
            players=[Player.from_dict(p) for p in data.get("players", [])],
            strength=data.get("strength", 0.0),
            raw_strength=data.get("raw_strength", 0.0),
            strength_delta=data.get("strength_delta", 0.0),
            stats=TableStats.from_dict(data.get("stats", {})),
            tactics=Tactics.from_dict(data.get("tactics", {})),
            set_piece_takers=dict(data.get("set_piece_takers", {})),
            budget=data.get("budget", 10.0),
            wage_budget=data.get("wage_budget", 10.0),
            initial_debt=data.get("initial_debt", 0.0),
            sponsors=Sponsors(
                main=sponsors.get("main", 0.0),
                stadium=sponsors.get("stadium", 0.0),
                sleeve=sponsors.get("sleeve", 0.0),
            ),
            fan_base=data.get("fan_base", 500_000),
            stadium_capacity=data.get("stadium_capacity", 30_000),
            reputation=data.get("reputation", 2.0),
            initial_reputation=data.get("initial_reputation", data.get("reputation", 2.0)),
            board_expectation=BoardExpectation(data.get("board_expectation", "survive")),
            board_patience=data.get("board_patience", 50),
            trophies=Trophies(
                league=trophies.get("league", 0),
                cup=trophies.get("cup", 0),
                super_cup=trophies.get("super_cup", 0),
                europe=trophies.get("europe", 0),
            ),
            cup_ban=data.get("cup_ban", False),
            ffp_years=data.get("ffp_years", 0),
            training_intensity=TrainingIntensity(data.get("training_intensity", "standard")),
            training_focus=TrainingFocus(data.get("training_focus", "tactical")),
            transfer_history=list(data.get("transfer_history", [])),
            financial_records=_ledger_from(data.get("financial_records")),
            league_history=list(data.get("league_history", [])),
            loaned_out_players=[Player.from_dict(p) for p in data.get("loaned_out_players", [])],
            last_transfer_date=date.fromisoformat(last_transfer) if last_transfer else None,
        )
