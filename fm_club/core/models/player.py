"""Player model definition."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional


class Position(Enum):
    """Player positions on the field."""
    GK = "GK"  # Goalkeeper
    LB = "LB"  # Left Back
    CB = "CB"  # Center Back
    RB = "RB"  # Right Back
    CM = "CM"  # Central / Defensive Midfielder
    AM = "AM"  # Attacking Midfielder
    LW = "LW"  # Left Winger
    RW = "RW"  # Right Winger
    ST = "ST"  # Striker


DEFENDERS = {Position.LB, Position.CB, Position.RB}
MIDFIELDERS = {Position.CM, Position.AM}


def position_group(position: Position) -> str:
    """Map a position to GK / DEF / MID / FWD."""
    if position == Position.GK:
        return "GK"
    if position in DEFENDERS:
        return "DEF"
    if position in MIDFIELDERS:
        return "MID"
    return "FWD"


class SquadStatus(Enum):
    """Role tier inside the squad."""
    STAR = "star"
    IMPORTANT = "important"
    FIRST_XI = "first_xi"
    ROTATION = "rotation"
    IMPACT = "impact"
    JOKER = "joker"
    SURPLUS = "surplus"


IMPORTANT_STATUSES = {SquadStatus.STAR, SquadStatus.IMPORTANT, SquadStatus.FIRST_XI}


class Personality(Enum):
    """Training personality."""
    PROFESSIONAL = "professional"
    HARDWORKING = "hardworking"
    AMBITIOUS = "ambitious"
    BALANCED = "balanced"
    LAZY = "lazy"


ATTRIBUTE_NAMES = [
    "finishing", "composure", "first_touch", "passing", "vision", "decisions",
    "dribbling", "balance", "acceleration", "concentration", "leadership",
    "determination", "teamwork", "stamina", "natural_fitness", "pace",
    "physical", "aggression", "agility", "positioning", "anticipation",
    "marking", "tackling", "crossing", "heading", "long_shots", "penalty",
    "free_kick", "corners", "long_throws", "bravery", "work_rate", "flair",
    "off_the_ball", "jumping", "technique",
]

PHYSICAL_ATTRIBUTES = [
    "pace", "acceleration", "stamina", "agility", "balance", "natural_fitness",
]


@dataclass
class Injury:
    """An active injury."""
    type: str
    days_remaining: int

    def to_dict(self) -> dict:
        return {"type": self.type, "days_remaining": self.days_remaining}

    @classmethod
    def from_dict(cls, data: dict) -> "Injury":
        return cls(type=data.get("type", "Knock"), days_remaining=data.get("days_remaining", 0))


@dataclass
class InjuryRecord:
    """A finished or ongoing injury in a player's history."""
    type: str
    start_date: date
    duration_days: int

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "start_date": self.start_date.isoformat(),
            "duration_days": self.duration_days,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InjuryRecord":
        return cls(
            type=data.get("type", "Knock"),
            start_date=date.fromisoformat(data["start_date"]),
            duration_days=data.get("duration_days", 14),
        )


@dataclass
class SeasonStats:
    """Per-season aggregate player statistics."""
    goals: int = 0
    assists: int = 0
    yellow_cards: int = 0
    red_cards: int = 0
    matches_played: int = 0
    ratings: List[float] = field(default_factory=list)
    average_rating: float = 0.0

    def add_rating(self, rating: float) -> None:
        self.ratings.append(rating)
        self.average_rating = round(sum(self.ratings) / len(self.ratings), 2)

    def to_dict(self) -> dict:
        return {
            "goals": self.goals,
            "assists": self.assists,
            "yellow_cards": self.yellow_cards,
            "red_cards": self.red_cards,
            "matches_played": self.matches_played,
            "ratings": list(self.ratings),
            "average_rating": self.average_rating,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SeasonStats":
        return cls(
            goals=data.get("goals", 0),
            assists=data.get("assists", 0),
            yellow_cards=data.get("yellow_cards", 0),
            red_cards=data.get("red_cards", 0),
            matches_played=data.get("matches_played", 0),
            ratings=list(data.get("ratings", [])),
            average_rating=data.get("average_rating", 0.0),
        )


@dataclass
class IndividualTraining:
    """An individual training program focusing on a few attributes."""
    program_id: str
    attributes: List[str] = field(default_factory=list)
    days_active: int = 0
    progress: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "program_id": self.program_id,
            "attributes": list(self.attributes),
            "days_active": self.days_active,
            "progress": dict(self.progress),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "IndividualTraining":
        return cls(
            program_id=data.get("program_id", "general"),
            attributes=list(data.get("attributes", [])),
            days_active=data.get("days_active", 0),
            progress=dict(data.get("progress", {})),
        )


@dataclass
class Player:
    """A football player."""
    id: str
    name: str
    position: Position
    age: int
    skill: int
    potential: int
    attributes: Dict[str, int] = field(default_factory=dict)
    team_id: str = ""

    # Condition
    condition: float = 100.0
    morale: float = 70.0
    injury: Optional[Injury] = None
    injury_susceptibility: int = 20
    last_injury_duration_days: int = 14
    injury_history: List[InjuryRecord] = field(default_factory=list)

    # Discipline, keyed by competition id
    suspensions: Dict[str, int] = field(default_factory=dict)
    yellow_card_accumulation: Dict[str, int] = field(default_factory=dict)
    processed_match_ids: List[str] = field(default_factory=list)

    season_stats: SeasonStats = field(default_factory=SeasonStats)

    # Contract & market (values in millions)
    value: float = 1.0
    wage: float = 0.1
    squad_status: SquadStatus = SquadStatus.ROTATION
    personality: Personality = Personality.BALANCED
    contract_expiry: int = 2028
    is_transfer_listed: bool = False
    is_loan_listed: bool = False

    # Loan
    loaned_from_team_id: Optional[str] = None
    loan_return_date: Optional[date] = None

    individual_training: Optional[IndividualTraining] = None
    # Team training progress towards the next attribute point
    attribute_progress: Dict[str, float] = field(default_factory=dict)

    @property
    def is_injured(self) -> bool:
        return self.injury is not None and self.injury.days_remaining > 0

    def is_suspended(self, competition_id: Optional[str] = None) -> bool:
        """Check suspension, for one competition or any."""
        if competition_id is None:
            return any(v > 0 for v in self.suspensions.values())
        return self.suspensions.get(competition_id, 0) > 0

    def attr(self, name: str, default: int = 10) -> int:
        return self.attributes.get(name, default)

    def clamp(self) -> None:
        """Enforce skill/potential/condition/morale bounds."""
        self.potential = max(1, min(99, self.potential))
        self.skill = max(1, min(self.potential, self.skill))
        self.condition = max(0.0, min(100.0, self.condition))
        self.morale = max(0.0, min(100.0, self.morale))
        for name, value in self.attributes.items():
            self.attributes[name] = max(1, min(20, value))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position.value,
            "age": self.age,
            "skill": self.skill,
            "potential": self.potential,
            "attributes": dict(self.attributes),
            "team_id": self.team_id,
            "condition": self.condition,
            "morale": self.morale,
            "injury": self.injury.to_dict() if self.injury else None,
            "injury_susceptibility": self.injury_susceptibility,
            "last_injury_duration_days": self.last_injury_duration_days,
            "injury_history": [r.to_dict() for r in self.injury_history],
            "suspensions": dict(self.suspensions),
            "yellow_card_accumulation": dict(self.yellow_card_accumulation),
            "processed_match_ids": list(self.processed_match_ids),
            "season_stats": self.season_stats.to_dict(),
            "value": self.value,
            "wage": self.wage,
            "squad_status": self.squad_status.value,
            "personality": self.personality.value,
            "contract_expiry": self.contract_expiry,
            "is_transfer_listed": self.is_transfer_listed,
            "is_loan_listed": self.is_loan_listed,
            "loaned_from_team_id": self.loaned_from_team_id,
            "loan_return_date": self.loan_return_date.isoformat() if self.loan_return_date else None,
            "individual_training": (
                self.individual_training.to_dict() if self.individual_training else None
            ),
            "attribute_progress": dict(self.attribute_progress),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Player":
        injury = data.get("injury")
        training = data.get("individual_training")
        loan_return = data.get("loan_return_date")
        return cls(
            id=data["id"],
            name=data.get("name", "Unknown"),
            position=Position(data.get("position", "CM")),
            age=data.get("age", 25),
            skill=data.get("skill", 50),
            potential=data.get("potential", data.get("skill", 50)),
            attributes=dict(data.get("attributes", {})),
            team_id=data.get("team_id", ""),
            condition=data.get("condition", 100.0),
            morale=data.get("morale", 70.0),
            injury=Injury.from_dict(injury) if injury else None,
            injury_susceptibility=data.get("injury_susceptibility", 20),
            last_injury_duration_days=data.get("last_injury_duration_days", 14),
            injury_history=[InjuryRecord.from_dict(r) for r in data.get("injury_history", [])],
            suspensions=dict(data.get("suspensions", {})),
            yellow_card_accumulation=dict(data.get("yellow_card_accumulation", {})),
            processed_match_ids=list(data.get("processed_match_ids", [])),
            season_stats=SeasonStats.from_dict(data.get("season_stats", {})),
            value=data.get("value", 1.0),
            wage=data.get("wage", 0.1),
            squad_status=SquadStatus(data.get("squad_status", "rotation")),
            personality=Personality(data.get("personality", "balanced")),
            contract_expiry=data.get("contract_expiry", 2028),
            is_transfer_listed=data.get("is_transfer_listed", False),
            is_loan_listed=data.get("is_loan_listed", False),
            loaned_from_team_id=data.get("loaned_from_team_id"),
            loan_return_date=date.fromisoformat(loan_return) if loan_return else None,
            individual_training=IndividualTraining.from_dict(training) if training else None,
            attribute_progress=dict(data.get("attribute_progress", {})),
        )
