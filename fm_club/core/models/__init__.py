"""Core models for FM Club."""

from fm_club.core.models.player import (
    ATTRIBUTE_NAMES,
    PHYSICAL_ATTRIBUTES,
    IMPORTANT_STATUSES,
    IndividualTraining,
    Injury,
    InjuryRecord,
    Personality,
    Player,
    Position,
    SeasonStats,
    SquadStatus,
    position_group,
)
from fm_club.core.models.team import (
    BoardExpectation,
    DefensiveLine,
    LeagueId,
    Mentality,
    PassingStyle,
    Pressing,
    Sponsors,
    TableStats,
    Tackling,
    Tactics,
    Team,
    Tempo,
    TrainingFocus,
    TrainingIntensity,
    Trophies,
    Width,
)
from fm_club.core.models.match import (
    Competition,
    Fixture,
    MatchEvent,
    MatchEventType,
    MatchStats,
    PlayerRating,
)
from fm_club.core.models.news import NewsCategory, NewsItem, NewsPriority
from fm_club.core.models.game_state import (
    SEASON_END,
    GameState,
    HolidayKind,
    HolidayPlan,
    IncomingOffer,
    ManagerProfile,
    OfferType,
    SeasonSummary,
)

__all__ = [
    # Player
    "ATTRIBUTE_NAMES",
    "PHYSICAL_ATTRIBUTES",
    "IMPORTANT_STATUSES",
    "IndividualTraining",
    "Injury",
    "InjuryRecord",
    "Personality",
    "Player",
    "Position",
    "SeasonStats",
    "SquadStatus",
    "position_group",
    # Team
    "BoardExpectation",
    "DefensiveLine",
    "LeagueId",
    "Mentality",
    "PassingStyle",
    "Pressing",
    "Sponsors",
    "TableStats",
    "Tackling",
    "Tactics",
    "Team",
    "Tempo",
    "TrainingFocus",
    "TrainingIntensity",
    "Trophies",
    "Width",
    # Match
    "Competition",
    "Fixture",
    "MatchEvent",
    "MatchEventType",
    "MatchStats",
    "PlayerRating",
    # News
    "NewsCategory",
    "NewsItem",
    "NewsPriority",
    # Game state
    "SEASON_END",
    "GameState",
    "HolidayKind",
    "HolidayPlan",
    "IncomingOffer",
    "ManagerProfile",
    "OfferType",
    "SeasonSummary",
]
