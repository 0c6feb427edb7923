"""News item model."""

from dataclasses import dataclass
from datetime import date
from enum import Enum


class NewsCategory(Enum):
    """Categories of news items."""
    MATCH_RESULT = "match_result"
    TRANSFER_CONFIRMED = "transfer_confirmed"
    LOAN = "loan"
    OFFER = "offer"
    INJURY = "injury"
    COMPETITION = "competition"
    CLUB_ANNOUNCEMENT = "club_announcement"
    AWARD = "award"


class NewsPriority(Enum):
    """Priority levels for news items."""
    BREAKING = "breaking"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class NewsItem:
    """A single news item."""
    headline: str
    date: date
    content: str = ""
    category: NewsCategory = NewsCategory.CLUB_ANNOUNCEMENT
    priority: NewsPriority = NewsPriority.MEDIUM
    team_id: str | None = None
    player_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "headline": self.headline,
            "date": self.date.isoformat(),
            "content": self.content,
            "category": self.category.value,
            "priority": self.priority.value,
            "team_id": self.team_id,
            "player_id": self.player_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "NewsItem":
        return cls(
            headline=data.get("headline", ""),
            date=date.fromisoformat(data["date"]),
            content=data.get("content", ""),
            category=NewsCategory(data.get("category", "club_announcement")),
            priority=NewsPriority(data.get("priority", "medium")),
            team_id=data.get("team_id"),
            player_id=data.get("player_id"),
        )
