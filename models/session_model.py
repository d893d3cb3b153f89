"""
Data models for conversation sessions and their turns.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

from .base import ApiModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TurnContext(ApiModel):
    """Optional tag attached to a turn."""
    search_query: Optional[str] = None
    product_id: Optional[str] = None
    category: Optional[str] = None
    user_intent: Optional[str] = None


class ConversationTurn(ApiModel):
    """A single user or assistant message. Immutable once recorded."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    text: str
    timestamp: datetime = Field(default_factory=utc_now)
    context: Optional[TurnContext] = None


class Preferences(ApiModel):
    """Shopper preferences, grown by additive updates."""
    price_range: Optional[Tuple[float, float]] = None
    categories: List[str] = Field(default_factory=list)
    brands: List[str] = Field(default_factory=list)
    use_case: Optional[str] = None

    def merged(self, **updates) -> "Preferences":
        """Return a copy with list fields extended and scalar fields replaced."""
        data = self.model_dump()
        for key, value in updates.items():
            if value is None or key not in data:
                continue
            if isinstance(data[key], list):
                data[key] = data[key] + [v for v in value if v not in data[key]]
            else:
                data[key] = value
        return Preferences(**data)


class HistoryIndex(ApiModel):
    """Topics, products and questions seen in a session, in arrival order."""
    topics: List[str] = Field(default_factory=list)
    products_discussed: List[str] = Field(default_factory=list)
    questions_asked: List[str] = Field(default_factory=list)


class Session(BaseModel):
    """Represents a shopper's conversation context."""
    id: str
    created_at: datetime = Field(default_factory=utc_now)
    turns: List[ConversationTurn] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)
    history: HistoryIndex = Field(default_factory=HistoryIndex)

    @property
    def last_turn_at(self) -> Optional[datetime]:
        return self.turns[-1].timestamp if self.turns else None

    @property
    def user_turn_count(self) -> int:
        return sum(1 for turn in self.turns if turn.role == "user")

    def is_stale(self, cutoff: datetime) -> bool:
        """Sessions without turns are never stale."""
        last = self.last_turn_at
        return last is not None and last < cutoff


class ConversationSummary(ApiModel):
    """Aggregate view of a session."""
    turn_count: int
    topics: List[str] = Field(default_factory=list)
    products_discussed: List[str] = Field(default_factory=list)
    duration_ms: int = 0
