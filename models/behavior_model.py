"""
Data model for per-session interaction signals.
"""

from datetime import datetime
from typing import List, Literal
from pydantic import Field, computed_field

from .base import ApiModel
from .session_model import Preferences, utc_now

BehaviorAction = Literal["search", "view", "click"]


class BehaviorProfile(ApiModel):
    """Searches, views and clicks recorded for one session key."""
    search_history: List[str] = Field(default_factory=list)
    viewed_products: List[str] = Field(default_factory=list)
    clicked_products: List[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=utc_now)
    last_active: datetime = Field(default_factory=utc_now)
    preferences: Preferences = Field(default_factory=Preferences)

    @computed_field
    @property
    def session_duration_ms(self) -> int:
        return int((self.last_active - self.started_at).total_seconds() * 1000)
