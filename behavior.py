"""
Behaviour tracker.

Records searches, product views and clicks per session key. Profiles are
correlated with conversation sessions by key but stored separately; either
may exist without the other.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from models import BehaviorProfile
from models.session_model import utc_now
from store import InMemoryKeyedStore, KeyedStore
from logger import get_logger

logger = get_logger(__name__)

ACTION_FIELDS = {
    "search": "search_history",
    "view": "viewed_products",
    "click": "clicked_products",
}


class BehaviorTracker:
    """Append-only store of interaction signals."""

    def __init__(
        self,
        store: Optional[KeyedStore] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self._store = store if store is not None else InMemoryKeyedStore()
        self._clock = clock

    def track(self, session_key: str, action: str, value: str) -> BehaviorProfile:
        """
        Append value to the list matching action, creating the profile if absent.

        Raises:
            ValueError: If action is not one of search, view, click
        """
        field_name = ACTION_FIELDS.get(action)
        if field_name is None:
            raise ValueError(f"Unknown behaviour action '{action}': must be one of {', '.join(ACTION_FIELDS)}")

        profile = self._store.get(session_key)
        now = self._clock()
        if profile is None:
            profile = BehaviorProfile(started_at=now, last_active=now)

        getattr(profile, field_name).append(value)
        profile.last_active = now
        self._store.put(session_key, profile)
        logger.debug("Behaviour tracked", session_id=session_key, action=action)
        return profile

    def get(self, session_key: str) -> Optional[BehaviorProfile]:
        return self._store.get(session_key)

    def purge_stale(self, retention_ms: int) -> int:
        """Remove profiles with no activity inside the retention window."""
        cutoff = self._clock() - timedelta(milliseconds=retention_ms)
        removed = self._store.sweep(lambda profile: profile.last_active < cutoff)
        if removed:
            logger.info("Purged stale behaviour profiles", count=len(removed))
        return len(removed)

    def __len__(self) -> int:
        return len(self._store)


_tracker: Optional[BehaviorTracker] = None


def get_behavior_tracker() -> BehaviorTracker:
    """Get or create the process-wide behaviour tracker."""
    global _tracker
    if _tracker is None:
        _tracker = BehaviorTracker()
    return _tracker


def reset_behavior_tracker() -> None:
    global _tracker
    _tracker = None
