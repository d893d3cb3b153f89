"""
Conversation session store.

Owns per-session dialogue history and the derived topic/product memory.
Turns are only ever appended; the turn list is the source of truth for
prompt construction and summaries.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from models import ConversationSummary, ConversationTurn, Session, TurnContext
from models.session_model import utc_now
from store import InMemoryKeyedStore, KeyedStore
from logger import get_logger

logger = get_logger(__name__)


class ConversationSessionStore:
    """Lazily creates sessions and records turns against them."""

    def __init__(
        self,
        store: Optional[KeyedStore] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Args:
            store: Backing keyed store (defaults to an in-memory store)
            clock: Source of turn timestamps
        """
        self._store = store if store is not None else InMemoryKeyedStore()
        self._clock = clock

    def get(self, session_key: str) -> Optional[Session]:
        """Return the session if it exists, without creating it."""
        return self._store.get(session_key)

    def get_or_create(self, session_key: str) -> Session:
        session = self._store.get(session_key)
        if session is None:
            session = Session(id=session_key, created_at=self._clock())
            self._store.put(session_key, session)
            logger.info("New session created", session_id=session_key)
        return session

    def append_turn(
        self,
        session_key: str,
        role: str,
        text: str,
        context: Optional[TurnContext] = None
    ) -> ConversationTurn:
        """
        Append a turn stamped with the current time.

        User turns also feed the history index: the raw text always goes to
        the question history, a search query to the topics and a product id
        to the products discussed.
        """
        session = self.get_or_create(session_key)
        turn = ConversationTurn(role=role, text=text, timestamp=self._clock(), context=context)
        session.turns.append(turn)

        if role == "user":
            session.history.questions_asked.append(text)
            if context is not None:
                if context.search_query:
                    session.history.topics.append(context.search_query)
                if context.product_id:
                    session.history.products_discussed.append(context.product_id)

        self._store.put(session_key, session)
        return turn

    def update_preferences(self, session_key: str, **preferences) -> Session:
        """Merge preference fields into the session; lists are extended, scalars replaced."""
        session = self.get_or_create(session_key)
        session.preferences = session.preferences.merged(**preferences)
        self._store.put(session_key, session)
        logger.debug("Preferences updated", session_id=session_key, fields=list(preferences.keys()))
        return session

    def summarize(self, session_key: str) -> ConversationSummary:
        session = self.get_or_create(session_key)
        duration_ms = 0
        if len(session.turns) >= 2:
            delta = session.turns[-1].timestamp - session.turns[0].timestamp
            duration_ms = int(delta.total_seconds() * 1000)

        return ConversationSummary(
            turn_count=len(session.turns),
            topics=list(session.history.topics),
            products_discussed=list(session.history.products_discussed),
            duration_ms=duration_ms
        )

    def delete(self, session_key: str) -> bool:
        return self._store.delete(session_key)

    def purge_stale(self, retention_ms: int) -> int:
        """
        Remove sessions whose last turn is older than the retention window.

        Returns:
            Number of sessions removed
        """
        cutoff = self._clock() - timedelta(milliseconds=retention_ms)
        removed = self._store.sweep(lambda session: session.is_stale(cutoff))
        if removed:
            logger.info("Purged stale sessions", count=len(removed))
        return len(removed)

    def stats(self) -> dict:
        sessions = [self._store.get(key) for key in self._store.keys()]
        return {
            "total_sessions": len(sessions),
            "empty_sessions": sum(1 for s in sessions if s is not None and not s.turns),
            "total_turns": sum(len(s.turns) for s in sessions if s is not None)
        }

    def __contains__(self, session_key: str) -> bool:
        return self._store.get(session_key) is not None

    def __len__(self) -> int:
        return len(self._store)


_session_store: Optional[ConversationSessionStore] = None


def get_session_store() -> ConversationSessionStore:
    """Get or create the process-wide session store."""
    global _session_store
    if _session_store is None:
        _session_store = ConversationSessionStore()
    return _session_store


def reset_session_store() -> None:
    global _session_store
    _session_store = None
