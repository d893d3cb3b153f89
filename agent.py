"""
Shop assistant conversation agent.

Composes the session store, the keyword heuristics and the text completion
service into one enriched reply per user turn. Completion failures never
escape this module: they are converted to the fixed fallback reply.
"""

import asyncio
import time
from typing import List, Optional, Sequence

from heuristics import chat_suggestions, derive_follow_ups, derive_suggestions, fallback_response
from models import ChatReply, ConversationMetadata, ConversationReply, Product, Session, TurnContext
from session_store import ConversationSessionStore, get_session_store
from tools.completion_tool import CompletionError, CompletionService, HistoryEntry, get_completion_service
from config import get_config
from logger import get_logger, log_async_function_call

logger = get_logger(__name__)

HISTORY_WINDOW = 10
MAX_PROMPT_PRODUCTS = 5
MAX_PROMPT_TOPICS = 3
MAX_PROMPT_PRODUCT_IDS = 3

CONVERSATION_MAX_TOKENS = 800
QUICK_REPLY_MAX_TOKENS = 500

ASSISTANT_PERSONA = """You are an expert Dell product consultant and conversational AI assistant. You help users find the perfect Dell products through natural, engaging conversations.

CORE CAPABILITIES:
- Provide detailed product recommendations based on user needs
- Answer technical questions about Dell products
- Compare products and explain differences
- Suggest complementary products and accessories
- Help with configuration and customization options
- Provide pricing guidance and deal information

CONVERSATION STYLE:
- Be conversational, friendly, and helpful
- Ask clarifying questions when needed
- Provide specific, actionable advice
- Use natural language, not robotic responses
- Be honest about limitations and alternatives

CURRENT CONTEXT:"""

QUICK_REPLY_PERSONA = (
    "You are a helpful Dell product assistant. Help users find the right Dell products including "
    "laptops, desktops, monitors, and accessories. Keep responses concise and helpful."
)


class ShoppingAssistantAgent:
    """Produces enriched assistant replies for a conversation session."""

    def __init__(
        self,
        session_store: Optional[ConversationSessionStore] = None,
        completion_service: Optional[CompletionService] = None,
        timeout_seconds: Optional[float] = None
    ):
        """
        Args:
            session_store: Where dialogue state lives (default: process-wide store)
            completion_service: Text completion backend (default: configured provider)
            timeout_seconds: Upper bound on one completion call before falling back
        """
        self.session_store = session_store if session_store is not None else get_session_store()
        self._completion_service = completion_service
        if timeout_seconds is None:
            timeout_seconds = get_config().completion_timeout_seconds
        self.timeout_seconds = timeout_seconds

    @property
    def completion_service(self) -> CompletionService:
        """Lazy-load the completion service."""
        if self._completion_service is None:
            self._completion_service = get_completion_service()
        return self._completion_service

    @log_async_function_call()
    async def respond(
        self,
        session_key: str,
        user_text: str,
        current_search_query: Optional[str] = None,
        candidate_products: Optional[Sequence[Product]] = None
    ) -> ConversationReply:
        """
        Answer one user turn.

        Appends two turns to the session (user, then assistant) whether or
        not the completion service succeeds. Not idempotent.

        Args:
            session_key: Opaque session identifier, already validated
            user_text: The shopper's message
            current_search_query: Query currently shown in the search UI
            candidate_products: Search results currently on screen

        Returns:
            ConversationReply with suggestions, follow-ups and metadata
        """
        start_time = time.time()
        context = TurnContext(search_query=current_search_query) if current_search_query else None

        self.session_store.append_turn(session_key, "user", user_text, context)
        session = self.session_store.get_or_create(session_key)

        system_instruction = self._build_system_instruction(session, current_search_query, candidate_products)
        history = self._build_history(session)

        reply_text = await self._complete(system_instruction, history, user_text, CONVERSATION_MAX_TOKENS)

        degraded = reply_text is None
        if degraded:
            fallback = fallback_response(user_text)
            reply_text = fallback.message
            suggestions = list(fallback.suggestions)
            follow_ups = list(fallback.follow_up_questions)
            logger.fallback("conversation", "completion unavailable", session_id=session_key)
        else:
            suggestions = derive_suggestions(reply_text, current_search_query)
            follow_ups = derive_follow_ups(
                reply_text,
                current_search_query,
                is_first_user_turn=session.user_turn_count == 1
            )

        self.session_store.append_turn(session_key, "assistant", reply_text, context)
        session = self.session_store.get_or_create(session_key)

        logger.info(
            "Conversation turn completed",
            session_id=session_key,
            degraded=degraded,
            turn_count=len(session.turns),
            duration_ms=round((time.time() - start_time) * 1000, 2)
        )

        return ConversationReply(
            message=reply_text,
            suggestions=suggestions,
            follow_up_questions=follow_ups,
            metadata=ConversationMetadata(
                search_query=current_search_query,
                turn_count=len(session.turns),
                topics_discussed=len(session.history.topics)
            ),
            degraded=degraded
        )

    @log_async_function_call()
    async def quick_reply(self, query: str) -> ChatReply:
        """Session-less reply shown next to search results."""
        reply_text = await self._complete(QUICK_REPLY_PERSONA, [], query, QUICK_REPLY_MAX_TOKENS)
        if reply_text is None:
            fallback = fallback_response(query)
            logger.fallback("quick_reply", "completion unavailable")
            return ChatReply(message=fallback.message, suggestions=list(fallback.suggestions), degraded=True)

        return ChatReply(message=reply_text, suggestions=chat_suggestions(reply_text, query))

    def _build_system_instruction(
        self,
        session: Session,
        current_search_query: Optional[str],
        candidate_products: Optional[Sequence[Product]]
    ) -> str:
        """Persona plus whatever context the session and the search screen provide."""
        lines = [ASSISTANT_PERSONA]

        if current_search_query:
            lines.append(f'- Current search: "{current_search_query}"')

        if candidate_products:
            titles = [p.title for p in list(candidate_products)[:MAX_PROMPT_PRODUCTS]]
            lines.append(f"- Available products: {', '.join(titles)}")

        topics = session.history.topics[-MAX_PROMPT_TOPICS:]
        if topics:
            lines.append(f"- Previous topics discussed: {', '.join(topics)}")

        product_ids = session.history.products_discussed[-MAX_PROMPT_PRODUCT_IDS:]
        if product_ids:
            lines.append(f"- Products previously discussed: {', '.join(product_ids)}")

        if session.preferences.use_case:
            lines.append(f"- User's use case: {session.preferences.use_case}")

        lines.append("")
        lines.append("Remember to maintain context from previous messages and build upon the conversation naturally.")
        return "\n".join(lines)

    def _build_history(self, session: Session) -> List[HistoryEntry]:
        """Most recent turns, oldest first, reduced to role and text."""
        return [{"role": turn.role, "text": turn.text} for turn in session.turns[-HISTORY_WINDOW:]]

    async def _complete(
        self,
        system_instruction: str,
        history: List[HistoryEntry],
        user_text: str,
        max_tokens: int
    ) -> Optional[str]:
        """Call the completion service; None means take the fallback path."""
        try:
            return await asyncio.wait_for(
                self.completion_service.complete(system_instruction, history, user_text, max_tokens=max_tokens),
                timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.error("Completion timed out", timeout_seconds=self.timeout_seconds)
        except CompletionError as e:
            logger.error(f"Completion failed: {type(e).__name__}: {str(e)}")
        except Exception as e:
            logger.error(f"Unexpected completion error: {type(e).__name__}: {str(e)}", exc_info=True)
        return None


# Global agent instance (singleton pattern)
_agent_instance: Optional[ShoppingAssistantAgent] = None


def get_agent() -> ShoppingAssistantAgent:
    """
    Get or create the global shop assistant agent.

    Returns:
        ShoppingAssistantAgent instance
    """
    global _agent_instance

    if _agent_instance is None:
        logger.info("Initializing ShoppingAssistantAgent singleton")
        _agent_instance = ShoppingAssistantAgent()

    return _agent_instance


def reset_agent() -> None:
    """Reset the global agent instance (useful for testing or reloading config)."""
    global _agent_instance
    _agent_instance = None
    logger.info("Agent instance reset")
