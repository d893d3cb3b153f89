"""Data models for the Shop Assistant service."""

from .product_models import Product, ImageResult
from .session_model import (
    Session, ConversationTurn, TurnContext,
    Preferences, HistoryIndex, ConversationSummary
)
from .behavior_model import BehaviorProfile, BehaviorAction
from .chat_models import (
    ConversationMetadata, ConversationReply, ChatReply, RecommendationSet,
    ConversationRequest, PreferencesRequest, RecommendationRequest, SearchResponse
)

__all__ = [
    "Product", "ImageResult",
    "Session", "ConversationTurn", "TurnContext",
    "Preferences", "HistoryIndex", "ConversationSummary",
    "BehaviorProfile", "BehaviorAction",
    "ConversationMetadata", "ConversationReply", "ChatReply", "RecommendationSet",
    "ConversationRequest", "PreferencesRequest", "RecommendationRequest", "SearchResponse"
]
