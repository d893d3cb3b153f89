"""
Data models for conversation, recommendation and search payloads.
"""

from typing import List, Optional, Tuple
from pydantic import Field

from .base import ApiModel
from .product_models import Product


class ConversationMetadata(ApiModel):
    """Context returned alongside an assistant reply."""
    search_query: Optional[str] = None
    turn_count: int = 0
    topics_discussed: int = 0


class ConversationReply(ApiModel):
    """Enriched assistant reply for one user turn."""
    message: str
    suggestions: List[str] = Field(default_factory=list, max_length=4)
    follow_up_questions: List[str] = Field(default_factory=list, max_length=3)
    metadata: ConversationMetadata = Field(default_factory=ConversationMetadata)
    degraded: bool = False


class ChatReply(ApiModel):
    """Session-less assistant reply attached to search results."""
    message: str
    suggestions: List[str] = Field(default_factory=list)
    products: List[Product] = Field(default_factory=list)
    degraded: bool = False


class RecommendationSet(ApiModel):
    """Three recommendation buckets plus one explanation per bucket."""
    personalized: List[Product] = Field(default_factory=list)
    related: List[Product] = Field(default_factory=list)
    trending: List[Product] = Field(default_factory=list)
    explanations: List[str] = Field(default_factory=list)
    degraded: bool = False


class ConversationRequest(ApiModel):
    """Model for conversation endpoint requests."""
    session_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    current_search: Optional[str] = None
    search_results: List[Product] = Field(default_factory=list)


class PreferencesRequest(ApiModel):
    """Model for additive preference updates."""
    session_id: str = Field(..., min_length=1)
    price_range: Optional[Tuple[float, float]] = None
    categories: Optional[List[str]] = None
    brands: Optional[List[str]] = None
    use_case: Optional[str] = None


class RecommendationRequest(ApiModel):
    """Model for recommendation and behaviour tracking requests."""
    session_id: Optional[str] = None
    search_query: Optional[str] = None
    search_results: Optional[List[Product]] = None
    action: Optional[str] = None
    product_id: Optional[str] = None
    action_type: Optional[str] = None


class SearchResponse(ApiModel):
    """Model for product search responses."""
    results: List[Product] = Field(default_factory=list)
    total: int = 0
    query: str
    chat_response: Optional[ChatReply] = None
