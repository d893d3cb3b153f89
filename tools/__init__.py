"""External service adapters for the Shop Assistant service."""

from .completion_tool import (
    CompletionService, CompletionError, CompletionUnavailableError,
    CompletionStatusError, EmptyCompletionError,
    get_completion_service
)
from .search_tool import DocumentSearchService, get_search_service, suggest_queries

__all__ = [
    "CompletionService", "CompletionError", "CompletionUnavailableError",
    "CompletionStatusError", "EmptyCompletionError", "get_completion_service",
    "DocumentSearchService", "get_search_service", "suggest_queries"
]
