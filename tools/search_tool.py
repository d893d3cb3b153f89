"""
Document search service adapters for the product catalog.

Both backends return products in relevance-descending order and never
raise to the caller: any upstream failure is logged and answered with
an empty result list.
"""

import time
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError

from config import AppConfig, get_config
from connection import Connections, connections as default_connections
from models import Product
from logger import get_logger

logger = get_logger(__name__)

SEARCH_FIELDS = ["title^2", "description", "category", "brand"]
SOURCE_FIELDS = ["title", "description", "price", "category", "image", "url", "rating", "reviews"]

QUERY_SUGGESTIONS = [
    "laptops",
    "desktops",
    "monitors",
    "gaming computers",
    "workstations",
    "servers",
    "accessories",
    "budget laptops",
    "business laptops",
    "gaming laptops",
]


class SearchError(Exception):
    """Raised internally when a search backend call fails."""
    pass


class DocumentSearchService(Protocol):
    """Contract for product search backends."""

    async def search(self, query: str, max_results: int = 10) -> List[Product]: ...


def suggest_queries(prefix: str, limit: int = 5) -> List[str]:
    """Autocomplete entries containing prefix (case-insensitive)."""
    needle = (prefix or "").strip().lower()
    if not needle:
        return []
    return [s for s in QUERY_SUGGESTIONS if needle in s.lower()][:limit]


def _to_product(point_id: Any, source: Dict[str, Any], score: Optional[float]) -> Optional[Product]:
    """Map one backend hit to a Product, skipping hits that cannot be read."""
    try:
        return Product(
            id=str(point_id),
            title=source.get("title") or "Untitled",
            description=source.get("description") or "",
            price=source.get("price"),
            category=source.get("category"),
            image=source.get("image"),
            url=source.get("url"),
            rating=source.get("rating"),
            reviews=source.get("reviews"),
            score=float(score or 0.0),
        )
    except (ValidationError, TypeError, ValueError) as e:
        logger.warning(f"Skipping malformed search hit: {str(e)}", hit_id=str(point_id))
        return None


class ElasticsearchSearchService:
    """Full-text product search over the Elasticsearch REST API."""

    backend = "elasticsearch"

    def __init__(self, config: Optional[AppConfig] = None, connections: Optional[Connections] = None):
        self._config = config or get_config()
        self._connections = connections or default_connections

    def build_query(self, query: str, max_results: int) -> Dict[str, Any]:
        return {
            "query": {
                "multi_match": {
                    "query": query,
                    "fields": SEARCH_FIELDS,
                    "type": "best_fields",
                    "fuzziness": "AUTO",
                }
            },
            "size": max_results,
            "_source": SOURCE_FIELDS,
        }

    async def _request(self, body: Dict[str, Any]) -> Dict[str, Any]:
        base_url = self._config.elasticsearch_url.strip().rstrip("/")
        if not base_url:
            raise SearchError("ELASTICSEARCH_URL not set")

        headers = {"Content-Type": "application/json"}
        if self._config.elasticsearch_api_key:
            headers["Authorization"] = f"ApiKey {self._config.elasticsearch_api_key}"

        url = f"{base_url}/{self._config.elasticsearch_index}/_search"
        response = await self._connections.get_http_client().post(url, json=body, headers=headers)
        if response.status_code >= 400:
            raise SearchError(f"Elasticsearch request failed: {response.status_code}")
        return response.json()

    async def search(self, query: str, max_results: int = 10) -> List[Product]:
        start_time = time.time()
        try:
            payload = await self._request(self.build_query(query, max_results))
            hits = payload["hits"]["hits"]
        except Exception as e:
            logger.error(f"Elasticsearch search failed: {type(e).__name__}: {str(e)}")
            return []

        products = []
        for hit in hits or []:
            if not isinstance(hit, dict):
                continue
            product = _to_product(hit.get("_id"), hit.get("_source") or {}, hit.get("_score"))
            if product is not None:
                products.append(product)

        logger.search_query(
            backend=self.backend,
            query=query,
            results_count=len(products),
            duration_ms=(time.time() - start_time) * 1000
        )
        return products


class QdrantSearchService:
    """Semantic product search: Cohere query embedding plus Qdrant vector query."""

    backend = "qdrant"

    def __init__(self, config: Optional[AppConfig] = None, connections: Optional[Connections] = None):
        self._config = config or get_config()
        self._connections = connections or default_connections

    async def generate_embedding(self, text: str) -> List[float]:
        # Keep the request inside the embedding API's input limit.
        text = text[:8000]
        response = await self._connections.get_cohere_client().embed(
            texts=[text],
            model=self._config.embedding_model,
            input_type="search_query"
        )
        if not response.embeddings:
            raise SearchError("Embedding result is empty")
        return list(response.embeddings[0])

    async def search(self, query: str, max_results: int = 10) -> List[Product]:
        start_time = time.time()
        try:
            vector = await self.generate_embedding(query)
            result = await self._connections.get_qdrant_client().query_points(
                collection_name=self._config.qdrant_collection_name,
                query=vector,
                limit=max_results,
                with_payload=True
            )
            points = result.points
        except Exception as e:
            logger.error(f"Qdrant search failed: {type(e).__name__}: {str(e)}")
            return []

        products = []
        for point in points or []:
            product = _to_product(getattr(point, "id", None), getattr(point, "payload", None) or {},
                                  getattr(point, "score", 0.0))
            if product is not None:
                products.append(product)

        logger.search_query(
            backend=self.backend,
            query=query,
            results_count=len(products),
            duration_ms=(time.time() - start_time) * 1000,
            collection=self._config.qdrant_collection_name
        )
        return products


def build_search_service(config: Optional[AppConfig] = None) -> DocumentSearchService:
    """Create the backend selected by SEARCH_BACKEND."""
    config = config or get_config()
    if config.search_backend == "qdrant":
        return QdrantSearchService(config=config)
    return ElasticsearchSearchService(config=config)


_search_service: Optional[DocumentSearchService] = None


def get_search_service() -> DocumentSearchService:
    """Get or create the process-wide search service."""
    global _search_service
    if _search_service is None:
        _search_service = build_search_service()
        logger.info("Search service initialized", backend=get_config().search_backend)
    return _search_service


def reset_search_service() -> None:
    global _search_service
    _search_service = None
