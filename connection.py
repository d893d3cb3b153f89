"""
Connection utilities for the completion and document search backends.

Clients are created lazily and cached; a failed creation is never cached.
"""

import time
from typing import Optional

import httpx
import cohere
import google.generativeai as genai
from openai import AsyncOpenAI
from qdrant_client import AsyncQdrantClient

from config import AppConfig, get_config
from logger import get_logger

logger = get_logger(__name__)


class ServiceConfigurationError(Exception):
    """A backend client cannot be created from the current configuration."""
    pass


class Connections:
    """Manages connections to external services."""

    def __init__(self, config: Optional[AppConfig] = None):
        self._config = config
        self._openai_client: Optional[AsyncOpenAI] = None
        self._qdrant_client: Optional[AsyncQdrantClient] = None
        self._cohere_client: Optional[cohere.AsyncClient] = None
        self._http_client: Optional[httpx.AsyncClient] = None
        self._gemini_configured: bool = False

    @property
    def config(self) -> AppConfig:
        return self._config or get_config()

    def get_openai_client(self) -> AsyncOpenAI:
        """Get or create the OpenAI client."""
        if self._openai_client is not None:
            return self._openai_client

        api_key = self.config.openai_api_key.strip()
        if not api_key:
            raise ServiceConfigurationError("OPENAI_API_KEY not set")

        self._openai_client = AsyncOpenAI(api_key=api_key)
        logger.info("[OPENAI] Client created")
        return self._openai_client

    def configure_gemini(self) -> bool:
        """Configure the Gemini SDK once per process."""
        if self._gemini_configured:
            return True

        api_key = self.config.gemini_api_key.strip()
        if not api_key:
            raise ServiceConfigurationError("GEMINI_API_KEY not set")

        genai.configure(api_key=api_key)
        self._gemini_configured = True
        logger.info("[GEMINI] Configured successfully")
        return True

    def get_qdrant_client(self) -> AsyncQdrantClient:
        """Get or create the Qdrant client."""
        if self._qdrant_client is not None:
            return self._qdrant_client

        url = self.config.qdrant_url.strip()
        api_key = self.config.qdrant_api_key.strip()
        if not url:
            raise ServiceConfigurationError("QDRANT_URL not set")

        logger.info(f"[QDRANT] Creating client with url={url[:50]}...")
        self._qdrant_client = AsyncQdrantClient(
            url=url,
            api_key=api_key if api_key else None,
            timeout=30
        )
        return self._qdrant_client

    def get_cohere_client(self) -> cohere.AsyncClient:
        """Get or create the Cohere client used for query embeddings."""
        if self._cohere_client is not None:
            return self._cohere_client

        api_key = self.config.cohere_api_key.strip()
        if not api_key:
            raise ServiceConfigurationError("COHERE_API_KEY not set")

        self._cohere_client = cohere.AsyncClient(api_key=api_key)
        logger.info("[COHERE] Client created")
        return self._cohere_client

    def get_http_client(self) -> httpx.AsyncClient:
        """Shared HTTP client for the Elasticsearch REST API."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(15.0, connect=5.0))
        return self._http_client

    async def check_search_backend(self) -> dict:
        """Ping the configured search backend. Never raises."""
        backend = self.config.search_backend
        start = time.time()
        try:
            if backend == "qdrant":
                result = await self.get_qdrant_client().get_collections()
                details = {"collections": [c.name for c in result.collections]}
            else:
                url = self.config.elasticsearch_url.strip()
                if not url:
                    raise ServiceConfigurationError("ELASTICSEARCH_URL not set")
                headers = {}
                if self.config.elasticsearch_api_key:
                    headers["Authorization"] = f"ApiKey {self.config.elasticsearch_api_key}"
                response = await self.get_http_client().get(url.rstrip("/"), headers=headers)
                response.raise_for_status()
                details = {"status_code": response.status_code}

            return {
                "healthy": True,
                "backend": backend,
                "duration_ms": round((time.time() - start) * 1000, 2),
                "details": details
            }
        except Exception as e:
            logger.error(f"[SEARCH] Health check failed: {type(e).__name__}: {e}")
            return {
                "healthy": False,
                "backend": backend,
                "details": {"exception_type": type(e).__name__, "message": str(e)}
            }

    def check_completion_backend(self) -> dict:
        """Verify the completion provider can be configured. Never raises."""
        provider = self.config.completion_provider
        try:
            if provider == "gemini":
                self.configure_gemini()
            else:
                self.get_openai_client()
            return {"healthy": True, "provider": provider, "details": "Configured"}
        except Exception as e:
            return {
                "healthy": False,
                "provider": provider,
                "details": {"exception_type": type(e).__name__, "message": str(e)}
            }

    async def health_check(self) -> dict:
        """Health check - returns raw results."""
        return {
            "search": await self.check_search_backend(),
            "completion": self.check_completion_backend(),
        }

    async def aclose(self) -> None:
        """Close network clients held by this instance."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
        if self._qdrant_client is not None:
            await self._qdrant_client.close()
            self._qdrant_client = None
        self._openai_client = None
        self._cohere_client = None


# Global instance
connections = Connections()


async def health_check() -> dict:
    """Health check."""
    return await connections.health_check()
