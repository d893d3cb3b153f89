"""
Text completion service adapters.

Turns a system instruction, a bounded conversation history and the
current user text into generated reply text. Adapters surface failures
as CompletionError subclasses only, so callers can engage one uniform
fallback path.
"""

import time
from typing import Dict, List, Optional, Protocol

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
import openai

from config import AppConfig, get_config
from connection import Connections, connections as default_connections
from logger import get_logger

logger = get_logger(__name__)

HistoryEntry = Dict[str, str]

DEFAULT_MAX_TOKENS = 800


class CompletionError(Exception):
    """Base class for completion service failures."""
    pass


class CompletionUnavailableError(CompletionError):
    """Network failure, timeout or missing credentials."""
    pass


class CompletionStatusError(CompletionError):
    """The service answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class EmptyCompletionError(CompletionError):
    """The service answered but the payload carried no text."""
    pass


class CompletionService(Protocol):
    """Contract for text completion backends."""

    async def complete(
        self,
        system_instruction: str,
        history: List[HistoryEntry],
        user_text: str,
        max_tokens: Optional[int] = None
    ) -> str: ...


class OpenAICompletionService:
    """Chat completions through the OpenAI API."""

    provider = "openai"

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        connections: Optional[Connections] = None,
        config: Optional[AppConfig] = None
    ):
        config = config or get_config()
        self.model = model or config.openai_model_name
        self.temperature = config.completion_temperature if temperature is None else temperature
        self._connections = connections or default_connections

    async def complete(
        self,
        system_instruction: str,
        history: List[HistoryEntry],
        user_text: str,
        max_tokens: Optional[int] = None
    ) -> str:
        messages = [{"role": "system", "content": system_instruction}]
        messages += [{"role": entry["role"], "content": entry["text"]} for entry in history]
        messages.append({"role": "user", "content": user_text})

        start_time = time.time()
        try:
            client = self._connections.get_openai_client()
            completion = await client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens or DEFAULT_MAX_TOKENS,
                temperature=self.temperature,
            )
        except openai.APIStatusError as e:
            self._log(False, start_time, error=f"status {e.status_code}")
            raise CompletionStatusError(f"OpenAI returned {e.status_code}: {e.message}", e.status_code) from e
        except openai.APIConnectionError as e:
            self._log(False, start_time, error=type(e).__name__)
            raise CompletionUnavailableError(f"OpenAI unreachable: {e}") from e
        except Exception as e:
            self._log(False, start_time, error=type(e).__name__)
            raise CompletionUnavailableError(f"OpenAI request failed: {type(e).__name__}: {e}") from e

        choices = getattr(completion, "choices", None) or []
        text = choices[0].message.content if choices and choices[0].message else None
        if not text or not text.strip():
            self._log(False, start_time, error="empty payload")
            raise EmptyCompletionError("OpenAI returned no completion text")

        self._log(True, start_time, response_length=len(text))
        return text.strip()

    def _log(self, success: bool, start_time: float, **kwargs) -> None:
        logger.llm_call(
            provider=self.provider,
            model=self.model,
            success=success,
            duration_ms=round((time.time() - start_time) * 1000, 2),
            **kwargs
        )


class GeminiCompletionService:
    """Text generation through the Gemini API."""

    provider = "gemini"

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        connections: Optional[Connections] = None,
        config: Optional[AppConfig] = None
    ):
        config = config or get_config()
        self.model = model or config.gemini_model_name
        self.temperature = config.completion_temperature if temperature is None else temperature
        self._connections = connections or default_connections

    @staticmethod
    def _to_contents(history: List[HistoryEntry], user_text: str) -> List[dict]:
        """Gemini names the assistant role 'model'."""
        contents = [
            {"role": "user" if entry["role"] == "user" else "model", "parts": [entry["text"]]}
            for entry in history
        ]
        contents.append({"role": "user", "parts": [user_text]})
        return contents

    async def complete(
        self,
        system_instruction: str,
        history: List[HistoryEntry],
        user_text: str,
        max_tokens: Optional[int] = None
    ) -> str:
        start_time = time.time()
        try:
            self._connections.configure_gemini()
            model = genai.GenerativeModel(model_name=self.model, system_instruction=system_instruction)
            response = await model.generate_content_async(
                self._to_contents(history, user_text),
                generation_config=genai.GenerationConfig(
                    max_output_tokens=max_tokens or DEFAULT_MAX_TOKENS,
                    temperature=self.temperature,
                ),
            )
        except (google_exceptions.DeadlineExceeded, google_exceptions.ServiceUnavailable) as e:
            self._log(False, start_time, error=type(e).__name__)
            raise CompletionUnavailableError(f"Gemini unreachable: {e}") from e
        except google_exceptions.GoogleAPICallError as e:
            code = e.code if isinstance(e.code, int) else None
            self._log(False, start_time, error=f"status {e.code}")
            raise CompletionStatusError(f"Gemini returned an error: {e.message}", code) from e
        except Exception as e:
            self._log(False, start_time, error=type(e).__name__)
            raise CompletionUnavailableError(f"Gemini request failed: {type(e).__name__}: {e}") from e

        try:
            text = response.text if response else None
        except ValueError as e:
            # Raised when the candidate was blocked or carries no parts.
            self._log(False, start_time, error="no text parts")
            raise EmptyCompletionError(f"Gemini returned no text: {e}") from e

        if not text or not text.strip():
            self._log(False, start_time, error="empty payload")
            raise EmptyCompletionError("Gemini returned no completion text")

        self._log(True, start_time, response_length=len(text))
        return text.strip()

    def _log(self, success: bool, start_time: float, **kwargs) -> None:
        logger.llm_call(
            provider=self.provider,
            model=self.model,
            success=success,
            duration_ms=round((time.time() - start_time) * 1000, 2),
            **kwargs
        )


def build_completion_service(config: Optional[AppConfig] = None) -> CompletionService:
    """Create the adapter selected by COMPLETION_PROVIDER."""
    config = config or get_config()
    if config.completion_provider == "gemini":
        return GeminiCompletionService(config=config)
    return OpenAICompletionService(config=config)


_completion_service: Optional[CompletionService] = None


def get_completion_service() -> CompletionService:
    """Get or create the process-wide completion service."""
    global _completion_service
    if _completion_service is None:
        _completion_service = build_completion_service()
        logger.info("Completion service initialized", provider=get_config().completion_provider)
    return _completion_service


def reset_completion_service() -> None:
    global _completion_service
    _completion_service = None
