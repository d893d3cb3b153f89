"""
Configuration for the Shop Assistant service.

All settings come from environment variables (a local .env file is
loaded in development). Validation is separate from loading: a bad
environment still loads, and the service then runs in degraded mode
with every external call taking its fallback path.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional
from dotenv import load_dotenv

from logger import get_logger

load_dotenv()

logger = get_logger(__name__)

COMPLETION_PROVIDERS = ("openai", "gemini")
SEARCH_BACKENDS = ("elasticsearch", "qdrant")


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default)


def _env_choice(name: str, default: str) -> str:
    return _env(name, default).strip().lower()


def _env_int(name: str, default: int) -> int:
    try:
        return int(_env(name)) if _env(name) else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(_env(name)) if _env(name) else default
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    return raw.lower() in ("true", "1", "yes") if raw else default


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in _env(name, default).split(",") if item.strip()]


@dataclass
class AppConfig:
    """Resolved settings. Empty strings mean 'not configured'."""

    # Completion service
    completion_provider: str = "openai"
    openai_api_key: str = ""
    openai_model_name: str = "gpt-3.5-turbo"
    gemini_api_key: str = ""
    gemini_model_name: str = "gemini-2.5-flash"
    completion_temperature: float = 0.7
    completion_timeout_seconds: float = 20.0

    # Document search service
    search_backend: str = "elasticsearch"
    elasticsearch_url: str = ""
    elasticsearch_index: str = "products"
    elasticsearch_api_key: str = ""
    qdrant_url: str = ""
    qdrant_api_key: str = ""
    qdrant_collection_name: str = "products"
    cohere_api_key: str = ""
    embedding_model: str = "embed-english-v3.0"
    search_result_size: int = 10

    # Sessions
    session_retention_hours: int = 24

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @property
    def session_retention_ms(self) -> int:
        return self.session_retention_hours * 3600 * 1000

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Read every setting; unparseable numbers fall back to defaults."""
        return cls(
            completion_provider=_env_choice("COMPLETION_PROVIDER", "openai"),
            openai_api_key=_env("OPENAI_API_KEY"),
            openai_model_name=_env("OPENAI_MODEL_NAME", "gpt-3.5-turbo"),
            gemini_api_key=_env("GEMINI_API_KEY"),
            gemini_model_name=_env("GEMINI_MODEL_NAME", "gemini-2.5-flash"),
            completion_temperature=_env_float("COMPLETION_TEMPERATURE", 0.7),
            completion_timeout_seconds=_env_float("COMPLETION_TIMEOUT_SECONDS", 20.0),
            search_backend=_env_choice("SEARCH_BACKEND", "elasticsearch"),
            elasticsearch_url=_env("ELASTICSEARCH_URL"),
            elasticsearch_index=_env("ELASTICSEARCH_INDEX", "products"),
            elasticsearch_api_key=_env("ELASTICSEARCH_API_KEY"),
            qdrant_url=_env("QDRANT_URL"),
            qdrant_api_key=_env("QDRANT_API_KEY"),
            qdrant_collection_name=_env("QDRANT_COLLECTION_NAME", "products"),
            cohere_api_key=_env("COHERE_API_KEY"),
            embedding_model=_env("EMBEDDING_MODEL", "embed-english-v3.0"),
            search_result_size=_env_int("SEARCH_RESULT_SIZE", 10),
            session_retention_hours=_env_int("SESSION_RETENTION_HOURS", 24),
            host=_env("HOST", "0.0.0.0"),
            port=_env_int("PORT", 8000),
            debug=_env_bool("DEBUG", False),
            log_level=_env("LOG_LEVEL", "INFO"),
            cors_origins=_env_list("CORS_ORIGINS", "*"),
        )


@dataclass
class ConfigValidationError:
    """One problem found in the environment."""
    key: str
    message: str
    is_critical: bool = True


class ConfigValidator:
    """Checks the environment and loads AppConfig."""

    PROVIDER_KEYS = {
        "openai": ("OPENAI_API_KEY", "Required for the OpenAI completion provider"),
        "gemini": ("GEMINI_API_KEY", "Required for the Gemini completion provider"),
    }

    ELASTICSEARCH_VARS = [
        ("ELASTICSEARCH_URL", "Product search returns no results without it"),
        ("ELASTICSEARCH_API_KEY", "Required for Elastic Cloud authentication"),
    ]

    QDRANT_VARS = [
        ("QDRANT_URL", "Required for the qdrant search backend"),
        ("COHERE_API_KEY", "Required for query embeddings with the qdrant search backend"),
    ]

    URL_VARS = ("ELASTICSEARCH_URL", "QDRANT_URL")

    # name, minimum, maximum, parser; a value outside the bounds is only a warning
    NUMERIC_BOUNDS = [
        ("PORT", 1, 65535, int),
        ("SEARCH_RESULT_SIZE", 1, 100, int),
        ("SESSION_RETENTION_HOURS", 1, 720, int),
        ("COMPLETION_TIMEOUT_SECONDS", 1, 300, float),
        ("COMPLETION_TEMPERATURE", 0, 2, float),
    ]

    def __init__(self):
        self.errors: List[ConfigValidationError] = []
        self.warnings: List[str] = []
        self.config: Optional[AppConfig] = None

    def _fail(self, key: str, message: str, is_critical: bool = True) -> None:
        self.errors.append(ConfigValidationError(key=key, message=message, is_critical=is_critical))

    def _require(self, var_name: str, description: str) -> None:
        if not _env(var_name).strip():
            self._fail(var_name, f"Missing required environment variable: {var_name}. {description}")

    def validate(self) -> bool:
        """
        Check the environment.

        Returns:
            True when no critical problem was found
        """
        self.errors = []
        self.warnings = []

        provider = _env_choice("COMPLETION_PROVIDER", "openai")
        if provider in self.PROVIDER_KEYS:
            self._require(*self.PROVIDER_KEYS[provider])
        else:
            self._fail("COMPLETION_PROVIDER",
                       f"Invalid COMPLETION_PROVIDER: {provider}. Must be one of {', '.join(COMPLETION_PROVIDERS)}")

        backend = _env_choice("SEARCH_BACKEND", "elasticsearch")
        if backend == "qdrant":
            for var_name, description in self.QDRANT_VARS:
                self._require(var_name, description)
        elif backend == "elasticsearch":
            for var_name, description in self.ELASTICSEARCH_VARS:
                if not _env(var_name).strip():
                    self.warnings.append(f"{var_name} not set. {description}")
        else:
            self._fail("SEARCH_BACKEND",
                       f"Invalid SEARCH_BACKEND: {backend}. Must be one of {', '.join(SEARCH_BACKENDS)}")

        for var_name in self.URL_VARS:
            url = _env(var_name)
            if url and not url.startswith(("http://", "https://")):
                self._fail(var_name, f"Invalid {var_name}: {url}. Must start with http:// or https://")

        for var_name, lower, upper, parse in self.NUMERIC_BOUNDS:
            raw = _env(var_name)
            if not raw:
                continue
            try:
                value = parse(raw)
            except ValueError:
                self._fail(var_name, f"Invalid {var_name}: {raw}. Must be a number", is_critical=False)
                continue
            if not lower <= value <= upper:
                self.warnings.append(f"{var_name}={value} is outside the supported range [{lower}, {upper}]")

        return not any(error.is_critical for error in self.errors)

    def load_config(self) -> AppConfig:
        self.config = AppConfig.from_env()
        return self.config

    def report(self) -> None:
        """Log every problem found by the last validate() call."""
        for error in self.errors:
            if error.is_critical:
                logger.error(f"[CONFIG] {error.key}: {error.message}")
            else:
                logger.warning(f"[CONFIG] {error.key}: {error.message}")
        for warning in self.warnings:
            logger.warning(f"[CONFIG] {warning}")
        if not self.errors and not self.warnings:
            logger.info("[CONFIG] All configuration values are valid")


def validate_config_on_startup() -> AppConfig:
    """
    Validate and load configuration at application startup.

    Raises:
        ValueError: If a critical setting is missing or invalid. The caller
            decides whether to stop or continue degraded.
    """
    validator = ConfigValidator()
    is_valid = validator.validate()
    config = validator.load_config()
    validator.report()

    if not is_valid:
        problems = [f"{error.key}: {error.message}" for error in validator.errors if error.is_critical]
        raise ValueError(f"Invalid configuration: {'; '.join(problems)}")

    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Process-wide configuration.

    Never raises: an incomplete environment yields a config whose
    external calls degrade to fallbacks.
    """
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached configuration (used by tests and reloads)."""
    global _config
    _config = None
