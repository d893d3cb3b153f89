"""
Structured logging for the Shop Assistant service.

Every record can carry keyword data (session ids, durations, backend
names). Console output is a single readable line; setting LOG_FILE adds
a JSON-lines file suitable for log shipping. A request id bound by the
HTTP middleware is attached to every record emitted while that request
is being served.
"""

import os
import sys
import json
import logging
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, Optional

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def bind_request_id(request_id: Optional[str]):
    """Tag records emitted in the current context; returns a token for reset."""
    return _request_id.set(request_id)


def reset_request_id(token) -> None:
    _request_id.reset(token)


def _record_data(record: logging.LogRecord) -> Dict[str, Any]:
    data = dict(getattr(record, "extra_data", None) or {})
    request_id = getattr(record, "request_id", None)
    if request_id and "request_id" not in data:
        data["request_id"] = request_id
    return data


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        data = _record_data(record)
        if data:
            entry["data"] = data
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored single-line output for local development."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, "")
        clock = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S")
        line = f"{color}{clock} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"

        data = _record_data(record)
        traceback_text = data.pop("traceback", None)
        if data:
            line += " | " + " ".join(f"{key}={value}" for key, value in data.items())
        if traceback_text:
            line += "\n" + traceback_text.rstrip()
        return line


class AppLogger:
    """Thin wrapper over logging.Logger that takes structured keyword data."""

    _instances: Dict[str, 'AppLogger'] = {}

    def __init__(self, name: str, level: str = None):
        """
        Args:
            name: Logger name (usually module name)
            level: Log level name; defaults to LOG_LEVEL or INFO
        """
        self.name = name
        self.level = level or os.getenv("LOG_LEVEL", "INFO")
        self.logger = logging.getLogger(name)
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        if self.logger.handlers:
            return

        self.logger.setLevel(getattr(logging, self.level.upper(), logging.INFO))

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ConsoleFormatter())
        self.logger.addHandler(console_handler)

        log_file = os.getenv("LOG_FILE")
        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(file_handler)

        self.logger.propagate = False

    def _log(self, level: int, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        if not self.logger.isEnabledFor(level):
            return
        self.logger.log(
            level,
            message,
            extra={"extra_data": data or {}, "request_id": _request_id.get()},
            stacklevel=3
        )

    def debug(self, message: str, **kwargs) -> None:
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs) -> None:
        """Log an error; exc_info=True attaches the active traceback."""
        if exc_info:
            kwargs["traceback"] = traceback.format_exc()
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, exc_info: bool = False, **kwargs) -> None:
        if exc_info:
            kwargs["traceback"] = traceback.format_exc()
        self._log(logging.CRITICAL, message, kwargs)

    def request(self, method: str, path: str, status: int, duration_ms: float, **kwargs) -> None:
        """One line per served HTTP request."""
        level = logging.WARNING if status >= 500 else logging.INFO
        self._log(
            level,
            f"{method} {path} -> {status}",
            {"status": status, "duration_ms": round(duration_ms, 2), **kwargs}
        )

    def llm_call(self, provider: str, model: str, success: bool, **kwargs) -> None:
        """Outcome of one text completion call."""
        self._log(
            logging.INFO if success else logging.WARNING,
            f"Completion {provider}/{model} {'ok' if success else 'failed'}",
            {"provider": provider, "model": model, "success": success, **kwargs}
        )

    def search_query(self, backend: str, query: str, results_count: int, duration_ms: float, **kwargs) -> None:
        """Outcome of one document search call."""
        self._log(
            logging.INFO,
            f"Search [{backend}] returned {results_count} results",
            {
                "backend": backend,
                "query_preview": query[:50],
                "results": results_count,
                "duration_ms": round(duration_ms, 2),
                **kwargs
            }
        )

    def fallback(self, component: str, reason: str, **kwargs) -> None:
        """A degraded response path was taken."""
        self._log(
            logging.WARNING,
            f"[{component}] serving fallback: {reason}",
            {"component": component, "reason": reason, **kwargs}
        )


def get_logger(name: str) -> AppLogger:
    """Get or create the AppLogger for name."""
    if name not in AppLogger._instances:
        AppLogger._instances[name] = AppLogger(name)
    return AppLogger._instances[name]


def log_function_call(logger: AppLogger = None):
    """Decorator: debug-log entry and exit, error-log and re-raise exceptions."""
    def decorator(func):
        target = logger or get_logger(func.__module__)

        @wraps(func)
        def wrapper(*args, **kwargs):
            target.debug(f"-> {func.__name__}", args_count=len(args), kwargs_keys=list(kwargs))
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                target.error(f"{func.__name__} raised {type(e).__name__}: {e}", exc_info=True)
                raise
            target.debug(f"<- {func.__name__}")
            return result

        return wrapper
    return decorator


def log_async_function_call(logger: AppLogger = None):
    """Async variant of log_function_call."""
    def decorator(func):
        target = logger or get_logger(func.__module__)

        @wraps(func)
        async def wrapper(*args, **kwargs):
            target.debug(f"-> {func.__name__}", args_count=len(args), kwargs_keys=list(kwargs))
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                target.error(f"{func.__name__} raised {type(e).__name__}: {e}", exc_info=True)
                raise
            target.debug(f"<- {func.__name__}")
            return result

        return wrapper
    return decorator
