"""
Logging setup for the booking service.

Application code logs through ``get_logger(name)``, which returns a thin
adapter over the standard library logger with bindable context. Output is
plain text or JSON (python-json-logger), and structlog processors are
configured when ``ENABLE_STRUCTURED_LOGGING`` is on. Request and user ids
come from context variables set by the HTTP layer.
"""

import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional

import structlog
from pythonjsonlogger import jsonlogger

from tourguide.config.settings import settings

request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

SERVICE_NAME = "tourguide"
REDACTED = "[REDACTED]"

# Substrings of keys whose values never reach a log line
SENSITIVE_KEYS = (
    "password", "token", "secret", "client_secret", "api_key",
    "authorization", "signature", "cookie",
)

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_configured = False


def redact(values: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """Mask sensitive entries in place, descending into nested dicts."""
    for key, value in list(values.items()):
        if any(marker in key.lower() for marker in SENSITIVE_KEYS):
            values[key] = REDACTED
        elif isinstance(value, dict):
            redact(value)
    return values


def add_request_context(logger, method_name, event_dict):
    """structlog processor: request id, user id and service tags."""
    if request_id.get():
        event_dict["request_id"] = request_id.get()
    if user_id.get():
        event_dict["user_id"] = user_id.get()
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    event_dict["service"] = SERVICE_NAME
    event_dict["environment"] = settings.ENVIRONMENT
    return event_dict


def redact_sensitive(logger, method_name, event_dict):
    return redact(event_dict)


class RequestJsonFormatter(jsonlogger.JsonFormatter):
    """JSON lines carrying level, origin and the current request id."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["function"] = record.funcName
        log_record["line"] = record.lineno
        log_record.setdefault("request_id", request_id.get())
        if user_id.get():
            log_record.setdefault("user_id", user_id.get())
        redact(log_record)


def _configure_structlog() -> None:
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.LOG_FORMAT == "json"
        else structlog.processors.KeyValueRenderer()
    )
    structlog.configure(
        processors=[
            add_request_context,
            redact_sensitive,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def _configure_stdlib() -> None:
    level = getattr(logging, settings.LOG_LEVEL)
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if settings.LOG_FORMAT == "json":
        handler.setFormatter(RequestJsonFormatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    noisy = {
        "uvicorn.access": logging.WARNING,
        "sqlalchemy.engine": logging.INFO if settings.DB_ECHO else logging.WARNING,
        "redis": logging.WARNING,
        "stripe": logging.WARNING,
        "httpx": logging.WARNING,
    }
    for name, library_level in noisy.items():
        logging.getLogger(name).setLevel(library_level)


class LoggerAdapter:
    """Standard logger plus context merged into every record's ``extra``."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self._context: Dict[str, Any] = {}

    def bind(self, **context) -> "LoggerAdapter":
        self._context.update(context)
        return self

    def _log(self, level: int, message: str, *args, **kwargs) -> None:
        extra = dict(kwargs.pop("extra", None) or {})
        extra.update(self._context)
        self.logger.log(level, message, *args, extra=extra, **kwargs)

    def debug(self, message: str, *args, **kwargs) -> None:
        self._log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs) -> None:
        self._log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs) -> None:
        self._log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs) -> None:
        self._log(logging.ERROR, message, *args, **kwargs)

    def critical(self, message: str, *args, **kwargs) -> None:
        self._log(logging.CRITICAL, message, *args, **kwargs)


def get_logger(name: str = SERVICE_NAME) -> LoggerAdapter:
    return LoggerAdapter(logging.getLogger(name))


def setup_logging() -> None:
    """Configure handlers once per process; later calls are no-ops."""
    global _configured
    if _configured:
        return

    if settings.ENABLE_STRUCTURED_LOGGING:
        _configure_structlog()
    _configure_stdlib()
    _configured = True

    get_logger(__name__).info(
        "Logging configured",
        extra={
            "log_level": settings.LOG_LEVEL,
            "log_format": settings.LOG_FORMAT,
            "structured_logging": settings.ENABLE_STRUCTURED_LOGGING,
        },
    )


__all__ = [
    "get_logger",
    "setup_logging",
    "LoggerAdapter",
    "RequestJsonFormatter",
    "redact",
    "request_id",
    "user_id",
]
