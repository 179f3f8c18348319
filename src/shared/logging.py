"""Structured logging setup for the MCP gateway.

Uses structlog for the gateway's own events and the standard library for
uvicorn and httpx. The API key may travel as a query parameter, so secrets
are masked on both paths before anything is rendered.
"""

import logging
import re
import sys
from typing import Any

import structlog
from structlog.types import Processor

REDACTED = "[REDACTED]"

SECRET_KEYS = frozenset({
    "api_key",
    "apikey",
    "x-api-key",
    "authorization",
    "firecrawl_api_key",
    "password",
    "secret",
    "token",
})

# Loggers whose records may carry a full request target
ACCESS_LOGGERS = ("uvicorn.access", "httpx")

_QUERY_SECRET_RE = re.compile(r"(\bapi_key=)[^&\s\"']+", re.IGNORECASE)


def mask_query_secrets(text: str) -> str:
    """Mask ``api_key=...`` values inside a URL or log line."""
    return _QUERY_SECRET_RE.sub(rf"\g<1>{REDACTED}", text)


def redact_secrets(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Mask secret-bearing keys and query-string keys in the event dict."""
    for key, value in list(event_dict.items()):
        if key.lower() in SECRET_KEYS and value:
            event_dict[key] = REDACTED
        elif isinstance(value, str) and "api_key=" in value.lower():
            event_dict[key] = mask_query_secrets(value)
    return event_dict


class QuerySecretFilter(logging.Filter):
    """Mask ``api_key`` query values in standard library log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = mask_query_secrets(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(
                mask_query_secrets(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True


def _install_query_filter() -> None:
    for name in ACCESS_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        if not any(isinstance(f, QuerySecretFilter) for f in stdlib_logger.filters):
            stdlib_logger.addFilter(QuerySecretFilter())


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """
    Configure structured logging for the application.

    Safe to call more than once; each call replaces the structlog
    configuration.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON; otherwise, use console output
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
    ]

    if json_output:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )
    _install_query_filter()


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically module name)
        **initial_context: Initial context values to bind to logger

    Returns:
        A bound structlog logger instance
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
