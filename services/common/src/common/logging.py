"""Centralised logging configuration with JSON output."""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, MutableMapping

import structlog

DEFAULT_LOG_LEVEL = "INFO"

# Event keys whose values are credentials and must never reach a log sink.
SENSITIVE_KEYS = frozenset({"key", "api_key", "x-api-key", "token", "password"})
REDACTED = "***"

_configured_level: str | None = None


def redact_secrets(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask credential-like values before rendering."""

    for name in list(event_dict):
        if name.lower() in SENSITIVE_KEYS and event_dict[name]:
            event_dict[name] = REDACTED
    return event_dict


def _configure_structlog(level: str) -> None:
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(level: str = DEFAULT_LOG_LEVEL, *, force: bool = False) -> None:
    """Initialise stdlib + structlog JSON logging (once per level unless forced)."""

    global _configured_level
    if _configured_level == level and not force:
        return

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    _configure_structlog(level)
    _configured_level = level


def get_logger(name: str, **initial_values: Dict[str, Any]) -> structlog.stdlib.BoundLogger:
    """Return a bound structured logger."""

    if _configured_level is None:
        configure_logging()
    logger = structlog.get_logger(name)
    if initial_values:
        return logger.bind(**initial_values)
    return logger


__all__ = ["configure_logging", "get_logger", "redact_secrets"]
