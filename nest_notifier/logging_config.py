"""Structlog configuration helpers for structured logging."""

from __future__ import annotations

import logging
from typing import Any, MutableMapping

import structlog

DEFAULT_LOG_LEVEL = "INFO"
REDACTED = "[redacted]"
_SENSITIVE_KEY_PARTS = ("secret", "token", "signature", "authorization", "api_key")


def redact_secrets(_logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """Mask any event value whose key looks like a credential."""

    for key in list(event_dict):
        if any(part in key.lower() for part in _SENSITIVE_KEY_PARTS):
            event_dict[key] = REDACTED
    return event_dict


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Route structlog through stdlib logging as one JSON object per line."""

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_secrets,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO))
