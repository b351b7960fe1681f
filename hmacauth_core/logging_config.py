"""
Logging Setup
=============
Structured logging for services using HMAC authentication.

Usage:
    from hmacauth_core.logging_config import setup_logging

    setup_logging(service_name="items-api")
"""

import logging
import re
import sys
from typing import Any, Dict

import structlog

REDACTED = "[REDACTED]"

# Compared after lowercasing and stripping "-", "_" and spaces
REDACT_KEYS = frozenset({
    "secret",
    "secretkey",
    "password",
    "token",
    "authorization",
    "signature",
    "apikey",
})


def _normalize(key: str) -> str:
    return re.sub(r"[-_\s]", "", key.lower())


def redact_sensitive(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor that masks secret-bearing fields."""
    for key in list(event_dict):
        if _normalize(key) in REDACT_KEYS:
            event_dict[key] = REDACTED
    return event_dict


def setup_logging(
    service_name: str,
    level: str = "INFO",
    json_output: bool = True,
) -> structlog.stdlib.BoundLogger:
    """
    Configure stdlib logging and structlog for a service.

    Args:
        service_name: Name of the service (e.g., "items-api")
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Whether to output JSON (for production)

    Returns:
        Logger bound to the service name
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_sensitive,
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service=service_name)

    logger = structlog.get_logger(service_name)
    logger.info("logging.configured", service=service_name, level=level.upper())
    return logger
