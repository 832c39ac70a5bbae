"""
structlog configuration.

Every module logs through ``structlog.get_logger(__name__)`` with an event
string plus key-value context; this module decides how those events render.
"""

import logging
import sys

import structlog
from structlog.types import EventDict, WrappedLogger

from app.core.config import settings

SENSITIVE_KEYS = {"password", "token", "secret", "api_key", "authorization"}


def mask_sensitive(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace values of credential-like keys with a mask."""
    for key in list(event_dict.keys()):
        key_lower = key.lower()
        for sensitive in SENSITIVE_KEYS:
            if key_lower == sensitive or key_lower.endswith(f"_{sensitive}"):
                event_dict[key] = "***MASKED***"
                break
    return event_dict


def configure_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure stdlib logging and structlog.

    Args:
        log_level: Override for settings.log_level
        log_format: "json" or "console"; defaults to settings.log_format
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    fmt = log_format or settings.log_format

    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            mask_sensitive,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
