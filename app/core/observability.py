"""
Error tracking integration (Sentry).
"""

from typing import Optional

import sentry_sdk
import structlog
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from app.core.config import settings

logger = structlog.get_logger(__name__)

_sentry_initialized = False


def init_sentry() -> None:
    """Initialize Sentry error tracking."""
    global _sentry_initialized

    if _sentry_initialized or not settings.sentry_dsn:
        return

    try:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.sentry_environment,
            traces_sample_rate=settings.sentry_traces_sample_rate,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                SqlalchemyIntegration(),
            ],
            # Don't send PII
            send_default_pii=False,
        )

        _sentry_initialized = True
        logger.info(
            "Sentry initialized",
            environment=settings.sentry_environment,
            sample_rate=settings.sentry_traces_sample_rate,
        )
    except Exception as e:
        logger.error("Failed to initialize Sentry", error=str(e))


def capture_exception(error: Exception, context: Optional[dict] = None) -> None:
    """
    Capture an exception to Sentry with additional context.

    Args:
        error: The exception to capture
        context: Additional context to attach
    """
    if not _sentry_initialized:
        return

    try:
        if context:
            sentry_sdk.set_context("additional", context)
        sentry_sdk.capture_exception(error)
    except Exception as e:
        logger.error("Failed to capture exception to Sentry", error=str(e))


def set_user_context(user_id: str) -> None:
    """Attach the authenticated user id to subsequent Sentry events."""
    if not _sentry_initialized:
        return

    sentry_sdk.set_user({"id": user_id})
