"""
FastAPI dependencies for authentication.
"""

from typing import Optional

import structlog
from fastapi import Header, HTTPException, status

from app.core.config import settings
from app.core.observability import set_user_context
from app.core.security import TokenExpiredError, TokenError, decode_token

logger = structlog.get_logger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> str:
    """
    Extract and validate user ID from the bearer token.

    Expired and invalid tokens produce different details ("Token expired"
    vs "Invalid token") so clients can decide whether to refresh.
    """
    if not authorization:
        raise _unauthorized("No authorization header provided")

    parts = authorization.split()
    token = parts[1] if len(parts) > 1 else ""
    if not token:
        raise _unauthorized("No token provided")

    try:
        user_id = decode_token(token)
    except TokenExpiredError:
        raise _unauthorized("Token expired")
    except TokenError as e:
        logger.info("Rejected bearer token", reason=str(e))
        raise _unauthorized("Invalid token")

    set_user_context(user_id)
    return user_id


async def get_optional_user_id(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> Optional[str]:
    """
    Optionally extract user ID - for endpoints that work with or without auth.
    """
    if not authorization:
        return None

    try:
        return await get_current_user_id(authorization)
    except HTTPException:
        return None


def server_error(error: Exception) -> HTTPException:
    """500 response; the error text is only exposed outside production."""
    detail = "Internal server error" if settings.is_production else str(error)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
