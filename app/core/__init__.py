"""Core infrastructure modules"""

from app.core.config import settings
from app.core.database import AsyncSessionLocal, get_db_context

__all__ = ["settings", "AsyncSessionLocal", "get_db_context"]
