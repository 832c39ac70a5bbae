"""API Route modules"""

from app.api.routes.auth import router as auth_router
from app.api.routes.dashboard import router as dashboard_router
from app.api.routes.profiles import router as profiles_router
from app.api.routes.scraper import router as scraper_router

__all__ = [
    "auth_router",
    "dashboard_router",
    "profiles_router",
    "scraper_router",
]
