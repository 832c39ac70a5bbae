"""Database models"""

from app.models.user import User
from app.models.contact import Contact, SeniorityLevel
from app.models.dashboard import Dashboard, PointsTransaction

__all__ = [
    "User",
    "Contact",
    "SeniorityLevel",
    "Dashboard",
    "PointsTransaction",
]
