"""
Services layer for the ContactPro backend.
Contains business logic for accounts, contacts, the points ledger and LinkedIn ingestion.
"""

from app.services.contact_service import ContactService, contact_service
from app.services.dashboard_service import DashboardService, dashboard_service
from app.services.user_service import UserService, user_service

__all__ = [
    "ContactService",
    "contact_service",
    "DashboardService",
    "dashboard_service",
    "UserService",
    "user_service",
]
