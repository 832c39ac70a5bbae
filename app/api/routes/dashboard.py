"""
Dashboard API routes.

Points balance, counters, unlocked contacts and the activity log of the
authenticated user.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.api.deps import get_current_user_id, server_error
from app.services.contact_service import contact_service
from app.services.dashboard_service import (
    DashboardUpdate,
    InsufficientPointsError,
    dashboard_service,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


class ActivityRequest(BaseModel):
    """Request to append an activity line."""
    activity: Optional[str] = None


@router.get("")
async def get_dashboard(user_id: str = Depends(get_current_user_id)) -> dict:
    """
    Get the dashboard, creating it on first access. Stored counters are
    checked against the contacts table and corrected when they drifted.
    """
    try:
        dashboard = await dashboard_service.get_dashboard(user_id)
        return dashboard.to_dict()
    except Exception as e:
        logger.error("Dashboard fetch error", error=str(e), user_id=user_id)
        raise server_error(e)


@router.post("")
async def update_dashboard(
    request: DashboardUpdate,
    user_id: str = Depends(get_current_user_id),
) -> dict:
    """Overwrite the provided dashboard fields."""
    try:
        dashboard = await dashboard_service.update(user_id, request)
        return dashboard.to_dict()
    except Exception as e:
        logger.error("Dashboard update error", error=str(e), user_id=user_id)
        raise server_error(e)


@router.get("/unlocked")
async def get_unlocked_contacts(user_id: str = Depends(get_current_user_id)) -> dict:
    """Unlocked contact ids with short summaries."""
    try:
        unlocked = await dashboard_service.get_unlocked(user_id)
        if unlocked is None:
            raise HTTPException(status_code=404, detail="Dashboard not found")
        return unlocked
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Unlocked contacts fetch error", error=str(e), user_id=user_id)
        raise server_error(e)


@router.get("/activity")
async def get_activity(user_id: str = Depends(get_current_user_id)) -> dict:
    """Recent activity (newest first) and recent uploads."""
    try:
        activity = await dashboard_service.get_activity(user_id)
        if activity is None:
            raise HTTPException(status_code=404, detail="Dashboard not found")
        return activity
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Activity fetch error", error=str(e), user_id=user_id)
        raise server_error(e)


@router.patch("/activity")
async def add_activity(
    request: ActivityRequest,
    user_id: str = Depends(get_current_user_id),
) -> dict:
    """Append one line to the activity log."""
    if not request.activity:
        raise HTTPException(status_code=400, detail="Activity message required")

    try:
        dashboard = await dashboard_service.append_activity(user_id, request.activity)
        return {
            "success": True,
            "activity": request.activity,
            "totalActivities": len(dashboard.recent_activity or []),
        }
    except Exception as e:
        logger.error("Add activity error", error=str(e), user_id=user_id)
        raise server_error(e)


@router.post("/unlock/{contact_id}")
async def unlock_contact(
    contact_id: str,
    user_id: str = Depends(get_current_user_id),
) -> dict:
    """Spend points to unlock a contact's details."""
    try:
        contact = await contact_service.get_contact(contact_id)
        if not contact:
            raise HTTPException(status_code=404, detail="Contact not found")

        dashboard, newly_unlocked = await dashboard_service.unlock_contact(user_id, contact)

        return {
            "success": True,
            "alreadyUnlocked": not newly_unlocked,
            "contact": contact.to_dict(),
            "dashboard": dashboard.to_dict(),
        }

    except InsufficientPointsError as e:
        raise HTTPException(status_code=402, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Unlock contact error", error=str(e), user_id=user_id, contact_id=contact_id)
        raise server_error(e)
