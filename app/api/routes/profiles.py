"""
Contact (profile) API routes.

Contact details (email, phone) are only returned to the uploader and to
users who unlocked the contact.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import get_current_user_id, server_error
from app.models.contact import Contact
from app.services.contact_service import (
    ContactData,
    ContactUpdate,
    DuplicateContactError,
    contact_service,
)
from app.services.dashboard_service import dashboard_service

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/profiles", tags=["profiles"])

LOCKED_FIELDS = ("email", "phone")


def _present(contact: Contact, user_id: str, unlocked_ids: set[str]) -> dict:
    data = contact.to_dict()
    locked = contact.uploaded_by != user_id and contact.id not in unlocked_ids
    if locked:
        for field in LOCKED_FIELDS:
            data[field] = None
    data["locked"] = locked
    return data


async def _unlocked_ids(user_id: str) -> set[str]:
    dashboard = await dashboard_service.find_dashboard(user_id)
    return set(dashboard.unlocked_contact_ids or []) if dashboard else set()


@router.get("")
async def list_profiles(
    user_id: str = Depends(get_current_user_id),
    uploaded_by: Optional[str] = Query(None, alias="uploadedBy"),
    search: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> list[dict]:
    """List contacts, newest first."""
    try:
        contacts = await contact_service.list_contacts(
            uploaded_by=uploaded_by,
            search=search,
            limit=limit,
            offset=offset,
        )
        unlocked = await _unlocked_ids(user_id)
        return [_present(c, user_id, unlocked) for c in contacts]
    except Exception as e:
        logger.error("Failed to list profiles", error=str(e))
        raise server_error(e)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_profile(
    request: ContactData,
    user_id: str = Depends(get_current_user_id),
) -> dict:
    """
    Create a contact owned by the authenticated user.

    Rejected with 409 when a contact with the same LinkedIn profile exists.
    """
    if not request.name.strip():
        raise HTTPException(status_code=400, detail="Name is required")

    try:
        contact = await contact_service.create_contact(request, uploaded_by=user_id)
        return contact.to_dict()
    except DuplicateContactError as e:
        raise HTTPException(status_code=409, detail=e.report.message)
    except Exception as e:
        logger.error("Failed to create profile", error=str(e), user_id=user_id)
        raise server_error(e)


@router.get("/{contact_id}")
async def get_profile(
    contact_id: str,
    user_id: str = Depends(get_current_user_id),
) -> dict:
    """Get one contact."""
    try:
        contact = await contact_service.get_contact(contact_id)
        if not contact:
            raise HTTPException(status_code=404, detail="Profile not found")
        return _present(contact, user_id, await _unlocked_ids(user_id))
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to get profile", error=str(e), contact_id=contact_id)
        raise server_error(e)


@router.put("/{contact_id}")
async def update_profile(
    contact_id: str,
    request: ContactUpdate,
    user_id: str = Depends(get_current_user_id),
) -> dict:
    """Update a contact; only its uploader may do so."""
    try:
        contact = await contact_service.get_contact(contact_id)
        if not contact:
            raise HTTPException(status_code=404, detail="Profile not found")
        if contact.uploaded_by != user_id:
            raise HTTPException(status_code=403, detail="Access denied")

        updated = await contact_service.update_contact(contact_id, request)
        if not updated:
            raise HTTPException(status_code=404, detail="Profile not found")
        return updated.to_dict()

    except DuplicateContactError as e:
        raise HTTPException(status_code=409, detail=e.report.message)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to update profile", error=str(e), contact_id=contact_id)
        raise server_error(e)


@router.delete("/{contact_id}")
async def delete_profile(
    contact_id: str,
    user_id: str = Depends(get_current_user_id),
) -> dict:
    """Delete a contact; only its uploader may do so."""
    try:
        contact = await contact_service.get_contact(contact_id)
        if not contact:
            raise HTTPException(status_code=404, detail="Profile not found")
        if contact.uploaded_by != user_id:
            raise HTTPException(status_code=403, detail="Access denied")

        await contact_service.delete_contact(contact_id)
        return {"success": True, "message": "Profile deleted"}

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to delete profile", error=str(e), contact_id=contact_id)
        raise server_error(e)
