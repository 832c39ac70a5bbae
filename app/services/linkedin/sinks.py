"""
Persistence targets for normalized contacts.

The default sink posts each contact back to this service's own
``POST /profiles`` endpoint so scraped contacts go through the same
validation and duplicate handling as manually entered ones. The in-process
sink calls ContactService directly.
"""

from typing import Any, Optional, Protocol

import httpx
import structlog

from app.core.config import settings
from app.core.security import create_access_token
from app.services.contact_service import ContactData, DuplicateContactError, contact_service

logger = structlog.get_logger(__name__)


class ContactPersistError(Exception):
    """A normalized contact could not be saved."""


class ContactSink(Protocol):
    async def save(self, contact: ContactData, user_id: str) -> dict[str, Any]:
        """Persist a contact on behalf of ``user_id`` and return the stored record."""
        ...


class HttpContactSink:
    """Save contacts through the public profiles endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.internal_api_base_url).rstrip("/")
        self.timeout = timeout or settings.scraper_http_timeout_seconds
        self._transport = transport

    async def save(self, contact: ContactData, user_id: str) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {create_access_token(user_id)}"}
        body = contact.model_dump(by_alias=True)

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post("/profiles", json=body, headers=headers)
        except httpx.RequestError as e:
            raise ContactPersistError(f"Failed to save contact: {e}") from e

        if response.is_error:
            try:
                error_body = response.json()
            except ValueError:
                error_body = {}
            message = error_body.get("detail") or error_body.get("message")
            raise ContactPersistError(
                message if isinstance(message, str) and message
                else f"Failed to save contact: {response.status_code}"
            )

        return response.json()


class ServiceContactSink:
    """Save contacts in-process through ContactService."""

    async def save(self, contact: ContactData, user_id: str) -> dict[str, Any]:
        try:
            saved = await contact_service.create_contact(contact, uploaded_by=user_id)
        except DuplicateContactError as e:
            raise ContactPersistError(e.report.message) from e
        return saved.to_dict()


def default_sink() -> ContactSink:
    if settings.scraper_persist_via_http:
        return HttpContactSink()
    return ServiceContactSink()
