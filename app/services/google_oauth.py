"""
Google OAuth 2.0 sign-in.

Builds the consent redirect, exchanges the callback code for tokens and
verifies the returned Google ID token.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx
import structlog
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from app.core.config import settings

logger = structlog.get_logger(__name__)


class GoogleAuthError(Exception):
    """Google sign-in could not be completed."""


@dataclass
class GoogleIdentity:
    """Verified claims from a Google ID token."""
    google_id: str
    email: str
    name: str
    picture: Optional[str] = None


class GoogleOAuthClient:
    """
    Minimal authorization-code flow against Google.

    Args:
        transport: Optional httpx transport (tests)
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(settings.google_client_id and settings.google_client_secret)

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": settings.google_client_id,
            "redirect_uri": settings.google_redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "prompt": "select_account",
            "state": state,
        }
        return f"{settings.google_auth_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> str:
        """Trade an authorization code for a Google ID token."""
        data = {
            "code": code,
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "redirect_uri": settings.google_redirect_uri,
            "grant_type": "authorization_code",
        }
        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                response = await client.post(settings.google_token_url, data=data)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Google token exchange failed",
                status_code=e.response.status_code,
                body=e.response.text[:500],
            )
            raise GoogleAuthError("Google token exchange failed") from e
        except httpx.RequestError as e:
            logger.error("Failed to reach Google token endpoint", error=str(e))
            raise GoogleAuthError("Could not reach Google") from e

        token = response.json().get("id_token")
        if not token:
            raise GoogleAuthError("Google did not return an ID token")
        return token

    async def verify_id_token(self, token: str) -> GoogleIdentity:
        """Verify signature and audience of a Google ID token."""
        try:
            # google-auth verification is blocking (fetches Google's certs)
            idinfo = await asyncio.to_thread(
                id_token.verify_oauth2_token,
                token,
                google_requests.Request(),
                settings.google_client_id,
            )
        except ValueError as e:
            logger.warning("Google ID token validation failed", error=str(e))
            raise GoogleAuthError(f"Invalid Google token: {e}") from e

        if not idinfo.get("email"):
            raise GoogleAuthError("Google account has no email address")

        return GoogleIdentity(
            google_id=idinfo["sub"],
            email=idinfo["email"],
            name=idinfo.get("name") or idinfo["email"],
            picture=idinfo.get("picture"),
        )

    async def authenticate(self, code: str) -> GoogleIdentity:
        token = await self.exchange_code(code)
        return await self.verify_id_token(token)


# Global instance
google_oauth = GoogleOAuthClient()
