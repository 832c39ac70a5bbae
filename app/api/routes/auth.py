"""
Authentication routes.

Email/password signup and login, Google sign-in, token refresh and
current-user lookups. Every successful sign-in makes sure the user has a
dashboard.
"""

import secrets
from typing import Optional

import structlog
from fastapi import APIRouter, Cookie, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from app.api.deps import get_current_user_id
from app.core.config import settings
from app.core.security import (
    TokenError,
    create_access_token,
    create_oauth_state,
    create_refresh_token,
    decode_token,
)
from app.services.dashboard_service import WelcomeReason, dashboard_service
from app.services.google_oauth import GoogleAuthError, google_oauth
from app.services.user_service import (
    AuthenticationError,
    PasswordNotSetError,
    UserAlreadyExistsError,
    user_service,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

# Browser-bound nonce checked against the signed state on the Google callback
GOOGLE_STATE_COOKIE = "google_oauth_state"


class SignupRequest(BaseModel):
    """Request for email/password signup."""
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    """Request for email/password login."""
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshTokenRequest(BaseModel):
    """Request for a new access token."""
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


def _token_pair(user_id: str) -> dict:
    return {
        "token": create_access_token(user_id),
        "refreshToken": create_refresh_token(user_id),
    }


def _frontend_url(path: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}{path}"


def _google_redirect(path: str) -> RedirectResponse:
    response = RedirectResponse(_frontend_url(path))
    response.delete_cookie(GOOGLE_STATE_COOKIE)
    return response


def _google_state_matches(state: Optional[str], nonce: Optional[str]) -> bool:
    if not state or not nonce:
        return False
    try:
        signed_nonce = decode_token(state, token_type="oauth_state")
    except TokenError:
        return False
    return secrets.compare_digest(signed_nonce, nonce)


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(request: SignupRequest) -> dict:
    """
    Create a password account and its dashboard.
    """
    if not request.name or not request.email or not request.password:
        raise HTTPException(status_code=400, detail="Please provide name, email, and password")

    if len(request.password) < settings.min_password_length:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {settings.min_password_length} characters long",
        )

    try:
        user = await user_service.create_user(request.name, request.email, request.password)
        await dashboard_service.get_or_create(user.id, welcome=WelcomeReason.SIGNUP)

        return {
            "success": True,
            "message": "Account created successfully",
            "user": user.to_dict(),
            **_token_pair(user.id),
        }

    except UserAlreadyExistsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Signup error", error=str(e))
        raise HTTPException(status_code=500, detail="Server error during registration")


@router.post("/login")
async def login(request: LoginRequest) -> dict:
    """
    Log in with email and password.
    """
    if not request.email or not request.password:
        raise HTTPException(status_code=400, detail="Please provide email and password")

    try:
        user = await user_service.authenticate(request.email, request.password)
        await dashboard_service.get_or_create(user.id, welcome=WelcomeReason.LOGIN)

        logger.info("User logged in", user_id=user.id)

        return {
            "success": True,
            "message": "Login successful",
            "user": user.to_dict(),
            **_token_pair(user.id),
        }

    except (PasswordNotSetError, AuthenticationError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Login error", error=str(e))
        raise HTTPException(status_code=500, detail="Server error during login")


@router.get("/google")
async def google_login() -> RedirectResponse:
    """Redirect to Google's consent screen."""
    if not google_oauth.is_configured:
        raise HTTPException(status_code=500, detail="Google sign-in is not configured")

    nonce = secrets.token_urlsafe(24)
    response = RedirectResponse(google_oauth.authorization_url(create_oauth_state(nonce)))
    response.set_cookie(
        GOOGLE_STATE_COOKIE,
        nonce,
        max_age=settings.google_state_expire_minutes * 60,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )

    logger.info("Google auth initiated")
    return response


@router.get("/google/callback")
async def google_callback(
    code: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    state_nonce: Optional[str] = Cookie(None, alias=GOOGLE_STATE_COOKIE),
) -> RedirectResponse:
    """
    Finish Google sign-in and hand the token to the frontend.

    The signed state must carry the nonce this browser received on /auth/google.
    """
    if error or not code:
        logger.warning("Google callback without code", error=error)
        return _google_redirect("/login?error=google_auth_failed")

    if not _google_state_matches(state, state_nonce):
        logger.warning("Google callback state mismatch", has_state=bool(state), has_cookie=bool(state_nonce))
        return _google_redirect("/login?error=google_auth_failed")

    try:
        identity = await google_oauth.authenticate(code)
    except GoogleAuthError as e:
        logger.warning("Google sign-in rejected", error=str(e))
        return _google_redirect("/login?error=google_auth_failed")

    try:
        user, created = await user_service.get_or_create_google_user(
            google_id=identity.google_id,
            email=identity.email,
            name=identity.name,
            avatar=identity.picture,
        )
        await dashboard_service.get_or_create(user.id, welcome=WelcomeReason.GOOGLE)
    except Exception as e:
        logger.error("Google callback error", error=str(e))
        return _google_redirect("/login?error=dashboard_creation_failed")

    logger.info("Google sign-in completed", user_id=user.id, new_user=created)
    token = create_access_token(user.id)
    return _google_redirect(f"/google-success?token={token}")


@router.post("/forgot-password")
async def forgot_password(request: ForgotPasswordRequest) -> dict:
    """
    Acknowledge a reset request without revealing whether the email exists.
    """
    if not request.email:
        raise HTTPException(status_code=400, detail="Email is required")

    user = await user_service.get_user_by_email(request.email)
    # TODO: send the reset email once an email provider is configured
    logger.info("Password reset requested", known_user=user is not None)

    return {"message": "If an account with that email exists, a reset link has been sent."}


@router.get("/me")
async def get_me(user_id: str = Depends(get_current_user_id)) -> dict:
    """Get the authenticated user."""
    user = await user_service.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return {"success": True, "user": user.to_dict()}


@router.post("/refresh-token")
async def refresh_token(request: RefreshTokenRequest) -> dict:
    """Exchange a refresh token for a new access token."""
    if not request.refresh_token:
        raise HTTPException(status_code=401, detail="Refresh token required")

    try:
        user_id = decode_token(request.refresh_token, token_type="refresh")
    except TokenError as e:
        logger.info("Refresh token rejected", reason=str(e))
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user = await user_service.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return {
        "success": True,
        "token": create_access_token(user.id),
        "user": user.to_dict(),
    }


@router.post("/logout")
async def logout(user_id: str = Depends(get_current_user_id)) -> dict:
    """
    Tokens are stateless; logging out means the client discards them.
    """
    logger.info("User logged out", user_id=user_id)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/status")
async def auth_status(user_id: str = Depends(get_current_user_id)) -> dict:
    """Authenticated user plus headline dashboard numbers."""
    try:
        user = await user_service.get_user(user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        dashboard = await dashboard_service.find_dashboard(user_id)

        return {
            "success": True,
            "authenticated": True,
            "user": user.to_dict(),
            "dashboard": {
                "availablePoints": dashboard.available_points if dashboard else 0,
                "totalContacts": dashboard.total_contacts if dashboard else 0,
                "unlockedProfiles": dashboard.unlocked_profiles if dashboard else 0,
                "myUploads": dashboard.my_uploads if dashboard else 0,
            },
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Auth status error", error=str(e))
        raise HTTPException(status_code=500, detail="Server error")
