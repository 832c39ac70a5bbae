"""
Password hashing and JWT issuing/verification.

Access and refresh tokens carry a single ``id`` claim (the user id) plus
``exp`` and ``type``. Tokens are stateless; expiry is their only lifecycle
bound.
"""

from datetime import datetime, timedelta, timezone
from typing import Literal

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings

TokenType = Literal["access", "refresh", "oauth_state"]

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenExpiredError(TokenError):
    """The token was well-formed but its exp claim has passed."""


class InvalidTokenError(TokenError):
    """The token could not be decoded, was signed with another key, or has the wrong type."""


def hash_password(password: str) -> str:
    """Hash a plaintext password with bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8")[:_BCRYPT_MAX_BYTES], salt).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:_BCRYPT_MAX_BYTES],
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def _signing_key(token_type: TokenType) -> str:
    if token_type == "refresh":
        return settings.jwt_refresh_secret_key or settings.jwt_secret_key
    return settings.jwt_secret_key


def _create_token(user_id: str, token_type: TokenType, expires_delta: timedelta) -> str:
    expire = datetime.now(timezone.utc) + expires_delta
    claims = {"id": str(user_id), "type": token_type, "exp": expire}
    return jwt.encode(claims, _signing_key(token_type), algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    """Issue an access token for a user."""
    return _create_token(
        user_id,
        "access",
        expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes),
    )


def create_refresh_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    """Issue a refresh token for a user."""
    return _create_token(
        user_id,
        "refresh",
        expires_delta or timedelta(days=settings.jwt_refresh_token_expire_days),
    )


def create_oauth_state(nonce: str) -> str:
    """Sign the nonce bound to a browser for one Google sign-in round trip."""
    return _create_token(nonce, "oauth_state", timedelta(minutes=settings.google_state_expire_minutes))


def decode_token(token: str, token_type: TokenType = "access") -> str:
    """
    Verify a token and return the user id it carries.

    Raises:
        TokenExpiredError: token signature is valid but it has expired
        InvalidTokenError: anything else wrong with the token
    """
    try:
        payload = jwt.decode(
            token,
            _signing_key(token_type),
            algorithms=[settings.jwt_algorithm],
        )
    except ExpiredSignatureError as e:
        raise TokenExpiredError("Token expired") from e
    except JWTError as e:
        raise InvalidTokenError("Invalid token") from e

    if payload.get("type", "access") != token_type:
        raise InvalidTokenError("Invalid token")

    user_id = payload.get("id")
    if not user_id:
        raise InvalidTokenError("Invalid token")

    return str(user_id)
