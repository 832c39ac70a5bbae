"""
User Service.

Account creation, password authentication and Google account linking.
"""

import asyncio
import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_context
from app.core.security import hash_password, verify_password
from app.models.user import User

logger = structlog.get_logger(__name__)


class UserAlreadyExistsError(Exception):
    """An account with this email already exists."""


class AuthenticationError(Exception):
    """Credentials were rejected."""


class PasswordNotSetError(AuthenticationError):
    """The account has no password (Google sign-in only)."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    """
    Service for user accounts.
    """

    async def get_user(
        self,
        user_id: str,
        db: Optional[AsyncSession] = None,
    ) -> Optional[User]:
        """Get a user by ID."""
        async def _get(session: AsyncSession) -> Optional[User]:
            result = await session.execute(select(User).where(User.id == user_id))
            return result.scalar_one_or_none()

        if db:
            return await _get(db)

        async with get_db_context() as session:
            return await _get(session)

    async def get_user_by_email(
        self,
        email: str,
        db: Optional[AsyncSession] = None,
    ) -> Optional[User]:
        """Get a user by email (case-insensitive)."""
        async def _get(session: AsyncSession) -> Optional[User]:
            result = await session.execute(select(User).where(User.email == normalize_email(email)))
            return result.scalar_one_or_none()

        if db:
            return await _get(db)

        async with get_db_context() as session:
            return await _get(session)

    async def create_user(
        self,
        name: str,
        email: str,
        password: str,
        db: Optional[AsyncSession] = None,
    ) -> User:
        """
        Register a password account.

        Raises:
            UserAlreadyExistsError: email is taken
        """
        async def _create(session: AsyncSession) -> User:
            if await self.get_user_by_email(email, session):
                raise UserAlreadyExistsError("User already exists with this email")

            user = User(
                id=str(uuid.uuid4()),
                name=name.strip(),
                email=normalize_email(email),
                hashed_password=await asyncio.to_thread(hash_password, password),
            )
            session.add(user)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise UserAlreadyExistsError("User already exists with this email")
            await session.refresh(user)
            return user

        if db:
            user = await _create(db)
        else:
            async with get_db_context() as session:
                user = await _create(session)

        logger.info("New user registered", user_id=user.id)
        return user

    async def authenticate(
        self,
        email: str,
        password: str,
        db: Optional[AsyncSession] = None,
    ) -> User:
        """
        Check email/password credentials.

        Raises:
            PasswordNotSetError: account only signs in with Google
            AuthenticationError: unknown email or wrong password
        """
        user = await self.get_user_by_email(email, db)
        if not user or not user.is_active:
            raise AuthenticationError("Invalid credentials")

        if not user.hashed_password:
            raise PasswordNotSetError("Please login with Google or reset your password")

        # bcrypt hashing is blocking
        if not await asyncio.to_thread(verify_password, password, user.hashed_password):
            raise AuthenticationError("Invalid credentials")

        return user

    async def get_or_create_google_user(
        self,
        google_id: str,
        email: str,
        name: str,
        avatar: Optional[str] = None,
        db: Optional[AsyncSession] = None,
    ) -> tuple[User, bool]:
        """
        Find the user for a Google identity, linking by email when the
        account already exists.

        Returns:
            (user, created)
        """
        async def _upsert(session: AsyncSession) -> tuple[User, bool]:
            result = await session.execute(select(User).where(User.google_id == google_id))
            user = result.scalar_one_or_none()
            if user:
                return user, False

            user = await self.get_user_by_email(email, session)
            if user:
                user.google_id = google_id
                user.avatar = user.avatar or avatar
                await session.commit()
                await session.refresh(user)
                return user, False

            user = User(
                id=str(uuid.uuid4()),
                name=(name or email).strip(),
                email=normalize_email(email),
                google_id=google_id,
                avatar=avatar,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user, True

        if db:
            user, created = await _upsert(db)
        else:
            async with get_db_context() as session:
                user, created = await _upsert(session)

        if created:
            logger.info("New Google user registered", user_id=user.id)
        return user, created


# Global instance
user_service = UserService()
