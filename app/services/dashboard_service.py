"""
Dashboard Service.

Per-user points ledger: balance, upload/unlock counters and a bounded
recent-activity log.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db_context
from app.models.contact import Contact
from app.models.dashboard import Dashboard, PointsTransaction
from app.services.contact_service import contact_service

logger = structlog.get_logger(__name__)


class WelcomeReason(str, Enum):
    """What caused a dashboard to be created, and the activity line it starts with."""
    SIGNUP = "Welcome to the platform! You started with 100 points."
    LOGIN = "Welcome back! Dashboard created."
    GOOGLE = "Welcome! Signed up with Google."
    DASHBOARD = "Welcome! Dashboard created."


class InsufficientPointsError(Exception):
    """The user cannot afford the requested action."""

    def __init__(self, required: int, available: int):
        super().__init__(f"Insufficient points: {required} required, {available} available")
        self.required = required
        self.available = available


class DashboardUpdate(BaseModel):
    """Fields accepted by a dashboard update; unset fields are left untouched."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    available_points: Optional[int] = Field(default=None, ge=0)
    total_contacts: Optional[int] = Field(default=None, ge=0)
    unlocked_profiles: Optional[int] = Field(default=None, ge=0)
    my_uploads: Optional[int] = Field(default=None, ge=0)
    unlocked_contact_ids: Optional[list[str]] = None
    uploaded_profile_ids: Optional[list[str]] = None
    recent_activity: Optional[list[str]] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _unique(ids: list[str]) -> list[str]:
    return list(dict.fromkeys(i for i in ids if i))


def bounded_activity(activity: list[str], limit: Optional[int] = None) -> list[str]:
    """Keep only the most recent ``limit`` entries, oldest first."""
    limit = limit or settings.activity_log_limit
    return list(activity)[-limit:]


class DashboardService:
    """
    Service for the per-user points ledger.
    """

    async def _find(self, user_id: str, session: AsyncSession) -> Optional[Dashboard]:
        result = await session.execute(select(Dashboard).where(Dashboard.user_id == user_id))
        return result.scalar_one_or_none()

    async def _get_or_create(
        self,
        user_id: str,
        session: AsyncSession,
        welcome: WelcomeReason = WelcomeReason.DASHBOARD,
    ) -> Dashboard:
        dashboard = await self._find(user_id, session)
        if dashboard:
            return dashboard

        dashboard = Dashboard(
            user_id=user_id,
            available_points=settings.signup_bonus_points,
            total_contacts=0,
            unlocked_profiles=0,
            my_uploads=0,
            uploaded_profile_ids=[],
            unlocked_contact_ids=[],
            recent_activity=[welcome.value],
            updated_at=_now(),
        )
        session.add(dashboard)
        try:
            await session.commit()
        except IntegrityError:
            # Created concurrently by another request
            await session.rollback()
            existing = await self._find(user_id, session)
            if existing is None:
                raise
            return existing

        await session.refresh(dashboard)
        logger.info("Dashboard created", user_id=user_id, trigger=welcome.name.lower())
        return dashboard

    async def get_or_create(
        self,
        user_id: str,
        welcome: WelcomeReason = WelcomeReason.DASHBOARD,
        db: Optional[AsyncSession] = None,
    ) -> Dashboard:
        """
        Return the user's dashboard, creating it with the default balance if
        it does not exist yet.

        Args:
            user_id: Owner of the dashboard
            welcome: Creation trigger; selects the first activity line
            db: Optional database session
        """
        if db:
            return await self._get_or_create(user_id, db, welcome)

        async with get_db_context() as session:
            return await self._get_or_create(user_id, session, welcome)

    async def reconcile(self, dashboard: Dashboard, session: AsyncSession) -> Dashboard:
        """
        Correct stored counters that drifted from the underlying data.

        Upload counters are recomputed from the contacts table and the unlock
        counter from unlocked_contact_ids. Failures are logged and the
        dashboard is returned as it was.
        """
        try:
            actual_uploads = await contact_service.count_uploaded_by(dashboard.user_id, session)
            actual_unlocked = len(dashboard.unlocked_contact_ids or [])

            if (
                dashboard.my_uploads != actual_uploads
                or dashboard.total_contacts != actual_uploads
                or dashboard.unlocked_profiles != actual_unlocked
            ):
                logger.info(
                    "Reconciling dashboard counters",
                    user_id=dashboard.user_id,
                    stored_uploads=dashboard.my_uploads,
                    actual_uploads=actual_uploads,
                    stored_unlocked=dashboard.unlocked_profiles,
                    actual_unlocked=actual_unlocked,
                )
                dashboard.my_uploads = actual_uploads
                dashboard.total_contacts = actual_uploads
                dashboard.unlocked_profiles = actual_unlocked
                await session.commit()
                await session.refresh(dashboard)
        except Exception as e:
            logger.error("Dashboard reconciliation failed", user_id=dashboard.user_id, error=str(e))
            try:
                await session.rollback()
                await session.refresh(dashboard)
            except Exception as reload_error:
                logger.warning(
                    "Could not reload dashboard after failed reconciliation",
                    user_id=dashboard.user_id,
                    error=str(reload_error),
                )

        return dashboard

    async def get_dashboard(
        self,
        user_id: str,
        db: Optional[AsyncSession] = None,
    ) -> Dashboard:
        """Fetch-or-create followed by counter reconciliation."""
        async def _get(session: AsyncSession) -> Dashboard:
            dashboard = await self._get_or_create(user_id, session)
            return await self.reconcile(dashboard, session)

        if db:
            return await _get(db)

        async with get_db_context() as session:
            return await _get(session)

    async def find_dashboard(
        self,
        user_id: str,
        db: Optional[AsyncSession] = None,
    ) -> Optional[Dashboard]:
        """Return the dashboard if it exists, without creating one."""
        if db:
            return await self._find(user_id, db)

        async with get_db_context() as session:
            return await self._find(user_id, session)

    async def update(
        self,
        user_id: str,
        data: DashboardUpdate,
        db: Optional[AsyncSession] = None,
    ) -> Dashboard:
        """
        Overwrite the provided fields and stamp updated_at; creates the
        dashboard when missing.
        """
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        async def _update(session: AsyncSession) -> Dashboard:
            dashboard = await self._get_or_create(user_id, session)

            for field in ("unlocked_contact_ids", "uploaded_profile_ids"):
                if field in changes:
                    changes[field] = _unique(changes[field])
            if "recent_activity" in changes:
                changes["recent_activity"] = bounded_activity(changes["recent_activity"])

            for field, value in changes.items():
                setattr(dashboard, field, value)
            dashboard.updated_at = _now()

            await session.commit()
            await session.refresh(dashboard)
            return dashboard

        if db:
            return await _update(db)

        async with get_db_context() as session:
            return await _update(session)

    async def append_activity(
        self,
        user_id: str,
        message: str,
        db: Optional[AsyncSession] = None,
    ) -> Dashboard:
        """Push one activity line, keeping only the most recent entries."""
        async def _append(session: AsyncSession) -> Dashboard:
            dashboard = await self._get_or_create(user_id, session)
            dashboard.recent_activity = bounded_activity(
                [*(dashboard.recent_activity or []), message]
            )
            dashboard.updated_at = _now()
            await session.commit()
            await session.refresh(dashboard)
            return dashboard

        if db:
            return await _append(db)

        async with get_db_context() as session:
            return await _append(session)

    async def credit(
        self,
        user_id: str,
        amount: int,
        reason: str,
        reference: Optional[str] = None,
        db: Optional[AsyncSession] = None,
    ) -> Dashboard:
        """
        Add points to a user's balance.

        A credit carrying a ``reference`` is applied at most once; repeating
        it returns the dashboard unchanged.

        Args:
            user_id: User to credit
            amount: Points to add (must be positive)
            reason: Human-readable reason, also written to the activity log
            reference: Idempotency key, e.g. "scrape:<batch id>"
            db: Optional database session
        """
        if amount <= 0:
            raise ValueError("Credit amount must be positive")

        async def _credit(session: AsyncSession) -> Dashboard:
            dashboard = await self._get_or_create(user_id, session)

            if reference and await self._has_transaction(reference, session):
                logger.info("Credit already applied", user_id=user_id, reference=reference)
                return dashboard

            session.add(
                PointsTransaction(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    amount=amount,
                    reason=reason,
                    reference=reference,
                )
            )
            dashboard.recent_activity = bounded_activity(
                [*(dashboard.recent_activity or []), f"{reason} (+{amount} points)"]
            )
            dashboard.updated_at = _now()

            try:
                await session.execute(
                    update(Dashboard)
                    .where(Dashboard.user_id == user_id)
                    .values(available_points=Dashboard.available_points + amount)
                    .execution_options(synchronize_session=False)
                )
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.info("Credit already applied", user_id=user_id, reference=reference)
                return await self._find(user_id, session) or dashboard

            await session.refresh(dashboard)
            logger.info(
                "Points credited",
                user_id=user_id,
                amount=amount,
                reference=reference,
                balance=dashboard.available_points,
            )
            return dashboard

        if db:
            return await _credit(db)

        async with get_db_context() as session:
            return await _credit(session)

    async def _has_transaction(self, reference: str, session: AsyncSession) -> bool:
        result = await session.execute(
            select(PointsTransaction.id).where(PointsTransaction.reference == reference)
        )
        return result.scalar_one_or_none() is not None

    async def record_upload(
        self,
        user_id: str,
        contact_id: str,
        db: Optional[AsyncSession] = None,
    ) -> Dashboard:
        """Count a newly uploaded contact against its uploader."""
        async def _record(session: AsyncSession) -> Dashboard:
            dashboard = await self._get_or_create(user_id, session)
            uploaded = list(dashboard.uploaded_profile_ids or [])
            if contact_id in uploaded:
                return dashboard

            dashboard.uploaded_profile_ids = [*uploaded, contact_id]
            dashboard.updated_at = _now()
            await session.execute(
                update(Dashboard)
                .where(Dashboard.user_id == user_id)
                .values(
                    my_uploads=Dashboard.my_uploads + 1,
                    total_contacts=Dashboard.total_contacts + 1,
                )
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            await session.refresh(dashboard)
            return dashboard

        if db:
            return await _record(db)

        async with get_db_context() as session:
            return await _record(session)

    async def unlock_contact(
        self,
        user_id: str,
        contact: Contact,
        cost: Optional[int] = None,
        db: Optional[AsyncSession] = None,
    ) -> tuple[Dashboard, bool]:
        """
        Spend points to unlock a contact.

        Returns:
            (dashboard, newly_unlocked). Unlocking an already unlocked contact
            is free and returns newly_unlocked=False.

        Raises:
            InsufficientPointsError: balance is below the unlock cost
        """
        cost = settings.unlock_cost_points if cost is None else cost

        async def _unlock(session: AsyncSession) -> tuple[Dashboard, bool]:
            dashboard = await self._get_or_create(user_id, session)
            unlocked = list(dashboard.unlocked_contact_ids or [])
            if contact.id in unlocked:
                return dashboard, False

            result = await session.execute(
                update(Dashboard)
                .where(Dashboard.user_id == user_id, Dashboard.available_points >= cost)
                .values(
                    available_points=Dashboard.available_points - cost,
                    unlocked_profiles=Dashboard.unlocked_profiles + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await session.rollback()
                await session.refresh(dashboard)
                raise InsufficientPointsError(cost, dashboard.available_points)

            session.add(
                PointsTransaction(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    amount=-cost,
                    reason=f"Unlocked contact {contact.id}",
                    reference=f"unlock:{user_id}:{contact.id}",
                )
            )
            dashboard.unlocked_contact_ids = [*unlocked, contact.id]
            dashboard.recent_activity = bounded_activity(
                [*(dashboard.recent_activity or []), f"Unlocked {contact.name or 'a contact'} (-{cost} points)"]
            )
            dashboard.updated_at = _now()

            try:
                await session.commit()
            except IntegrityError:
                # Same contact unlocked concurrently; that request paid for it
                await session.rollback()
                return await self._find(user_id, session) or dashboard, False

            await session.refresh(dashboard)
            logger.info("Contact unlocked", user_id=user_id, contact_id=contact.id, cost=cost)
            return dashboard, True

        if db:
            return await _unlock(db)

        async with get_db_context() as session:
            return await _unlock(session)

    async def get_unlocked(
        self,
        user_id: str,
        db: Optional[AsyncSession] = None,
    ) -> Optional[dict]:
        """Unlocked contact ids with short contact summaries; None without a dashboard."""
        async def _get(session: AsyncSession) -> Optional[dict]:
            dashboard = await self._find(user_id, session)
            if not dashboard:
                return None

            ids = list(dashboard.unlocked_contact_ids or [])
            contacts = await contact_service.list_by_ids(ids, session)

            return {
                "userId": user_id,
                "unlockedContactIds": ids,
                "totalUnlocked": dashboard.unlocked_profiles or 0,
                "actualUnlockedCount": len(ids),
                "unlockedProfiles": [c.to_summary() for c in contacts],
            }

        if db:
            return await _get(db)

        async with get_db_context() as session:
            return await _get(session)

    async def get_activity(
        self,
        user_id: str,
        db: Optional[AsyncSession] = None,
    ) -> Optional[dict]:
        """Latest 10 activities (newest first) and latest 10 uploads; None without a dashboard."""
        async def _get(session: AsyncSession) -> Optional[dict]:
            dashboard = await self._find(user_id, session)
            if not dashboard:
                return None

            result = await session.execute(
                select(Contact)
                .where(Contact.uploaded_by == user_id)
                .order_by(Contact.uploaded_at.desc())
                .limit(10)
            )
            uploads = list(result.scalars().all())
            activity = list(dashboard.recent_activity or [])

            return {
                "recentActivity": list(reversed(activity[-10:])),
                "uploadedProfiles": [c.to_summary() for c in uploads],
                "totalActivities": len(activity),
                "lastUpdated": dashboard.updated_at.isoformat() if dashboard.updated_at else None,
            }

        if db:
            return await _get(db)

        async with get_db_context() as session:
            return await _get(session)


# Global instance
dashboard_service = DashboardService()
