"""
Per-user points ledger models.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class Dashboard(Base):
    """
    Points balance, counters and recent activity for one user.

    Invariants (reconciled on read, see DashboardService.reconcile):
    - my_uploads == total_contacts == number of contacts uploaded by the user
    - unlocked_profiles == len(unlocked_contact_ids)
    """

    __tablename__ = "dashboards"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)

    available_points: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    total_contacts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unlocked_profiles: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    my_uploads: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Sets of contact ids, stored as duplicate-free lists
    uploaded_profile_ids: Mapped[list] = mapped_column(JSON, default=list)
    unlocked_contact_ids: Mapped[list] = mapped_column(JSON, default=list)

    # Most recent last, bounded by settings.activity_log_limit
    recent_activity: Mapped[list] = mapped_column(JSON, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Dashboard(user_id={self.user_id}, points={self.available_points})>"

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "userId": self.user_id,
            "availablePoints": self.available_points,
            "totalContacts": self.total_contacts,
            "unlockedProfiles": self.unlocked_profiles,
            "myUploads": self.my_uploads,
            "uploadedProfileIds": list(self.uploaded_profile_ids or []),
            "unlockedContactIds": list(self.unlocked_contact_ids or []),
            "recentActivity": list(self.recent_activity or []),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class PointsTransaction(Base):
    """
    Append-only record of a points movement.

    A non-null ``reference`` makes the movement idempotent: a second credit
    with the same reference is not applied.
    """

    __tablename__ = "points_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(500), nullable=False)
    reference: Mapped[Optional[str]] = mapped_column(String(255), unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<PointsTransaction(user_id={self.user_id}, amount={self.amount}, reference={self.reference})>"
