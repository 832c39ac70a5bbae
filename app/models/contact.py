"""
Contact (profile) database model.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, DateTime, Integer, String, Text, event, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.utils.linkedin import extract_linkedin_id


class SeniorityLevel(str, Enum):
    """Seniority buckets derived from job titles."""
    C_LEVEL = "C-Level"
    VP = "VP"
    DIRECTOR = "Director"
    SENIOR = "Senior"
    MID_LEVEL = "Mid-level"
    ENTRY_LEVEL = "Entry-level"


class Contact(Base):
    """
    An unlockable contact, entered manually or ingested from LinkedIn.

    ``linkedin_id`` is unique when present and is always derived from
    ``linkedin_url`` right before the row is written.
    """

    __tablename__ = "contacts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    linkedin_id: Mapped[Optional[str]] = mapped_column(String(255), unique=True, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    job_title: Mapped[Optional[str]] = mapped_column(String(500))
    company: Mapped[Optional[str]] = mapped_column(String(500))
    location: Mapped[Optional[str]] = mapped_column(String(500))
    industry: Mapped[Optional[str]] = mapped_column(String(255))
    seniority_level: Mapped[Optional[str]] = mapped_column(String(50))
    experience: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    skills: Mapped[list] = mapped_column(JSON, default=list)
    education: Mapped[Optional[str]] = mapped_column(Text)
    work_experience: Mapped[Optional[str]] = mapped_column(Text)
    company_size: Mapped[Optional[str]] = mapped_column(String(100))

    avatar: Mapped[Optional[str]] = mapped_column(String(1000))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(100))
    linkedin_url: Mapped[Optional[str]] = mapped_column(String(1000))
    extra_links: Mapped[list] = mapped_column(JSON, default=list)

    uploaded_by: Mapped[Optional[str]] = mapped_column(String(36), index=True)

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Contact(id={self.id}, name={self.name}, linkedin_id={self.linkedin_id})>"

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "jobTitle": self.job_title,
            "company": self.company,
            "location": self.location,
            "industry": self.industry,
            "seniorityLevel": self.seniority_level,
            "experience": self.experience,
            "skills": list(self.skills or []),
            "education": self.education,
            "workExperience": self.work_experience,
            "companySize": self.company_size,
            "avatar": self.avatar,
            "email": self.email,
            "phone": self.phone,
            "linkedinUrl": self.linkedin_url,
            "linkedinId": self.linkedin_id,
            "extraLinks": list(self.extra_links or []),
            "uploadedBy": self.uploaded_by,
            "uploadedAt": self.uploaded_at.isoformat() if self.uploaded_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_summary(self) -> dict:
        """Short form used in dashboard listings."""
        return {
            "id": self.id,
            "name": self.name,
            "jobTitle": self.job_title,
            "company": self.company,
            "uploadedAt": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }


@event.listens_for(Contact, "before_insert")
@event.listens_for(Contact, "before_update")
def _sync_linkedin_id(mapper, connection, target: Contact) -> None:
    target.linkedin_id = extract_linkedin_id(target.linkedin_url)
