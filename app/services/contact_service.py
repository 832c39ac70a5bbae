"""
Contact Service.

CRUD operations for contacts and the LinkedIn duplicate check.
"""

import uuid
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_context
from app.models.contact import Contact
from app.utils.linkedin import extract_linkedin_id

logger = structlog.get_logger(__name__)

DUPLICATE_MESSAGE = "A profile with this LinkedIn URL already exists"

MAX_SKILLS = 25


def clean_skills(skills: list[str]) -> list[str]:
    """Strip blanks, drop repeats keeping first-seen order, cap at MAX_SKILLS."""
    stripped = (skill.strip() for skill in skills if skill)
    return list(dict.fromkeys(skill for skill in stripped if skill))[:MAX_SKILLS]


# Fields a caller may set on a contact, keyed by model attribute
CONTACT_FIELDS = (
    "name",
    "job_title",
    "company",
    "location",
    "industry",
    "seniority_level",
    "experience",
    "skills",
    "education",
    "work_experience",
    "company_size",
    "avatar",
    "email",
    "phone",
    "linkedin_url",
    "extra_links",
)


class ContactData(BaseModel):
    """
    Contact record ready for persistence.

    Accepts and emits camelCase keys (jobTitle, linkedinUrl, ...) as used by
    the web client; snake_case names are accepted too.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = ""
    job_title: str = ""
    company: str = ""
    location: str = ""
    industry: str = ""
    experience: int = Field(default=0, ge=0)
    seniority_level: str = ""
    skills: list[str] = Field(default_factory=list)
    education: str = ""
    work_experience: str = ""
    email: str = ""
    phone: str = ""
    avatar: str = ""
    uploaded_by: Optional[str] = None
    company_size: str = ""
    linkedin_url: str = ""
    extra_links: list[str] = Field(default_factory=list)

    @field_validator("extra_links")
    @classmethod
    def drop_blank_links(cls, v: list[str]) -> list[str]:
        return [link.strip() for link in v if link and link.strip()]

    @field_validator("skills")
    @classmethod
    def normalize_skills(cls, v: list[str]) -> list[str]:
        return clean_skills(v)


class ContactUpdate(BaseModel):
    """Partial contact update; unset fields are left untouched."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    job_title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    industry: Optional[str] = None
    experience: Optional[int] = Field(default=None, ge=0)
    seniority_level: Optional[str] = None
    skills: Optional[list[str]] = None
    education: Optional[str] = None
    work_experience: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    company_size: Optional[str] = None
    linkedin_url: Optional[str] = None
    extra_links: Optional[list[str]] = None

    @field_validator("skills")
    @classmethod
    def normalize_skills(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return clean_skills(v) if v is not None else v


class DuplicateReport(BaseModel):
    """Outcome of a positive duplicate lookup."""
    exists: bool = True
    message: str = DUPLICATE_MESSAGE


class DuplicateContactError(Exception):
    """Raised when a contact with the same LinkedIn identifier already exists."""

    def __init__(self, report: DuplicateReport):
        super().__init__(report.message)
        self.report = report


async def check_linkedin_duplicate(
    url: Optional[str],
    session: AsyncSession,
) -> Optional[DuplicateReport]:
    """
    Look up an existing contact by the LinkedIn identifier of ``url``.

    Returns a report when a duplicate exists and None otherwise. None also
    means "no decision" when the URL carries no identifier, and lookup errors
    fail open to None so ingestion is never blocked by them.
    """
    linkedin_id = extract_linkedin_id(url)
    if not linkedin_id:
        return None

    try:
        result = await session.execute(
            select(Contact.id).where(Contact.linkedin_id == linkedin_id).limit(1)
        )
        existing = result.scalar_one_or_none()
    except Exception as e:
        logger.error("Error checking LinkedIn duplicate", linkedin_id=linkedin_id, error=str(e))
        # A failed statement aborts the transaction on Postgres
        await session.rollback()
        return None

    return DuplicateReport() if existing else None


class ContactService:
    """
    Service for managing contacts.
    """

    async def create_contact(
        self,
        data: ContactData,
        uploaded_by: Optional[str] = None,
        db: Optional[AsyncSession] = None,
    ) -> Contact:
        """
        Create a contact after checking for a LinkedIn duplicate.

        Args:
            data: Contact fields
            uploaded_by: Owning user; overrides data.uploaded_by when given
            db: Optional database session

        Returns:
            Created contact

        Raises:
            DuplicateContactError: a contact with the same LinkedIn id exists
        """
        contact_id = str(uuid.uuid4())
        owner = uploaded_by or data.uploaded_by

        async def _create(session: AsyncSession) -> Contact:
            duplicate = await check_linkedin_duplicate(data.linkedin_url, session)
            if duplicate:
                raise DuplicateContactError(duplicate)

            contact = Contact(
                id=contact_id,
                uploaded_by=owner,
                **{field: getattr(data, field) for field in CONTACT_FIELDS},
            )
            contact.linkedin_url = contact.linkedin_url or None
            session.add(contact)
            try:
                await session.commit()
            except IntegrityError:
                # Lost a race against a concurrent insert of the same profile
                await session.rollback()
                raise DuplicateContactError(DuplicateReport())
            await session.refresh(contact)
            return contact

        if db:
            contact = await _create(db)
        else:
            async with get_db_context() as session:
                contact = await _create(session)

        logger.info(
            "Contact created",
            contact_id=contact.id,
            linkedin_id=contact.linkedin_id,
            uploaded_by=owner,
        )

        if owner:
            from app.services.dashboard_service import dashboard_service

            try:
                await dashboard_service.record_upload(owner, contact.id)
            except Exception as e:
                logger.error("Failed to record upload on dashboard", user_id=owner, error=str(e))

        return contact

    async def get_contact(
        self,
        contact_id: str,
        db: Optional[AsyncSession] = None,
    ) -> Optional[Contact]:
        """Get a contact by ID."""
        async def _get(session: AsyncSession) -> Optional[Contact]:
            result = await session.execute(select(Contact).where(Contact.id == contact_id))
            return result.scalar_one_or_none()

        if db:
            return await _get(db)

        async with get_db_context() as session:
            return await _get(session)

    async def list_contacts(
        self,
        uploaded_by: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
        db: Optional[AsyncSession] = None,
    ) -> list[Contact]:
        """
        List contacts, newest first.

        Args:
            uploaded_by: Only contacts uploaded by this user
            search: Case-insensitive match on name, job title or company
            limit: Max results
            offset: Pagination offset
            db: Optional database session
        """
        async def _list(session: AsyncSession) -> list[Contact]:
            stmt = select(Contact).order_by(Contact.uploaded_at.desc())

            if uploaded_by:
                stmt = stmt.where(Contact.uploaded_by == uploaded_by)
            if search:
                pattern = f"%{search.lower()}%"
                stmt = stmt.where(
                    or_(
                        func.lower(Contact.name).like(pattern),
                        func.lower(Contact.job_title).like(pattern),
                        func.lower(Contact.company).like(pattern),
                    )
                )

            result = await session.execute(stmt.offset(offset).limit(limit))
            return list(result.scalars().all())

        if db:
            return await _list(db)

        async with get_db_context() as session:
            return await _list(session)

    async def list_by_ids(
        self,
        contact_ids: list[str],
        db: Optional[AsyncSession] = None,
    ) -> list[Contact]:
        """Fetch the contacts whose ids are given, in no particular order."""
        if not contact_ids:
            return []

        async def _list(session: AsyncSession) -> list[Contact]:
            result = await session.execute(select(Contact).where(Contact.id.in_(contact_ids)))
            return list(result.scalars().all())

        if db:
            return await _list(db)

        async with get_db_context() as session:
            return await _list(session)

    async def count_uploaded_by(
        self,
        user_id: str,
        db: Optional[AsyncSession] = None,
    ) -> int:
        """Count contacts uploaded by a user."""
        async def _count(session: AsyncSession) -> int:
            result = await session.execute(
                select(func.count()).select_from(Contact).where(Contact.uploaded_by == user_id)
            )
            return result.scalar_one()

        if db:
            return await _count(db)

        async with get_db_context() as session:
            return await _count(session)

    async def update_contact(
        self,
        contact_id: str,
        data: ContactUpdate,
        db: Optional[AsyncSession] = None,
    ) -> Optional[Contact]:
        """
        Apply a partial update. Changing linkedinUrl re-derives linkedinId and
        is rejected when it collides with another contact.

        Raises:
            DuplicateContactError: new LinkedIn URL belongs to another contact
        """
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        async def _update(session: AsyncSession) -> Optional[Contact]:
            # Checked before loading the contact; a failed lookup rolls back the session
            new_url = changes.get("linkedin_url")
            duplicate = await check_linkedin_duplicate(new_url, session) if new_url is not None else None

            contact = await self.get_contact(contact_id, session)
            if not contact:
                return None

            if duplicate and extract_linkedin_id(new_url) != contact.linkedin_id:
                raise DuplicateContactError(duplicate)

            for field, value in changes.items():
                setattr(contact, field, value)

            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise DuplicateContactError(DuplicateReport())
            await session.refresh(contact)
            return contact

        if db:
            return await _update(db)

        async with get_db_context() as session:
            return await _update(session)

    async def delete_contact(
        self,
        contact_id: str,
        db: Optional[AsyncSession] = None,
    ) -> bool:
        """Delete a contact. Returns False when it does not exist."""
        async def _delete(session: AsyncSession) -> bool:
            contact = await self.get_contact(contact_id, session)
            if not contact:
                return False
            await session.delete(contact)
            await session.commit()
            return True

        if db:
            return await _delete(db)

        async with get_db_context() as session:
            return await _delete(session)


# Global instance
contact_service = ContactService()
