"""
Pytest configuration and fixtures.
"""

import os

# Must be set before app modules build the engine from settings
os.environ["DATABASE_DSN"] = "sqlite+aiosqlite:///./test.db"
os.environ["APIFY_API_KEY"] = "test-apify-token"

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

import app.models  # noqa: F401
from app.api.main import app
from app.core.database import AsyncSessionLocal, Base, engine
from app.core.security import create_access_token
from app.models.user import User
from app.services.linkedin.schemas import ProfileInput


@pytest_asyncio.fixture(autouse=True)
async def setup_db() -> AsyncGenerator[None, None]:
    """Create all tables before each test and drop them afterwards."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db() -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def mock_user_id() -> str:
    """Return mock user ID for testing."""
    return "test-user-001"


@pytest.fixture
def auth_headers(mock_user_id: str) -> dict:
    """Bearer header for mock_user_id."""
    return {"Authorization": f"Bearer {create_access_token(mock_user_id)}"}


@pytest_asyncio.fixture
async def registered_user(mock_user_id: str) -> User:
    """Persist an account for mock_user_id."""
    async with AsyncSessionLocal() as session:
        user = User(id=mock_user_id, name="Test User", email="test-user@example.com")
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


@pytest.fixture
def sample_contact() -> dict:
    """Return sample create profile request."""
    return {
        "name": "Jane Doe",
        "jobTitle": "Senior Data Engineer",
        "company": "Acme Analytics",
        "location": "Berlin, Germany",
        "industry": "Software",
        "experience": 8,
        "seniorityLevel": "Senior",
        "skills": ["Python", "Spark"],
        "email": "jane@example.com",
        "phone": "+49 30 1234567",
        "linkedinUrl": "https://www.linkedin.com/in/jane-doe/",
        "extraLinks": ["https://janedoe.dev", "  "],
    }


@pytest.fixture
def sample_scraped_profile() -> dict:
    """Return a scraped LinkedIn payload as the scraping service delivers it."""
    return {
        "inputUrl": "https://www.linkedin.com/in/john-smith",
        "firstName": "John",
        "lastName": "Smith",
        "occupation": "Software Engineer at Globex",
        "geoLocationName": "Austin, Texas",
        "industryName": "Computer Software",
        "pictureUrl": "https://media.licdn.com/john.jpg",
        "positions": [
            {
                "title": "Software Engineer",
                "companyName": "Globex",
                "locationName": "Austin, Texas",
                "description": "Builds data services.",
                "timePeriod": {"startDate": {"month": 3, "year": 2021}},
                "company": {
                    "industries": ["Computer Software"],
                    "employeeCountRange": {"start": 201, "end": 500},
                },
            },
            {
                "title": "Junior Developer",
                "companyName": "Initech",
                "timePeriod": {
                    "startDate": {"month": 6, "year": 2018},
                    "endDate": {"month": 2, "year": 2021},
                },
            },
        ],
        "skills": ["Python", {"name": "Go"}, "Python"],
        "courses": [{"name": "Distributed Systems"}],
        "certifications": [{"name": "AWS Solutions Architect"}],
        "educations": [
            {
                "degreeName": "BSc",
                "fieldOfStudy": "Computer Science",
                "schoolName": "UT Austin",
                "timePeriod": {"startDate": {"year": 2014}, "endDate": {"year": 2018}},
            }
        ],
    }


@pytest.fixture
def sample_profile_input() -> ProfileInput:
    """Return the user-supplied descriptor for sample_scraped_profile."""
    return ProfileInput(
        url="https://www.linkedin.com/in/john-smith",
        phone="+1 512 555 0100",
        email="john@example.com",
        extra_links=["https://github.com/jsmith"],
    )
