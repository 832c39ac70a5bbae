"""
API endpoint tests.
"""

import asyncio
from datetime import timedelta

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from app.api.main import app
from app.api.routes.scraper import get_orchestrator
from app.core.security import create_access_token, create_refresh_token
from app.services.contact_service import ContactData
from app.services.linkedin.orchestrator import ScrapeOrchestrator
from app.services.linkedin.scraper_client import LinkedInScraperClient
from app.services.linkedin.sinks import ContactPersistError, HttpContactSink


async def _signup(client: AsyncClient, email: str = "jane@example.com") -> dict:
    response = await client.post(
        "/auth/signup",
        json={"name": "Jane Doe", "email": email, "password": "secret123"},
    )
    assert response.status_code == 201
    return response.json()


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test health check endpoint."""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "connected"


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient):
    """Test root endpoint."""
    response = await client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "name" in data
    assert "endpoints" in data


@pytest.mark.asyncio
async def test_signup_creates_dashboard(client: AsyncClient):
    data = await _signup(client)

    assert data["user"]["email"] == "jane@example.com"
    assert "hashedPassword" not in data["user"]
    assert data["token"] and data["refreshToken"]

    response = await client.get("/api/dashboard", headers=_bearer(data["token"]))
    assert response.status_code == 200
    dashboard = response.json()
    assert dashboard["availablePoints"] == 100
    assert dashboard["recentActivity"] == ["Welcome to the platform! You started with 100 points."]


@pytest.mark.asyncio
async def test_signup_validation(client: AsyncClient):
    response = await client.post("/auth/signup", json={"email": "a@example.com", "password": "secret123"})
    assert response.status_code == 400

    response = await client.post(
        "/auth/signup", json={"name": "A", "email": "a@example.com", "password": "123"}
    )
    assert response.status_code == 400
    assert "at least 6" in response.json()["detail"]

    await _signup(client, "dup@example.com")
    response = await client.post(
        "/auth/signup", json={"name": "B", "email": "DUP@example.com", "password": "secret123"}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "User already exists with this email"


@pytest.mark.asyncio
async def test_login(client: AsyncClient):
    await _signup(client)

    response = await client.post("/auth/login", json={"email": "jane@example.com", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["message"] == "Login successful"

    response = await client.post("/auth/login", json={"email": "jane@example.com", "password": "wrong"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_password_hashing_runs_in_worker_thread(client: AsyncClient, monkeypatch):
    offloaded = []
    to_thread = asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        offloaded.append(func.__name__)
        return await to_thread(func, *args, **kwargs)

    monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)

    await _signup(client)
    await client.post("/auth/login", json={"email": "jane@example.com", "password": "secret123"})

    assert offloaded == ["hash_password", "verify_password"]


@pytest.mark.asyncio
async def test_login_google_only_account(client: AsyncClient):
    from app.services.user_service import user_service

    await user_service.get_or_create_google_user("g-123", "gina@example.com", "Gina")

    response = await client.post("/auth/login", json={"email": "gina@example.com", "password": "whatever"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Please login with Google or reset your password"


@pytest.mark.asyncio
async def test_token_errors_are_distinct(client: AsyncClient):
    response = await client.get("/auth/me")
    assert response.status_code == 401
    assert response.json()["detail"] == "No authorization header provided"

    response = await client.get("/auth/me", headers={"Authorization": "Bearer"})
    assert response.json()["detail"] == "No token provided"

    expired = create_access_token("user-1", expires_delta=timedelta(seconds=-10))
    response = await client.get("/auth/me", headers=_bearer(expired))
    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired"

    response = await client.get("/auth/me", headers=_bearer("not-a-jwt"))
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"

    # Refresh tokens are not accepted as access tokens
    response = await client.get("/auth/me", headers=_bearer(create_refresh_token("user-1")))
    assert response.json()["detail"] == "Invalid token"


@pytest.mark.asyncio
async def test_refresh_token(client: AsyncClient):
    data = await _signup(client)

    response = await client.post("/auth/refresh-token", json={"refreshToken": data["refreshToken"]})
    assert response.status_code == 200
    token = response.json()["token"]

    response = await client.get("/auth/me", headers=_bearer(token))
    assert response.status_code == 200
    assert response.json()["user"]["name"] == "Jane Doe"

    response = await client.post("/auth/refresh-token", json={"refreshToken": data["token"]})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_auth_status_and_logout(client: AsyncClient):
    data = await _signup(client)

    response = await client.get("/auth/status", headers=_bearer(data["token"]))
    assert response.status_code == 200
    assert response.json()["dashboard"]["availablePoints"] == 100

    response = await client.post("/auth/logout", headers=_bearer(data["token"]))
    assert response.json()["success"] is True


@pytest.mark.asyncio
async def test_profiles_crud_and_duplicates(client: AsyncClient, auth_headers: dict, sample_contact: dict):
    response = await client.post("/profiles", json=sample_contact, headers=auth_headers)
    assert response.status_code == 201
    created = response.json()
    assert created["linkedinId"] == "jane-doe"
    assert created["extraLinks"] == ["https://janedoe.dev"]

    duplicate = {**sample_contact, "linkedinUrl": "https://linkedin.com/in/JANE-DOE?trk=abc"}
    response = await client.post("/profiles", json=duplicate, headers=auth_headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "A profile with this LinkedIn URL already exists"

    response = await client.put(
        f"/profiles/{created['id']}", json={"company": "Initech"}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["company"] == "Initech"

    response = await client.get("/profiles", params={"search": "initech"}, headers=auth_headers)
    assert [p["id"] for p in response.json()] == [created["id"]]

    response = await client.delete(f"/profiles/{created['id']}", headers=auth_headers)
    assert response.status_code == 200
    response = await client.get(f"/profiles/{created['id']}", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_profile_requires_name(client: AsyncClient, auth_headers: dict):
    response = await client.post("/profiles", json={"name": "  ", "company": "X"}, headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_profile_skills_deduplicated_and_capped(client: AsyncClient, auth_headers: dict):
    skills = [f"Skill {i}" for i in range(30)] + ["Skill 0", "Skill 1", " "]

    response = await client.post(
        "/profiles", json={"name": "Sam", "skills": skills}, headers=auth_headers
    )
    assert response.status_code == 201
    created = response.json()
    assert created["skills"] == [f"Skill {i}" for i in range(25)]

    response = await client.put(
        f"/profiles/{created['id']}",
        json={"skills": ["Go", " Go ", "", "Rust"] + [f"S{i}" for i in range(40)]},
        headers=auth_headers,
    )
    assert response.status_code == 200
    updated = response.json()["skills"]
    assert updated[:3] == ["Go", "Rust", "S0"]
    assert len(updated) == 25


@pytest.mark.asyncio
async def test_profiles_owner_only_and_locked(client: AsyncClient, auth_headers: dict, sample_contact: dict):
    created = (await client.post("/profiles", json=sample_contact, headers=auth_headers)).json()
    other = _bearer(create_access_token("other-user"))

    response = await client.delete(f"/profiles/{created['id']}", headers=other)
    assert response.status_code == 403

    response = await client.get(f"/profiles/{created['id']}", headers=other)
    assert response.json()["locked"] is True
    assert response.json()["email"] is None

    response = await client.post(f"/api/dashboard/unlock/{created['id']}", headers=other)
    assert response.status_code == 200
    assert response.json()["dashboard"]["availablePoints"] == 90

    response = await client.get(f"/profiles/{created['id']}", headers=other)
    assert response.json()["locked"] is False
    assert response.json()["email"] == "jane@example.com"


@pytest.mark.asyncio
async def test_dashboard_activity_routes(client: AsyncClient, auth_headers: dict):
    response = await client.patch("/api/dashboard/activity", json={}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Activity message required"

    response = await client.patch(
        "/api/dashboard/activity", json={"activity": "Viewed pricing"}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["totalActivities"] == 2

    response = await client.get("/api/dashboard/activity", headers=auth_headers)
    assert response.json()["recentActivity"][0] == "Viewed pricing"


@pytest.mark.asyncio
async def test_unlock_insufficient_points(client: AsyncClient, auth_headers: dict, sample_contact: dict):
    owner = _bearer(create_access_token("owner-user"))
    created = (await client.post("/profiles", json=sample_contact, headers=owner)).json()

    await client.post("/api/dashboard", json={"availablePoints": 0}, headers=auth_headers)
    response = await client.post(f"/api/dashboard/unlock/{created['id']}", headers=auth_headers)
    assert response.status_code == 402

    response = await client.post("/api/dashboard/unlock/missing", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_scrape_validation(client: AsyncClient):
    response = await client.post("/api/scrape-linkedin", json={"profilesData": [], "userId": "user-1"})
    assert response.status_code == 400
    assert response.json()["detail"] == "ProfilesData array is required and cannot be empty"

    response = await client.post(
        "/api/scrape-linkedin", json={"profilesData": [{"url": "https://www.linkedin.com/in/a"}]}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "User ID is required"


@pytest.mark.asyncio
async def test_scrape_rejects_other_users_account(client: AsyncClient, auth_headers: dict, registered_user):
    runs = []

    class RecordingOrchestrator:
        async def run(self, profiles_data, user_id):
            runs.append(user_id)

    app.dependency_overrides[get_orchestrator] = RecordingOrchestrator
    try:
        response = await client.post(
            "/api/scrape-linkedin",
            json={"profilesData": [{"url": "https://www.linkedin.com/in/a"}], "userId": "victim"},
            headers=auth_headers,
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 403
    assert runs == []

    response = await client.get("/api/dashboard", headers=_bearer(create_access_token("victim")))
    assert response.json()["availablePoints"] == 100
    assert response.json()["myUploads"] == 0


@pytest.mark.asyncio
async def test_scrape_requires_existing_user(client: AsyncClient):
    response = await client.post(
        "/api/scrape-linkedin",
        json={"profilesData": [{"url": "https://www.linkedin.com/in/a"}], "userId": "ghost"},
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


@pytest.mark.asyncio
async def test_scrape_through_http_sink(client: AsyncClient, auth_headers: dict, registered_user):
    """Scraped contacts are posted back to /profiles and points are credited."""
    def apify(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(201, json={"data": {"id": "run-1", "defaultDatasetId": "ds-1"}})
        if "/runs/" in request.url.path:
            return httpx.Response(200, json={"data": {"status": "SUCCEEDED"}})
        return httpx.Response(
            200,
            json=[{
                "inputUrl": "https://www.linkedin.com/in/alice",
                "firstName": "Alice",
                "lastName": "Tester",
                "occupation": "Lead Engineer",
                "companyName": "Acme",
            }],
        )

    async def _no_sleep(seconds: float) -> None:
        return None

    def orchestrator() -> ScrapeOrchestrator:
        return ScrapeOrchestrator(
            client=LinkedInScraperClient(
                api_token="token-123",
                transport=httpx.MockTransport(apify),
                sleep=_no_sleep,
            ),
            sink=HttpContactSink(base_url="http://test", transport=ASGITransport(app=app)),
        )

    app.dependency_overrides[get_orchestrator] = orchestrator
    try:
        response = await client.post(
            "/api/scrape-linkedin",
            json={
                "profilesData": [
                    {"url": "https://www.linkedin.com/in/alice", "phone": "+1 555", "extraLinks": [""]},
                    {"url": "https://example.com/nope"},
                ]
            },
            headers=auth_headers,
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["pointsEarned"] == 10
    assert data["results"]["total"] == 1
    assert data["results"]["results"][0]["data"]["phone"] == "+1 555"

    response = await client.get("/api/dashboard", headers=auth_headers)
    dashboard = response.json()
    assert dashboard["availablePoints"] == 110
    assert dashboard["myUploads"] == 1


@pytest.mark.asyncio
async def test_http_sink_reports_duplicate(auth_headers: dict, mock_user_id: str):
    sink = HttpContactSink(base_url="http://test", transport=ASGITransport(app=app))
    contact = ContactData(name="Bob", company="Acme", linkedin_url="https://www.linkedin.com/in/bob")

    await sink.save(contact, mock_user_id)
    with pytest.raises(ContactPersistError, match="already exists"):
        await sink.save(contact, mock_user_id)
