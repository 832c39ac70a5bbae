"""
Google sign-in tests. Google itself is never contacted.
"""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from httpx import AsyncClient

from app.api.routes.auth import GOOGLE_STATE_COOKIE
from app.core.config import settings
from app.core.security import create_access_token, create_oauth_state, decode_token
from app.services.google_oauth import GoogleAuthError, GoogleIdentity, GoogleOAuthClient, google_oauth
from app.services.user_service import user_service


async def _start_sign_in(client: AsyncClient, monkeypatch) -> tuple[str, str]:
    """Hit /auth/google and return the signed state and the nonce cookie."""
    monkeypatch.setattr(settings, "google_client_id", "client-id")
    monkeypatch.setattr(settings, "google_client_secret", "client-secret")

    response = await client.get("/auth/google")
    assert response.status_code == 307

    state = parse_qs(urlparse(response.headers["location"]).query)["state"][0]
    return state, response.cookies[GOOGLE_STATE_COOKIE]


def test_authorization_url_carries_client_settings():
    url = urlparse(GoogleOAuthClient().authorization_url("state-1"))
    params = parse_qs(url.query)

    assert params["response_type"] == ["code"]
    assert params["scope"] == ["openid email profile"]
    assert params["state"] == ["state-1"]
    assert params["redirect_uri"][0].endswith("/auth/google/callback")


@pytest.mark.asyncio
async def test_exchange_code_returns_id_token():
    def handler(request: httpx.Request) -> httpx.Response:
        assert b"grant_type=authorization_code" in request.content
        return httpx.Response(200, json={"access_token": "at", "id_token": "google-id-token"})

    client = GoogleOAuthClient(transport=httpx.MockTransport(handler))
    assert await client.exchange_code("code-1") == "google-id-token"


@pytest.mark.asyncio
async def test_exchange_code_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "invalid_grant"})

    client = GoogleOAuthClient(transport=httpx.MockTransport(handler))
    with pytest.raises(GoogleAuthError):
        await client.exchange_code("bad-code")


@pytest.mark.asyncio
async def test_google_login_sets_state_cookie(client: AsyncClient, monkeypatch):
    state, nonce = await _start_sign_in(client, monkeypatch)

    assert decode_token(state, token_type="oauth_state") == nonce


@pytest.mark.asyncio
async def test_callback_without_code_redirects_to_login(client: AsyncClient):
    response = await client.get("/auth/google/callback", params={"error": "access_denied"})

    assert response.status_code == 307
    assert response.headers["location"].endswith("/login?error=google_auth_failed")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "state, cookie",
    [
        (None, "nonce-1"),
        (create_oauth_state("nonce-1"), None),
        (create_oauth_state("someone-elses-nonce"), "nonce-1"),
        (create_access_token("nonce-1"), "nonce-1"),
        ("garbage", "nonce-1"),
    ],
)
async def test_callback_rejects_unbound_state(client: AsyncClient, monkeypatch, state, cookie):
    calls = []

    async def fake_authenticate(code: str) -> GoogleIdentity:
        calls.append(code)
        return GoogleIdentity(google_id="g-1", email="eve@example.com", name="Eve")

    monkeypatch.setattr(google_oauth, "authenticate", fake_authenticate)

    params = {"code": "code-1"}
    if state:
        params["state"] = state
    headers = {"Cookie": f"{GOOGLE_STATE_COOKIE}={cookie}"} if cookie else {}

    response = await client.get("/auth/google/callback", params=params, headers=headers)

    assert response.status_code == 307
    assert response.headers["location"].endswith("/login?error=google_auth_failed")
    assert calls == []


@pytest.mark.asyncio
async def test_callback_signs_in_and_creates_dashboard(client: AsyncClient, monkeypatch):
    async def fake_authenticate(code: str) -> GoogleIdentity:
        assert code == "code-1"
        return GoogleIdentity(google_id="g-42", email="Gail@Example.com", name="Gail", picture="https://pic")

    monkeypatch.setattr(google_oauth, "authenticate", fake_authenticate)
    state, nonce = await _start_sign_in(client, monkeypatch)

    response = await client.get(
        "/auth/google/callback",
        params={"code": "code-1", "state": state},
        headers={"Cookie": f"{GOOGLE_STATE_COOKIE}={nonce}"},
    )

    assert response.status_code == 307
    location = urlparse(response.headers["location"])
    assert location.path == "/google-success"
    user_id = decode_token(parse_qs(location.query)["token"][0])

    user = await user_service.get_user(user_id)
    assert user.email == "gail@example.com"
    assert user.hashed_password is None

    dashboard = await client.get("/api/dashboard", headers={"Authorization": f"Bearer {create_access_token(user_id)}"})
    assert dashboard.json()["recentActivity"] == ["Welcome! Signed up with Google."]


@pytest.mark.asyncio
async def test_google_links_existing_password_account(client: AsyncClient):
    await client.post(
        "/auth/signup", json={"name": "Pat", "email": "pat@example.com", "password": "secret123"}
    )

    user, created = await user_service.get_or_create_google_user("g-7", "PAT@example.com", "Pat G")

    assert created is False
    assert user.google_id == "g-7"
    assert user.name == "Pat"
