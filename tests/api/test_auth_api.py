"""
Tests for Google sign-in and session handling.

Google's endpoints are never called: the OAuth client methods are patched.
"""

from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.api.deps import create_access_token
from app.config import settings
from app.models.user import User
from app.schemas.auth import GoogleProfile
from app.services.google_oauth import GoogleOAuthClient, GoogleOAuthError

PROFILE = GoogleProfile(
    sub="google-123",
    email="grace@example.com",
    name="Grace Hopper",
    picture="https://example.com/grace.png",
)


class TestGoogleLogin:
    """Tests for the redirect to Google's consent screen."""

    @pytest.mark.asyncio
    async def test_redirects_with_state_cookie(self, client: AsyncClient, google_configured):
        response = await client.get("/auth/google")

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        params = parse_qs(location.query)
        assert location.netloc == "accounts.google.com"
        assert params["client_id"] == ["test-client-id"]
        assert params["redirect_uri"] == [f"{settings.SERVER_URL}/auth/google/callback"]
        assert params["scope"] == ["openid profile email"]
        assert params["state"][0] == response.cookies["oauth_state"]

    @pytest.mark.asyncio
    async def test_unconfigured_google_is_an_error(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", None)

        response = await client.get("/auth/google")

        assert response.status_code == 502
        assert response.json()["code"] == "EXT_002"


class TestGoogleCallback:
    """Tests for completing the sign-in."""

    @pytest.mark.asyncio
    async def test_successful_sign_in_creates_user(self, client: AsyncClient, test_db, google_configured):
        client.cookies.set("oauth_state", "expected-state")

        with patch.object(
            GoogleOAuthClient, "exchange_code", new=AsyncMock(return_value={"access_token": "google-token"})
        ) as exchange, patch.object(
            GoogleOAuthClient, "fetch_profile", new=AsyncMock(return_value=PROFILE)
        ) as fetch:
            response = await client.get(
                "/auth/google/callback", params={"code": "auth-code", "state": "expected-state"}
            )

        assert response.status_code == 302
        assert response.headers["location"] == f"{settings.CLIENT_URL}/dashboard"
        exchange.assert_awaited_once_with("auth-code")
        fetch.assert_awaited_once_with("google-token")

        result = await test_db.execute(select(User).where(User.google_id == "google-123"))
        user = result.scalar_one()
        assert user.display_name == "Grace Hopper"
        assert user.email == "grace@example.com"

        me = await client.get("/auth/me")
        assert me.status_code == 200
        assert me.json()["user"]["email"] == "grace@example.com"

    @pytest.mark.asyncio
    async def test_existing_user_is_updated(self, client: AsyncClient, test_db, test_user, google_configured):
        client.cookies.set("oauth_state", "s")
        profile = GoogleProfile(sub=test_user.google_id, email=test_user.email, name="Renamed")

        with patch.object(
            GoogleOAuthClient, "exchange_code", new=AsyncMock(return_value={"access_token": "t"})
        ), patch.object(GoogleOAuthClient, "fetch_profile", new=AsyncMock(return_value=profile)):
            await client.get("/auth/google/callback", params={"code": "c", "state": "s"})

        result = await test_db.execute(select(User))
        users = result.scalars().all()
        assert len(users) == 1
        assert users[0].display_name == "Renamed"

    @pytest.mark.asyncio
    async def test_state_mismatch_redirects_to_login(self, client: AsyncClient, google_configured):
        client.cookies.set("oauth_state", "expected-state")

        with patch.object(GoogleOAuthClient, "exchange_code", new=AsyncMock()) as exchange:
            response = await client.get(
                "/auth/google/callback", params={"code": "auth-code", "state": "forged"}
            )

        assert response.status_code == 302
        assert response.headers["location"] == f"{settings.CLIENT_URL}/login?error=invalid_state"
        exchange.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_state_cookie_redirects_to_login(self, client: AsyncClient, google_configured):
        response = await client.get("/auth/google/callback", params={"code": "c", "state": "s"})

        assert response.headers["location"].startswith(f"{settings.CLIENT_URL}/login")

    @pytest.mark.asyncio
    async def test_google_failure_redirects_to_login(self, client: AsyncClient, google_configured):
        client.cookies.set("oauth_state", "s")

        with patch.object(
            GoogleOAuthClient, "exchange_code", new=AsyncMock(side_effect=GoogleOAuthError("boom"))
        ):
            response = await client.get("/auth/google/callback", params={"code": "c", "state": "s"})

        assert response.status_code == 302
        assert response.headers["location"] == f"{settings.CLIENT_URL}/login?error=oauth_failed"

    @pytest.mark.asyncio
    async def test_denied_consent_redirects_to_login(self, client: AsyncClient):
        response = await client.get("/auth/google/callback", params={"error": "access_denied"})

        assert response.headers["location"] == f"{settings.CLIENT_URL}/login?error=access_denied"


class TestSession:
    """Tests for /auth/me and /auth/logout."""

    @pytest.mark.asyncio
    async def test_me_requires_session(self, client: AsyncClient):
        response = await client.get("/auth/me")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_me_with_session(self, authenticated_client: AsyncClient, test_user):
        response = await authenticated_client.get("/auth/me")

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["id"] == str(test_user.id)
        assert user["display_name"] == "Test User"

    @pytest.mark.asyncio
    async def test_bearer_token_accepted(self, client: AsyncClient, test_user):
        token = create_access_token({"sub": str(test_user.id), "email": test_user.email})

        response = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_tampered_token_rejected(self, client: AsyncClient, test_user):
        token = create_access_token({"sub": str(test_user.id)}) + "x"

        response = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_clears_cookie(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get("/auth/logout")

        assert response.status_code == 302
        assert response.headers["location"] == f"{settings.CLIENT_URL}/login"
        assert f'{settings.SESSION_COOKIE_NAME}=""' in response.headers["set-cookie"]
