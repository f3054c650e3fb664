"""
Google OAuth2 client.

Implements the authorization code flow used to sign CRM users in with
their Google account:
- Build the consent-screen URL with a one-time state value
- Exchange the authorization code for tokens
- Fetch the OpenID Connect userinfo profile

Tokens returned by Google are only used to read the profile and are never
stored or logged.
"""

import logging
import secrets
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from app.config import Settings, settings as default_settings
from app.schemas.auth import GoogleProfile

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

OAUTH_SCOPES = "openid profile email"

# OAuth state expiration (15 minutes)
STATE_EXPIRATION_SECONDS = 900


class GoogleOAuthError(Exception):
    """The Google OAuth exchange failed."""


def generate_state() -> str:
    """Generate an unguessable OAuth state value."""
    return secrets.token_urlsafe(32)


def verify_state(expected: Optional[str], received: Optional[str]) -> bool:
    """Constant-time comparison of the stored and returned state values."""
    if not expected or not received:
        return False
    return secrets.compare_digest(expected, received)


class GoogleOAuthClient:
    """Thin async client for Google's OAuth2 and userinfo endpoints."""

    def __init__(self, settings: Optional[Settings] = None, timeout: float = 10.0):
        self.settings = settings or default_settings
        self.timeout = timeout

    def authorization_url(self, state: str) -> str:
        """Build the Google consent-screen URL."""
        params = {
            "client_id": self.settings.GOOGLE_CLIENT_ID,
            "redirect_uri": self.settings.google_redirect_uri,
            "response_type": "code",
            "scope": OAUTH_SCOPES,
            "state": state,
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """
        Exchange an authorization code for tokens.

        Raises:
            GoogleOAuthError: Google rejected the code or could not be reached
        """
        data = {
            "code": code,
            "client_id": self.settings.GOOGLE_CLIENT_ID,
            "client_secret": self.settings.GOOGLE_CLIENT_SECRET,
            "redirect_uri": self.settings.google_redirect_uri,
            "grant_type": "authorization_code",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(GOOGLE_TOKEN_URL, data=data)
                response.raise_for_status()
                token_data = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Google token exchange failed: {type(e).__name__}")
            raise GoogleOAuthError("Token exchange failed") from e

        if "access_token" not in token_data:
            raise GoogleOAuthError("Token response did not include an access token")
        return token_data

    async def fetch_profile(self, access_token: str) -> GoogleProfile:
        """Fetch the signed-in user's profile."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Google userinfo request failed: {type(e).__name__}")
            raise GoogleOAuthError("Profile request failed") from e

        try:
            return GoogleProfile.model_validate(payload)
        except ValueError as e:
            raise GoogleOAuthError("Profile response is missing required fields") from e


def get_google_oauth_client() -> GoogleOAuthClient:
    """Dependency returning the OAuth client."""
    return GoogleOAuthClient()
