"""
Google sign-in endpoints.

Flow:
1. GET /auth/google stores a one-time state value in an httponly cookie and
   redirects to Google's consent screen
2. GET /auth/google/callback checks the state, exchanges the code, upserts
   the user and sets the session cookie before redirecting to the frontend

Any failure during the callback redirects to the frontend login page with
an error code instead of returning an error body.
"""

from typing import Annotated, Optional
from urllib.parse import urlencode
import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy import select, or_

from app.api.deps import DbSession, CurrentUser, create_session_token
from app.config import settings
from app.exceptions import ErrorCode, ExternalServiceError
from app.models.user import User
from app.schemas.auth import AuthMeResponse, GoogleProfile, UserResponse
from app.services.google_oauth import (
    STATE_EXPIRATION_SECONDS,
    GoogleOAuthClient,
    GoogleOAuthError,
    generate_state,
    get_google_oauth_client,
    verify_state,
)

logger = logging.getLogger(__name__)

router = APIRouter()

OAUTH_STATE_COOKIE = "oauth_state"

GoogleClient = Annotated[GoogleOAuthClient, Depends(get_google_oauth_client)]


def _login_redirect(error: Optional[str] = None) -> RedirectResponse:
    url = f"{settings.CLIENT_URL}/login"
    if error:
        url = f"{url}?{urlencode({'error': error})}"
    response = RedirectResponse(url, status_code=302)
    response.delete_cookie(OAUTH_STATE_COOKIE)
    return response


async def upsert_user(db, profile: GoogleProfile) -> User:
    """Create or refresh the user behind a Google profile."""
    result = await db.execute(
        select(User).where(or_(User.google_id == profile.sub, User.email == profile.email))
    )
    user = result.scalars().first()

    if user is None:
        user = User(
            google_id=profile.sub,
            display_name=profile.name or profile.email,
            email=profile.email,
            photo=profile.picture,
        )
        db.add(user)
        logger.info("Created user from Google sign-in")
    else:
        user.google_id = profile.sub
        user.display_name = profile.name or user.display_name
        user.email = profile.email
        user.photo = profile.picture or user.photo

    await db.commit()
    await db.refresh(user)
    return user


@router.get("/google")
async def google_login(oauth: GoogleClient):
    """Redirect to Google's consent screen."""
    if not settings.GOOGLE_CLIENT_ID:
        raise ExternalServiceError("Google OAuth", "not configured", code=ErrorCode.GOOGLE_OAUTH_ERROR)

    state = generate_state()
    response = RedirectResponse(oauth.authorization_url(state), status_code=302)
    response.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=state,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=STATE_EXPIRATION_SECONDS,
    )
    return response


@router.get("/google/callback")
async def google_callback(
    request: Request,
    db: DbSession,
    oauth: GoogleClient,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
):
    """Complete Google sign-in and start a session."""
    if error:
        logger.info(f"Google sign-in cancelled or denied: {error}")
        return _login_redirect("access_denied")

    if not verify_state(request.cookies.get(OAUTH_STATE_COOKIE), state):
        logger.warning("OAuth state mismatch on Google callback")
        return _login_redirect("invalid_state")

    if not code:
        return _login_redirect("missing_code")

    try:
        tokens = await oauth.exchange_code(code)
        profile = await oauth.fetch_profile(tokens["access_token"])
    except GoogleOAuthError as e:
        logger.warning(f"Google sign-in failed: {e}")
        return _login_redirect("oauth_failed")

    user = await upsert_user(db, profile)

    response = RedirectResponse(f"{settings.CLIENT_URL}/dashboard", status_code=302)
    response.delete_cookie(OAUTH_STATE_COOKIE)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=create_session_token(user),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    logger.info("User signed in", extra={"user_id": user.id})
    return response


@router.get("/me", response_model=AuthMeResponse)
async def get_current_user_info(current_user: CurrentUser):
    """Get current authenticated user information."""
    return AuthMeResponse(user=UserResponse.from_db_user(current_user))


@router.get("/logout")
async def logout():
    """End the session and return to the login page."""
    response = RedirectResponse(f"{settings.CLIENT_URL}/login", status_code=302)
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME)
    return response
