"""
FastAPI Dependencies

Provides dependency injection for database sessions and authentication.

SECURITY NOTES:
- JWT payloads are never logged
- The session cookie set by the Google sign-in flow is the primary auth method
- A Bearer token carrying the same JWT is accepted for API clients
"""

from typing import Annotated
from fastapi import Depends, Cookie
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
import logging

from app.database import get_db
from app.config import settings
from app.exceptions import UnauthorizedError
from app.models.user import User
from app.schemas.auth import TokenData

logger = logging.getLogger(__name__)


security = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def create_session_token(user: User) -> str:
    """Create the session JWT for a signed-in user."""
    return create_access_token(data={"sub": str(user.id), "email": user.email})


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
    session_token: Annotated[str | None, Cookie(alias=settings.SESSION_COOKIE_NAME)] = None,
) -> User:
    """
    Get current user from the session cookie or a Bearer token.

    SECURITY:
    - JWT payloads are NOT logged to prevent credential leakage
    - Failures never reveal which check failed
    """
    token = None
    auth_method = None

    if session_token:
        token = session_token
        auth_method = "cookie"
    elif credentials:
        token = credentials.credentials
        auth_method = "bearer"

    if not token:
        raise UnauthorizedError()

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        sub = payload.get("sub")
        if sub is None:
            raise UnauthorizedError("Could not validate credentials")
        token_data = TokenData(user_id=int(sub), email=payload.get("email"))
    except JWTError:
        logger.warning("JWT validation failed", extra={"auth_method": auth_method})
        raise UnauthorizedError("Could not validate credentials")
    except ValueError:
        logger.warning("Invalid token format", extra={"auth_method": auth_method})
        raise UnauthorizedError("Could not validate credentials")

    result = await db.execute(select(User).where(User.id == token_data.user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise UnauthorizedError("Could not validate credentials")

    logger.debug(
        "User authenticated",
        extra={"user_id": user.id, "auth_method": auth_method}
    )

    return user


# Type aliases for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[User, Depends(get_current_user)]
