from pydantic import BaseModel, EmailStr
from datetime import datetime
from typing import Optional


class UserResponse(BaseModel):
    """Signed-in user as exposed to the frontend."""

    id: str
    google_id: str
    display_name: str
    email: EmailStr
    photo: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_db_user(cls, user) -> "UserResponse":
        """Create UserResponse from database User model."""
        return cls(
            id=str(user.id),
            google_id=user.google_id,
            display_name=user.display_name,
            email=user.email,
            photo=user.photo,
            created_at=user.created_at,
        )


class AuthMeResponse(BaseModel):
    """Response wrapper for /auth/me."""

    user: UserResponse


class TokenData(BaseModel):
    """Data encoded in the session JWT."""

    user_id: Optional[int] = None
    email: Optional[str] = None


class GoogleProfile(BaseModel):
    """Subset of the Google userinfo response used to upsert users."""

    sub: str
    email: EmailStr
    name: Optional[str] = None
    picture: Optional[str] = None
