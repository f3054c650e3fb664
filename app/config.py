from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator
from functools import lru_cache


# Secrets that must never be used outside development
WEAK_SECRET_KEYS = {
    "development-secret-key-change-in-production",
    "your-secret-key",
    "changeme",
    "secret",
    "password",
    "test",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://localhost:5432/xeno_crm"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Convert postgresql:// to postgresql+asyncpg:// for async support."""
        if v and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    # Session tokens (JWT stored in the session cookie)
    SECRET_KEY: str = "development-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    SESSION_COOKIE_NAME: str = "session"

    # Google OAuth
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None

    # Frontend (CORS + post-login redirects) and public server URL
    CLIENT_URL: str = "http://localhost:3000"
    SERVER_URL: str = "http://localhost:5000"

    # Segments
    AUDIENCE_BATCH_SIZE: int = 500

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    DOCS_ENABLED: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Reject insecure configuration outside development."""
        if self.is_production:
            if self.SECRET_KEY in WEAK_SECRET_KEYS:
                raise ValueError("SECRET_KEY must be changed in production")
            if len(self.SECRET_KEY) < 32:
                raise ValueError("SECRET_KEY must be at least 32 characters in production")
            if not self.GOOGLE_CLIENT_ID:
                raise ValueError("GOOGLE_CLIENT_ID is required in production")
            self.DEBUG = False
        return self

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT in ("production", "staging")

    @property
    def sqlalchemy_echo(self) -> bool:
        # Never echo SQL in production - statements may carry customer data
        return self.DEBUG and not self.is_production

    @property
    def google_redirect_uri(self) -> str:
        return f"{self.SERVER_URL}/auth/google/callback"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
