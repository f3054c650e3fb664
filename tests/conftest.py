import os

# Settings are read at import time; point the app at the test database first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.main import app
from app.config import settings
from app.database import Base, get_db
from app.api.deps import create_session_token
from app.models.customer import Customer
from app.models.user import User
from tests.factories import CustomerFactory

# Test database URL (SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"


@pytest_asyncio.fixture
async def test_db():
    """Create test database and tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_user(test_db: AsyncSession):
    """Create a test user."""
    user = User(
        google_id="google-test-user",
        display_name="Test User",
        email="test@example.com",
        photo="https://example.com/photo.png",
    )
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest_asyncio.fixture
async def make_customers(test_db: AsyncSession):
    """Insert customers built from CustomerFactory with the given overrides."""

    async def _make(*overrides: dict):
        customers = [Customer(**CustomerFactory(**values)) for values in overrides]
        test_db.add_all(customers)
        await test_db.commit()
        for customer in customers:
            await test_db.refresh(customer)
        return customers

    return _make


@pytest_asyncio.fixture
async def client(test_db: AsyncSession):
    """Create test client with overridden database."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def authenticated_client(client: AsyncClient, test_user: User):
    """Create a client carrying the session cookie of the test user."""
    client.cookies.set(settings.SESSION_COOKIE_NAME, create_session_token(test_user))
    return client


@pytest.fixture
def google_configured(monkeypatch):
    """Pretend Google OAuth credentials are configured."""
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", "test-client-id")
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_SECRET", "test-client-secret")
    return settings
