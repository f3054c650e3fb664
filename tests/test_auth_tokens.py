"""Tests for session JWT creation and validation."""
import pytest
import time
from datetime import timedelta
from types import SimpleNamespace
from jose import jwt, JWTError

from app.api.deps import create_access_token, create_session_token
from app.config import settings


class TestJWTTokens:
    """Test JWT session token behavior."""

    def test_create_access_token(self):
        """Access token should be a non-trivial string."""
        token = create_access_token(data={"sub": "1", "email": "test@example.com"})
        assert isinstance(token, str)
        assert len(token) > 50

    def test_access_token_decode(self):
        """Access token should be decodable with correct secret."""
        token = create_access_token(data={"sub": "42", "email": "user@test.com"})
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        assert payload["sub"] == "42"
        assert payload["email"] == "user@test.com"
        assert "exp" in payload

    def test_session_lasts_a_day(self):
        """Session tokens expire after ACCESS_TOKEN_EXPIRE_MINUTES (24 hours)."""
        token = create_access_token(data={"sub": "1"})
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        remaining = payload["exp"] - time.time()
        assert 86000 < remaining < 86500

    def test_access_token_custom_expiry(self):
        """Should support custom expiration delta."""
        token = create_access_token(data={"sub": "1"}, expires_delta=timedelta(minutes=30))
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        assert 1700 < (payload["exp"] - time.time()) < 1900

    def test_expired_token_rejected(self):
        token = create_access_token(data={"sub": "1"}, expires_delta=timedelta(seconds=-10))
        with pytest.raises(JWTError):
            jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])

    def test_wrong_secret_fails(self):
        """Token decoded with wrong secret should fail."""
        token = create_access_token(data={"sub": "1", "email": "test@test.com"})
        with pytest.raises(JWTError):
            jwt.decode(token, "wrong-secret-key", algorithms=["HS256"])

    def test_session_token_claims(self):
        user = SimpleNamespace(id=7, email="seven@example.com")
        payload = jwt.decode(create_session_token(user), settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        assert payload["sub"] == "7"
        assert payload["email"] == "seven@example.com"
