"""
Tests for JWT Authentication Middleware.

Verifies token creation, validation, and error handling.
"""

import pytest
from datetime import timedelta
from unittest.mock import MagicMock, patch

from fastapi import HTTPException
from jose import jwt

# Constants matching the middleware
ALGORITHM = "HS256"
TEST_SECRET = "test-secret-key-for-testing-only"


@pytest.fixture
def mock_secret():
    """Mock the secret key for all tests."""
    with patch('app.auth_middleware._get_secret_key', return_value=TEST_SECRET):
        yield TEST_SECRET


def make_request(cookies=None):
    request = MagicMock()
    request.cookies = cookies or {}
    return request


class TestCreateAccessToken:
    """Tests for create_access_token function."""

    def test_creates_valid_token(self, mock_secret):
        """Token should be decodable and contain account_id."""
        from app.auth_middleware import create_access_token

        account_id = "test-account-123"
        token = create_access_token(account_id)

        payload = jwt.decode(token, TEST_SECRET, algorithms=[ALGORITHM])

        assert payload["sub"] == account_id
        assert "exp" in payload

    def test_custom_expiration(self, mock_secret):
        """Token should respect custom expiration delta."""
        from app.auth_middleware import create_access_token

        token = create_access_token("test-account-456", expires_delta=timedelta(minutes=5))

        payload = jwt.decode(token, TEST_SECRET, algorithms=[ALGORITHM])

        assert payload["sub"] == "test-account-456"


class TestGetCurrentTenant:
    """Tests for get_current_tenant dependency."""

    @pytest.mark.asyncio
    async def test_valid_token_returns_account_id(self, mock_secret):
        """Valid Bearer token should return the account_id."""
        from app.auth_middleware import create_access_token, get_current_tenant

        token = create_access_token("valid-account-789")

        result = await get_current_tenant(make_request(), f"Bearer {token}")

        assert result == "valid-account-789"

    @pytest.mark.asyncio
    async def test_cookie_fallback(self, mock_secret):
        """auth_token cookie is accepted when no header is sent."""
        from app.auth_middleware import create_access_token, get_current_tenant

        token = create_access_token("cookie-account")

        result = await get_current_tenant(make_request({"auth_token": token}), None)

        assert result == "cookie-account"

    @pytest.mark.asyncio
    async def test_missing_bearer_prefix_raises_401(self, mock_secret):
        """Token without 'Bearer ' prefix should raise 401."""
        from app.auth_middleware import create_access_token, get_current_tenant

        token = create_access_token("some-account")

        with pytest.raises(HTTPException) as exc_info:
            await get_current_tenant(make_request(), token)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token_raises_401(self, mock_secret):
        """Invalid/tampered token should raise 401."""
        from app.auth_middleware import get_current_tenant

        with pytest.raises(HTTPException) as exc_info:
            await get_current_tenant(make_request(), "Bearer invalid.token.here")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_token_with_wrong_secret_raises_401(self, mock_secret):
        """Token signed with different secret should raise 401."""
        from app.auth_middleware import get_current_tenant

        token = jwt.encode({"sub": "account-abc"}, "wrong-secret-key", algorithm=ALGORITHM)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_tenant(make_request(), f"Bearer {token}")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_token_without_sub_raises_401(self, mock_secret):
        """Token without 'sub' claim should raise 401."""
        from app.auth_middleware import get_current_tenant

        token = jwt.encode({"other": "data"}, TEST_SECRET, algorithm=ALGORITHM)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_tenant(make_request(), f"Bearer {token}")

        assert exc_info.value.status_code == 401
