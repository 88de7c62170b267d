# backend/tests/test_idempotency.py
"""
Tests for Idempotency Middleware.
"""

import json
import pytest
from unittest.mock import MagicMock, patch

from app.middleware.idempotency import IdempotencyMiddleware, IdempotencyError


@pytest.fixture
def mock_redis():
    """Create a mock Redis client."""
    redis = MagicMock()
    redis.get.return_value = None
    redis.setex.return_value = True
    redis.delete.return_value = 1
    return redis


@pytest.fixture
def idempotency_middleware(mock_redis):
    """Create middleware with mocked Redis."""
    with patch('app.middleware.idempotency.get_redis_client', return_value=mock_redis):
        return IdempotencyMiddleware()


@pytest.mark.asyncio
async def test_first_request_executes_handler(idempotency_middleware, mock_redis):
    """First request should execute handler and cache status and body."""
    async def handler():
        return 200, {"code": "ACTIVATED", "activationId": "rec-1"}

    status_code, body = await idempotency_middleware.ensure_idempotent(
        key="idempotency-key-1",
        account_id="account-1",
        endpoint="/activations/VISIT_CHECKIN",
        handler=handler
    )

    assert status_code == 200
    assert body["code"] == "ACTIVATED"
    mock_redis.setex.assert_called_once()
    cached = json.loads(mock_redis.setex.call_args[0][2])
    assert cached == {"status_code": 200, "body": {"code": "ACTIVATED", "activationId": "rec-1"}}


@pytest.mark.asyncio
async def test_duplicate_request_replays_cached_response(idempotency_middleware, mock_redis):
    """Duplicate request should replay the first response without executing the handler."""
    mock_redis.get.return_value = json.dumps({"status_code": 403, "body": {"code": "QUOTA_EXCEEDED"}})

    handler_called = False
    async def handler():
        nonlocal handler_called
        handler_called = True
        return 200, {"code": "should_not_be_returned"}

    status_code, body = await idempotency_middleware.ensure_idempotent(
        key="idempotency-key-1",
        account_id="account-1",
        endpoint="/activations/VISIT_CHECKIN",
        handler=handler
    )

    assert (status_code, body) == (403, {"code": "QUOTA_EXCEEDED"})
    assert not handler_called


@pytest.mark.asyncio
async def test_no_key_always_executes(idempotency_middleware, mock_redis):
    call_count = 0
    async def handler():
        nonlocal call_count
        call_count += 1
        return 409, {"code": "ALREADY_ACTIVE"}

    for _ in range(2):
        await idempotency_middleware.ensure_idempotent(
            key=None,
            account_id="account-1",
            endpoint="/activations/VISIT_CHECKIN",
            handler=handler
        )

    assert call_count == 2
    mock_redis.get.assert_not_called()
    mock_redis.setex.assert_not_called()


@pytest.mark.asyncio
async def test_server_errors_not_cached(idempotency_middleware, mock_redis):
    """Transient 5xx answers should NOT be cached to allow retry."""
    async def handler():
        return 503, {"code": "PUBLICATION_PENDING"}

    status_code, _ = await idempotency_middleware.ensure_idempotent(
        key="key-1",
        account_id="account-1",
        endpoint="/activations/VISIT_CHECKIN",
        handler=handler
    )

    assert status_code == 503
    mock_redis.setex.assert_not_called()


@pytest.mark.asyncio
async def test_handler_error_not_cached(idempotency_middleware, mock_redis):
    async def failing_handler():
        raise ValueError("Something went wrong")

    with pytest.raises(ValueError):
        await idempotency_middleware.ensure_idempotent(
            key="key-1",
            account_id="account-1",
            endpoint="/activations/VISIT_CHECKIN",
            handler=failing_handler
        )

    mock_redis.setex.assert_not_called()


@pytest.mark.asyncio
async def test_oversized_key_rejected(idempotency_middleware):
    async def handler():
        return 200, {}

    with pytest.raises(IdempotencyError):
        await idempotency_middleware.ensure_idempotent(
            key="k" * 256,
            account_id="account-1",
            endpoint="/activations/VISIT_CHECKIN",
            handler=handler
        )


def test_cache_key_includes_account_and_endpoint(idempotency_middleware):
    """Cache key should be unique per account AND endpoint."""
    key1 = idempotency_middleware._build_cache_key("same-key", "account-1", "/activations/A")
    key2 = idempotency_middleware._build_cache_key("same-key", "account-2", "/activations/A")
    key3 = idempotency_middleware._build_cache_key("same-key", "account-1", "/activations/B")

    assert key1 != key2
    assert key1 != key3
    assert key1.startswith("entitlements:idempotency:account-1:")


def test_invalidate_key(idempotency_middleware, mock_redis):
    """invalidate_key should delete from Redis."""
    result = idempotency_middleware.invalidate_key(
        key="test-key",
        account_id="account-1",
        endpoint="/activations/VISIT_CHECKIN"
    )

    assert result is True
    mock_redis.delete.assert_called_once()
