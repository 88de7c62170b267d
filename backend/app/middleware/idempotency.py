# backend/app/middleware/idempotency.py
"""
Idempotency-Key replay for API operations.

Activation is already idempotent by state (a second call answers
ALREADY_ACTIVE). This layer adds request-level replay: a client that
resends the same Idempotency-Key gets the first response back verbatim,
status code included, for the TTL window.

Usage:
    @router.post("/{template_id}")
    async def activate(
        template_id: str,
        idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
        ...
    ):
        status_code, body = await get_idempotency_middleware().ensure_idempotent(
            key=idempotency_key,
            account_id=account_id,
            endpoint=f"/activations/{template_id}",
            handler=activate_internal,
        )
"""

import json
import hashlib
import logging
from datetime import timedelta
from typing import Awaitable, Callable, Optional, Tuple

from app.redis import get_redis_client, namespaced_key
from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Outcomes worth replaying; anything else (5xx, infrastructure) may be retried
REPLAYABLE_STATUS = {200, 400, 403, 404, 409}


class IdempotencyError(Exception):
    """Raised for idempotency-related issues."""
    pass


class IdempotencyMiddleware:
    """
    Redis-backed response replay keyed by (account, endpoint, Idempotency-Key).
    """

    def __init__(self, ttl_hours: Optional[int] = None):
        self.redis = get_redis_client()
        self.ttl_hours = ttl_hours or settings.IDEMPOTENCY_TTL_HOURS

    async def ensure_idempotent(
        self,
        key: Optional[str],
        account_id: str,
        endpoint: str,
        handler: Callable[..., Awaitable[Tuple[int, dict]]],
        *args,
        **kwargs
    ) -> Tuple[int, dict]:
        """
        Execute handler with replay protection.

        Without a key the handler simply runs. The handler must return
        (status_code, body).
        """
        if not key:
            return await handler(*args, **kwargs)

        if len(key) > 255:
            raise IdempotencyError("Idempotency-Key must be at most 255 characters")

        cache_key = self._build_cache_key(key, account_id, endpoint)

        cached = self.redis.get(cache_key)
        if cached:
            logger.info(f"Idempotency cache hit for key {key[:8]}... - replaying response")
            entry = json.loads(cached)
            return entry["status_code"], entry["body"]

        status_code, body = await handler(*args, **kwargs)

        if status_code in REPLAYABLE_STATUS:
            self.redis.setex(
                cache_key,
                int(timedelta(hours=self.ttl_hours).total_seconds()),
                json.dumps({"status_code": status_code, "body": body}, default=str),
            )
            logger.debug(f"Idempotency cached response for key {key[:8]}...")

        return status_code, body

    def _build_cache_key(self, key: str, account_id: str, endpoint: str) -> str:
        """
        Format: entitlements:idempotency:{account_id}:{endpoint_hash}:{key}
        """
        endpoint_hash = hashlib.sha256(endpoint.encode()).hexdigest()[:8]
        return namespaced_key("idempotency", account_id, endpoint_hash, key)

    def invalidate_key(self, key: str, account_id: str, endpoint: str) -> bool:
        """Forget a cached response, e.g. after the caller deactivated."""
        deleted = self.redis.delete(self._build_cache_key(key, account_id, endpoint))
        if deleted:
            logger.info(f"Invalidated idempotency key {key[:8]}...")
        return deleted > 0


# Singleton instance
_idempotency_middleware = None


def get_idempotency_middleware() -> IdempotencyMiddleware:
    """Get or create the idempotency middleware singleton."""
    global _idempotency_middleware
    if _idempotency_middleware is None:
        _idempotency_middleware = IdempotencyMiddleware()
    return _idempotency_middleware
