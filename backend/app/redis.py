# app/redis.py
"""
Redis Client Setup.
"""

import redis
from app.config import get_settings

settings = get_settings()

KEY_PREFIX = "entitlements"


def get_redis_client():
    """Returns a synchronous Redis client."""
    return redis.from_url(settings.REDIS_URL, decode_responses=True)


def namespaced_key(*parts: str) -> str:
    """Build a Redis key under the service prefix, e.g. entitlements:idempotency:..."""
    return ":".join((KEY_PREFIX,) + tuple(parts))
