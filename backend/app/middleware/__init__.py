# backend/app/middleware/__init__.py
"""Middleware package for FastAPI."""

from .idempotency import IdempotencyMiddleware, get_idempotency_middleware, IdempotencyError

__all__ = ["IdempotencyMiddleware", "get_idempotency_middleware", "IdempotencyError"]
