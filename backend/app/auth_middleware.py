"""
JWT Authentication Middleware.

Provides tenant isolation by validating signed JWTs that encode the
account_id. The UI holds no authority: every activation decision is made
server-side for the account in the token.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Header, HTTPException, Request
from jose import JWTError, jwt

logger = logging.getLogger("app.auth")

# JWT Configuration
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days


def _get_secret_key() -> str:
    """Lazy-load the secret key to support testing."""
    from app.config import get_settings
    return get_settings().SECRET_KEY


def create_access_token(account_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT for a business account.

    Args:
        account_id: The account's UUID.
        expires_delta: Optional custom expiration time.

    Returns:
        A signed JWT string.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": account_id, "exp": expire}
    return jwt.encode(to_encode, _get_secret_key(), algorithm=ALGORITHM)


async def get_current_tenant(
    request: Request,
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> str:
    """
    FastAPI dependency that extracts and validates the account_id from a JWT.
    Supports both 'Authorization: Bearer' header and 'auth_token' cookie.

    Returns:
        The validated account_id.
    """
    credentials_exception = HTTPException(
        status_code=401,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = None

    # 1. Try Authorization Header
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:]

    # 2. Try HttpOnly Cookie (Fallback)
    if not token:
        token = request.cookies.get("auth_token")

    if not token:
        raise credentials_exception

    try:
        payload = jwt.decode(token, _get_secret_key(), algorithms=[ALGORITHM])
    except JWTError:
        raise credentials_exception

    account_id: Optional[str] = payload.get("sub")
    if account_id is None:
        raise credentials_exception

    logger.debug(f"Authenticated account: {account_id}")
    return account_id
