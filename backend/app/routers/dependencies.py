"""
Router Dependencies
====================

Shared FastAPI dependencies for router authentication and authorization.
"""

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth_middleware import get_current_tenant
from app.database import get_db
from app.models import Account


async def require_account(
    account_id: str = Depends(get_current_tenant),
    db: AsyncSession = Depends(get_db)
) -> Account:
    """
    Dependency that validates JWT and returns the full Account object.

    Raises:
        HTTPException(401): If JWT is invalid.
        HTTPException(404): If the account is not found.
        HTTPException(403): If the account is disabled.
    """
    account = await db.get(Account, account_id)

    if not account:
        raise HTTPException(status_code=404, detail="Account not found")

    if not account.is_active:
        raise HTTPException(status_code=403, detail="Account is inactive")

    return account
