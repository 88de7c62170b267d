"""
Entitlements API Router.

Limits and current usage for the authenticated business. The same payload
feeds the UI upgrade preview and the AI assistant's context.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models import Account
from app.routers.dependencies import require_account
from app.services.subscription_context import build_subscription_context

router = APIRouter(tags=["Entitlements"])


@router.get("")
async def get_entitlements(
    account: Account = Depends(require_account),
    db: AsyncSession = Depends(get_db),
):
    return await build_subscription_context(db, account.id)
