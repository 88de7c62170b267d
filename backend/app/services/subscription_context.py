# app/services/subscription_context.py
"""
Subscription context for the AI assistant and the UI entitlement preview.

Only data leaves this module: the business level, the effective tier and
the resolved limits with current usage. Prompt wording is the assistant's
concern.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Account
from app.services import entitlements
from app.services.errors import AccountNotFoundError
from app.services.quota import UsageLedger


async def build_subscription_context(session: AsyncSession, account_id: str) -> dict:
    account = await session.get(Account, account_id)
    if account is None:
        raise AccountNotFoundError(account_id)

    tier = entitlements.effective_tier(account.level, account.subscription_tier)
    limits = entitlements.resolve(account.level, account.subscription_tier)
    usage = await UsageLedger(session).snapshot(account_id, create=False)

    return {
        "businessLevel": account.level,
        "subscriptionTier": tier.value if tier else None,
        "subscriptionLimits": {
            **limits.to_payload(),
            "currentActiveCampaigns": usage.active_campaigns,
            "currentParticipantsThisMonth": usage.participants_this_month,
        },
    }
