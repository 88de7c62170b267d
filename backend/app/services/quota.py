# app/services/quota.py
"""
Usage Ledger.

Per-account counters that quota enforcement compares against the resolved
ResourceLimits:
- active_campaigns: recounted from ACTIVE activation records on every read
- participants_this_month: bumped by the participation flow, reset when the
  calendar month rolls over

All writes are compare-and-set on the row's version token (or a guarded
atomic expression). Nothing here commits; the calling coordinator owns the
transaction.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update, func, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import ActivationRecord, ActivationStatus, EntitlementUsage, utcnow

logger = logging.getLogger(__name__)


def current_period(now: Optional[datetime] = None) -> str:
    """Billing period key, e.g. '2026-10'."""
    now = now or utcnow()
    return f"{now.year:04d}-{now.month:02d}"


@dataclass(frozen=True)
class UsageSnapshot:
    """Counters as observed at one point, plus the version they were read at."""
    account_id: str
    active_campaigns: int
    participants_this_month: int
    period: str
    version: Optional[int]  # None when no usage row exists yet


class UsageLedger:
    """Reads and compare-and-set writes of EntitlementUsage."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def count_active(self, account_id: str) -> int:
        result = await self.session.execute(
            select(func.count(ActivationRecord.id)).where(
                ActivationRecord.account_id == account_id,
                ActivationRecord.status == ActivationStatus.ACTIVE.value,
            )
        )
        return result.scalar() or 0

    async def snapshot(self, account_id: str, create: bool = True) -> UsageSnapshot:
        """
        Observe usage for quota checks.

        With create=True a missing row is inserted and committed first, so
        the returned version can be used for compare-and-set. Call this only
        before any other pending writes in the session.
        """
        usage = await self._load(account_id)
        if usage is None and create:
            usage = await self._create(account_id)

        active = await self.count_active(account_id)
        period = current_period()

        if usage is None:
            return UsageSnapshot(account_id, active, 0, period, None)

        participants = usage.participants_this_month if usage.period == period else 0
        return UsageSnapshot(account_id, active, participants, period, usage.version)

    async def claim_activation(self, snapshot: UsageSnapshot) -> bool:
        """
        Record one more active campaign, only if nobody wrote since `snapshot`.

        The recounted value overwrites the stored counter, so drift heals on
        the next successful claim.
        """
        result = await self.session.execute(
            update(EntitlementUsage)
            .where(
                EntitlementUsage.account_id == snapshot.account_id,
                EntitlementUsage.version == snapshot.version,
            )
            .values(
                active_campaigns=snapshot.active_campaigns + 1,
                participants_this_month=snapshot.participants_this_month,
                period=snapshot.period,
                version=EntitlementUsage.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                f"Usage CAS lost for account {snapshot.account_id} at version {snapshot.version}"
            )
            return False
        return True

    async def release_activation(self, account_id: str) -> None:
        """Drop the active counter by one, never below zero."""
        await self.session.execute(
            update(EntitlementUsage)
            .where(EntitlementUsage.account_id == account_id)
            .values(
                active_campaigns=case(
                    (EntitlementUsage.active_campaigns > 0, EntitlementUsage.active_campaigns - 1),
                    else_=0,
                ),
                version=EntitlementUsage.version + 1,
            )
            .execution_options(synchronize_session=False)
        )

    async def record_participation(self, account_id: str, limit: int, attempts: int = 3) -> bool:
        """
        Count one participant against this month's allowance.

        Returns False when the allowance is used up or the CAS kept losing.
        """
        for _ in range(attempts):
            snap = await self.snapshot(account_id)
            if snap.participants_this_month >= limit:
                logger.info(f"Participant allowance reached for account {account_id} ({limit})")
                return False

            result = await self.session.execute(
                update(EntitlementUsage)
                .where(
                    EntitlementUsage.account_id == account_id,
                    EntitlementUsage.version == snap.version,
                )
                .values(
                    participants_this_month=snap.participants_this_month + 1,
                    period=snap.period,
                    version=EntitlementUsage.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                return True

        logger.warning(f"Participation CAS kept losing for account {account_id}")
        return False

    async def _load(self, account_id: str) -> Optional[EntitlementUsage]:
        result = await self.session.execute(
            select(EntitlementUsage)
            .where(EntitlementUsage.account_id == account_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _create(self, account_id: str) -> EntitlementUsage:
        usage = EntitlementUsage(
            account_id=account_id,
            active_campaigns=await self.count_active(account_id),
            participants_this_month=0,
            period=current_period(),
            version=1,
        )
        self.session.add(usage)
        try:
            await self.session.commit()
        except IntegrityError:
            # Another request created it first
            await self.session.rollback()
            usage = await self._load(account_id)
        return usage
