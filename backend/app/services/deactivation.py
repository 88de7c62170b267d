# app/services/deactivation.py
"""
Deactivation Coordinator.

Mirror of activation: the record goes ACTIVE -> INACTIVE (compare-and-set
on version), the usage counter is released in the same transaction, then
the published campaign is paused. Nothing is deleted; history and past
participants stay queryable.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import ActivationRecord, ActivationStatus, utcnow
from app.services.outcomes import Outcome, Deactivated, NotActive, NotFound
from app.services.publication import CampaignPublisher
from app.services.quota import UsageLedger

logger = logging.getLogger(__name__)


class DeactivationCoordinator:

    def __init__(self, session: AsyncSession):
        self.session = session
        self.ledger = UsageLedger(session)
        self.publisher = CampaignPublisher(session)

    async def deactivate(self, account_id: str, template_id: str) -> Outcome:
        record = await self._get_record(account_id, template_id)
        if record is None:
            return NotFound()

        if not record.is_active:
            await self._pause_stragglers(account_id, template_id)
            return NotActive(record)

        result = await self.session.execute(
            update(ActivationRecord)
            .where(
                ActivationRecord.id == record.id,
                ActivationRecord.version == record.version,
                ActivationRecord.status == ActivationStatus.ACTIVE.value,
            )
            .values(
                status=ActivationStatus.INACTIVE.value,
                deactivated_at=utcnow(),
                version=ActivationRecord.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # A concurrent deactivation (or reactivation) got there first
            await self.session.rollback()
            current = await self._get_record(account_id, template_id)
            if current is None:
                return NotFound()
            if current.is_active:
                return await self.deactivate(account_id, template_id)
            return NotActive(current)

        await self.ledger.release_activation(account_id)
        await self.session.commit()

        paused = await self.publisher.pause_for(account_id, template_id)
        await self.session.commit()

        record = await self._get_record(account_id, template_id)
        logger.info(f"Activation {account_id}/{template_id} is INACTIVE ({paused} campaign(s) paused)")
        return Deactivated(record, paused)

    async def _pause_stragglers(self, account_id: str, template_id: str) -> None:
        """Pause campaigns left live by an earlier deactivation whose second write failed."""
        paused = await self.publisher.pause_for(account_id, template_id)
        if paused:
            await self.session.commit()
            logger.info(f"Paused {paused} straggling campaign(s) for inactive {account_id}/{template_id}")

    async def _get_record(self, account_id: str, template_id: str):
        result = await self.session.execute(
            select(ActivationRecord)
            .where(
                ActivationRecord.account_id == account_id,
                ActivationRecord.template_id == template_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
