# app/services/publication.py
"""
Campaign Publisher.

Owns the customer-visible side of a mission. A published campaign is a
sibling of its activation record, matched on (account_id, template_id),
and moves through DRAFT -> PUBLISHED <-> PAUSED -> ENDED on its own.

Nothing here commits; coordinators and routers own the transaction.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import ActivationRecord, PublishedCampaign, CampaignStatus, utcnow
from app.services.catalog import CampaignTemplate
from app.services.errors import InvalidTransitionError

logger = logging.getLogger(__name__)


def _parse_valid_until(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class CampaignPublisher:
    """Creates, pauses, resumes and supersedes published campaigns."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def campaigns_for(
        self,
        account_id: str,
        template_id: str,
        status: Optional[str] = None,
    ) -> List[PublishedCampaign]:
        query = select(PublishedCampaign).where(
            PublishedCampaign.account_id == account_id,
            PublishedCampaign.template_id == template_id,
        )
        if status:
            query = query.where(PublishedCampaign.status == status)
        query = query.order_by(desc(PublishedCampaign.created_at)).execution_options(populate_existing=True)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def live_campaign(self, account_id: str, template_id: str) -> Optional[PublishedCampaign]:
        """The PUBLISHED campaign for the pair, if any."""
        campaigns = await self.campaigns_for(account_id, template_id, CampaignStatus.PUBLISHED.value)
        return campaigns[0] if campaigns else None

    async def publish(self, record: ActivationRecord, template: CampaignTemplate) -> PublishedCampaign:
        """
        Publish the campaign for an ACTIVE record.

        Returns the existing live campaign when one is already published.
        Older PAUSED campaigns of the pair are ended; their history stays.
        """
        live = await self.live_campaign(record.account_id, record.template_id)
        if live is not None:
            return live

        for previous in await self.campaigns_for(
            record.account_id, record.template_id, CampaignStatus.PAUSED.value
        ):
            self.transition(previous, CampaignStatus.ENDED.value)

        config = record.config or {}
        campaign = PublishedCampaign(
            account_id=record.account_id,
            template_id=record.template_id,
            kind=template.kind.value,
            name=template.name,
            status=CampaignStatus.DRAFT.value,
            reward=config["reward"],
            max_participants=config["max_participants"],
            valid_until=_parse_valid_until(config.get("valid_until")),
            cooldown_period=config.get("cooldown_period", 0),
            requires_approval=config.get("requires_approval", False),
            check_in_method=config.get("check_in_method"),
        )
        self.transition(campaign, CampaignStatus.PUBLISHED.value)
        self.session.add(campaign)
        await self.session.flush()

        logger.info(f"Published campaign {campaign.id} for {record.account_id}/{record.template_id}")
        return campaign

    async def pause_for(self, account_id: str, template_id: str) -> int:
        """Pause every PUBLISHED campaign of the pair. Returns how many."""
        live = await self.campaigns_for(account_id, template_id, CampaignStatus.PUBLISHED.value)
        for campaign in live:
            self.transition(campaign, CampaignStatus.PAUSED.value)
        if live:
            await self.session.flush()
            logger.info(f"Paused {len(live)} campaign(s) for {account_id}/{template_id}")
        return len(live)

    def transition(self, campaign: PublishedCampaign, new_status: str) -> PublishedCampaign:
        """Apply a status change, stamping the matching timestamp."""
        if not campaign.can_transition_to(new_status):
            raise InvalidTransitionError(campaign.id, campaign.status, new_status)

        now = utcnow()
        campaign.status = new_status
        if new_status == CampaignStatus.PUBLISHED.value:
            campaign.published_at = now
            campaign.paused_at = None
        elif new_status == CampaignStatus.PAUSED.value:
            campaign.paused_at = now
        elif new_status == CampaignStatus.ENDED.value:
            campaign.ended_at = now
        return campaign
