"""
Campaigns API Router.

Customer-visible campaigns of the authenticated business. A campaign can be
paused and resumed on its own, but never resumed while its activation
record is inactive.
"""

from typing import List, Optional
from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, Depends
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models import PublishedCampaign, CampaignStatus
from app.auth_middleware import get_current_tenant
from app.services.activation import ActivationCoordinator
from app.services.errors import InvalidTransitionError
from app.services.publication import CampaignPublisher

router = APIRouter(tags=["Campaigns"])


class CampaignResponse(BaseModel):
    """Response model for campaigns."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    template_id: str
    kind: str
    name: str
    status: str
    reward: int
    max_participants: int
    valid_until: Optional[datetime]
    cooldown_period: int
    requires_approval: bool
    check_in_method: Optional[str]
    published_at: Optional[datetime]
    paused_at: Optional[datetime]
    ended_at: Optional[datetime]
    created_at: datetime


class CampaignListResponse(BaseModel):
    """Response model for campaign list."""
    campaigns: List[CampaignResponse]
    total: int
    published_count: int


async def _get_owned_campaign(db: AsyncSession, campaign_id: str, account_id: str) -> PublishedCampaign:
    result = await db.execute(
        select(PublishedCampaign).where(
            PublishedCampaign.id == campaign_id,
            PublishedCampaign.account_id == account_id
        )
    )
    campaign = result.scalar_one_or_none()

    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return campaign


@router.get("", response_model=CampaignListResponse)
async def list_campaigns(
    account_id: str = Depends(get_current_tenant),
    status: Optional[str] = Query(None),
    limit: int = Query(50, le=100),
    offset: int = Query(0),
    db: AsyncSession = Depends(get_db),
):
    """List campaigns for an account."""
    query = select(PublishedCampaign).where(PublishedCampaign.account_id == account_id)

    if status:
        query = query.where(PublishedCampaign.status == status)

    query = query.order_by(desc(PublishedCampaign.created_at)).limit(limit).offset(offset)

    result = await db.execute(query)
    campaigns = result.scalars().all()

    published_res = await db.execute(
        select(func.count(PublishedCampaign.id)).where(
            PublishedCampaign.account_id == account_id,
            PublishedCampaign.status == CampaignStatus.PUBLISHED.value
        )
    )

    return CampaignListResponse(
        campaigns=[CampaignResponse.model_validate(c) for c in campaigns],
        total=len(campaigns),
        published_count=published_res.scalar() or 0,
    )


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(
    campaign_id: str,
    account_id: str = Depends(get_current_tenant),
    db: AsyncSession = Depends(get_db),
):
    """Get specific campaign."""
    campaign = await _get_owned_campaign(db, campaign_id, account_id)
    return CampaignResponse.model_validate(campaign)


@router.post("/{campaign_id}/pause")
async def pause_campaign(
    campaign_id: str,
    account_id: str = Depends(get_current_tenant),
    db: AsyncSession = Depends(get_db),
):
    """Pause a published campaign. The activation record is left as is."""
    campaign = await _get_owned_campaign(db, campaign_id, account_id)

    try:
        CampaignPublisher(db).transition(campaign, CampaignStatus.PAUSED.value)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await db.commit()

    return {"status": campaign.status, "id": campaign_id}


@router.post("/{campaign_id}/resume")
async def resume_campaign(
    campaign_id: str,
    account_id: str = Depends(get_current_tenant),
    db: AsyncSession = Depends(get_db),
):
    """Resume a paused campaign whose activation is still ACTIVE."""
    campaign = await _get_owned_campaign(db, campaign_id, account_id)

    if not campaign.can_transition_to(CampaignStatus.PUBLISHED.value):
        raise HTTPException(status_code=400, detail=f"Campaign is {campaign.status}, cannot resume")

    record = await ActivationCoordinator(db).get_record(account_id, campaign.template_id)
    if record is None or not record.is_active:
        raise HTTPException(status_code=409, detail="Mission is not active, activate it first")

    publisher = CampaignPublisher(db)
    if await publisher.live_campaign(account_id, campaign.template_id) is not None:
        raise HTTPException(status_code=409, detail="Another campaign for this mission is already published")

    try:
        publisher.transition(campaign, CampaignStatus.PUBLISHED.value)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await db.commit()

    return {"status": campaign.status, "id": campaign_id}
