"""
Activations API Router.

Turn missions on and off for the authenticated business and read their
state back. Outcome codes are the contract with the UI; in particular
ALREADY_ACTIVE (409) means "this is on", not "this failed".
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.middleware import get_idempotency_middleware, IdempotencyError
from app.models import Account, ActivationRecord
from app.routers.dependencies import require_account
from app.services.activation import ActivationCoordinator
from app.services.deactivation import DeactivationCoordinator
from app.services.errors import PublicationError, ConcurrencyConflictError, TemplateNotFoundError
from app.services.outcomes import record_payload, campaign_payload
from app.services.publication import CampaignPublisher

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Activations"])


class ActivationRequest(BaseModel):
    """Proposed mission configuration."""
    model_config = ConfigDict(populate_by_name=True)

    reward: int
    max_participants: int = Field(alias="maxParticipants")
    valid_until: Optional[datetime] = Field(None, alias="validUntil")
    cooldown_period: int = Field(0, alias="cooldownPeriod")
    requires_approval: bool = Field(False, alias="requiresApproval")
    check_in_method: Optional[str] = Field(None, alias="checkInMethod")


class ActivationListResponse(BaseModel):
    activations: List[dict]
    active_count: int


@router.post("/{template_id}")
async def activate_mission(
    template_id: str,
    request: ActivationRequest,
    account: Account = Depends(require_account),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    db: AsyncSession = Depends(get_db),
):
    """
    Activate a mission.

    200 ACTIVATED, 409 ALREADY_ACTIVE (success), 403 MISSING_BUSINESS_CONNECTION /
    QUOTA_EXCEEDED / FEATURE_NOT_IN_TIER, 400 VERIFICATION_METHOD_REQUIRED /
    INVALID_CONFIG, 503 PUBLICATION_PENDING / CONCURRENT_UPDATE.
    """
    account_id = account.id

    async def activate_internal():
        coordinator = ActivationCoordinator(db)
        try:
            outcome = await coordinator.activate(account_id, template_id, request.model_dump())
        except PublicationError as e:
            return 503, {"code": e.code, "message": str(e), "activationId": e.record_id}
        except ConcurrencyConflictError as e:
            return 503, {"code": e.code, "message": str(e)}
        return outcome.http_status, outcome.to_payload()

    try:
        status_code, body = await get_idempotency_middleware().ensure_idempotent(
            key=idempotency_key,
            account_id=account_id,
            endpoint=f"/activations/{template_id}",
            handler=activate_internal,
        )
    except IdempotencyError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return JSONResponse(status_code=status_code, content=body)


@router.delete("/{template_id}")
async def deactivate_mission(
    template_id: str,
    account: Account = Depends(require_account),
    db: AsyncSession = Depends(get_db),
):
    """Deactivate a mission: DEACTIVATED, NOT_ACTIVE (success) or NOT_FOUND (404)."""
    outcome = await DeactivationCoordinator(db).deactivate(account.id, template_id)
    return JSONResponse(status_code=outcome.http_status, content=outcome.to_payload())


@router.get("", response_model=ActivationListResponse)
async def list_activations(
    account: Account = Depends(require_account),
    db: AsyncSession = Depends(get_db),
):
    """All activation records of the account, newest first."""
    result = await db.execute(
        select(ActivationRecord)
        .where(ActivationRecord.account_id == account.id)
        .order_by(desc(ActivationRecord.updated_at))
    )
    records = result.scalars().all()

    return ActivationListResponse(
        activations=[record_payload(r) for r in records],
        active_count=sum(1 for r in records if r.is_active),
    )


@router.get("/{template_id}")
async def get_activation(
    template_id: str,
    account: Account = Depends(require_account),
    db: AsyncSession = Depends(get_db),
):
    """
    Read path for badges like "Active - QR Only": record status, the stored
    check-in method and the live campaign, with no business rules re-derived.
    """
    record = await ActivationCoordinator(db).get_record(account.id, template_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Mission has never been activated")

    campaign = await CampaignPublisher(db).live_campaign(account.id, template_id)
    return {
        **record_payload(record),
        "campaign": campaign_payload(campaign) if campaign else None,
        "publicationPending": record.is_active and campaign is None,
    }


@router.post("/{template_id}/reconcile")
async def reconcile_activation(
    template_id: str,
    account: Account = Depends(require_account),
    db: AsyncSession = Depends(get_db),
):
    """Publish the campaign of an ACTIVE record that lost its second write."""
    try:
        campaign = await ActivationCoordinator(db).reconcile(account.id, template_id)
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PublicationError as e:
        return JSONResponse(status_code=503, content={"code": e.code, "message": str(e)})

    if campaign is None:
        return JSONResponse(status_code=409, content={"code": "NOT_ACTIVE"})
    return {"code": "PUBLISHED", "campaign": campaign_payload(campaign)}
