# backend/tests/test_deactivation.py
"""
Tests for the Deactivation Coordinator.
"""

import pytest
from sqlalchemy import select, delete

from app.models import ActivationRecord, ActivationStatus, CampaignStatus, PublishedCampaign
from app.services.activation import ActivationCoordinator
from app.services.deactivation import DeactivationCoordinator
from app.services.outcomes import Activated, Deactivated, NotActive, NotFound

from conftest import VALID_CONFIG


@pytest.mark.asyncio
async def test_deactivate_pauses_campaign_and_frees_slot(session, make_account):
    account_id = await make_account(tier="STARTER")
    activated = await ActivationCoordinator(session).activate(account_id, "CONSULTATION_REQUEST", VALID_CONFIG)
    campaign_id = activated.campaign.id

    outcome = await DeactivationCoordinator(session).deactivate(account_id, "CONSULTATION_REQUEST")

    assert isinstance(outcome, Deactivated)
    assert outcome.paused_campaigns == 1
    assert outcome.record.status == ActivationStatus.INACTIVE.value
    assert outcome.record.deactivated_at is not None
    assert outcome.to_payload()["code"] == "DEACTIVATED"

    campaign = await session.get(PublishedCampaign, campaign_id, populate_existing=True)
    assert campaign.status == CampaignStatus.PAUSED.value
    assert campaign.paused_at is not None

    usage = await ActivationCoordinator(session).ledger.snapshot(account_id)
    assert usage.active_campaigns == 0

    # The single STARTER slot is free again
    other = await ActivationCoordinator(session).activate(account_id, "REDEEM_OFFER", VALID_CONFIG)
    assert isinstance(other, Activated)


@pytest.mark.asyncio
async def test_deactivate_twice_is_not_active(session, make_account):
    account_id = await make_account()
    await ActivationCoordinator(session).activate(account_id, "CONSULTATION_REQUEST", VALID_CONFIG)
    coordinator = DeactivationCoordinator(session)

    await coordinator.deactivate(account_id, "CONSULTATION_REQUEST")
    outcome = await coordinator.deactivate(account_id, "CONSULTATION_REQUEST")

    assert isinstance(outcome, NotActive)
    assert outcome.is_success is True
    assert outcome.http_status == 200


@pytest.mark.asyncio
async def test_deactivate_never_activated(session, make_account):
    account_id = await make_account()

    outcome = await DeactivationCoordinator(session).deactivate(account_id, "CONSULTATION_REQUEST")

    assert isinstance(outcome, NotFound)
    assert outcome.http_status == 404


@pytest.mark.asyncio
async def test_straggling_campaign_is_paused_on_retry(session, make_account):
    """A campaign left PUBLISHED after an interrupted deactivation is paused by the next call."""
    account_id = await make_account()
    activated = await ActivationCoordinator(session).activate(account_id, "CONSULTATION_REQUEST", VALID_CONFIG)
    campaign_id = activated.campaign.id

    coordinator = DeactivationCoordinator(session)
    real_pause = coordinator.publisher.pause_for

    async def no_pause(account_id, template_id):
        return 0

    coordinator.publisher.pause_for = no_pause
    await coordinator.deactivate(account_id, "CONSULTATION_REQUEST")

    campaign = await session.get(PublishedCampaign, campaign_id, populate_existing=True)
    assert campaign.status == CampaignStatus.PUBLISHED.value

    coordinator.publisher.pause_for = real_pause
    outcome = await coordinator.deactivate(account_id, "CONSULTATION_REQUEST")

    assert isinstance(outcome, NotActive)
    result = await session.execute(
        select(PublishedCampaign.status).where(PublishedCampaign.id == campaign_id)
    )
    assert result.scalar() == CampaignStatus.PAUSED.value


@pytest.mark.asyncio
async def test_history_is_kept(session, make_account):
    """Deactivation deletes nothing."""
    account_id = await make_account()
    coordinator = ActivationCoordinator(session)
    activated = await coordinator.activate(account_id, "CONSULTATION_REQUEST", VALID_CONFIG)
    record_id = activated.record.id

    await DeactivationCoordinator(session).deactivate(account_id, "CONSULTATION_REQUEST")

    record = await coordinator.get_record(account_id, "CONSULTATION_REQUEST")
    assert record.id == record_id
    assert record.config["reward"] == VALID_CONFIG["reward"]


@pytest.mark.asyncio
async def test_record_removed_mid_deactivation_is_not_found(session, session_maker, make_account):
    """If the record vanishes between the read and the compare-and-set, answer NOT_FOUND."""
    account_id = await make_account()
    await ActivationCoordinator(session).activate(account_id, "CONSULTATION_REQUEST", VALID_CONFIG)

    coordinator = DeactivationCoordinator(session)
    original_get = coordinator._get_record
    calls = 0

    async def get_then_remove(account_id, template_id):
        nonlocal calls
        calls += 1
        record = await original_get(account_id, template_id)
        if calls == 1:
            await session.commit()
            async with session_maker() as other:
                await other.execute(delete(ActivationRecord).where(ActivationRecord.id == record.id))
                await other.commit()
        return record

    coordinator._get_record = get_then_remove
    outcome = await coordinator.deactivate(account_id, "CONSULTATION_REQUEST")

    assert isinstance(outcome, NotFound)
    assert outcome.to_payload() == {"code": "NOT_FOUND"}
