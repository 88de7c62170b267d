# app/services/activation.py
"""
Activation Coordinator.

Decides whether a business may turn a mission on and, if so, provisions it
exactly once. The ordered checks short-circuit on the first non-success:

1. Load the account, resolve its limits
2. Existing ACTIVE record -> AlreadyActive (nothing else is checked)
3. Connection gate -> MissingConnection
4. Presence-verified template without a check-in method -> VerificationMethodRequired
5. Recount usage, cap the campaign size -> QuotaExceeded / FeatureNotAvailable
6. Commit the record + usage claim, then publish the campaign

Step 6 writes two resources without a shared transaction. If the campaign
write fails the record stays ACTIVE, the caller gets PublicationError, a
resubmission answers AlreadyActive with publicationPending, and reconcile()
publishes the missing campaign.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models import Account, ActivationRecord, ActivationStatus, utcnow
from app.services import entitlements, verification
from app.services.catalog import CampaignTemplate, find_template, get_template
from app.services.connection_gate import ConnectionGate
from app.services.entitlements import ResourceLimits
from app.services.errors import AccountNotFoundError, ConcurrencyConflictError, PublicationError
from app.services.outcomes import (
    Outcome,
    Activated,
    AlreadyActive,
    MissingConnection,
    QuotaExceeded,
    FeatureNotAvailable,
    VerificationMethodRequired,
    ValidationError,
)
from app.services.publication import CampaignPublisher
from app.services.quota import UsageLedger, UsageSnapshot

logger = logging.getLogger(__name__)

MIN_REWARD = 25
MAX_REWARD = 500
MIN_PARTICIPANTS = 1
MAX_PARTICIPANTS = 10_000

# Sentinels for the record write in step 6
_RECORD_LOST = "record_lost"
_USAGE_LOST = "usage_lost"


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def validate_config(
    template: CampaignTemplate,
    proposed: Mapping[str, Any],
) -> Tuple[Optional[dict], Optional[ValidationError]]:
    """
    Normalise a proposed config into the stored shape.

    Returns (config, None) or (None, ValidationError). A check-in method on
    a template without presence verification is dropped.
    """
    reward = proposed.get("reward")
    if not isinstance(reward, int) or isinstance(reward, bool):
        return None, ValidationError("Reward must be a whole number of points", "reward")
    if reward < MIN_REWARD:
        return None, ValidationError(f"Reward must be at least {MIN_REWARD} points", "reward")
    if reward > MAX_REWARD:
        return None, ValidationError(f"Reward cannot exceed {MAX_REWARD} points", "reward")

    max_participants = proposed.get("max_participants")
    if not isinstance(max_participants, int) or isinstance(max_participants, bool):
        return None, ValidationError("Max participants must be a whole number", "maxParticipants")
    if max_participants < MIN_PARTICIPANTS:
        return None, ValidationError(
            f"Max participants must be at least {MIN_PARTICIPANTS}", "maxParticipants"
        )
    if max_participants > MAX_PARTICIPANTS:
        return None, ValidationError(
            f"Max participants cannot exceed {MAX_PARTICIPANTS:,}", "maxParticipants"
        )

    valid_until = proposed.get("valid_until")
    if valid_until is not None:
        if isinstance(valid_until, str):
            try:
                valid_until = datetime.fromisoformat(valid_until)
            except ValueError:
                return None, ValidationError("Valid until must be an ISO-8601 date", "validUntil")
        valid_until = _to_naive_utc(valid_until)
        if valid_until <= utcnow():
            return None, ValidationError("Valid until date must be in the future", "validUntil")

    cooldown = proposed.get("cooldown_period")
    if cooldown is None:
        cooldown = 0
    if not isinstance(cooldown, int) or isinstance(cooldown, bool):
        return None, ValidationError("Cooldown period must be a whole number", "cooldownPeriod")
    if cooldown < 0:
        return None, ValidationError("Cooldown period cannot be negative", "cooldownPeriod")

    check_in_method = None
    if template.is_presence_verified:
        try:
            method = verification.parse_method(proposed.get("check_in_method"))
        except verification.VerificationMethodError as e:
            return None, ValidationError(str(e), "checkInMethod")
        check_in_method = method.value if method else None

    return {
        "reward": reward,
        "max_participants": max_participants,
        "valid_until": valid_until.isoformat() if valid_until else None,
        "cooldown_period": cooldown,
        "requires_approval": bool(proposed.get("requires_approval", False)),
        "check_in_method": check_in_method,
    }, None


class ActivationCoordinator:
    """Runs the activation state machine for one (account, template) pair."""

    def __init__(self, session: AsyncSession, cas_retries: Optional[int] = None):
        self.session = session
        self.gate = ConnectionGate(session)
        self.ledger = UsageLedger(session)
        self.publisher = CampaignPublisher(session)
        self.cas_retries = cas_retries if cas_retries is not None else get_settings().ACTIVATION_CAS_RETRIES

    async def activate(
        self,
        account_id: str,
        template_id: str,
        proposed_config: Mapping[str, Any],
    ) -> Outcome:
        template = find_template(template_id)
        if template is None:
            return ValidationError(f'Mission "{template_id}" not found in catalog', "templateId")

        # 1. Account + limits (recomputed every call)
        account = await self._load_account(account_id)
        limits = entitlements.resolve_for_account(account)

        # 2. Idempotent short-circuit
        existing = await self.get_record(account_id, template_id)
        if existing is not None and existing.is_active:
            logger.info(f"Activation {account_id}/{template_id} already active")
            return AlreadyActive(existing, await self.publisher.live_campaign(account_id, template_id))

        config, invalid = validate_config(template, proposed_config)
        if invalid:
            return invalid

        # 3. Connection gate
        gate = await self.gate.check(account, template)
        if not gate.satisfied:
            logger.warning(f"Activation {account_id}/{template_id} blocked: missing {gate.missing.tag}")
            return MissingConnection(gate.missing)

        # 4. Verification method for presence-verified templates
        if verification.requires_selection(template, config):
            return VerificationMethodRequired()
        if template.is_presence_verified:
            config = verification.apply(template, config, config["check_in_method"])

        existing_ref = (existing.id, existing.version) if existing is not None else None

        # 5 + 6, re-evaluated when the usage compare-and-set loses
        for attempt in range(self.cas_retries + 1):
            usage = await self.ledger.snapshot(account_id)
            blocked = self._enforce_limits(limits, usage, template, config["max_participants"])
            if blocked:
                return blocked

            try:
                written = await self._write_record(account_id, template_id, config, existing_ref, usage)
            except IntegrityError:
                # Lost the first-time insert race on (account_id, template_id)
                written = _RECORD_LOST

            if written == _USAGE_LOST:
                await self.session.rollback()
                logger.warning(
                    f"Activation {account_id}/{template_id}: usage changed concurrently, "
                    f"re-evaluating (attempt {attempt + 1})"
                )
                continue

            if written == _RECORD_LOST:
                await self.session.rollback()
                current = await self.get_record(account_id, template_id)
                if current is not None and current.is_active:
                    logger.info(f"Activation {account_id}/{template_id} won by a concurrent request")
                    return AlreadyActive(current, await self.publisher.live_campaign(account_id, template_id))
                existing_ref = (current.id, current.version) if current is not None else None
                continue

            record = written
            break
        else:
            raise ConcurrencyConflictError(account_id, self.cas_retries + 1)

        logger.info(f"Activation {account_id}/{template_id} is ACTIVE (record {record.id})")

        # 6b. Second resource
        campaign = await self._publish(record, template)
        return Activated(record, campaign)

    async def reconcile(self, account_id: str, template_id: str):
        """
        Publish the campaign for an ACTIVE record that has none.

        Returns the live campaign, or None when the record is not ACTIVE.
        """
        template = get_template(template_id)
        record = await self.get_record(account_id, template_id)
        if record is None or not record.is_active:
            return None

        live = await self.publisher.live_campaign(account_id, template_id)
        if live is not None:
            return live

        logger.info(f"Reconciling dangling activation {account_id}/{template_id}")
        return await self._publish(record, template)

    async def get_record(self, account_id: str, template_id: str) -> Optional[ActivationRecord]:
        result = await self.session.execute(
            select(ActivationRecord)
            .where(
                ActivationRecord.account_id == account_id,
                ActivationRecord.template_id == template_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _load_account(self, account_id: str) -> Account:
        account = await self.session.get(Account, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def _enforce_limits(
        self,
        limits: ResourceLimits,
        usage: UsageSnapshot,
        template: CampaignTemplate,
        max_participants: int,
    ) -> Optional[Outcome]:
        if limits.max_active_campaigns is not None and usage.active_campaigns >= limits.max_active_campaigns:
            logger.warning(
                f"Account {usage.account_id} at active campaign limit "
                f"({usage.active_campaigns}/{limits.max_active_campaigns})"
            )
            return QuotaExceeded("maxActiveCampaigns", usage.active_campaigns, limits.max_active_campaigns)

        if usage.participants_this_month >= limits.max_participants_per_month:
            logger.warning(
                f"Account {usage.account_id} at monthly participant limit "
                f"({usage.participants_this_month}/{limits.max_participants_per_month})"
            )
            return QuotaExceeded(
                "maxParticipantsPerMonth",
                usage.participants_this_month,
                limits.max_participants_per_month,
            )

        if max_participants > limits.max_participants_per_campaign:
            return QuotaExceeded(
                "maxParticipantsPerCampaign",
                max_participants,
                limits.max_participants_per_campaign,
            )

        if not limits.allows_feature(template.required_feature):
            return FeatureNotAvailable(template.required_feature)

        return None

    async def _write_record(
        self,
        account_id: str,
        template_id: str,
        config: dict,
        existing_ref: Optional[Tuple[str, int]],
        usage: UsageSnapshot,
    ):
        """
        Flip the record to ACTIVE and claim usage in one transaction.

        Returns the committed record, _RECORD_LOST or _USAGE_LOST. Raises
        IntegrityError when a concurrent insert of the pair won.
        """
        now = utcnow()

        if existing_ref is None:
            self.session.add(ActivationRecord(
                account_id=account_id,
                template_id=template_id,
                status=ActivationStatus.ACTIVE.value,
                config=config,
                activated_at=now,
                version=1,
            ))
            await self.session.flush()
        else:
            record_id, seen_version = existing_ref
            result = await self.session.execute(
                update(ActivationRecord)
                .where(
                    ActivationRecord.id == record_id,
                    ActivationRecord.version == seen_version,
                    ActivationRecord.status != ActivationStatus.ACTIVE.value,
                )
                .values(
                    status=ActivationStatus.ACTIVE.value,
                    config=config,
                    activated_at=now,
                    deactivated_at=None,
                    version=ActivationRecord.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return _RECORD_LOST

        if not await self.ledger.claim_activation(usage):
            return _USAGE_LOST

        await self.session.commit()
        return await self.get_record(account_id, template_id)

    async def _publish(self, record: ActivationRecord, template: CampaignTemplate):
        account_id, template_id, record_id = record.account_id, record.template_id, record.id
        try:
            campaign = await self.publisher.publish(record, template)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Publishing campaign for {account_id}/{template_id} failed: {e}")
            raise PublicationError(account_id, template_id, record_id) from e
        return campaign
