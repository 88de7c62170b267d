# app/services/outcomes.py
"""
Activation and deactivation outcomes.

Each outcome is a value with a machine-readable `code` and the HTTP-style
status the API answers with. ALREADY_ACTIVE (409) and NOT_ACTIVE mean
success to the caller even though the transport status looks like an error.
"""

from dataclasses import dataclass
from typing import Optional

from app.models import ActivationRecord, PublishedCampaign
from app.services.catalog import ConnectionRequirement
from app.services.verification import badge_label


def _iso(value):
    return value.isoformat() if value else None


def record_payload(record: ActivationRecord) -> dict:
    """Read-path view of an activation record."""
    config = record.config or {}
    return {
        "id": record.id,
        "accountId": record.account_id,
        "templateId": record.template_id,
        "status": record.status,
        "config": {
            "reward": config.get("reward"),
            "maxParticipants": config.get("max_participants"),
            "validUntil": config.get("valid_until"),
            "cooldownPeriod": config.get("cooldown_period", 0),
            "requiresApproval": config.get("requires_approval", False),
            "checkInMethod": config.get("check_in_method"),
        },
        "checkInMethod": config.get("check_in_method"),
        "badge": badge_label(config.get("check_in_method")),
        "activatedAt": _iso(record.activated_at),
        "deactivatedAt": _iso(record.deactivated_at),
        "createdAt": _iso(record.created_at),
    }


def campaign_payload(campaign: PublishedCampaign) -> dict:
    return {
        "id": campaign.id,
        "accountId": campaign.account_id,
        "templateId": campaign.template_id,
        "kind": campaign.kind,
        "name": campaign.name,
        "status": campaign.status,
        "reward": campaign.reward,
        "maxParticipants": campaign.max_participants,
        "validUntil": _iso(campaign.valid_until),
        "cooldownPeriod": campaign.cooldown_period,
        "requiresApproval": campaign.requires_approval,
        "checkInMethod": campaign.check_in_method,
        "publishedAt": _iso(campaign.published_at),
        "pausedAt": _iso(campaign.paused_at),
    }


class Outcome:
    code: str = ""
    http_status: int = 200
    is_success: bool = False

    def to_payload(self) -> dict:
        return {"code": self.code}


# ============================================================================
# ACTIVATION
# ============================================================================

@dataclass
class Activated(Outcome):
    record: ActivationRecord
    campaign: PublishedCampaign

    code = "ACTIVATED"
    http_status = 200
    is_success = True

    def to_payload(self) -> dict:
        return {
            "code": self.code,
            "activationId": self.record.id,
            "campaignId": self.campaign.id,
            "activation": record_payload(self.record),
            "campaign": campaign_payload(self.campaign),
        }


@dataclass
class AlreadyActive(Outcome):
    record: ActivationRecord
    campaign: Optional[PublishedCampaign] = None

    code = "ALREADY_ACTIVE"
    http_status = 409
    is_success = True

    @property
    def publication_pending(self) -> bool:
        return self.campaign is None

    def to_payload(self) -> dict:
        return {
            "code": self.code,
            "message": "This mission is already active for your business",
            "activationId": self.record.id,
            "campaignId": self.campaign.id if self.campaign else None,
            "publicationPending": self.publication_pending,
            "activation": record_payload(self.record),
        }


@dataclass
class MissingConnection(Outcome):
    requirement: ConnectionRequirement

    code = "MISSING_BUSINESS_CONNECTION"
    http_status = 403

    def to_payload(self) -> dict:
        return {
            "code": self.code,
            "message": (
                f"{self.requirement.display_name} must be connected to activate this mission. "
                f"{self.requirement.description}"
            ),
            "requiredConnection": self.requirement.to_payload(),
        }


@dataclass
class QuotaExceeded(Outcome):
    limit_name: str
    current_value: int
    max_value: int

    code = "QUOTA_EXCEEDED"
    http_status = 403

    def to_payload(self) -> dict:
        return {
            "code": self.code,
            "message": (
                f"Your plan allows {self.max_value} for {self.limit_name} "
                f"and you are at {self.current_value}. Upgrade to raise the limit."
            ),
            "limitName": self.limit_name,
            "currentValue": self.current_value,
            "maxValue": self.max_value,
        }


@dataclass
class FeatureNotAvailable(Outcome):
    feature: str

    code = "FEATURE_NOT_IN_TIER"
    http_status = 403

    def to_payload(self) -> dict:
        return {
            "code": self.code,
            "message": "This mission type is not included in your plan",
            "feature": self.feature,
        }


@dataclass
class VerificationMethodRequired(Outcome):
    code = "VERIFICATION_METHOD_REQUIRED"
    http_status = 400

    def to_payload(self) -> dict:
        return {
            "code": self.code,
            "message": "Choose how customers verify their visit: QR_ONLY, GPS or BOTH",
            "options": ["QR_ONLY", "GPS", "BOTH"],
        }


@dataclass
class ValidationError(Outcome):
    reason: str
    field: Optional[str] = None

    code = "INVALID_CONFIG"
    http_status = 400

    def to_payload(self) -> dict:
        return {"code": self.code, "message": self.reason, "field": self.field}


# ============================================================================
# DEACTIVATION
# ============================================================================

@dataclass
class Deactivated(Outcome):
    record: ActivationRecord
    paused_campaigns: int = 0

    code = "DEACTIVATED"
    http_status = 200
    is_success = True

    def to_payload(self) -> dict:
        return {
            "code": self.code,
            "activationId": self.record.id,
            "pausedCampaigns": self.paused_campaigns,
        }


@dataclass
class NotActive(Outcome):
    record: ActivationRecord

    code = "NOT_ACTIVE"
    http_status = 200
    is_success = True

    def to_payload(self) -> dict:
        return {"code": self.code, "activationId": self.record.id}


@dataclass
class NotFound(Outcome):
    code = "NOT_FOUND"
    http_status = 404
