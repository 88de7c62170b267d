"""
SQLAlchemy Models for the Mission Entitlements service.

This package is organized by domain:
- base.py: Base class and mixins
- account.py: Businesses and their external-account connections
- activation.py: Activation records and per-account usage counters
- campaign.py: Customer-visible published campaigns

For convenience, all models are re-exported from this module.
"""

# Base
from app.models.base import Base, UUIDMixin, TimestampMixin, VersionMixin, utcnow

# Accounts
from app.models.account import Account, AccountConnection, SubscriptionTier

# Entitlement side
from app.models.activation import ActivationRecord, ActivationStatus, EntitlementUsage

# Customer-visible side
from app.models.campaign import PublishedCampaign, CampaignStatus, CAMPAIGN_TRANSITIONS


__all__ = [
    # Base
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "VersionMixin",
    "utcnow",

    # Accounts
    "Account",
    "AccountConnection",
    "SubscriptionTier",

    # Activation
    "ActivationRecord",
    "ActivationStatus",
    "EntitlementUsage",

    # Campaigns
    "PublishedCampaign",
    "CampaignStatus",
    "CAMPAIGN_TRANSITIONS",
]
