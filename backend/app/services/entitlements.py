# app/services/entitlements.py
"""
Entitlement Resolver.

Maps (account level, subscription tier) to the resource limits a business
may use. Pure and deterministic: the UI preview and server-side enforcement
call the same function and must never disagree.

Rules:
- Level 1 businesses get nothing, whatever tier they carry
- Level 2+ without a recognised tier fall back to STARTER
- Limits are recomputed on every call, never cached
"""

from dataclasses import dataclass
from typing import Dict, Optional, Union

from app.models import Account, SubscriptionTier


@dataclass(frozen=True)
class ResourceLimits:
    """What a business may run right now."""
    max_active_campaigns: Optional[int]     # None = unlimited (fair use)
    max_participants_per_month: int
    max_participants_per_campaign: int     # Cap on one campaign's max_participants
    supports_follow_campaigns: bool
    supports_review_campaigns: bool
    supports_photo_campaigns: bool
    supports_video_campaigns: bool
    supports_events: bool

    def allows_feature(self, feature: Optional[str]) -> bool:
        """True when `feature` (a flag name) is enabled; no feature means allowed."""
        if feature is None:
            return True
        return bool(getattr(self, feature, False))

    def to_payload(self) -> dict:
        return {
            "maxActiveCampaigns": self.max_active_campaigns,
            "maxParticipantsPerMonth": self.max_participants_per_month,
            "maxParticipantsPerCampaign": self.max_participants_per_campaign,
            "supportsFollowCampaigns": self.supports_follow_campaigns,
            "supportsReviewCampaigns": self.supports_review_campaigns,
            "supportsPhotoCampaigns": self.supports_photo_campaigns,
            "supportsVideoCampaigns": self.supports_video_campaigns,
            "supportsEvents": self.supports_events,
        }


NO_ENTITLEMENT = ResourceLimits(
    max_active_campaigns=0,
    max_participants_per_month=0,
    max_participants_per_campaign=0,
    supports_follow_campaigns=False,
    supports_review_campaigns=False,
    supports_photo_campaigns=False,
    supports_video_campaigns=False,
    supports_events=False,
)

TIER_LIMITS: Dict[SubscriptionTier, ResourceLimits] = {
    SubscriptionTier.STARTER: ResourceLimits(
        max_active_campaigns=1,
        max_participants_per_month=20,
        max_participants_per_campaign=10,
        supports_follow_campaigns=False,
        supports_review_campaigns=False,
        supports_photo_campaigns=False,
        supports_video_campaigns=False,
        supports_events=False,
    ),
    SubscriptionTier.SILVER: ResourceLimits(
        max_active_campaigns=3,
        max_participants_per_month=40,
        max_participants_per_campaign=20,
        supports_follow_campaigns=True,
        supports_review_campaigns=False,
        supports_photo_campaigns=True,
        supports_video_campaigns=False,
        supports_events=True,
    ),
    SubscriptionTier.GOLD: ResourceLimits(
        max_active_campaigns=6,
        max_participants_per_month=120,
        max_participants_per_campaign=30,
        supports_follow_campaigns=True,
        supports_review_campaigns=True,
        supports_photo_campaigns=True,
        supports_video_campaigns=False,
        supports_events=True,
    ),
    SubscriptionTier.PLATINUM: ResourceLimits(
        max_active_campaigns=None,
        max_participants_per_month=300,
        max_participants_per_campaign=50,
        supports_follow_campaigns=True,
        supports_review_campaigns=True,
        supports_photo_campaigns=True,
        supports_video_campaigns=True,
        supports_events=True,
    ),
}

MIN_CAMPAIGN_LEVEL = 2


def effective_tier(level: int, tier: Union[SubscriptionTier, str, None]) -> Optional[SubscriptionTier]:
    """
    The tier whose limits apply, or None for accounts below level 2.

    Unknown strings and None both degrade to STARTER.
    """
    if level < MIN_CAMPAIGN_LEVEL:
        return None
    if isinstance(tier, SubscriptionTier):
        return tier
    try:
        return SubscriptionTier(tier)
    except ValueError:
        return SubscriptionTier.STARTER


def resolve(level: int, tier: Union[SubscriptionTier, str, None]) -> ResourceLimits:
    """Resolve resource limits for a level/tier pair."""
    resolved = effective_tier(level, tier)
    if resolved is None:
        return NO_ENTITLEMENT
    return TIER_LIMITS[resolved]


def resolve_for_account(account: Account) -> ResourceLimits:
    return resolve(account.level, account.subscription_tier)
