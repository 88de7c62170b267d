# app/services/catalog.py
"""
Campaign Template Catalog.

The fixed set of missions a business can turn on. Behaviour is routed by
the explicit `kind` tag carried on each template (and copied onto the
published campaign), never by reading the display title.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from app.services.errors import TemplateNotFoundError


class CampaignKind(str, Enum):
    REVIEW = "review"
    FOLLOW = "follow"
    SOCIAL_POST = "social_post"
    UGC_PHOTO = "ugc_photo"
    UGC_VIDEO = "ugc_video"
    CHECK_IN = "check_in"
    PURCHASE = "purchase"
    REFERRAL = "referral"
    CONSULTATION = "consultation"


@dataclass(frozen=True)
class ConnectionRequirement:
    """
    An external account a template needs. Returned to callers as data so
    they can render a "connect your X" link without parsing messages.
    """
    tag: str
    display_name: str
    description: str

    def to_payload(self) -> dict:
        return {
            "tag": self.tag,
            "displayName": self.display_name,
            "description": self.description,
        }


GOOGLE_BUSINESS = "google-business"
INSTAGRAM = "instagram"
FACEBOOK = "facebook"
TIKTOK = "tiktok"

CONNECTION_REQUIREMENTS: Dict[str, ConnectionRequirement] = {
    GOOGLE_BUSINESS: ConnectionRequirement(
        tag=GOOGLE_BUSINESS,
        display_name="Google Business Profile",
        description="Your Google Business Profile must be connected to verify reviews",
    ),
    INSTAGRAM: ConnectionRequirement(
        tag=INSTAGRAM,
        display_name="Instagram Business",
        description="Your Instagram Business account must be connected to verify posts and follows",
    ),
    FACEBOOK: ConnectionRequirement(
        tag=FACEBOOK,
        display_name="Facebook Page",
        description="Your Facebook Page must be connected to verify engagement",
    ),
    TIKTOK: ConnectionRequirement(
        tag=TIKTOK,
        display_name="TikTok",
        description="Your TikTok account must be connected to verify videos",
    ),
}


@dataclass(frozen=True)
class CampaignTemplate:
    """A catalog entry. Not owned by any business."""
    template_id: str
    name: str
    kind: CampaignKind
    required_connections: Tuple[str, ...] = ()
    is_presence_verified: bool = False
    required_feature: Optional[str] = None  # ResourceLimits flag name

    @property
    def connection_requirements(self) -> Tuple[ConnectionRequirement, ...]:
        return tuple(CONNECTION_REQUIREMENTS[tag] for tag in self.required_connections)


CATALOG: Tuple[CampaignTemplate, ...] = (
    CampaignTemplate(
        "GOOGLE_REVIEW_TEXT", "Leave a Google Review", CampaignKind.REVIEW,
        required_connections=(GOOGLE_BUSINESS,), required_feature="supports_review_campaigns",
    ),
    CampaignTemplate(
        "GOOGLE_REVIEW_PHOTOS", "Google Review with Photos", CampaignKind.REVIEW,
        required_connections=(GOOGLE_BUSINESS,), required_feature="supports_review_campaigns",
    ),
    CampaignTemplate(
        "INSTAGRAM_FOLLOW", "Follow on Instagram", CampaignKind.FOLLOW,
        required_connections=(INSTAGRAM,), required_feature="supports_follow_campaigns",
    ),
    CampaignTemplate(
        "STORY_POST_TAG", "Share to Your Story", CampaignKind.SOCIAL_POST,
        required_connections=(INSTAGRAM,), required_feature="supports_photo_campaigns",
    ),
    CampaignTemplate(
        "FEED_REEL_POST_TAG", "Post on Your Feed", CampaignKind.SOCIAL_POST,
        required_connections=(INSTAGRAM,), required_feature="supports_photo_campaigns",
    ),
    CampaignTemplate(
        "UGC_PHOTO_UPLOAD", "Share Your Experience (Photo)", CampaignKind.UGC_PHOTO,
        required_feature="supports_photo_campaigns",
    ),
    CampaignTemplate(
        "UGC_VIDEO_UPLOAD", "Create a Video Review", CampaignKind.UGC_VIDEO,
        required_feature="supports_video_campaigns",
    ),
    CampaignTemplate(
        "VISIT_CHECKIN", "Visit & Check-In", CampaignKind.CHECK_IN,
        is_presence_verified=True,
    ),
    CampaignTemplate("CONSULTATION_REQUEST", "Book a Consultation", CampaignKind.CONSULTATION),
    CampaignTemplate("REDEEM_OFFER", "Redeem Special Offer", CampaignKind.PURCHASE),
    CampaignTemplate("FIRST_PURCHASE", "Make Your First Purchase", CampaignKind.PURCHASE),
    CampaignTemplate("BRING_A_FRIEND", "Bring a Friend", CampaignKind.REFERRAL),
    CampaignTemplate("REPEAT_PURCHASE_VISIT", "Loyalty Rewards", CampaignKind.PURCHASE),
)

_BY_ID: Dict[str, CampaignTemplate] = {t.template_id: t for t in CATALOG}


def find_template(template_id: str) -> Optional[CampaignTemplate]:
    return _BY_ID.get(template_id)


def get_template(template_id: str) -> CampaignTemplate:
    """Look up a template, raising TemplateNotFoundError if absent."""
    template = _BY_ID.get(template_id)
    if template is None:
        raise TemplateNotFoundError(template_id)
    return template
