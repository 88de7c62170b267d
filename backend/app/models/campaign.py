"""
Published campaign model - the customer-visible side of a mission.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Index, Integer, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, UUIDMixin, TimestampMixin


class CampaignStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    PAUSED = "PAUSED"
    ENDED = "ENDED"


CAMPAIGN_TRANSITIONS = {
    CampaignStatus.DRAFT.value: {CampaignStatus.PUBLISHED.value},
    CampaignStatus.PUBLISHED.value: {CampaignStatus.PAUSED.value, CampaignStatus.ENDED.value},
    CampaignStatus.PAUSED.value: {CampaignStatus.PUBLISHED.value, CampaignStatus.ENDED.value},
    CampaignStatus.ENDED.value: set(),  # Terminal state
}


class PublishedCampaign(Base, UUIDMixin, TimestampMixin):
    """
    Sibling of an ActivationRecord, linked by (account_id, template_id) and
    deliberately not by foreign key: the two are reconciled independently.
    Reward and config are copied at publish time.
    """
    __tablename__ = "published_campaigns"

    account_id: Mapped[str] = mapped_column(ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    template_id: Mapped[str] = mapped_column(String(64), nullable=False)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[str] = mapped_column(String(20), default=CampaignStatus.DRAFT.value, nullable=False)

    # Denormalized config
    reward: Mapped[int] = mapped_column(Integer, nullable=False)
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    valid_until: Mapped[Optional[datetime]] = mapped_column(DateTime)
    cooldown_period: Mapped[int] = mapped_column(Integer, default=0)
    requires_approval: Mapped[bool] = mapped_column(Boolean, default=False)
    check_in_method: Mapped[Optional[str]] = mapped_column(String(10))  # QR_ONLY, GPS, BOTH

    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    paused_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (
        Index("idx_campaign_account_template", "account_id", "template_id"),
        Index("idx_campaign_account_status", "account_id", "status"),
    )

    def can_transition_to(self, new_status: str) -> bool:
        """Validate status transitions."""
        return new_status in CAMPAIGN_TRANSITIONS.get(self.status, set())
