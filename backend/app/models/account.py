"""
Account models - businesses and their external-account connections.

Both tables are owned by external flows (level approvals, billing, OAuth);
this service only reads them.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List

from sqlalchemy import String, Boolean, Integer, Float, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, UUIDMixin, TimestampMixin


class SubscriptionTier(str, Enum):
    """Paid plans for level 2+ businesses."""
    STARTER = "STARTER"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"


class Account(Base, UUIDMixin, TimestampMixin):
    """
    A business on the marketplace.

    `level` (1-6) is assigned by the admin approval process and
    `subscription_tier` by billing; neither is written here.
    """
    __tablename__ = "accounts"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    subscription_tier: Mapped[Optional[str]] = mapped_column(String(20))  # STARTER, SILVER, GOLD, PLATINUM

    # Registered location (GPS check-in policy reference point)
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Relationships
    connections: Mapped[List["AccountConnection"]] = relationship(
        "AccountConnection", back_populates="account", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_account_level", "level"),
    )


class AccountConnection(Base, UUIDMixin, TimestampMixin):
    """
    An external account linked to a business (Google Business Profile,
    Instagram, ...). Only presence matters to activation gating.
    """
    __tablename__ = "account_connections"

    account_id: Mapped[str] = mapped_column(ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    tag: Mapped[str] = mapped_column(String(50), nullable=False)  # google-business, instagram, facebook, tiktok
    connected: Mapped[bool] = mapped_column(Boolean, default=True)
    connected_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    account: Mapped["Account"] = relationship("Account", back_populates="connections")

    __table_args__ = (
        UniqueConstraint("account_id", "tag", name="uq_account_connection_tag"),
    )
