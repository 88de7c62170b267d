"""
Activation models - the entitlement side of a mission.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Index, Integer, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, UUIDMixin, TimestampMixin, VersionMixin


class ActivationStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ActivationRecord(Base, UUIDMixin, TimestampMixin, VersionMixin):
    """
    "This account has turned this template on."

    One row per (account_id, template_id); the unique constraint is what
    makes a first-time activation race collapse to a single winner.
    """
    __tablename__ = "activation_records"

    account_id: Mapped[str] = mapped_column(ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    template_id: Mapped[str] = mapped_column(String(64), nullable=False)

    status: Mapped[str] = mapped_column(String(20), default=ActivationStatus.INACTIVE.value, nullable=False)

    # reward, max_participants, valid_until, cooldown_period, requires_approval, check_in_method
    config: Mapped[dict] = mapped_column(JSON, default=dict)

    activated_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    deactivated_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (
        UniqueConstraint("account_id", "template_id", name="uq_activation_account_template"),
        Index("idx_activation_account_status", "account_id", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == ActivationStatus.ACTIVE.value


class EntitlementUsage(Base, UUIDMixin, TimestampMixin, VersionMixin):
    """
    Per-account quota counters.

    Every write is a compare-and-set on `version` (or a guarded atomic
    expression), never a read-modify-write from Python.
    """
    __tablename__ = "entitlement_usage"

    account_id: Mapped[str] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    active_campaigns: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    participants_this_month: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    period: Mapped[str] = mapped_column(String(7), nullable=False)  # YYYY-MM
