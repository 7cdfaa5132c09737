"""System lock, daily price review, and scheduled lockout models."""

from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agricart.db.session import Base
from agricart.db.time import utcnow


class StatusValue(StrEnum):
    """Customer access states published by the status store."""

    OPEN = "open"
    PENDING_LOCK = "pending_lock"
    LOCKED = "locked"


class AdminAction(StrEnum):
    """Daily price-review decisions."""

    PENDING = "pending"
    KEEP_PRICES = "keep_prices"
    PRICE_CHANGE = "price_change"


class PriceChangeStatus(StrEnum):
    """Follow-up state once an admin chose to change prices."""

    PENDING = "pending"
    CANCELLED = "cancelled"
    APPROVED = "approved"


class TrackingStatus(StrEnum):
    """Lifecycle of an admin-scheduled lockout window."""

    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


SYSTEM_DOWN = "system_down"


class SystemStatus(Base):
    """Single effective access status per key."""

    __tablename__ = "system_statuses"

    id: Mapped[int] = mapped_column(primary_key=True)
    status_key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    status_value: Mapped[str] = mapped_column(
        String(20), nullable=False, default=StatusValue.OPEN
    )
    lock_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


class SystemSchedule(Base):
    """One row per calendar date recording the admin's price decision."""

    __tablename__ = "system_schedule"

    id: Mapped[int] = mapped_column(primary_key=True)
    system_date: Mapped[date] = mapped_column(Date, unique=True, nullable=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    admin_action: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AdminAction.PENDING
    )
    price_change_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    lockout_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    admin_action_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    price_change_action_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    admin_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    admin_user = relationship("User")

    @property
    def is_admin_action_pending(self) -> bool:
        return self.admin_action == AdminAction.PENDING

    @property
    def is_price_change_action_pending(self) -> bool:
        return (
            self.admin_action == AdminAction.PRICE_CHANGE
            and self.price_change_status == PriceChangeStatus.PENDING
        )

    @property
    def is_ready_for_customers(self) -> bool:
        """Return True once the day's lockout no longer applies to customers."""
        if not self.is_locked:
            return True
        if self.admin_action == AdminAction.KEEP_PRICES:
            return True
        return self.admin_action == AdminAction.PRICE_CHANGE and self.price_change_status in (
            PriceChangeStatus.CANCELLED,
            PriceChangeStatus.APPROVED,
        )


class SystemTracking(Base):
    """Admin-scheduled system-down window."""

    __tablename__ = "system_tracking"

    id: Mapped[int] = mapped_column(primary_key=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TrackingStatus.SCHEDULED
    )
    action: Mapped[str] = mapped_column(String(32), nullable=False, default=SYSTEM_DOWN)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    executed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes.
    details: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
