"""Failure counters backing login and checkout lockouts."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from agricart.db.session import Base
from agricart.db.time import utcnow


class LoginAttempt(Base):
    """Failed login counter keyed by identifier, portal, and client address."""

    __tablename__ = "login_attempts"
    __table_args__ = (
        UniqueConstraint("identifier", "user_type", "ip_address", name="uq_login_attempt_key"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    identifier: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    user_type: Mapped[str] = mapped_column(String(20), nullable=False)
    ip_address: Mapped[str] = mapped_column(String(45), nullable=False)
    failed_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lock_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lock_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_attempt_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class CheckoutRateLimit(Base):
    """Failed checkout counter for a single customer."""

    __tablename__ = "checkout_rate_limits"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    failed_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lock_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lock_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_attempt_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
