"""One-time password requests for email and phone changes."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from agricart.db.session import Base
from agricart.db.time import utcnow


class OtpChannel(StrEnum):
    EMAIL = "email"
    PHONE = "phone"


class OtpRequest(Base):
    """Pending contact change awaiting a verification code."""

    __tablename__ = "otp_requests"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    channel: Mapped[str] = mapped_column(String(10), nullable=False)
    new_value: Mapped[str] = mapped_column(String(255), nullable=False)
    # BLAKE3 hex digest of the six-digit code.
    otp_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
