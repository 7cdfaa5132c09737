"""SQLAlchemy models for marketplace accounts."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agricart.db.session import Base
from agricart.db.time import utcnow

if TYPE_CHECKING:
    from agricart.models.address import UserAddress


class UserType(StrEnum):
    """Roles a marketplace account can hold."""

    CUSTOMER = "customer"
    MEMBER = "member"
    LOGISTIC = "logistic"
    ADMIN = "admin"
    STAFF = "staff"


ADMIN_TYPES = frozenset({UserType.ADMIN, UserType.STAFF})


class User(Base):
    """A customer, member, logistic partner, or administrator."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=UserType.CUSTOMER)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    member_identifier: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)
    contact_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    addresses: Mapped[list[UserAddress]] = relationship(
        "UserAddress",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self) -> bool:
        """Return True for admin and staff accounts."""
        return self.type in ADMIN_TYPES

    @property
    def login_identifier(self) -> str:
        """Return the identifier used for login lockout bookkeeping."""
        if self.type == UserType.MEMBER and self.member_identifier:
            return self.member_identifier
        return self.email or ""
