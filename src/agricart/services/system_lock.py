"""System lock coordinator.

Publishes the customer-access status (`open`, `pending_lock`, `locked`) that
clients poll. An admin schedules a lock, which starts a short grace period
(`pending_lock`); once the countdown reaches zero the status becomes
`locked` and checkouts are refused until an admin reopens the system.

Promotion from `pending_lock` to `locked` happens lazily whenever the status
is read, and periodically from :class:`agricart.services.lock_worker.SystemLockWorker`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from agricart.core.settings import settings
from agricart.db.time import as_utc, utcnow
from agricart.models import StatusValue, SystemStatus, User

logger = logging.getLogger(__name__)


class SystemLockError(RuntimeError):
    """Base exception for system lock failures."""


class InvalidLockTransitionError(SystemLockError):
    """Raised when a requested transition is not allowed from the current state."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot {requested} while system is {current}")
        self.current = current
        self.requested = requested


@dataclass(frozen=True)
class StatusSnapshot:
    """Point-in-time view of a status row as served to clients."""

    status_key: str
    status_value: str
    lock_time: datetime | None
    remaining_seconds: int
    updated_by: int | None
    updated_at: datetime
    server_time: datetime

    def as_dict(self) -> dict[str, object]:
        return {
            "status_key": self.status_key,
            "status_value": self.status_value,
            "lock_time": self.lock_time.isoformat() if self.lock_time else None,
            "remaining_seconds": self.remaining_seconds,
            "updated_by": self.updated_by,
            "updated_at": self.updated_at.isoformat(),
            "server_time": self.server_time.isoformat(),
        }


def remaining_seconds(lock_time: datetime | None, now: datetime) -> int:
    """Whole seconds left before `lock_time`, rounded up and never negative."""
    if lock_time is None:
        return 0
    delta = (as_utc(lock_time) - as_utc(now)).total_seconds()
    return max(0, math.ceil(delta))


def get_or_create_status(db: Session, status_key: str | None = None) -> SystemStatus:
    """Return the status row for `status_key`, creating it as `open` if missing."""
    key = status_key or settings.system_lock_status_key
    status = db.query(SystemStatus).filter(SystemStatus.status_key == key).first()
    if status is None:
        status = SystemStatus(status_key=key, status_value=StatusValue.OPEN)
        db.add(status)
        db.commit()
        db.refresh(status)
    return status


def _promote_if_due(db: Session, status: SystemStatus, now: datetime) -> bool:
    if status.status_value != StatusValue.PENDING_LOCK:
        return False
    if status.lock_time is not None and as_utc(status.lock_time) > as_utc(now):
        return False
    status.status_value = StatusValue.LOCKED
    db.commit()
    db.refresh(status)
    logger.info("System status %s locked (countdown elapsed)", status.status_key)
    return True


def get_status(
    db: Session,
    status_key: str | None = None,
    *,
    now: datetime | None = None,
) -> StatusSnapshot:
    """Return the current status, applying a due `pending_lock → locked` promotion."""
    now = now or utcnow()
    status = get_or_create_status(db, status_key)
    _promote_if_due(db, status, now)

    remaining = 0
    if status.status_value == StatusValue.PENDING_LOCK:
        remaining = remaining_seconds(status.lock_time, now)

    return StatusSnapshot(
        status_key=status.status_key,
        status_value=status.status_value,
        lock_time=as_utc(status.lock_time),
        remaining_seconds=remaining,
        updated_by=status.updated_by,
        updated_at=as_utc(status.updated_at) or now,
        server_time=now,
    )


def schedule_lock(
    db: Session,
    admin: User,
    *,
    delay_seconds: int | None = None,
    status_key: str | None = None,
    now: datetime | None = None,
) -> StatusSnapshot:
    """Move an open system into `pending_lock` with a countdown to `lock_time`."""
    now = now or utcnow()
    delay = settings.system_lock_delay_seconds if delay_seconds is None else delay_seconds
    status = get_or_create_status(db, status_key)
    _promote_if_due(db, status, now)

    if status.status_value != StatusValue.OPEN:
        raise InvalidLockTransitionError(status.status_value, "schedule a lock")

    status.status_value = StatusValue.PENDING_LOCK
    status.lock_time = now + timedelta(seconds=max(0, delay))
    status.updated_by = admin.id
    db.commit()
    db.refresh(status)
    logger.info(
        "Admin %s scheduled system lock for %s (in %ss)",
        admin.id,
        status.lock_time.isoformat(),
        delay,
    )
    return get_status(db, status.status_key, now=now)


def unlock(
    db: Session,
    admin: User,
    *,
    status_key: str | None = None,
    now: datetime | None = None,
) -> StatusSnapshot:
    """Reopen a locked system, or cancel a pending lock."""
    now = now or utcnow()
    status = get_or_create_status(db, status_key)
    previous = status.status_value

    if previous == StatusValue.OPEN:
        raise InvalidLockTransitionError(previous, "unlock")

    status.status_value = StatusValue.OPEN
    status.lock_time = None
    status.updated_by = admin.id
    db.commit()
    db.refresh(status)
    logger.info("Admin %s reopened system (was %s)", admin.id, previous)
    return get_status(db, status.status_key, now=now)


def promote_due_locks(db: Session, *, now: datetime | None = None) -> int:
    """Lock every pending status whose countdown has elapsed. Returns the count."""
    now = now or utcnow()
    pending = (
        db.query(SystemStatus)
        .filter(SystemStatus.status_value == StatusValue.PENDING_LOCK)
        .all()
    )
    return sum(1 for status in pending if _promote_if_due(db, status, now))


def is_locked(db: Session, status_key: str | None = None, *, now: datetime | None = None) -> bool:
    """Return True when the status store refuses new checkouts."""
    return get_status(db, status_key, now=now).status_value == StatusValue.LOCKED
