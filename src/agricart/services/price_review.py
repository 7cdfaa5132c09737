"""Daily price-review lockout and admin-scheduled system-down windows."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from sqlalchemy.orm import Session

from agricart.db.time import as_utc, utcnow
from agricart.models import (
    AdminAction,
    PriceChangeStatus,
    StatusValue,
    SystemSchedule,
    SystemTracking,
    TrackingStatus,
    User,
)
from agricart.models.system import SYSTEM_DOWN
from agricart.services import system_lock

logger = logging.getLogger(__name__)

ACTION_NOT_AVAILABLE = "Action not available at this time."


class PriceReviewError(RuntimeError):
    """Raised when a price-review action is not available."""


def _today(now: datetime | None = None) -> date:
    return (now or utcnow()).date()


def get_today_record(db: Session, *, now: datetime | None = None) -> SystemSchedule | None:
    return (
        db.query(SystemSchedule)
        .filter(SystemSchedule.system_date == _today(now))
        .first()
    )


def get_or_create_today_record(db: Session, *, now: datetime | None = None) -> SystemSchedule:
    """Return today's schedule row, creating an unlocked one at day rollover."""
    record = get_today_record(db, now=now)
    if record is None:
        record = SystemSchedule(
            system_date=_today(now),
            is_locked=False,
            admin_action=AdminAction.PENDING,
            price_change_status=None,
        )
        db.add(record)
        db.commit()
        db.refresh(record)
        logger.info("Created system schedule for %s", record.system_date.isoformat())
    return record


def initiate_lockout(db: Session, *, now: datetime | None = None) -> SystemSchedule:
    """Lock today's schedule pending an admin decision."""
    now = now or utcnow()
    record = get_or_create_today_record(db, now=now)
    record.is_locked = True
    record.lockout_time = now
    record.admin_action = AdminAction.PENDING
    record.price_change_status = None
    db.commit()
    db.refresh(record)
    logger.info("Daily price-review lockout started for %s", record.system_date.isoformat())
    return record


def can_take_action(record: SystemSchedule) -> bool:
    return record.is_locked and record.is_admin_action_pending


def next_action(record: SystemSchedule) -> str | None:
    if record.is_admin_action_pending:
        return "admin_decision"
    if record.is_price_change_action_pending:
        return "price_change_action"
    return None


def _require_today(db: Session, now: datetime | None) -> SystemSchedule:
    record = get_today_record(db, now=now)
    if record is None:
        raise PriceReviewError(ACTION_NOT_AVAILABLE)
    return record


def _complete_tracked_lockouts(db: Session) -> None:
    active = (
        db.query(SystemTracking)
        .filter(
            SystemTracking.action == SYSTEM_DOWN,
            SystemTracking.status == TrackingStatus.ACTIVE,
        )
        .all()
    )
    for lockout in active:
        lockout.status = TrackingStatus.COMPLETED


def keep_prices(db: Session, admin: User, *, now: datetime | None = None) -> SystemSchedule:
    """Admin keeps prices as they are and restores customer access."""
    now = now or utcnow()
    record = _require_today(db, now)
    if not can_take_action(record):
        raise PriceReviewError(ACTION_NOT_AVAILABLE)

    record.is_locked = False
    record.admin_action = AdminAction.KEEP_PRICES
    record.admin_action_time = now
    record.admin_user_id = admin.id
    _complete_tracked_lockouts(db)
    db.commit()
    db.refresh(record)
    logger.info("Admin %s kept prices as is for %s", admin.id, record.system_date.isoformat())
    return record


def apply_price_changes(db: Session, admin: User, *, now: datetime | None = None) -> SystemSchedule:
    """Admin opens a price-change window; customers stay locked out."""
    now = now or utcnow()
    record = _require_today(db, now)
    if not can_take_action(record):
        raise PriceReviewError(ACTION_NOT_AVAILABLE)

    record.admin_action = AdminAction.PRICE_CHANGE
    record.admin_action_time = now
    record.admin_user_id = admin.id
    record.price_change_status = PriceChangeStatus.PENDING
    db.commit()
    db.refresh(record)
    logger.info(
        "Admin %s decided to apply price changes for %s",
        admin.id,
        record.system_date.isoformat(),
    )
    return record


def _finish_price_change(
    db: Session, admin: User, outcome: PriceChangeStatus, now: datetime | None
) -> SystemSchedule:
    now = now or utcnow()
    record = _require_today(db, now)
    if not record.is_price_change_action_pending:
        raise PriceReviewError(ACTION_NOT_AVAILABLE)

    record.is_locked = False
    record.price_change_status = outcome
    record.price_change_action_time = now
    record.admin_user_id = admin.id
    _complete_tracked_lockouts(db)
    db.commit()
    db.refresh(record)
    logger.info(
        "Admin %s %s price changes for %s",
        admin.id,
        outcome.value,
        record.system_date.isoformat(),
    )
    return record


def cancel_price_changes(db: Session, admin: User, *, now: datetime | None = None) -> SystemSchedule:
    return _finish_price_change(db, admin, PriceChangeStatus.CANCELLED, now)


def approve_price_changes(db: Session, admin: User, *, now: datetime | None = None) -> SystemSchedule:
    return _finish_price_change(db, admin, PriceChangeStatus.APPROVED, now)


def is_price_change_window_open(db: Session, *, now: datetime | None = None) -> bool:
    record = get_today_record(db, now=now)
    return record is not None and record.is_price_change_action_pending


def lockout_message(record: SystemSchedule) -> str:
    if record.is_admin_action_pending:
        return (
            "System is temporarily unavailable while administrators review daily "
            "pricing updates. Please check back later."
        )
    if record.is_price_change_action_pending:
        return (
            "System is temporarily unavailable while administrators finalize "
            "pricing changes. Please check back later."
        )
    return "System is temporarily unavailable. Please check back later."


def schedule_to_dict(record: SystemSchedule) -> dict[str, Any]:
    admin = record.admin_user
    return {
        "id": record.id,
        "system_date": record.system_date.isoformat(),
        "is_locked": record.is_locked,
        "admin_action": record.admin_action,
        "price_change_status": record.price_change_status,
        "lockout_time": _iso(record.lockout_time),
        "admin_action_time": _iso(record.admin_action_time),
        "price_change_action_time": _iso(record.price_change_action_time),
        "admin_user": (
            {"id": admin.id, "name": admin.name, "email": admin.email} if admin else None
        ),
    }


def _iso(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


# --- Tracked lockouts -------------------------------------------------------------


def schedule_lockout(
    db: Session,
    scheduled_at: datetime,
    description: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> SystemTracking:
    lockout = SystemTracking(
        status=TrackingStatus.SCHEDULED,
        action=SYSTEM_DOWN,
        scheduled_at=scheduled_at,
        description=description or "Scheduled system lockout",
        details=metadata or {},
    )
    db.add(lockout)
    db.commit()
    db.refresh(lockout)
    logger.info("System lockout %s scheduled for %s", lockout.id, scheduled_at.isoformat())
    return lockout


def due_lockouts(db: Session, *, now: datetime | None = None) -> list[SystemTracking]:
    now = now or utcnow()
    return (
        db.query(SystemTracking)
        .filter(
            SystemTracking.action == SYSTEM_DOWN,
            SystemTracking.status == TrackingStatus.SCHEDULED,
            SystemTracking.scheduled_at <= now,
        )
        .order_by(SystemTracking.scheduled_at)
        .all()
    )


def execute_due_lockouts(db: Session, *, now: datetime | None = None) -> int:
    """Activate every due scheduled lockout and lock today's schedule."""
    now = now or utcnow()
    executed = 0
    for lockout in due_lockouts(db, now=now):
        lockout.status = TrackingStatus.ACTIVE
        lockout.executed_at = now
        db.commit()
        initiate_lockout(db, now=now)
        executed += 1
        logger.info(
            "Scheduled system lockout %s executed (%s)",
            lockout.id,
            lockout.description,
        )
    return executed


def cancel_lockout(db: Session, lockout_id: int) -> SystemTracking:
    lockout = db.get(SystemTracking, lockout_id)
    if lockout is None or lockout.status != TrackingStatus.SCHEDULED:
        raise PriceReviewError(ACTION_NOT_AVAILABLE)
    lockout.status = TrackingStatus.CANCELLED
    db.commit()
    db.refresh(lockout)
    logger.info("System lockout %s cancelled", lockout.id)
    return lockout


def scheduled_lockouts(db: Session) -> list[SystemTracking]:
    return (
        db.query(SystemTracking)
        .filter(
            SystemTracking.action == SYSTEM_DOWN,
            SystemTracking.status.in_([TrackingStatus.SCHEDULED, TrackingStatus.ACTIVE]),
        )
        .order_by(SystemTracking.scheduled_at)
        .all()
    )


def lockout_history(db: Session, limit: int = 10) -> list[SystemTracking]:
    return (
        db.query(SystemTracking)
        .filter(
            SystemTracking.action == SYSTEM_DOWN,
            SystemTracking.status.in_([TrackingStatus.COMPLETED, TrackingStatus.CANCELLED]),
        )
        .order_by(SystemTracking.scheduled_at.desc())
        .limit(limit)
        .all()
    )


def tracking_to_dict(lockout: SystemTracking) -> dict[str, Any]:
    return {
        "id": lockout.id,
        "status": lockout.status,
        "scheduled_at": _iso(lockout.scheduled_at),
        "executed_at": _iso(lockout.executed_at),
        "description": lockout.description,
        "metadata": lockout.details or {},
    }


def _active_tracked_lockout(db: Session, now: datetime) -> SystemTracking | None:
    return (
        db.query(SystemTracking)
        .filter(
            SystemTracking.action == SYSTEM_DOWN,
            SystemTracking.status == TrackingStatus.ACTIVE,
            SystemTracking.scheduled_at <= now,
        )
        .order_by(SystemTracking.scheduled_at.desc())
        .first()
    )


# --- Customer access ---------------------------------------------------------------


def customer_lockout_info(db: Session, *, now: datetime | None = None) -> dict[str, Any] | None:
    """Return lockout details when customers must be refused, else None.

    Due scheduled lockouts are executed first so a request arriving between
    worker ticks still sees them.
    """
    now = now or utcnow()
    execute_due_lockouts(db, now=now)

    tracked = _active_tracked_lockout(db, now)
    if tracked is not None:
        return {
            "type": "scheduled",
            "date": as_utc(tracked.scheduled_at).date().isoformat(),
            "lockout_time": _iso(tracked.executed_at or tracked.scheduled_at),
            "description": tracked.description,
            "message": tracked.description
            or (
                "System is temporarily unavailable due to scheduled maintenance. "
                "Please check back later."
            ),
            "status": tracked.status,
        }

    record = get_today_record(db, now=now)
    if record is not None and not record.is_ready_for_customers:
        return {
            "type": "daily",
            "date": record.system_date.isoformat(),
            "lockout_time": _iso(record.lockout_time),
            "admin_action": record.admin_action,
            "price_change_status": record.price_change_status,
            "message": lockout_message(record),
        }

    snapshot = system_lock.get_status(db, now=now)
    if snapshot.status_value == StatusValue.LOCKED:
        return {
            "type": "status",
            "lockout_time": snapshot.lock_time.isoformat() if snapshot.lock_time else None,
            "message": "System is locked for price updates. Please check back later.",
        }
    return None
