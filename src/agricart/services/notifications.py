"""In-app notification helpers."""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy.orm import Session

from agricart.db.time import utcnow
from agricart.models import Notification

__all__ = [
    "notify",
    "latest_for_user",
    "unread_count",
    "mark_read",
    "mark_all_read",
]


def notify(
    db: Session,
    user_id: int,
    type_: str,
    message: str,
    data: dict[str, Any] | None = None,
    *,
    commit: bool = True,
) -> Notification:
    """Persist a notification for a user."""
    notification = Notification(user_id=user_id, type=type_, message=message, data=data or {})
    db.add(notification)
    if commit:
        db.commit()
        db.refresh(notification)
    return notification


def latest_for_user(db: Session, user_id: int, limit: int = 5) -> Sequence[Notification]:
    """Return the newest notifications for a user."""
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def unread_count(db: Session, user_id: int) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read_at.is_(None))
        .count()
    )


def mark_read(db: Session, user_id: int, ids: Sequence[int]) -> int:
    """Mark the caller's notifications with the given ids as read."""
    if not ids:
        return 0
    updated = (
        db.query(Notification)
        .filter(
            Notification.user_id == user_id,
            Notification.id.in_(list(ids)),
            Notification.read_at.is_(None),
        )
        .update({Notification.read_at: utcnow()}, synchronize_session=False)
    )
    db.commit()
    return int(updated or 0)


def mark_all_read(db: Session, user_id: int) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read_at.is_(None))
        .update({Notification.read_at: utcnow()}, synchronize_session=False)
    )
    db.commit()
    return int(updated or 0)
