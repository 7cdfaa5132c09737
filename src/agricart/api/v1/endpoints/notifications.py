"""In-app notification endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query

from agricart.api.v1.dependencies import CurrentUserDep, SessionDep
from agricart.schemas.notification import (
    LatestNotificationsResponse,
    MarkReadRequest,
    MarkReadResponse,
    NotificationResponse,
)
from agricart.services import notifications

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/latest", response_model=LatestNotificationsResponse)
async def latest_notifications(
    db: SessionDep,
    user: CurrentUserDep,
    limit: Annotated[int, Query(ge=1, le=50)] = 5,
) -> LatestNotificationsResponse:
    """Return the newest notifications and the caller's unread count."""
    items = notifications.latest_for_user(db, user.id, limit)
    return LatestNotificationsResponse(
        notifications=[NotificationResponse.model_validate(item) for item in items],
        unread_count=notifications.unread_count(db, user.id),
    )


@router.post("/mark-read", response_model=MarkReadResponse)
async def mark_read(
    body: MarkReadRequest, db: SessionDep, user: CurrentUserDep
) -> MarkReadResponse:
    return MarkReadResponse(updated=notifications.mark_read(db, user.id, body.ids))


@router.post("/mark-all-read", response_model=MarkReadResponse)
async def mark_all_read(db: SessionDep, user: CurrentUserDep) -> MarkReadResponse:
    return MarkReadResponse(updated=notifications.mark_all_read(db, user.id))
