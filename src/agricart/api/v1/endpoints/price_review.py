"""Admin decisions for the daily price-review lockout."""

from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta
from typing import Annotated, Any

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.orm import Session

from agricart.api.v1.dependencies import AdminDep, SessionDep
from agricart.db.time import as_utc, utcnow
from agricart.models import SystemSchedule, User
from agricart.schemas.system import (
    ConfirmRequest,
    ScheduleActionResponse,
    ScheduleLockoutRequest,
    ScheduleResponse,
    TrackedLockoutResponse,
)
from agricart.services import price_review
from agricart.services.price_review import PriceReviewError

router = APIRouter(prefix="/admin/system-lockout", tags=["admin", "system"])

Decision = Callable[[Session, User], SystemSchedule]


def _decide(db: Session, admin: User, decision: Decision, message: str) -> ScheduleActionResponse:
    try:
        record = decision(db, admin)
    except PriceReviewError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err
    return ScheduleActionResponse(message=message, schedule=price_review.schedule_to_dict(record))


@router.get("", response_model=ScheduleResponse)
async def get_schedule(db: SessionDep, admin: AdminDep) -> ScheduleResponse:
    """Return today's schedule and whether an admin decision is due."""
    record = price_review.get_or_create_today_record(db)
    return ScheduleResponse(
        schedule=price_review.schedule_to_dict(record),
        can_take_action=price_review.can_take_action(record),
        next_action=price_review.next_action(record),
    )


@router.post("/keep-prices", response_model=ScheduleActionResponse)
async def keep_prices(
    body: ConfirmRequest, db: SessionDep, admin: AdminDep
) -> ScheduleActionResponse:
    return _decide(
        db,
        admin,
        price_review.keep_prices,
        "Prices kept as is. The system is open to customers again.",
    )


@router.post("/apply-price-changes", response_model=ScheduleActionResponse)
async def apply_price_changes(
    body: ConfirmRequest, db: SessionDep, admin: AdminDep
) -> ScheduleActionResponse:
    return _decide(
        db,
        admin,
        price_review.apply_price_changes,
        "Price change window opened. Update prices, then approve or cancel.",
    )


@router.post("/cancel-price-changes", response_model=ScheduleActionResponse)
async def cancel_price_changes(
    body: ConfirmRequest, db: SessionDep, admin: AdminDep
) -> ScheduleActionResponse:
    return _decide(
        db,
        admin,
        price_review.cancel_price_changes,
        "Price changes cancelled. The system is open to customers again.",
    )


@router.post("/approve-price-changes", response_model=ScheduleActionResponse)
async def approve_price_changes(
    body: ConfirmRequest, db: SessionDep, admin: AdminDep
) -> ScheduleActionResponse:
    return _decide(
        db,
        admin,
        price_review.approve_price_changes,
        "Price changes approved. The system is open to customers again.",
    )


@router.post(
    "/schedule",
    response_model=TrackedLockoutResponse,
    status_code=status.HTTP_201_CREATED,
)
async def schedule_lockout(
    body: ScheduleLockoutRequest, db: SessionDep, admin: AdminDep
) -> dict[str, Any]:
    """Schedule a system-down window that starts the price-review lockout."""
    if body.scheduled_at is not None:
        scheduled_at = as_utc(body.scheduled_at)
    else:
        scheduled_at = utcnow() + timedelta(minutes=body.in_minutes or 0)
    lockout = price_review.schedule_lockout(
        db,
        scheduled_at,
        body.description,
        {"scheduled_by": admin.id},
    )
    return price_review.tracking_to_dict(lockout)


@router.get("/scheduled", response_model=list[TrackedLockoutResponse])
async def list_scheduled(db: SessionDep, admin: AdminDep) -> list[dict[str, Any]]:
    return [price_review.tracking_to_dict(item) for item in price_review.scheduled_lockouts(db)]


@router.get("/history", response_model=list[TrackedLockoutResponse])
async def lockout_history(
    db: SessionDep,
    admin: AdminDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> list[dict[str, Any]]:
    return [
        price_review.tracking_to_dict(item) for item in price_review.lockout_history(db, limit)
    ]


@router.post("/scheduled/{lockout_id}/cancel", response_model=TrackedLockoutResponse)
async def cancel_scheduled(lockout_id: int, db: SessionDep, admin: AdminDep) -> dict[str, Any]:
    try:
        lockout = price_review.cancel_lockout(db, lockout_id)
    except PriceReviewError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err
    return price_review.tracking_to_dict(lockout)
