"""Customer-access status and admin lock controls."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from agricart.api.v1.dependencies import AdminDep, SessionDep
from agricart.schemas.system import LockActionResponse, SystemStatusResponse
from agricart.services import system_lock
from agricart.services.system_lock import InvalidLockTransitionError, StatusSnapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["system"])


def _to_response(snapshot: StatusSnapshot) -> SystemStatusResponse:
    return SystemStatusResponse(
        status_key=snapshot.status_key,
        status_value=snapshot.status_value,
        lock_time=snapshot.lock_time,
        remaining_seconds=snapshot.remaining_seconds,
        updated_by=snapshot.updated_by,
        updated_at=snapshot.updated_at,
        server_time=snapshot.server_time,
    )


@router.get("/status", response_model=SystemStatusResponse)
async def get_system_status(db: SessionDep) -> SystemStatusResponse:
    """Return the customer-access status that clients poll.

    `remaining_seconds` counts down to `lock_time` while the status is
    `pending_lock`; `server_time` lets clients correct for clock skew.
    """
    return _to_response(system_lock.get_status(db))


@router.post("/lock", response_model=LockActionResponse)
async def lock_system(db: SessionDep, admin: AdminDep) -> LockActionResponse:
    """Start the grace-period countdown before customers are locked out."""
    try:
        snapshot = system_lock.schedule_lock(db, admin)
    except InvalidLockTransitionError as err:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(err)) from err
    return LockActionResponse(
        message=f"System will lock in {snapshot.remaining_seconds} seconds.",
        status=_to_response(snapshot),
    )


@router.post("/unlock", response_model=LockActionResponse)
async def unlock_system(db: SessionDep, admin: AdminDep) -> LockActionResponse:
    """Reopen the system or cancel a pending lock."""
    try:
        snapshot = system_lock.unlock(db, admin)
    except InvalidLockTransitionError as err:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(err)) from err
    return LockActionResponse(message="System unlocked.", status=_to_response(snapshot))
