"""Public lockout status checks used by the login pages."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, HTTPException, Request, status

from agricart.api.v1.dependencies import SessionDep, client_ip
from agricart.schemas.auth import LockoutCheckRequest, LockoutCheckResponse
from agricart.services.lockout import LoginLockoutService, format_remaining
from agricart.services.throttle import get_lockout_check_throttle

router = APIRouter(prefix="/lockout", tags=["authentication"])


@router.post("/{user_type}/check", response_model=LockoutCheckResponse)
async def check_lockout(
    user_type: Literal["customer", "admin", "member", "logistic"],
    body: LockoutCheckRequest,
    request: Request,
    db: SessionDep,
) -> LockoutCheckResponse:
    """Report the login lockout state for an identifier on a portal."""
    ip_address = client_ip(request)
    verdict = get_lockout_check_throttle().hit(ip_address)
    if not verdict.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "Too many requests",
                "message": "Too many lockout status checks. Please wait before trying again.",
                "retry_after": verdict.retry_after,
            },
            headers={"Retry-After": str(verdict.retry_after)},
        )

    lockout = LoginLockoutService(db).get_lockout_status(
        body.identifier.strip(), user_type, ip_address
    )
    return LockoutCheckResponse(
        locked=lockout["is_locked"],
        failed_attempts=lockout["failed_attempts"],
        lock_level=lockout["lock_level"],
        remaining_time=lockout["remaining_time"],
        lock_expires_at=lockout["lock_expires_at"],
        server_time=lockout["server_time"],
        formatted_time=(
            format_remaining(lockout["remaining_time"]) if lockout["is_locked"] else None
        ),
    )
