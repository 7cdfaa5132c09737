"""System lock and price-review schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator


class SystemStatusResponse(BaseModel):
    """Customer-access status polled by clients."""

    status_key: str
    status_value: Literal["open", "locked", "pending_lock"]
    lock_time: datetime | None = None
    remaining_seconds: int = Field(..., ge=0)
    updated_by: int | None = None
    updated_at: datetime
    server_time: datetime


class LockActionResponse(BaseModel):
    message: str
    status: SystemStatusResponse


class ConfirmRequest(BaseModel):
    """Body for admin decisions; `confirm` must be true."""

    confirm: Literal[True] = Field(..., description="Must be true to confirm the action")


class ScheduleResponse(BaseModel):
    schedule: dict[str, Any]
    can_take_action: bool
    next_action: str | None


class ScheduleActionResponse(BaseModel):
    success: bool = True
    message: str
    schedule: dict[str, Any]


class ScheduleLockoutRequest(BaseModel):
    """Schedule a system-down window at a time or a number of minutes from now."""

    scheduled_at: datetime | None = None
    in_minutes: int | None = Field(None, ge=0, le=60 * 24 * 30)
    description: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def check_when(self) -> ScheduleLockoutRequest:
        if (self.scheduled_at is None) == (self.in_minutes is None):
            raise ValueError("Provide exactly one of scheduled_at or in_minutes")
        return self


class TrackedLockoutResponse(BaseModel):
    id: int
    status: str
    scheduled_at: str | None
    executed_at: str | None
    description: str | None
    metadata: dict[str, Any]
