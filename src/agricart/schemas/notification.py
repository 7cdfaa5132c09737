"""Notification schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NotificationResponse(BaseModel):
    id: int
    type: str
    message: str
    data: dict[str, Any] | None = None
    read_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LatestNotificationsResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


class MarkReadRequest(BaseModel):
    ids: list[int] = Field(..., min_length=1)


class MarkReadResponse(BaseModel):
    updated: int
