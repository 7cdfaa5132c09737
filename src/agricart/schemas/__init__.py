"""Pydantic schemas for request and response validation."""

from .auth import LockoutCheckRequest, LockoutCheckResponse, LoginRequest, LoginResponse
from .notification import LatestNotificationsResponse, NotificationResponse
from .system import SystemStatusResponse

__all__ = [
    "LockoutCheckRequest",
    "LockoutCheckResponse",
    "LoginRequest",
    "LoginResponse",
    "LatestNotificationsResponse",
    "NotificationResponse",
    "SystemStatusResponse",
]
