"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    catalog_router,
    lockout_router,
    notifications_router,
    price_review_router,
    profile_router,
    system_router,
)

__all__ = [
    "auth_router",
    "catalog_router",
    "lockout_router",
    "notifications_router",
    "price_review_router",
    "profile_router",
    "system_router",
]
