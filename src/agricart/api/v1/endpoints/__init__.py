"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .catalog import router as catalog_router
from .lockout import router as lockout_router
from .notifications import router as notifications_router
from .price_review import router as price_review_router
from .profile import router as profile_router
from .system import router as system_router

__all__ = [
    "auth_router",
    "catalog_router",
    "lockout_router",
    "notifications_router",
    "price_review_router",
    "profile_router",
    "system_router",
]
