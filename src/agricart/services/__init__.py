"""Service layer for AgriCart."""

from .lock_worker import SystemLockWorker, run_maintenance
from .lockout import AccountLockedError, CheckoutLockoutService, LockoutPolicy, LoginLockoutService
from .system_lock import InvalidLockTransitionError, StatusSnapshot, SystemLockError

__all__ = [
    "SystemLockWorker",
    "run_maintenance",
    "AccountLockedError",
    "CheckoutLockoutService",
    "LockoutPolicy",
    "LoginLockoutService",
    "InvalidLockTransitionError",
    "StatusSnapshot",
    "SystemLockError",
]
