"""Step-backoff lockouts for repeated login and checkout failures.

Each failure increments a counter. Once the counter reaches the configured
threshold the record is locked for a duration that grows with the lock level
(by default 1 minute, 3 minutes, 5 minutes, then 24 hours). A success deletes
the record. An expired lock lifts on its own but keeps its escalation level
until no failure has been seen for ``LOCKOUT_RESET_AFTER_HOURS``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from agricart.core.settings import settings
from agricart.db.time import as_utc, utcnow
from agricart.models import CheckoutRateLimit, LoginAttempt
from agricart.services.system_lock import remaining_seconds

logger = logging.getLogger(__name__)

STALE_RECORD_DAYS = 30


@dataclass(frozen=True)
class LockoutPolicy:
    """Thresholds and durations for a step-backoff lockout."""

    max_failed_attempts: int
    durations_minutes: tuple[int, ...]
    reset_after: timedelta

    @classmethod
    def from_settings(cls) -> LockoutPolicy:
        return cls(
            max_failed_attempts=settings.login_max_failed_attempts,
            durations_minutes=tuple(settings.lockout_durations_minutes),
            reset_after=timedelta(hours=settings.lockout_reset_after_hours),
        )

    @property
    def max_level(self) -> int:
        return len(self.durations_minutes)

    def lock_level(self, failed_attempts: int) -> int:
        """Lock level reached after `failed_attempts` consecutive failures."""
        if failed_attempts < self.max_failed_attempts:
            return 0
        excess = failed_attempts - self.max_failed_attempts
        return min(self.max_level, 1 + excess)

    def duration(self, level: int) -> timedelta:
        if level <= 0:
            return timedelta(0)
        return timedelta(minutes=self.durations_minutes[min(level, self.max_level) - 1])


class AccountLockedError(RuntimeError):
    """Raised when an action is attempted while its lockout is active."""

    def __init__(self, status: dict[str, Any]) -> None:
        super().__init__("Too many failed attempts. Please try again later.")
        self.status = status


def format_remaining(seconds: int) -> str:
    """Human-readable remaining time, e.g. ``"2 minutes 5 seconds"``."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if hours:
        parts.append(f"{hours} hour{'s' if hours != 1 else ''}")
    if minutes:
        parts.append(f"{minutes} minute{'s' if minutes != 1 else ''}")
    if secs or not parts:
        parts.append(f"{secs} second{'s' if secs != 1 else ''}")
    return " ".join(parts)


Record = LoginAttempt | CheckoutRateLimit


def _is_locked(record: Record | None, now: datetime) -> bool:
    if record is None or record.lock_expires_at is None:
        return False
    return as_utc(record.lock_expires_at) > now


def _status(record: Record | None, policy: LockoutPolicy, now: datetime) -> dict[str, Any]:
    if record is None:
        return {
            "is_locked": False,
            "failed_attempts": 0,
            "lock_level": 0,
            "remaining_time": 0,
            "lock_expires_at": None,
            "attempts_remaining": policy.max_failed_attempts,
            "server_time": now.isoformat(),
        }

    locked = _is_locked(record, now)
    remaining = remaining_seconds(record.lock_expires_at, now) if locked else 0
    expires_at = as_utc(record.lock_expires_at)
    return {
        "is_locked": locked,
        "failed_attempts": record.failed_attempts,
        "lock_level": record.lock_level,
        "remaining_time": remaining,
        "lock_expires_at": expires_at.isoformat() if expires_at else None,
        "attempts_remaining": max(0, policy.max_failed_attempts - record.failed_attempts),
        "server_time": now.isoformat(),
    }


def _register_failure(record: Record, policy: LockoutPolicy, now: datetime) -> None:
    last = as_utc(record.last_attempt_at)
    if (
        last is not None
        and now - last >= policy.reset_after
        and not _is_locked(record, now)
    ):
        record.failed_attempts = 0
        record.lock_level = 0
        record.lock_expires_at = None

    record.failed_attempts = (record.failed_attempts or 0) + 1
    record.last_attempt_at = now

    level = policy.lock_level(record.failed_attempts)
    if level:
        record.lock_level = level
        record.lock_expires_at = now + policy.duration(level)


class LoginLockoutService:
    """Failed-login bookkeeping keyed by identifier, portal, and IP address."""

    def __init__(self, db: Session, policy: LockoutPolicy | None = None) -> None:
        self.db = db
        self.policy = policy or LockoutPolicy.from_settings()

    def _find(self, identifier: str, user_type: str, ip_address: str) -> LoginAttempt | None:
        return (
            self.db.query(LoginAttempt)
            .filter(
                LoginAttempt.identifier == identifier.lower(),
                LoginAttempt.user_type == user_type,
                LoginAttempt.ip_address == ip_address,
            )
            .first()
        )

    def record_failed_attempt(
        self,
        identifier: str,
        user_type: str,
        ip_address: str,
        *,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        now = now or utcnow()
        attempt = self._find(identifier, user_type, ip_address)
        if attempt is None:
            attempt = LoginAttempt(
                identifier=identifier.lower(),
                user_type=user_type,
                ip_address=ip_address,
                failed_attempts=0,
                lock_level=0,
            )
            self.db.add(attempt)

        _register_failure(attempt, self.policy, now)
        self.db.commit()
        self.db.refresh(attempt)

        status = _status(attempt, self.policy, now)
        if status["is_locked"]:
            logger.warning(
                "Login locked for %s (%s) from %s: level %d for %ss",
                identifier,
                user_type,
                ip_address,
                attempt.lock_level,
                status["remaining_time"],
            )
        else:
            logger.info(
                "Failed login for %s (%s) from %s (%d attempts)",
                identifier,
                user_type,
                ip_address,
                attempt.failed_attempts,
            )
        return status

    def clear_failed_attempts(self, identifier: str, user_type: str, ip_address: str) -> None:
        self.db.query(LoginAttempt).filter(
            LoginAttempt.identifier == identifier.lower(),
            LoginAttempt.user_type == user_type,
            LoginAttempt.ip_address == ip_address,
        ).delete(synchronize_session=False)
        self.db.commit()

    def get_lockout_status(
        self,
        identifier: str,
        user_type: str,
        ip_address: str,
        *,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        now = now or utcnow()
        return _status(self._find(identifier, user_type, ip_address), self.policy, now)

    def is_locked(
        self, identifier: str, user_type: str, ip_address: str, *, now: datetime | None = None
    ) -> bool:
        return self.get_lockout_status(identifier, user_type, ip_address, now=now)["is_locked"]

    def check_login_allowed(
        self, identifier: str, user_type: str, ip_address: str, *, now: datetime | None = None
    ) -> None:
        """Raise :class:`AccountLockedError` while the login is locked."""
        status = self.get_lockout_status(identifier, user_type, ip_address, now=now)
        if status["is_locked"]:
            raise AccountLockedError(status)

    def cleanup(self, *, now: datetime | None = None) -> int:
        """Delete records older than 30 days. Returns the number removed."""
        cutoff = (now or utcnow()) - timedelta(days=STALE_RECORD_DAYS)
        removed = (
            self.db.query(LoginAttempt)
            .filter(LoginAttempt.created_at < cutoff)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return int(removed or 0)


class CheckoutLockoutService:
    """Failed-checkout bookkeeping for a single customer."""

    def __init__(self, db: Session, policy: LockoutPolicy | None = None) -> None:
        self.db = db
        self.policy = policy or LockoutPolicy.from_settings()

    def _find(self, user_id: int) -> CheckoutRateLimit | None:
        return (
            self.db.query(CheckoutRateLimit)
            .filter(CheckoutRateLimit.user_id == user_id)
            .first()
        )

    def record_failed_attempt(self, user_id: int, *, now: datetime | None = None) -> dict[str, Any]:
        now = now or utcnow()
        limit = self._find(user_id)
        if limit is None:
            limit = CheckoutRateLimit(user_id=user_id, failed_attempts=0, lock_level=0)
            self.db.add(limit)

        _register_failure(limit, self.policy, now)
        self.db.commit()
        self.db.refresh(limit)

        status = _status(limit, self.policy, now)
        if status["is_locked"]:
            logger.warning(
                "Checkout locked for user %s: level %d for %ss",
                user_id,
                limit.lock_level,
                status["remaining_time"],
            )
        return status

    def clear(self, user_id: int) -> None:
        self.db.query(CheckoutRateLimit).filter(CheckoutRateLimit.user_id == user_id).delete(
            synchronize_session=False
        )
        self.db.commit()

    def get_status(self, user_id: int, *, now: datetime | None = None) -> dict[str, Any]:
        now = now or utcnow()
        return _status(self._find(user_id), self.policy, now)

    def check_allowed(self, user_id: int, *, now: datetime | None = None) -> None:
        status = self.get_status(user_id, now=now)
        if status["is_locked"]:
            raise AccountLockedError(status)
