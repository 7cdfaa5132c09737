# tests/services/test_lockout.py
"""Tests for step-backoff login and checkout lockouts."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.orm import Session

from agricart.models import CheckoutRateLimit, LoginAttempt, User
from agricart.services.lockout import (
    AccountLockedError,
    CheckoutLockoutService,
    LockoutPolicy,
    LoginLockoutService,
    format_remaining,
)

NOW = datetime(2026, 10, 18, 8, 0, tzinfo=UTC)
IP = "203.0.113.7"

POLICY = LockoutPolicy(
    max_failed_attempts=3,
    durations_minutes=(1, 3, 5, 1440),
    reset_after=timedelta(hours=24),
)


class TestLockoutPolicy:
    @pytest.mark.parametrize(
        ("failed", "level"),
        [(0, 0), (2, 0), (3, 1), (4, 2), (5, 3), (6, 4), (12, 4)],
    )
    def test_lock_level(self, failed: int, level: int) -> None:
        assert POLICY.lock_level(failed) == level

    def test_durations(self) -> None:
        assert POLICY.duration(0) == timedelta(0)
        assert POLICY.duration(1) == timedelta(minutes=1)
        assert POLICY.duration(2) == timedelta(minutes=3)
        assert POLICY.duration(3) == timedelta(minutes=5)
        assert POLICY.duration(4) == timedelta(hours=24)
        assert POLICY.duration(9) == timedelta(hours=24)

    def test_from_settings_matches_defaults(self) -> None:
        assert LockoutPolicy.from_settings() == POLICY


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (0, "0 seconds"),
        (1, "1 second"),
        (60, "1 minute"),
        (125, "2 minutes 5 seconds"),
        (86400, "24 hours"),
        (-3, "0 seconds"),
    ],
)
def test_format_remaining(seconds: int, expected: str) -> None:
    assert format_remaining(seconds) == expected


class TestLoginLockoutService:
    def _fail(self, service: LoginLockoutService, times: int, now: datetime) -> dict:
        status = {}
        for _ in range(times):
            status = service.record_failed_attempt("juan@example.com", "customer", IP, now=now)
        return status

    def test_failures_below_threshold_do_not_lock(self, db_session: Session) -> None:
        service = LoginLockoutService(db_session, POLICY)

        status = self._fail(service, 2, NOW)

        assert status["is_locked"] is False
        assert status["failed_attempts"] == 2
        assert status["attempts_remaining"] == 1
        service.check_login_allowed("juan@example.com", "customer", IP, now=NOW)

    def test_threshold_locks_for_first_duration(self, db_session: Session) -> None:
        service = LoginLockoutService(db_session, POLICY)

        status = self._fail(service, 3, NOW)

        assert status["is_locked"] is True
        assert status["lock_level"] == 1
        assert status["remaining_time"] == 60
        assert status["attempts_remaining"] == 0
        with pytest.raises(AccountLockedError) as exc_info:
            service.check_login_allowed("juan@example.com", "customer", IP, now=NOW)
        assert exc_info.value.status["remaining_time"] == 60

    def test_expired_lock_lifts_but_escalates_on_next_failure(self, db_session: Session) -> None:
        service = LoginLockoutService(db_session, POLICY)
        self._fail(service, 3, NOW)

        later = NOW + timedelta(seconds=61)
        assert service.is_locked("juan@example.com", "customer", IP, now=later) is False

        status = service.record_failed_attempt("juan@example.com", "customer", IP, now=later)
        assert status["lock_level"] == 2
        assert status["remaining_time"] == 180

    def test_counters_reset_after_quiet_period(self, db_session: Session) -> None:
        service = LoginLockoutService(db_session, POLICY)
        self._fail(service, 3, NOW)

        much_later = NOW + timedelta(hours=25)
        status = service.record_failed_attempt(
            "juan@example.com", "customer", IP, now=much_later
        )

        assert status["failed_attempts"] == 1
        assert status["lock_level"] == 0
        assert status["is_locked"] is False

    def test_lockouts_are_scoped_by_portal_and_address(self, db_session: Session) -> None:
        service = LoginLockoutService(db_session, POLICY)
        self._fail(service, 3, NOW)

        assert service.is_locked("JUAN@example.com", "customer", IP, now=NOW)
        assert not service.is_locked("juan@example.com", "admin", IP, now=NOW)
        assert not service.is_locked("juan@example.com", "customer", "198.51.100.1", now=NOW)

    def test_clear_deletes_record(self, db_session: Session) -> None:
        service = LoginLockoutService(db_session, POLICY)
        self._fail(service, 2, NOW)

        service.clear_failed_attempts("juan@example.com", "customer", IP)

        assert db_session.query(LoginAttempt).count() == 0
        status = service.get_lockout_status("juan@example.com", "customer", IP, now=NOW)
        assert status["failed_attempts"] == 0

    def test_cleanup_removes_stale_records(self, db_session: Session) -> None:
        service = LoginLockoutService(db_session, POLICY)
        self._fail(service, 1, NOW)
        stale = LoginAttempt(
            identifier="old@example.com",
            user_type="customer",
            ip_address=IP,
            failed_attempts=1,
            lock_level=0,
            created_at=NOW - timedelta(days=31),
        )
        db_session.add(stale)
        db_session.flush()

        removed = service.cleanup(now=NOW)

        assert removed == 1
        assert db_session.query(LoginAttempt).count() == 1


class TestCheckoutLockoutService:
    def test_locks_after_repeated_failures(self, db_session: Session, customer: User) -> None:
        service = CheckoutLockoutService(db_session, POLICY)

        for _ in range(3):
            status = service.record_failed_attempt(customer.id, now=NOW)

        assert status["is_locked"] is True
        with pytest.raises(AccountLockedError):
            service.check_allowed(customer.id, now=NOW)
        service.check_allowed(customer.id, now=NOW + timedelta(minutes=2))

    def test_clear_resets(self, db_session: Session, customer: User) -> None:
        service = CheckoutLockoutService(db_session, POLICY)
        service.record_failed_attempt(customer.id, now=NOW)

        service.clear(customer.id)

        assert db_session.query(CheckoutRateLimit).count() == 0
        assert service.get_status(customer.id, now=NOW)["failed_attempts"] == 0
