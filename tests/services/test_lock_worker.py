# tests/services/test_lock_worker.py
"""Tests for the background system lock worker."""

import asyncio
import logging
from datetime import UTC, datetime, time, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agricart.core.settings import settings
from agricart.models import StatusValue, TrackingStatus, User
from agricart.services import price_review, system_lock
from agricart.services.lock_worker import SystemLockWorker, TickResult, run_maintenance

NOW = datetime(2026, 10, 18, 8, 0, tzinfo=UTC)


def test_run_maintenance_promotes_and_executes(db_session: Session, admin: User) -> None:
    system_lock.schedule_lock(db_session, admin, delay_seconds=30, now=NOW)
    lockout = price_review.schedule_lockout(db_session, NOW + timedelta(seconds=10))

    result = run_maintenance(db_session, now=NOW + timedelta(seconds=30))

    assert result.promoted == 1
    assert result.executed_lockouts == 1
    assert system_lock.get_status(db_session, now=NOW).status_value == StatusValue.LOCKED
    db_session.refresh(lockout)
    assert lockout.status == TrackingStatus.ACTIVE


def test_run_maintenance_creates_today_record(db_session: Session) -> None:
    result = run_maintenance(db_session, now=NOW)

    assert result == TickResult()
    record = price_review.get_today_record(db_session, now=NOW)
    assert record is not None
    assert record.is_locked is False


def test_daily_lockout_starts_once(db_session: Session, mocker) -> None:
    mocker.patch.object(settings, "daily_lockout_time", time(6, 0))

    before = run_maintenance(db_session, now=NOW.replace(hour=5, minute=59))
    first = run_maintenance(db_session, now=NOW)
    second = run_maintenance(db_session, now=NOW + timedelta(minutes=5))

    assert before.daily_lockout_started is False
    assert first.daily_lockout_started is True
    assert second.daily_lockout_started is False
    assert price_review.get_today_record(db_session, now=NOW).is_locked


def test_daily_lockout_disabled_by_default(db_session: Session) -> None:
    assert settings.daily_lockout_time is None

    result = run_maintenance(db_session, now=NOW.replace(hour=23))

    assert result.daily_lockout_started is False


@pytest.mark.asyncio
async def test_worker_runs_ticks_until_stopped(mocker) -> None:
    maintenance = mocker.patch(
        "agricart.services.lock_worker.run_maintenance",
        return_value=TickResult(promoted=1),
    )
    worker = SystemLockWorker(session_factory=mocker.MagicMock(), interval=0.1)

    await worker.start()
    assert worker.running
    await asyncio.sleep(0.25)
    await worker.stop()

    assert not worker.running
    assert maintenance.call_count >= 2


@pytest.mark.asyncio
async def test_worker_survives_database_errors(mocker, caplog: pytest.LogCaptureFixture) -> None:
    outcomes: list[Exception | TickResult] = [SQLAlchemyError("database is locked")]

    def _maintenance(db: object) -> TickResult:
        outcome = outcomes.pop(0) if outcomes else TickResult()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    maintenance = mocker.patch(
        "agricart.services.lock_worker.run_maintenance", side_effect=_maintenance
    )
    worker = SystemLockWorker(session_factory=mocker.MagicMock(), interval=0.1)

    with caplog.at_level(logging.WARNING, logger="agricart.services.lock_worker"):
        await worker.start()
        await asyncio.sleep(0.3)
        await worker.stop()

    assert maintenance.call_count >= 2
    assert "database is locked" in caplog.text


@pytest.mark.asyncio
async def test_tick_uses_session_factory(mocker) -> None:
    maintenance = mocker.patch(
        "agricart.services.lock_worker.run_maintenance", return_value=TickResult()
    )
    factory = mocker.MagicMock()
    worker = SystemLockWorker(session_factory=factory)

    result = await worker.tick()

    assert result == TickResult()
    factory.assert_called_once_with()
    maintenance.assert_called_once_with(factory.return_value.__enter__.return_value)
