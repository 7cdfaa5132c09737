"""Background maintenance of the system lock and daily price-review schedule.

The worker wakes every ``SYSTEM_LOCK_POLL_INTERVAL_SECONDS`` and:

- promotes `pending_lock` statuses whose countdown has elapsed to `locked`,
- executes admin-scheduled lockouts that have come due,
- creates today's schedule row at day rollover,
- starts the daily price-review lockout at ``DAILY_LOCKOUT_TIME`` if configured.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agricart.core.settings import settings
from agricart.db.session import SessionLocal
from agricart.db.time import utcnow
from agricart.services import price_review, system_lock

logger = logging.getLogger(__name__)


@dataclass
class TickResult:
    """What a single maintenance pass changed."""

    promoted: int = 0
    executed_lockouts: int = 0
    daily_lockout_started: bool = False


def run_maintenance(db: Session, *, now: datetime | None = None) -> TickResult:
    """Apply every due state transition once."""
    now = now or utcnow()
    result = TickResult()
    result.promoted = system_lock.promote_due_locks(db, now=now)
    result.executed_lockouts = price_review.execute_due_lockouts(db, now=now)

    record = price_review.get_or_create_today_record(db, now=now)
    lockout_at = settings.daily_lockout_time
    if (
        lockout_at is not None
        and now.time().replace(tzinfo=None) >= lockout_at
        and record.lockout_time is None
        and not record.is_locked
        and record.is_admin_action_pending
    ):
        price_review.initiate_lockout(db, now=now)
        result.daily_lockout_started = True
    return result


class SystemLockWorker:
    """Periodically applies due lock transitions in the background."""

    def __init__(
        self,
        session_factory: Callable[[], Session] | None = None,
        interval: float | None = None,
    ) -> None:
        self._session_factory = session_factory or SessionLocal
        self.interval = max(
            0.1,
            float(interval if interval is not None else settings.system_lock_poll_interval_seconds),
        )
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background loop and wait for it to finish."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _tick(self) -> TickResult:
        with self._session_factory() as db:
            return run_maintenance(db)

    async def tick(self) -> TickResult:
        """Run one maintenance pass off the event loop."""
        return await asyncio.to_thread(self._tick)

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                result = await self.tick()
            except SQLAlchemyError as e:
                logger.warning("SystemLockWorker encountered database error: %s", e)
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                logger.error(
                    "SystemLockWorker encountered data processing error: %s", e, exc_info=True
                )
            else:
                if result.promoted or result.executed_lockouts or result.daily_lockout_started:
                    logger.info(
                        "SystemLockWorker applied transitions: promoted=%d lockouts=%d daily=%s",
                        result.promoted,
                        result.executed_lockouts,
                        result.daily_lockout_started,
                    )

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except TimeoutError:
                continue
