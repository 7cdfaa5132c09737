"""Client-side poller for the customer-access status.

Clients poll ``GET /api/v1/system/status`` and derive the lock countdown
from ``lock_time`` corrected by the offset between the server clock and the
local clock at the moment the response arrived. A failed poll keeps the
last known state and waits for the next tick.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import httpx

from agricart.db.time import as_utc, utcnow

logger = logging.getLogger(__name__)

STATUS_PATH = "/api/v1/system/status"
DEFAULT_POLL_INTERVAL = 5.0

TEN_MINUTES = 600
FIVE_MINUTES = 300


def format_countdown(seconds: float) -> str:
    """Render remaining seconds as ``HH:MM:SS``; negative values show zero."""
    total = max(0, int(math.ceil(seconds)))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def warning_level(remaining: float) -> str | None:
    """Banner level shown while a lock is approaching."""
    if FIVE_MINUTES < remaining <= TEN_MINUTES:
        return "ten_minutes"
    if 0 < remaining <= FIVE_MINUTES:
        return "five_minutes"
    return None


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


@dataclass
class ClientLockState:
    """Last status seen by the client."""

    status_value: str = "open"
    lock_time: datetime | None = None
    server_offset: timedelta = timedelta(0)
    updated_by: int | None = None
    received_at: datetime | None = None

    @property
    def is_locked(self) -> bool:
        return self.status_value == "locked"

    @property
    def is_pending(self) -> bool:
        return self.status_value == "pending_lock"


StateListener = Callable[[ClientLockState], Awaitable[None]]


class SystemStatusPoller:
    """Polls the status endpoint and tracks the lock countdown."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        client: httpx.AsyncClient | None = None,
        interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], datetime] = utcnow,
        on_change: StateListener | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(interval),
        )
        self.interval = interval
        self._clock = clock
        self._on_change = on_change
        self.state = ClientLockState()
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    def countdown_remaining(self, now: datetime | None = None) -> int:
        """Seconds until the pending lock takes effect, by the server's clock."""
        if not self.state.is_pending or self.state.lock_time is None:
            return 0
        server_now = (now or self._clock()) + self.state.server_offset
        return max(0, math.ceil((self.state.lock_time - server_now).total_seconds()))

    async def poll(self) -> ClientLockState | None:
        """Fetch the status once. Returns None, keeping the last state, on failure."""
        try:
            response = await self._client.get(STATUS_PATH)
            response.raise_for_status()
            payload = response.json()
            received_at = self._clock()
            server_time = _parse_time(payload["server_time"])
            state = ClientLockState(
                status_value=payload["status_value"],
                lock_time=_parse_time(payload.get("lock_time")),
                server_offset=(server_time - received_at) if server_time else timedelta(0),
                updated_by=payload.get("updated_by"),
                received_at=received_at,
            )
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning("System status poll failed, keeping last state: %s", e)
            return None

        changed = state.status_value != self.state.status_value
        self.state = state
        if changed:
            logger.info("System status changed to %s", state.status_value)
            if self._on_change is not None:
                await self._on_change(state)
        return state

    async def _poll_cycle(self) -> float:
        """Poll, re-polling at once when a countdown has already run out."""
        await self.poll()
        if self.state.is_pending:
            remaining = self.countdown_remaining()
            if remaining == 0:
                await self.poll()
                remaining = self.countdown_remaining()
            if remaining > 0:
                return min(self.interval, float(remaining))
        return self.interval

    async def start(self) -> None:
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is not None:
            self._stopping.set()
            await self._task
            self._task = None
        if self._owns_client:
            await self._client.aclose()

    async def _run(self) -> None:
        while not self._stopping.is_set():
            delay = await self._poll_cycle()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=delay)
            except TimeoutError:
                continue
