"""Fixed-window request throttling for public lockout checks."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from threading import Lock

import redis

from agricart.core.settings import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThrottleResult:
    allowed: bool
    retry_after: int


class RequestThrottle:
    """Allow at most `limit` hits per key within a `window_seconds` window.

    Counters live in Redis when ``REDIS_URL`` is configured; otherwise (or
    once Redis stops answering) they are kept in-process.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: int,
        redis_url: str | None = None,
        namespace: str = "throttle",
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self.namespace = namespace
        self._redis: redis.Redis | None = None
        if redis_url:
            self._redis = redis.Redis.from_url(redis_url)
        self._lock = Lock()
        self._windows: dict[str, tuple[float, int]] = {}

    def hit(self, key: str, *, now: float | None = None) -> ThrottleResult:
        """Count a request for `key` and report whether it is allowed."""
        now = time.time() if now is None else now
        if self._redis is not None:
            try:
                return self._hit_redis(self._redis, key)
            except redis.RedisError as err:
                logger.warning("Throttle store unavailable, using in-process counters: %s", err)
                self._redis = None
        return self._hit_local(key, now)

    def _hit_redis(self, client: redis.Redis, key: str) -> ThrottleResult:
        redis_key = f"{self.namespace}:{key}"
        pipe = client.pipeline()
        pipe.incr(redis_key)
        pipe.ttl(redis_key)
        count, ttl = pipe.execute()
        if ttl is None or int(ttl) < 0:
            client.expire(redis_key, self.window_seconds)
            ttl = self.window_seconds
        if int(count) > self.limit:
            return ThrottleResult(allowed=False, retry_after=max(1, int(ttl)))
        return ThrottleResult(allowed=True, retry_after=0)

    def _hit_local(self, key: str, now: float) -> ThrottleResult:
        with self._lock:
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            count += 1
            self._windows[key] = (started, count)
        if count > self.limit:
            retry_after = max(1, math.ceil(started + self.window_seconds - now))
            return ThrottleResult(allowed=False, retry_after=retry_after)
        return ThrottleResult(allowed=True, retry_after=0)

    def reset(self) -> None:
        """Forget all in-process counters."""
        with self._lock:
            self._windows.clear()


_LOCKOUT_CHECK_THROTTLE: RequestThrottle | None = None


def get_lockout_check_throttle() -> RequestThrottle:
    """Return the process-wide throttle guarding lockout status checks."""
    global _LOCKOUT_CHECK_THROTTLE
    if _LOCKOUT_CHECK_THROTTLE is None:
        _LOCKOUT_CHECK_THROTTLE = RequestThrottle(
            limit=settings.lockout_check_rate_limit,
            window_seconds=settings.lockout_check_window_seconds,
            redis_url=settings.redis_url,
            namespace="lockout-check",
        )
    return _LOCKOUT_CHECK_THROTTLE
