"""
Portal Backend - Fixed Window Rate Limiter
============================================

What:  Per-identifier, per-scope request counters over fixed time windows.
How:   One dict of RateLimitRecord keyed by "<scope>:<identifier>:<window_start>".
       Every check increments the counter first and then compares it with
       the scope limit, so the request that crosses the limit is counted too.
       A RateLimitSweeper task periodically drops records whose window ended.
Who:   Built once by create_app() and stored on app.state.rate_limiter;
       consumed through the RateLimitGuard dependency.

Algorithm: Fixed Window Counter
    window_start = floor(now / window) * window
    reset_time   = window_start + window

    Known trade-off: a client can send `limit` requests at the very end of one
    window and `limit` more at the start of the next one.

Scaling:
    State is per process. Multiple workers or instances each enforce their
    own counters, so the effective limit is limit x processes.
"""

import asyncio
import logging
import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

DEFAULT_IP = "127.0.0.1"


class RateLimitScope(str, Enum):
    GENERAL = "general"
    UPLOAD = "upload"
    CLIENT_LOGS = "client_logs"


@dataclass
class RateLimitRecord:
    count: int
    reset_time: float  # epoch seconds


class RateLimitDecision(BaseModel):
    """Outcome of a single RateLimiter.check() call."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds

    @property
    def reset_at_ms(self) -> int:
        return int(self.reset_at * 1000)

    @property
    def reset_at_iso(self) -> str:
        return (
            datetime.fromtimestamp(self.reset_at, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )

    def retry_after(self, now: float) -> int:
        """Whole seconds until the window resets, never negative."""
        return max(0, math.ceil(self.reset_at - now))


class RateLimiter:
    """
    In-memory fixed window rate limiter.

    Args:
        limits:  Max requests per window, keyed by scope name
        window:  Window length in seconds
        clock:   Returns the current epoch time in seconds (injectable for tests)
    """

    def __init__(
        self,
        limits: Mapping[str, int],
        window: int = 60,
        clock: Callable[[], float] = time.time,
    ):
        if window <= 0:
            raise ValueError("window must be positive")
        self._limits = {_scope_name(scope): limit for scope, limit in limits.items()}
        self._window = window
        self._clock = clock
        self._records: Dict[str, RateLimitRecord] = {}
        # Sync callers may run on worker threads
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings, clock: Callable[[], float] = time.time) -> "RateLimiter":
        return cls(
            limits={
                RateLimitScope.GENERAL: settings.rate_limit_general,
                RateLimitScope.UPLOAD: settings.rate_limit_upload,
                RateLimitScope.CLIENT_LOGS: settings.rate_limit_client_logs,
            },
            window=settings.rate_limit_window,
            clock=clock,
        )

    def now(self) -> float:
        """Current time from the limiter's clock, in epoch seconds."""
        return self._clock()

    @property
    def window(self) -> int:
        return self._window

    def limit_for(self, scope) -> int:
        name = _scope_name(scope)
        try:
            return self._limits[name]
        except KeyError:
            raise ValueError(f"Unknown rate limit scope '{name}'") from None

    def check(self, identifier: str, scope=RateLimitScope.GENERAL) -> RateLimitDecision:
        """
        Count one request for `identifier` in `scope` and decide on it.

        The counter is incremented before the comparison, so a denied request
        still consumes a slot in the current window.
        """
        name = _scope_name(scope)
        limit = self.limit_for(name)
        now = self.now()
        window_start = math.floor(now / self._window) * self._window
        key = f"{name}:{identifier}:{window_start}"

        with self._lock:
            record = self._records.get(key)
            if record is None:
                record = RateLimitRecord(count=0, reset_time=window_start + self._window)
                self._records[key] = record
            record.count += 1
            count = record.count
            reset_time = record.reset_time

        allowed = count <= limit
        if not allowed:
            logger.warning(
                "Rate limit exceeded for %s in scope %s: %d/%d",
                identifier, name, count, limit,
            )
        return RateLimitDecision(
            allowed=allowed,
            limit=limit,
            remaining=max(0, limit - count),
            reset_at=reset_time,
        )

    def sweep(self, now: Optional[float] = None) -> int:
        """Remove every record whose window has ended. Returns the number removed."""
        if now is None:
            now = self.now()
        with self._lock:
            expired = [key for key, record in self._records.items() if now > record.reset_time]
            for key in expired:
                del self._records[key]
        if expired:
            logger.debug("Swept %d expired rate limit records", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class RateLimitSweeper:
    """
    Background task that calls limiter.sweep() every `interval` seconds.

    Started and stopped by the application lifespan.
    """

    def __init__(self, limiter: RateLimiter, interval: float = 60.0):
        self._limiter = limiter
        self._interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="rate-limit-sweeper")
        logger.info("Rate limit sweeper started (interval=%.1fs)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Rate limit sweeper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self._limiter.sweep()
            except Exception:
                logger.exception("Rate limit sweep failed")


def resolve_identifier(headers: Mapping[str, str], user_id: Optional[str] = None) -> str:
    """
    Pick the rate limit identifier for a request.

    Authenticated requests are counted per user. Anonymous ones are counted
    per client IP: the first X-Forwarded-For entry, then X-Real-IP, then the
    loopback address.
    """
    if user_id:
        return f"user:{user_id}"

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return f"ip:{first}"

    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return f"ip:{real_ip.strip()}"

    return f"ip:{DEFAULT_IP}"


def _scope_name(scope) -> str:
    return scope.value if isinstance(scope, RateLimitScope) else str(scope)
