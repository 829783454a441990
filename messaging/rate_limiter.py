"""
Rate Limiter - Per-User Message Throttling

Tracks the last accepted message time for each user and enforces a minimum
interval between messages from the same user.

The limiter only decides; it never sleeps. All state transitions run one at
a time under a single lock, and the lock is never held across a wait, so a
user who has to wait does not hold up anyone else. The waiting happens in
the caller's own task after it receives a non-zero wait time.

Example:
    limiter = RateLimiter(interval_ms=2000)
    waited_ms = await limiter.check_and_wait(user_id)
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Hashable

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateDecision:
    """Answer to a rate limit query: allowed now, or wait ``wait_ms`` first."""
    wait_ms: int = 0

    @property
    def allowed(self) -> bool:
        return self.wait_ms <= 0


ALLOWED = RateDecision()


class RateLimiter:
    """
    Single authority over "last activity time per user".

    Timestamps come from a monotonic clock at millisecond resolution.
    A user with no entry has never been throttled.
    """

    def __init__(self, interval_ms: int = 2000, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the rate limiter.

        Args:
            interval_ms: Minimum time between two accepted messages of one user
            clock: Monotonic clock returning seconds
        """
        self.interval_ms = interval_ms
        self._clock = clock
        self._last_times: Dict[Hashable, int] = {}
        self._lock = asyncio.Lock()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _decide(self, user_id: Hashable, now_ms: int) -> RateDecision:
        last_time = self._last_times.get(user_id)
        if last_time is None:
            return ALLOWED

        elapsed = now_ms - last_time
        if elapsed >= self.interval_ms:
            return ALLOWED

        return RateDecision(wait_ms=self.interval_ms - elapsed)

    async def query(self, user_id: Hashable) -> RateDecision:
        """
        Check whether a user may proceed, without updating anything.

        Args:
            user_id: User identifier

        Returns:
            ALLOWED, or a RateDecision carrying the remaining wait in ms
        """
        async with self._lock:
            return self._decide(user_id, self._now_ms())

    async def record(self, user_id: Hashable) -> None:
        """Set the user's last activity time to now."""
        async with self._lock:
            self._last_times[user_id] = self._now_ms()

    async def time_until_allowed(self, user_id: Hashable) -> int:
        """Milliseconds the user must wait before proceeding (0 if allowed)."""
        decision = await self.query(user_id)
        return max(0, decision.wait_ms)

    async def reset(self, user_id: Hashable) -> None:
        """Forget the rate limit state of one user."""
        async with self._lock:
            self._last_times.pop(user_id, None)

    async def reset_all(self) -> None:
        """Forget the rate limit state of every user."""
        async with self._lock:
            self._last_times.clear()

    async def check_and_wait(self, user_id: Hashable) -> int:
        """
        Check the rate limit, wait in the calling task if needed, and record.

        The decision and the record happen in one step under the lock: the
        recorded time is the moment this caller will proceed. A second
        concurrent call for the same user therefore queues up behind the
        first one instead of also seeing "allowed". Calls for different
        users never wait on each other.

        Args:
            user_id: User identifier

        Returns:
            Milliseconds waited (0 if allowed immediately)
        """
        async with self._lock:
            now_ms = self._now_ms()
            decision = self._decide(user_id, now_ms)
            self._last_times[user_id] = now_ms + decision.wait_ms

        if decision.allowed:
            return 0

        log.debug(f"Rate limiting user {user_id}, waiting {decision.wait_ms}ms")
        await asyncio.sleep(decision.wait_ms / 1000)
        return decision.wait_ms

    def tracked_count(self) -> int:
        """Number of users currently tracked."""
        return len(self._last_times)
