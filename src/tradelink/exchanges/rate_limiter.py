"""Rolling-window rate limiting per venue and per channel."""

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

import structlog

from tradelink.exchanges.errors import RateLimiterClosed

logger = structlog.get_logger()


class Channel(str, Enum):
    """Rate-limit scope. Each channel has its own budget."""

    PUBLIC = "public"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class RateLimitBudget:
    """``max_calls`` permitted per rolling ``window_seconds``.

    A zero window or zero call count means the venue publishes no limit.
    """

    window_seconds: float
    max_calls: int

    @property
    def unlimited(self) -> bool:
        return self.window_seconds <= 0 or self.max_calls <= 0


# Default per-venue budgets: channel -> (window seconds, max calls)
DEFAULT_VENUE_LIMITS: dict[str, dict[Channel, RateLimitBudget]] = {
    "okex": {
        Channel.PUBLIC: RateLimitBudget(window_seconds=2.0, max_calls=20),
        Channel.AUTHENTICATED: RateLimitBudget(window_seconds=2.0, max_calls=10),
    },
    "huobihadax": {
        Channel.PUBLIC: RateLimitBudget(window_seconds=10.0, max_calls=100),
        Channel.AUTHENTICATED: RateLimitBudget(window_seconds=10.0, max_calls=100),
    },
    "localbitcoins": {
        Channel.PUBLIC: RateLimitBudget(window_seconds=0.0, max_calls=0),
        Channel.AUTHENTICATED: RateLimitBudget(window_seconds=0.0, max_calls=0),
    },
}

FALLBACK_BUDGET = RateLimitBudget(window_seconds=1.0, max_calls=10)


@dataclass
class RateLimitMetrics:
    """Tracks rate limiter performance metrics."""

    total_requests: int = 0
    throttled_requests: int = 0
    total_wait_time_ms: float = 0.0
    _recent_request_times: list[float] = field(default_factory=list)

    @property
    def avg_wait_ms(self) -> float:
        if self.throttled_requests == 0:
            return 0.0
        return self.total_wait_time_ms / self.throttled_requests

    @property
    def requests_per_second(self) -> float:
        """Compute actual requests/second over the last 60 seconds."""
        now = time.monotonic()
        cutoff = now - 60.0
        self._recent_request_times = [
            t for t in self._recent_request_times if t > cutoff
        ]
        count = len(self._recent_request_times)
        if count == 0:
            return 0.0
        window = now - self._recent_request_times[0]
        if window <= 0:
            return float(count)
        return count / window

    def record_request(self, wait_ms: float = 0.0) -> None:
        """Record a request with optional wait time."""
        self.total_requests += 1
        self._recent_request_times.append(time.monotonic())
        if wait_ms > 0:
            self.throttled_requests += 1
            self.total_wait_time_ms += wait_ms

    def to_dict(self) -> dict:
        return {
            "total_requests": self.total_requests,
            "throttled_requests": self.throttled_requests,
            "avg_wait_ms": round(self.avg_wait_ms, 2),
            "current_rps": round(self.requests_per_second, 2),
        }


class RateLimiter:
    """Rolling-window gate for one venue channel.

    Every admission is logged with the time it is allowed to go out. A new
    call is scheduled no earlier than one full window after the admission
    ``max_calls`` places before it, so no window of ``window_seconds`` ever
    holds more than ``max_calls`` calls. Slots free up continuously as old
    admissions age out. ``acquire()`` books its slot under the lock, which
    may lie in the future, and then sleeps until it arrives. The lock is
    FIFO, so slots are handed out in arrival order and no waiter starves.
    """

    def __init__(self, budget: RateLimitBudget, name: str = "default"):
        self._budget = budget
        self._name = name
        self._admissions: deque[float] = deque()
        self._lock = asyncio.Lock()
        self._metrics = RateLimitMetrics()
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def budget(self) -> RateLimitBudget:
        return self._budget

    @property
    def metrics(self) -> RateLimitMetrics:
        return self._metrics

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def tokens_remaining(self) -> float:
        """Calls still admissible now; negative while callers hold future slots."""
        if self._budget.unlimited:
            return float("inf")
        self._expire(time.monotonic())
        return float(self._budget.max_calls - len(self._admissions))

    def _expire(self, now: float) -> None:
        cutoff = now - self._budget.window_seconds
        while self._admissions and self._admissions[0] <= cutoff:
            self._admissions.popleft()

    def _next_slot(self, now: float) -> float:
        slot = now
        if len(self._admissions) >= self._budget.max_calls:
            oldest_in_window = self._admissions[-self._budget.max_calls]
            slot = max(slot, oldest_in_window + self._budget.window_seconds)
        if self._admissions:
            # Keep the log ordered so later bookings see earlier ones
            slot = max(slot, self._admissions[-1])
        return slot

    async def acquire(self) -> float:
        """Wait for a slot under this channel's budget.

        Returns:
            Wait time in seconds (0.0 if no wait was needed).

        Raises:
            RateLimiterClosed: if the limiter is closed before the slot opens.
        """
        if self._closed:
            raise RateLimiterClosed(f"Rate limiter {self._name} is closed")

        if self._budget.unlimited:
            self._metrics.record_request(wait_ms=0.0)
            return 0.0

        async with self._lock:
            now = time.monotonic()
            self._expire(now)
            slot = self._next_slot(now)
            self._admissions.append(slot)
            wait_seconds = slot - now
            if wait_seconds <= 0.0:
                self._metrics.record_request(wait_ms=0.0)
                return 0.0

        try:
            await asyncio.sleep(wait_seconds)
        except asyncio.CancelledError:
            # Give the slot back so later bookings are not pushed out.
            self._admissions.remove(slot)
            raise

        if self._closed:
            raise RateLimiterClosed(f"Rate limiter {self._name} is closed")

        wait_ms = wait_seconds * 1000.0
        self._metrics.record_request(wait_ms=wait_ms)
        logger.debug(
            "rate_limiter_throttled",
            limiter=self._name,
            wait_ms=round(wait_ms, 1),
            tokens_remaining=self.tokens_remaining,
        )
        return wait_seconds

    def close(self) -> None:
        """Reject any further acquisitions."""
        self._closed = True

    def to_dict(self) -> dict:
        """Return rate limiter state for diagnostics."""
        return {
            "name": self._name,
            "window_seconds": self._budget.window_seconds,
            "max_calls": self._budget.max_calls,
            "tokens_remaining": self.tokens_remaining,
            "metrics": self._metrics.to_dict(),
        }


class VenueRateLimiter:
    """Independent per-channel budgets for a single venue."""

    def __init__(
        self,
        venue: str,
        budgets: dict[Channel, RateLimitBudget] | None = None,
    ):
        self._venue = venue
        defaults = DEFAULT_VENUE_LIMITS.get(venue, {})
        merged = {**defaults, **(budgets or {})}
        self._limiters = {
            channel: RateLimiter(
                merged.get(channel, FALLBACK_BUDGET),
                name=f"{venue}:{channel.value}",
            )
            for channel in Channel
        }

    @property
    def venue(self) -> str:
        return self._venue

    def limiter(self, channel: Channel) -> RateLimiter:
        return self._limiters[channel]

    async def acquire(self, channel: Channel) -> float:
        return await self._limiters[channel].acquire()

    def close(self) -> None:
        for limiter in self._limiters.values():
            limiter.close()

    def to_dict(self) -> dict:
        return {
            "venue": self._venue,
            "channels": {
                channel.value: limiter.to_dict()
                for channel, limiter in self._limiters.items()
            },
        }
