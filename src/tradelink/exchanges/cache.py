"""Read-through market data cache with single-flight refresh."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, NamedTuple, TypeVar

import structlog

from tradelink.models import MarketType, TradingPair

logger = structlog.get_logger()

T = TypeVar("T")


class CacheKey(NamedTuple):
    venue: str
    pair: TradingPair
    market_type: MarketType


@dataclass(frozen=True)
class _Entry(Generic[T]):
    value: T
    stored_at: float


class MarketDataCache(Generic[T]):
    """Latest snapshot per (venue, pair, market type).

    The owning driver is the only writer. Entries are replaced whole on
    every write and live for the life of the process.

    ``get`` runs at most one refresh per key at a time: the first stale
    reader starts a refresh task and every concurrent reader of that key
    awaits the same task, sharing its result or its exception.
    """

    def __init__(self, name: str, staleness_seconds: float = 10.0):
        self._name = name
        self._staleness = staleness_seconds
        self._entries: dict[CacheKey, _Entry[T]] = {}
        self._inflight: dict[CacheKey, asyncio.Task[T]] = {}
        self._refresh_count = 0

    @property
    def staleness_seconds(self) -> float:
        return self._staleness

    @property
    def refresh_count(self) -> int:
        return self._refresh_count

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self, key: CacheKey) -> T | None:
        """Current snapshot for ``key`` regardless of age."""
        entry = self._entries.get(key)
        return entry.value if entry else None

    def is_fresh(self, key: CacheKey) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        return time.monotonic() - entry.stored_at <= self._staleness

    def put(self, key: CacheKey, value: T) -> None:
        """Replace the snapshot stored under ``key``."""
        self._entries[key] = _Entry(value=value, stored_at=time.monotonic())

    async def get(self, key: CacheKey, loader: Callable[[], Awaitable[T]]) -> T:
        """Return a fresh snapshot, refreshing through ``loader`` if needed."""
        if self.is_fresh(key):
            return self._entries[key].value

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._refresh(key, loader))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._refresh_done(k, t))
        return await asyncio.shield(task)

    def _refresh_done(self, key: CacheKey, task: asyncio.Task[T]) -> None:
        self._inflight.pop(key, None)
        if task.cancelled():
            return
        # Readers may all have gone; retrieve the error so it is not orphaned
        error = task.exception()
        if error is not None:
            logger.debug(
                "cache_refresh_failed",
                cache=self._name,
                venue=key.venue,
                pair=str(key.pair),
                error=str(error),
            )

    async def _refresh(self, key: CacheKey, loader: Callable[[], Awaitable[T]]) -> T:
        self._refresh_count += 1
        value = await loader()
        self.put(key, value)
        logger.debug(
            "cache_refreshed",
            cache=self._name,
            venue=key.venue,
            pair=str(key.pair),
            market_type=key.market_type.value,
        )
        return value
