"""Rate-limited request dispatch for a single venue."""

import asyncio
from collections import Counter

import structlog

from tradelink.exchanges.errors import (
    DispatchTimeout,
    ExchangeError,
    TransportError,
)
from tradelink.exchanges.rate_limiter import Channel, VenueRateLimiter
from tradelink.exchanges.transport import RawResponse, RequestSpec, Transport

logger = structlog.get_logger()


class RequestDispatcher:
    """Every outbound call to a venue passes through here.

    Call order: rate limiter -> transport (bounded by ``timeout``) ->
    outcome classification. There is no retry: one dispatch spends exactly
    one rate-limit token whatever the outcome, and retry safety is a
    per-operation decision left to the driver's caller.
    """

    def __init__(
        self,
        venue: str,
        transport: Transport,
        rate_limiter: VenueRateLimiter | None = None,
        timeout: float = 15.0,
    ):
        self._venue = venue
        self._transport = transport
        self._rate_limiter = rate_limiter or VenueRateLimiter(venue)
        self._timeout = timeout
        self._dispatch_count: Counter[Channel] = Counter()

    @property
    def venue(self) -> str:
        return self._venue

    @property
    def rate_limiter(self) -> VenueRateLimiter:
        return self._rate_limiter

    @property
    def transport(self) -> Transport:
        return self._transport

    def dispatch_count(self, channel: Channel | None = None) -> int:
        if channel is None:
            return sum(self._dispatch_count.values())
        return self._dispatch_count[channel]

    async def execute(
        self, request: RequestSpec, channel: Channel | None = None
    ) -> RawResponse:
        """Send ``request`` under ``channel``'s budget.

        The channel defaults to the one implied by the request's
        authentication.
        """
        if channel is None:
            channel = Channel.AUTHENTICATED if request.authenticated else Channel.PUBLIC
        await self._rate_limiter.acquire(channel)
        self._dispatch_count[channel] += 1

        try:
            return await asyncio.wait_for(
                self._transport.perform(request), timeout=self._timeout
            )
        except ExchangeError as e:
            logger.warning(
                "dispatch_failed",
                venue=self._venue,
                method=request.method,
                path=request.path,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise
        except asyncio.TimeoutError as e:
            logger.warning(
                "dispatch_timeout",
                venue=self._venue,
                method=request.method,
                path=request.path,
                timeout=self._timeout,
            )
            raise DispatchTimeout(
                f"{self._venue} {request.method} {request.path} exceeded "
                f"{self._timeout}s",
                venue=self._venue,
            ) from e
        except OSError as e:
            raise TransportError(
                f"{self._venue} transport failure: {e}", venue=self._venue
            ) from e

    async def close(self) -> None:
        self._rate_limiter.close()
        await self._transport.close()
