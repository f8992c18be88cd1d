"""Unified trading interface over every enabled venue driver."""

import asyncio
from typing import Any

import structlog

# Driver modules register themselves with the factory on import
import tradelink.exchanges.huobihadax  # noqa: F401
import tradelink.exchanges.localbitcoins  # noqa: F401
import tradelink.exchanges.okex  # noqa: F401
from tradelink.config import Settings, load_settings
from tradelink.exchanges.base import VenueDriver
from tradelink.exchanges.errors import ExchangeError, UnknownVenueError
from tradelink.exchanges.factory import DriverFactory
from tradelink.exchanges.reconcile import cancel_each
from tradelink.models import (
    AccountInfo,
    CancellationRequest,
    CancellationResult,
    FeeRequest,
    MarketType,
    OrderBookSnapshot,
    OrderRequest,
    OrderResult,
    TickerSnapshot,
    TradingPair,
    WithdrawPermission,
)

logger = structlog.get_logger()


class TradingGateway:
    """One polymorphic entry point for market data, accounts and orders.

    Each enabled venue gets its own driver, with its own rate limiters,
    transport and caches. The gateway only routes by venue name; it never
    retries, since only the caller knows whether an operation is safe to
    repeat.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        drivers: dict[str, VenueDriver] | None = None,
    ):
        self._settings = settings or load_settings()
        if drivers is not None:
            self._drivers = {name.lower(): d for name, d in drivers.items()}
        else:
            self._drivers = {
                name: DriverFactory.create(name, settings=self._settings.venues[name])
                for name in self._settings.enabled_venues()
            }
        self._refresh_task: asyncio.Task | None = None
        logger.info("gateway_initialized", venues=sorted(self._drivers))

    @property
    def venues(self) -> list[str]:
        return sorted(self._drivers)

    def driver(self, venue: str) -> VenueDriver:
        driver = self._drivers.get(venue.lower())
        if driver is None:
            raise UnknownVenueError(f"Venue '{venue}' is not enabled")
        return driver

    # -- market data -------------------------------------------------------

    async def fetch_ticker(
        self, venue: str, pair: TradingPair, market_type: MarketType = MarketType.SPOT
    ) -> TickerSnapshot:
        return await self.driver(venue).fetch_ticker(pair, market_type)

    async def fetch_order_book(
        self, venue: str, pair: TradingPair, market_type: MarketType = MarketType.SPOT
    ) -> OrderBookSnapshot:
        return await self.driver(venue).fetch_order_book(pair, market_type)

    async def fetch_tradable_pairs(
        self, venue: str, market_type: MarketType = MarketType.SPOT
    ) -> list[TradingPair]:
        return await self.driver(venue).fetch_tradable_pairs(market_type)

    async def refresh_tradable_pairs(
        self, market_type: MarketType = MarketType.SPOT
    ) -> dict[str, Exception | None]:
        """Update stored pair lists on every venue concurrently.

        Returns each venue's error, or None on success. One venue failing
        does not stop the others.
        """
        names = list(self._drivers)
        results = await asyncio.gather(
            *(self._drivers[n].update_tradable_pairs(market_type) for n in names),
            return_exceptions=True,
        )
        outcome: dict[str, Exception | None] = {}
        for name, result in zip(names, results):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, Exception):
                logger.warning("pair_refresh_failed", venue=name, error=str(result))
                outcome[name] = result
            else:
                outcome[name] = None
        return outcome

    async def run_pair_refresh(self, interval: float | None = None) -> None:
        """Refresh tradable pairs forever, every ``interval`` seconds."""
        interval = interval or self._settings.pair_refresh_interval_seconds
        while True:
            await self.refresh_tradable_pairs()
            await asyncio.sleep(interval)

    def start_pair_refresh(self, interval: float | None = None) -> asyncio.Task:
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(self.run_pair_refresh(interval))
        return self._refresh_task

    # -- account and orders ------------------------------------------------

    async def get_account_info(self, venue: str) -> AccountInfo:
        return await self.driver(venue).get_account_info()

    async def submit_order(self, venue: str, request: OrderRequest) -> OrderResult:
        result = await self.driver(venue).submit_order(request)
        logger.info(
            "order_submitted",
            venue=venue,
            pair=str(request.pair),
            side=request.side.value,
            type=request.type.value,
            order_id=result.order_id,
        )
        return result

    async def cancel_order(
        self,
        venue: str,
        order_id: str,
        pair: TradingPair | None = None,
        market_type: MarketType = MarketType.SPOT,
    ) -> None:
        await self.driver(venue).cancel_order(order_id, pair, market_type)

    async def cancel_all_orders(
        self, venue: str, pair: TradingPair | None = None
    ) -> CancellationResult:
        return await self.driver(venue).cancel_all_orders(pair)

    async def cancel(self, venue: str, request: CancellationRequest) -> CancellationResult:
        """Cancel listed orders, or every open order for the request's pair."""
        driver = self.driver(venue)
        if request.cancel_all:
            return await driver.cancel_all_orders(request.pair)
        statuses = await cancel_each(
            driver.name,
            request.order_ids,
            lambda oid: driver.cancel_order(oid, request.pair, request.market_type),
        )
        return CancellationResult(venue=driver.name, statuses=statuses)

    # -- fees and capabilities ---------------------------------------------

    def get_fee(self, venue: str, request: FeeRequest) -> float:
        return self.driver(venue).get_fee(request)

    def get_withdraw_capabilities(self, venue: str) -> WithdrawPermission:
        return self.driver(venue).get_withdraw_capabilities()

    def status(self) -> dict[str, Any]:
        """Rate limiter state per venue, for diagnostics."""
        return {
            name: driver.dispatcher.rate_limiter.to_dict()
            for name, driver in self._drivers.items()
        }

    async def close(self) -> None:
        if self._refresh_task is not None:
            self._refresh_task.cancel()
            try:
                await self._refresh_task
            except asyncio.CancelledError:
                pass
            self._refresh_task = None
        for name, driver in self._drivers.items():
            try:
                await driver.close()
            except ExchangeError as e:
                logger.warning("driver_close_failed", venue=name, error=str(e))
