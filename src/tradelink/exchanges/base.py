"""Abstract venue driver interface and the logic shared by every driver."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar, NamedTuple

import structlog

from tradelink.config import VenueSettings
from tradelink.exchanges.cache import CacheKey, MarketDataCache
from tradelink.exchanges.dispatcher import RequestDispatcher
from tradelink.exchanges.errors import (
    DispatchTimeout,
    NotSupportedError,
    OrderTypeUnsupported,
    UnknownOrderOutcome,
    VenueError,
)
from tradelink.exchanges.fees import FeeSchedule, calculate_fee
from tradelink.exchanges.rate_limiter import Channel, RateLimitBudget, VenueRateLimiter
from tradelink.exchanges.reconcile import cancel_each
from tradelink.exchanges.transport import Credentials, RequestSpec, Transport
from tradelink.models import (
    AccountInfo,
    CancellationResult,
    FeeRequest,
    MarketType,
    OrderBookSnapshot,
    OrderRequest,
    OrderResult,
    OrderSide,
    OrderType,
    PairFormat,
    TickerSnapshot,
    TradingPair,
    WithdrawPermission,
    format_withdraw_permissions,
)

logger = structlog.get_logger()

OrderTypeTable = Mapping[tuple[OrderSide, OrderType], str]


class OpenOrder(NamedTuple):
    """Where a listed open order lives, as far as the venue reports it."""

    pair: TradingPair | None
    market_type: MarketType = MarketType.SPOT


def budgets_from_settings(settings: VenueSettings) -> dict[Channel, RateLimitBudget]:
    return {
        Channel(channel): RateLimitBudget(
            window_seconds=limit.window_seconds, max_calls=limit.max_calls
        )
        for channel, limit in settings.rate_limits.items()
    }


def credentials_from_settings(settings: VenueSettings) -> Credentials:
    return Credentials(
        api_key=settings.api_key,
        api_secret=settings.api_secret,
        passphrase=settings.passphrase,
        client_id=settings.client_id,
    )


def resolve_order_type(
    venue: str, table: OrderTypeTable, side: OrderSide, order_type: OrderType
) -> str:
    """Look up the venue's code for a (side, type) combination."""
    try:
        return table[(side, order_type)]
    except KeyError:
        raise OrderTypeUnsupported(
            f"{venue} does not support {side.value} {order_type.value} orders",
            venue=venue,
        ) from None


class VenueDriver(ABC):
    """Abstract base class for venue drivers.

    Subclasses supply the venue mapping (endpoints, payload decoding, order
    type codes); market data read-through, single-flight refresh, fee
    quoting, cancel-all aggregation and the not-supported family live here.
    All network methods are async.
    """

    pair_format: ClassVar[PairFormat] = PairFormat(delimiter="-")
    fee_schedule: ClassVar[FeeSchedule]
    withdraw_permissions: ClassVar[WithdrawPermission] = WithdrawPermission.NONE
    market_types: ClassVar[tuple[MarketType, ...]] = (MarketType.SPOT,)
    default_base_url: ClassVar[str] = ""

    def __init__(
        self,
        settings: VenueSettings | None = None,
        transport: Transport | None = None,
    ):
        self._settings = settings or VenueSettings()
        credentials = credentials_from_settings(self._settings)
        if transport is None:
            transport = self._create_transport(
                self._settings.base_url or self.default_base_url, credentials
            )
        self._dispatcher = RequestDispatcher(
            self.name,
            transport,
            VenueRateLimiter(self.name, budgets_from_settings(self._settings)),
            timeout=self._settings.timeout_seconds,
        )
        self._tickers: MarketDataCache[TickerSnapshot] = MarketDataCache(
            f"{self.name}:ticker", self._settings.staleness_seconds
        )
        self._books: MarketDataCache[OrderBookSnapshot] = MarketDataCache(
            f"{self.name}:orderbook", self._settings.staleness_seconds
        )
        self._enabled_pairs = tuple(
            TradingPair.parse(p) for p in self._settings.enabled_pairs
        )
        self._available_pairs: dict[MarketType, tuple[TradingPair, ...]] = {}

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the venue name."""

    @abstractmethod
    def _create_transport(self, base_url: str, credentials: Credentials) -> Transport:
        """Build the transport used when none is injected."""

    @property
    def dispatcher(self) -> RequestDispatcher:
        return self._dispatcher

    @property
    def enabled_pairs(self) -> tuple[TradingPair, ...]:
        return self._enabled_pairs

    def available_pairs(
        self, market_type: MarketType = MarketType.SPOT
    ) -> tuple[TradingPair, ...]:
        """Pairs stored by the last ``update_tradable_pairs`` call."""
        return self._available_pairs.get(market_type, ())

    def format_pair(self, pair: TradingPair) -> str:
        return pair.format(self.pair_format)

    def _check_market_type(self, market_type: MarketType) -> None:
        if market_type not in self.market_types:
            raise NotSupportedError(
                f"{self.name} does not support {market_type.value} markets",
                venue=self.name,
            )

    def _check_payload(self, payload: Any) -> Any:
        """Raise ``VenueError`` for error envelopes; return the useful part."""
        return payload

    async def _request(self, request: RequestSpec) -> Any:
        response = await self._dispatcher.execute(request)
        try:
            return self._check_payload(response.payload)
        except (AttributeError, KeyError, TypeError) as e:
            raise VenueError(
                f"Malformed {self.name} response to {request.path}: {e}",
                venue=self.name,
            ) from e

    async def _request_mutation(self, request: RequestSpec) -> Any:
        """Dispatch a state-changing call.

        A timeout leaves the outcome unknown rather than failed.
        """
        try:
            return await self._request(request)
        except UnknownOrderOutcome:
            raise
        except DispatchTimeout as e:
            logger.warning(
                "mutation_outcome_unknown", venue=self.name, path=request.path
            )
            raise UnknownOrderOutcome(
                f"{self.name} {request.path} timed out; the venue may have "
                "applied it, verify before retrying",
                venue=self.name,
            ) from e

    # -- market data -------------------------------------------------------

    @abstractmethod
    async def fetch_tradable_pairs(
        self, market_type: MarketType = MarketType.SPOT
    ) -> list[TradingPair]:
        """Return every pair currently listed for ``market_type``."""

    async def update_tradable_pairs(
        self, market_type: MarketType = MarketType.SPOT
    ) -> tuple[TradingPair, ...]:
        """Refresh the stored pair list. Failures propagate; nothing stale is kept silently."""
        pairs = tuple(await self.fetch_tradable_pairs(market_type))
        self._available_pairs[market_type] = pairs
        logger.info(
            "tradable_pairs_updated",
            venue=self.name,
            market_type=market_type.value,
            count=len(pairs),
        )
        return pairs

    @abstractmethod
    async def _update_ticker(
        self, pair: TradingPair, market_type: MarketType
    ) -> TickerSnapshot:
        """Fetch a ticker from the venue with exactly one dispatch."""

    @abstractmethod
    async def _update_order_book(
        self, pair: TradingPair, market_type: MarketType
    ) -> OrderBookSnapshot:
        """Fetch an order book from the venue with exactly one dispatch."""

    def _cache_key(self, pair: TradingPair, market_type: MarketType) -> CacheKey:
        return CacheKey(self.name, pair, market_type)

    async def fetch_ticker(
        self, pair: TradingPair, market_type: MarketType = MarketType.SPOT
    ) -> TickerSnapshot:
        self._check_market_type(market_type)
        return await self._tickers.get(
            self._cache_key(pair, market_type),
            lambda: self._update_ticker(pair, market_type),
        )

    async def fetch_order_book(
        self, pair: TradingPair, market_type: MarketType = MarketType.SPOT
    ) -> OrderBookSnapshot:
        self._check_market_type(market_type)
        return await self._books.get(
            self._cache_key(pair, market_type),
            lambda: self._update_order_book(pair, market_type),
        )

    # -- account and orders ------------------------------------------------

    @abstractmethod
    async def get_account_info(self) -> AccountInfo:
        """Return balances for every currency the account holds."""

    @abstractmethod
    async def submit_order(self, request: OrderRequest) -> OrderResult:
        """Place an order and return its venue identifier."""

    @abstractmethod
    async def cancel_order(
        self,
        order_id: str,
        pair: TradingPair | None = None,
        market_type: MarketType = MarketType.SPOT,
    ) -> None:
        """Cancel one order. Raises on failure."""

    @abstractmethod
    async def _list_open_orders(self, pair: TradingPair | None) -> dict[str, OpenOrder]:
        """Open order identifiers mapped to their pair and market type."""

    async def cancel_all_orders(self, pair: TradingPair | None = None) -> CancellationResult:
        """Cancel every open order visible now, one at a time.

        Per-order failures are reported in the result; only failing to list
        the open orders raises.
        """
        open_orders = await self._list_open_orders(pair)
        statuses = await cancel_each(
            self.name,
            open_orders,
            lambda oid: self.cancel_order(
                oid, open_orders[oid].pair or pair, open_orders[oid].market_type
            ),
        )
        result = CancellationResult(venue=self.name, statuses=statuses)
        logger.info(
            "cancel_all_completed",
            venue=self.name,
            pair=str(pair) if pair else None,
            attempted=len(statuses),
            failed=len(result.failed),
        )
        return result

    # -- fees and capabilities ---------------------------------------------

    def get_fee(self, request: FeeRequest) -> float:
        return calculate_fee(self.fee_schedule, request)

    def get_withdraw_capabilities(self) -> WithdrawPermission:
        return self.withdraw_permissions

    def format_withdraw_permissions(self) -> str:
        return format_withdraw_permissions(self.withdraw_permissions)

    def _not_supported(self, operation: str) -> NotSupportedError:
        return NotSupportedError(
            f"{operation} is not supported by {self.name}", venue=self.name
        )

    async def get_deposit_address(self, currency: str) -> str:
        raise self._not_supported("get_deposit_address")

    async def withdraw_crypto(self, address: str, currency: str, amount: float) -> str:
        raise self._not_supported("withdraw_crypto")

    async def withdraw_fiat(self, currency: str, amount: float) -> str:
        raise self._not_supported("withdraw_fiat")

    async def withdraw_fiat_international(self, currency: str, amount: float) -> str:
        raise self._not_supported("withdraw_fiat_international")

    async def get_websocket(self) -> Any:
        raise self._not_supported("get_websocket")

    async def modify_order(self, order_id: str, **changes: Any) -> str:
        raise self._not_supported("modify_order")

    async def get_order_info(self, order_id: str) -> dict:
        raise self._not_supported("get_order_info")

    async def get_funding_history(self) -> list[dict]:
        raise self._not_supported("get_funding_history")

    async def get_exchange_history(
        self, pair: TradingPair, market_type: MarketType = MarketType.SPOT
    ) -> list[dict]:
        raise self._not_supported("get_exchange_history")

    async def close(self) -> None:
        await self._dispatcher.close()
