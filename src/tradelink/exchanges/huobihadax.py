"""Huobi Hadax venue driver over the plain HTTP transport."""

import asyncio
from datetime import datetime, timezone
from typing import Any

import structlog

from tradelink.exchanges.base import OpenOrder, VenueDriver, resolve_order_type
from tradelink.exchanges.errors import VenueError
from tradelink.exchanges.factory import register_driver
from tradelink.exchanges.fees import FeeSchedule
from tradelink.exchanges.signing import HuobiSigner
from tradelink.exchanges.transport import (
    Credentials,
    HttpTransport,
    RequestSpec,
    Transport,
)
from tradelink.models import (
    AccountBalance,
    AccountInfo,
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
)

logger = structlog.get_logger()

HUOBIHADAX_API_URL = "https://api.hadax.com"

ORDER_TYPES = {
    (OrderSide.BUY, OrderType.MARKET): "buy-market",
    (OrderSide.SELL, OrderType.MARKET): "sell-market",
    (OrderSide.BUY, OrderType.LIMIT): "buy-limit",
    (OrderSide.SELL, OrderType.LIMIT): "sell-limit",
}

HUOBIHADAX_FEES = FeeSchedule(taker_rate=0.002, maker_rate=0.001)


class HuobiHadaxDriver(VenueDriver):
    """Huobi Hadax spot driver.

    Requests spell pairs lower case without a delimiter (``btcusdt``).
    Private endpoints need the numeric account id, resolved once per driver.
    """

    pair_format = PairFormat(delimiter="", uppercase=False)
    fee_schedule = HUOBIHADAX_FEES
    withdraw_permissions = WithdrawPermission.AUTO_WITHDRAW_CRYPTO_WITH_SETUP
    market_types = (MarketType.SPOT,)
    default_base_url = HUOBIHADAX_API_URL

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._account_id: str | None = self._settings.client_id or None
        self._account_lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return "huobihadax"

    def _create_transport(self, base_url: str, credentials: Credentials) -> Transport:
        return HttpTransport(
            self.name,
            base_url,
            credentials=credentials,
            signer=HuobiSigner(base_url),
            timeout=self._settings.timeout_seconds,
        )

    def _check_payload(self, payload: Any) -> Any:
        if not isinstance(payload, dict):
            raise VenueError("Unexpected Huobi Hadax response", venue=self.name)
        if payload.get("status") != "ok":
            raise VenueError(
                payload.get("err-msg", "request failed"),
                venue=self.name,
                code=payload.get("err-code", ""),
            )
        return payload

    async def get_account_id(self) -> str:
        """Resolve the trading account id, caching it for the driver's lifetime.

        Only the first account listed is used.
        """
        async with self._account_lock:
            if self._account_id is None:
                payload = await self._request(
                    RequestSpec("GET", "/v1/account/accounts", authenticated=True)
                )
                accounts = payload.get("data") or []
                if not accounts:
                    raise VenueError("No account ID fetched", venue=self.name)
                self._account_id = str(accounts[0]["id"])
                logger.info(
                    "account_id_resolved", venue=self.name, account_id=self._account_id
                )
            return self._account_id

    async def fetch_tradable_pairs(
        self, market_type: MarketType = MarketType.SPOT
    ) -> list[TradingPair]:
        self._check_market_type(market_type)
        payload = await self._request(
            RequestSpec("GET", "/v1/hadax/common/symbols")
        )
        return [
            TradingPair(base=s["base-currency"], quote=s["quote-currency"])
            for s in payload.get("data", [])
        ]

    async def _update_ticker(
        self, pair: TradingPair, market_type: MarketType
    ) -> TickerSnapshot:
        payload = await self._request(
            RequestSpec(
                "GET",
                "/market/detail/merged",
                params={"symbol": self.format_pair(pair)},
            )
        )
        tick = payload.get("tick", {})
        bid = tick.get("bid") or [0.0]
        ask = tick.get("ask") or [0.0]
        captured_at = (
            datetime.fromtimestamp(payload["ts"] / 1000, tz=timezone.utc)
            if payload.get("ts")
            else datetime.now(timezone.utc)
        )
        return TickerSnapshot(
            venue=self.name,
            pair=pair,
            market_type=market_type,
            last=float(tick.get("close", 0.0)),
            bid=float(bid[0]),
            ask=float(ask[0]),
            volume=float(tick.get("vol", 0.0)),
            high=float(tick.get("high", 0.0)),
            low=float(tick.get("low", 0.0)),
            captured_at=captured_at,
        )

    async def _update_order_book(
        self, pair: TradingPair, market_type: MarketType
    ) -> OrderBookSnapshot:
        payload = await self._request(
            RequestSpec(
                "GET",
                "/market/depth",
                params={"symbol": self.format_pair(pair), "type": "step0"},
            )
        )
        tick = payload.get("tick", {})
        return OrderBookSnapshot.from_levels(
            self.name,
            pair,
            bids=[(float(p), float(a)) for p, a in tick.get("bids", [])],
            asks=[(float(p), float(a)) for p, a in tick.get("asks", [])],
            market_type=market_type,
        )

    async def get_account_info(self) -> AccountInfo:
        account_id = await self.get_account_id()
        payload = await self._request(
            RequestSpec(
                "GET",
                f"/v1/hadax/account/accounts/{account_id}/balance",
                authenticated=True,
            )
        )
        available: dict[str, float] = {}
        held: dict[str, float] = {}
        for row in payload.get("data", {}).get("list", []):
            currency = row["currency"].upper()
            bucket = available if row.get("type") == "trade" else held
            bucket[currency] = bucket.get(currency, 0.0) + float(row.get("balance", 0))
            available.setdefault(currency, 0.0)
        balances = tuple(
            AccountBalance(
                currency=currency,
                available=available[currency],
                held=held.get(currency, 0.0),
            )
            for currency in sorted(available)
        )
        return AccountInfo(venue=self.name, balances=balances)

    async def submit_order(self, request: OrderRequest) -> OrderResult:
        self._check_market_type(request.market_type)
        order_type = resolve_order_type(
            self.name, ORDER_TYPES, request.side, request.type
        )
        body: dict[str, Any] = {
            "account-id": await self.get_account_id(),
            "amount": str(request.amount),
            "source": "api",
            "symbol": self.format_pair(request.pair),
            "type": order_type,
        }
        if request.type == OrderType.LIMIT:
            body["price"] = str(request.price)
        if request.client_token:
            body["client-order-id"] = request.client_token

        payload = await self._request_mutation(
            RequestSpec(
                "POST", "/v1/hadax/order/orders/place", body=body, authenticated=True
            )
        )
        order_id = str(payload.get("data") or "")
        if not order_id:
            raise VenueError("Order accepted without an order id", venue=self.name)
        return OrderResult(
            venue=self.name,
            placed=True,
            order_id=order_id,
            client_token=request.client_token,
        )

    async def cancel_order(
        self,
        order_id: str,
        pair: TradingPair | None = None,
        market_type: MarketType = MarketType.SPOT,
    ) -> None:
        self._check_market_type(market_type)
        if not order_id.isdigit():
            raise VenueError(f"Invalid order id '{order_id}'", venue=self.name)
        await self._request_mutation(
            RequestSpec(
                "POST",
                f"/v1/order/orders/{order_id}/submitcancel",
                authenticated=True,
            )
        )

    def _pair_from_symbol(self, symbol: str) -> TradingPair | None:
        for pair in self.available_pairs(MarketType.SPOT) + self.enabled_pairs:
            if self.format_pair(pair) == symbol:
                return pair
        return None

    async def _list_open_orders(self, pair: TradingPair | None) -> dict[str, OpenOrder]:
        params: dict[str, Any] = {"account-id": await self.get_account_id()}
        if pair is not None:
            params["symbol"] = self.format_pair(pair)
        payload = await self._request(
            RequestSpec("GET", "/v1/order/openOrders", params=params, authenticated=True)
        )
        return {
            str(order["id"]): OpenOrder(
                pair or self._pair_from_symbol(order.get("symbol", ""))
            )
            for order in payload.get("data", [])
        }


register_driver("huobihadax", HuobiHadaxDriver)
