"""OKEx venue driver using ccxt for request signing and HTTP."""

from datetime import datetime, timezone
from typing import Any

import ccxt.async_support as ccxt

from tradelink.exchanges.base import OpenOrder, VenueDriver, resolve_order_type
from tradelink.exchanges.ccxt_transport import CcxtTransport
from tradelink.exchanges.errors import ExchangeError, VenueError
from tradelink.exchanges.factory import register_driver
from tradelink.exchanges.fees import FeeSchedule
from tradelink.exchanges.transport import Credentials, RequestSpec, Transport
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

ORDER_TYPES = {
    (OrderSide.BUY, OrderType.MARKET): "market",
    (OrderSide.SELL, OrderType.MARKET): "market",
    (OrderSide.BUY, OrderType.LIMIT): "limit",
    (OrderSide.SELL, OrderType.LIMIT): "limit",
}

INSTRUMENT_TYPES = {
    MarketType.SPOT: "SPOT",
    MarketType.MARGIN: "MARGIN",
    MarketType.FUTURES: "FUTURES",
    MarketType.SWAP: "SWAP",
}

TRADE_MODES = {
    MarketType.SPOT: "cash",
    MarketType.MARGIN: "cross",
    MarketType.SWAP: "cross",
}

ORDER_BOOK_DEPTH = 20

OKEX_FEES = FeeSchedule(
    taker_rate=0.0015,
    maker_rate=0.001,
    withdrawal_fees={
        "BTC": 0.0005,
        "LTC": 0.001,
        "ETH": 0.01,
        "ETC": 0.01,
        "BCH": 0.0001,
        "XRP": 0.15,
        "USDT": 2.0,
    },
)


def _float(value: Any) -> float:
    """OKEx sends numbers as strings and empty strings for missing values."""
    if value in (None, ""):
        return 0.0
    return float(value)


class OKExDriver(VenueDriver):
    """OKEx v5 REST driver. Spot, margin and perpetual swap markets."""

    pair_format = PairFormat(delimiter="-", uppercase=True)
    fee_schedule = OKEX_FEES
    withdraw_permissions = WithdrawPermission.AUTO_WITHDRAW_CRYPTO
    market_types = (MarketType.SPOT, MarketType.MARGIN, MarketType.SWAP)

    @property
    def name(self) -> str:
        return "okex"

    def _create_transport(self, base_url: str, credentials: Credentials) -> Transport:
        exchange = ccxt.okx(
            {
                "apiKey": credentials.api_key,
                "secret": credentials.api_secret,
                "password": credentials.passphrase,
                # Throttling is done by our own per-channel limiter
                "enableRateLimit": False,
                "timeout": int(self._settings.timeout_seconds * 1000),
            }
        )
        if base_url:
            exchange.urls["api"]["rest"] = base_url
        return CcxtTransport(self.name, exchange)

    def _check_payload(self, payload: Any) -> Any:
        if not isinstance(payload, dict):
            raise VenueError("Unexpected OKEx response", venue=self.name)
        code = str(payload.get("code", "0"))
        if code != "0":
            raise VenueError(payload.get("msg", ""), venue=self.name, code=code)
        return payload.get("data", [])

    def _instrument_id(self, pair: TradingPair, market_type: MarketType) -> str:
        instrument = self.format_pair(pair)
        if market_type == MarketType.SWAP:
            return f"{instrument}-SWAP"
        return instrument

    @staticmethod
    def _pair_from_instrument(instrument: dict) -> TradingPair:
        base = instrument.get("baseCcy")
        quote = instrument.get("quoteCcy")
        if base and quote:
            return TradingPair(base=base, quote=quote)
        # Derivatives carry the underlying family instead, e.g. BTC-USDT
        family = instrument.get("instFamily") or instrument.get("uly", "")
        return TradingPair.parse(family)

    async def fetch_tradable_pairs(
        self, market_type: MarketType = MarketType.SPOT
    ) -> list[TradingPair]:
        data = await self._request(
            RequestSpec(
                "GET",
                "public/instruments",
                params={"instType": INSTRUMENT_TYPES[market_type]},
            )
        )
        pairs: list[TradingPair] = []
        for instrument in data:
            if instrument.get("state", "live") != "live":
                continue
            pair = self._pair_from_instrument(instrument)
            if pair not in pairs:
                pairs.append(pair)
        return pairs

    async def _update_ticker(
        self, pair: TradingPair, market_type: MarketType
    ) -> TickerSnapshot:
        data = await self._request(
            RequestSpec(
                "GET",
                "market/ticker",
                params={"instId": self._instrument_id(pair, market_type)},
            )
        )
        if not data:
            raise VenueError(f"No ticker for {pair}", venue=self.name)
        tick = data[0]
        captured_at = (
            datetime.fromtimestamp(int(tick["ts"]) / 1000, tz=timezone.utc)
            if tick.get("ts")
            else datetime.now(timezone.utc)
        )
        return TickerSnapshot(
            venue=self.name,
            pair=pair,
            market_type=market_type,
            last=_float(tick.get("last")),
            bid=_float(tick.get("bidPx")),
            ask=_float(tick.get("askPx")),
            volume=_float(tick.get("vol24h")),
            high=_float(tick.get("high24h")),
            low=_float(tick.get("low24h")),
            captured_at=captured_at,
        )

    async def _update_order_book(
        self, pair: TradingPair, market_type: MarketType
    ) -> OrderBookSnapshot:
        data = await self._request(
            RequestSpec(
                "GET",
                "market/books",
                params={
                    "instId": self._instrument_id(pair, market_type),
                    "sz": ORDER_BOOK_DEPTH,
                },
            )
        )
        book = data[0] if data else {}
        return OrderBookSnapshot.from_levels(
            self.name,
            pair,
            bids=[(_float(lvl[0]), _float(lvl[1])) for lvl in book.get("bids", [])],
            asks=[(_float(lvl[0]), _float(lvl[1])) for lvl in book.get("asks", [])],
            market_type=market_type,
        )

    async def get_account_info(self) -> AccountInfo:
        data = await self._request(
            RequestSpec("GET", "account/balance", authenticated=True)
        )
        details = data[0].get("details", []) if data else []
        balances = tuple(
            AccountBalance(
                currency=row["ccy"],
                available=_float(row.get("availBal")),
                held=_float(row.get("frozenBal")),
            )
            for row in details
        )
        return AccountInfo(venue=self.name, balances=balances)

    async def submit_order(self, request: OrderRequest) -> OrderResult:
        self._check_market_type(request.market_type)
        body: dict[str, Any] = {
            "instId": self._instrument_id(request.pair, request.market_type),
            "tdMode": TRADE_MODES[request.market_type],
            "side": request.side.value.lower(),
            "ordType": resolve_order_type(
                self.name, ORDER_TYPES, request.side, request.type
            ),
            "sz": str(request.amount),
        }
        if request.type == OrderType.LIMIT:
            body["px"] = str(request.price)
        elif request.market_type == MarketType.SPOT:
            # Spot market orders size in base currency, matching limit orders
            body["tgtCcy"] = "base_ccy"
        if request.client_token:
            body["clOrdId"] = request.client_token

        data = await self._request_mutation(
            RequestSpec("POST", "trade/order", body=body, authenticated=True)
        )
        ack = data[0] if data else {}
        if str(ack.get("sCode", "0")) != "0":
            raise VenueError(
                ack.get("sMsg", "order rejected"), venue=self.name, code=ack["sCode"]
            )
        order_id = str(ack.get("ordId", ""))
        if not order_id:
            raise VenueError("Order acknowledged without ordId", venue=self.name)
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
        if pair is None:
            raise ExchangeError(
                "OKEx needs the order's pair to cancel it", venue=self.name
            )
        self._check_market_type(market_type)
        data = await self._request_mutation(
            RequestSpec(
                "POST",
                "trade/cancel-order",
                body={"instId": self._instrument_id(pair, market_type), "ordId": order_id},
                authenticated=True,
            )
        )
        ack = data[0] if data else {}
        if str(ack.get("sCode", "0")) != "0":
            raise VenueError(
                ack.get("sMsg", "cancel rejected"), venue=self.name, code=ack["sCode"]
            )

    @staticmethod
    def _pair_from_instrument_id(instrument_id: str) -> TradingPair:
        # BTC-USDT for spot and margin, BTC-USDT-SWAP for swaps
        base, quote = instrument_id.split("-")[:2]
        return TradingPair(base=base, quote=quote)

    async def _list_open_orders(self, pair: TradingPair | None) -> dict[str, OpenOrder]:
        open_orders: dict[str, OpenOrder] = {}
        for market_type in self.market_types:
            params = {"instType": INSTRUMENT_TYPES[market_type]}
            if pair is not None:
                params["instId"] = self._instrument_id(pair, market_type)
            data = await self._request(
                RequestSpec(
                    "GET", "trade/orders-pending", params=params, authenticated=True
                )
            )
            for order in data:
                open_orders[str(order["ordId"])] = OpenOrder(
                    self._pair_from_instrument_id(order["instId"]), market_type
                )
        return open_orders


register_driver("okex", OKExDriver)
