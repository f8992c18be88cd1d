"""LocalBitcoins venue driver.

Orders on LocalBitcoins are advertisements. Creating one returns no
identifier, so a submission is followed by listing our own ads and picking
the single one whose fields equal what was sent.
"""

from typing import Any

import structlog

from tradelink.exchanges.base import OpenOrder, VenueDriver, resolve_order_type
from tradelink.exchanges.errors import ExchangeError, PlacementAmbiguous, VenueError
from tradelink.exchanges.factory import register_driver
from tradelink.exchanges.fees import FeeSchedule
from tradelink.exchanges.reconcile import match_submitted
from tradelink.exchanges.signing import LocalBitcoinsSigner
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

LOCALBITCOINS_API_URL = "https://localbitcoins.com"

BASE_CURRENCY = "BTC"

# Advertisements are always priced orders; there is no market equivalent.
TRADE_TYPES = {
    (OrderSide.BUY, OrderType.LIMIT): "ONLINE_BUY",
    (OrderSide.SELL, OrderType.LIMIT): "ONLINE_SELL",
}

DEFAULT_AD_PROFILE: dict[str, Any] = {
    "lat": 0,
    "lon": 0,
    "city": "",
    "location_string": "",
    "countrycode": "US",
    "account_info": "-",
    "bank_name": "",
    "online_provider": "NATIONAL_BANK",
    "sms_verification_required": False,
    "track_max_amount": False,
    "require_trusted_by_advertiser": False,
    "require_identification": False,
}

# Ad fields echoed back by /api/ads/ and compared during reconciliation
RECONCILED_FIELDS = (
    "price_equation",
    "lat",
    "lon",
    "city",
    "location_string",
    "countrycode",
    "currency",
    "account_info",
    "bank_name",
    "online_provider",
    "sms_verification_required",
    "track_max_amount",
    "require_trusted_by_advertiser",
    "require_identification",
    "trade_type",
    "min_amount",
    "msg",
)

LOCALBITCOINS_FEES = FeeSchedule(
    taker_rate=0.01,
    maker_rate=0.005,
    withdrawal_fees={"BTC": 0.00005},
)


class LocalBitcoinsDriver(VenueDriver):
    """LocalBitcoins driver. Every pair is BTC against a fiat currency."""

    pair_format = PairFormat(delimiter="", uppercase=True)
    fee_schedule = LOCALBITCOINS_FEES
    withdraw_permissions = WithdrawPermission.WITHDRAW_CRYPTO_VIA_WEBSITE_ONLY
    market_types = (MarketType.SPOT,)
    default_base_url = LOCALBITCOINS_API_URL

    def __init__(self, *args: Any, ad_profile: dict[str, Any] | None = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._ad_profile = {**DEFAULT_AD_PROFILE, **(ad_profile or {})}

    @property
    def name(self) -> str:
        return "localbitcoins"

    def _create_transport(self, base_url: str, credentials: Credentials) -> Transport:
        return HttpTransport(
            self.name,
            base_url,
            credentials=credentials,
            signer=LocalBitcoinsSigner(),
            timeout=self._settings.timeout_seconds,
        )

    def _check_payload(self, payload: Any) -> Any:
        if isinstance(payload, dict) and "error" in payload:
            error = payload["error"] or {}
            if not isinstance(error, dict):
                # Some endpoints send the error as bare text
                raise VenueError(str(error), venue=self.name)
            raise VenueError(
                error.get("message", "request failed"),
                venue=self.name,
                code=error.get("error_code", ""),
            )
        return payload

    async def fetch_tradable_pairs(
        self, market_type: MarketType = MarketType.SPOT
    ) -> list[TradingPair]:
        self._check_market_type(market_type)
        payload = await self._request(RequestSpec("GET", "/api/currencies/"))
        currencies = payload.get("data", {}).get("currencies", {})
        return [
            TradingPair(base=BASE_CURRENCY, quote=currency)
            for currency in currencies
            if currency.upper() != BASE_CURRENCY
        ]

    def _ticker_from_row(
        self, pair: TradingPair, market_type: MarketType, row: dict
    ) -> TickerSnapshot:
        return TickerSnapshot(
            venue=self.name,
            pair=pair,
            market_type=market_type,
            last=float(row.get("avg_24h") or 0.0),
            volume=float(row.get("volume_btc") or 0.0),
        )

    async def _update_ticker(
        self, pair: TradingPair, market_type: MarketType
    ) -> TickerSnapshot:
        """One dispatch returns every currency; all enabled pairs are stored."""
        payload = await self._request(
            RequestSpec("GET", "/bitcoinaverage/ticker-all-currencies/")
        )
        row = payload.get(pair.quote)
        if row is None:
            raise VenueError(f"No ticker for {pair}", venue=self.name)

        for other in self.enabled_pairs:
            if other == pair or other.quote not in payload:
                continue
            self._tickers.put(
                self._cache_key(other, market_type),
                self._ticker_from_row(other, market_type, payload[other.quote]),
            )
        return self._ticker_from_row(pair, market_type, row)

    async def _update_order_book(
        self, pair: TradingPair, market_type: MarketType
    ) -> OrderBookSnapshot:
        payload = await self._request(
            RequestSpec("GET", f"/bitcoincharts/{pair.quote}/orderbook.json")
        )

        # Levels are quoted as fiat amounts; convert to BTC
        def to_levels(rows: list) -> list[tuple[float, float]]:
            levels = []
            for price, amount in rows:
                price = float(price)
                if price > 0:
                    levels.append((price, float(amount) / price))
            return levels

        return OrderBookSnapshot.from_levels(
            self.name,
            pair,
            bids=to_levels(payload.get("bids", [])),
            asks=to_levels(payload.get("asks", [])),
            market_type=market_type,
        )

    async def get_account_info(self) -> AccountInfo:
        payload = await self._request(
            RequestSpec("GET", "/api/wallet-balance/", authenticated=True)
        )
        total = payload.get("data", {}).get("total", {})
        balance = float(total.get("balance") or 0.0)
        sendable = float(total.get("sendable") or balance)
        return AccountInfo(
            venue=self.name,
            balances=(
                AccountBalance(
                    currency=BASE_CURRENCY,
                    available=sendable,
                    held=max(balance - sendable, 0.0),
                ),
            ),
        )

    def _ad_params(self, request: OrderRequest) -> dict[str, Any]:
        return {
            **self._ad_profile,
            "price_equation": f"{request.price:.2f}",
            "currency": request.pair.quote,
            "trade_type": resolve_order_type(
                self.name, TRADE_TYPES, request.side, request.type
            ),
            "min_amount": int(round(request.amount)),
            "msg": request.client_token or request.side.value,
        }

    async def _list_ads(self) -> list[dict]:
        payload = await self._request(
            RequestSpec("GET", "/api/ads/", authenticated=True)
        )
        return [ad.get("data", {}) for ad in payload.get("data", {}).get("ad_list", [])]

    async def submit_order(self, request: OrderRequest) -> OrderResult:
        self._check_market_type(request.market_type)
        if request.pair.base != BASE_CURRENCY:
            raise VenueError(
                f"{self.name} only trades {BASE_CURRENCY} pairs", venue=self.name
            )
        params = self._ad_params(request)
        await self._request_mutation(
            RequestSpec(
                "POST",
                "/api/ad-create/",
                body=params,
                authenticated=True,
                form_encoded=True,
            )
        )

        try:
            ads = await self._list_ads()
        except ExchangeError as e:
            raise PlacementAmbiguous(
                f"Ad placed on {self.name} but open ads could not be listed: {e}",
                venue=self.name,
            ) from e
        submitted = {key: params[key] for key in RECONCILED_FIELDS if key in params}
        order_id = match_submitted(
            self.name,
            submitted,
            ((str(ad.get("ad_id", "")), ad) for ad in ads),
        )
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
        await self._request_mutation(
            RequestSpec("POST", f"/api/ad-delete/{order_id}/", authenticated=True)
        )

    async def _list_open_orders(self, pair: TradingPair | None) -> dict[str, OpenOrder]:
        open_orders: dict[str, OpenOrder] = {}
        for ad in await self._list_ads():
            currency = str(ad.get("currency", "")).upper()
            if pair is not None and currency != pair.quote:
                continue
            ad_pair = (
                TradingPair(base=BASE_CURRENCY, quote=currency)
                if currency and currency != BASE_CURRENCY
                else None
            )
            open_orders[str(ad["ad_id"])] = OpenOrder(ad_pair)
        return open_orders


register_driver("localbitcoins", LocalBitcoinsDriver)
