"""Tests for the Huobi Hadax driver."""

import asyncio

import pytest

from tradelink.config import VenueSettings
from tradelink.exchanges.base import resolve_order_type
from tradelink.exchanges.errors import NotSupportedError, OrderTypeUnsupported, VenueError
from tradelink.exchanges.huobihadax import ORDER_TYPES, HuobiHadaxDriver
from tradelink.models import (
    MarketType,
    OrderRequest,
    OrderSide,
    OrderType,
    TradingPair,
    WithdrawPermission,
)

BTC_USDT = TradingPair(base="BTC", quote="USDT")

ACCOUNTS = {"status": "ok", "data": [{"id": 100009, "type": "spot", "state": "working"}]}


def ok(data):
    return {"status": "ok", "data": data}


@pytest.fixture
def driver(fake_transport):
    fake_transport.route("GET", "/v1/account/accounts", ACCOUNTS)
    return HuobiHadaxDriver(settings=VenueSettings(), transport=fake_transport)


class TestAccountId:
    @pytest.mark.asyncio
    async def test_resolved_once_under_concurrency(self, driver, fake_transport):
        fake_transport.delay = 0.02
        ids = await asyncio.gather(*[driver.get_account_id() for _ in range(5)])
        assert ids == ["100009"] * 5
        assert fake_transport.count("GET", "/v1/account/accounts") == 1

    @pytest.mark.asyncio
    async def test_configured_client_id_skips_lookup(self, fake_transport):
        driver = HuobiHadaxDriver(
            settings=VenueSettings(client_id="42"), transport=fake_transport
        )
        assert await driver.get_account_id() == "42"
        assert fake_transport.calls == []

    @pytest.mark.asyncio
    async def test_no_accounts(self, driver, fake_transport):
        fake_transport.route("GET", "/v1/account/accounts", ok([]))
        with pytest.raises(VenueError, match="No account ID"):
            await driver.get_account_id()

    @pytest.mark.asyncio
    async def test_failed_lookup_is_retried_next_call(self, driver, fake_transport):
        fake_transport.route(
            "GET", "/v1/account/accounts", {"status": "error", "err-code": "api-signature-not-valid", "err-msg": "bad sig"}
        )
        with pytest.raises(VenueError) as exc_info:
            await driver.get_account_id()
        assert exc_info.value.code == "api-signature-not-valid"
        fake_transport.route("GET", "/v1/account/accounts", ACCOUNTS)
        assert await driver.get_account_id() == "100009"


class TestMarketData:
    @pytest.mark.asyncio
    async def test_ticker(self, driver, fake_transport):
        fake_transport.route(
            "GET",
            "/market/detail/merged",
            {
                "status": "ok",
                "ts": 1700000000000,
                "tick": {"close": 43000.5, "high": 44000, "low": 42000, "vol": 120.5, "bid": [43000.0, 1.2], "ask": [43001.0, 0.5]},
            },
        )
        ticker = await driver.fetch_ticker(BTC_USDT)
        assert ticker.last == 43000.5
        assert ticker.bid == 43000.0
        assert ticker.ask == 43001.0
        assert ticker.spread == 1.0
        assert fake_transport.last("GET", "/market/detail/merged").params == {"symbol": "btcusdt"}

    @pytest.mark.asyncio
    async def test_order_book(self, driver, fake_transport):
        fake_transport.route(
            "GET",
            "/market/depth",
            {"status": "ok", "tick": {"bids": [[100, 1], [101, 2]], "asks": [[103, 1], [102, 1]]}},
        )
        book = await driver.fetch_order_book(BTC_USDT)
        assert book.best_bid == 101
        assert book.best_ask == 102
        assert fake_transport.last("GET", "/market/depth").params["type"] == "step0"

    @pytest.mark.asyncio
    async def test_tradable_pairs(self, driver, fake_transport):
        fake_transport.route(
            "GET",
            "/v1/hadax/common/symbols",
            ok([{"base-currency": "btc", "quote-currency": "usdt"}, {"base-currency": "eth", "quote-currency": "btc"}]),
        )
        pairs = await driver.fetch_tradable_pairs()
        assert pairs == [BTC_USDT, TradingPair(base="ETH", quote="BTC")]

    @pytest.mark.asyncio
    async def test_margin_not_supported(self, driver):
        with pytest.raises(NotSupportedError):
            await driver.fetch_tradable_pairs(MarketType.MARGIN)


class TestAccountInfo:
    @pytest.mark.asyncio
    async def test_balances_split_by_type(self, driver, fake_transport):
        fake_transport.route(
            "GET",
            "/v1/hadax/account/accounts/100009/balance",
            ok(
                {
                    "list": [
                        {"currency": "btc", "type": "trade", "balance": "1.5"},
                        {"currency": "btc", "type": "frozen", "balance": "0.5"},
                        {"currency": "usdt", "type": "frozen", "balance": "10"},
                    ]
                }
            ),
        )
        info = await driver.get_account_info()
        assert info.get("BTC").available == 1.5
        assert info.get("BTC").held == 0.5
        assert info.get("USDT").available == 0.0
        assert info.get("USDT").held == 10.0


class TestOrders:
    def test_order_type_table(self):
        assert resolve_order_type("huobihadax", ORDER_TYPES, OrderSide.SELL, OrderType.LIMIT) == "sell-limit"
        with pytest.raises(OrderTypeUnsupported):
            resolve_order_type("huobihadax", {}, OrderSide.BUY, OrderType.MARKET)

    @pytest.mark.asyncio
    async def test_submit_limit_order(self, driver, fake_transport):
        fake_transport.route("POST", "/v1/hadax/order/orders/place", ok("59378"))
        result = await driver.submit_order(
            OrderRequest(
                pair=BTC_USDT,
                side=OrderSide.BUY,
                type=OrderType.LIMIT,
                amount=0.5,
                price=43000.5,
                client_token="t-1",
            )
        )
        assert result.order_id == "59378"
        body = fake_transport.last("POST", "/v1/hadax/order/orders/place").body
        assert body == {
            "account-id": "100009",
            "amount": "0.5",
            "source": "api",
            "symbol": "btcusdt",
            "type": "buy-limit",
            "price": "43000.5",
            "client-order-id": "t-1",
        }

    @pytest.mark.asyncio
    async def test_rejected_order(self, driver, fake_transport):
        fake_transport.route(
            "POST",
            "/v1/hadax/order/orders/place",
            {"status": "error", "err-code": "account-frozen-balance-insufficient-error", "err-msg": "insufficient"},
        )
        with pytest.raises(VenueError) as exc_info:
            await driver.submit_order(
                OrderRequest(pair=BTC_USDT, side=OrderSide.SELL, type=OrderType.MARKET, amount=1.5)
            )
        assert exc_info.value.code == "account-frozen-balance-insufficient-error"

    @pytest.mark.asyncio
    async def test_cancel_rejects_malformed_id(self, driver, fake_transport):
        with pytest.raises(VenueError):
            await driver.cancel_order("abc")
        assert fake_transport.calls == []

    @pytest.mark.asyncio
    async def test_cancel_all_partial_failure(self, driver, fake_transport):
        fake_transport.route(
            "GET",
            "/v1/order/openOrders",
            ok([{"id": 1, "symbol": "btcusdt"}, {"id": 2, "symbol": "btcusdt"}, {"id": 3, "symbol": "btcusdt"}]),
        )
        fake_transport.route("POST", "/v1/order/orders/1/submitcancel", ok("1"))
        fake_transport.route(
            "POST",
            "/v1/order/orders/2/submitcancel",
            {"status": "error", "err-code": "order-orderstate-error", "err-msg": "filled"},
        )
        fake_transport.route("POST", "/v1/order/orders/3/submitcancel", ok("3"))

        result = await driver.cancel_all_orders(BTC_USDT)

        assert result.succeeded == ["1", "3"]
        assert result.failed == {"2": "[order-orderstate-error] filled"}
        assert fake_transport.last("GET", "/v1/order/openOrders").params == {
            "account-id": "100009",
            "symbol": "btcusdt",
        }

    @pytest.mark.asyncio
    async def test_cancel_all_with_nothing_open(self, driver, fake_transport):
        fake_transport.route("GET", "/v1/order/openOrders", ok([]))
        result = await driver.cancel_all_orders()
        assert result.statuses == {}
        assert result.all_cancelled
        assert result.venue == "huobihadax"


def test_withdraw_capabilities(fake_transport):
    driver = HuobiHadaxDriver(settings=VenueSettings(), transport=fake_transport)
    assert driver.get_withdraw_capabilities() == WithdrawPermission.AUTO_WITHDRAW_CRYPTO_WITH_SETUP
    assert driver.format_pair(BTC_USDT) == "btcusdt"
