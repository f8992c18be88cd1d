"""Tests for behavior shared by every venue driver."""

import pytest

from tradelink.exchanges.base import OpenOrder, VenueDriver
from tradelink.exchanges.errors import VenueError
from tradelink.exchanges.fees import FeeSchedule
from tradelink.exchanges.transport import RequestSpec
from tradelink.models import (
    CANCELLED,
    AccountInfo,
    MarketType,
    OrderBookSnapshot,
    OrderResult,
    TickerSnapshot,
    TradingPair,
)

BTC_USD = TradingPair(base="BTC", quote="USD")


class StubDriver(VenueDriver):
    """Driver whose envelope decoding trusts the payload shape."""

    fee_schedule = FeeSchedule(taker_rate=0.002, maker_rate=0.001)
    market_types = (MarketType.SPOT, MarketType.SWAP)

    @property
    def name(self) -> str:
        return "stub"

    def _create_transport(self, base_url, credentials):
        raise AssertionError("transport must be injected")

    def _check_payload(self, payload):
        return payload["result"]

    async def fetch_tradable_pairs(self, market_type=MarketType.SPOT):
        return []

    async def _update_ticker(self, pair, market_type):
        return TickerSnapshot(venue=self.name, pair=pair, market_type=market_type)

    async def _update_order_book(self, pair, market_type):
        return OrderBookSnapshot(venue=self.name, pair=pair, market_type=market_type)

    async def get_account_info(self):
        await self._request(RequestSpec("GET", "/balance", authenticated=True))
        return AccountInfo(venue=self.name)

    async def submit_order(self, request):
        return OrderResult(venue=self.name, placed=True, order_id="1")

    async def cancel_order(self, order_id, pair=None, market_type=MarketType.SPOT):
        await self._request_mutation(
            RequestSpec(
                "POST",
                f"/cancel/{order_id}",
                body={"market": market_type.value},
                authenticated=True,
            )
        )

    async def _list_open_orders(self, pair):
        await self._request(RequestSpec("GET", "/open", authenticated=True))
        return {"1": OpenOrder(BTC_USD), "2": OpenOrder(BTC_USD, MarketType.SWAP)}


@pytest.fixture
def driver(fake_transport):
    return StubDriver(transport=fake_transport)


class TestMalformedResponses:
    @pytest.mark.asyncio
    async def test_decoding_slip_becomes_venue_error(self, driver, fake_transport):
        fake_transport.route("GET", "/balance", {"unexpected": True})
        with pytest.raises(VenueError, match="Malformed stub response to /balance") as exc_info:
            await driver.get_account_info()
        assert exc_info.value.venue == "stub"
        assert isinstance(exc_info.value.__cause__, KeyError)

    @pytest.mark.asyncio
    async def test_cancel_all_continues_past_malformed_reply(self, driver, fake_transport):
        fake_transport.route("GET", "/open", {"result": []})
        fake_transport.route("POST", "/cancel/1", ["not", "an", "envelope"])
        fake_transport.route("POST", "/cancel/2", {"result": "ok"})

        result = await driver.cancel_all_orders()

        assert result.statuses["2"] == CANCELLED
        assert result.failed["1"].startswith("Malformed stub response")


class TestCancelAll:
    @pytest.mark.asyncio
    async def test_listed_market_type_reaches_cancel(self, driver, fake_transport):
        fake_transport.route("GET", "/open", {"result": []})
        fake_transport.route("POST", "/cancel/1", {"result": "ok"})
        fake_transport.route("POST", "/cancel/2", {"result": "ok"})

        result = await driver.cancel_all_orders()

        assert result.all_cancelled
        assert fake_transport.last("POST", "/cancel/1").body == {"market": "SPOT"}
        assert fake_transport.last("POST", "/cancel/2").body == {"market": "SWAP"}
