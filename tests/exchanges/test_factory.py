"""Tests for the venue driver registry and factory."""

import pytest

from tradelink.exchanges.base import VenueDriver
from tradelink.exchanges.errors import UnknownVenueError
from tradelink.exchanges.factory import (
    DriverFactory,
    _driver_registry,
    register_driver,
)
from tradelink.models import AccountInfo, OrderBookSnapshot, OrderResult, TickerSnapshot


class MockDriver(VenueDriver):
    """Concrete mock driver for testing."""

    @property
    def name(self) -> str:
        return "mock"

    def _create_transport(self, base_url, credentials):
        raise AssertionError("transport must be injected")

    async def fetch_tradable_pairs(self, market_type=None):
        return []

    async def _update_ticker(self, pair, market_type):
        return TickerSnapshot(venue="mock", pair=pair, market_type=market_type, last=1.0)

    async def _update_order_book(self, pair, market_type):
        return OrderBookSnapshot(venue="mock", pair=pair, market_type=market_type)

    async def get_account_info(self):
        return AccountInfo(venue="mock")

    async def submit_order(self, request):
        return OrderResult(venue="mock", placed=True, order_id="mock-001")

    async def cancel_order(self, order_id, pair=None, market_type=None):
        return None

    async def _list_open_orders(self, pair):
        return {}


@pytest.fixture(autouse=True)
def clean_registry():
    """Clean the driver registry before and after each test."""
    original = dict(_driver_registry)
    _driver_registry.clear()
    yield
    _driver_registry.clear()
    _driver_registry.update(original)


class TestRegisterDriver:
    def test_register_driver(self):
        register_driver("mock", MockDriver)
        assert "mock" in DriverFactory.available()

    def test_register_case_insensitive(self):
        register_driver("MOCK", MockDriver)
        assert "mock" in DriverFactory.available()


class TestDriverFactory:
    def test_create_registered_driver(self, fake_transport):
        register_driver("mock", MockDriver)
        driver = DriverFactory.create("mock", transport=fake_transport)
        assert isinstance(driver, VenueDriver)
        assert driver.name == "mock"

    def test_create_case_insensitive(self, fake_transport):
        register_driver("mock", MockDriver)
        driver = DriverFactory.create("MOCK", transport=fake_transport)
        assert driver.name == "mock"

    def test_create_unknown_venue_raises(self):
        with pytest.raises(UnknownVenueError, match="Unknown venue"):
            DriverFactory.create("nonexistent")

    def test_unknown_venue_is_a_key_error(self):
        with pytest.raises(KeyError):
            DriverFactory.create("nonexistent")

    def test_available_empty(self):
        assert DriverFactory.available() == []

    def test_available_with_registered(self):
        register_driver("mock", MockDriver)
        register_driver("other", MockDriver)
        assert sorted(DriverFactory.available()) == ["mock", "other"]


class TestVenueDriverABC:
    def test_cannot_instantiate_abc(self):
        with pytest.raises(TypeError):
            VenueDriver()

    @pytest.mark.asyncio
    async def test_close_closes_transport(self, fake_transport):
        register_driver("mock", MockDriver)
        driver = DriverFactory.create("mock", transport=fake_transport)
        await driver.close()
        assert fake_transport.closed

