"""Venue drivers and the rate-limited request layer beneath them."""

from tradelink.exchanges.base import VenueDriver
from tradelink.exchanges.cache import CacheKey, MarketDataCache
from tradelink.exchanges.dispatcher import RequestDispatcher
from tradelink.exchanges.factory import DriverFactory, register_driver
from tradelink.exchanges.rate_limiter import (
    Channel,
    RateLimitBudget,
    RateLimiter,
    VenueRateLimiter,
)

__all__ = [
    "CacheKey",
    "Channel",
    "DriverFactory",
    "MarketDataCache",
    "RateLimitBudget",
    "RateLimiter",
    "RequestDispatcher",
    "VenueDriver",
    "VenueRateLimiter",
    "register_driver",
]
