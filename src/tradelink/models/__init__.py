"""Core data models for the exchange layer."""

from tradelink.models.account import AccountBalance, AccountInfo
from tradelink.models.base import (
    FeeCategory,
    MarketType,
    OrderSide,
    OrderType,
)
from tradelink.models.fee import (
    FeeRequest,
    WithdrawPermission,
    format_withdraw_permissions,
)
from tradelink.models.market import OrderBookSnapshot, PriceLevel, TickerSnapshot
from tradelink.models.order import (
    CANCELLED,
    CancellationRequest,
    CancellationResult,
    OrderRequest,
    OrderResult,
)
from tradelink.models.pair import PairFormat, TradingPair

__all__ = [
    "CANCELLED",
    "AccountBalance",
    "AccountInfo",
    "CancellationRequest",
    "CancellationResult",
    "FeeCategory",
    "FeeRequest",
    "MarketType",
    "OrderBookSnapshot",
    "OrderRequest",
    "OrderResult",
    "OrderSide",
    "OrderType",
    "PairFormat",
    "PriceLevel",
    "TickerSnapshot",
    "TradingPair",
    "WithdrawPermission",
    "format_withdraw_permissions",
]
