"""Base model and common enums for the exchange layer."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class FrozenModel(BaseModel):
    """Immutable base model."""

    model_config = ConfigDict(frozen=True)


class MarketType(str, Enum):
    """Market a pair trades on; scopes endpoints and pair lists."""

    SPOT = "SPOT"
    MARGIN = "MARGIN"
    FUTURES = "FUTURES"
    SWAP = "SWAP"


class OrderSide(str, Enum):
    """Order side: buy or sell."""

    BUY = "BUY"
    SELL = "SELL"


class OrderType(str, Enum):
    """Order type."""

    MARKET = "MARKET"
    LIMIT = "LIMIT"


class FeeCategory(str, Enum):
    """Kind of fee being quoted."""

    TRADE = "TRADE"
    WITHDRAWAL = "WITHDRAWAL"
    DEPOSIT = "DEPOSIT"
    BANK_DEPOSIT = "BANK_DEPOSIT"
    BANK_WITHDRAWAL = "BANK_WITHDRAWAL"
