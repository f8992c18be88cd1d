"""Normalized ticker and order book snapshots."""

from datetime import datetime, timezone

from pydantic import Field, model_validator

from tradelink.models.base import FrozenModel, MarketType
from tradelink.models.pair import TradingPair


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TickerSnapshot(FrozenModel):
    """Latest price summary for one pair on one venue.

    Snapshots are never mutated; a newer snapshot replaces an older one.
    """

    venue: str
    pair: TradingPair
    market_type: MarketType = MarketType.SPOT
    last: float = Field(default=0.0, ge=0)
    bid: float = Field(default=0.0, ge=0)
    ask: float = Field(default=0.0, ge=0)
    volume: float = Field(default=0.0, ge=0)
    high: float = Field(default=0.0, ge=0)
    low: float = Field(default=0.0, ge=0)
    captured_at: datetime = Field(default_factory=_utcnow)

    @property
    def spread(self) -> float:
        if self.bid <= 0 or self.ask <= 0:
            return 0.0
        return self.ask - self.bid


class PriceLevel(FrozenModel):
    """One price level of an order book."""

    price: float = Field(ge=0)
    amount: float = Field(ge=0)


class OrderBookSnapshot(FrozenModel):
    """Order book depth with bids best-first (descending) and asks ascending."""

    venue: str
    pair: TradingPair
    market_type: MarketType = MarketType.SPOT
    bids: tuple[PriceLevel, ...] = ()
    asks: tuple[PriceLevel, ...] = ()
    captured_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def check_level_ordering(self) -> "OrderBookSnapshot":
        for prev, cur in zip(self.bids, self.bids[1:]):
            if cur.price > prev.price:
                raise ValueError(
                    f"Bid levels must be non-increasing: {prev.price} then {cur.price}"
                )
        for prev, cur in zip(self.asks, self.asks[1:]):
            if cur.price < prev.price:
                raise ValueError(
                    f"Ask levels must be non-decreasing: {prev.price} then {cur.price}"
                )
        return self

    @classmethod
    def from_levels(
        cls,
        venue: str,
        pair: TradingPair,
        bids: list[tuple[float, float]],
        asks: list[tuple[float, float]],
        market_type: MarketType = MarketType.SPOT,
    ) -> "OrderBookSnapshot":
        """Build a snapshot from raw (price, amount) pairs in any order."""
        return cls(
            venue=venue,
            pair=pair,
            market_type=market_type,
            bids=tuple(
                PriceLevel(price=p, amount=a)
                for p, a in sorted(bids, key=lambda lvl: lvl[0], reverse=True)
            ),
            asks=tuple(
                PriceLevel(price=p, amount=a)
                for p, a in sorted(asks, key=lambda lvl: lvl[0])
            ),
        )

    @property
    def best_bid(self) -> float | None:
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> float | None:
        return self.asks[0].price if self.asks else None
