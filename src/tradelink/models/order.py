"""Order submission and cancellation models."""

from pydantic import Field, model_validator

from tradelink.models.base import FrozenModel, MarketType, OrderSide, OrderType
from tradelink.models.pair import TradingPair

CANCELLED = "cancelled"


class OrderRequest(FrozenModel):
    """Venue-neutral order submission."""

    pair: TradingPair
    side: OrderSide
    type: OrderType
    amount: float = Field(gt=0)
    price: float = Field(default=0.0, ge=0)
    client_token: str = ""
    market_type: MarketType = MarketType.SPOT

    @model_validator(mode="after")
    def limit_order_price(self) -> "OrderRequest":
        if self.type == OrderType.LIMIT and self.price <= 0:
            raise ValueError("Limit orders must have a positive price")
        return self


class OrderResult(FrozenModel):
    """Outcome of a confirmed submission.

    ``order_id`` is the venue's opaque identifier.
    """

    venue: str
    placed: bool
    order_id: str = ""
    client_token: str = ""


class CancellationRequest(FrozenModel):
    """Cancel specific orders, or every open order for a pair."""

    order_ids: tuple[str, ...] = ()
    pair: TradingPair | None = None
    market_type: MarketType = MarketType.SPOT

    @model_validator(mode="after")
    def ids_or_pair(self) -> "CancellationRequest":
        if not self.order_ids and self.pair is None:
            raise ValueError("Cancellation needs order ids or a pair")
        return self

    @property
    def cancel_all(self) -> bool:
        return not self.order_ids


class CancellationResult(FrozenModel):
    """Per-order cancellation status: ``"cancelled"`` or a failure reason."""

    venue: str
    statuses: dict[str, str] = Field(default_factory=dict)

    @property
    def succeeded(self) -> list[str]:
        return [oid for oid, status in self.statuses.items() if status == CANCELLED]

    @property
    def failed(self) -> dict[str, str]:
        return {
            oid: status for oid, status in self.statuses.items() if status != CANCELLED
        }

    @property
    def all_cancelled(self) -> bool:
        return not self.failed
