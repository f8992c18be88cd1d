"""Account balance models."""

from pydantic import Field

from tradelink.models.base import FrozenModel


class AccountBalance(FrozenModel):
    """Balance of one currency split into available and held funds."""

    currency: str
    available: float = Field(default=0.0, ge=0)
    held: float = Field(default=0.0, ge=0)

    @property
    def total(self) -> float:
        return self.available + self.held


class AccountInfo(FrozenModel):
    """All balances reported by one venue."""

    venue: str
    balances: tuple[AccountBalance, ...] = ()

    def get(self, currency: str) -> AccountBalance | None:
        currency = currency.upper()
        for balance in self.balances:
            if balance.currency == currency:
                return balance
        return None
