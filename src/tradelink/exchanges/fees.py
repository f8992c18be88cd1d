"""Static fee schedules and the fee calculation shared by all drivers."""

import math

import structlog
from pydantic import Field, model_validator

from tradelink.models import FeeCategory, FeeRequest
from tradelink.models.base import FrozenModel

logger = structlog.get_logger()


class FeeSchedule(FrozenModel):
    """A venue's published fee table.

    Trade rates are fractions of notional; every other entry is a flat
    amount in the named currency.
    """

    taker_rate: float = Field(ge=0)
    maker_rate: float = Field(ge=0)
    withdrawal_fees: dict[str, float] = Field(default_factory=dict)
    deposit_fees: dict[str, float] = Field(default_factory=dict)
    bank_deposit_fees: dict[str, float] = Field(default_factory=dict)
    bank_withdrawal_fees: dict[str, float] = Field(default_factory=dict)

    @model_validator(mode="after")
    def maker_not_above_taker(self) -> "FeeSchedule":
        if self.maker_rate > self.taker_rate:
            raise ValueError(
                f"maker_rate {self.maker_rate} exceeds taker_rate {self.taker_rate}"
            )
        return self


def _finite_non_negative(value: float) -> float:
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def calculate_fee(schedule: FeeSchedule, request: FeeRequest) -> float:
    """Quote the fee for ``request``. Never raises; result is finite and >= 0.

    An unknown withdrawal currency quotes 0, meaning "no fee known".
    """
    if request.category == FeeCategory.TRADE:
        if request.price <= 0 or request.amount <= 0:
            return 0.0
        rate = schedule.maker_rate if request.is_maker else schedule.taker_rate
        return _finite_non_negative(rate * request.amount * request.price)

    if request.category == FeeCategory.WITHDRAWAL:
        currency = request.first_currency.upper()
        fee = schedule.withdrawal_fees.get(currency)
        if fee is None:
            logger.debug("withdrawal_fee_unknown", currency=currency)
            return 0.0
        return _finite_non_negative(fee)

    table = {
        FeeCategory.DEPOSIT: (schedule.deposit_fees, request.first_currency),
        FeeCategory.BANK_DEPOSIT: (schedule.bank_deposit_fees, request.fiat_currency),
        FeeCategory.BANK_WITHDRAWAL: (
            schedule.bank_withdrawal_fees,
            request.fiat_currency,
        ),
    }
    fees, currency = table[request.category]
    return _finite_non_negative(fees.get(currency.upper(), 0.0))
