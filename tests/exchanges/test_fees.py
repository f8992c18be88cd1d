"""Tests for fee schedules and fee quoting."""

import math

import pytest
from pydantic import ValidationError

from tradelink.exchanges.fees import FeeSchedule, calculate_fee
from tradelink.exchanges.huobihadax import HUOBIHADAX_FEES
from tradelink.exchanges.localbitcoins import LOCALBITCOINS_FEES
from tradelink.exchanges.okex import OKEX_FEES
from tradelink.models import FeeCategory, FeeRequest


def trade(amount, price, is_maker=False):
    return FeeRequest(
        category=FeeCategory.TRADE,
        first_currency="BTC",
        second_currency="USDT",
        amount=amount,
        price=price,
        is_maker=is_maker,
    )


class TestTradeFees:
    def test_taker_rate(self):
        assert calculate_fee(OKEX_FEES, trade(1, 1)) == pytest.approx(0.0015)

    def test_scales_with_notional(self):
        assert calculate_fee(OKEX_FEES, trade(1000, 1000)) == pytest.approx(1500.0)

    def test_maker_rate(self):
        assert calculate_fee(OKEX_FEES, trade(1, 1, is_maker=True)) == pytest.approx(0.001)

    def test_huobihadax_maker_pays_half(self):
        taker = calculate_fee(HUOBIHADAX_FEES, trade(10, 100))
        maker = calculate_fee(HUOBIHADAX_FEES, trade(10, 100, is_maker=True))
        assert taker == pytest.approx(2.0)
        assert maker == pytest.approx(1.0)

    def test_non_positive_price_is_free(self):
        assert calculate_fee(OKEX_FEES, trade(1000, -1000)) == 0.0
        assert calculate_fee(OKEX_FEES, trade(1, 0)) == 0.0

    def test_non_positive_amount_is_free(self):
        assert calculate_fee(OKEX_FEES, trade(-5, 100)) == 0.0

    def test_huge_values_stay_finite(self):
        fee = calculate_fee(OKEX_FEES, trade(1e308, 1e308))
        assert math.isfinite(fee)
        assert fee >= 0


class TestOtherCategories:
    def test_known_withdrawal_currency(self):
        request = FeeRequest(category=FeeCategory.WITHDRAWAL, first_currency="LTC")
        assert calculate_fee(OKEX_FEES, request) == pytest.approx(0.001)

    def test_withdrawal_currency_is_case_insensitive(self):
        request = FeeRequest(category=FeeCategory.WITHDRAWAL, first_currency="btc")
        assert calculate_fee(OKEX_FEES, request) == pytest.approx(0.0005)

    def test_unknown_withdrawal_currency_is_zero(self):
        request = FeeRequest(category=FeeCategory.WITHDRAWAL, first_currency="hello")
        assert calculate_fee(OKEX_FEES, request) == 0.0

    @pytest.mark.parametrize(
        "category",
        [FeeCategory.DEPOSIT, FeeCategory.BANK_DEPOSIT, FeeCategory.BANK_WITHDRAWAL],
    )
    def test_unpublished_categories_are_zero(self, category):
        request = FeeRequest(category=category, first_currency="BTC", fiat_currency="USD")
        assert calculate_fee(OKEX_FEES, request) == 0.0

    def test_bank_fee_uses_fiat_currency(self):
        schedule = FeeSchedule(
            taker_rate=0.01, maker_rate=0.0, bank_withdrawal_fees={"EUR": 1.5}
        )
        request = FeeRequest(
            category=FeeCategory.BANK_WITHDRAWAL, first_currency="BTC", fiat_currency="eur"
        )
        assert calculate_fee(schedule, request) == 1.5


class TestFeeSchedule:
    def test_maker_above_taker_rejected(self):
        with pytest.raises(ValidationError):
            FeeSchedule(taker_rate=0.001, maker_rate=0.002)

    def test_negative_rate_rejected(self):
        with pytest.raises(ValidationError):
            FeeSchedule(taker_rate=-0.1, maker_rate=-0.2)

    @pytest.mark.parametrize("schedule", [OKEX_FEES, HUOBIHADAX_FEES, LOCALBITCOINS_FEES])
    def test_venue_schedules_discount_makers(self, schedule):
        assert 0 < schedule.maker_rate < schedule.taker_rate

    def test_frozen(self):
        with pytest.raises(ValidationError):
            OKEX_FEES.taker_rate = 0.5
