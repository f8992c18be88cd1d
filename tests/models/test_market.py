"""Tests for ticker, order book, account and fee models."""

import pytest
from pydantic import ValidationError

from tradelink.models import (
    AccountBalance,
    AccountInfo,
    OrderBookSnapshot,
    PriceLevel,
    TickerSnapshot,
    TradingPair,
    WithdrawPermission,
    format_withdraw_permissions,
)

BTC_USD = TradingPair(base="BTC", quote="USD")


class TestTickerSnapshot:
    def test_defaults(self):
        ticker = TickerSnapshot(venue="okex", pair=BTC_USD, last=100)
        assert ticker.bid == 0.0
        assert ticker.captured_at.tzinfo is not None

    def test_spread(self):
        assert TickerSnapshot(venue="v", pair=BTC_USD, bid=99, ask=101).spread == 2.0
        assert TickerSnapshot(venue="v", pair=BTC_USD, ask=101).spread == 0.0

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            TickerSnapshot(venue="v", pair=BTC_USD, last=-1)


class TestOrderBookSnapshot:
    def test_from_levels_sorts(self):
        book = OrderBookSnapshot.from_levels(
            "v", BTC_USD, bids=[(1, 1), (3, 1), (2, 1)], asks=[(6, 1), (4, 1), (5, 1)]
        )
        assert [lvl.price for lvl in book.bids] == [3, 2, 1]
        assert [lvl.price for lvl in book.asks] == [4, 5, 6]
        assert book.best_bid == 3
        assert book.best_ask == 4

    def test_misordered_bids_rejected(self):
        with pytest.raises(ValidationError):
            OrderBookSnapshot(
                venue="v",
                pair=BTC_USD,
                bids=(PriceLevel(price=1, amount=1), PriceLevel(price=2, amount=1)),
            )

    def test_misordered_asks_rejected(self):
        with pytest.raises(ValidationError):
            OrderBookSnapshot(
                venue="v",
                pair=BTC_USD,
                asks=(PriceLevel(price=2, amount=1), PriceLevel(price=1, amount=1)),
            )

    def test_empty_book(self):
        book = OrderBookSnapshot(venue="v", pair=BTC_USD)
        assert book.best_bid is None
        assert book.best_ask is None


class TestAccountInfo:
    def test_lookup(self):
        info = AccountInfo(
            venue="v",
            balances=(AccountBalance(currency="BTC", available=1.0, held=0.25),),
        )
        assert info.get("btc").total == 1.25
        assert info.get("ETH") is None


class TestWithdrawPermissions:
    def test_single_flag(self):
        assert (
            format_withdraw_permissions(WithdrawPermission.AUTO_WITHDRAW_CRYPTO)
            == "AUTO WITHDRAW CRYPTO"
        )

    def test_combined_flags_in_order(self):
        flags = WithdrawPermission.NO_FIAT_WITHDRAWALS | WithdrawPermission.WITHDRAW_CRYPTO_WITH_2FA
        assert format_withdraw_permissions(flags) == "WITHDRAW CRYPTO WITH 2FA & NO FIAT WITHDRAWAL"

    def test_none(self):
        assert format_withdraw_permissions(WithdrawPermission.NONE) == "NO WITHDRAWAL"
