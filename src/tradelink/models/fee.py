"""Fee request model and withdrawal permission flags."""

from enum import IntFlag

from tradelink.models.base import FeeCategory, FrozenModel


class FeeRequest(FrozenModel):
    """Normalized description of the transaction a fee is quoted for."""

    category: FeeCategory = FeeCategory.TRADE
    first_currency: str = ""
    second_currency: str = ""
    amount: float = 0.0
    price: float = 0.0
    is_maker: bool = False
    fiat_currency: str = ""


class WithdrawPermission(IntFlag):
    """Withdrawal methods a venue's API allows."""

    NONE = 0
    AUTO_WITHDRAW_CRYPTO = 1 << 0
    AUTO_WITHDRAW_CRYPTO_WITH_API_PERMISSION = 1 << 1
    AUTO_WITHDRAW_CRYPTO_WITH_SETUP = 1 << 2
    WITHDRAW_CRYPTO_WITH_2FA = 1 << 3
    WITHDRAW_CRYPTO_WITH_EMAIL = 1 << 4
    WITHDRAW_CRYPTO_VIA_WEBSITE_ONLY = 1 << 5
    AUTO_WITHDRAW_FIAT = 1 << 6
    AUTO_WITHDRAW_FIAT_WITH_API_PERMISSION = 1 << 7
    AUTO_WITHDRAW_FIAT_WITH_SETUP = 1 << 8
    WITHDRAW_FIAT_VIA_WEBSITE_ONLY = 1 << 9
    NO_FIAT_WITHDRAWALS = 1 << 10


_PERMISSION_TEXT: dict[WithdrawPermission, str] = {
    WithdrawPermission.AUTO_WITHDRAW_CRYPTO: "AUTO WITHDRAW CRYPTO",
    WithdrawPermission.AUTO_WITHDRAW_CRYPTO_WITH_API_PERMISSION: (
        "AUTO WITHDRAW CRYPTO WITH API PERMISSION"
    ),
    WithdrawPermission.AUTO_WITHDRAW_CRYPTO_WITH_SETUP: "AUTO WITHDRAW CRYPTO WITH SETUP",
    WithdrawPermission.WITHDRAW_CRYPTO_WITH_2FA: "WITHDRAW CRYPTO WITH 2FA",
    WithdrawPermission.WITHDRAW_CRYPTO_WITH_EMAIL: "WITHDRAW CRYPTO WITH EMAIL",
    WithdrawPermission.WITHDRAW_CRYPTO_VIA_WEBSITE_ONLY: "WITHDRAW CRYPTO VIA WEBSITE ONLY",
    WithdrawPermission.AUTO_WITHDRAW_FIAT: "AUTO WITHDRAW FIAT",
    WithdrawPermission.AUTO_WITHDRAW_FIAT_WITH_API_PERMISSION: (
        "AUTO WITHDRAW FIAT WITH API PERMISSION"
    ),
    WithdrawPermission.AUTO_WITHDRAW_FIAT_WITH_SETUP: "AUTO WITHDRAW FIAT WITH SETUP",
    WithdrawPermission.WITHDRAW_FIAT_VIA_WEBSITE_ONLY: "WITHDRAW FIAT VIA WEBSITE ONLY",
    WithdrawPermission.NO_FIAT_WITHDRAWALS: "NO FIAT WITHDRAWAL",
}

NO_WITHDRAWALS_TEXT = "NO WITHDRAWAL"


def format_withdraw_permissions(permissions: WithdrawPermission) -> str:
    """Render permission flags as `` & ``-joined text, in flag order."""
    parts = [
        text for flag, text in _PERMISSION_TEXT.items() if flag in permissions
    ]
    return " & ".join(parts) if parts else NO_WITHDRAWALS_TEXT
