"""Checks on transaction type, channel and currency."""

from ..config import ScreeningConfig
from ..models import RiskFlag
from .base import Band, RiskCheck, ScreeningContext


class TransactionTypeCheck(RiskCheck):
    check_id = "transaction_type"
    category = "profile"

    def bands(self, config: ScreeningConfig) -> tuple[Band, ...]:
        return (
            Band(
                RiskFlag.INTERNATIONAL_TRANSFER,
                20,
                lambda ctx: ctx.transaction.transaction_type == "international_transfer",
            ),
            Band(
                RiskFlag.WITHDRAWAL,
                5,
                lambda ctx: ctx.transaction.transaction_type == "withdrawal",
            ),
        )


class ChannelCheck(RiskCheck):
    """ATM bands are mutually exclusive; the mobile band applies only to mobile."""

    check_id = "channel"
    category = "profile"

    def bands(self, config: ScreeningConfig) -> tuple[Band, ...]:
        def is_atm(ctx: ScreeningContext) -> bool:
            return ctx.transaction.channel == "atm"

        return (
            Band(
                RiskFlag.LARGE_ATM_TRANSACTION,
                12,
                lambda ctx: is_atm(ctx) and ctx.amount >= config.atm_large_min,
            ),
            Band(RiskFlag.ATM_TRANSACTION, 5, is_atm),
            Band(
                RiskFlag.LARGE_MOBILE_TRANSACTION,
                8,
                lambda ctx: ctx.transaction.channel == "mobile"
                and ctx.amount >= config.mobile_large_min,
            ),
        )


class CurrencyCheck(RiskCheck):
    check_id = "currency"
    category = "profile"

    def bands(self, config: ScreeningConfig) -> tuple[Band, ...]:
        return tuple(
            Band(
                RiskFlag.HIGH_RISK_CURRENCY,
                weight,
                lambda ctx, code=code: ctx.transaction.currency == code,
            )
            for code, weight in config.high_risk_currencies.items()
        )
