"""Amount-based screening checks."""

from decimal import Decimal

from ..config import ScreeningConfig
from ..models import RiskFlag
from .base import Band, RiskCheck, ScreeningContext


class AmountBandCheck(RiskCheck):
    """Scores the single amount band the transaction falls in."""

    check_id = "amount_band"
    category = "amount"

    def bands(self, config: ScreeningConfig) -> tuple[Band, ...]:
        thresholds = config.amount
        return (
            Band(
                RiskFlag.VERY_LARGE_AMOUNT,
                50,
                lambda ctx: ctx.amount >= thresholds.very_large_min,
            ),
            Band(RiskFlag.LARGE_AMOUNT, 30, lambda ctx: ctx.amount >= thresholds.large_min),
            Band(RiskFlag.MEDIUM_AMOUNT, 10, lambda ctx: ctx.amount >= thresholds.medium_min),
        )


def is_round_amount(amount: Decimal, buckets: tuple[tuple[Decimal, Decimal], ...]) -> bool:
    """True when ``amount`` is an exact multiple of the bucket for its range.

    Buckets are ``(lower_bound, bucket)`` pairs, highest bound first. Amounts
    below every lower bound are never round.
    """
    if amount <= 0:
        return False
    for lower_bound, bucket in buckets:
        if amount >= lower_bound:
            return amount % bucket == 0
    return False


class RoundAmountCheck(RiskCheck):
    check_id = "round_amount"
    category = "amount"

    def bands(self, config: ScreeningConfig) -> tuple[Band, ...]:
        buckets = config.amount.round_buckets
        return (
            Band(RiskFlag.ROUND_AMOUNT, 5, lambda ctx: is_round_amount(ctx.amount, buckets)),
        )
