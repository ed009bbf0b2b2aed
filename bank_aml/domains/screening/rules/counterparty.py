"""Counterparty checks backed by fast-store set lookups."""

from ..config import ScreeningConfig
from ..models import RiskFlag
from .base import Band, RiskCheck


class OffshoreCounterpartyCheck(RiskCheck):
    check_id = "offshore_counterparty"
    category = "counterparty"

    def bands(self, config: ScreeningConfig) -> tuple[Band, ...]:
        return (
            Band(
                RiskFlag.OFFSHORE_COUNTERPARTY,
                40,
                lambda ctx: bool(ctx.transaction.counterparty_country)
                and ctx.counterparty_high_risk,
            ),
        )


class BlacklistedCounterpartyCheck(RiskCheck):
    """A blacklisted counterparty alone is enough to reach the high level."""

    check_id = "blacklisted_counterparty"
    category = "counterparty"

    def bands(self, config: ScreeningConfig) -> tuple[Band, ...]:
        return (
            Band(
                RiskFlag.BLACKLISTED_COUNTERPARTY,
                100,
                lambda ctx: bool(ctx.transaction.counterparty_account)
                and ctx.counterparty_blacklisted,
            ),
        )
