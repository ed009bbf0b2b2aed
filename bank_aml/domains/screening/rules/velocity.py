"""Per-account frequency check over the rolling daily counter."""

from ..config import ScreeningConfig
from ..models import RiskFlag
from .base import Band, RiskCheck


class DailyFrequencyCheck(RiskCheck):
    """Uses the counter value observed before this screening's own increment."""

    check_id = "daily_frequency"
    category = "velocity"

    def bands(self, config: ScreeningConfig) -> tuple[Band, ...]:
        thresholds = config.frequency
        return (
            Band(RiskFlag.HIGH_FREQUENCY, 25, lambda ctx: ctx.daily_count >= thresholds.high_min),
            Band(
                RiskFlag.MEDIUM_FREQUENCY,
                10,
                lambda ctx: ctx.daily_count >= thresholds.medium_min,
            ),
        )
