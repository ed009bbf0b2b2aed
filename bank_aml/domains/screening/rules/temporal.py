"""Time-of-day checks. The hour comes from the transaction timestamp (UTC)."""

from ..config import ScreeningConfig
from ..models import RiskFlag
from .base import Band, RiskCheck


def hour_in_window(hour: int, start: int, end: int) -> bool:
    """Half-open ``[start, end)`` test that wraps past midnight when start > end."""
    if start <= end:
        return start <= hour < end
    return hour >= start or hour < end


class TimeOfDayCheck(RiskCheck):
    """Night hours take precedence over the wider late-hours window."""

    check_id = "time_of_day"
    category = "temporal"

    def bands(self, config: ScreeningConfig) -> tuple[Band, ...]:
        window = config.time
        return (
            Band(
                RiskFlag.UNUSUAL_TIME,
                15,
                lambda ctx: hour_in_window(ctx.hour, window.night_start, window.night_end),
            ),
            Band(
                RiskFlag.LATE_HOURS,
                8,
                lambda ctx: hour_in_window(ctx.hour, window.late_start, window.late_end),
            ),
        )
