"""Screening checks package.

Exports ALL_CHECKS (check instances in evaluation order) and the individual
check classes. The order of ALL_CHECKS is the order flags appear in an
analysis.
"""

from .amount import AmountBandCheck, RoundAmountCheck, is_round_amount
from .base import Band, CheckResult, RiskCheck, ScreeningContext
from .counterparty import BlacklistedCounterpartyCheck, OffshoreCounterpartyCheck
from .profile import ChannelCheck, CurrencyCheck, TransactionTypeCheck
from .temporal import TimeOfDayCheck, hour_in_window
from .velocity import DailyFrequencyCheck

# All check instances in evaluation order
ALL_CHECKS: list[RiskCheck] = [
    AmountBandCheck(),
    OffshoreCounterpartyCheck(),
    BlacklistedCounterpartyCheck(),
    TimeOfDayCheck(),
    DailyFrequencyCheck(),
    TransactionTypeCheck(),
    ChannelCheck(),
    CurrencyCheck(),
    RoundAmountCheck(),
]

__all__ = [
    "ALL_CHECKS",
    "Band",
    "CheckResult",
    "RiskCheck",
    "ScreeningContext",
    "hour_in_window",
    "is_round_amount",
    # Amount
    "AmountBandCheck",
    "RoundAmountCheck",
    # Counterparty
    "OffshoreCounterpartyCheck",
    "BlacklistedCounterpartyCheck",
    # Temporal / velocity
    "TimeOfDayCheck",
    "DailyFrequencyCheck",
    # Profile
    "TransactionTypeCheck",
    "ChannelCheck",
    "CurrencyCheck",
]
