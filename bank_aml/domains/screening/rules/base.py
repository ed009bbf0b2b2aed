"""Base types for screening checks.

A check is an ordered tuple of bands. Bands are tried in order and the first
band whose predicate holds fires, which expresses the ``if / else if`` chains
of the rule table as data. A check with no matching band contributes nothing.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal

from ..config import ScreeningConfig
from ..models import RiskFlag, Transaction


@dataclass(frozen=True)
class ScreeningContext:
    """A transaction plus the fast-store lookups observed for it."""

    transaction: Transaction
    counterparty_high_risk: bool = False
    counterparty_blacklisted: bool = False
    daily_count: int = 0

    @property
    def amount(self) -> Decimal:
        return self.transaction.amount

    @property
    def hour(self) -> int:
        return self.transaction.timestamp.hour


@dataclass(frozen=True)
class Band:
    flag: RiskFlag
    weight: int
    predicate: Callable[[ScreeningContext], bool]


@dataclass(frozen=True)
class CheckResult:
    check_id: str
    flag: RiskFlag
    weight: int


class RiskCheck(ABC):
    """Base class for all screening checks."""

    check_id: str
    category: str  # "amount" | "counterparty" | "temporal" | "velocity" | "profile"

    @abstractmethod
    def bands(self, config: ScreeningConfig) -> tuple[Band, ...]:
        """Return this check's bands in priority order."""
        ...

    def evaluate(self, context: ScreeningContext, config: ScreeningConfig) -> CheckResult | None:
        for band in self.bands(config):
            if band.predicate(context):
                return CheckResult(check_id=self.check_id, flag=band.flag, weight=band.weight)
        return None
