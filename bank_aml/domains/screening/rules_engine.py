"""Deterministic rule-based risk engine with additive integer scoring."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from .config import ScreeningConfig, default_config
from .models import Recommendation, RiskAnalysis, RiskFlag, RiskLevel, Transaction
from .rules import ALL_CHECKS, CheckResult, RiskCheck, ScreeningContext

if TYPE_CHECKING:
    from bank_aml.cache.fast_store import FastStore

logger = structlog.get_logger()


def classify_risk_level(score: int, config: ScreeningConfig = default_config) -> RiskLevel:
    if score <= config.levels.low_max:
        return RiskLevel.LOW
    if score <= config.levels.medium_max:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


_LEVEL_RECOMMENDATIONS = {
    RiskLevel.LOW: Recommendation.AUTO_APPROVE,
    RiskLevel.MEDIUM: Recommendation.LOG_ONLY,
    RiskLevel.HIGH: Recommendation.REQUIRE_VERIFICATION,
}


def recommend(level: RiskLevel) -> Recommendation:
    return _LEVEL_RECOMMENDATIONS[level]


class RiskEngine:
    """Scores a transaction against the ordered check list.

    The engine has two halves:
    1. ``build_context`` reads the high-risk country set, the account
       blacklist and the daily counter from the fast store.
    2. ``score`` is a pure function of that context: every check runs, in
       order, and each contributes at most one flag.

    ``analyze`` combines both and then increments the daily counter. Any fast
    store error aborts the analysis and propagates to the caller, including a
    failed increment.
    """

    def __init__(
        self,
        fast_store: FastStore,
        config: ScreeningConfig | None = None,
        checks: list[RiskCheck] | None = None,
    ) -> None:
        self._fast_store = fast_store
        self._config = config or default_config
        self._checks = list(checks) if checks is not None else list(ALL_CHECKS)

    @property
    def checks(self) -> list[RiskCheck]:
        return list(self._checks)

    async def build_context(self, tx: Transaction) -> ScreeningContext:
        high_risk = False
        if tx.counterparty_country:
            high_risk = await self._fast_store.is_high_risk_country(tx.counterparty_country)

        blacklisted = False
        if tx.counterparty_account:
            blacklisted = await self._fast_store.is_blacklisted(tx.counterparty_account)

        daily_count = await self._fast_store.get_daily(tx.account_number)

        return ScreeningContext(
            transaction=tx,
            counterparty_high_risk=high_risk,
            counterparty_blacklisted=blacklisted,
            daily_count=daily_count,
        )

    def score(self, context: ScreeningContext) -> tuple[int, list[CheckResult]]:
        """Run every check over ``context``. Returns the score and fired checks."""
        fired: list[CheckResult] = []
        seen: set[RiskFlag] = set()
        for check in self._checks:
            result = check.evaluate(context, self._config)
            if result is None or result.flag in seen:
                continue
            seen.add(result.flag)
            fired.append(result)
        return sum(result.weight for result in fired), fired

    async def analyze(self, tx: Transaction) -> RiskAnalysis:
        context = await self.build_context(tx)
        score, fired = self.score(context)

        await self._fast_store.incr_daily(tx.account_number)

        level = classify_risk_level(score, self._config)
        analysis = RiskAnalysis(
            risk_score=score,
            risk_level=level,
            flags=[result.flag for result in fired],
            recommendation=recommend(level),
            analyzed_at=datetime.now(UTC),
        )

        logger.info(
            "analysis_completed",
            transaction_id=tx.transaction_id,
            account_number=tx.account_number,
            risk_score=score,
            risk_level=level.value,
            flags=[flag.value for flag in analysis.flags],
            daily_count_before=context.daily_count,
        )
        return analysis
