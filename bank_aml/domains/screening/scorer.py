"""Scoring worker: load, analyze, cache and persist one screening job."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from bank_aml.shared.errors import CacheUnavailableError, CorruptRecordError

from .models import JobEvent, RiskAnalysis
from .rules_engine import RiskEngine

if TYPE_CHECKING:
    from bank_aml.cache.fast_store import FastStore
    from bank_aml.db.repository import TransactionRepository

logger = structlog.get_logger()


class TransactionScorer:
    """Runs the consume side of the pipeline for a single job event.

    Errors from loading the transaction, from the risk engine or from the
    primary store update propagate, so the consumer leaves the offset
    uncommitted and the job is redelivered. A row that fails validation is
    dropped. Writes to the analysis cache and the risk stats counter are best
    effort.
    """

    def __init__(
        self,
        repository: TransactionRepository,
        fast_store: FastStore,
        engine: RiskEngine | None = None,
    ) -> None:
        self._repository = repository
        self._fast_store = fast_store
        self._engine = engine or RiskEngine(fast_store)

    async def process(self, event: JobEvent) -> RiskAnalysis | None:
        """Score the submission behind ``event``. None when it no longer exists."""
        processing_id = event.data.processing_id
        log = logger.bind(processing_id=processing_id, event_id=event.event_id)

        try:
            tx = await self._repository.get_full_transaction(processing_id)
        except CorruptRecordError:
            log.error("transaction_record_unreadable", exc_info=True)
            return None
        if tx is None:
            log.warning("transaction_not_found_after_retries")
            return None

        analysis = await self._engine.analyze(tx)

        try:
            await self._fast_store.put_analysis(processing_id, analysis)
        except CacheUnavailableError:
            log.warning("analysis_cache_write_failed", exc_info=True)

        updated = await self._repository.update_analysis(
            processing_id,
            analysis.risk_score,
            analysis.risk_level,
            analysis.analyzed_at,
        )
        if not updated:
            log.warning("transaction_cleared_before_review")
            return None

        log.info(
            "transaction_reviewed",
            risk_score=analysis.risk_score,
            risk_level=analysis.risk_level.value,
            recommendation=analysis.recommendation.value,
        )

        try:
            await self._fast_store.incr_stats(analysis.risk_level.value)
        except CacheUnavailableError:
            log.warning("risk_stats_increment_failed", exc_info=True)

        return analysis
