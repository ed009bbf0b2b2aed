"""Read and maintenance operations behind the status, list and clear endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from bank_aml.shared.errors import CacheUnavailableError, TransactionNotFoundError

from .models import RiskAnalysis, TransactionStatus, TransactionStatusResponse

if TYPE_CHECKING:
    from bank_aml.cache.fast_store import FastStore
    from bank_aml.db.repository import TransactionRepository

logger = structlog.get_logger()


class TransactionQueryService:
    def __init__(
        self,
        repository: TransactionRepository,
        fast_store: FastStore | None = None,
    ) -> None:
        self._repository = repository
        self._fast_store = fast_store

    @property
    def clears_cache(self) -> bool:
        return self._fast_store is not None

    async def get_status(self, processing_id: str) -> TransactionStatusResponse:
        status = await self._repository.get_status(processing_id)
        if status is None:
            raise TransactionNotFoundError(f"Transaction {processing_id} not found")
        analysis = await self._cached_analysis(processing_id)
        return TransactionStatusResponse.from_status(status, analysis)

    async def list(self, limit: int | None = None) -> list[TransactionStatus]:
        return await self._repository.list(limit)

    async def clear(self) -> int:
        """Drop every submission and the cached transaction data. Blacklists stay."""
        deleted = await self._repository.clear_all()
        if self._fast_store is not None:
            try:
                await self._fast_store.clear_transaction_data()
            except CacheUnavailableError:
                logger.warning("transaction_cache_clear_failed", exc_info=True)
        return deleted

    async def _cached_analysis(self, processing_id: str) -> RiskAnalysis | None:
        if self._fast_store is None:
            return None
        try:
            return await self._fast_store.get_analysis(processing_id)
        except CacheUnavailableError:
            logger.warning("cached_analysis_unavailable", processing_id=processing_id)
            return None
