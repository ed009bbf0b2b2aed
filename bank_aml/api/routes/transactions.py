"""Transaction submission, status and maintenance endpoints."""

import structlog
from fastapi import APIRouter, Depends, Query

from bank_aml.api.dependencies import get_ingestion_service, get_query_service
from bank_aml.db.repository import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
from bank_aml.domains.screening.ingestion import IngestionService
from bank_aml.domains.screening.models import ProcessingResponse, Transaction
from bank_aml.domains.screening.queries import TransactionQueryService

logger = structlog.get_logger()

# Ingestion-only: the fraud-detection service never accepts submissions.
ingestion_router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])
router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


@ingestion_router.post("", status_code=201, response_model=ProcessingResponse)
async def submit_transaction(
    transaction: Transaction,
    service: IngestionService = Depends(get_ingestion_service),  # noqa: B008
) -> ProcessingResponse:
    return await service.submit(transaction)


@ingestion_router.get("")
async def list_transactions(
    limit: int = Query(default=DEFAULT_LIST_LIMIT, ge=1, le=MAX_LIST_LIMIT),
    service: TransactionQueryService = Depends(get_query_service),  # noqa: B008
) -> dict:
    statuses = await service.list(limit)
    return {"transactions": [status.model_dump(mode="json") for status in statuses]}


@router.get("/{processing_id}")
async def get_transaction_status(
    processing_id: str,
    service: TransactionQueryService = Depends(get_query_service),  # noqa: B008
) -> dict:
    status = await service.get_status(processing_id)
    return status.model_dump(mode="json", exclude_none=True)


@router.delete("")
async def clear_transactions(
    service: TransactionQueryService = Depends(get_query_service),  # noqa: B008
) -> dict:
    deleted = await service.clear()
    logger.info("database_cleared", deleted=deleted, cache_cleared=service.clears_cache)
    message = (
        "All transactions and cache cleared successfully"
        if service.clears_cache
        else "All transactions cleared successfully"
    )
    return {"message": message, "clear_storage": True, "deleted": deleted}
