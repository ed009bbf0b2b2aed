"""Ingestion: persist a submission, then publish its screening job."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any, Protocol

import structlog
from pydantic import ValidationError

from bank_aml.shared.errors import InvalidTransactionError

from .models import (
    JobEvent,
    JobEventData,
    ProcessingResponse,
    SubmissionStatus,
    Transaction,
)

if TYPE_CHECKING:
    from bank_aml.db.repository import TransactionRepository

logger = structlog.get_logger()

PROCESSING_ID_PREFIX = "proc_"
EVENT_ID_PREFIX = "evt_"


def new_processing_id() -> str:
    return f"{PROCESSING_ID_PREFIX}{uuid.uuid4()}"


def new_event_id() -> str:
    return f"{EVENT_ID_PREFIX}{uuid.uuid4()}"


class JobPublisher(Protocol):
    async def publish(self, event: JobEvent) -> None: ...


class IngestionService:
    """Accepts transactions for screening.

    The submission row is committed before the job event is published. A
    publish failure therefore leaves the submission in ``pending_review`` and
    the error goes back to the caller; such orphans are replayed by operators,
    never re-ingested here.
    """

    def __init__(self, repository: TransactionRepository, publisher: JobPublisher) -> None:
        self._repository = repository
        self._publisher = publisher

    async def submit(self, payload: Transaction | dict[str, Any]) -> ProcessingResponse:
        tx = self._validate(payload)
        processing_id = new_processing_id()

        await self._repository.save(processing_id, tx)
        logger.info(
            "transaction_submitted",
            processing_id=processing_id,
            transaction_id=tx.transaction_id,
            account_number=tx.account_number,
        )

        event = JobEvent(
            event_id=new_event_id(),
            data=JobEventData.summarize(processing_id, tx),
        )
        await self._publisher.publish(event)

        return ProcessingResponse(
            processing_id=processing_id,
            status=SubmissionStatus.PENDING_REVIEW,
            message="Transaction accepted for analysis",
        )

    @staticmethod
    def _validate(payload: Transaction | dict[str, Any]) -> Transaction:
        if isinstance(payload, Transaction):
            return payload
        try:
            return Transaction.model_validate(payload)
        except ValidationError as exc:
            raise InvalidTransactionError(str(exc)) from exc
