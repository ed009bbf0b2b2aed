"""Unit tests for the ingestion service."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from bank_aml.domains.screening.ingestion import (
    EVENT_ID_PREFIX,
    PROCESSING_ID_PREFIX,
    IngestionService,
    new_processing_id,
)
from bank_aml.domains.screening.models import JOB_EVENT_TYPE, JobEvent, SubmissionStatus
from bank_aml.shared.errors import (
    BusUnavailableError,
    InvalidTransactionError,
    StoreLockedError,
)
from tests.factories import make_transaction, transaction_payload


def _service():
    repository = AsyncMock()
    publisher = AsyncMock()
    return IngestionService(repository, publisher), repository, publisher


class TestIngestionService:
    @pytest.mark.asyncio
    async def test_submit_saves_then_publishes(self):
        service, repository, publisher = _service()
        calls = MagicMock()
        repository.save.side_effect = lambda *a, **kw: calls("save")
        publisher.publish.side_effect = lambda *a, **kw: calls("publish")

        response = await service.submit(make_transaction())

        assert [c.args[0] for c in calls.call_args_list] == ["save", "publish"]
        assert response.status == SubmissionStatus.PENDING_REVIEW
        assert response.message == "Transaction accepted for analysis"
        assert response.processing_id.startswith(PROCESSING_ID_PREFIX)

    @pytest.mark.asyncio
    async def test_event_carries_processing_id(self):
        service, repository, publisher = _service()
        tx = make_transaction()

        response = await service.submit(tx)

        saved_pid, saved_tx = repository.save.call_args.args
        assert saved_pid == response.processing_id
        assert saved_tx == tx

        event: JobEvent = publisher.publish.call_args.args[0]
        assert event.event_type == JOB_EVENT_TYPE
        assert event.event_id.startswith(EVENT_ID_PREFIX)
        assert event.data.processing_id == response.processing_id
        assert event.data.transaction_id == tx.transaction_id
        assert event.data.amount == tx.amount

    @pytest.mark.asyncio
    async def test_accepts_raw_payload(self):
        service, repository, _ = _service()
        await service.submit(transaction_payload(amount=250000))
        _, saved_tx = repository.save.call_args.args
        assert str(saved_tx.amount) == "250000"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"amount": 0},
            {"amount": -10},
            {"transaction_id": ""},
            {"account_number": "   "},
            {"currency": ""},
        ],
    )
    async def test_invalid_payload_is_rejected_before_any_io(self, overrides):
        service, repository, publisher = _service()
        with pytest.raises(InvalidTransactionError):
            await service.submit(transaction_payload(**overrides))
        repository.save.assert_not_called()
        publisher.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_failure_skips_publish(self):
        service, repository, publisher = _service()
        repository.save.side_effect = StoreLockedError("locked")
        with pytest.raises(StoreLockedError):
            await service.submit(make_transaction())
        publisher.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_publish_failure_propagates_after_save(self):
        service, repository, publisher = _service()
        publisher.publish.side_effect = BusUnavailableError("kafka down")
        with pytest.raises(BusUnavailableError):
            await service.submit(make_transaction())
        repository.save.assert_awaited_once()

    def test_processing_ids_are_unique(self):
        ids = {new_processing_id() for _ in range(100)}
        assert len(ids) == 100
