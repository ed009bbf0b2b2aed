"""Consumer for screening job events."""

from typing import Any

import structlog
from pydantic import ValidationError

from bank_aml.domains.screening.models import JOB_EVENT_TYPE, JobEvent
from bank_aml.domains.screening.scorer import TransactionScorer
from bank_aml.shared.errors import PoisonMessageError
from bank_aml.shared.kafka_utils import DEFAULT_TOPIC

from .base import BaseConsumer

logger = structlog.get_logger()


class ScreeningConsumer(BaseConsumer):
    def __init__(
        self,
        bootstrap_servers: str | list[str],
        scorer: TransactionScorer,
        topic: str = DEFAULT_TOPIC,
        group_id: str = "fraud-detection-group",
        retry_backoff_seconds: float = 1.0,
    ) -> None:
        super().__init__(
            topics=[topic],
            bootstrap_servers=bootstrap_servers,
            group_id=group_id,
            retry_backoff_seconds=retry_backoff_seconds,
        )
        self._scorer = scorer
        self.register_handler(JOB_EVENT_TYPE, self._handle_job_event)

    async def _handle_job_event(self, event: dict[str, Any]) -> None:
        try:
            job = JobEvent.model_validate(event)
        except ValidationError as exc:
            raise PoisonMessageError(f"invalid job event: {exc}") from exc

        logger.info(
            "job_event_received",
            event_id=job.event_id,
            processing_id=job.data.processing_id,
        )
        await self._scorer.process(job)
