"""Kafka producer helpers for publishing screening jobs."""

import asyncio
import json

import structlog
from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from bank_aml.domains.screening.models import JobEvent

from .errors import BusUnavailableError

logger = structlog.get_logger()

DEFAULT_TOPIC = "bank.transactions.received"

_RETRY_BACKOFF_SECONDS = 0.1


def _json_bytes(value: dict) -> bytes:
    return json.dumps(value, default=str).encode("utf-8")


async def create_producer(
    bootstrap_servers: str | list[str],
    request_timeout_seconds: float = 10.0,
) -> AIOKafkaProducer:
    """Create and start a producer that waits for all in-sync replicas."""
    producer = AIOKafkaProducer(
        bootstrap_servers=bootstrap_servers,
        acks="all",
        request_timeout_ms=int(request_timeout_seconds * 1000),
        key_serializer=lambda k: k.encode("utf-8"),
        value_serializer=_json_bytes,
    )
    await producer.start()
    logger.info("kafka_producer_started", bootstrap_servers=bootstrap_servers)
    return producer


class EventPublisher:
    """Synchronous-acknowledgement publisher for job events.

    Messages are keyed by processing id so every event for an id lands on the
    same partition. Retriable transport errors are retried with a short linear
    back-off; anything else, or running out of attempts, raises
    ``BusUnavailableError``.
    """

    def __init__(
        self,
        producer: AIOKafkaProducer,
        topic: str = DEFAULT_TOPIC,
        max_retries: int = 5,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._producer = producer
        self._topic = topic
        self._max_retries = max(1, max_retries)
        self._timeout_seconds = timeout_seconds

    @property
    def topic(self) -> str:
        return self._topic

    async def publish(self, event: JobEvent) -> None:
        payload = event.model_dump(mode="json")
        key = event.data.processing_id

        for attempt in range(1, self._max_retries + 1):
            try:
                metadata = await asyncio.wait_for(
                    self._producer.send_and_wait(self._topic, payload, key=key),
                    timeout=self._timeout_seconds,
                )
            except (KafkaError, TimeoutError) as exc:
                retriable = isinstance(exc, TimeoutError) or getattr(exc, "retriable", False)
                if not retriable or attempt == self._max_retries:
                    logger.error(
                        "job_event_publish_failed",
                        topic=self._topic,
                        event_id=event.event_id,
                        processing_id=key,
                        attempts=attempt,
                        error=str(exc) or type(exc).__name__,
                    )
                    raise BusUnavailableError(
                        f"publish to {self._topic} failed after {attempt} attempt(s): {exc!r}"
                    ) from exc
                logger.warning(
                    "job_event_publish_retry",
                    topic=self._topic,
                    processing_id=key,
                    attempt=attempt,
                    error=str(exc) or type(exc).__name__,
                )
                await asyncio.sleep(_RETRY_BACKOFF_SECONDS * attempt)
                continue

            logger.info(
                "job_event_published",
                topic=self._topic,
                event_id=event.event_id,
                processing_id=key,
                partition=metadata.partition,
                offset=metadata.offset,
            )
            return
