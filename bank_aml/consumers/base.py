"""Base Kafka consumer with manual commits, poison-message handling and graceful stop."""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from aiokafka import AIOKafkaConsumer, TopicPartition
from aiokafka.coordinator.assignors.roundrobin import RoundRobinPartitionAssignor
from aiokafka.errors import KafkaError

from bank_aml.shared.errors import PoisonMessageError

logger = structlog.get_logger()

Handler = Callable[[dict[str, Any]], Awaitable[None]]


def decode_event(raw: bytes | None) -> dict[str, Any]:
    """Decode a message value into an event dict or raise PoisonMessageError."""
    if raw is None:
        raise PoisonMessageError("empty message value")
    try:
        event = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise PoisonMessageError(f"undecodable message: {exc}") from exc
    if not isinstance(event, dict):
        raise PoisonMessageError(f"expected a JSON object, got {type(event).__name__}")
    return event


class BaseConsumer:
    """Consumer-group worker with at-least-once delivery.

    Offsets are committed one message at a time after the handler returns.
    A handler exception leaves the offset uncommitted: the partition is
    rewound to the failed message and retried after a back-off. Poison
    messages and events without a handler are committed and dropped.
    """

    poll_timeout_ms = 500

    def __init__(
        self,
        topics: list[str],
        bootstrap_servers: str | list[str],
        group_id: str,
        handlers: dict[str, Handler] | None = None,
        retry_backoff_seconds: float = 1.0,
    ):
        self.topics = topics
        self.bootstrap_servers = bootstrap_servers
        self.group_id = group_id
        self.handlers: dict[str, Handler] = handlers or {}
        self.retry_backoff_seconds = retry_backoff_seconds
        self._consumer: AIOKafkaConsumer | None = None
        self._running = False
        self._stopped = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._running

    def register_handler(self, event_type: str, handler: Handler) -> None:
        self.handlers[event_type] = handler

    def _create_consumer(self) -> AIOKafkaConsumer:
        return AIOKafkaConsumer(
            *self.topics,
            bootstrap_servers=self.bootstrap_servers,
            group_id=self.group_id,
            auto_offset_reset="earliest",
            enable_auto_commit=False,
            partition_assignment_strategy=(RoundRobinPartitionAssignor,),
        )

    async def start(self) -> None:
        self._consumer = self._create_consumer()
        self._stopped.clear()
        try:
            await self._consumer.start()
            self._running = True
            logger.info("consumer_started", topics=self.topics, group_id=self.group_id)
            while self._running:
                batches = await self._consumer.getmany(timeout_ms=self.poll_timeout_ms)
                for tp, messages in batches.items():
                    await self._process_batch(tp, messages)
                    if not self._running:
                        break
        finally:
            await self._consumer.stop()
            self._running = False
            self._stopped.set()

    async def _process_batch(self, tp: TopicPartition, messages: list[Any]) -> None:
        for msg in messages:
            if not self._running:
                return
            if await self._process_message(msg):
                await self._commit(msg)
                continue
            # Redeliver from the failed message on the next poll.
            self._consumer.seek(tp, msg.offset)
            await asyncio.sleep(self.retry_backoff_seconds)
            return

    async def _process_message(self, msg: Any) -> bool:
        """Handle one message. True when its offset may be committed."""
        try:
            event = decode_event(msg.value)
        except PoisonMessageError as exc:
            logger.warning(
                "poison_message_dropped",
                topic=msg.topic,
                partition=msg.partition,
                offset=msg.offset,
                error=str(exc),
            )
            return True

        event_type = event.get("event_type", "unknown")
        handler = self.handlers.get(event_type)
        if handler is None:
            logger.warning("no_handler_for_event", event_type=event_type, offset=msg.offset)
            return True

        try:
            await handler(event)
        except PoisonMessageError as exc:
            logger.warning(
                "poison_message_dropped",
                topic=msg.topic,
                partition=msg.partition,
                offset=msg.offset,
                event_type=event_type,
                error=str(exc),
            )
            return True
        except Exception:
            logger.exception(
                "message_processing_error",
                topic=msg.topic,
                partition=msg.partition,
                offset=msg.offset,
                event_type=event_type,
            )
            return False
        return True

    async def _commit(self, msg: Any) -> None:
        tp = TopicPartition(msg.topic, msg.partition)
        try:
            await self._consumer.commit({tp: msg.offset + 1})
        except KafkaError:
            # The message is redelivered after the rebalance; handlers are idempotent.
            logger.warning(
                "offset_commit_failed",
                topic=msg.topic,
                partition=msg.partition,
                offset=msg.offset,
                exc_info=True,
            )

    async def stop(self, grace_seconds: float = 10.0) -> None:
        """Stop polling and wait up to ``grace_seconds`` for the in-flight message."""
        self._running = False
        if self._consumer is None:
            return
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=grace_seconds)
        except TimeoutError:
            logger.warning("consumer_stop_grace_exceeded", topics=self.topics, grace=grace_seconds)
            return
        logger.info("consumer_stopped", topics=self.topics)
