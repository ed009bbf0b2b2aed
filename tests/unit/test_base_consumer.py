"""Unit tests for the base consumer's delivery semantics."""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiokafka import TopicPartition
from aiokafka.errors import CommitFailedError

from bank_aml.consumers.base import BaseConsumer, decode_event
from bank_aml.shared.errors import PoisonMessageError

TOPIC = "bank.transactions.received"
TP = TopicPartition(TOPIC, 0)


def _msg(offset: int, value) -> SimpleNamespace:
    raw = value if isinstance(value, bytes) or value is None else json.dumps(value).encode()
    return SimpleNamespace(topic=TOPIC, partition=0, offset=offset, value=raw)


def _event(pid: str = "proc_1") -> dict:
    return {"event_id": "evt_1", "event_type": "transaction_received", "data": {"processing_id": pid}}


def _consumer(handler=None) -> BaseConsumer:
    consumer = BaseConsumer(
        topics=[TOPIC],
        bootstrap_servers="localhost:9092",
        group_id="test-group",
        retry_backoff_seconds=0,
    )
    if handler is not None:
        consumer.register_handler("transaction_received", handler)
    return consumer


def _fake_kafka(consumer: BaseConsumer, batches: list[dict]) -> MagicMock:
    """A fake AIOKafkaConsumer that serves ``batches`` and then requests a stop."""
    kafka = MagicMock()
    kafka.start = AsyncMock()
    kafka.stop = AsyncMock()
    kafka.commit = AsyncMock()
    pending = list(batches)
    stop_tasks = []

    async def getmany(timeout_ms):
        if pending:
            return pending.pop(0)
        stop_tasks.append(asyncio.create_task(consumer.stop(grace_seconds=1)))
        await asyncio.sleep(0)
        return {}

    kafka.getmany = getmany
    kafka.stop_tasks = stop_tasks
    consumer._create_consumer = lambda: kafka
    return kafka


class TestDecodeEvent:
    def test_valid(self):
        assert decode_event(json.dumps(_event()).encode())["event_id"] == "evt_1"

    @pytest.mark.parametrize("raw", [None, b"not json", b"\xff\xfe", b"[1, 2]"])
    def test_poison(self, raw):
        with pytest.raises(PoisonMessageError):
            decode_event(raw)


class TestProcessMessage:
    @pytest.mark.asyncio
    async def test_dispatches_by_event_type(self):
        handler = AsyncMock()
        consumer = _consumer(handler)
        assert await consumer._process_message(_msg(0, _event()))
        handler.assert_awaited_once_with(_event())

    @pytest.mark.asyncio
    async def test_unknown_event_type_is_committed(self):
        handler = AsyncMock()
        consumer = _consumer(handler)
        assert await consumer._process_message(_msg(0, {"event_type": "something_else"}))
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_poison_from_handler_is_committed(self):
        consumer = _consumer(AsyncMock(side_effect=PoisonMessageError("bad")))
        assert await consumer._process_message(_msg(0, _event()))

    @pytest.mark.asyncio
    async def test_handler_failure_is_not_committed(self):
        consumer = _consumer(AsyncMock(side_effect=RuntimeError("db down")))
        assert not await consumer._process_message(_msg(0, _event()))


class TestRunLoop:
    @pytest.mark.asyncio
    async def test_commits_each_message_after_handling(self):
        handler = AsyncMock()
        consumer = _consumer(handler)
        kafka = _fake_kafka(consumer, [{TP: [_msg(0, _event("p0")), _msg(1, _event("p1"))]}])

        await consumer.start()
        await asyncio.gather(*kafka.stop_tasks)

        assert handler.await_count == 2
        commits = [c.args[0] for c in kafka.commit.await_args_list]
        assert commits == [{TP: 1}, {TP: 2}]
        kafka.stop.assert_awaited_once()
        assert not consumer.running

    @pytest.mark.asyncio
    async def test_poison_message_is_committed_and_skipped(self):
        handler = AsyncMock()
        consumer = _consumer(handler)
        kafka = _fake_kafka(consumer, [{TP: [_msg(0, b"garbage"), _msg(1, _event())]}])

        await consumer.start()
        await asyncio.gather(*kafka.stop_tasks)

        assert handler.await_count == 1
        assert [c.args[0] for c in kafka.commit.await_args_list] == [{TP: 1}, {TP: 2}]

    @pytest.mark.asyncio
    async def test_failure_rewinds_partition_and_redelivers(self):
        handler = AsyncMock(side_effect=[RuntimeError("locked"), None, None])
        consumer = _consumer(handler)
        first = _msg(5, _event("p5"))
        second = _msg(6, _event("p6"))
        kafka = _fake_kafka(consumer, [{TP: [first, second]}, {TP: [first, second]}])

        await consumer.start()
        await asyncio.gather(*kafka.stop_tasks)

        kafka.seek.assert_called_once_with(TP, 5)
        # The failed batch commits nothing; the redelivered batch commits both.
        assert [c.args[0] for c in kafka.commit.await_args_list] == [{TP: 6}, {TP: 7}]
        assert handler.await_count == 3

    @pytest.mark.asyncio
    async def test_commit_failure_does_not_stop_the_loop(self):
        handler = AsyncMock()
        consumer = _consumer(handler)
        kafka = _fake_kafka(consumer, [{TP: [_msg(0, _event("p0")), _msg(1, _event("p1"))]}])
        kafka.commit.side_effect = [CommitFailedError(), None]

        await consumer.start()
        await asyncio.gather(*kafka.stop_tasks)

        assert handler.await_count == 2

    @pytest.mark.asyncio
    async def test_start_failure_still_signals_stopped(self):
        consumer = _consumer(AsyncMock())
        kafka = _fake_kafka(consumer, [])
        kafka.start.side_effect = ConnectionError("no brokers")

        with pytest.raises(ConnectionError):
            await consumer.start()
        await asyncio.wait_for(consumer.stop(grace_seconds=1), timeout=2)
        assert not consumer.running


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_before_start_is_a_noop(self):
        await _consumer().stop(grace_seconds=0)
