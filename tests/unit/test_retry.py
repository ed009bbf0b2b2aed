"""Unit tests for the bounded retry helper."""

from unittest.mock import AsyncMock, patch

import pytest

from bank_aml.shared.retry import retry_async


class Locked(Exception):
    pass


class TestRetryAsync:
    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self):
        op = AsyncMock(return_value="ok")
        assert await retry_async(op, base_delay=0) == "ok"
        assert op.await_count == 1

    @pytest.mark.asyncio
    async def test_retries_matching_exception(self):
        op = AsyncMock(side_effect=[Locked(), Locked(), "ok"])
        result = await retry_async(
            op, base_delay=0, retry_on_exception=lambda exc: isinstance(exc, Locked)
        )
        assert result == "ok"
        assert op.await_count == 3

    @pytest.mark.asyncio
    async def test_non_matching_exception_is_raised_immediately(self):
        op = AsyncMock(side_effect=RuntimeError("boom"))
        with pytest.raises(RuntimeError):
            await retry_async(
                op, base_delay=0, retry_on_exception=lambda exc: isinstance(exc, Locked)
            )
        assert op.await_count == 1

    @pytest.mark.asyncio
    async def test_exhaustion_reraises_last_exception(self):
        op = AsyncMock(side_effect=Locked("still locked"))
        with pytest.raises(Locked, match="still locked"):
            await retry_async(op, max_attempts=5, base_delay=0, retry_on_exception=lambda e: True)
        assert op.await_count == 5

    @pytest.mark.asyncio
    async def test_result_retry_returns_last_result(self):
        op = AsyncMock(return_value=None)
        result = await retry_async(
            op, max_attempts=3, base_delay=0, retry_on_result=lambda r: r is None
        )
        assert result is None
        assert op.await_count == 3

    @pytest.mark.asyncio
    async def test_result_retry_stops_on_good_result(self):
        op = AsyncMock(side_effect=[None, None, {"id": 1}])
        result = await retry_async(op, base_delay=0, retry_on_result=lambda r: r is None)
        assert result == {"id": 1}

    @pytest.mark.asyncio
    async def test_linear_backoff(self):
        op = AsyncMock(side_effect=[Locked(), Locked(), Locked(), "ok"])
        with patch("bank_aml.shared.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            await retry_async(op, base_delay=0.05, retry_on_exception=lambda e: True)
        delays = [c.args[0] for c in sleep.await_args_list]
        assert delays == pytest.approx([0.05, 0.10, 0.15])

    @pytest.mark.asyncio
    async def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            await retry_async(AsyncMock(), max_attempts=0)
