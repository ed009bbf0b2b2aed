"""Fast store (Redis): cached analyses, policy sets and rolling counters."""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Protocol

import redis.asyncio as aioredis
import structlog
from pydantic import ValidationError
from redis.exceptions import RedisError

from bank_aml.config import Settings
from bank_aml.domains.screening.config import default_config
from bank_aml.domains.screening.models import RiskAnalysis, RiskLevel
from bank_aml.shared.errors import CacheUnavailableError

from .keys import (
    ANALYSIS_TTL_SECONDS,
    BLACKLIST_ACCOUNTS_KEY,
    DAILY_COUNT_TTL_SECONDS,
    HIGH_RISK_COUNTRIES_KEY,
    TRANSACTION_DATA_PATTERNS,
    analysis_key,
    daily_count_key,
    risk_stats_key,
)

logger = structlog.get_logger()

_DELETE_BATCH_SIZE = 500


class FastStore(Protocol):
    """Operations the pipeline needs from the fast store."""

    async def put_analysis(self, processing_id: str, analysis: RiskAnalysis) -> None: ...

    async def get_analysis(self, processing_id: str) -> RiskAnalysis | None: ...

    async def incr_stats(self, level: str) -> int: ...

    async def get_risk_stats(self) -> dict[str, int]: ...

    async def incr_daily(self, account_number: str) -> int: ...

    async def get_daily(self, account_number: str) -> int: ...

    async def is_blacklisted(self, account_number: str) -> bool: ...

    async def is_high_risk_country(self, country_code: str) -> bool: ...

    async def add_to_blacklist(self, account_number: str) -> None: ...

    async def seed_blacklists(self, countries: Iterable[str] | None = None) -> None: ...

    async def clear_transaction_data(self) -> int: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


@contextmanager
def _cache_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except RedisError as exc:
        raise CacheUnavailableError(f"fast store {operation} failed: {exc}") from exc


class RedisFastStore:
    """FastStore backed by redis.asyncio."""

    def __init__(self, client: aioredis.Redis) -> None:
        self._redis = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisFastStore":
        client = aioredis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            password=settings.redis_password,
            db=settings.redis_db,
            decode_responses=True,
        )
        return cls(client)

    async def put_analysis(self, processing_id: str, analysis: RiskAnalysis) -> None:
        with _cache_errors("put_analysis"):
            await self._redis.set(
                analysis_key(processing_id),
                analysis.model_dump_json(),
                ex=ANALYSIS_TTL_SECONDS,
            )

    async def get_analysis(self, processing_id: str) -> RiskAnalysis | None:
        with _cache_errors("get_analysis"):
            raw = await self._redis.get(analysis_key(processing_id))
        if raw is None:
            return None
        try:
            return RiskAnalysis.model_validate_json(raw)
        except ValidationError:
            logger.warning("cached_analysis_unreadable", processing_id=processing_id)
            return None

    async def incr_stats(self, level: str) -> int:
        with _cache_errors("incr_stats"):
            return await self._redis.incr(risk_stats_key(level))

    async def get_risk_stats(self) -> dict[str, int]:
        levels = [level.value for level in RiskLevel]
        with _cache_errors("get_risk_stats"):
            values = await self._redis.mget([risk_stats_key(level) for level in levels])
        return {level: int(value or 0) for level, value in zip(levels, values, strict=True)}

    async def incr_daily(self, account_number: str) -> int:
        """Increment the rolling daily counter and renew its 24h expiry atomically."""
        key = daily_count_key(account_number)
        with _cache_errors("incr_daily"):
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, DAILY_COUNT_TTL_SECONDS)
                count, _ = await pipe.execute()
        return int(count)

    async def get_daily(self, account_number: str) -> int:
        with _cache_errors("get_daily"):
            value = await self._redis.get(daily_count_key(account_number))
        return int(value) if value is not None else 0

    async def is_blacklisted(self, account_number: str) -> bool:
        with _cache_errors("is_blacklisted"):
            return bool(await self._redis.sismember(BLACKLIST_ACCOUNTS_KEY, account_number))

    async def is_high_risk_country(self, country_code: str) -> bool:
        with _cache_errors("is_high_risk_country"):
            return bool(await self._redis.sismember(HIGH_RISK_COUNTRIES_KEY, country_code))

    async def add_to_blacklist(self, account_number: str) -> None:
        with _cache_errors("add_to_blacklist"):
            await self._redis.sadd(BLACKLIST_ACCOUNTS_KEY, account_number)
        logger.info("account_blacklisted", account_number=account_number)

    async def seed_blacklists(self, countries: Iterable[str] | None = None) -> None:
        """Idempotently add the high-risk countries. Accounts are not seeded."""
        codes = list(countries if countries is not None else default_config.high_risk_countries)
        if not codes:
            return
        with _cache_errors("seed_blacklists"):
            await self._redis.sadd(HIGH_RISK_COUNTRIES_KEY, *codes)
        logger.info("high_risk_countries_seeded", count=len(codes))

    async def clear_transaction_data(self) -> int:
        deleted = 0
        with _cache_errors("clear_transaction_data"):
            for pattern in TRANSACTION_DATA_PATTERNS:
                batch: list[str] = []
                async for key in self._redis.scan_iter(match=pattern, count=_DELETE_BATCH_SIZE):
                    batch.append(key)
                    if len(batch) >= _DELETE_BATCH_SIZE:
                        deleted += await self._redis.delete(*batch)
                        batch = []
                if batch:
                    deleted += await self._redis.delete(*batch)
        logger.info("transaction_cache_cleared", deleted_keys=deleted)
        return deleted

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError:
            logger.warning("fast_store_ping_failed")
            return False

    async def close(self) -> None:
        await self._redis.aclose()
