"""In-process FastStore with the same key layout and TTL semantics as Redis."""

import fnmatch
import time
from collections.abc import Callable, Iterable

from bank_aml.domains.screening.config import default_config
from bank_aml.domains.screening.models import RiskAnalysis, RiskLevel

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


class InMemoryFastStore:
    """Single-process substitute for RedisFastStore.

    Values live in a dict of ``key -> (value, expires_at)``; sets live apart
    and never expire. ``clock`` is injectable so tests can move time forward.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._values: dict[str, tuple[str | int, float | None]] = {}
        self._sets: dict[str, set[str]] = {}

    def _get(self, key: str) -> str | int | None:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._values[key]
            return None
        return value

    def _set(self, key: str, value: str | int, ttl: float | None = None) -> None:
        expires_at = self._clock() + ttl if ttl is not None else None
        self._values[key] = (value, expires_at)

    def _incr(self, key: str) -> int:
        current = int(self._get(key) or 0) + 1
        _, expires_at = self._values.get(key, (None, None))
        self._values[key] = (current, expires_at)
        return current

    async def put_analysis(self, processing_id: str, analysis: RiskAnalysis) -> None:
        self._set(analysis_key(processing_id), analysis.model_dump_json(), ANALYSIS_TTL_SECONDS)

    async def get_analysis(self, processing_id: str) -> RiskAnalysis | None:
        raw = self._get(analysis_key(processing_id))
        if raw is None:
            return None
        return RiskAnalysis.model_validate_json(str(raw))

    async def incr_stats(self, level: str) -> int:
        return self._incr(risk_stats_key(level))

    async def get_risk_stats(self) -> dict[str, int]:
        return {
            level.value: int(self._get(risk_stats_key(level.value)) or 0) for level in RiskLevel
        }

    async def incr_daily(self, account_number: str) -> int:
        key = daily_count_key(account_number)
        count = self._incr(key)
        self._set(key, count, DAILY_COUNT_TTL_SECONDS)
        return count

    async def get_daily(self, account_number: str) -> int:
        return int(self._get(daily_count_key(account_number)) or 0)

    async def is_blacklisted(self, account_number: str) -> bool:
        return account_number in self._sets.get(BLACKLIST_ACCOUNTS_KEY, set())

    async def is_high_risk_country(self, country_code: str) -> bool:
        return country_code in self._sets.get(HIGH_RISK_COUNTRIES_KEY, set())

    async def add_to_blacklist(self, account_number: str) -> None:
        self._sets.setdefault(BLACKLIST_ACCOUNTS_KEY, set()).add(account_number)

    async def seed_blacklists(self, countries: Iterable[str] | None = None) -> None:
        codes = countries if countries is not None else default_config.high_risk_countries
        self._sets.setdefault(HIGH_RISK_COUNTRIES_KEY, set()).update(codes)

    async def clear_transaction_data(self) -> int:
        doomed = [
            key
            for key in self._values
            if any(fnmatch.fnmatchcase(key, pattern) for pattern in TRANSACTION_DATA_PATTERNS)
        ]
        for key in doomed:
            del self._values[key]
        return len(doomed)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None
