"""Screening thresholds and weights with the reference defaults."""

import os
from dataclasses import dataclass, field
from decimal import Decimal


@dataclass
class AmountThresholds:
    medium_min: Decimal = Decimal("500000")
    large_min: Decimal = Decimal("1000000")
    very_large_min: Decimal = Decimal("5000000")
    # (lower bound, bucket) pairs, highest bound first
    round_buckets: tuple[tuple[Decimal, Decimal], ...] = (
        (Decimal("1000000"), Decimal("1000000")),
        (Decimal("100000"), Decimal("100000")),
        (Decimal("10000"), Decimal("10000")),
    )


@dataclass
class FrequencyThresholds:
    medium_min: int = 5
    high_min: int = 10


@dataclass
class TimeWindows:
    # Half-open [start, end) hour ranges in UTC; late wraps past midnight.
    night_start: int = 0
    night_end: int = 6
    late_start: int = 22
    late_end: int = 8


@dataclass
class LevelBoundaries:
    low_max: int = 30
    medium_max: int = 70


@dataclass
class ScreeningConfig:
    amount: AmountThresholds = field(default_factory=AmountThresholds)
    frequency: FrequencyThresholds = field(default_factory=FrequencyThresholds)
    time: TimeWindows = field(default_factory=TimeWindows)
    levels: LevelBoundaries = field(default_factory=LevelBoundaries)
    high_risk_currencies: dict[str, int] = field(
        default_factory=lambda: {"CHF": 8, "JPY": 5}
    )
    high_risk_countries: tuple[str, ...] = ("VG", "KY", "BS", "PA", "SC", "MU")
    atm_large_min: Decimal = Decimal("500000")
    mobile_large_min: Decimal = Decimal("1000000")

    @classmethod
    def from_env(cls) -> "ScreeningConfig":
        """Load config with env var overrides. Env vars use SCREENING_ prefix."""
        config = cls()

        if v := os.getenv("SCREENING_MEDIUM_AMOUNT_MIN"):
            config.amount.medium_min = Decimal(v)
        if v := os.getenv("SCREENING_LARGE_AMOUNT_MIN"):
            config.amount.large_min = Decimal(v)
        if v := os.getenv("SCREENING_VERY_LARGE_AMOUNT_MIN"):
            config.amount.very_large_min = Decimal(v)

        if v := os.getenv("SCREENING_MEDIUM_FREQUENCY_MIN"):
            config.frequency.medium_min = int(v)
        if v := os.getenv("SCREENING_HIGH_FREQUENCY_MIN"):
            config.frequency.high_min = int(v)

        return config


# Module-level default instance
default_config = ScreeningConfig()
