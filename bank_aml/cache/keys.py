"""Fast-store key layout shared by every FastStore implementation."""

BLACKLIST_ACCOUNTS_KEY = "blacklist:accounts"
HIGH_RISK_COUNTRIES_KEY = "high_risk_countries"

ANALYSIS_TTL_SECONDS = 60 * 60
DAILY_COUNT_TTL_SECONDS = 24 * 60 * 60

# Prefixes dropped by clear_transaction_data(); blacklist sets are kept.
TRANSACTION_DATA_PATTERNS = ("transaction:*", "risk_stats:*", "limits:account:*")


def analysis_key(processing_id: str) -> str:
    return f"transaction:{processing_id}:analysis"


def risk_stats_key(level: str) -> str:
    return f"risk_stats:{level}"


def daily_count_key(account_number: str) -> str:
    return f"limits:account:{account_number}:daily:count"
