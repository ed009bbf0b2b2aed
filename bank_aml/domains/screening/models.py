"""Pydantic models for the screening domain."""

from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field, field_serializer, field_validator

JOB_EVENT_TYPE = "transaction_received"


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_utc(value: datetime) -> datetime:
    """Normalize a datetime to UTC; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def amount_as_number(value: Decimal | None) -> float | None:
    """JSON renders amounts as numbers, matching what API clients send."""
    return float(value) if value is not None else None


class SubmissionStatus(StrEnum):
    PENDING_REVIEW = "pending_review"
    REVIEWED = "reviewed"


class RiskLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Recommendation(StrEnum):
    AUTO_APPROVE = "auto_approve"
    LOG_ONLY = "log_only"
    REQUIRE_VERIFICATION = "require_verification"


class RiskFlag(StrEnum):
    VERY_LARGE_AMOUNT = "very_large_amount"
    LARGE_AMOUNT = "large_amount"
    MEDIUM_AMOUNT = "medium_amount"
    OFFSHORE_COUNTERPARTY = "offshore_counterparty"
    BLACKLISTED_COUNTERPARTY = "blacklisted_counterparty"
    UNUSUAL_TIME = "unusual_time"
    LATE_HOURS = "late_hours"
    HIGH_FREQUENCY = "high_frequency"
    MEDIUM_FREQUENCY = "medium_frequency"
    INTERNATIONAL_TRANSFER = "international_transfer"
    WITHDRAWAL = "withdrawal"
    LARGE_ATM_TRANSACTION = "large_atm_transaction"
    ATM_TRANSACTION = "atm_transaction"
    LARGE_MOBILE_TRANSACTION = "large_mobile_transaction"
    HIGH_RISK_CURRENCY = "high_risk_currency"
    ROUND_AMOUNT = "round_amount"


class Transaction(BaseModel):
    """A retail bank transaction as submitted by the caller. Immutable."""

    model_config = {"frozen": True}

    transaction_id: str
    account_number: str
    amount: Decimal = Field(gt=0, max_digits=18, decimal_places=2)
    currency: str
    transaction_type: str
    counterparty_account: str = ""
    counterparty_bank: str = ""
    counterparty_country: str = ""
    timestamp: datetime = Field(default_factory=utc_now)
    channel: str = ""
    user_id: str = ""
    branch_id: str = ""

    @field_validator("transaction_id", "account_number", "currency", "transaction_type")
    @classmethod
    def _required_non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("counterparty_account", "counterparty_bank", "counterparty_country",
                     "channel", "user_id", "branch_id", mode="before")
    @classmethod
    def _none_as_empty(cls, value: str | None) -> str:
        return "" if value is None else value

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return to_utc(value)


class ProcessingResponse(BaseModel):
    processing_id: str
    status: SubmissionStatus = SubmissionStatus.PENDING_REVIEW
    message: str = "Transaction accepted for analysis"


class RiskAnalysis(BaseModel):
    risk_score: int = Field(ge=0)
    risk_level: RiskLevel
    flags: list[RiskFlag] = []
    recommendation: Recommendation
    analyzed_at: datetime

    @field_validator("analyzed_at")
    @classmethod
    def _analyzed_at_utc(cls, value: datetime) -> datetime:
        return to_utc(value)


class TransactionStatus(BaseModel):
    """Submission row as stored in the primary store, without the full payload."""

    id: int
    processing_id: str
    transaction_id: str
    amount: Decimal | None = None
    currency: str | None = None
    status: SubmissionStatus
    risk_score: int | None = None
    risk_level: RiskLevel | None = None
    analysis_timestamp: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, value: Decimal | None) -> float | None:
        return amount_as_number(value)


class TransactionStatusResponse(BaseModel):
    processing_id: str
    transaction_id: str
    amount: Decimal | None = None
    currency: str | None = None
    status: SubmissionStatus
    risk_score: int | None = None
    risk_level: RiskLevel | None = None
    analysis_timestamp: datetime | None = None
    flags: list[RiskFlag] | None = None

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, value: Decimal | None) -> float | None:
        return amount_as_number(value)

    @classmethod
    def from_status(
        cls,
        status: TransactionStatus,
        analysis: RiskAnalysis | None = None,
    ) -> "TransactionStatusResponse":
        return cls(
            processing_id=status.processing_id,
            transaction_id=status.transaction_id,
            amount=status.amount,
            currency=status.currency,
            status=status.status,
            risk_score=status.risk_score,
            risk_level=status.risk_level,
            analysis_timestamp=status.analysis_timestamp,
            flags=list(analysis.flags) if analysis else None,
        )


class JobEventData(BaseModel):
    """Denormalized summary carried on the bus. Only processing_id is authoritative."""

    processing_id: str = Field(min_length=1)
    transaction_id: str | None = None
    account_number: str | None = None
    amount: Decimal | None = None
    currency: str | None = None
    transaction_type: str | None = None
    counterparty_country: str | None = None
    channel: str | None = None

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, value: Decimal | None) -> float | None:
        return amount_as_number(value)

    @classmethod
    def summarize(cls, processing_id: str, tx: Transaction) -> "JobEventData":
        return cls(
            processing_id=processing_id,
            transaction_id=tx.transaction_id,
            account_number=tx.account_number,
            amount=tx.amount,
            currency=tx.currency,
            transaction_type=tx.transaction_type,
            counterparty_country=tx.counterparty_country,
            channel=tx.channel,
        )


class JobEvent(BaseModel):
    event_id: str
    event_type: Literal["transaction_received"] = JOB_EVENT_TYPE
    timestamp: datetime = Field(default_factory=utc_now)
    data: JobEventData
