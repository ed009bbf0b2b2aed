"""SQLAlchemy ORM models for the primary store."""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """Stores naive UTC and hands back timezone-aware UTC datetimes.

    SQLite has no timezone support, so offsets are normalized on the way in.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        return value.replace(tzinfo=UTC)


class DecimalText(TypeDecorator):
    """Stores a Decimal as fixed-point text so every digit survives the round trip.

    SQLite keeps NUMERIC values as REAL, which loses precision past 15
    significant digits.
    """

    impl = String
    cache_ok = True

    def __init__(self, scale: int = 2, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.scale = scale
        self._quantum = Decimal(1).scaleb(-scale)

    def process_bind_param(self, value: Decimal | None, dialect: Dialect) -> str | None:
        if value is None:
            return None
        return format(Decimal(value).quantize(self._quantum), "f")

    def process_result_value(self, value: str | None, dialect: Dialect) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


class TransactionRecord(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    processing_id: Mapped[str] = mapped_column(String, unique=True, index=True)
    transaction_id: Mapped[str] = mapped_column(String, index=True)
    account_number: Mapped[str] = mapped_column(String, index=True)
    amount: Mapped[Decimal] = mapped_column(DecimalText(scale=2))
    currency: Mapped[str] = mapped_column(String)
    transaction_type: Mapped[str] = mapped_column(String)
    counterparty_account: Mapped[str | None] = mapped_column(String, nullable=True)
    counterparty_bank: Mapped[str | None] = mapped_column(String, nullable=True)
    counterparty_country: Mapped[str | None] = mapped_column(String, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime)
    channel: Mapped[str | None] = mapped_column(String, nullable=True)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    branch_id: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, index=True, default="pending_review")
    risk_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    risk_level: Mapped[str | None] = mapped_column(String, nullable=True)
    analysis_timestamp: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, index=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime)
