"""Primary store repository for submissions and their screening results."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

import structlog
from pydantic import ValidationError
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bank_aml.domains.screening.models import (
    RiskLevel,
    SubmissionStatus,
    Transaction,
    TransactionStatus,
)
from bank_aml.shared.errors import (
    CorruptRecordError,
    DuplicateProcessingIdError,
    StoreLockedError,
    StoreUnavailableError,
)
from bank_aml.shared.retry import DEFAULT_BASE_DELAY, DEFAULT_MAX_ATTEMPTS, retry_async

from .database import async_session_factory
from .models import TransactionRecord

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 500

_LOCK_MARKERS = ("locked", "busy")


def is_lock_error(exc: BaseException) -> bool:
    """True for SQLite busy/locked errors, which are worth retrying."""
    if not isinstance(exc, OperationalError):
        return False
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return any(marker in message for marker in _LOCK_MARKERS)


def clamp_limit(limit: int | None) -> int:
    if limit is None or limit <= 0:
        return DEFAULT_LIST_LIMIT
    return min(limit, MAX_LIST_LIMIT)


class TransactionRepository:
    """Reads and writes the ``transactions`` table.

    Every operation retries lock errors with linear back-off. Writes go through
    a single ``asyncio.Lock`` so this process never competes with itself for
    the SQLite writer slot. ``get_full_transaction`` additionally retries a
    missing row, covering the window between ingest commit and consumer read.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
    ) -> None:
        self._session_factory = session_factory or async_session_factory
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._write_lock = asyncio.Lock()

    async def _run(
        self,
        name: str,
        operation: Callable[[], Awaitable[T]],
        *,
        write: bool = False,
        retry_on_result: Callable[[Any], bool] | None = None,
    ) -> T:
        async def attempt() -> T:
            if write:
                async with self._write_lock:
                    return await operation()
            return await operation()

        try:
            return await retry_async(
                attempt,
                max_attempts=self._max_attempts,
                base_delay=self._base_delay,
                retry_on_exception=is_lock_error,
                retry_on_result=retry_on_result,
                operation_name=name,
            )
        except IntegrityError as exc:
            raise DuplicateProcessingIdError(f"{name}: {exc.orig}") from exc
        except OperationalError as exc:
            if is_lock_error(exc):
                raise StoreLockedError(
                    f"{name} failed after {self._max_attempts} attempts: {exc.orig}"
                ) from exc
            raise StoreUnavailableError(f"{name}: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"{name}: {exc}") from exc

    async def save(self, processing_id: str, tx: Transaction) -> None:
        """Insert a new submission in ``pending_review``."""

        async def op() -> None:
            now = datetime.now(UTC)
            record = TransactionRecord(
                processing_id=processing_id,
                transaction_id=tx.transaction_id,
                account_number=tx.account_number,
                amount=tx.amount,
                currency=tx.currency,
                transaction_type=tx.transaction_type,
                counterparty_account=tx.counterparty_account,
                counterparty_bank=tx.counterparty_bank,
                counterparty_country=tx.counterparty_country,
                timestamp=tx.timestamp,
                channel=tx.channel,
                user_id=tx.user_id,
                branch_id=tx.branch_id,
                status=SubmissionStatus.PENDING_REVIEW.value,
                created_at=now,
                updated_at=now,
            )
            async with self._session_factory() as session:
                session.add(record)
                await session.commit()

        await self._run("save", op, write=True)

    async def update_analysis(
        self,
        processing_id: str,
        risk_score: int,
        risk_level: RiskLevel | str,
        analyzed_at: datetime,
    ) -> bool:
        """Mark a submission reviewed. Unconditional overwrite; False if no row matched."""

        async def op() -> bool:
            stmt = (
                update(TransactionRecord)
                .where(TransactionRecord.processing_id == processing_id)
                .values(
                    status=SubmissionStatus.REVIEWED.value,
                    risk_score=risk_score,
                    risk_level=str(risk_level),
                    analysis_timestamp=analyzed_at,
                    updated_at=datetime.now(UTC),
                )
            )
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
                return result.rowcount > 0

        updated = await self._run("update_analysis", op, write=True)
        if not updated:
            logger.warning("update_analysis_no_row", processing_id=processing_id)
        return updated

    async def get_status(self, processing_id: str) -> TransactionStatus | None:
        async def op() -> TransactionStatus | None:
            stmt = select(TransactionRecord).where(
                TransactionRecord.processing_id == processing_id
            )
            async with self._session_factory() as session:
                record = (await session.execute(stmt)).scalar_one_or_none()
            if record is None:
                return None
            return TransactionStatus.model_validate(record, from_attributes=True)

        return await self._run("get_status", op)

    async def get_full_transaction(self, processing_id: str) -> Transaction | None:
        """Load the submitted transaction, retrying while the row is not yet visible.

        Returns None when the row is still missing after the last attempt.
        Raises CorruptRecordError when the stored row fails validation.
        """

        async def op() -> Transaction | None:
            stmt = select(TransactionRecord).where(
                TransactionRecord.processing_id == processing_id
            )
            async with self._session_factory() as session:
                record = (await session.execute(stmt)).scalar_one_or_none()
            if record is None:
                return None
            try:
                return Transaction(
                    transaction_id=record.transaction_id,
                    account_number=record.account_number,
                    amount=record.amount,
                    currency=record.currency,
                    transaction_type=record.transaction_type,
                    counterparty_account=record.counterparty_account,
                    counterparty_bank=record.counterparty_bank,
                    counterparty_country=record.counterparty_country,
                    timestamp=record.timestamp,
                    channel=record.channel,
                    user_id=record.user_id,
                    branch_id=record.branch_id,
                )
            except ValidationError as exc:
                raise CorruptRecordError(
                    f"get_full_transaction: row {processing_id} is not a valid transaction"
                ) from exc

        return await self._run(
            "get_full_transaction",
            op,
            retry_on_result=lambda result: result is None,
        )

    async def list(self, limit: int | None = DEFAULT_LIST_LIMIT) -> list[TransactionStatus]:
        """Most recent submissions first, at most ``MAX_LIST_LIMIT`` rows."""
        capped = clamp_limit(limit)

        async def op() -> list[TransactionStatus]:
            stmt = (
                select(TransactionRecord)
                .order_by(TransactionRecord.created_at.desc(), TransactionRecord.id.desc())
                .limit(capped)
            )
            async with self._session_factory() as session:
                records = (await session.execute(stmt)).scalars().all()
            return [
                TransactionStatus.model_validate(record, from_attributes=True)
                for record in records
            ]

        return await self._run("list", op)

    async def clear_all(self) -> int:
        """Delete every submission. Returns the number of deleted rows."""

        async def op() -> int:
            async with self._session_factory() as session:
                result = await session.execute(delete(TransactionRecord))
                await session.commit()
                return result.rowcount

        deleted = await self._run("clear_all", op, write=True)
        logger.info("transactions_cleared", deleted=deleted)
        return deleted
