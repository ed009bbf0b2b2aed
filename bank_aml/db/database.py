"""Async SQLAlchemy engine and session management for the SQLite primary store."""

from pathlib import Path

import structlog
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from bank_aml.config import settings

logger = structlog.get_logger()

# Seconds SQLite waits on a held lock before reporting "database is locked".
SQLITE_BUSY_TIMEOUT = 5


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an engine with WAL journaling and foreign keys on every connection."""
    engine = create_async_engine(
        database_url,
        echo=echo,
        connect_args={"timeout": SQLITE_BUSY_TIMEOUT},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.database_url, echo=settings.debug)

async_session_factory = build_session_factory(engine)


def ensure_db_directory(db_path: str) -> None:
    Path(db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)


async def init_db(bind: AsyncEngine | None = None, db_path: str | None = None) -> None:
    """Create the data directory and all tables."""
    from bank_aml.db.models import Base

    ensure_db_directory(db_path or settings.db_path)
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_initialized", db_path=db_path or settings.db_path)


async def check_db(bind: AsyncEngine | None = None) -> bool:
    """Check database connectivity."""
    try:
        async with (bind or engine).connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.warning("database_check_failed", exc_info=True)
        return False
