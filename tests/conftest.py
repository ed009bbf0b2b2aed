"""Shared test fixtures for the screening pipeline tests."""

import os

import pytest
import pytest_asyncio

os.environ.setdefault("DB_PATH", "./data/bank_aml_test.db")
os.environ.setdefault("KAFKA_BROKERS", "localhost:9092")
os.environ.setdefault("REDIS_HOST", "localhost")

from bank_aml.cache.memory import InMemoryFastStore  # noqa: E402
from bank_aml.db.database import build_engine, build_session_factory, init_db  # noqa: E402
from bank_aml.db.repository import TransactionRepository  # noqa: E402
from bank_aml.domains.screening.models import Transaction  # noqa: E402
from tests.factories import make_transaction  # noqa: E402


@pytest.fixture
def sample_transaction() -> Transaction:
    return make_transaction()


@pytest_asyncio.fixture
async def fast_store() -> InMemoryFastStore:
    store = InMemoryFastStore()
    await store.seed_blacklists()
    return store


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    db_path = str(tmp_path / "data" / "screening.db")
    engine = build_engine(f"sqlite+aiosqlite:///{db_path}")
    await init_db(bind=engine, db_path=db_path)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def repository(db_engine) -> TransactionRepository:
    return TransactionRepository(build_session_factory(db_engine), base_delay=0)
