"""FastAPI application entry points for the ingestion and fraud-detection services.

Run with::

    uvicorn bank_aml.main:ingestion_app --port 8080
    uvicorn bank_aml.main:screening_app --port 8081
"""

import asyncio
import contextlib
import time
from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from bank_aml.api.middleware.error_handler import (
    global_exception_handler,
    validation_exception_handler,
)
from bank_aml.api.middleware.logging import StructuredLoggingMiddleware
from bank_aml.api.routes.blacklist import router as blacklist_router
from bank_aml.api.routes.health import router as health_router
from bank_aml.api.routes.transactions import ingestion_router
from bank_aml.api.routes.transactions import router as transactions_router
from bank_aml.config import settings
from bank_aml.shared.errors import CacheUnavailableError, ScreeningError
from bank_aml.shared.logging import setup_logging

logger = structlog.get_logger()

INGESTION_SERVICE = "ingestion-service"
SCREENING_SERVICE = "fraud-detection-service"
INGESTION_SHUTDOWN_GRACE_SECONDS = 5.0

# Track app start time for uptime calculation
APP_START_TIME: float = 0.0

Lifespan = Callable[[FastAPI], AbstractAsyncContextManager[None]]


def _on_startup(service_name: str) -> None:
    global APP_START_TIME
    APP_START_TIME = time.time()
    setup_logging(settings.log_level, settings.log_format)
    logger.info(
        "service_starting",
        service=service_name,
        version=settings.app_version,
        debug=settings.debug,
    )


@asynccontextmanager
async def ingestion_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Ingestion service: primary store plus a producer for job events."""
    from bank_aml.db.database import init_db
    from bank_aml.db.repository import TransactionRepository
    from bank_aml.domains.screening.ingestion import IngestionService
    from bank_aml.domains.screening.queries import TransactionQueryService
    from bank_aml.shared.kafka_utils import EventPublisher, create_producer

    _on_startup(INGESTION_SERVICE)
    await init_db()

    repository = TransactionRepository()
    producer = await create_producer(
        settings.kafka_bootstrap_servers,
        request_timeout_seconds=settings.kafka_publish_timeout_seconds,
    )
    publisher = EventPublisher(
        producer,
        topic=settings.kafka_transaction_topic,
        max_retries=settings.kafka_publish_max_retries,
        timeout_seconds=settings.kafka_publish_timeout_seconds,
    )

    app.state.repository = repository
    app.state.ingestion_service = IngestionService(repository, publisher)
    app.state.query_service = TransactionQueryService(repository)

    try:
        yield
    finally:
        try:
            await asyncio.wait_for(producer.stop(), timeout=INGESTION_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            logger.warning("kafka_producer_stop_timeout", service=INGESTION_SERVICE)
        logger.info("service_shutting_down", service=INGESTION_SERVICE)


def _log_consumer_exit(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    if (exc := task.exception()) is not None:
        logger.error("kafka_consumer_crashed", error=str(exc), exc_info=exc)


@asynccontextmanager
async def screening_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Fraud-detection service: runs the scoring consumer in the background."""
    from bank_aml.cache.fast_store import RedisFastStore
    from bank_aml.consumers.screening_consumer import ScreeningConsumer
    from bank_aml.db.database import init_db
    from bank_aml.db.repository import TransactionRepository
    from bank_aml.domains.screening.config import ScreeningConfig
    from bank_aml.domains.screening.queries import TransactionQueryService
    from bank_aml.domains.screening.rules_engine import RiskEngine
    from bank_aml.domains.screening.scorer import TransactionScorer

    _on_startup(SCREENING_SERVICE)
    await init_db()

    screening_config = ScreeningConfig.from_env()
    repository = TransactionRepository()
    fast_store = RedisFastStore.from_settings(settings)
    if not await fast_store.ping():
        await fast_store.close()
        raise CacheUnavailableError(
            f"Redis unreachable at {settings.redis_host}:{settings.redis_port}"
        )

    try:
        await fast_store.seed_blacklists(screening_config.high_risk_countries)
    except CacheUnavailableError:
        logger.warning("high_risk_countries_seed_failed", exc_info=True)

    scorer = TransactionScorer(
        repository,
        fast_store,
        engine=RiskEngine(fast_store, config=screening_config),
    )
    consumer = ScreeningConsumer(
        bootstrap_servers=settings.kafka_bootstrap_servers,
        scorer=scorer,
        topic=settings.kafka_transaction_topic,
        group_id=settings.kafka_consumer_group,
    )
    consumer_task = asyncio.create_task(consumer.start())
    consumer_task.add_done_callback(_log_consumer_exit)

    app.state.repository = repository
    app.state.fast_store = fast_store
    app.state.consumer = consumer
    app.state.query_service = TransactionQueryService(repository, fast_store)
    logger.info("kafka_consumer_started", topic=settings.kafka_transaction_topic)

    try:
        yield
    finally:
        await consumer.stop(grace_seconds=settings.shutdown_grace_seconds)
        consumer_task.cancel()
        with contextlib.suppress(Exception, asyncio.CancelledError):
            await consumer_task
        await fast_store.close()
        logger.info("service_shutting_down", service=SCREENING_SERVICE)


def _build_app(title: str, service_name: str, lifespan: Lifespan | None) -> FastAPI:
    app = FastAPI(
        title=title,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.service_name = service_name

    app.add_middleware(StructuredLoggingMiddleware)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    # Concrete types are answered by ExceptionMiddleware; the bare Exception
    # entry is the last-resort 500.
    for exc_type in (ValueError, LookupError, ScreeningError, Exception):
        app.add_exception_handler(exc_type, global_exception_handler)

    app.include_router(health_router)
    return app


def create_ingestion_app(lifespan: Lifespan | None = ingestion_lifespan) -> FastAPI:
    app = _build_app("Bank AML Ingestion Service", INGESTION_SERVICE, lifespan)
    app.include_router(ingestion_router)
    app.include_router(transactions_router)
    return app


def create_screening_app(lifespan: Lifespan | None = screening_lifespan) -> FastAPI:
    app = _build_app("Bank AML Fraud Detection Service", SCREENING_SERVICE, lifespan)
    app.include_router(transactions_router)
    app.include_router(blacklist_router)
    return app


ingestion_app = create_ingestion_app()
screening_app = create_screening_app()


def get_uptime() -> int:
    """Get application uptime in seconds."""
    if APP_START_TIME == 0.0:
        return 0
    return int(time.time() - APP_START_TIME)
