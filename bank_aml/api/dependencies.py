"""Request-scoped accessors for the services wired up in the app lifespan."""

from fastapi import Request

from bank_aml.cache.fast_store import FastStore
from bank_aml.domains.screening.ingestion import IngestionService
from bank_aml.domains.screening.queries import TransactionQueryService


def get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def get_query_service(request: Request) -> TransactionQueryService:
    return request.app.state.query_service


def get_fast_store(request: Request) -> FastStore:
    return request.app.state.fast_store
