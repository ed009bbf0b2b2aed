"""Admin endpoints for the account blacklist and risk-level counters."""

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from bank_aml.api.dependencies import get_fast_store
from bank_aml.cache.fast_store import FastStore

logger = structlog.get_logger()
router = APIRouter(prefix="/api/v1", tags=["admin"])


class BlacklistAccountRequest(BaseModel):
    account_number: str

    @field_validator("account_number")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("account_number must not be empty")
        return value


@router.post("/blacklist/accounts", status_code=201)
async def blacklist_account(
    request: BlacklistAccountRequest,
    fast_store: FastStore = Depends(get_fast_store),  # noqa: B008
) -> dict:
    await fast_store.add_to_blacklist(request.account_number)
    return {"account_number": request.account_number, "blacklisted": True}


@router.get("/stats/risk")
async def risk_stats(
    fast_store: FastStore = Depends(get_fast_store),  # noqa: B008
) -> dict:
    stats = await fast_store.get_risk_stats()
    return {"risk_levels": stats, "total": sum(stats.values())}
