"""Health and readiness endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from bank_aml.config import settings
from bank_aml.db.database import check_db

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict:
    from bank_aml.main import get_uptime

    return {
        "status": "healthy",
        "service": getattr(request.app.state, "service_name", settings.app_name),
        "version": settings.app_version,
        "uptime_seconds": get_uptime(),
    }


@router.get("/ready")
async def ready(request: Request) -> JSONResponse:
    state = request.app.state
    checks: dict[str, bool] = {"database": await check_db(getattr(state, "db_engine", None))}

    fast_store = getattr(state, "fast_store", None)
    if fast_store is not None:
        checks["redis"] = await fast_store.ping()

    consumer = getattr(state, "consumer", None)
    if consumer is not None:
        checks["kafka"] = consumer.running

    all_ready = all(checks.values())
    return JSONResponse(
        status_code=200 if all_ready else 503,
        content={"status": "ready" if all_ready else "degraded", **checks},
    )
