"""Health check endpoints - liveness and component status."""

import logging
from typing import Any

import redis
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from backend.app.config import Settings, get_settings
from backend.app.db.engine import get_async_engine

router = APIRouter()
logger = logging.getLogger(__name__)


async def check_db(settings: Settings) -> tuple[bool, str]:
    """Check content index database connectivity.

    Returns:
        (is_ok, status_message)
    """
    if not settings.database_url:
        return (True, "not_configured")

    try:
        async with get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return (True, "ok")
    except Exception as e:
        logger.warning(f"[healthz] database check failed: {e}")
        return (False, f"error: {type(e).__name__}")


async def check_redis(settings: Settings) -> tuple[bool, str]:
    """Check report store Redis connectivity.

    Returns:
        (is_ok, status_message)
    """
    if not settings.redis_url:
        return (True, "not_configured")

    try:
        client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
        client.ping()
        return (True, "ok")
    except Exception as e:
        logger.warning(f"[healthz] redis check failed: {e}")
        return (False, f"error: {type(e).__name__}")


def check_completion(settings: Settings) -> str:
    """Whether a completion API key is configured (never fails the check)."""
    return "configured" if settings.openai_api_key else "not_configured"


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz(
    settings: Settings = Depends(get_settings),
) -> dict[str, Any] | JSONResponse:
    """Component health check.

    Checks:
    - Content index database connectivity
    - Report store Redis connectivity
    - Completion API configuration (informational)

    Returns:
        200 with component status if core systems ok
        503 if a configured backend is unreachable
    """
    db_ok, db_status = await check_db(settings)
    redis_ok, redis_status = await check_redis(settings)

    core_ok = db_ok and redis_ok

    response_body = {
        "status": "ok" if core_ok else "degraded",
        "components": {
            "db": db_status,
            "redis": redis_status,
            "completion": check_completion(settings),
        },
    }

    if not core_ok:
        return JSONResponse(content=response_body, status_code=503)

    return response_body
