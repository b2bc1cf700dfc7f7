"""Health check router endpoints."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from portal.db.session import get_engine
from portal.error_handlers import error_response
from portal.middleware.rate_limit import get_redis_client

router = APIRouter(prefix="/health", tags=["health"])
logger = structlog.get_logger(__name__)


async def check_postgres_ready() -> bool:
    """Return True when Postgres accepts a lightweight query."""
    try:
        async with get_engine().connect() as connection:
            await connection.execute(select(1))
        return True
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("readiness_postgres_failed", error=str(exc))
        return False


async def check_redis_ready() -> bool:
    """Return True when Redis responds to PING."""
    client = get_redis_client()
    try:
        return bool(await client.ping())
    except (RedisError, OSError) as exc:
        logger.warning("readiness_redis_failed", error=str(exc))
        return False


@router.get("/live")
async def live() -> dict[str, object]:
    """Liveness probe endpoint."""
    return {"success": True, "data": {"status": "live"}}


@router.get("/ready", response_model=None)
async def ready(
    postgres_ready: Annotated[bool, Depends(check_postgres_ready)],
    redis_ready: Annotated[bool, Depends(check_redis_ready)],
) -> dict[str, object] | JSONResponse:
    """Readiness probe requiring both Postgres and Redis."""
    if not postgres_ready or not redis_ready:
        return error_response(503, "Service not ready.")
    return {"success": True, "data": {"status": "ready"}}
