"""Redis-backed sliding-window rate limiting middleware."""

from __future__ import annotations

import time
from functools import lru_cache
from typing import Protocol
from uuid import uuid4

import structlog
from fastapi import Request
from redis import asyncio as redis_async
from redis.asyncio.client import Redis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from portal.config import get_settings
from portal.error_handlers import error_response

logger = structlog.get_logger(__name__)

LOGIN_PATH = "/api/auth/login"
_WINDOW_SECONDS = 60
_EXEMPT_PREFIXES = ("/health", "/metrics")


class SlidingWindowRedis(Protocol):
    """Redis operations used by the rate limiter."""

    async def zremrangebyscore(self, key: str, min: str | int, max: int) -> int: ...

    async def zcard(self, key: str) -> int: ...

    async def zadd(self, key: str, mapping: dict[str, int]) -> int: ...

    async def expire(self, key: str, ttl_seconds: int) -> bool: ...


@lru_cache
def get_redis_client() -> Redis:
    """Create and cache the Redis client shared by rate limiting and health checks."""
    settings = get_settings()
    return redis_async.from_url(settings.redis.url, decode_responses=True)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Apply per-client sliding-window limits, tighter on the login route."""

    def __init__(
        self,
        app,
        redis_client: SlidingWindowRedis | None = None,
        default_requests_per_minute: int | None = None,
        login_requests_per_minute: int | None = None,
        trust_forwarded_for: bool | None = None,
    ) -> None:
        """Initialize middleware with optional explicit limits for testability."""
        super().__init__(app)
        limits = None
        if default_requests_per_minute is None or login_requests_per_minute is None:
            limits = get_settings().rate_limit
            default_requests_per_minute = (
                default_requests_per_minute or limits.default_requests_per_minute
            )
            login_requests_per_minute = login_requests_per_minute or limits.login_requests_per_minute
        if trust_forwarded_for is None:
            trust_forwarded_for = (limits or get_settings().rate_limit).trust_forwarded_for

        self._redis = redis_client or get_redis_client()
        self._default_limit = default_requests_per_minute
        self._login_limit = login_requests_per_minute
        self._trust_forwarded_for = trust_forwarded_for
        self._window_milliseconds = _WINDOW_SECONDS * 1000

    async def dispatch(self, request: Request, call_next) -> Response:
        """Reject requests exceeding the configured per-minute threshold."""
        path = request.url.path
        if path.startswith(_EXEMPT_PREFIXES):
            return await call_next(request)

        limit = self._login_limit if path == LOGIN_PATH else self._default_limit
        bucket_key = self._build_bucket_key(request)
        now_ms = int(time.time() * 1000)
        window_start = now_ms - self._window_milliseconds

        try:
            await self._redis.zremrangebyscore(bucket_key, "-inf", window_start)
            current_count = await self._redis.zcard(bucket_key)
            if current_count >= limit:
                logger.warning("rate_limited", path=path, method=request.method, limit=limit)
                return error_response(status_code=429, message="Rate limit exceeded.")

            await self._redis.zadd(bucket_key, {f"{now_ms}:{uuid4()}": now_ms})
            await self._redis.expire(bucket_key, _WINDOW_SECONDS + 1)
        except (RedisError, OSError):
            # Fails open.
            logger.warning("rate_limit_backend_unavailable", path=path, method=request.method)

        return await call_next(request)

    def _build_bucket_key(self, request: Request) -> str:
        """Login gets its own bucket; everything else shares one per client."""
        scope = "login" if request.url.path == LOGIN_PATH else "api"
        return f"rate_limit:{scope}:{self._extract_client_id(request)}"

    def _extract_client_id(self, request: Request) -> str:
        """Resolve caller identity; X-Forwarded-For counts only when the proxy is trusted."""
        forwarded_for = request.headers.get("x-forwarded-for", "").strip()
        if self._trust_forwarded_for and forwarded_for:
            return forwarded_for.split(",")[0].strip()
        client = request.client
        return client.host if client else "unknown"
