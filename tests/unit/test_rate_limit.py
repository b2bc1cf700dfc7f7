"""Unit tests for the sliding-window rate limiter."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from portal.middleware.rate_limit import LOGIN_PATH, RateLimitMiddleware


class _FakeRedis:
    """Sorted-set subset backed by dictionaries."""

    def __init__(self, fail: bool = False) -> None:
        self.sets: dict[str, dict[str, int]] = {}
        self.fail = fail

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("redis unavailable")

    async def zremrangebyscore(self, key: str, min: str | int, max: int) -> int:
        self._check()
        members = self.sets.setdefault(key, {})
        stale = [member for member, score in members.items() if score <= max]
        for member in stale:
            del members[member]
        return len(stale)

    async def zcard(self, key: str) -> int:
        self._check()
        return len(self.sets.get(key, {}))

    async def zadd(self, key: str, mapping: dict[str, int]) -> int:
        self._check()
        self.sets.setdefault(key, {}).update(mapping)
        return len(mapping)

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        return True


def _build_app(
    redis: _FakeRedis,
    default_limit: int = 100,
    login_limit: int = 2,
    trust_forwarded_for: bool = False,
) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        RateLimitMiddleware,
        redis_client=redis,
        default_requests_per_minute=default_limit,
        login_requests_per_minute=login_limit,
        trust_forwarded_for=trust_forwarded_for,
    )

    @app.post(LOGIN_PATH)
    async def login() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/api/public/notes")
    async def notes() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/health/live")
    async def live() -> dict[str, bool]:
        return {"ok": True}

    return app


def _client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.asyncio
async def test_login_route_has_tighter_limit() -> None:
    app = _build_app(_FakeRedis(), login_limit=2)

    async with _client(app) as client:
        statuses = [(await client.post(LOGIN_PATH)).status_code for _ in range(3)]
        notes = await client.get("/api/public/notes")

    assert statuses == [200, 200, 429]
    assert notes.status_code == 200


@pytest.mark.asyncio
async def test_rate_limited_response_uses_envelope() -> None:
    app = _build_app(_FakeRedis(), default_limit=1)

    async with _client(app) as client:
        await client.get("/api/public/notes")
        limited = await client.get("/api/public/notes")

    assert limited.status_code == 429
    assert limited.json() == {"success": False, "message": "Rate limit exceeded."}


@pytest.mark.asyncio
async def test_health_paths_are_exempt() -> None:
    app = _build_app(_FakeRedis(), default_limit=1)

    async with _client(app) as client:
        statuses = [(await client.get("/health/live")).status_code for _ in range(3)]

    assert statuses == [200, 200, 200]


@pytest.mark.asyncio
async def test_redis_outage_fails_open() -> None:
    app = _build_app(_FakeRedis(fail=True), login_limit=1)

    async with _client(app) as client:
        statuses = [(await client.post(LOGIN_PATH)).status_code for _ in range(3)]

    assert statuses == [200, 200, 200]


@pytest.mark.asyncio
async def test_rotating_forwarded_for_does_not_reset_login_bucket() -> None:
    """Untrusted X-Forwarded-For values are ignored when bucketing."""
    redis = _FakeRedis()
    app = _build_app(redis, login_limit=2)

    async with _client(app) as client:
        statuses = [
            (await client.post(LOGIN_PATH, headers={"x-forwarded-for": f"10.0.0.{i}"})).status_code
            for i in range(10)
        ]

    assert statuses[:2] == [200, 200]
    assert set(statuses[2:]) == {429}
    assert list(redis.sets) == ["rate_limit:login:127.0.0.1"]


@pytest.mark.asyncio
async def test_trusted_proxy_buckets_by_forwarded_client() -> None:
    """Behind a trusted proxy the first forwarded address is the client."""
    redis = _FakeRedis()
    app = _build_app(redis, login_limit=1, trust_forwarded_for=True)

    async with _client(app) as client:
        first = await client.post(LOGIN_PATH, headers={"x-forwarded-for": "10.0.0.1, 172.16.0.9"})
        repeat = await client.post(LOGIN_PATH, headers={"x-forwarded-for": "10.0.0.1"})
        other = await client.post(LOGIN_PATH, headers={"x-forwarded-for": "10.0.0.2"})

    assert [first.status_code, repeat.status_code, other.status_code] == [200, 429, 200]
    assert set(redis.sets) == {"rate_limit:login:10.0.0.1", "rate_limit:login:10.0.0.2"}
