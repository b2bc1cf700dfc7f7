"""Unit tests for the role gate: 401 without identity, 403 for insufficient role."""

from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from portal.core.sessions import Identity
from portal.dependencies import AdminUser, EditorUser, ViewerUser, get_optional_user
from portal.error_handlers import register_exception_handlers


def _identity(role: str, is_active: bool = True) -> Identity:
    return Identity(
        id=uuid4(),
        session_id=uuid4(),
        email=f"{role}@example.edu",
        full_name=role.title(),
        role=role,
        is_active=is_active,
    )


def _app(identity: Identity | None) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app, "development")

    @app.get("/api/read")
    async def read(user: ViewerUser) -> dict[str, str]:
        return {"role": user.role}

    @app.post("/api/write")
    async def write(user: EditorUser) -> dict[str, str]:
        return {"role": user.role}

    @app.delete("/api/admin")
    async def admin(user: AdminUser) -> dict[str, str]:
        return {"role": user.role}

    app.dependency_overrides[get_optional_user] = lambda: identity
    return app


async def _call(identity: Identity | None, method: str, path: str) -> tuple[int, dict]:
    async with AsyncClient(
        transport=ASGITransport(app=_app(identity)),
        base_url="http://testserver",
    ) as client:
        response = await client.request(method, path)
    return response.status_code, response.json()


@pytest.mark.asyncio
async def test_missing_identity_is_401() -> None:
    status, body = await _call(None, "GET", "/api/read")

    assert status == 401
    assert body == {"success": False, "message": "Authentication required."}


@pytest.mark.asyncio
async def test_viewer_denied_editor_operation() -> None:
    """Viewers can read but are refused writes with 403."""
    read_status, _ = await _call(_identity("viewer"), "GET", "/api/read")
    write_status, body = await _call(_identity("viewer"), "POST", "/api/write")

    assert read_status == 200
    assert write_status == 403
    assert body == {"success": False, "message": "Insufficient permissions."}


@pytest.mark.asyncio
async def test_editor_allowed_write_but_not_admin() -> None:
    write_status, _ = await _call(_identity("editor"), "POST", "/api/write")
    admin_status, _ = await _call(_identity("editor"), "DELETE", "/api/admin")

    assert write_status == 200
    assert admin_status == 403


@pytest.mark.asyncio
async def test_admin_includes_every_lower_role() -> None:
    for method, path in (("GET", "/api/read"), ("POST", "/api/write"), ("DELETE", "/api/admin")):
        status, body = await _call(_identity("admin"), method, path)
        assert status == 200
        assert body == {"role": "admin"}


@pytest.mark.asyncio
async def test_inactive_identity_is_treated_as_missing() -> None:
    status, _ = await _call(_identity("admin", is_active=False), "GET", "/api/read")

    assert status == 401
