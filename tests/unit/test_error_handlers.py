"""Unit tests for the global failure envelope and status mapping."""

from __future__ import annotations

import pytest
from fastapi import FastAPI, HTTPException
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from portal import error_handlers as error_handlers_module
from portal.error_handlers import register_exception_handlers
from portal.errors import (
    NotFoundError,
    ReferentialConflictError,
    StoreFailureError,
    ValidationFailedError,
)


class _CaptureLogger:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict]] = []

    def warning(self, event: str, **kwargs) -> None:
        self.calls.append(("warning", event, kwargs))

    def error(self, event: str, **kwargs) -> None:
        self.calls.append(("error", event, kwargs))


def _build_error_app(environment: str = "production") -> FastAPI:
    """Build minimal app with registered global exception handlers."""
    app = FastAPI()
    register_exception_handlers(app, environment=environment)

    @app.get("/api/http-exception")
    async def http_exception() -> None:
        raise HTTPException(status_code=401, detail="Session expired.")

    @app.get("/api/not-found")
    async def not_found() -> None:
        raise NotFoundError("Notice not found.")

    @app.get("/api/rule")
    async def rule() -> None:
        raise ValidationFailedError("Batch name already exists.")

    @app.get("/api/in-use")
    async def in_use() -> None:
        raise ReferentialConflictError("Cannot delete batch with existing sections.")

    @app.get("/api/write-failed")
    async def write_failed() -> None:
        raise StoreFailureError()

    @app.get("/api/store")
    async def store() -> None:
        raise OperationalError("SELECT 1", {}, Exception("password authentication failed"))

    @app.get("/api/unhandled")
    async def unhandled() -> None:
        raise RuntimeError("sensitive internal detail")

    @app.get("/api/validation")
    async def validation(page_size: int) -> dict[str, int]:
        return {"page_size": page_size}

    return app


async def _get(app: FastAPI, path: str):
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://testserver",
    ) as client:
        return await client.get(path)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("path", "status", "message"),
    [
        ("/api/http-exception", 401, "Session expired."),
        ("/api/not-found", 404, "Notice not found."),
        ("/api/rule", 400, "Batch name already exists."),
        ("/api/in-use", 400, "Cannot delete batch with existing sections."),
        ("/api/write-failed", 500, "Internal server error."),
    ],
)
async def test_failures_use_envelope(path: str, status: int, message: str) -> None:
    response = await _get(_build_error_app(), path)

    assert response.status_code == status
    assert response.json() == {"success": False, "message": message}


@pytest.mark.asyncio
async def test_validation_error_is_400_with_field_message() -> None:
    """Request validation failures map to 400 rather than FastAPI's 422."""
    response = await _get(_build_error_app(), "/api/validation?page_size=abc")

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"].startswith("Field 'page_size':")


@pytest.mark.asyncio
async def test_store_failure_is_logged_and_hidden(monkeypatch) -> None:
    """Store errors become a generic 500 while the detail goes to the log."""
    capture = _CaptureLogger()
    monkeypatch.setattr(error_handlers_module, "logger", capture)

    response = await _get(_build_error_app(environment="development"), "/api/store")

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error."}
    assert "password authentication failed" not in response.text
    level, event, payload = capture.calls[0]
    assert (level, event) == ("error", "store_failure")
    assert "password authentication failed" in payload["error"]


@pytest.mark.asyncio
async def test_unhandled_error_hides_internal_detail_in_production() -> None:
    response = await _get(_build_error_app(environment="production"), "/api/unhandled")

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error."}


@pytest.mark.asyncio
async def test_auth_failures_are_logged_as_warnings(monkeypatch) -> None:
    capture = _CaptureLogger()
    monkeypatch.setattr(error_handlers_module, "logger", capture)

    await _get(_build_error_app(), "/api/http-exception")

    assert capture.calls[0][0:2] == ("warning", "auth_failure")
    assert capture.calls[0][2]["status_code"] == 401
