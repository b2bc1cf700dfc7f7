"""Global exception handlers enforcing the portal failure envelope."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from portal.errors import ServiceError
from portal.schemas.envelope import ErrorEnvelope

GENERIC_SERVER_ERROR = "Internal server error."

_DEFAULT_MESSAGE_BY_STATUS: dict[int, str] = {
    400: "Bad request.",
    401: "Authentication required.",
    403: "Insufficient permissions.",
    404: "Not found.",
    405: "Method not allowed.",
    429: "Rate limit exceeded.",
    503: "Service not ready.",
}

logger = structlog.get_logger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    """Build the standardized failure envelope."""
    return JSONResponse(
        status_code=status_code, content=ErrorEnvelope(message=message).model_dump()
    )


def _extract_message(detail: Any, status_code: int) -> str:
    """Normalize HTTPException detail payloads into a single message."""
    if isinstance(detail, dict):
        raw = detail.get("message") or detail.get("detail")
        if raw:
            return str(raw)
    if isinstance(detail, str) and detail:
        return detail
    return _DEFAULT_MESSAGE_BY_STATUS.get(status_code, "Request failed.")


def _sanitize_message(message: str, status_code: int, environment: str) -> str:
    """Hide internal failure details outside development."""
    if environment != "development" and status_code >= 500:
        return GENERIC_SERVER_ERROR
    return message


def _format_validation_error(exc: RequestValidationError) -> str:
    """Render the first validation failure as a field-level message."""
    errors = exc.errors()
    if not errors:
        return "Invalid request payload."
    first = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part not in {"body", "query", "path"}]
    message = str(first.get("msg", "validation error"))
    if location:
        return f"Field '{'.'.join(location)}': {message}."
    return f"Invalid request payload: {message}."


def _extract_client_ip(request: Request) -> str:
    """Extract request client IP with forwarding-header support."""
    forwarded_for = request.headers.get("x-forwarded-for", "").strip()
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    client = request.client
    return client.host if client else "unknown"


def _correlation_id(request: Request) -> str:
    """Return the correlation id bound for this request."""
    return getattr(
        request.state,
        "correlation_id",
        request.headers.get("x-correlation-id", "unknown"),
    )


def _log_auth_failure(request: Request, status_code: int, message: str) -> None:
    """Emit WARNING-level log for 401/403 responses on API paths."""
    if status_code not in {401, 403}:
        return
    if not request.url.path.startswith("/api"):
        return

    identity = getattr(request.state, "user", None)
    logger.warning(
        "auth_failure",
        correlation_id=_correlation_id(request),
        event_type="auth_failure",
        user_id=str(identity.id) if identity is not None else None,
        role=getattr(identity, "role", None),
        ip_address=_extract_client_ip(request),
        status_code=status_code,
        message=message,
        path=request.url.path,
        method=request.method,
    )


def register_exception_handlers(app: FastAPI, environment: str) -> None:
    """Register global exception handlers enforcing the failure envelope."""

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        """Map service-layer failures to their status code and message."""
        message = _sanitize_message(exc.detail, exc.status_code, environment)
        _log_auth_failure(request=request, status_code=exc.status_code, message=message)
        return error_response(status_code=exc.status_code, message=message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Normalize framework HTTP exceptions to the failure envelope."""
        message = _extract_message(exc.detail, exc.status_code)
        _log_auth_failure(request=request, status_code=exc.status_code, message=message)
        return error_response(status_code=exc.status_code, message=message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_exception(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Map request validation errors to a 400 envelope."""
        del request
        return error_response(status_code=400, message=_format_validation_error(exc))

    @app.exception_handler(SQLAlchemyError)
    async def handle_store_failure(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """Log relational store failures and return a generic message."""
        logger.error(
            "store_failure",
            correlation_id=_correlation_id(request),
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return error_response(status_code=500, message=GENERIC_SERVER_ERROR)

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
        """Mask internal errors and enforce the failure envelope."""
        logger.error(
            "unhandled_exception",
            correlation_id=_correlation_id(request),
            path=request.url.path,
            method=request.method,
            error=str(exc),
        )
        message = _sanitize_message(str(exc) or GENERIC_SERVER_ERROR, 500, environment)
        return error_response(status_code=500, message=message)
