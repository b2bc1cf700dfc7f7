"""OpenTelemetry request tracing middleware."""

from __future__ import annotations

from fastapi import Request
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


class TracingMiddleware(BaseHTTPMiddleware):
    """Create an OpenTelemetry span around each request."""

    def __init__(self, app, tracer: trace.Tracer | None = None) -> None:
        super().__init__(app)
        self._tracer = tracer or trace.get_tracer("portal.middleware.tracing")

    async def dispatch(self, request: Request, call_next) -> Response:
        """Trace request processing and attach key HTTP and identity attributes."""
        span_name = f"{request.method} {request.url.path}"
        with self._tracer.start_as_current_span(span_name) as span:
            span.set_attribute("http.method", request.method)
            span.set_attribute("http.target", request.url.path)
            try:
                response = await call_next(request)
            except Exception as exc:
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR))
                raise

            route = request.scope.get("route")
            if route is not None:
                span.set_attribute("http.route", getattr(route, "path", request.url.path))
            identity = getattr(request.state, "user", None)
            if identity is not None:
                span.set_attribute("portal.user.role", identity.role)
            span.set_attribute("http.status_code", response.status_code)
            span.set_status(Status(StatusCode.ERROR if response.status_code >= 500 else StatusCode.OK))
            return response
