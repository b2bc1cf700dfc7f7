"""Middleware package exports."""

from portal.middleware.correlation_id import CorrelationIdMiddleware
from portal.middleware.logging import LoggingMiddleware
from portal.middleware.metrics import MetricsMiddleware, build_metrics_endpoint
from portal.middleware.rate_limit import RateLimitMiddleware
from portal.middleware.security_headers import SecurityHeadersMiddleware
from portal.middleware.session import SessionAuthMiddleware
from portal.middleware.tracing import TracingMiddleware

__all__ = [
    "CorrelationIdMiddleware",
    "LoggingMiddleware",
    "MetricsMiddleware",
    "RateLimitMiddleware",
    "SecurityHeadersMiddleware",
    "SessionAuthMiddleware",
    "TracingMiddleware",
    "build_metrics_endpoint",
]
