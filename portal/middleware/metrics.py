"""Prometheus-style request metrics and the /metrics endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from time import perf_counter

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import PlainTextResponse, Response

METRIC_PREFIX = "portal_http"
_PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

LabelSet = tuple[str, str, str]


@dataclass
class _DurationStat:
    """Aggregate duration stats per label tuple."""

    count: int = 0
    total_seconds: float = 0.0


class MetricsRegistry:
    """In-process request counters rendered in Prometheus text format."""

    def __init__(self) -> None:
        self._request_counts: dict[LabelSet, int] = {}
        self._duration_stats: dict[LabelSet, _DurationStat] = {}
        self._in_flight = 0
        self._lock = Lock()

    def request_started(self) -> None:
        with self._lock:
            self._in_flight += 1

    def record(self, method: str, route: str, status: str, duration_seconds: float) -> None:
        """Record one finished request for the label set."""
        key = (method, route, status)
        with self._lock:
            self._in_flight -= 1
            self._request_counts[key] = self._request_counts.get(key, 0) + 1
            stat = self._duration_stats.setdefault(key, _DurationStat())
            stat.count += 1
            stat.total_seconds += duration_seconds

    def render_prometheus_text(self) -> str:
        """Render metrics in Prometheus exposition format."""
        total = f"{METRIC_PREFIX}_requests_total"
        duration = f"{METRIC_PREFIX}_request_duration_seconds"
        in_flight = f"{METRIC_PREFIX}_requests_in_flight"
        lines = [
            f"# HELP {total} Total HTTP requests handled by the portal API.",
            f"# TYPE {total} counter",
        ]

        with self._lock:
            for key in sorted(self._request_counts):
                lines.append(f"{total}{{{_format_labels(*key)}}} {self._request_counts[key]}")

            lines.append(f"# HELP {duration} End-to-end HTTP request duration in seconds.")
            lines.append(f"# TYPE {duration} summary")
            for key in sorted(self._duration_stats):
                stat = self._duration_stats[key]
                labels = _format_labels(*key)
                lines.append(f"{duration}_count{{{labels}}} {stat.count}")
                lines.append(f"{duration}_sum{{{labels}}} {stat.total_seconds}")

            lines.append(f"# HELP {in_flight} Requests currently being handled.")
            lines.append(f"# TYPE {in_flight} gauge")
            lines.append(f"{in_flight} {self._in_flight}")

        return "\n".join(lines) + "\n"


def _escape_label(value: str) -> str:
    """Escape string values for Prometheus label rendering."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _format_labels(method: str, route: str, status: str) -> str:
    return (
        f'method="{_escape_label(method)}",'
        f'route="{_escape_label(route)}",'
        f'status="{_escape_label(status)}"'
    )


DEFAULT_METRICS_REGISTRY = MetricsRegistry()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record metrics for all responses, including failed requests."""

    def __init__(self, app, registry: MetricsRegistry = DEFAULT_METRICS_REGISTRY) -> None:
        super().__init__(app)
        self._registry = registry

    async def dispatch(self, request: Request, call_next) -> Response:
        """Capture request counts and durations labelled by route template."""
        start = perf_counter()
        status_code = 500
        self._registry.request_started()

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route = request.scope.get("route")
            # Unmatched paths collapse into one label to keep cardinality bounded.
            route_label = getattr(route, "path", None) or "unmatched"
            self._registry.record(
                method=request.method,
                route=route_label,
                status=str(status_code),
                duration_seconds=perf_counter() - start,
            )


def build_metrics_endpoint(registry: MetricsRegistry = DEFAULT_METRICS_REGISTRY):
    """Build FastAPI-compatible endpoint that serves metrics text."""

    async def metrics_endpoint() -> PlainTextResponse:
        """Return current metrics in Prometheus exposition format."""
        return PlainTextResponse(
            registry.render_prometheus_text(),
            media_type=_PROMETHEUS_CONTENT_TYPE,
        )

    return metrics_endpoint
