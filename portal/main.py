"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portal.config import configure_structlog, get_settings
from portal.db.session import dispose_engine
from portal.error_handlers import register_exception_handlers
from portal.middleware.correlation_id import CorrelationIdMiddleware
from portal.middleware.logging import LoggingMiddleware
from portal.middleware.metrics import MetricsMiddleware, build_metrics_endpoint
from portal.middleware.rate_limit import RateLimitMiddleware
from portal.middleware.security_headers import SecurityHeadersMiddleware
from portal.middleware.session import SessionAuthMiddleware
from portal.middleware.tracing import TracingMiddleware
from portal.routers import academics, auth, dashboard, gallery, health, notices, public, users


@asynccontextmanager
async def _lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_structlog(settings)

    app = FastAPI(title=settings.app.service, lifespan=_lifespan)
    register_exception_handlers(app, settings.app.environment)

    # Last added runs first: correlation id and CORS wrap everything, tracing sees the identity.
    app.add_middleware(TracingMiddleware)
    app.add_middleware(SessionAuthMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.session.cookie_secure)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    if settings.cors.allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors.allow_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE"],
            allow_headers=["Content-Type", "X-Correlation-ID"],
        )

    app.add_api_route("/metrics", build_metrics_endpoint(), methods=["GET"], include_in_schema=False)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(dashboard.router)
    app.include_router(academics.batches_router)
    app.include_router(academics.sections_router)
    app.include_router(academics.notes_router)
    app.include_router(academics.papers_router)
    app.include_router(notices.notice_categories_router)
    app.include_router(notices.notices_router)
    app.include_router(gallery.gallery_categories_router)
    app.include_router(gallery.gallery_images_router)
    app.include_router(public.router)
    app.include_router(health.router)
    return app


app = create_app()
