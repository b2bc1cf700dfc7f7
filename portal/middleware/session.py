"""Cookie session resolution middleware."""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from portal.config import get_settings
from portal.core.sessions import SessionService, extract_session_token, get_session_service
from portal.db.session import get_session_factory

logger = structlog.get_logger(__name__)


class SessionAuthMiddleware(BaseHTTPMiddleware):
    """Resolve the session cookie into ``request.state.user`` without ever rejecting."""

    def __init__(
        self,
        app,
        session_service: SessionService | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        cookie_names: Sequence[str] | None = None,
    ) -> None:
        """Initialize middleware with optional explicit collaborators for testability."""
        super().__init__(app)
        self._session_service = session_service or get_session_service()
        self._session_factory = session_factory or get_session_factory()
        if cookie_names is None:
            cookie_names = get_settings().session.cookie_names
        self._cookie_names = tuple(cookie_names)

    async def dispatch(self, request: Request, call_next) -> Response:
        """Attach the resolved identity, or None, before the route runs."""
        request.state.user = None
        token = extract_session_token(request.headers.get("cookie"), self._cookie_names)
        request.state.session_token = token

        if token is not None:
            try:
                async with self._session_factory() as db_session:
                    request.state.user = await self._session_service.resolve_identity(
                        db_session, token
                    )
            except (SQLAlchemyError, OSError) as exc:
                logger.error(
                    "session_lookup_failed",
                    path=request.url.path,
                    method=request.method,
                    error=str(exc),
                )

        if request.state.user is not None:
            structlog.contextvars.bind_contextvars(user_id=str(request.state.user.id))
        try:
            return await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("user_id")
