"""Shared FastAPI dependency helpers."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.roles import ADMIN_ONLY, ANY_AUTHENTICATED, EDITOR_OR_ABOVE, Role, is_authorized
from portal.core.sessions import Identity
from portal.db.session import get_db_session
from portal.errors import AuthenticationMissingError, AuthorizationDeniedError


async def get_database_session() -> AsyncGenerator[AsyncSession, None]:
    """Expose the request-scoped async database session dependency."""
    async for session in get_db_session():
        yield session


def get_optional_user(request: Request) -> Identity | None:
    """Return the identity resolved by the session middleware, if any."""
    return getattr(request.state, "user", None)


def get_current_user(
    identity: Annotated[Identity | None, Depends(get_optional_user)],
) -> Identity:
    """Require an authenticated, active identity."""
    if identity is None or not identity.is_active:
        raise AuthenticationMissingError()
    return identity


def require_role(*allowed_roles: Role) -> Callable[..., Awaitable[Identity]]:
    """Build a dependency that admits only the listed roles."""
    allowed = frozenset(allowed_roles)

    async def _checker(
        identity: Annotated[Identity, Depends(get_current_user)],
    ) -> Identity:
        if not is_authorized(identity, allowed):
            raise AuthorizationDeniedError()
        return identity

    return _checker


DatabaseSession = Annotated[AsyncSession, Depends(get_database_session)]
ViewerUser = Annotated[Identity, Depends(require_role(*ANY_AUTHENTICATED))]
EditorUser = Annotated[Identity, Depends(require_role(*EDITOR_OR_ABOVE))]
AdminUser = Annotated[Identity, Depends(require_role(*ADMIN_ONLY))]
