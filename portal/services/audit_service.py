"""Audit trail writer for authentication and account management."""

from __future__ import annotations

import ipaddress
from collections.abc import Mapping
from functools import lru_cache
from typing import Any, Protocol
from uuid import UUID

import structlog
from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portal.db.session import get_session_factory
from portal.models.audit_event import AuditEvent

logger = structlog.get_logger(__name__)

REDACTED = "[redacted]"
_SECRET_MARKERS = ("password", "token", "cookie", "secret")
_USER_AGENT_LIMIT = 512
_REQUEST_ID_LIMIT = 64


class AuditActor(Protocol):
    """Anything carrying an account's id, email and role (a User or a session Identity)."""

    id: UUID
    email: str
    role: str


def scrub_details(details: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Copy details into JSON-safe form with credential-looking keys masked."""
    if not details:
        return None
    cleaned: dict[str, Any] = {}
    for key, value in details.items():
        lowered = str(key).lower().replace("-", "_")
        if any(marker in lowered for marker in _SECRET_MARKERS):
            cleaned[key] = REDACTED
        elif isinstance(value, Mapping):
            cleaned[key] = scrub_details(value)
        elif value is None or isinstance(value, (str, int, float, bool)):
            cleaned[key] = value
        else:
            cleaned[key] = str(value)
    return cleaned


def client_ip(request: Request) -> str | None:
    """First X-Forwarded-For hop when valid, else the peer address."""
    candidates = [request.headers.get("x-forwarded-for", "").split(",")[0]]
    if request.client is not None:
        candidates.append(request.client.host)
    for candidate in candidates:
        try:
            return str(ipaddress.ip_address(candidate.strip()))
        except ValueError:
            continue
    return None


def _request_id(request: Request) -> str | None:
    value = getattr(request.state, "correlation_id", None)
    return str(value)[:_REQUEST_ID_LIMIT] if value else None


class AuditService:
    """Append audit rows in a dedicated session so request transactions are untouched."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory

    async def record(
        self,
        request: Request,
        action: str,
        *,
        actor: AuditActor | None = None,
        succeeded: bool = True,
        subject_user_id: UUID | None = None,
        attempted_email: str | None = None,
        reason: str | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        """Store one event; a store failure is logged and never raised."""
        user_agent = request.headers.get("user-agent")
        event = AuditEvent(
            action=action,
            succeeded=succeeded,
            actor_id=actor.id if actor is not None else None,
            actor_email=actor.email if actor is not None else attempted_email,
            actor_role=actor.role if actor is not None else None,
            subject_user_id=subject_user_id,
            reason=reason,
            client_ip=client_ip(request),
            user_agent=user_agent[:_USER_AGENT_LIMIT] if user_agent else None,
            request_id=_request_id(request),
            details=scrub_details(details),
        )

        session_factory = self._session_factory or get_session_factory()
        try:
            async with session_factory() as audit_db:
                audit_db.add(event)
                await audit_db.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.error(
                "audit_write_failed",
                action=action,
                succeeded=succeeded,
                error=str(exc),
            )


@lru_cache
def get_audit_service() -> AuditService:
    return AuditService()
