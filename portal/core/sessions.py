"""Postgres-backed cookie session state management."""

from __future__ import annotations

import re
import secrets
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from hashlib import sha256
from uuid import UUID

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import cookie_parser

from portal.config import get_settings
from portal.models.session import UserSession
from portal.models.user import User

logger = structlog.get_logger(__name__)

_TOKEN_BYTES = 32
_TOKEN_PATTERN = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as seen by handlers; never carries the password hash."""

    id: UUID
    session_id: UUID
    email: str
    full_name: str
    role: str
    is_active: bool
    last_login_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User, session_id: UUID) -> Identity:
        """Project a user row onto the sanitized identity shape."""
        return cls(
            id=user.id,
            session_id=session_id,
            email=user.email,
            full_name=user.full_name,
            role=user.role,
            is_active=user.is_active,
            last_login_at=user.last_login_at,
        )


@dataclass(frozen=True)
class IssuedSession:
    """Raw token handed to the client exactly once, plus its stored expiry."""

    token: str
    session_id: UUID
    expires_at: datetime


def extract_session_token(cookie_header: str | None, cookie_names: Sequence[str]) -> str | None:
    """Return the first well-formed session token found under the accepted cookie names."""
    if not cookie_header:
        return None
    cookies = cookie_parser(cookie_header)
    for name in cookie_names:
        value = cookies.get(name, "").strip()
        if value and _TOKEN_PATTERN.match(value):
            return value
    return None


class SessionService:
    """Service for session creation, resolution, sliding and revocation."""

    def __init__(self, ttl_seconds: int) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)

    @property
    def ttl_seconds(self) -> int:
        """Configured sliding lifetime in seconds."""
        return int(self._ttl.total_seconds())

    async def create_session(self, db_session: AsyncSession, user_id: UUID) -> IssuedSession:
        """Persist a new session row and commit the surrounding transaction."""
        raw_token = secrets.token_hex(_TOKEN_BYTES)
        expires_at = datetime.now(UTC) + self._ttl
        session_row = UserSession(
            user_id=user_id,
            token_hash=self._hash_token(raw_token),
            expires_at=expires_at,
        )

        try:
            db_session.add(session_row)
            await db_session.flush()
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        return IssuedSession(token=raw_token, session_id=session_row.id, expires_at=expires_at)

    async def resolve_identity(self, db_session: AsyncSession, raw_token: str) -> Identity | None:
        """Resolve a raw token to an active identity and slide its expiry."""
        statement = (
            select(UserSession, User)
            .join(User, User.id == UserSession.user_id)
            .where(UserSession.token_hash == self._hash_token(raw_token))
        )
        result = await db_session.execute(statement)
        row = result.first()
        if row is None:
            return None

        session_row, user = row
        now = datetime.now(UTC)
        if session_row.expires_at <= now:
            return None
        if not user.is_active:
            return None

        identity = Identity.from_user(user, session_id=session_row.id)
        await self._slide_expiry(db_session, session_id=session_row.id, now=now)
        return identity

    async def revoke_session(self, db_session: AsyncSession, raw_token: str) -> bool:
        """Delete the session for a raw token; returns False when nothing matched."""
        statement = delete(UserSession).where(UserSession.token_hash == self._hash_token(raw_token))
        try:
            result = await db_session.execute(statement)
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        return bool(result.rowcount)

    async def revoke_user_sessions(
        self,
        db_session: AsyncSession,
        user_id: UUID,
        keep_session_id: UUID | None = None,
    ) -> int:
        """Delete a user's sessions inside the caller's transaction."""
        statement = delete(UserSession).where(UserSession.user_id == user_id)
        if keep_session_id is not None:
            statement = statement.where(UserSession.id != keep_session_id)
        result = await db_session.execute(statement)
        return int(result.rowcount or 0)

    async def purge_expired(self, db_session: AsyncSession) -> int:
        """Delete every expired session and return how many were removed."""
        statement = delete(UserSession).where(UserSession.expires_at <= datetime.now(UTC))
        try:
            result = await db_session.execute(statement)
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        return int(result.rowcount or 0)

    async def _slide_expiry(self, db_session: AsyncSession, session_id: UUID, now: datetime) -> None:
        """Push expiry forward; a failed slide never blocks the request."""
        statement = (
            update(UserSession)
            .where(UserSession.id == session_id)
            .values(expires_at=now + self._ttl)
        )
        try:
            await db_session.execute(statement)
            await db_session.commit()
        except SQLAlchemyError as exc:
            await db_session.rollback()
            logger.warning("session_slide_failed", session_id=str(session_id), error=str(exc))

    @staticmethod
    def _hash_token(raw_token: str) -> str:
        """Hash token with SHA-256 for persistent storage."""
        return sha256(raw_token.encode("utf-8")).hexdigest()


@lru_cache
def get_session_service() -> SessionService:
    """Create and cache session service."""
    settings = get_settings()
    return SessionService(ttl_seconds=settings.session.ttl_seconds)
