"""User lookup, credential checks and account management."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.passwords import CredentialVerifier, get_credential_verifier
from portal.core.roles import Role
from portal.core.sessions import SessionService, get_session_service
from portal.errors import NotFoundError, ValidationFailedError
from portal.models.user import User

logger = structlog.get_logger(__name__)

LAST_ADMIN_DELETE_MESSAGE = "Cannot delete the last admin user."
LAST_ADMIN_CHANGE_MESSAGE = "Cannot demote or deactivate the last admin user."
DUPLICATE_EMAIL_MESSAGE = "User with this email already exists."


def normalize_email(email: str) -> str:
    """Canonical stored form of an email address."""
    return email.strip().lower()


class UserService:
    """Service responsible for portal accounts and their credentials."""

    def __init__(
        self,
        credential_verifier: CredentialVerifier,
        session_service: SessionService,
    ) -> None:
        self._verifier = credential_verifier
        self._sessions = session_service

    async def get_user_by_email(self, db_session: AsyncSession, email: str) -> User | None:
        """Fetch an active user by case-insensitive email."""
        statement = select(User).where(
            func.lower(User.email) == normalize_email(email),
            User.is_active.is_(True),
        )
        result = await db_session.execute(statement)
        return result.scalar_one_or_none()

    async def authenticate_user(
        self,
        db_session: AsyncSession,
        email: str,
        password: str,
    ) -> User | None:
        """Return the user for valid credentials; every failure looks the same."""
        user = await self.get_user_by_email(db_session=db_session, email=email)
        if user is None:
            self._verifier.dummy_verify()
            return None
        if not self._verifier.verify(password, user.password_hash):
            return None
        return user

    def record_login(self, user: User) -> None:
        """Stamp last login; persisted by the session insert that follows."""
        user.last_login_at = datetime.now(UTC)

    async def list_users(self, db_session: AsyncSession) -> list[User]:
        """Return every account, newest first."""
        result = await db_session.execute(select(User).order_by(User.created_at.desc()))
        return list(result.scalars().all())

    async def get_user(self, db_session: AsyncSession, user_id: UUID) -> User:
        """Return one account or raise NotFoundError."""
        result = await db_session.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found.")
        return user

    async def create_user(
        self,
        db_session: AsyncSession,
        email: str,
        password: str,
        full_name: str,
        role: Role = Role.VIEWER,
        is_active: bool = True,
    ) -> User:
        """Create an account with a freshly hashed password."""
        normalized = normalize_email(email)
        existing = await db_session.execute(
            select(User.id).where(func.lower(User.email) == normalized)
        )
        if existing.scalar_one_or_none() is not None:
            raise ValidationFailedError(DUPLICATE_EMAIL_MESSAGE)

        user = User(
            email=normalized,
            password_hash=self._verifier.hash(password),
            full_name=full_name.strip(),
            role=Role(role).value,
            is_active=is_active,
        )
        db_session.add(user)
        await self._commit_unique(db_session)
        await db_session.refresh(user)
        return user

    async def update_user(
        self,
        db_session: AsyncSession,
        user_id: UUID,
        changes: Mapping[str, Any],
    ) -> User:
        """Apply admin edits with last-admin protection; deactivation ends sessions."""
        user = await self._get_user_for_update(db_session=db_session, user_id=user_id)
        if user is None:
            raise NotFoundError("User not found.")

        new_role = Role(changes["role"]).value if changes.get("role") is not None else user.role
        new_active = changes["is_active"] if changes.get("is_active") is not None else user.is_active
        if user.role == Role.ADMIN.value and user.is_active:
            if new_role != Role.ADMIN.value or not new_active:
                await self._ensure_last_admin_not_violated(
                    db_session=db_session, message=LAST_ADMIN_CHANGE_MESSAGE
                )

        if changes.get("email") is not None:
            normalized = normalize_email(changes["email"])
            if normalized != user.email:
                clash = await db_session.execute(
                    select(User.id).where(func.lower(User.email) == normalized, User.id != user.id)
                )
                if clash.scalar_one_or_none() is not None:
                    raise ValidationFailedError(DUPLICATE_EMAIL_MESSAGE)
                user.email = normalized
        if changes.get("full_name") is not None:
            user.full_name = changes["full_name"].strip()
        if changes.get("password"):
            user.password_hash = self._verifier.hash(changes["password"])
        user.role = new_role
        user.is_active = new_active

        if not new_active or changes.get("password"):
            revoked = await self._sessions.revoke_user_sessions(db_session, user.id)
            logger.info("user_sessions_revoked", user_id=str(user.id), count=revoked)

        await self._commit_unique(db_session)
        await db_session.refresh(user)
        return user

    async def delete_user(self, db_session: AsyncSession, user_id: UUID) -> None:
        """Hard-delete a user and their sessions unless they are the last active admin."""
        user = await self._get_user_for_update(db_session=db_session, user_id=user_id)
        if user is None:
            raise NotFoundError("User not found.")
        if user.role == Role.ADMIN.value and user.is_active:
            await self._ensure_last_admin_not_violated(
                db_session=db_session, message=LAST_ADMIN_DELETE_MESSAGE
            )

        await self._sessions.revoke_user_sessions(db_session, user.id)
        await db_session.delete(user)
        await db_session.flush()
        await db_session.commit()

    async def change_password(
        self,
        db_session: AsyncSession,
        user_id: UUID,
        current_password: str,
        new_password: str,
        keep_session_id: UUID | None = None,
    ) -> None:
        """Re-verify the current password, store the new hash, end other sessions."""
        user = await self._get_user_for_update(db_session=db_session, user_id=user_id)
        if user is None or not user.is_active:
            raise NotFoundError("User not found.")
        if not self._verifier.verify(current_password, user.password_hash):
            raise ValidationFailedError("Current password is incorrect.")
        if current_password == new_password:
            raise ValidationFailedError("New password must differ from the current password.")

        user.password_hash = self._verifier.hash(new_password)
        await self._sessions.revoke_user_sessions(
            db_session, user.id, keep_session_id=keep_session_id
        )
        await db_session.flush()
        await db_session.commit()

    async def _get_user_for_update(self, db_session: AsyncSession, user_id: UUID) -> User | None:
        """Fetch user row for mutation with row lock."""
        statement = select(User).where(User.id == user_id).with_for_update()
        result = await db_session.execute(statement)
        return result.scalar_one_or_none()

    async def _ensure_last_admin_not_violated(
        self,
        db_session: AsyncSession,
        message: str,
    ) -> None:
        """Raise when the change would leave no active admin account."""
        admin_ids_stmt = (
            select(User.id)
            .where(
                User.role == Role.ADMIN.value,
                User.is_active.is_(True),
            )
            .with_for_update()
        )
        result = await db_session.execute(admin_ids_stmt)
        admin_count = len(list(result.scalars().all()))
        if admin_count <= 1:
            raise ValidationFailedError(message, code="last_admin_protected")

    async def _commit_unique(self, db_session: AsyncSession) -> None:
        """Flush and commit, mapping the unique email index onto a 400."""
        try:
            await db_session.flush()
        except IntegrityError as exc:
            await db_session.rollback()
            raise ValidationFailedError(DUPLICATE_EMAIL_MESSAGE) from exc
        await db_session.commit()


@lru_cache
def get_user_service() -> UserService:
    """Create and cache user service dependency."""
    return UserService(
        credential_verifier=get_credential_verifier(),
        session_service=get_session_service(),
    )
