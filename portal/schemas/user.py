"""Account and authentication schemas."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from portal.core.roles import Role
from portal.schemas.common import EmailStr, NonEmptyStr, PartialUpdate, PasswordStr


class LoginRequest(BaseModel):
    """Password login request payload."""

    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=256)


class UserOut(BaseModel):
    """Sanitized account view; never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: str
    role: Role
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime | None = None


class LoginResponse(BaseModel):
    user: UserOut
    expires_at: datetime


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=256)
    new_password: PasswordStr


class UserCreateRequest(BaseModel):
    """Admin-issued account registration."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: PasswordStr
    full_name: NonEmptyStr
    role: Role = Role.VIEWER
    is_active: bool = True


class UserUpdateRequest(PartialUpdate):
    """Admin edit of an existing account."""

    non_nullable_fields: ClassVar[frozenset[str]] = frozenset(
        {"email", "full_name", "role", "is_active"}
    )

    email: EmailStr | None = None
    full_name: NonEmptyStr | None = None
    role: Role | None = None
    is_active: bool | None = None
    password: PasswordStr | None = None
