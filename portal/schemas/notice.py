"""Notice board schemas."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from portal.models.notice import DEFAULT_CATEGORY_COLOR
from portal.schemas.common import (
    HexColor,
    NonEmptyStr,
    OptionalText,
    PartialUpdate,
    ShortName,
    UrlStr,
)


class CategoryOut(BaseModel):
    """Notice or gallery category."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    color: str
    description: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CategorySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    color: str


class CategoryCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: ShortName
    color: HexColor = DEFAULT_CATEGORY_COLOR
    description: OptionalText = None
    is_active: bool = True


class CategoryUpdateRequest(PartialUpdate):
    non_nullable_fields: ClassVar[frozenset[str]] = frozenset({"name", "color", "is_active"})

    name: ShortName | None = None
    color: HexColor | None = None
    description: OptionalText = None
    is_active: bool | None = None


class NoticeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    category_id: UUID
    title: str
    content: str
    attachment_url: str | None
    is_published: bool
    is_urgent: bool
    publish_date: datetime
    created_at: datetime
    updated_at: datetime
    category: CategorySummary | None = None


class NoticeCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category_id: UUID
    title: NonEmptyStr
    content: str = Field(min_length=1, max_length=20000)
    attachment_url: UrlStr | None = None
    is_published: bool = False
    is_urgent: bool = False
    publish_date: datetime | None = None


class NoticeUpdateRequest(PartialUpdate):
    non_nullable_fields: ClassVar[frozenset[str]] = frozenset(
        {"category_id", "title", "content", "is_published", "is_urgent", "publish_date"}
    )

    category_id: UUID | None = None
    title: NonEmptyStr | None = None
    content: str | None = Field(default=None, min_length=1, max_length=20000)
    attachment_url: UrlStr | None = None
    is_published: bool | None = None
    is_urgent: bool | None = None
    publish_date: datetime | None = None
