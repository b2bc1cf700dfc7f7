"""Photo gallery schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from portal.schemas.common import NonEmptyStr, OptionalText, PartialUpdate, UrlStr
from portal.schemas.notice import CategorySummary


class GalleryImageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    category_id: UUID
    title: str
    image_url: str
    photographer: str | None
    event_date: date | None
    is_featured: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime
    category: CategorySummary | None = None


class GalleryImageCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category_id: UUID
    title: NonEmptyStr
    image_url: UrlStr
    photographer: OptionalText = None
    event_date: date | None = None
    is_featured: bool = False
    is_active: bool = True


class GalleryImageUpdateRequest(PartialUpdate):
    non_nullable_fields: ClassVar[frozenset[str]] = frozenset(
        {"category_id", "title", "image_url", "is_featured", "is_active"}
    )

    category_id: UUID | None = None
    title: NonEmptyStr | None = None
    image_url: UrlStr | None = None
    photographer: OptionalText = None
    event_date: date | None = None
    is_featured: bool | None = None
    is_active: bool | None = None
