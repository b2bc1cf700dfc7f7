"""Schemas shared by notes and papers."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from portal.schemas.batch import BatchSummary
from portal.schemas.common import OptionalText, PartialUpdate, UrlStr


class MaterialSection(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str | None
    batch: BatchSummary | None = None


class MaterialOut(BaseModel):
    """A notes or papers drive link with its section and batch."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    section_id: UUID
    drive_link: str
    description: str | None
    created_at: datetime
    updated_at: datetime
    section: MaterialSection | None = None


class MaterialCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    section_id: UUID
    drive_link: UrlStr
    description: OptionalText = None


class MaterialUpdateRequest(PartialUpdate):
    non_nullable_fields: ClassVar[frozenset[str]] = frozenset({"section_id", "drive_link"})

    section_id: UUID | None = None
    drive_link: UrlStr | None = None
    description: OptionalText = None
