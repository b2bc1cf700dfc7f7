"""Batch and section schemas."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from portal.schemas.common import OptionalShortName, OptionalText, PartialUpdate, ShortName


class BatchSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    start_year: int | None = None
    end_year: int | None = None
    is_active: bool


class SectionSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str | None
    is_active: bool


class BatchOut(BatchSummary):
    """Batch with its sections."""

    description: str | None
    created_at: datetime
    updated_at: datetime
    sections: list[SectionSummary] = Field(default_factory=list)


class SectionOut(SectionSummary):
    """Section with its owning batch."""

    batch_id: UUID
    created_at: datetime
    updated_at: datetime
    batch: BatchSummary | None = None


class BatchCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: ShortName
    description: OptionalText = None
    start_year: int | None = Field(default=None, ge=1900, le=2200)
    end_year: int | None = Field(default=None, ge=1900, le=2200)
    is_active: bool = True


class BatchUpdateRequest(PartialUpdate):
    non_nullable_fields: ClassVar[frozenset[str]] = frozenset({"name", "is_active"})

    name: ShortName | None = None
    description: OptionalText = None
    start_year: int | None = Field(default=None, ge=1900, le=2200)
    end_year: int | None = Field(default=None, ge=1900, le=2200)
    is_active: bool | None = None


class SectionCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    batch_id: UUID
    name: OptionalShortName = None
    is_active: bool = True


class SectionUpdateRequest(PartialUpdate):
    non_nullable_fields: ClassVar[frozenset[str]] = frozenset({"batch_id", "is_active"})

    batch_id: UUID | None = None
    name: OptionalShortName = None
    is_active: bool | None = None
