"""Batch and section management services."""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy.orm import selectinload

from portal.models.academics import Batch, Note, Paper, Section
from portal.services.resource_service import DependentGuard, ParentReference, ResourceService


@lru_cache
def get_batch_service() -> ResourceService[Batch]:
    """Batches ordered newest intake first, each with its sections."""
    return ResourceService(
        model=Batch,
        label="Batch",
        dependents=(
            DependentGuard(
                column=Section.batch_id,
                message=(
                    "Cannot delete batch with existing sections. "
                    "Please move or delete sections first."
                ),
            ),
        ),
        load_options=(selectinload(Batch.sections),),
        ordering=(Batch.start_year.desc().nulls_last(), Batch.name),
        duplicate_message="Batch name already exists.",
    )


@lru_cache
def get_section_service() -> ResourceService[Section]:
    """Sections in creation order, each with its batch."""
    return ResourceService(
        model=Section,
        label="Section",
        parents=(ParentReference("batch_id", Batch, "Invalid batch ID."),),
        dependents=(
            DependentGuard(
                column=Note.section_id,
                message=(
                    "Cannot delete section with existing notes. "
                    "Please move or delete notes first."
                ),
            ),
            DependentGuard(
                column=Paper.section_id,
                message=(
                    "Cannot delete section with existing papers. "
                    "Please move or delete papers first."
                ),
            ),
        ),
        load_options=(selectinload(Section.batch),),
        ordering=(Section.created_at,),
        duplicate_message="Section already exists for this batch.",
    )
