"""Notes and papers services; both hang off a section."""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy.orm import selectinload

from portal.models.academics import Note, Paper, Section
from portal.services.resource_service import ParentReference, ResourceService

_SECTION_REFERENCE = ParentReference("section_id", Section, "Invalid section ID.")


@lru_cache
def get_note_service() -> ResourceService[Note]:
    return ResourceService(
        model=Note,
        label="Note",
        parents=(_SECTION_REFERENCE,),
        load_options=(selectinload(Note.section).selectinload(Section.batch),),
        ordering=(Note.created_at.desc(),),
        duplicate_message="Notes link already exists for this section.",
    )


@lru_cache
def get_paper_service() -> ResourceService[Paper]:
    return ResourceService(
        model=Paper,
        label="Paper",
        parents=(_SECTION_REFERENCE,),
        load_options=(selectinload(Paper.section).selectinload(Section.batch),),
        ordering=(Paper.created_at.desc(),),
        duplicate_message="Papers link already exists for this section.",
    )
