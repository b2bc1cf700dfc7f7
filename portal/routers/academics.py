"""Management routes for batches, sections, notes and papers."""

from __future__ import annotations

from portal.routers.crud import build_crud_router
from portal.schemas.batch import (
    BatchCreateRequest,
    BatchOut,
    BatchUpdateRequest,
    SectionCreateRequest,
    SectionOut,
    SectionUpdateRequest,
)
from portal.schemas.material import MaterialCreateRequest, MaterialOut, MaterialUpdateRequest
from portal.services.batch_service import get_batch_service, get_section_service
from portal.services.material_service import get_note_service, get_paper_service

batches_router = build_crud_router(
    prefix="/api/admin/batches",
    tag="batches",
    service_provider=get_batch_service,
    out_schema=BatchOut,
    create_schema=BatchCreateRequest,
    update_schema=BatchUpdateRequest,
)

sections_router = build_crud_router(
    prefix="/api/admin/sections",
    tag="sections",
    service_provider=get_section_service,
    out_schema=SectionOut,
    create_schema=SectionCreateRequest,
    update_schema=SectionUpdateRequest,
)

notes_router = build_crud_router(
    prefix="/api/admin/notes",
    tag="notes",
    service_provider=get_note_service,
    out_schema=MaterialOut,
    create_schema=MaterialCreateRequest,
    update_schema=MaterialUpdateRequest,
)

papers_router = build_crud_router(
    prefix="/api/admin/papers",
    tag="papers",
    service_provider=get_paper_service,
    out_schema=MaterialOut,
    create_schema=MaterialCreateRequest,
    update_schema=MaterialUpdateRequest,
)
