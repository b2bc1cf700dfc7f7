"""Unauthenticated reader routes backing the public portal pages."""

from __future__ import annotations

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from portal.dependencies import DatabaseSession
from portal.models.academics import Batch, Note, Paper, Section
from portal.models.gallery import GalleryCategory, GalleryImage
from portal.models.notice import Notice, NoticeCategory
from portal.schemas.batch import BatchOut, SectionOut
from portal.schemas.envelope import Envelope, PageOut
from portal.schemas.gallery import GalleryImageOut
from portal.schemas.material import MaterialOut
from portal.schemas.notice import CategoryOut, NoticeOut
from portal.services.batch_service import get_batch_service, get_section_service
from portal.services.gallery_service import (
    get_gallery_category_service,
    get_gallery_image_service,
)
from portal.services.material_service import get_note_service, get_paper_service
from portal.services.notice_service import get_notice_category_service, get_notice_service
from portal.services.resource_service import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    Page,
    ResourceService,
)

router = APIRouter(prefix="/api/public", tags=["public"])


class PageParams(BaseModel):
    page: int
    page_size: int


def get_page_params(
    page: Annotated[int, Query(ge=0)] = 0,
    page_size: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
) -> PageParams:
    """Zero-based page index and page size from the query string."""
    return PageParams(page=page, page_size=page_size)


Paging = Annotated[PageParams, Depends(get_page_params)]


def _page_envelope(page: Page[Any], schema: type[BaseModel]) -> Envelope[PageOut[Any]]:
    return Envelope(
        data=PageOut(
            items=[schema.model_validate(item) for item in page.items],
            has_more=page.has_more,
            total=page.total,
            page=page.page,
            page_size=page.page_size,
        )
    )


@router.get("/batches", response_model=Envelope[PageOut[BatchOut]])
async def public_batches(
    db_session: DatabaseSession,
    paging: Paging,
    service: Annotated[ResourceService[Batch], Depends(get_batch_service)],
):
    page = await service.paginate(
        db_session, paging.page, paging.page_size, filters=(Batch.is_active.is_(True),)
    )
    return _page_envelope(page, BatchOut)


@router.get("/sections", response_model=Envelope[PageOut[SectionOut]])
async def public_sections(
    db_session: DatabaseSession,
    paging: Paging,
    service: Annotated[ResourceService[Section], Depends(get_section_service)],
    batch_id: UUID | None = None,
):
    filters = [Section.is_active.is_(True)]
    if batch_id is not None:
        filters.append(Section.batch_id == batch_id)
    page = await service.paginate(db_session, paging.page, paging.page_size, filters=filters)
    return _page_envelope(page, SectionOut)


@router.get("/notes", response_model=Envelope[PageOut[MaterialOut]])
async def public_notes(
    db_session: DatabaseSession,
    paging: Paging,
    service: Annotated[ResourceService[Note], Depends(get_note_service)],
    section_id: UUID | None = None,
):
    """Newest notes first, optionally for one section."""
    filters = [Note.section_id == section_id] if section_id is not None else []
    page = await service.paginate(db_session, paging.page, paging.page_size, filters=filters)
    return _page_envelope(page, MaterialOut)


@router.get("/papers", response_model=Envelope[PageOut[MaterialOut]])
async def public_papers(
    db_session: DatabaseSession,
    paging: Paging,
    service: Annotated[ResourceService[Paper], Depends(get_paper_service)],
    section_id: UUID | None = None,
):
    """Newest papers first, optionally for one section."""
    filters = [Paper.section_id == section_id] if section_id is not None else []
    page = await service.paginate(db_session, paging.page, paging.page_size, filters=filters)
    return _page_envelope(page, MaterialOut)


@router.get("/notice-categories", response_model=Envelope[PageOut[CategoryOut]])
async def public_notice_categories(
    db_session: DatabaseSession,
    paging: Paging,
    service: Annotated[ResourceService[NoticeCategory], Depends(get_notice_category_service)],
):
    page = await service.paginate(
        db_session, paging.page, paging.page_size, filters=(NoticeCategory.is_active.is_(True),)
    )
    return _page_envelope(page, CategoryOut)


@router.get("/notices", response_model=Envelope[PageOut[NoticeOut]])
async def public_notices(
    db_session: DatabaseSession,
    paging: Paging,
    service: Annotated[ResourceService[Notice], Depends(get_notice_service)],
    category_id: UUID | None = None,
):
    """Published notices only; urgent ones lead."""
    filters = [Notice.is_published.is_(True)]
    if category_id is not None:
        filters.append(Notice.category_id == category_id)
    page = await service.paginate(db_session, paging.page, paging.page_size, filters=filters)
    return _page_envelope(page, NoticeOut)


@router.get("/gallery/categories", response_model=Envelope[PageOut[CategoryOut]])
async def public_gallery_categories(
    db_session: DatabaseSession,
    paging: Paging,
    service: Annotated[ResourceService[GalleryCategory], Depends(get_gallery_category_service)],
):
    page = await service.paginate(
        db_session, paging.page, paging.page_size, filters=(GalleryCategory.is_active.is_(True),)
    )
    return _page_envelope(page, CategoryOut)


@router.get("/gallery/images", response_model=Envelope[PageOut[GalleryImageOut]])
async def public_gallery_images(
    db_session: DatabaseSession,
    paging: Paging,
    service: Annotated[ResourceService[GalleryImage], Depends(get_gallery_image_service)],
    category_id: UUID | None = None,
):
    """Active images; featured first, then by event date."""
    filters = [GalleryImage.is_active.is_(True)]
    if category_id is not None:
        filters.append(GalleryImage.category_id == category_id)
    page = await service.paginate(db_session, paging.page, paging.page_size, filters=filters)
    return _page_envelope(page, GalleryImageOut)
