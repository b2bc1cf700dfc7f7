"""Management routes for the notice board."""

from __future__ import annotations

from portal.routers.crud import build_crud_router
from portal.schemas.notice import (
    CategoryCreateRequest,
    CategoryOut,
    CategoryUpdateRequest,
    NoticeCreateRequest,
    NoticeOut,
    NoticeUpdateRequest,
)
from portal.services.notice_service import get_notice_category_service, get_notice_service

notice_categories_router = build_crud_router(
    prefix="/api/admin/notice-categories",
    tag="notice-categories",
    service_provider=get_notice_category_service,
    out_schema=CategoryOut,
    create_schema=CategoryCreateRequest,
    update_schema=CategoryUpdateRequest,
)

notices_router = build_crud_router(
    prefix="/api/admin/notices",
    tag="notices",
    service_provider=get_notice_service,
    out_schema=NoticeOut,
    create_schema=NoticeCreateRequest,
    update_schema=NoticeUpdateRequest,
)
