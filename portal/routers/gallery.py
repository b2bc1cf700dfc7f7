"""Management routes for the photo gallery."""

from __future__ import annotations

from portal.routers.crud import build_crud_router
from portal.schemas.gallery import (
    GalleryImageCreateRequest,
    GalleryImageOut,
    GalleryImageUpdateRequest,
)
from portal.schemas.notice import CategoryCreateRequest, CategoryOut, CategoryUpdateRequest
from portal.services.gallery_service import (
    get_gallery_category_service,
    get_gallery_image_service,
)

gallery_categories_router = build_crud_router(
    prefix="/api/admin/gallery-categories",
    tag="gallery-categories",
    service_provider=get_gallery_category_service,
    out_schema=CategoryOut,
    create_schema=CategoryCreateRequest,
    update_schema=CategoryUpdateRequest,
)

gallery_images_router = build_crud_router(
    prefix="/api/admin/gallery-images",
    tag="gallery-images",
    service_provider=get_gallery_image_service,
    out_schema=GalleryImageOut,
    create_schema=GalleryImageCreateRequest,
    update_schema=GalleryImageUpdateRequest,
)
