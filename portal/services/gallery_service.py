"""Photo gallery services."""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy.orm import selectinload

from portal.models.gallery import GalleryCategory, GalleryImage
from portal.services.resource_service import DependentGuard, ParentReference, ResourceService


@lru_cache
def get_gallery_category_service() -> ResourceService[GalleryCategory]:
    return ResourceService(
        model=GalleryCategory,
        label="Gallery category",
        dependents=(
            DependentGuard(
                column=GalleryImage.category_id,
                message=(
                    "Cannot delete category with existing images. "
                    "Please move or delete images first."
                ),
            ),
        ),
        ordering=(GalleryCategory.name,),
        duplicate_message="Gallery category name already exists.",
    )


@lru_cache
def get_gallery_image_service() -> ResourceService[GalleryImage]:
    """Featured images first, then the most recent events."""
    return ResourceService(
        model=GalleryImage,
        label="Gallery image",
        parents=(ParentReference("category_id", GalleryCategory, "Invalid category ID."),),
        load_options=(selectinload(GalleryImage.category),),
        ordering=(
            GalleryImage.is_featured.desc(),
            GalleryImage.event_date.desc().nulls_last(),
            GalleryImage.created_at.desc(),
        ),
    )
