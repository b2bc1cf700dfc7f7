"""Notice board services."""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy.orm import selectinload

from portal.models.notice import Notice, NoticeCategory
from portal.services.resource_service import DependentGuard, ParentReference, ResourceService


@lru_cache
def get_notice_category_service() -> ResourceService[NoticeCategory]:
    """Notice categories alphabetically."""
    return ResourceService(
        model=NoticeCategory,
        label="Notice category",
        dependents=(
            DependentGuard(
                column=Notice.category_id,
                message=(
                    "Cannot delete category with existing notices. "
                    "Please move or delete notices first."
                ),
            ),
        ),
        ordering=(NoticeCategory.name,),
        duplicate_message="Notice category name already exists.",
    )


@lru_cache
def get_notice_service() -> ResourceService[Notice]:
    """Notices with urgent items first, then by most recent publish date."""
    return ResourceService(
        model=Notice,
        label="Notice",
        parents=(ParentReference("category_id", NoticeCategory, "Invalid category ID."),),
        load_options=(selectinload(Notice.category),),
        ordering=(Notice.is_urgent.desc(), Notice.publish_date.desc(), Notice.created_at.desc()),
    )
