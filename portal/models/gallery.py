"""Photo gallery ORM models."""

from __future__ import annotations

from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portal.db.base import Base, TimestampMixin
from portal.models.notice import DEFAULT_CATEGORY_COLOR


class GalleryCategory(Base, TimestampMixin):
    """Album grouping for gallery images."""

    __tablename__ = "gallery_categories"

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    color: Mapped[str] = mapped_column(String(7), nullable=False, default=DEFAULT_CATEGORY_COLOR)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    images: Mapped[list[GalleryImage]] = relationship(
        back_populates="category", passive_deletes=True
    )


class GalleryImage(Base, TimestampMixin):
    """Externally hosted photo linked into a gallery category."""

    __tablename__ = "gallery_images"
    __table_args__ = (
        Index("ix_gallery_images_category_id", "category_id"),
        Index("ix_gallery_images_featured_event_date", "is_featured", "event_date"),
    )

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True, default=uuid4)
    category_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("gallery_categories.id", ondelete="RESTRICT"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    image_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    photographer: Mapped[str | None] = mapped_column(String(200), nullable=True)
    event_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    category: Mapped[GalleryCategory] = relationship(back_populates="images")
