"""Notice board ORM models."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portal.db.base import Base, TimestampMixin

DEFAULT_CATEGORY_COLOR = "#3B82F6"


class NoticeCategory(Base, TimestampMixin):
    """Grouping for notices, e.g. "Exams" or "Events"."""

    __tablename__ = "notice_categories"

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    color: Mapped[str] = mapped_column(String(7), nullable=False, default=DEFAULT_CATEGORY_COLOR)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    notices: Mapped[list[Notice]] = relationship(back_populates="category", passive_deletes=True)


class Notice(Base, TimestampMixin):
    """Announcement shown on the public notice board once published."""

    __tablename__ = "notices"
    __table_args__ = (
        Index("ix_notices_category_id", "category_id"),
        Index("ix_notices_is_published_publish_date", "is_published", "publish_date"),
    )

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True, default=uuid4)
    category_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("notice_categories.id", ondelete="RESTRICT"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    attachment_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_urgent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    publish_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    category: Mapped[NoticeCategory] = relationship(back_populates="notices")
