"""Batch, section and study material ORM models."""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portal.db.base import Base, TimestampMixin


class Batch(Base, TimestampMixin):
    """Admission cohort, e.g. "2021-2025"."""

    __tablename__ = "batches"

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    end_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    sections: Mapped[list[Section]] = relationship(
        back_populates="batch", order_by="Section.name", passive_deletes=True
    )


class Section(Base, TimestampMixin):
    """Class section within a batch."""

    __tablename__ = "sections"
    __table_args__ = (
        UniqueConstraint("batch_id", "name", name="uq_sections_batch_id_name"),
        Index("ix_sections_batch_id", "batch_id"),
    )

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True, default=uuid4)
    batch_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("batches.id", ondelete="RESTRICT"), nullable=False
    )
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    batch: Mapped[Batch] = relationship(back_populates="sections")
    notes: Mapped[list[Note]] = relationship(back_populates="section", passive_deletes=True)
    papers: Mapped[list[Paper]] = relationship(back_populates="section", passive_deletes=True)


class Note(Base, TimestampMixin):
    """Shared drive link to lecture notes for a section."""

    __tablename__ = "notes"
    __table_args__ = (UniqueConstraint("section_id", name="uq_notes_section_id"),)

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True, default=uuid4)
    section_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("sections.id", ondelete="RESTRICT"), nullable=False
    )
    drive_link: Mapped[str] = mapped_column(String(2048), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    section: Mapped[Section] = relationship(back_populates="notes")


class Paper(Base, TimestampMixin):
    """Shared drive link to past exam papers for a section."""

    __tablename__ = "papers"
    __table_args__ = (UniqueConstraint("section_id", name="uq_papers_section_id"),)

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True, default=uuid4)
    section_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("sections.id", ondelete="RESTRICT"), nullable=False
    )
    drive_link: Mapped[str] = mapped_column(String(2048), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    section: Mapped[Section] = relationship(back_populates="papers")
