"""Generic CRUD service with parent validation and dependent-record guards."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar
from uuid import UUID

import structlog
from sqlalchemy import ColumnElement, exists, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute
from sqlalchemy.sql.base import ExecutableOption

from portal.db.base import Base
from portal.errors import (
    NotFoundError,
    ReferentialConflictError,
    StoreFailureError,
    ValidationFailedError,
)

ModelT = TypeVar("ModelT", bound=Base)
ItemT = TypeVar("ItemT")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
_CONSTRAINT_NAME = re.compile(r'constraint "(?P<name>[^"]+)"')

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ParentReference:
    """Foreign key field that must point at an existing parent row on write."""

    field_name: str
    model: type[Base]
    message: str


@dataclass(frozen=True)
class DependentGuard:
    """Child rows whose presence blocks deletion of the parent."""

    column: InstrumentedAttribute[Any]
    message: str


@dataclass(frozen=True)
class Page(Generic[ItemT]):
    """One offset page of results plus the data needed to fetch the next."""

    items: list[ItemT]
    has_more: bool
    total: int
    page: int
    page_size: int


@dataclass
class ResourceService(Generic[ModelT]):
    """CRUD operations for one mapped table."""

    model: type[ModelT]
    label: str
    parents: Sequence[ParentReference] = ()
    dependents: Sequence[DependentGuard] = ()
    load_options: Sequence[ExecutableOption] = ()
    ordering: Sequence[ColumnElement[Any]] = ()
    duplicate_message: str | None = None

    @property
    def not_found_message(self) -> str:
        """Message used when a lookup by id misses."""
        return f"{self.label} not found."

    async def list_all(
        self,
        db_session: AsyncSession,
        filters: Sequence[ColumnElement[bool]] = (),
    ) -> list[ModelT]:
        """Return every row matching the filters in the configured order."""
        statement = select(self.model).options(*self.load_options).where(*filters)
        statement = statement.order_by(*self.ordering)
        result = await db_session.execute(statement)
        return list(result.scalars().all())

    async def get(self, db_session: AsyncSession, record_id: UUID) -> ModelT:
        """Return one row with its relationships loaded, or raise NotFoundError."""
        statement = (
            select(self.model)
            .options(*self.load_options)
            .where(self.model.id == record_id)
            .execution_options(populate_existing=True)
        )
        result = await db_session.execute(statement)
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(self.not_found_message)
        return row

    async def create(self, db_session: AsyncSession, values: Mapping[str, Any]) -> ModelT:
        """Insert a row after checking its parent references."""
        await self._ensure_parents_exist(db_session, values)
        row = self.model(**values)
        db_session.add(row)
        await self._commit(db_session)
        return await self.get(db_session, row.id)

    async def update(
        self,
        db_session: AsyncSession,
        record_id: UUID,
        values: Mapping[str, Any],
    ) -> ModelT:
        """Apply a partial update; unknown ids raise NotFoundError."""
        row = await self._get_bare(db_session, record_id)
        await self._ensure_parents_exist(db_session, values)
        for key, value in values.items():
            setattr(row, key, value)
        await self._commit(db_session)
        return await self.get(db_session, record_id)

    async def delete(self, db_session: AsyncSession, record_id: UUID) -> None:
        """Delete a row unless dependent rows still reference it."""
        row = await self._get_bare(db_session, record_id)
        for guard in self.dependents:
            statement = select(exists().where(guard.column == record_id))
            result = await db_session.execute(statement)
            if result.scalar_one():
                raise ReferentialConflictError(guard.message)

        await db_session.delete(row)
        try:
            await db_session.flush()
        except IntegrityError as exc:
            await db_session.rollback()
            message = self.dependents[0].message if self.dependents else "Record is in use."
            raise ReferentialConflictError(message) from exc
        await db_session.commit()

    async def paginate(
        self,
        db_session: AsyncSession,
        page: int = 0,
        page_size: int = DEFAULT_PAGE_SIZE,
        filters: Sequence[ColumnElement[bool]] = (),
        ordering: Sequence[ColumnElement[Any]] | None = None,
    ) -> Page[ModelT]:
        """Return one zero-based offset page together with the filtered total."""
        page = max(page, 0)
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)
        offset = page * page_size

        count_statement = select(func.count()).select_from(self.model).where(*filters)
        total = int((await db_session.execute(count_statement)).scalar_one())

        statement = (
            select(self.model)
            .options(*self.load_options)
            .where(*filters)
            .order_by(*(self.ordering if ordering is None else ordering))
            .offset(offset)
            .limit(page_size)
        )
        result = await db_session.execute(statement)
        items = list(result.scalars().all())
        return Page(
            items=items,
            has_more=offset + page_size < total,
            total=total,
            page=page,
            page_size=page_size,
        )

    async def count(self, db_session: AsyncSession) -> int:
        """Return the number of rows in the table."""
        result = await db_session.execute(select(func.count()).select_from(self.model))
        return int(result.scalar_one())

    async def _get_bare(self, db_session: AsyncSession, record_id: UUID) -> ModelT:
        """Fetch a row for mutation without eager relationships."""
        result = await db_session.execute(select(self.model).where(self.model.id == record_id))
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(self.not_found_message)
        return row

    async def _ensure_parents_exist(
        self,
        db_session: AsyncSession,
        values: Mapping[str, Any],
    ) -> None:
        """Reject writes that point a foreign key at a missing parent."""
        for parent in self.parents:
            parent_id = values.get(parent.field_name)
            if parent_id is None:
                continue
            statement = select(exists().where(parent.model.id == parent_id))
            result = await db_session.execute(statement)
            if not result.scalar_one():
                raise ValidationFailedError(parent.message)

    async def _commit(self, db_session: AsyncSession) -> None:
        """Flush and commit, mapping store constraint failures onto a 400."""
        try:
            await db_session.flush()
            await db_session.commit()
        except IntegrityError as exc:
            await db_session.rollback()
            constraint = _violated_constraint(exc)
            logger.info(
                "resource_write_conflict",
                resource=self.label,
                constraint=constraint,
                error=str(exc.orig),
            )
            raise ValidationFailedError(self._integrity_message(constraint)) from exc
        except SQLAlchemyError as exc:
            await db_session.rollback()
            logger.error("store_failure", resource=self.label, error_type=type(exc).__name__)
            raise StoreFailureError() from exc

    def _integrity_message(self, constraint: str | None) -> str:
        """Pick the client message for a violated constraint."""
        if constraint is not None and constraint.startswith("fk_"):
            for parent in self.parents:
                if constraint.startswith(f"fk_{self.model.__tablename__}_{parent.field_name}_"):
                    return parent.message
            return self.parents[0].message if self.parents else "Referenced record does not exist."
        return self.duplicate_message or f"{self.label} already exists."


def _violated_constraint(exc: IntegrityError) -> str | None:
    """Return the constraint name reported by the driver, if any."""
    for error in (exc.orig, getattr(exc.orig, "__cause__", None)):
        name = getattr(error, "constraint_name", None)
        if name:
            return str(name)
    match = _CONSTRAINT_NAME.search(str(exc.orig))
    return match.group("name") if match else None
