"""Unit tests for generic CRUD rules: parent checks, dependent guards and paging."""

from __future__ import annotations

from collections import deque
from typing import Any
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from portal.errors import (
    NotFoundError,
    ReferentialConflictError,
    StoreFailureError,
    ValidationFailedError,
)
from portal.models.notice import Notice, NoticeCategory
from portal.services.notice_service import get_notice_category_service, get_notice_service
from portal.services.resource_service import ResourceService


class _FakeScalars:
    def __init__(self, values: list[Any]) -> None:
        self._values = values

    def all(self) -> list[Any]:
        return self._values


class _FakeResult:
    def __init__(self, value: Any) -> None:
        self._value = value

    def scalar_one(self) -> Any:
        return self._value

    def scalar_one_or_none(self) -> Any:
        return self._value

    def scalars(self) -> _FakeScalars:
        return _FakeScalars(list(self._value))


class _FakeSession:
    """Async session stub answering queued results in call order."""

    def __init__(self, *results: Any) -> None:
        self._results = deque(results)
        self.added: list[Any] = []
        self.deleted: list[Any] = []
        self.commit_count = 0
        self.rollback_count = 0
        self.flush_error: Exception | None = None

    async def execute(self, _statement: object) -> _FakeResult:
        return _FakeResult(self._results.popleft())

    def add(self, instance: Any) -> None:
        if instance.id is None:
            instance.id = uuid4()
        self.added.append(instance)

    async def delete(self, instance: Any) -> None:
        self.deleted.append(instance)

    async def flush(self) -> None:
        if self.flush_error is not None:
            raise self.flush_error

    async def commit(self) -> None:
        self.commit_count += 1

    async def rollback(self) -> None:
        self.rollback_count += 1


def _category(name: str = "Exams") -> NoticeCategory:
    return NoticeCategory(id=uuid4(), name=name, color="#3B82F6", is_active=True)


@pytest.mark.asyncio
async def test_delete_category_with_notices_is_rejected() -> None:
    """The Exams category cannot be removed while a notice still points at it."""
    service = get_notice_category_service()
    exams = _category()
    db_session = _FakeSession(exams, True)

    with pytest.raises(ReferentialConflictError) as exc_info:
        await service.delete(db_session, exams.id)  # type: ignore[arg-type]

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail.startswith("Cannot delete category with existing notices.")
    assert db_session.deleted == []
    assert db_session.commit_count == 0


@pytest.mark.asyncio
async def test_delete_category_after_notices_removed_succeeds() -> None:
    """Once no notice references the Exams category the delete goes through."""
    service = get_notice_category_service()
    exams = _category()
    db_session = _FakeSession(exams, False)

    await service.delete(db_session, exams.id)  # type: ignore[arg-type]

    assert db_session.deleted == [exams]
    assert db_session.commit_count == 1


@pytest.mark.asyncio
async def test_delete_maps_foreign_key_race_to_conflict() -> None:
    """A child inserted between the check and the delete still yields 400."""
    service = get_notice_category_service()
    exams = _category()
    db_session = _FakeSession(exams, False)
    db_session.flush_error = IntegrityError("DELETE", {}, Exception("fk violation"))

    with pytest.raises(ReferentialConflictError):
        await service.delete(db_session, exams.id)  # type: ignore[arg-type]
    assert db_session.rollback_count == 1


@pytest.mark.asyncio
async def test_delete_unknown_record_is_not_found() -> None:
    service = get_notice_category_service()

    with pytest.raises(NotFoundError) as exc_info:
        await service.delete(_FakeSession(None), uuid4())  # type: ignore[arg-type]

    assert exc_info.value.detail == "Notice category not found."


@pytest.mark.asyncio
async def test_create_notice_with_unknown_category_is_rejected() -> None:
    """Foreign keys are checked before insert and reported as 400."""
    service = get_notice_service()
    db_session = _FakeSession(False)

    with pytest.raises(ValidationFailedError) as exc_info:
        await service.create(
            db_session,  # type: ignore[arg-type]
            {"category_id": uuid4(), "title": "Mid-term schedule", "content": "See attached."},
        )

    assert exc_info.value.detail == "Invalid category ID."
    assert db_session.added == []


@pytest.mark.asyncio
async def test_create_duplicate_maps_integrity_error_to_validation() -> None:
    service = get_notice_category_service()
    db_session = _FakeSession()
    db_session.flush_error = IntegrityError("INSERT", {}, Exception("unique violation"))

    with pytest.raises(ValidationFailedError) as exc_info:
        await service.create(db_session, {"name": "Exams"})  # type: ignore[arg-type]

    assert exc_info.value.detail == "Notice category name already exists."
    assert db_session.rollback_count == 1


class _ForeignKeyViolation(Exception):
    """Driver error carrying the violated constraint, as asyncpg reports it."""

    def __init__(self, constraint_name: str) -> None:
        super().__init__(f'insert or update violates foreign key constraint "{constraint_name}"')
        self.constraint_name = constraint_name


_NOTICE_VALUES = {"title": "Mid-term schedule", "content": "See attached."}


@pytest.mark.asyncio
async def test_create_maps_foreign_key_race_to_parent_message() -> None:
    """A category removed between the existence check and insert is an invalid id, not a duplicate."""
    service = get_notice_service()
    db_session = _FakeSession(True)
    db_session.flush_error = IntegrityError(
        "INSERT", {}, _ForeignKeyViolation("fk_notices_category_id_notice_categories")
    )

    with pytest.raises(ValidationFailedError) as exc_info:
        await service.create(
            db_session,  # type: ignore[arg-type]
            {"category_id": uuid4(), **_NOTICE_VALUES},
        )

    assert exc_info.value.detail == "Invalid category ID."
    assert db_session.rollback_count == 1
    assert db_session.commit_count == 0


@pytest.mark.asyncio
async def test_foreign_key_name_is_read_from_driver_message() -> None:
    """Without a constraint_name attribute the quoted name in the message is used."""
    service = get_notice_service()
    db_session = _FakeSession(True)
    db_session.flush_error = IntegrityError(
        "INSERT",
        {},
        Exception(
            'insert or update on table "notices" violates foreign key constraint '
            '"fk_notices_category_id_notice_categories"'
        ),
    )

    with pytest.raises(ValidationFailedError) as exc_info:
        await service.create(
            db_session,  # type: ignore[arg-type]
            {"category_id": uuid4(), **_NOTICE_VALUES},
        )

    assert exc_info.value.detail == "Invalid category ID."


@pytest.mark.asyncio
async def test_unique_constraint_name_keeps_duplicate_message() -> None:
    service = get_notice_category_service()
    db_session = _FakeSession()
    db_session.flush_error = IntegrityError(
        "INSERT",
        {},
        Exception('duplicate key value violates unique constraint "uq_notice_categories_name"'),
    )

    with pytest.raises(ValidationFailedError) as exc_info:
        await service.create(db_session, {"name": "Exams"})  # type: ignore[arg-type]

    assert exc_info.value.detail == "Notice category name already exists."


@pytest.mark.asyncio
async def test_store_failure_on_write_is_rolled_back_and_raised_as_500() -> None:
    service = get_notice_category_service()
    db_session = _FakeSession()
    db_session.flush_error = OperationalError("INSERT", {}, Exception("connection reset"))

    with pytest.raises(StoreFailureError) as exc_info:
        await service.create(db_session, {"name": "Exams"})  # type: ignore[arg-type]

    assert exc_info.value.status_code == 500
    assert exc_info.value.detail == "Internal server error."
    assert db_session.rollback_count == 1
    assert db_session.commit_count == 0


@pytest.mark.asyncio
async def test_update_applies_partial_changes() -> None:
    service = get_notice_category_service()
    exams = _category()
    db_session = _FakeSession(exams, exams)

    updated = await service.update(
        db_session,  # type: ignore[arg-type]
        exams.id,
        {"color": "#EF4444"},
    )

    assert updated.color == "#EF4444"
    assert updated.name == "Exams"
    assert db_session.commit_count == 1


@pytest.mark.parametrize(
    ("total", "page", "page_size", "expected_has_more"),
    [
        (0, 0, 20, False),
        (20, 0, 20, False),
        (21, 0, 20, True),
        (45, 1, 20, True),
        (45, 2, 20, False),
    ],
)
@pytest.mark.asyncio
async def test_paginate_reports_has_more_and_total(
    total: int, page: int, page_size: int, expected_has_more: bool
) -> None:
    """has_more is true exactly when rows remain past this page."""
    service = ResourceService(model=Notice, label="Notice")
    items = [object()] * max(0, min(page_size, total - page * page_size))
    db_session = _FakeSession(total, items)

    result = await service.paginate(db_session, page=page, page_size=page_size)  # type: ignore[arg-type]

    assert result.total == total
    assert result.has_more is expected_has_more
    assert len(result.items) == len(items)
    assert result.page == page


@pytest.mark.asyncio
async def test_paginate_clamps_page_size() -> None:
    service = ResourceService(model=Notice, label="Notice")
    db_session = _FakeSession(500, [])

    result = await service.paginate(db_session, page=-3, page_size=10_000)  # type: ignore[arg-type]

    assert result.page == 0
    assert result.page_size == 100
    assert result.has_more is True
