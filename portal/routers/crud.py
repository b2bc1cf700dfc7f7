"""Router factory for role-gated CRUD over one resource service."""

# Annotations stay evaluated at definition time here: FastAPI must see the
# concrete schema classes captured by each closure.

from collections.abc import Callable
from typing import Annotated, Any
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from portal.dependencies import DatabaseSession, EditorUser, ViewerUser
from portal.schemas.common import PartialUpdate
from portal.schemas.envelope import EmptyData, Envelope
from portal.services.resource_service import ResourceService

logger = structlog.get_logger(__name__)


def build_crud_router(
    *,
    prefix: str,
    tag: str,
    service_provider: Callable[[], ResourceService[Any]],
    out_schema: type[BaseModel],
    create_schema: type[BaseModel],
    update_schema: type[PartialUpdate],
) -> APIRouter:
    """Reads need any authenticated role; writes need editor or above."""
    router = APIRouter(prefix=prefix, tags=[tag])
    Service = Annotated[ResourceService[Any], Depends(service_provider)]

    @router.get("", response_model=Envelope[list[out_schema]], name=f"list_{tag}")
    async def list_records(db_session: DatabaseSession, service: Service, _: ViewerUser):
        rows = await service.list_all(db_session)
        return Envelope(data=[out_schema.model_validate(row) for row in rows])

    @router.get("/{record_id}", response_model=Envelope[out_schema], name=f"get_{tag}")
    async def get_record(
        record_id: UUID,
        db_session: DatabaseSession,
        service: Service,
        _: ViewerUser,
    ):
        row = await service.get(db_session, record_id)
        return Envelope(data=out_schema.model_validate(row))

    @router.post(
        "", status_code=201, response_model=Envelope[out_schema], name=f"create_{tag}"
    )
    async def create_record(
        payload: create_schema,
        db_session: DatabaseSession,
        service: Service,
        editor: EditorUser,
    ):
        row = await service.create(db_session, payload.model_dump(exclude_none=True))
        logger.info("resource_created", resource=tag, record_id=str(row.id), user_id=str(editor.id))
        return Envelope(data=out_schema.model_validate(row))

    @router.put("/{record_id}", response_model=Envelope[out_schema], name=f"update_{tag}")
    async def update_record(
        record_id: UUID,
        payload: update_schema,
        db_session: DatabaseSession,
        service: Service,
        editor: EditorUser,
    ):
        row = await service.update(db_session, record_id, payload.changes())
        logger.info("resource_updated", resource=tag, record_id=str(record_id), user_id=str(editor.id))
        return Envelope(data=out_schema.model_validate(row))

    @router.delete("/{record_id}", response_model=Envelope[EmptyData], name=f"delete_{tag}")
    async def delete_record(
        record_id: UUID,
        db_session: DatabaseSession,
        service: Service,
        editor: EditorUser,
    ):
        await service.delete(db_session, record_id)
        logger.info("resource_deleted", resource=tag, record_id=str(record_id), user_id=str(editor.id))
        return Envelope(data=EmptyData())

    return router
