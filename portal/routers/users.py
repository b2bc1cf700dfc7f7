"""Admin-only account management routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request

from portal.dependencies import AdminUser, DatabaseSession
from portal.schemas.envelope import EmptyData, Envelope
from portal.schemas.user import UserCreateRequest, UserOut, UserUpdateRequest
from portal.services.audit_service import AuditService, get_audit_service
from portal.services.user_service import UserService, get_user_service

router = APIRouter(prefix="/api/admin/users", tags=["users"])

Users = Annotated[UserService, Depends(get_user_service)]
Audit = Annotated[AuditService, Depends(get_audit_service)]


@router.get("", response_model=Envelope[list[UserOut]])
async def list_users(
    db_session: DatabaseSession,
    user_service: Users,
    _: AdminUser,
) -> Envelope[list[UserOut]]:
    users = await user_service.list_users(db_session)
    return Envelope(data=[UserOut.model_validate(user) for user in users])


@router.get("/{user_id}", response_model=Envelope[UserOut])
async def get_user(
    user_id: UUID,
    db_session: DatabaseSession,
    user_service: Users,
    _: AdminUser,
) -> Envelope[UserOut]:
    user = await user_service.get_user(db_session, user_id)
    return Envelope(data=UserOut.model_validate(user))


@router.post("", status_code=201, response_model=Envelope[UserOut])
async def create_user(
    payload: UserCreateRequest,
    request: Request,
    db_session: DatabaseSession,
    user_service: Users,
    audit_service: Audit,
    admin: AdminUser,
) -> Envelope[UserOut]:
    """Create an account with an explicit role."""
    user = await user_service.create_user(
        db_session=db_session,
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
        role=payload.role,
        is_active=payload.is_active,
    )
    await audit_service.record(
        request, "user.create", actor=admin, subject_user_id=user.id, details={"role": user.role}
    )
    return Envelope(data=UserOut.model_validate(user))


@router.put("/{user_id}", response_model=Envelope[UserOut])
async def update_user(
    user_id: UUID,
    payload: UserUpdateRequest,
    request: Request,
    db_session: DatabaseSession,
    user_service: Users,
    audit_service: Audit,
    admin: AdminUser,
) -> Envelope[UserOut]:
    """Edit profile, role, activity flag or password of an account."""
    changes = payload.changes()
    user = await user_service.update_user(db_session, user_id, changes)
    await audit_service.record(
        request,
        "user.update",
        actor=admin,
        subject_user_id=user.id,
        details={"fields": ",".join(sorted(changes))},
    )
    return Envelope(data=UserOut.model_validate(user))


@router.delete("/{user_id}", response_model=Envelope[EmptyData])
async def delete_user(
    user_id: UUID,
    request: Request,
    db_session: DatabaseSession,
    user_service: Users,
    audit_service: Audit,
    admin: AdminUser,
) -> Envelope[EmptyData]:
    """Delete an account and its sessions; the last active admin is protected."""
    await user_service.delete_user(db_session, user_id)
    await audit_service.record(request, "user.delete", actor=admin, subject_user_id=user_id)
    return Envelope(data=EmptyData())
