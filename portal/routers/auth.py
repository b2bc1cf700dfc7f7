"""Authentication routes: login, logout, session check, registration, password change."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Request, Response

from portal.config import SessionSettings, get_settings
from portal.core.sessions import SessionService, get_session_service
from portal.dependencies import AdminUser, DatabaseSession, ViewerUser
from portal.errors import InvalidCredentialsError
from portal.schemas.envelope import EmptyData, Envelope
from portal.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    UserCreateRequest,
    UserOut,
)
from portal.services.audit_service import AuditService, get_audit_service
from portal.services.user_service import UserService, get_user_service

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = structlog.get_logger(__name__)


def get_session_settings() -> SessionSettings:
    """Provide cookie settings; overridable in tests."""
    return get_settings().session


SessionCookieSettings = Annotated[SessionSettings, Depends(get_session_settings)]
Users = Annotated[UserService, Depends(get_user_service)]
Sessions = Annotated[SessionService, Depends(get_session_service)]
Audit = Annotated[AuditService, Depends(get_audit_service)]


def _set_session_cookie(response: Response, token: str, settings: SessionSettings) -> None:
    """Write the session cookie with the hardened attribute set."""
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=settings.ttl_seconds,
        path="/",
        domain=settings.cookie_domain,
        secure=settings.cookie_secure,
        httponly=True,
        samesite=settings.cookie_samesite,
    )


def _clear_session_cookies(response: Response, settings: SessionSettings) -> None:
    """Expire the current and any legacy session cookie on the client."""
    for name in settings.cookie_names:
        response.delete_cookie(
            key=name,
            path="/",
            domain=settings.cookie_domain,
            secure=settings.cookie_secure,
            httponly=True,
            samesite=settings.cookie_samesite,
        )


@router.post("/login", response_model=Envelope[LoginResponse])
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db_session: DatabaseSession,
    user_service: Users,
    session_service: Sessions,
    audit_service: Audit,
    cookie_settings: SessionCookieSettings,
) -> Envelope[LoginResponse]:
    """Verify credentials, open a session and hand the token back as a cookie."""
    user = await user_service.authenticate_user(
        db_session=db_session,
        email=payload.email,
        password=payload.password,
    )
    if user is None:
        await audit_service.record(
            request,
            "auth.login",
            succeeded=False,
            attempted_email=payload.email.strip().lower(),
            reason="invalid_credentials",
        )
        raise InvalidCredentialsError()

    user_service.record_login(user)
    issued = await session_service.create_session(db_session=db_session, user_id=user.id)
    _set_session_cookie(response, issued.token, cookie_settings)

    await audit_service.record(
        request, "auth.login", actor=user, details={"session_id": str(issued.session_id)}
    )
    logger.info("login_succeeded", user_id=str(user.id), role=user.role)
    return Envelope(
        data=LoginResponse(user=UserOut.model_validate(user), expires_at=issued.expires_at)
    )


@router.post("/logout", response_model=Envelope[EmptyData])
async def logout(
    request: Request,
    response: Response,
    db_session: DatabaseSession,
    session_service: Sessions,
    audit_service: Audit,
    cookie_settings: SessionCookieSettings,
) -> Envelope[EmptyData]:
    """End the current session if there is one; always clears the cookie."""
    token = getattr(request.state, "session_token", None)
    identity = getattr(request.state, "user", None)
    revoked = False
    if token is not None:
        revoked = await session_service.revoke_session(db_session=db_session, raw_token=token)

    _clear_session_cookies(response, cookie_settings)
    if revoked and identity is not None:
        await audit_service.record(
            request, "auth.logout", actor=identity, details={"session_id": str(identity.session_id)}
        )
    return Envelope(data=EmptyData())


@router.get("/check", response_model=Envelope[UserOut])
async def check(identity: ViewerUser) -> Envelope[UserOut]:
    """Return the caller's identity when the session is valid."""
    return Envelope(data=UserOut.model_validate(identity))


@router.post("/register", status_code=201, response_model=Envelope[UserOut])
async def register(
    payload: UserCreateRequest,
    request: Request,
    db_session: DatabaseSession,
    user_service: Users,
    audit_service: Audit,
    admin: AdminUser,
) -> Envelope[UserOut]:
    """Create a new portal account; admins only."""
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


@router.post("/change-password", response_model=Envelope[EmptyData])
async def change_password(
    payload: ChangePasswordRequest,
    request: Request,
    db_session: DatabaseSession,
    user_service: Users,
    audit_service: Audit,
    identity: ViewerUser,
) -> Envelope[EmptyData]:
    """Re-verify the current password, store the new one, end other sessions."""
    await user_service.change_password(
        db_session=db_session,
        user_id=identity.id,
        current_password=payload.current_password,
        new_password=payload.new_password,
        keep_session_id=identity.session_id,
    )
    await audit_service.record(
        request, "auth.change_password", actor=identity, subject_user_id=identity.id
    )
    return Envelope(data=EmptyData())
