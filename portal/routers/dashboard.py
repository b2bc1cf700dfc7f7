"""Management dashboard route."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from portal.dependencies import DatabaseSession, ViewerUser
from portal.schemas.dashboard import DashboardStatsOut
from portal.schemas.envelope import Envelope
from portal.services.dashboard_service import DashboardService, get_dashboard_service

router = APIRouter(prefix="/api/admin/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=Envelope[DashboardStatsOut])
async def dashboard_stats(
    db_session: DatabaseSession,
    dashboard_service: Annotated[DashboardService, Depends(get_dashboard_service)],
    identity: ViewerUser,
) -> Envelope[DashboardStatsOut]:
    """Totals for everyone signed in; account breakdown for admins only."""
    stats = await dashboard_service.collect(db_session, viewer_role=identity.role)
    return Envelope(data=DashboardStatsOut.model_validate(stats))
