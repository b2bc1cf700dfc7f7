"""Dashboard statistics schema."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ActivityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: str
    id: str
    description: str | None
    section_name: str | None
    batch_name: str | None
    created_at: datetime


class DashboardStatsOut(BaseModel):
    """Totals are always present; user_stats only for admins."""

    model_config = ConfigDict(from_attributes=True)

    totals: dict[str, int]
    recent_activity: list[ActivityOut]
    user_stats: dict[str, int] | None = None
