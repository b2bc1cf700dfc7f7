"""Management dashboard aggregates."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from portal.core.roles import Role
from portal.models.academics import Batch, Note, Paper, Section
from portal.models.gallery import GalleryImage
from portal.models.notice import Notice
from portal.models.user import User

RECENT_ACTIVITY_LIMIT = 5
RECENT_LOGIN_WINDOW = timedelta(days=30)

_COUNTED_MODELS: dict[str, Any] = {
    "batches": Batch,
    "sections": Section,
    "notes": Note,
    "papers": Paper,
    "notices": Notice,
    "gallery_images": GalleryImage,
    "users": User,
}


@dataclass(frozen=True)
class ActivityEntry:
    """One recently added study material link."""

    kind: str
    id: str
    description: str | None
    section_name: str | None
    batch_name: str | None
    created_at: datetime


@dataclass(frozen=True)
class DashboardStats:
    totals: dict[str, int]
    recent_activity: list[ActivityEntry]
    user_stats: dict[str, int] | None = None


class DashboardService:
    """Compute management dashboard statistics."""

    async def collect(self, db_session: AsyncSession, viewer_role: str) -> DashboardStats:
        """Collect table totals, recent material and, for admins, account breakdowns."""
        totals: dict[str, int] = {}
        for key, model in _COUNTED_MODELS.items():
            result = await db_session.execute(select(func.count()).select_from(model))
            totals[key] = int(result.scalar_one())

        user_stats = None
        if Role.parse(viewer_role) is Role.ADMIN:
            user_stats = await self._user_stats(db_session)

        return DashboardStats(
            totals=totals,
            recent_activity=await self._recent_activity(db_session),
            user_stats=user_stats,
        )

    async def _user_stats(self, db_session: AsyncSession) -> dict[str, int]:
        """Account counts per role and activity status."""
        statement = select(User.role, User.is_active, func.count()).group_by(
            User.role, User.is_active
        )
        result = await db_session.execute(statement)
        stats = {"total": 0, "active": 0, **{role.value: 0 for role in Role}}
        for role, is_active, count in result.all():
            stats["total"] += count
            stats[role] = stats.get(role, 0) + count
            if is_active:
                stats["active"] += count

        cutoff = datetime.now(UTC) - RECENT_LOGIN_WINDOW
        recent = await db_session.execute(
            select(func.count()).select_from(User).where(User.last_login_at >= cutoff)
        )
        stats["recently_active"] = int(recent.scalar_one())
        return stats

    async def _recent_activity(self, db_session: AsyncSession) -> list[ActivityEntry]:
        """Newest notes and papers merged into one list."""
        entries: list[ActivityEntry] = []
        for kind, model in (("note", Note), ("paper", Paper)):
            statement = (
                select(model)
                .options(selectinload(model.section).selectinload(Section.batch))
                .order_by(model.created_at.desc())
                .limit(RECENT_ACTIVITY_LIMIT)
            )
            result = await db_session.execute(statement)
            for row in result.scalars().all():
                section = row.section
                entries.append(
                    ActivityEntry(
                        kind=kind,
                        id=str(row.id),
                        description=row.description,
                        section_name=section.name if section is not None else None,
                        batch_name=section.batch.name if section is not None else None,
                        created_at=row.created_at,
                    )
                )
        entries.sort(key=lambda entry: entry.created_at, reverse=True)
        return entries[:RECENT_ACTIVITY_LIMIT]


@lru_cache
def get_dashboard_service() -> DashboardService:
    """Create and cache dashboard service dependency."""
    return DashboardService()
