from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from accreditation.core.authorization import GLOBAL_ROLES, Actor
from accreditation.models.assessment import Assessment
from accreditation.schemas.common import AssessmentStatus, Role
from accreditation.scoring.engine import grade_for
from accreditation.services.assessment_service import visible_to
from accreditation.services.stats_cache import StatisticsCache, global_key, reviewer_key, tenant_key, user_key

logger = structlog.get_logger()


def cache_key_for(actor: Actor) -> str:
    if actor.role in GLOBAL_ROLES:
        return global_key()
    if actor.role is Role.ADMIN_KAMPUS:
        return tenant_key(actor.tenant_id or "none")
    if actor.role is Role.REVIEWER:
        return reviewer_key(actor.user_id)
    return user_key(actor.user_id)


class DashboardService:
    """Assessment counts per status within the actor's scope, cached per scope."""

    def __init__(self, db: AsyncSession, cache: StatisticsCache | None = None) -> None:
        self.db = db
        self.cache = cache

    async def statistics(self, actor: Actor) -> dict[str, Any]:
        key = cache_key_for(actor)
        if self.cache is not None:
            cached = await self.cache.get(key)
            if cached is not None:
                logger.debug("dashboard_stats_cache_hit", key=key)
                return cached

        result = await self.db.execute(
            visible_to(
                actor,
                select(Assessment.status, func.count(Assessment.id)).group_by(Assessment.status),
            )
        )
        by_status = {status.value: 0 for status in AssessmentStatus}
        for status, count in result.all():
            by_status[status] = count

        result = await self.db.execute(
            visible_to(
                actor,
                select(func.avg(Assessment.percentage)).where(
                    Assessment.status != AssessmentStatus.DRAFT.value
                ),
            )
        )
        average = result.scalar_one_or_none()
        average_percentage = round(float(average), 2) if average is not None else 0.0

        stats: dict[str, Any] = {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "average_percentage": average_percentage,
            "average_grade": grade_for(average_percentage) if average is not None else None,
        }
        if self.cache is not None:
            await self.cache.set(key, stats)
        return stats
