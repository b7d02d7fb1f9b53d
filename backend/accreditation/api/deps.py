from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from accreditation.config import settings
from accreditation.db.redis_client import get_redis
from accreditation.db.session import get_db
from accreditation.pipeline.producer import EventPublisher, get_event_publisher
from accreditation.rubric.service import RubricService
from accreditation.services.assessment_service import AssessmentService
from accreditation.services.dashboard_service import DashboardService
from accreditation.services.stats_cache import StatisticsCache
from accreditation.storage.files import FileStorage, LocalFileStorage


async def get_stats_cache() -> StatisticsCache | None:
    return StatisticsCache(await get_redis())


def get_storage() -> FileStorage:
    return LocalFileStorage(settings.storage_root)


async def get_rubric_service(
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher | None = Depends(get_event_publisher),
) -> RubricService:
    return RubricService(db, publisher=publisher)


async def get_assessment_service(
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    cache: StatisticsCache | None = Depends(get_stats_cache),
    publisher: EventPublisher | None = Depends(get_event_publisher),
) -> AssessmentService:
    return AssessmentService(db, storage=storage, cache=cache, publisher=publisher)


async def get_dashboard_service(
    db: AsyncSession = Depends(get_db),
    cache: StatisticsCache | None = Depends(get_stats_cache),
) -> DashboardService:
    return DashboardService(db, cache=cache)
