from fastapi import APIRouter, Depends

from accreditation.api.deps import get_dashboard_service
from accreditation.core.authorization import Actor
from accreditation.core.security import get_actor
from accreditation.schemas.assessment import DashboardStatistics
from accreditation.services.dashboard_service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/statistics", response_model=DashboardStatistics)
async def get_statistics(
    service: DashboardService = Depends(get_dashboard_service),
    actor: Actor = Depends(get_actor),
) -> DashboardStatistics:
    """Assessment counts by status, limited to what the caller can see."""
    stats = await service.statistics(actor)
    return DashboardStatistics(**stats)
