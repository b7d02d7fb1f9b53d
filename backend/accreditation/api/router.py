from fastapi import APIRouter

from accreditation.api.v1 import assessments, dashboard, health, templates

api_router = APIRouter()

# Health (no prefix)
api_router.include_router(health.router)

# V1 endpoints
api_router.include_router(templates.router)
api_router.include_router(assessments.router)
api_router.include_router(dashboard.router)
