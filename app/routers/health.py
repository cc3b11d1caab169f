"""
Health check endpoint.
"""
from pydantic import BaseModel
from fastapi import APIRouter, Depends

from app.config import APP_VERSION, REMOTE_STORAGE_ENABLED, REMOTE_STORAGE_TYPE
from app.services.job_scheduler import JobScheduler, get_job_scheduler


router = APIRouter(tags=['health'])


class HealthResponse(BaseModel):
    """Health check response schema."""
    status: str
    scheduler_running: bool
    remote_storage: bool
    storage_type: str
    version: str


@router.get('/health', response_model=HealthResponse)
async def health_check(scheduler: JobScheduler = Depends(get_job_scheduler)) -> HealthResponse:
    """
    Check server health status.

    Fast response - no database queries.
    """
    return HealthResponse(
        status='ok',
        scheduler_running=scheduler.is_running,
        remote_storage=REMOTE_STORAGE_ENABLED,
        storage_type=REMOTE_STORAGE_TYPE if REMOTE_STORAGE_ENABLED else 'local',
        version=APP_VERSION,
    )
