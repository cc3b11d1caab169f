"""
Job endpoints for video synthesis.
"""
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models import SynthesisJob, JobStatus
from app.schemas.job import JobCreate, JobUpdate, JobExport, JobResponse, JobListResponse, CountResponse
from app.services import job_service
from app.services.errors import InvalidJobStateError, NotFoundError
from app.storage import StorageError, get_storage
from app.storage.paths import key_for, result_path


router = APIRouter(prefix='/jobs', tags=['jobs'])


def to_response(job: SynthesisJob, position: Optional[Tuple[int, int]] = None) -> JobResponse:
    response = JobResponse.model_validate(job)
    if position is not None:
        response.queue_position, response.queue_length = position
    return response


@router.get('', response_model=JobListResponse)
async def list_jobs(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    name: str = Query(default=''),
    db: AsyncSession = Depends(get_db),
) -> JobListResponse:
    """
    List jobs with pagination, newest first.

    Waiting jobs carry their position in the synthesis queue.
    """
    jobs, total, positions = await job_service.list_jobs(db, limit, offset, name)
    return JobListResponse(
        jobs=[to_response(job, positions.get(job.id)) for job in jobs],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get('/count', response_model=CountResponse)
async def count_jobs(name: str = Query(default=''), db: AsyncSession = Depends(get_db)) -> CountResponse:
    return CountResponse(total=await job_service.count_jobs(db, name))


@router.post('', response_model=JobResponse, status_code=201)
async def create_job(job_data: JobCreate, db: AsyncSession = Depends(get_db)) -> JobResponse:
    """
    Create a draft job.

    Nothing is synthesized until the job is submitted.
    """
    try:
        job = await job_service.save_job(db, job_data.model_dump())
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return to_response(job)


@router.get('/{job_id}', response_model=JobResponse)
async def get_job(job_id: int, db: AsyncSession = Depends(get_db)) -> JobResponse:
    """Get status, progress and result details for a job."""
    try:
        job = await job_service.find_job(db, job_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return to_response(job, await job_service.queue_position(db, job))


@router.put('/{job_id}', response_model=JobResponse)
async def update_job(job_id: int, job_data: JobUpdate, db: AsyncSession = Depends(get_db)) -> JobResponse:
    """
    Edit a draft or waiting job.

    Raises:
        409: The job is pending or finished
    """
    try:
        job = await job_service.update_job(db, job_id, job_data.model_dump(exclude_unset=True))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidJobStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return to_response(job)


@router.post('/{job_id}/submit', response_model=JobResponse)
async def submit_job(job_id: int, db: AsyncSession = Depends(get_db)) -> JobResponse:
    """Queue a job for synthesis. Submitting a waiting job again changes nothing."""
    try:
        job = await job_service.submit_for_synthesis(db, job_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidJobStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return to_response(job, await job_service.queue_position(db, job))


@router.post('/{job_id}/withdraw', response_model=JobResponse)
async def withdraw_job(job_id: int, db: AsyncSession = Depends(get_db)) -> JobResponse:
    """Move a waiting job back to draft."""
    try:
        job = await job_service.withdraw_job(db, job_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidJobStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return to_response(job)


@router.post('/{job_id}/export', status_code=204)
async def export_job(job_id: int, request: JobExport, db: AsyncSession = Depends(get_db)):
    """Copy the finished video to a local path."""
    try:
        await job_service.export_job(db, job_id, request.output_path)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidJobStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get('/{job_id}/video')
async def get_job_video(job_id: int, db: AsyncSession = Depends(get_db)):
    """
    Stream the video of a finished job.

    Raises:
        404: Job not found, not finished, or no local copy

    A remote job whose local copy was dropped redirects to the stored object.
    """
    try:
        job = await job_service.find_job(db, job_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if job.status != JobStatus.success.value:
        raise HTTPException(status_code=404, detail=f'Video not ready. Job status: {job.status}')

    path = result_path(job.file_path)
    if not path.exists() and job.is_remote:
        return RedirectResponse(get_storage(job.storage_mode).url_for(key_for(path)))
    if not path.exists():
        raise HTTPException(status_code=404, detail='Video file not found')

    return FileResponse(path=str(path), media_type='video/mp4', filename=path.name)


@router.delete('/{job_id}', status_code=204)
async def delete_job(job_id: int, db: AsyncSession = Depends(get_db)):
    """
    Delete a job and its files.

    A pending job is removed locally only; the inference service is not told.
    """
    try:
        await job_service.remove_job(db, job_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
