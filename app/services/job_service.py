"""
User-invoked operations on synthesis jobs.

These only touch draft, waiting and terminal jobs. A pending job belongs
to the scheduler and edits to it are rejected.
"""
import logging
import os
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app import config
from app import repository
from app.models import SynthesisJob, JobStatus
from app.models.job import EDITABLE_STATUSES
from app.services.errors import InvalidJobStateError, NotFoundError
from app.services.model_service import timestamp_name
from app.storage import StorageMode, get_storage, best_effort_delete
from app.storage.paths import key_for, path_for, result_path

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('name', 'model_id', 'text', 'voice_id', 'audio_path')


def copy_audio_for_job(audio_path: str) -> str:
    """Copy a user supplied audio file into the TTS product dir; return its key."""
    source = Path(audio_path)
    if not source.is_file():
        raise NotFoundError(f'Audio file not found: {audio_path}')
    config.TTS_PRODUCT_DIR.mkdir(parents=True, exist_ok=True)
    target = config.TTS_PRODUCT_DIR / timestamp_name(source.suffix)
    shutil.copyfile(source, target)
    return key_for(target)


async def find_job(session: AsyncSession, job_id: int) -> SynthesisJob:
    job = await repository.get_job(session, job_id)
    if job is None:
        raise NotFoundError(f'Job not found: {job_id}')
    return job


async def save_job(session: AsyncSession, data: Dict) -> SynthesisJob:
    """Create a draft job. The current storage mode is captured on the record."""
    model = await repository.get_source_model(session, data['model_id'])
    if model is None:
        raise NotFoundError(f'Model not found: {data["model_id"]}')

    audio_path = data.get('audio_path')
    if audio_path:
        audio_path = copy_audio_for_job(audio_path)

    job = SynthesisJob(
        name=data.get('name') or '',
        model_id=data['model_id'],
        text=data.get('text'),
        voice_id=data.get('voice_id'),
        audio_path=audio_path,
        status=JobStatus.draft.value,
        is_remote=StorageMode.current().is_remote,
    )
    session.add(job)
    await session.commit()
    await session.refresh(job)
    logger.info('Created job %s for model %s', job.id, job.model_id)
    return job


async def update_job(session: AsyncSession, job_id: int, data: Dict) -> SynthesisJob:
    """
    Edit draft fields of a draft or waiting job.

    Everything is validated before the audio file is copied. The write only
    lands if the job is still editable at that moment; a job the scheduler
    picked up in between raises InvalidJobStateError.
    """
    job = await find_job(session, job_id)
    if job.status not in EDITABLE_STATUSES:
        raise InvalidJobStateError(f'Job {job_id} is {job.status} and can no longer be edited')

    changes = {field: data[field] for field in EDITABLE_FIELDS if field in data}
    text = changes.get('text', job.text)
    audio_path = changes.get('audio_path', job.audio_path)
    if not text and not audio_path:
        raise InvalidJobStateError('A job needs either text or an audio file')
    if 'model_id' in changes and await repository.get_source_model(session, changes['model_id']) is None:
        raise NotFoundError(f'Model not found: {changes["model_id"]}')

    copied = None
    if changes.get('audio_path'):
        copied = changes['audio_path'] = copy_audio_for_job(changes['audio_path'])

    if changes and not await repository.transition_job(session, job_id, EDITABLE_STATUSES, **changes):
        if copied:
            path_for(copied).unlink(missing_ok=True)
        raise InvalidJobStateError(f'Job {job_id} was picked up for synthesis and can no longer be edited')

    await session.refresh(job)
    return job


async def submit_for_synthesis(session: AsyncSession, job_id: int) -> SynthesisJob:
    """Enqueue a job: draft|waiting -> waiting. Resubmitting a waiting job is a no-op."""
    job = await find_job(session, job_id)
    if job.status == JobStatus.waiting.value:
        return job
    if job.status != JobStatus.draft.value:
        raise InvalidJobStateError(f'Job {job_id} is {job.status} and cannot be submitted')

    moved = await repository.transition_job(
        session, job_id, (JobStatus.draft.value,), status=JobStatus.waiting.value
    )
    if not moved:
        raise InvalidJobStateError(f'Job {job_id} changed state and cannot be submitted')
    await session.refresh(job)
    logger.info('Job %s queued for synthesis', job_id)
    return job


async def withdraw_job(session: AsyncSession, job_id: int) -> SynthesisJob:
    """Take a job out of the queue: waiting -> draft."""
    job = await find_job(session, job_id)
    if job.status == JobStatus.draft.value:
        return job
    if job.status != JobStatus.waiting.value:
        raise InvalidJobStateError(f'Job {job_id} is {job.status} and cannot be withdrawn')

    moved = await repository.transition_job(
        session, job_id, (JobStatus.waiting.value,), status=JobStatus.draft.value
    )
    if not moved:
        raise InvalidJobStateError(f'Job {job_id} was picked up for synthesis and cannot be withdrawn')
    await session.refresh(job)
    return job


async def list_jobs(
    session: AsyncSession, limit: int, offset: int, name: str = ''
) -> Tuple[List[SynthesisJob], int, Dict[int, Tuple[int, int]]]:
    """
    Page through jobs, newest first.

    Also returns {job_id: (position, queue_length)} for waiting jobs.
    """
    jobs, total = await repository.page_jobs(session, limit, offset, name)
    waiting = await repository.job_ids_by_status(session, JobStatus.waiting)
    positions = {job_id: (index + 1, len(waiting)) for index, job_id in enumerate(waiting)}
    return jobs, total, positions


async def count_jobs(session: AsyncSession, name: str = '') -> int:
    _, total = await repository.page_jobs(session, 1, 0, name)
    return total


async def queue_position(session: AsyncSession, job: SynthesisJob) -> Optional[Tuple[int, int]]:
    if job.status != JobStatus.waiting.value:
        return None
    waiting = await repository.job_ids_by_status(session, JobStatus.waiting)
    return waiting.index(job.id) + 1, len(waiting)


async def remove_job(session: AsyncSession, job_id: int):
    """
    Delete a job record and, best-effort, its audio and result files.

    A pending job's external task is not cancelled.
    """
    job = await find_job(session, job_id)

    keys = []
    if job.audio_path:
        keys.append(job.audio_path)
    if job.file_path:
        keys.append(key_for(result_path(job.file_path)))

    if job.is_remote:
        storage = get_storage(job.storage_mode)
        for key in keys:
            await best_effort_delete(storage, key)

    for key in keys:
        local = path_for(key)
        if local.exists():
            try:
                os.remove(local)
            except OSError as e:
                logger.warning('Could not delete %s: %s', local, e)

    await session.delete(job)
    await session.commit()
    logger.info('Deleted job %s', job_id)


async def export_job(session: AsyncSession, job_id: int, output_path: str) -> Path:
    """Copy a finished video to output_path."""
    job = await find_job(session, job_id)
    if job.status != JobStatus.success.value or not job.file_path:
        raise InvalidJobStateError(f'Job {job_id} has no video yet (status: {job.status})')

    target = Path(output_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    local = result_path(job.file_path)
    if local.exists():
        shutil.copyfile(local, target)
    elif job.is_remote:
        await get_storage(job.storage_mode).download(key_for(local), target)
    else:
        raise NotFoundError(f'Video file missing: {local}')
    return target
