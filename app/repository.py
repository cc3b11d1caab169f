"""
Data access for voice profiles, source models and synthesis jobs.

Plain key lookups and status queries. No polling, no retries.
"""
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import VoiceProfile, SourceModel, SynthesisJob, JobStatus


async def get_voice(session: AsyncSession, voice_id: int) -> Optional[VoiceProfile]:
    return await session.get(VoiceProfile, voice_id)


async def list_voices(session: AsyncSession) -> List[VoiceProfile]:
    result = await session.execute(select(VoiceProfile).order_by(VoiceProfile.id))
    return list(result.scalars().all())


async def get_source_model(session: AsyncSession, model_id: int) -> Optional[SourceModel]:
    return await session.get(SourceModel, model_id)


async def page_source_models(
    session: AsyncSession, limit: int, offset: int, name: str = ''
) -> Tuple[List[SourceModel], int]:
    query = select(SourceModel)
    count_query = select(func.count(SourceModel.id))
    if name:
        query = query.where(SourceModel.name.contains(name))
        count_query = count_query.where(SourceModel.name.contains(name))

    total = (await session.execute(count_query)).scalar()
    result = await session.execute(
        query.order_by(SourceModel.created_at.desc(), SourceModel.id.desc()).limit(limit).offset(offset)
    )
    return list(result.scalars().all()), total


async def get_job(session: AsyncSession, job_id: int) -> Optional[SynthesisJob]:
    return await session.get(SynthesisJob, job_id)


async def first_job_by_status(session: AsyncSession, status: JobStatus) -> Optional[SynthesisJob]:
    """Oldest job in the given status (insertion order)."""
    result = await session.execute(
        select(SynthesisJob)
        .where(SynthesisJob.status == status.value)
        .order_by(SynthesisJob.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def job_ids_by_status(session: AsyncSession, status: JobStatus) -> List[int]:
    result = await session.execute(
        select(SynthesisJob.id)
        .where(SynthesisJob.status == status.value)
        .order_by(SynthesisJob.id)
    )
    return [row[0] for row in result.fetchall()]


async def page_jobs(
    session: AsyncSession, limit: int, offset: int, name: str = ''
) -> Tuple[List[SynthesisJob], int]:
    query = select(SynthesisJob)
    count_query = select(func.count(SynthesisJob.id))
    if name:
        query = query.where(SynthesisJob.name.contains(name))
        count_query = count_query.where(SynthesisJob.name.contains(name))

    total = (await session.execute(count_query)).scalar()
    result = await session.execute(
        query.order_by(SynthesisJob.created_at.desc(), SynthesisJob.id.desc()).limit(limit).offset(offset)
    )
    return list(result.scalars().all()), total


async def update_job(session: AsyncSession, job_id: int, **fields) -> Optional[SynthesisJob]:
    """Set fields on a job and commit. Returns None if the job is gone."""
    job = await session.get(SynthesisJob, job_id)
    if job is None:
        return None
    for name, value in fields.items():
        setattr(job, name, value)
    await session.commit()
    return job


async def transition_job(
    session: AsyncSession, job_id: int, from_statuses: Iterable[str], **fields
) -> bool:
    """
    Set fields on a job only while it is in one of from_statuses.

    The status check and the write are one UPDATE statement, so a concurrent
    change of status makes this a no-op instead of being overwritten.
    Commits. Returns True if the row was changed.
    """
    result = await session.execute(
        update(SynthesisJob)
        .where(SynthesisJob.id == job_id, SynthesisJob.status.in_(list(from_statuses)))
        .values(**fields)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return result.rowcount > 0
