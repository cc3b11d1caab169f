"""
Background scheduler that drives synthesis jobs through the inference service.
"""
import asyncio
import logging
import os
import time
import uuid
from typing import Callable, Optional

from app import config
from app import repository
from app.clients.face2face import (
    Face2FaceClient,
    StatusResponse,
    TaskStatus,
    get_face2face_client,
    CODE_OK,
    TASK_IN_PROGRESS,
    TASK_SUCCEEDED,
    TASK_FAILED,
)
from app.database import async_session_factory
from app.models import SynthesisJob, JobStatus
from app.services import media
from app.services.voice_service import VoiceService, get_voice_service
from app.storage import StorageBackend, StorageMode, get_storage
from app.storage.paths import key_for, path_for, result_path, service_address

logger = logging.getLogger(__name__)

SUBMITTING_MESSAGE = 'submitting'

# Fixed rendering flags sent with every submission
RENDER_FLAGS = {
    'chaofen': 0,
    'watermark_switch': 0,
    'pn': 1,
}


class JobScheduler:
    """
    Single cooperative loop over the job table.

    Every tick either polls the one pending job or, when none is pending,
    submits the oldest waiting job. One submission and one status query are
    in flight at most, so jobs run strictly one after another.

    Nothing times out a pending job: it stays pending until the service
    reports a terminal state or the record is deleted.
    """

    def __init__(
        self,
        session_factory=None,
        face2face: Optional[Face2FaceClient] = None,
        voice_service: Optional[VoiceService] = None,
        storage_factory: Callable[[StorageMode], StorageBackend] = get_storage,
        interval: Optional[float] = None,
    ):
        self._session_factory = session_factory or async_session_factory
        self._face2face = face2face
        self._voice_service = voice_service
        self._storage_factory = storage_factory
        self.interval = config.POLL_INTERVAL_SECONDS if interval is None else interval
        self._stop_event = asyncio.Event()
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def face2face(self) -> Face2FaceClient:
        if self._face2face is None:
            self._face2face = get_face2face_client()
        return self._face2face

    @property
    def voice_service(self) -> VoiceService:
        if self._voice_service is None:
            self._voice_service = get_voice_service()
        return self._voice_service

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        """Start the scheduling loop."""
        if self._running:
            return
        self._stop_event.clear()
        self._running = True
        self._task = asyncio.create_task(self._run())

    async def stop(self):
        """Signal the loop to stop and wait for the current tick to finish."""
        self._running = False
        self._stop_event.set()
        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=5.0)
            except asyncio.TimeoutError:
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
            self._task = None

    async def _run(self):
        """Tick, then wait one interval. Always reschedules, whatever the tick did."""
        while not self._stop_event.is_set():
            try:
                await self.tick()
            except Exception:
                logger.exception('Error in job scheduler tick')

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    async def tick(self) -> Optional[int]:
        """
        One scheduling step.

        Returns the id of the job that was polled or advanced, if any.
        """
        async with self._session_factory() as session:
            pending = await repository.first_job_by_status(session, JobStatus.pending)

        if pending is not None:
            await self.poll(pending)
            return pending.id

        return await self.advance_next()

    async def _update(self, job_id: int, **fields) -> Optional[SynthesisJob]:
        async with self._session_factory() as session:
            return await repository.update_job(session, job_id, **fields)

    async def _fail(self, job_id: int, message: Optional[str]):
        await self._update(job_id, status=JobStatus.failed.value, message=message, file_path=None)

    # Advancement

    async def advance_next(self) -> Optional[int]:
        """Submit the oldest waiting job, if there is one."""
        async with self._session_factory() as session:
            job = await repository.first_job_by_status(session, JobStatus.waiting)

        if job is None:
            return None

        logger.debug('Starting video synthesis for job %s', job.id)
        token = str(uuid.uuid4())
        try:
            async with self._session_factory() as session:
                claimed = await repository.transition_job(
                    session,
                    job.id,
                    (JobStatus.waiting.value,),
                    status=JobStatus.pending.value,
                    message=SUBMITTING_MESSAGE,
                    progress=0,
                    file_path=None,
                    external_token=token,
                )
            if not claimed:
                logger.debug('Job %s left the queue before submission', job.id)
                return None
            await self._submit(job.id, token)
        except Exception as e:
            logger.error('Submission of job %s failed: %s', job.id, e)
            await self._fail(job.id, str(e))
        return job.id

    async def _submit(self, job_id: int, token: str):
        async with self._session_factory() as session:
            job = await repository.get_job(session, job_id)
            if job is None:
                raise LookupError(f'Job not found: {job_id}')
            model = await repository.get_source_model(session, job.model_id)
            if model is None:
                raise LookupError(f'Model not found: {job.model_id}')

            audio_key = job.audio_path
            if audio_key:
                logger.debug('Job %s uses existing audio %s', job_id, audio_key)
            else:
                voice_id = job.voice_id or model.voice_id
                if not job.text:
                    raise ValueError('Job has neither text nor audio')
                logger.info('Generating audio for job %s with voice %s: %.50s', job_id, voice_id, job.text)
                audio_file = await self.voice_service.synthesize(session, voice_id, job.text)
                audio_key = key_for(audio_file)
                await repository.update_job(session, job_id, audio_path=audio_key, message='speech synthesized')
                logger.info('Audio generated for job %s: %s (%.2fKB)', job_id, audio_key, audio_file.stat().st_size / 1024)

            job_mode = job.storage_mode
            video_key = model.video_path
            video_mode = model.storage_mode

        if job_mode.is_remote:
            await self._storage_factory(job_mode).upload(audio_key, path_for(audio_key))

        params = {
            'audio_url': service_address(audio_key, job_mode),
            'video_url': service_address(video_key, video_mode),
            'code': token,
            **RENDER_FLAGS,
        }
        result = await self.face2face.submit(params)
        logger.debug('Job %s submission result: %s', job_id, result)

        if result.accepted:
            await self._update(
                job_id,
                status=JobStatus.pending.value,
                message=result.msg,
                audio_path=audio_key,
                params=params,
                external_token=token,
            )
        else:
            await self._update(
                job_id,
                status=JobStatus.failed.value,
                message=result.msg,
                audio_path=audio_key,
                params=params,
                external_token=token,
                file_path=None,
            )

    # Polling

    async def poll(self, job: SynthesisJob):
        """Query the pending job's status and apply it."""
        logger.debug('Checking status of job %s (code %s)', job.id, job.external_token)
        try:
            start_time = time.time()
            status = await self.face2face.query(job.external_token)
            logger.debug(
                'Status for job %s: code=%s data=%s (%dms)',
                job.id, status.code, status.data, int((time.time() - start_time) * 1000),
            )
            await self._apply_status(job, status)
        except Exception as e:
            logger.error('Polling job %s failed: %s', job.id, e)
            await self._fail(job.id, str(e))

    async def _apply_status(self, job: SynthesisJob, status: StatusResponse):
        if status.fatal:
            logger.error('Job %s failed with code %s: %s', job.id, status.code, status.msg)
            await self._fail(job.id, status.msg)
            return

        if status.code != CODE_OK or status.data is None:
            logger.warning('Unexpected status for job %s: code=%s', job.id, status.code)
            return

        data = status.data
        if data.status == TASK_IN_PROGRESS:
            await self._update(
                job.id,
                status=JobStatus.pending.value,
                message=data.msg,
                progress=int(data.progress or 0),
            )
        elif data.status == TASK_SUCCEEDED:
            await self._complete(job, data)
        elif data.status == TASK_FAILED:
            logger.error('Job %s failed at the service: %s', job.id, data.msg)
            await self._fail(job.id, data.msg)

    async def _complete(self, job: SynthesisJob, data: TaskStatus):
        """Reconcile the result artifact, probe its duration, mark the job successful."""
        if not data.result:
            raise ValueError('Service reported success without a result')

        logger.info('Video synthesis completed for job %s: %s', job.id, data.result)
        local_path = result_path(data.result)
        mode = job.storage_mode

        if mode.is_remote:
            await self._storage_factory(mode).download(key_for(local_path), local_path)

        if config.DEV_MODE:
            duration = config.MOCK_DURATION_SECONDS
            logger.debug('Using mock duration in development mode')
        else:
            duration = await media.probe_duration(local_path)

        if mode.is_remote and config.RESULT_RECONCILE_MODE == 'remote' and local_path.exists():
            os.remove(local_path)

        await self._update(
            job.id,
            status=JobStatus.success.value,
            message=data.msg,
            progress=int(data.progress or 100),
            file_path=data.result,
            duration=duration,
        )
        logger.info('Job %s succeeded (duration %.2fs)', job.id, duration)


# Singleton instance
_job_scheduler: Optional[JobScheduler] = None


def get_job_scheduler() -> JobScheduler:
    """Get the job scheduler singleton instance."""
    global _job_scheduler
    if _job_scheduler is None:
        _job_scheduler = JobScheduler()
    return _job_scheduler


def reset_job_scheduler():
    """Reset the job scheduler singleton (for testing)."""
    global _job_scheduler
    _job_scheduler = None
