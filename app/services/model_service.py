"""
Source model import and removal.
"""
import asyncio
import functools
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app import config
from app import repository
from app.models import SourceModel
from app.services import media
from app.services.errors import ModelImportError, NotFoundError
from app.services.voice_service import VoiceService, get_voice_service
from app.storage import StorageMode, get_storage, best_effort_delete
from app.storage.paths import key_for, path_for, tts_address

logger = logging.getLogger(__name__)


def timestamp_name(suffix: str) -> str:
    """File name like 20240101093015123.mp4."""
    return datetime.now().strftime('%Y%m%d%H%M%S%f')[:-3] + suffix


def artifact_location(key: Optional[str], mode: StorageMode) -> Optional[str]:
    """Where a client can find an artifact: a URL when remote, a path when local."""
    if not key:
        return key
    if mode.is_remote:
        return get_storage(mode).url_for(key)
    return str(path_for(key))


async def import_model(
    session: AsyncSession,
    name: str,
    video_path: str,
    use_remote_storage: bool = False,
    lang: str = 'zh',
    voice_service: Optional[VoiceService] = None,
) -> SourceModel:
    """
    Import a video as a source model.

    The video is made compatible with the inference service, its audio track
    is extracted and a voice is trained from it. The storage mode is decided
    here and recorded on the model.
    """
    voice_service = voice_service or get_voice_service()
    source = Path(video_path)
    if not source.is_file():
        raise ModelImportError(f'Video not found: {video_path}')

    mode = StorageMode.current(use_remote_storage)
    config.MODEL_DIR.mkdir(parents=True, exist_ok=True)
    config.TTS_TRAIN_DIR.mkdir(parents=True, exist_ok=True)

    if config.TRANSCODE_ON_IMPORT:
        local_video = config.MODEL_DIR / timestamp_name('.mp4')
        await media.transcode_to_compatible(source, local_video)
    else:
        local_video = config.MODEL_DIR / timestamp_name(source.suffix)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, functools.partial(shutil.copyfile, source, local_video))

    local_audio = config.TTS_TRAIN_DIR / f'{local_video.stem}.wav'
    await media.extract_audio(local_video, local_audio)

    video_key = key_for(local_video)
    audio_key = key_for(local_audio)

    if mode.is_remote:
        storage = get_storage(mode)
        await storage.upload(video_key, local_video)
        reference = await storage.upload(audio_key, local_audio)
        logger.info('Model files uploaded to remote storage: %s, %s', video_key, audio_key)
    else:
        reference = tts_address(audio_key)

    result = await voice_service.train(session, reference, lang, mode)
    if not result:
        raise ModelImportError(f'Voice training failed: {result.message or result.code}')

    model = SourceModel(
        name=name,
        video_path=video_key,
        audio_path=audio_key,
        voice_id=result.voice_id,
        is_remote=mode.is_remote,
    )
    session.add(model)
    await session.commit()
    await session.refresh(model)
    logger.info('Imported model %s (%s, %s storage)', model.id, name, mode.value)
    return model


async def list_models(
    session: AsyncSession, limit: int, offset: int, name: str = ''
) -> Tuple[List[SourceModel], int]:
    return await repository.page_source_models(session, limit, offset, name)


async def find_model(session: AsyncSession, model_id: int) -> SourceModel:
    model = await repository.get_source_model(session, model_id)
    if model is None:
        raise NotFoundError(f'Model not found: {model_id}')
    return model


async def remove_model(session: AsyncSession, model_id: int):
    """
    Delete a model and, best-effort, its artifacts.

    Artifact deletion never blocks removal of the record.
    """
    model = await find_model(session, model_id)

    if model.is_remote:
        storage = get_storage(model.storage_mode)
        await best_effort_delete(storage, model.video_path)
        await best_effort_delete(storage, model.audio_path)

    # Local copies exist in both modes
    for key in (model.video_path, model.audio_path):
        local = path_for(key) if key else None
        if local is not None and local.exists():
            try:
                os.remove(local)
                logger.info('Deleted local file: %s', local)
            except OSError as e:
                logger.warning('Could not delete %s: %s', local, e)

    await session.delete(model)
    await session.commit()
    logger.info('Deleted model record %s', model_id)
