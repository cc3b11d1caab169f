"""
Voice endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app import repository
from app.database import get_db
from app.schemas.voice import VoiceResponse, VoiceListResponse, VoiceTrainRequest, AuditionRequest
from app.services.errors import NotFoundError
from app.services.voice_service import VoiceService, get_voice_service


router = APIRouter(prefix='/voices', tags=['voices'])


@router.get('', response_model=VoiceListResponse)
async def list_voices(db: AsyncSession = Depends(get_db)) -> VoiceListResponse:
    """List all trained voices."""
    voices = await repository.list_voices(db)
    return VoiceListResponse(voices=[VoiceResponse.model_validate(v) for v in voices])


@router.get('/{voice_id}', response_model=VoiceResponse)
async def get_voice(voice_id: int, db: AsyncSession = Depends(get_db)) -> VoiceResponse:
    """
    Get details for a specific voice.

    Raises:
        404: Voice not found
    """
    voice = await repository.get_voice(db, voice_id)
    if not voice:
        raise HTTPException(status_code=404, detail=f'Voice not found: {voice_id}')
    return VoiceResponse.model_validate(voice)


@router.post('/train', response_model=VoiceResponse, status_code=201)
async def train_voice(
    request: VoiceTrainRequest,
    db: AsyncSession = Depends(get_db),
    voices: VoiceService = Depends(get_voice_service),
) -> VoiceResponse:
    """
    Train a voice from a reference clip.

    Raises:
        422: The TTS service rejected the reference audio
    """
    result = await voices.train(db, request.reference_audio, request.lang)
    if not result:
        raise HTTPException(
            status_code=422,
            detail=f'Voice training rejected (code {result.code}): {result.message}',
        )
    return VoiceResponse.model_validate(result.voice)


@router.post('/{voice_id}/audition')
async def audition_voice(
    voice_id: int,
    request: AuditionRequest,
    db: AsyncSession = Depends(get_db),
    voices: VoiceService = Depends(get_voice_service),
):
    """Render a short preview in the given voice and return it as WAV."""
    try:
        path = await voices.audition(db, voice_id, request.text)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return FileResponse(path=str(path), media_type='audio/wav', filename=path.name)
