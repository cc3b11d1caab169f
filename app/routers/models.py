"""
Source model endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models import SourceModel
from app.schemas.job import CountResponse
from app.schemas.source_model import ModelCreate, ModelResponse, ModelListResponse
from app.services import model_service
from app.services.errors import ModelImportError, NotFoundError
from app.services.media import MediaError
from app.services.voice_service import VoiceService, get_voice_service
from app.storage import StorageError


router = APIRouter(prefix='/models', tags=['models'])


def to_response(model: SourceModel) -> ModelResponse:
    mode = model.storage_mode
    return ModelResponse(
        id=model.id,
        name=model.name,
        video_path=model.video_path,
        audio_path=model.audio_path,
        voice_id=model.voice_id,
        is_remote=model.is_remote,
        video_location=model_service.artifact_location(model.video_path, mode),
        audio_location=model_service.artifact_location(model.audio_path, mode),
        created_at=model.created_at,
    )


@router.get('', response_model=ModelListResponse)
async def list_models(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    name: str = Query(default=''),
    db: AsyncSession = Depends(get_db),
) -> ModelListResponse:
    """List source models, newest first, optionally filtered by name."""
    models, total = await model_service.list_models(db, limit, offset, name)
    return ModelListResponse(
        models=[to_response(m) for m in models],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get('/count', response_model=CountResponse)
async def count_models(name: str = Query(default=''), db: AsyncSession = Depends(get_db)) -> CountResponse:
    _, total = await model_service.list_models(db, 1, 0, name)
    return CountResponse(total=total)


@router.post('', response_model=ModelResponse, status_code=201)
async def import_model(
    request: ModelCreate,
    db: AsyncSession = Depends(get_db),
    voices: VoiceService = Depends(get_voice_service),
) -> ModelResponse:
    """
    Import a video as a source model.

    Transcodes the video, extracts its audio and trains a voice. Blocks
    until training finishes.

    Raises:
        422: Video unusable or voice training rejected
        502: Remote storage unavailable
    """
    try:
        model = await model_service.import_model(
            db,
            request.name,
            request.video_path,
            use_remote_storage=request.use_remote_storage,
            lang=request.lang,
            voice_service=voices,
        )
    except (ModelImportError, MediaError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return to_response(model)


@router.get('/{model_id}', response_model=ModelResponse)
async def get_model(model_id: int, db: AsyncSession = Depends(get_db)) -> ModelResponse:
    try:
        model = await model_service.find_model(db, model_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return to_response(model)


@router.delete('/{model_id}', status_code=204)
async def delete_model(model_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a model. Its artifacts are removed best-effort."""
    try:
        await model_service.remove_model(db, model_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
