"""
Pydantic schemas for source model API operations.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


class ModelCreate(BaseModel):
    """Import a local video as a source model."""
    name: str = Field(..., min_length=1, max_length=255)
    video_path: str = Field(..., min_length=1, description='Local path of the source video')
    use_remote_storage: bool = False
    lang: str = 'zh'


class ModelResponse(BaseModel):
    id: int
    name: str
    video_path: str
    audio_path: str
    voice_id: Optional[int]
    is_remote: bool
    video_location: Optional[str]
    audio_location: Optional[str]
    created_at: datetime


class ModelListResponse(BaseModel):
    models: List[ModelResponse]
    total: int
    limit: int
    offset: int
