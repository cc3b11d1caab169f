"""
Pydantic schemas for Job API operations.
"""
from datetime import datetime
from typing import Optional, List, Any
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator


class JobCreate(BaseModel):
    """Schema for creating a draft job."""
    model_config = ConfigDict(protected_namespaces=())

    model_id: int = Field(..., description='Source model providing video and voice')
    name: str = Field('', max_length=255)
    text: Optional[str] = Field(None, description='Script to synthesize')
    voice_id: Optional[int] = Field(None, description='Voice override (null = model voice)')
    audio_path: Optional[str] = Field(None, description='Local audio file to use instead of TTS')

    @model_validator(mode='after')
    def require_text_or_audio(self):
        if not (self.text and self.text.strip()) and not self.audio_path:
            raise ValueError('Either text or audio_path is required')
        return self


class JobUpdate(BaseModel):
    """Schema for editing a draft or waiting job. Only set fields change."""
    model_config = ConfigDict(protected_namespaces=())

    model_id: Optional[int] = None
    name: Optional[str] = Field(None, max_length=255)
    text: Optional[str] = None
    voice_id: Optional[int] = None
    audio_path: Optional[str] = None

    @field_validator('model_id', 'name')
    @classmethod
    def not_null(cls, value, info):
        # Omit the field to keep it; these columns cannot be cleared
        if value is None:
            raise ValueError(f'{info.field_name} cannot be null')
        return value


class JobExport(BaseModel):
    """Schema for exporting a finished video."""
    output_path: str = Field(..., min_length=1)


class JobResponse(BaseModel):
    """Schema for job response."""
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: int
    name: str
    model_id: int
    text: Optional[str]
    voice_id: Optional[int]
    audio_path: Optional[str]
    status: str
    message: Optional[str]
    progress: int
    external_token: Optional[str]
    params: Optional[dict[str, Any]] = None
    file_path: Optional[str]
    duration: Optional[float]
    is_remote: bool
    created_at: datetime
    updated_at: datetime
    queue_position: Optional[int] = None
    queue_length: Optional[int] = None


class JobListResponse(BaseModel):
    """Schema for paginated job list response."""
    jobs: List[JobResponse]
    total: int
    limit: int
    offset: int


class CountResponse(BaseModel):
    total: int
