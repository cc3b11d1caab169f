"""
Pydantic schemas for Voice API operations.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict


class VoiceResponse(BaseModel):
    """Schema for voice response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    origin_audio_path: str
    lang: str
    asr_format_audio_url: Optional[str]
    reference_audio_text: Optional[str]
    created_at: datetime


class VoiceListResponse(BaseModel):
    """Schema for voice list response."""
    voices: List[VoiceResponse]


class VoiceTrainRequest(BaseModel):
    """Train a voice from a reference clip already known to the TTS service."""
    reference_audio: str = Field(..., min_length=1)
    lang: str = 'zh'


class AuditionRequest(BaseModel):
    text: str = Field(..., min_length=1)
