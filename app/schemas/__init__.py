"""
Pydantic schemas for API request/response validation.
"""
from app.schemas.job import JobCreate, JobUpdate, JobExport, JobResponse, JobListResponse, CountResponse
from app.schemas.voice import VoiceResponse, VoiceListResponse, VoiceTrainRequest, AuditionRequest
from app.schemas.source_model import ModelCreate, ModelResponse, ModelListResponse

__all__ = [
    'JobCreate',
    'JobUpdate',
    'JobExport',
    'JobResponse',
    'JobListResponse',
    'CountResponse',
    'VoiceResponse',
    'VoiceListResponse',
    'VoiceTrainRequest',
    'AuditionRequest',
    'ModelCreate',
    'ModelResponse',
    'ModelListResponse',
]
