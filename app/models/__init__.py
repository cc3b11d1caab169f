"""
SQLAlchemy models for voice profiles, source models and synthesis jobs.
"""
from app.models.base import Base
from app.models.voice import VoiceProfile
from app.models.source_model import SourceModel
from app.models.job import SynthesisJob, JobStatus

__all__ = [
    'Base',
    'VoiceProfile',
    'SourceModel',
    'SynthesisJob',
    'JobStatus',
]
