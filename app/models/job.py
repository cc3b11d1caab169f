"""
Synthesis job: one request to render a talking-head video.
"""
import enum
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Integer, Float, Boolean, JSON

from app.models.base import Base
from app.storage.mode import StorageMode


class JobStatus(str, enum.Enum):
    """Status states for synthesis jobs."""
    draft = 'draft'
    waiting = 'waiting'
    pending = 'pending'
    success = 'success'
    failed = 'failed'


# States a user may still edit or (re)submit from
EDITABLE_STATUSES = (JobStatus.draft.value, JobStatus.waiting.value)


class SynthesisJob(Base):
    """
    Represents a video synthesis job.

    Only the scheduler mutates a job once it is pending.

    Attributes:
        id: Surrogate identity, also the FIFO order of the waiting queue
        name: Display name
        model_id: Source model providing the video and default voice
        text: Script to synthesize (null when an audio override is present)
        voice_id: Voice override (null = the model's voice)
        audio_path: Artifact key of the audio track (override or synthesized)
        status: Current job status
        message: Human readable status message
        progress: Progress reported by the inference service
        external_token: Idempotency token / job code at the inference service
        params: Submission request sent to the inference service
        file_path: Result video, relative to the service working directory
        duration: Result duration in seconds
        is_remote: Storage backend captured at creation time
    """
    __tablename__ = 'synthesis_jobs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, default='')
    model_id = Column(Integer, nullable=False)
    text = Column(Text, nullable=True)
    voice_id = Column(Integer, nullable=True)
    audio_path = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=JobStatus.draft.value)
    message = Column(Text, nullable=True)
    progress = Column(Integer, nullable=False, default=0)
    external_token = Column(String(64), nullable=True)
    params = Column(JSON, nullable=True)
    file_path = Column(Text, nullable=True)
    duration = Column(Float, nullable=True)
    is_remote = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def storage_mode(self) -> StorageMode:
        return StorageMode.from_flag(self.is_remote)

    def __repr__(self):
        return f'<SynthesisJob {self.id} status={self.status}>'
