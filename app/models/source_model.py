"""
Source model: an imported video paired with the voice trained from it.
"""
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Integer, Boolean

from app.models.base import Base
from app.storage.mode import StorageMode


class SourceModel(Base):
    """
    Attributes:
        id: Surrogate identity
        name: Display name
        video_path: Artifact key of the video (relative to the data root)
        audio_path: Artifact key of the extracted audio
        voice_id: Voice profile trained from the audio
        is_remote: Storage backend captured at import time
        created_at: Import timestamp
    """
    __tablename__ = 'source_models'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    video_path = Column(Text, nullable=False)
    audio_path = Column(Text, nullable=False)
    voice_id = Column(Integer, nullable=True)
    is_remote = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    @property
    def storage_mode(self) -> StorageMode:
        return StorageMode.from_flag(self.is_remote)

    def __repr__(self):
        return f'<SourceModel {self.id} name={self.name!r} remote={self.is_remote}>'
