"""
Voice profile produced by training the TTS service on a reference clip.
"""
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Integer

from app.models.base import Base


class VoiceProfile(Base):
    """
    A trained voice. Immutable once created.

    Attributes:
        id: Surrogate identity
        origin_audio_path: Reference audio as it was sent to the TTS service
        lang: Language tag used for training
        asr_format_audio_url: Normalized audio reference returned by the service
        reference_audio_text: ASR transcript of the reference audio
        created_at: Training timestamp
    """
    __tablename__ = 'voice_profiles'

    id = Column(Integer, primary_key=True, autoincrement=True)
    origin_audio_path = Column(Text, nullable=False)
    lang = Column(String(16), nullable=False, default='zh')
    asr_format_audio_url = Column(Text, nullable=True)
    reference_audio_text = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f'<VoiceProfile {self.id} lang={self.lang}>'
