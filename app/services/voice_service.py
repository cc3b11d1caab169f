"""
Voice training and speech rendering on top of the TTS service.
"""
import logging
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from sqlalchemy.ext.asyncio import AsyncSession

from app import config
from app import repository
from app.clients.tts import TTSClient, get_tts_client
from app.models import VoiceProfile
from app.services.errors import NotFoundError
from app.storage import StorageMode, get_storage
from app.storage.paths import key_for, path_for

logger = logging.getLogger(__name__)

# Decoding parameters are held constant
RENDER_PARAMS = {
    'format': 'wav',
    'topP': 0.7,
    'max_new_tokens': 1024,
    'chunk_length': 100,
    'repetition_penalty': 1.2,
    'temperature': 0.7,
    'need_asr': False,
    'streaming': False,
    'is_fixed_seed': 0,
    'is_norm': 1,
}


@dataclass(frozen=True)
class TrainResult:
    """
    Outcome of voice training.

    A rejection by the TTS service is a value, not an exception, and is
    falsy so callers can check it like a sentinel:

        result = await service.train(...)
        if not result:
            ...  # result.code / result.message say why
    """
    voice: Optional[VoiceProfile] = None
    code: int = 0
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.voice is not None

    @property
    def voice_id(self) -> Optional[int]:
        return self.voice.id if self.voice is not None else None

    def __bool__(self):
        return self.ok

    @classmethod
    def trained(cls, voice: VoiceProfile) -> 'TrainResult':
        return cls(voice=voice)

    @classmethod
    def rejected(cls, code: int, message: Optional[str]) -> 'TrainResult':
        return cls(code=code, message=message)


def _reference_name(reference_audio: str) -> str:
    """File name of a reference given as a key or as a storage URL."""
    parts = urlsplit(reference_audio)
    names = parse_qs(parts.query).get('filename')
    if names:
        return names[0]
    return PurePosixPath(parts.path).name


class VoiceService:
    """Trains voice profiles and renders speech for jobs."""

    def __init__(self, tts_client: Optional[TTSClient] = None, storage_factory=get_storage):
        self._tts_client = tts_client
        self._storage_factory = storage_factory

    @property
    def tts(self) -> TTSClient:
        if self._tts_client is None:
            self._tts_client = get_tts_client()
        return self._tts_client

    async def train(
        self,
        session: AsyncSession,
        reference_audio: str,
        lang: str = 'zh',
        mode: StorageMode = StorageMode.local,
    ) -> TrainResult:
        """
        Train a voice from a reference clip.

        Args:
            reference_audio: Reference as the TTS service addresses it
            lang: Language tag
            mode: Storage mode of the reference; remote references have their
                formatted audio pulled back into local storage
        """
        reference_audio = reference_audio.replace('\\', '/')
        logger.debug('Training voice from %s (lang=%s)', reference_audio, lang)

        res = await self.tts.preprocess_and_train({
            'format': _reference_name(reference_audio).rsplit('.', 1)[-1],
            'reference_audio': reference_audio,
            'lang': lang,
        })

        code = res.get('code')
        if code != 0:
            logger.warning('Voice training rejected: code=%s msg=%s', code, res.get('msg'))
            return TrainResult.rejected(code, res.get('msg'))

        if mode.is_remote:
            await self._fetch_formatted_audio(reference_audio)

        voice = VoiceProfile(
            origin_audio_path=reference_audio,
            lang=lang,
            asr_format_audio_url=res.get('asr_format_audio_url'),
            reference_audio_text=res.get('reference_audio_text'),
        )
        session.add(voice)
        await session.commit()
        await session.refresh(voice)
        logger.info('Voice %s trained', voice.id)
        return TrainResult.trained(voice)

    async def _fetch_formatted_audio(self, reference_audio: str):
        """Pull the service's normalized copies of a remote reference locally."""
        storage = self._storage_factory(StorageMode.remote)
        basename = _reference_name(reference_audio)
        for prefix in ('format_', 'format_denoise_'):
            key = key_for(config.TTS_TRAIN_DIR / f'{prefix}{basename}')
            await storage.download(key, path_for(key))

    async def synthesize(
        self,
        session: AsyncSession,
        voice_id: int,
        text: str,
        target_dir: Optional[Path] = None,
    ) -> Path:
        """
        Render text in a trained voice.

        Returns the path of the written WAV file.
        """
        voice = await repository.get_voice(session, voice_id)
        if voice is None:
            raise NotFoundError(f'Voice not found: {voice_id}')

        speaker = str(uuid.uuid4())
        audio = await self.tts.invoke({
            **RENDER_PARAMS,
            'speaker': speaker,
            'text': text,
            'reference_audio': voice.asr_format_audio_url,
            'reference_text': voice.reference_audio_text,
        })

        target_dir = Path(target_dir or config.TTS_PRODUCT_DIR)
        target_dir.mkdir(parents=True, exist_ok=True)
        output_path = target_dir / f'{speaker}.wav'
        output_path.write_bytes(audio)
        logger.info('Synthesized %d bytes of speech with voice %s', len(audio), voice_id)
        return output_path

    async def audition(self, session: AsyncSession, voice_id: int, text: str) -> Path:
        """Render a preview clip into the temp directory."""
        return await self.synthesize(session, voice_id, text, target_dir=Path(tempfile.gettempdir()))


# Singleton instance
_voice_service: Optional[VoiceService] = None


def get_voice_service() -> VoiceService:
    """Get the voice service singleton instance."""
    global _voice_service
    if _voice_service is None:
        _voice_service = VoiceService()
    return _voice_service


def reset_voice_service():
    """Reset the voice service singleton (for testing)."""
    global _voice_service
    _voice_service = None
