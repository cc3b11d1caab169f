"""
Request/response mapping for the TTS (voice cloning) service.
"""
import logging
from typing import Any, Optional

import httpx

from app.config import TTS_URL, HTTP_TIMEOUT

logger = logging.getLogger(__name__)


class TTSClient:
    """Async client for the training and rendering endpoints."""

    def __init__(
        self,
        base_url: str = TTS_URL,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def preprocess_and_train(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Preprocess a reference clip.

        Returns the raw response body; a non-zero 'code' is a domain failure
        the caller must check.
        """
        response = await self._client.post('/v1/preprocess_and_tran', json=payload)
        response.raise_for_status()
        return response.json()

    async def invoke(self, payload: dict[str, Any]) -> bytes:
        """Render speech. Returns raw audio bytes."""
        response = await self._client.post('/v1/invoke', json=payload)
        response.raise_for_status()
        audio = response.content
        logger.debug('tts invoke returned %d bytes', len(audio))
        return audio

    async def close(self):
        await self._client.aclose()


# Singleton instance
_tts_client: Optional[TTSClient] = None


def get_tts_client() -> TTSClient:
    """Get the TTS client singleton instance."""
    global _tts_client
    if _tts_client is None:
        _tts_client = TTSClient()
    return _tts_client


def reset_tts_client():
    """Reset the TTS client singleton (for testing)."""
    global _tts_client
    _tts_client = None
