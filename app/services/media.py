"""
ffmpeg / ffprobe wrappers.

Failures raise MediaError and are not retried.
"""
import asyncio
import json
import logging
from pathlib import Path
from typing import List, Union

from app import config

logger = logging.getLogger(__name__)


class MediaError(Exception):
    """A transcoding, extraction or probe command failed."""


async def _run(cmd: List[str]) -> str:
    """Run a command without blocking the event loop; return stdout."""
    logger.debug('Running %s', ' '.join(cmd))
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise MediaError(f'{cmd[0]} not found') from e

    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        error = stderr.decode(errors='ignore').strip()
        raise MediaError(f'{Path(cmd[0]).name} failed ({proc.returncode}): {error[-500:]}')
    return stdout.decode(errors='ignore')


async def extract_audio(video_path: Union[str, Path], audio_path: Union[str, Path]) -> Path:
    """Extract a mono 16 kHz PCM WAV track from a video."""
    audio_path = Path(audio_path)
    audio_path.parent.mkdir(parents=True, exist_ok=True)
    await _run([
        config.FFMPEG_BIN, '-y',
        '-i', str(video_path),
        '-vn',
        '-ac', '1',
        '-ar', '16000',
        '-acodec', 'pcm_s16le',
        str(audio_path),
    ])
    return audio_path


async def transcode_to_compatible(video_path: Union[str, Path], out_path: Union[str, Path]) -> Path:
    """Re-encode to H.264/AAC in an MP4 container, which the inference service accepts."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    await _run([
        config.FFMPEG_BIN, '-y',
        '-i', str(video_path),
        '-c:v', 'libx264',
        '-pix_fmt', 'yuv420p',
        '-c:a', 'aac',
        '-movflags', '+faststart',
        str(out_path),
    ])
    return out_path


async def probe_duration(video_path: Union[str, Path]) -> float:
    """Duration in seconds, read from container metadata."""
    output = await _run([
        config.FFPROBE_BIN,
        '-v', 'error',
        '-show_entries', 'format=duration',
        '-of', 'json',
        str(video_path),
    ])
    try:
        return float(json.loads(output)['format']['duration'])
    except (ValueError, KeyError, TypeError) as e:
        raise MediaError(f'Could not read duration of {video_path}') from e
