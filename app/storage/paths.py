"""
Artifact key translation and request path sanitizing.
"""
from pathlib import Path, PurePosixPath
from typing import Union

from app import config
from app.storage.mode import StorageMode


def sanitize_path(relative_path: str) -> str:
    """
    Sanitize a client supplied relative path.

    Every '..' is removed and backslashes become forward slashes, then
    empty segments are dropped so the result never starts with a separator:
        '../../etc' -> 'etc'
        'a\\..\\b' -> 'a/b'
    """
    cleaned = relative_path.replace('..', '').replace('\\', '/')
    return '/'.join(part for part in cleaned.split('/') if part)


def key_for(path: Union[str, Path]) -> str:
    """Artifact key (POSIX path relative to the data root) for a local path."""
    return Path(path).resolve().relative_to(config.DATA_ROOT.resolve()).as_posix()


def path_for(key: str) -> Path:
    """Local filesystem location of an artifact key."""
    return config.DATA_ROOT / PurePosixPath(key)


def service_address(key: str, mode: StorageMode) -> str:
    """
    Address of an artifact as the face2face service expects it.

    Remote artifacts are addressed by object key. Local artifacts are
    addressed relative to the service working directory.
    """
    if mode.is_remote:
        return key
    return Path(path_for(key)).resolve().relative_to(config.MODEL_DIR.resolve()).as_posix()


def tts_address(key: str) -> str:
    """Local artifact address relative to the TTS service root."""
    return Path(path_for(key)).resolve().relative_to(config.TTS_ROOT.resolve()).as_posix()


def result_path(file_path: str) -> Path:
    """Local location of a result reported by the face2face service."""
    return config.MODEL_DIR / file_path.lstrip('/\\')
