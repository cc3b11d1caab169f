"""
Storage backend contract.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union


class StorageError(Exception):
    """A storage operation failed (after any retries)."""


class StorageBackend(ABC):
    """
    Uniform put/get/delete/url interface over an artifact store.

    Keys are POSIX paths relative to the data root. No business logic.
    """

    @abstractmethod
    async def upload(self, key: str, source: Union[str, Path, bytes]) -> str:
        """Store a local file (or raw bytes) under key and return its URL."""

    @abstractmethod
    async def download(self, key: str, local_path: Union[str, Path]) -> None:
        """Fetch key into local_path, creating parent directories."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key."""

    @abstractmethod
    def url_for(self, key: str) -> str:
        """URL of key. Pure, no I/O."""

    async def close(self) -> None:
        """Release any held connections."""
