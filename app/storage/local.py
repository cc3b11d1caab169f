"""
Local filesystem backend rooted at the data root.
"""
import asyncio
import functools
import os
import shutil
from pathlib import Path, PurePosixPath
from typing import Union

from app.storage.base import StorageBackend


class LocalStorage(StorageBackend):
    """Keys map to files under root. Uploads and downloads are file copies."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / PurePosixPath(key)

    @staticmethod
    def _copy(src: Path, dst: Path):
        dst.parent.mkdir(parents=True, exist_ok=True)
        if src.resolve() != dst.resolve():
            shutil.copyfile(src, dst)

    @staticmethod
    def _write(data: bytes, dst: Path):
        dst.parent.mkdir(parents=True, exist_ok=True)
        dst.write_bytes(data)

    async def upload(self, key: str, source: Union[str, Path, bytes]) -> str:
        target = self._path(key)
        loop = asyncio.get_running_loop()
        if isinstance(source, bytes):
            await loop.run_in_executor(None, functools.partial(self._write, source, target))
        else:
            await loop.run_in_executor(None, functools.partial(self._copy, Path(source), target))
        return self.url_for(key)

    async def download(self, key: str, local_path: Union[str, Path]) -> None:
        source = self._path(key)
        if not source.exists():
            raise FileNotFoundError(f'No such artifact: {key}')
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, functools.partial(self._copy, source, Path(local_path)))

    async def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            os.remove(path)

    def url_for(self, key: str) -> str:
        return self._path(key).resolve().as_uri()
