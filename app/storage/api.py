"""
Remote backend talking to the REST file manager (see file_manager.py).
"""
import logging
import posixpath
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlencode

import httpx

from app.storage.base import StorageBackend

logger = logging.getLogger(__name__)


def _split_key(key: str):
    directory, filename = posixpath.split(key)
    return directory, filename


class ApiStorage(StorageBackend):
    """
    Objects are files in the file manager's storage tree.

    A key 'a/b/c.mp4' is uploaded with path='a/b' and downloaded with
    filename='c.mp4', path='a/b'.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint.rstrip('/')
        self._client = httpx.AsyncClient(base_url=self.endpoint, timeout=timeout, transport=transport)

    async def upload(self, key: str, source: Union[str, Path, bytes]) -> str:
        directory, filename = _split_key(key)
        if isinstance(source, bytes):
            content = source
        else:
            content = Path(source).read_bytes()

        response = await self._client.post(
            '/upload',
            params={'path': directory},
            files={'file': (filename, content)},
        )
        response.raise_for_status()
        logger.debug('Uploaded %s (%d bytes)', key, len(content))
        return self.url_for(key)

    async def download(self, key: str, local_path: Union[str, Path]) -> None:
        directory, filename = _split_key(key)
        target = Path(local_path)
        target.parent.mkdir(parents=True, exist_ok=True)

        async with self._client.stream(
            'GET', '/download', params={'filename': filename, 'path': directory}
        ) as response:
            response.raise_for_status()
            with open(target, 'wb') as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)
        logger.debug('Downloaded %s -> %s', key, target)

    async def delete(self, key: str) -> None:
        directory, filename = _split_key(key)
        response = await self._client.request(
            'DELETE', '/delete', json={'filename': filename, 'path': directory}
        )
        response.raise_for_status()

    def url_for(self, key: str) -> str:
        directory, filename = _split_key(key)
        return f'{self.endpoint}/download?{urlencode({"filename": filename, "path": directory})}'

    async def close(self) -> None:
        await self._client.aclose()
