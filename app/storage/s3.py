"""
S3 / MinIO backend.
"""
import asyncio
import functools
from pathlib import Path
from typing import Optional, Union

import boto3
from botocore.config import Config as BotoConfig

from app.storage.base import StorageBackend


class S3Storage(StorageBackend):
    """
    Objects live in one bucket, keyed by artifact key.

    boto3 is blocking, so calls run in the default executor.
    """

    def __init__(
        self,
        bucket: str,
        endpoint_url: Optional[str] = None,
        region_name: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        client=None,
    ):
        self.bucket = bucket
        self.endpoint_url = (endpoint_url or '').rstrip('/') or None
        if client is None:
            session = boto3.session.Session(
                aws_access_key_id=access_key or None,
                aws_secret_access_key=secret_key or None,
                region_name=region_name or None,
            )
            # MinIO needs path-style addressing
            client = session.client(
                's3',
                endpoint_url=self.endpoint_url,
                config=BotoConfig(s3={'addressing_style': 'path'}),
            )
        self._client = client

    async def _run(self, fn, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))

    async def upload(self, key: str, source: Union[str, Path, bytes]) -> str:
        if isinstance(source, bytes):
            body = source
        else:
            body = Path(source).read_bytes()
        await self._run(self._client.put_object, Bucket=self.bucket, Key=key, Body=body)
        return self.url_for(key)

    async def download(self, key: str, local_path: Union[str, Path]) -> None:
        target = Path(local_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        response = await self._run(self._client.get_object, Bucket=self.bucket, Key=key)
        body = response.get('Body')
        data = await self._run(body.read) if body is not None else b''
        target.write_bytes(data)

    async def delete(self, key: str) -> None:
        await self._run(self._client.delete_object, Bucket=self.bucket, Key=key)

    def url_for(self, key: str) -> str:
        if self.endpoint_url:
            return f'{self.endpoint_url}/{self.bucket}/{key}'
        return f'/{self.bucket}/{key}'
