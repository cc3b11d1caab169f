"""
Bounded retry with linear backoff for storage operations.
"""
import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional, Tuple, Type, Union

from app.storage.base import StorageBackend, StorageError

logger = logging.getLogger(__name__)


def linear_backoff(attempt: int) -> float:
    """Seconds to wait after the given (1-based) failed attempt."""
    return float(attempt)


class RetryPolicy:
    """
    Run an async operation up to max_attempts times.

    After failed attempt n the policy sleeps backoff(n) seconds. When every
    attempt fails, StorageError is raised from the last exception.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        backoff: Callable[[int], float] = linear_backoff,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError('max_attempts must be at least 1')
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.retry_on = retry_on
        self._sleep = sleep

    async def run(self, operation: Callable[..., Awaitable], *args, description: str = 'operation', **kwargs):
        last_error: Optional[BaseException] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation(*args, **kwargs)
            except self.retry_on as e:
                last_error = e
                if attempt == self.max_attempts:
                    break
                delay = self.backoff(attempt)
                logger.warning(
                    '%s failed (attempt %d/%d), retrying in %.1fs: %s',
                    description, attempt, self.max_attempts, delay, e,
                )
                await self._sleep(delay)

        raise StorageError(
            f'{description} failed after {self.max_attempts} attempts: {last_error}'
        ) from last_error


class RetryingStorage(StorageBackend):
    """Applies one RetryPolicy to every I/O call of a wrapped backend."""

    def __init__(self, backend: StorageBackend, policy: Optional[RetryPolicy] = None):
        self.backend = backend
        self.policy = policy or RetryPolicy()

    async def upload(self, key: str, source: Union[str, Path, bytes]) -> str:
        return await self.policy.run(self.backend.upload, key, source, description=f'upload {key}')

    async def download(self, key: str, local_path: Union[str, Path]) -> None:
        await self.policy.run(self.backend.download, key, local_path, description=f'download {key}')

    async def delete(self, key: str) -> None:
        await self.policy.run(self.backend.delete, key, description=f'delete {key}')

    def url_for(self, key: str) -> str:
        return self.backend.url_for(key)

    async def close(self) -> None:
        await self.backend.close()


async def best_effort_delete(storage: StorageBackend, key: Optional[str]) -> bool:
    """
    Delete key, logging instead of raising when the store gives up.

    Returns True when the object was deleted.
    """
    if not key:
        return False
    try:
        await storage.delete(key)
    except StorageError as e:
        logger.error('Giving up on deleting %s: %s', key, e)
        return False
    return True
