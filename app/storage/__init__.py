"""
Storage adapter: one contract over local and remote artifact stores.
"""
from typing import Dict, Optional

from app import config
from app.storage.base import StorageBackend, StorageError
from app.storage.mode import StorageMode
from app.storage.retry import RetryPolicy, RetryingStorage, best_effort_delete
from app.storage.local import LocalStorage

__all__ = [
    'StorageBackend',
    'StorageError',
    'StorageMode',
    'RetryPolicy',
    'RetryingStorage',
    'LocalStorage',
    'best_effort_delete',
    'get_storage',
    'close_storage',
    'reset_storage',
]


_storages: Dict[StorageMode, StorageBackend] = {}


def _build_remote() -> StorageBackend:
    if config.REMOTE_STORAGE_TYPE == 'api':
        from app.storage.api import ApiStorage
        return ApiStorage(config.REMOTE_STORAGE_API_ENDPOINT, timeout=config.HTTP_TIMEOUT)
    if config.REMOTE_STORAGE_TYPE in ('s3', 'minio'):
        from app.storage.s3 import S3Storage
        return S3Storage(
            bucket=config.REMOTE_STORAGE_BUCKET,
            endpoint_url=config.REMOTE_STORAGE_ENDPOINT,
            region_name=config.REMOTE_STORAGE_REGION,
            access_key=config.REMOTE_STORAGE_ACCESS_KEY,
            secret_key=config.REMOTE_STORAGE_SECRET_KEY,
        )
    raise ValueError(f'Unknown remote storage type: {config.REMOTE_STORAGE_TYPE}')


def get_storage(mode: StorageMode) -> StorageBackend:
    """
    Get the backend for a storage mode captured on a record.

    Backends are built lazily and cached; every backend retries with the
    same policy.
    """
    storage: Optional[StorageBackend] = _storages.get(mode)
    if storage is None:
        backend = _build_remote() if mode.is_remote else LocalStorage(config.DATA_ROOT)
        storage = RetryingStorage(backend, RetryPolicy(max_attempts=config.STORAGE_RETRY_ATTEMPTS))
        _storages[mode] = storage
    return storage


async def close_storage():
    """Close cached backends."""
    for storage in list(_storages.values()):
        await storage.close()
    _storages.clear()


def reset_storage():
    """Forget cached backends (for testing)."""
    _storages.clear()
