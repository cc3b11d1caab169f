"""
Storage backend selection captured on each record.
"""
import enum

from app import config


class StorageMode(str, enum.Enum):
    """Where an artifact lives."""
    local = 'local'
    remote = 'remote'

    @property
    def is_remote(self) -> bool:
        return self is StorageMode.remote

    @classmethod
    def from_flag(cls, is_remote) -> 'StorageMode':
        return cls.remote if is_remote else cls.local

    @classmethod
    def current(cls, requested: bool = True) -> 'StorageMode':
        """
        Mode for an artifact being created now.

        Read once at creation and stored on the record; later operations use
        the stored value, never the live configuration.
        """
        return cls.from_flag(requested and config.REMOTE_STORAGE_ENABLED)
