"""Blob storage drivers for image assets."""

from catalog_media.storage.base import (
    BaseStorageDriver,
    DuplicatePathError,
    StorageConnectionError,
    StorageError,
)
from catalog_media.storage.factory import get_storage_driver

__all__ = [
    "BaseStorageDriver",
    "DuplicatePathError",
    "StorageConnectionError",
    "StorageError",
    "get_storage_driver",
]
