"""Base storage driver interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class BaseStorageDriver(ABC):
    """Base class for blob storage drivers.

    A driver is bound to a single bucket. Paths are relative to the bucket
    root and double as the public object key.
    """

    def __init__(self, config: Dict[str, Any]):
        """Initialize storage driver with configuration.

        Args:
            config: Storage configuration dict with provider-specific settings.
                Every driver reads ``bucket_name`` and ``public_base_url``.
        """
        self.config = config
        self.bucket_name = config["bucket_name"]
        self.public_base_url: Optional[str] = (config.get("public_base_url") or "").rstrip("/") or None

    @abstractmethod
    async def put_object(
        self,
        file_path: str,
        content: bytes,
        content_type: Optional[str] = None,
        upsert: bool = False,
    ) -> str:
        """Store bytes under ``file_path`` and return the public URL.

        Args:
            file_path: Destination path inside the bucket
            content: Object content
            content_type: MIME type recorded with the object
            upsert: Overwrite an existing object instead of failing

        Returns:
            Public URL of the stored object

        Raises:
            DuplicatePathError: If the path exists and ``upsert`` is False
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def get_public_url(self, file_path: str) -> str:
        """Return the public URL for ``file_path`` without touching storage."""
        pass

    @abstractmethod
    async def delete_object(self, file_path: str) -> None:
        """Delete an object. Deleting a missing object is not an error.

        Raises:
            StorageError: If the delete fails
        """
        pass

    @abstractmethod
    async def download_file(self, file_path: str) -> bytes:
        """Download file and return bytes.

        Raises:
            StorageError: If download fails
            FileNotFoundError: If file doesn't exist
        """
        pass

    @abstractmethod
    async def exists(self, file_path: str) -> bool:
        """Check whether an object exists."""
        pass

    @abstractmethod
    async def test_connection(self) -> bool:
        """Test if storage is accessible.

        Returns:
            True if connection successful, False otherwise
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""

    def __init__(self, message: str, path: Optional[str] = None, bucket: Optional[str] = None):
        super().__init__(message)
        self.path = path
        self.bucket = bucket


class DuplicatePathError(StorageError):
    """Exception for a write to a path that already exists."""

    pass


class StorageConnectionError(StorageError):
    """Exception for connection errors."""

    pass
