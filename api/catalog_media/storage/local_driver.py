"""Local filesystem storage driver."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

from catalog_media.storage.base import BaseStorageDriver, DuplicatePathError, StorageError


class LocalStorageDriver(BaseStorageDriver):
    """Local filesystem storage driver.

    Each bucket is a directory under ``base_path``.

    Configuration:
        base_path: Root directory holding one directory per bucket
        bucket_name: Bucket (sub-directory) this driver writes to
        public_base_url: URL prefix the root directory is served under

    Example:
        >>> driver = LocalStorageDriver({
        ...     "base_path": "/data/media",
        ...     "bucket_name": "product-images",
        ...     "public_base_url": "/media",
        ... })
        >>> url = await driver.put_object("12/original/1700000000000-a1b2c3.jpg", content)
        >>> url
        '/media/product-images/12/original/1700000000000-a1b2c3.jpg'
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.base_path = Path(config["base_path"])

        # Ensure base_path is absolute for security
        if not self.base_path.is_absolute():
            self.base_path = self.base_path.resolve()

        self.bucket_path = self.base_path / self.bucket_name

    def _validate_path(self, file_path: str) -> Path:
        """Validate path is within the bucket directory (prevent directory traversal).

        Args:
            file_path: Relative file path

        Returns:
            Absolute Path object

        Raises:
            StorageError: If path tries to escape the bucket directory
        """
        full_path = (self.bucket_path / file_path).resolve()

        # Ensure path is within the bucket
        try:
            full_path.relative_to(self.bucket_path.resolve())
        except ValueError:
            raise StorageError(
                f"Path {file_path} attempts to escape bucket directory",
                path=file_path,
                bucket=self.bucket_name,
            )

        return full_path

    async def put_object(
        self,
        file_path: str,
        content: bytes,
        content_type: Optional[str] = None,
        upsert: bool = False,
    ) -> str:
        """Write file to the bucket directory.

        Non-upsert writes open the file in exclusive-create mode, so an
        existing path is never overwritten.
        """
        full_path = self._validate_path(file_path)

        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(full_path, "wb" if upsert else "xb") as f:
                await f.write(content)
        except FileExistsError:
            raise DuplicatePathError(
                f"Object already exists: {file_path}",
                path=file_path,
                bucket=self.bucket_name,
            )
        except OSError as e:
            raise StorageError(
                f"Failed to write file: {e}", path=file_path, bucket=self.bucket_name
            ) from e

        return self.get_public_url(file_path)

    def get_public_url(self, file_path: str) -> str:
        """Build the URL the bucket directory is served under."""
        key = file_path.strip("/")
        if self.public_base_url:
            return f"{self.public_base_url}/{self.bucket_name}/{key}"
        return self.bucket_path.joinpath(key).as_uri()

    async def delete_object(self, file_path: str) -> None:
        """Delete file from the bucket directory, ignoring missing files."""
        full_path = self._validate_path(file_path)

        try:
            full_path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(
                f"Failed to delete file: {e}", path=file_path, bucket=self.bucket_name
            ) from e

        # Clean up empty owner directories
        parent = full_path.parent
        bucket_root = self.bucket_path.resolve()
        while parent != bucket_root:
            try:
                parent.rmdir()
            except OSError:
                # Directory not empty or other error, ignore
                break
            parent = parent.parent

    async def download_file(self, file_path: str) -> bytes:
        """Read file from the bucket directory."""
        full_path = self._validate_path(file_path)

        if not full_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        async with aiofiles.open(full_path, "rb") as f:
            return await f.read()

    async def exists(self, file_path: str) -> bool:
        return self._validate_path(file_path).is_file()

    async def test_connection(self) -> bool:
        """Test if the bucket directory exists and is writable.

        The directory is created on first use.
        """
        try:
            self.bucket_path.mkdir(parents=True, exist_ok=True)
            return os.access(self.bucket_path, os.R_OK | os.W_OK)
        except OSError:
            return False
