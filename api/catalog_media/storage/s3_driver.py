"""S3-compatible storage driver (AWS S3, Cloudflare R2, MinIO, etc)."""

from typing import Any, Dict, Optional

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from catalog_media.storage.base import (
    BaseStorageDriver,
    DuplicatePathError,
    StorageConnectionError,
    StorageError,
)

# Error codes S3-compatible services return when IfNoneMatch="*" finds an existing key
DUPLICATE_ERROR_CODES = {"PreconditionFailed", "412", "ConditionalRequestConflict"}
NOT_FOUND_ERROR_CODES = {"NoSuchKey", "404", "NotFound"}


class S3StorageDriver(BaseStorageDriver):
    """S3-compatible storage driver.

    Supports:
    - AWS S3
    - Cloudflare R2
    - MinIO
    - Any S3-compatible API with conditional writes

    Configuration:
        aws_access_key_id: Access key
        aws_secret_access_key: Secret key
        bucket_name: Bucket name
        region: AWS region (default: us-east-1)
        endpoint_url: Custom endpoint URL (for R2, MinIO, etc)
        public_base_url: URL prefix objects are publicly served under (optional)

    Example:
        >>> config = {
        ...     "aws_access_key_id": "AKIA...",
        ...     "aws_secret_access_key": "...",
        ...     "bucket_name": "product-images",
        ...     "region": "us-east-1"
        ... }
        >>> driver = S3StorageDriver(config)
        >>> url = await driver.put_object("12/original/1700000000000-a1b2c3.jpg", content)
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.region = config.get("region", "us-east-1")
        self.endpoint_url = config.get("endpoint_url")

        # S3 client configuration
        self.s3_config = {
            "aws_access_key_id": config["aws_access_key_id"],
            "aws_secret_access_key": config["aws_secret_access_key"],
            "region_name": self.region,
        }

        # Support custom endpoint (Cloudflare R2, MinIO, etc)
        if self.endpoint_url:
            self.s3_config["endpoint_url"] = self.endpoint_url

        self.session = aioboto3.Session()

    @staticmethod
    def _error_code(error: ClientError) -> str:
        return str(error.response.get("Error", {}).get("Code", ""))

    async def put_object(
        self,
        file_path: str,
        content: bytes,
        content_type: Optional[str] = None,
        upsert: bool = False,
    ) -> str:
        """Upload object to S3.

        Non-upsert writes send ``IfNoneMatch="*"`` so S3 rejects the write
        when the key already exists.
        """
        key = file_path.strip("/")
        params: Dict[str, Any] = {
            "Bucket": self.bucket_name,
            "Key": key,
            "Body": content,
            "CacheControl": "max-age=3600",
        }
        if content_type:
            params["ContentType"] = content_type
        if not upsert:
            params["IfNoneMatch"] = "*"

        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                await s3.put_object(**params)
        except ClientError as e:
            if self._error_code(e) in DUPLICATE_ERROR_CODES:
                raise DuplicatePathError(
                    f"Object already exists: {key}", path=key, bucket=self.bucket_name
                ) from e
            raise StorageError(
                f"Failed to upload file: {e}", path=key, bucket=self.bucket_name
            ) from e
        except BotoCoreError as e:
            raise StorageConnectionError(
                f"Failed to upload file: {e}", path=key, bucket=self.bucket_name
            ) from e

        return self.get_public_url(key)

    def get_public_url(self, file_path: str) -> str:
        """Build the public URL of an object.

        Uses ``public_base_url`` when configured, then the custom endpoint in
        path style, then the AWS virtual-hosted style URL.
        """
        key = file_path.strip("/")
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    async def delete_object(self, file_path: str) -> None:
        """Delete object from S3. S3 treats deleting a missing key as success."""
        key = file_path.strip("/")

        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                await s3.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if self._error_code(e) in NOT_FOUND_ERROR_CODES:
                return
            raise StorageError(
                f"Failed to delete file: {e}", path=key, bucket=self.bucket_name
            ) from e
        except BotoCoreError as e:
            raise StorageConnectionError(
                f"Failed to delete file: {e}", path=key, bucket=self.bucket_name
            ) from e

    async def download_file(self, file_path: str) -> bytes:
        """Download object from S3."""
        key = file_path.strip("/")

        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                response = await s3.get_object(Bucket=self.bucket_name, Key=key)
                async with response["Body"] as stream:
                    return await stream.read()

        except ClientError as e:
            if self._error_code(e) in NOT_FOUND_ERROR_CODES:
                raise FileNotFoundError(f"File not found: {file_path}")
            raise StorageError(
                f"Failed to download file: {e}", path=key, bucket=self.bucket_name
            ) from e

    async def exists(self, file_path: str) -> bool:
        key = file_path.strip("/")

        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                await s3.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            if self._error_code(e) in NOT_FOUND_ERROR_CODES:
                return False
            raise StorageError(
                f"Failed to check file: {e}", path=key, bucket=self.bucket_name
            ) from e

    async def test_connection(self) -> bool:
        """Test S3 connection by checking if bucket exists.

        Returns:
            True if bucket is accessible
        """
        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                await s3.head_bucket(Bucket=self.bucket_name)
            return True

        except ClientError as e:
            error_code = self._error_code(e)
            if error_code in ("404", "NoSuchBucket"):
                raise StorageConnectionError(
                    f"Bucket not found: {self.bucket_name}", bucket=self.bucket_name
                )
            elif error_code == "403":
                raise StorageConnectionError(
                    f"Access denied to bucket: {self.bucket_name}", bucket=self.bucket_name
                )
            return False
