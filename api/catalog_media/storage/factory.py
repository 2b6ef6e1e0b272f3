"""Storage driver factory."""

from typing import Optional

from catalog_media.config import Settings, settings
from catalog_media.storage.base import BaseStorageDriver, StorageError
from catalog_media.storage.local_driver import LocalStorageDriver
from catalog_media.storage.s3_driver import S3StorageDriver


def get_storage_driver(bucket_name: str, app_settings: Optional[Settings] = None) -> BaseStorageDriver:
    """Get storage driver for a bucket from application settings.

    Args:
        bucket_name: Bucket the driver writes to (product-images, user-avatars)
        app_settings: Settings to read, defaults to the global settings

    Returns:
        Configured storage driver instance

    Raises:
        StorageError: If the provider is unsupported or misconfigured

    Example:
        >>> driver = get_storage_driver(settings.product_images_bucket)
        >>> await driver.put_object("12/original/1700000000000-a1b2c3.jpg", content)
    """
    app_settings = app_settings or settings

    credentials = None
    if app_settings.s3_access_key_id or app_settings.s3_secret_access_key:
        credentials = {
            "aws_access_key_id": app_settings.s3_access_key_id,
            "aws_secret_access_key": app_settings.s3_secret_access_key,
            "region": app_settings.s3_region,
        }
        if app_settings.s3_endpoint_url:
            credentials["endpoint_url"] = app_settings.s3_endpoint_url

    return get_storage_driver_from_config(
        provider=app_settings.storage_provider,
        bucket_name=bucket_name,
        base_path=app_settings.storage_base_path,
        public_base_url=app_settings.storage_public_base_url,
        credentials=credentials,
    )


def get_storage_driver_from_config(
    provider: str,
    bucket_name: str,
    base_path: str = "",
    public_base_url: Optional[str] = None,
    credentials: Optional[dict] = None,
) -> BaseStorageDriver:
    """Get storage driver from explicit configuration (for testing).

    Args:
        provider: Storage provider (local, s3)
        bucket_name: Bucket the driver writes to
        base_path: Root directory for the local provider
        public_base_url: URL prefix objects are served under
        credentials: Optional credentials dict

    Returns:
        Configured storage driver instance

    Example:
        >>> driver = get_storage_driver_from_config(
        ...     provider="local",
        ...     bucket_name="product-images",
        ...     base_path="/tmp/media",
        ... )
    """
    driver_config = {
        "base_path": base_path,
        "bucket_name": bucket_name,
        "public_base_url": public_base_url,
    }

    if credentials:
        driver_config.update(credentials)

    provider = provider.lower()

    if provider == "local":
        return LocalStorageDriver(driver_config)

    elif provider == "s3":
        # Validate required S3 fields
        required_fields = ["aws_access_key_id", "aws_secret_access_key"]
        missing = [f for f in required_fields if not driver_config.get(f)]
        if missing:
            raise StorageError(f"Missing required S3 configuration: {missing}", bucket=bucket_name)
        return S3StorageDriver(driver_config)

    else:
        raise StorageError(f"Unsupported storage provider: {provider}", bucket=bucket_name)
