"""API dependencies."""

from typing import Generator

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from catalog_media.database import SessionLocal
from catalog_media.services.asset_kinds import product_images_kind, user_avatars_kind
from catalog_media.services.asset_pipeline import AssetPipeline
from catalog_media.services.errors import (
    AssetNotFoundError,
    CompressionError,
    InvalidReorderError,
    MediaPipelineError,
    UnsupportedMediaTypeError,
)
from catalog_media.storage.base import BaseStorageDriver, DuplicatePathError, StorageError
from catalog_media.storage.factory import get_storage_driver


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_product_images_storage() -> BaseStorageDriver:
    """Get storage driver for the product images bucket."""
    return get_storage_driver(product_images_kind().bucket_name)


def get_user_avatars_storage() -> BaseStorageDriver:
    """Get storage driver for the user avatars bucket."""
    return get_storage_driver(user_avatars_kind().bucket_name)


def get_product_images_pipeline(
    db: Session = Depends(get_db),
    storage: BaseStorageDriver = Depends(get_product_images_storage),
) -> AssetPipeline:
    return AssetPipeline(db, product_images_kind(), storage)


def get_user_avatars_pipeline(
    db: Session = Depends(get_db),
    storage: BaseStorageDriver = Depends(get_user_avatars_storage),
) -> AssetPipeline:
    return AssetPipeline(db, user_avatars_kind(), storage)


def to_http_exception(error: Exception) -> HTTPException:
    """Map a pipeline or storage error to an HTTP error.

    The error message is passed through as ``detail``.
    """
    if isinstance(error, UnsupportedMediaTypeError):
        status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    elif isinstance(error, (CompressionError, InvalidReorderError)):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, AssetNotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, DuplicatePathError):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(error, StorageError):
        status_code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(error, MediaPipelineError):
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    elif isinstance(error, ValueError):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=status_code, detail=str(error))
