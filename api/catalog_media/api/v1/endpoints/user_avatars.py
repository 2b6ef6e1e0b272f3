"""User avatar endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from catalog_media.api.deps import get_user_avatars_pipeline, to_http_exception
from catalog_media.schemas.asset import UserAvatarResponse, UserAvatarUpdate
from catalog_media.services.asset_pipeline import AssetPipeline, IncomingImage, UploadOptions
from catalog_media.services.errors import MediaPipelineError
from catalog_media.services.viewport import CropRect, CropSelection, ImageSize, NormalizedViewport
from catalog_media.storage.base import StorageError

router = APIRouter()
logger = logging.getLogger(__name__)

PIPELINE_ERRORS = (MediaPipelineError, StorageError, ValueError)


def _get_avatar_or_404(pipeline: AssetPipeline, user_id: int):
    avatar = pipeline.find_by_owner(user_id)
    if avatar is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} has no avatar",
        )
    return avatar


def build_crop_selection(
    crop_x: Optional[float],
    crop_y: Optional[float],
    crop_width: Optional[float],
    crop_height: Optional[float],
    display_width: Optional[float],
    display_height: Optional[float],
) -> Optional[CropSelection]:
    """Build a crop selection from form fields.

    The four crop fields go together. The display size is optional; without
    it the crop is taken to be in original pixels.

    Raises:
        ValueError: If only some of the crop or display fields are given
    """
    crop_fields = (crop_x, crop_y, crop_width, crop_height)
    display_fields = (display_width, display_height)

    if all(value is None for value in crop_fields):
        if any(value is not None for value in display_fields):
            raise ValueError("display_width and display_height require a crop rectangle")
        return None
    if any(value is None for value in crop_fields):
        raise ValueError("crop_x, crop_y, crop_width and crop_height must be given together")
    if (display_width is None) != (display_height is None):
        raise ValueError("display_width and display_height must be given together")

    displayed = None
    if display_width is not None:
        displayed = ImageSize(display_width, display_height)
    return CropSelection(rect=CropRect(crop_x, crop_y, crop_width, crop_height), displayed=displayed)


@router.get("/users/{user_id}/avatar", response_model=UserAvatarResponse)
def get_user_avatar(
    user_id: int,
    pipeline: AssetPipeline = Depends(get_user_avatars_pipeline),
):
    """Get a user's avatar."""
    try:
        avatar = _get_avatar_or_404(pipeline, user_id)
    except PIPELINE_ERRORS as e:
        raise to_http_exception(e) from e
    return UserAvatarResponse.model_validate(avatar)


@router.post("/users/{user_id}/avatar", response_model=UserAvatarResponse)
async def upload_user_avatar(
    user_id: int,
    file: UploadFile = File(..., description="Image file"),
    compress: bool = Form(True, description="Resize and re-encode before storing"),
    crop_x: Optional[float] = Form(None, description="Crop left edge in displayed pixels"),
    crop_y: Optional[float] = Form(None, description="Crop top edge in displayed pixels"),
    crop_width: Optional[float] = Form(None, description="Crop width in displayed pixels"),
    crop_height: Optional[float] = Form(None, description="Crop height in displayed pixels"),
    display_width: Optional[float] = Form(None, description="Width the image was shown at while cropping"),
    display_height: Optional[float] = Form(None, description="Height the image was shown at while cropping"),
    pipeline: AssetPipeline = Depends(get_user_avatars_pipeline),
):
    """Upload a user's avatar, replacing the current one if any.

    The optional crop is stored as a normalized viewport relative to the
    original image.
    """
    content = await file.read()
    image = IncomingImage(content=content, filename=file.filename, content_type=file.content_type)

    try:
        crop = build_crop_selection(crop_x, crop_y, crop_width, crop_height, display_width, display_height)
        avatar = await pipeline.upload(user_id, image, UploadOptions(compress=compress, crop=crop))
    except PIPELINE_ERRORS as e:
        logger.warning(f"Avatar upload for user {user_id} failed: {e}")
        raise to_http_exception(e) from e

    return UserAvatarResponse.model_validate(avatar)


@router.patch("/users/{user_id}/avatar", response_model=UserAvatarResponse)
def update_user_avatar(
    user_id: int,
    update_data: UserAvatarUpdate,
    pipeline: AssetPipeline = Depends(get_user_avatars_pipeline),
):
    """Update a user's avatar alt text or crop."""
    changes = {}
    if "alt_text" in update_data.model_fields_set:
        changes["alt_text"] = update_data.alt_text
    if "viewport" in update_data.model_fields_set:
        viewport = update_data.viewport
        changes["viewport"] = (
            NormalizedViewport(cx=viewport.x, cy=viewport.y, size=viewport.size) if viewport else None
        )

    try:
        avatar = _get_avatar_or_404(pipeline, user_id)
        avatar = pipeline.update(avatar.id, **changes)
    except PIPELINE_ERRORS as e:
        logger.warning(f"Avatar update for user {user_id} failed: {e}")
        raise to_http_exception(e) from e

    return UserAvatarResponse.model_validate(avatar)


@router.delete("/users/{user_id}/avatar", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_avatar(
    user_id: int,
    pipeline: AssetPipeline = Depends(get_user_avatars_pipeline),
):
    """Delete a user's avatar. Deleting a missing avatar succeeds."""
    try:
        avatar = pipeline.find_by_owner(user_id)
        if avatar is not None:
            await pipeline.delete(avatar.id)
    except PIPELINE_ERRORS as e:
        logger.error(f"Avatar delete for user {user_id} failed: {e}", exc_info=True)
        raise to_http_exception(e) from e
