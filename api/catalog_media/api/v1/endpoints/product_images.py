"""Product image endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from catalog_media.api.deps import get_product_images_pipeline, to_http_exception
from catalog_media.schemas.asset import (
    ProductImageListResponse,
    ProductImageResponse,
    ProductImageUpdate,
    ReorderRequest,
)
from catalog_media.services.asset_pipeline import AssetPipeline, IncomingImage, UploadOptions
from catalog_media.services.errors import MediaPipelineError
from catalog_media.storage.base import StorageError

router = APIRouter()
logger = logging.getLogger(__name__)

PIPELINE_ERRORS = (MediaPipelineError, StorageError, ValueError)


def _list_response(product_id: int, items) -> ProductImageListResponse:
    featured_id = next((item.id for item in items if item.is_featured), None)
    return ProductImageListResponse(
        product_id=product_id,
        items=items,
        featured_id=featured_id,
        total=len(items),
    )


@router.get("/products/{product_id}/images", response_model=ProductImageListResponse)
def list_product_images(
    product_id: int,
    pipeline: AssetPipeline = Depends(get_product_images_pipeline),
):
    """List a product's images in display order.

    Exactly one image is marked featured whenever the product has images.
    """
    try:
        items = pipeline.list_by_owner(product_id)
    except PIPELINE_ERRORS as e:
        logger.error(f"Failed to list images of product {product_id}: {e}", exc_info=True)
        raise to_http_exception(e) from e
    return _list_response(product_id, items)


@router.post(
    "/products/{product_id}/images",
    response_model=ProductImageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_product_image(
    product_id: int,
    file: UploadFile = File(..., description="Image file"),
    alt_text: Optional[str] = Form(None, description="Alternative text"),
    sort_order: Optional[int] = Form(None, description="Position, defaults to after the last image"),
    is_featured: bool = Form(False, description="Make this the featured image"),
    compress: bool = Form(True, description="Resize and re-encode before storing"),
    pipeline: AssetPipeline = Depends(get_product_images_pipeline),
):
    """Upload an image for a product.

    - Validates and optionally compresses the image
    - Stores the bytes under a fresh key in the product images bucket
    - Records the image; the first image of a product becomes featured
    """
    content = await file.read()
    image = IncomingImage(content=content, filename=file.filename, content_type=file.content_type)
    options = UploadOptions(
        compress=compress,
        alt_text=alt_text,
        sort_order=sort_order,
        is_featured=is_featured,
    )

    try:
        asset = await pipeline.upload(product_id, image, options)
    except PIPELINE_ERRORS as e:
        logger.warning(f"Upload for product {product_id} failed: {e}")
        raise to_http_exception(e) from e

    return ProductImageResponse.model_validate(asset)


@router.put("/products/{product_id}/images/order", response_model=ProductImageListResponse)
def reorder_product_images(
    product_id: int,
    request: ReorderRequest,
    pipeline: AssetPipeline = Depends(get_product_images_pipeline),
):
    """Set the display order of a product's images.

    ``asset_ids`` must list every image of the product exactly once.
    """
    try:
        items = pipeline.reorder(product_id, request.asset_ids)
    except PIPELINE_ERRORS as e:
        logger.warning(f"Reorder for product {product_id} failed: {e}")
        raise to_http_exception(e) from e
    return _list_response(product_id, items)


@router.delete("/products/{product_id}/images", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product_images(
    product_id: int,
    pipeline: AssetPipeline = Depends(get_product_images_pipeline),
):
    """Delete every image of a product."""
    try:
        await pipeline.delete_all_for_owner(product_id)
    except PIPELINE_ERRORS as e:
        logger.error(f"Bulk delete for product {product_id} failed: {e}", exc_info=True)
        raise to_http_exception(e) from e


@router.get("/product-images/{asset_id}", response_model=ProductImageResponse)
def get_product_image(
    asset_id: int,
    pipeline: AssetPipeline = Depends(get_product_images_pipeline),
):
    """Get a product image by ID."""
    try:
        asset = pipeline.get(asset_id)
    except PIPELINE_ERRORS as e:
        raise to_http_exception(e) from e
    return ProductImageResponse.model_validate(asset)


@router.patch("/product-images/{asset_id}", response_model=ProductImageResponse)
def update_product_image(
    asset_id: int,
    update_data: ProductImageUpdate,
    pipeline: AssetPipeline = Depends(get_product_images_pipeline),
):
    """Update alt text or make the image featured."""
    try:
        asset = None
        if "alt_text" in update_data.model_fields_set:
            asset = pipeline.update(asset_id, alt_text=update_data.alt_text)
        if update_data.is_featured:
            asset = pipeline.set_featured(asset_id)
        if asset is None:
            asset = pipeline.get(asset_id)
    except PIPELINE_ERRORS as e:
        logger.warning(f"Update of product image {asset_id} failed: {e}")
        raise to_http_exception(e) from e

    return ProductImageResponse.model_validate(asset)


@router.post("/product-images/{asset_id}/featured", response_model=ProductImageResponse)
def feature_product_image(
    asset_id: int,
    pipeline: AssetPipeline = Depends(get_product_images_pipeline),
):
    """Make an image the product's featured image."""
    try:
        asset = pipeline.set_featured(asset_id)
    except PIPELINE_ERRORS as e:
        logger.warning(f"Featuring product image {asset_id} failed: {e}")
        raise to_http_exception(e) from e
    return ProductImageResponse.model_validate(asset)


@router.put("/product-images/{asset_id}/file", response_model=ProductImageResponse)
async def replace_product_image_file(
    asset_id: int,
    file: UploadFile = File(..., description="Image file"),
    compress: bool = Form(True, description="Resize and re-encode before storing"),
    pipeline: AssetPipeline = Depends(get_product_images_pipeline),
):
    """Replace the bytes of an image, keeping its position and flags."""
    content = await file.read()
    image = IncomingImage(content=content, filename=file.filename, content_type=file.content_type)

    try:
        asset = await pipeline.replace(asset_id, image, compress_image=compress)
    except PIPELINE_ERRORS as e:
        logger.warning(f"Replace of product image {asset_id} failed: {e}")
        raise to_http_exception(e) from e

    return ProductImageResponse.model_validate(asset)


@router.delete("/product-images/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product_image(
    asset_id: int,
    pipeline: AssetPipeline = Depends(get_product_images_pipeline),
):
    """Delete a product image. Deleting a missing image succeeds."""
    try:
        await pipeline.delete(asset_id)
    except PIPELINE_ERRORS as e:
        logger.error(f"Delete of product image {asset_id} failed: {e}", exc_info=True)
        raise to_http_exception(e) from e
