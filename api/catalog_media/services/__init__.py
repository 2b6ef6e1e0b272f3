"""Image asset services."""

from catalog_media.services.errors import MediaPipelineError
from catalog_media.services.image_metadata import extract_image_metadata
from catalog_media.services.image_compressor import compress
from catalog_media.services.asset_pipeline import AssetPipeline, IncomingImage, UploadOptions

__all__ = [
    "MediaPipelineError",
    "extract_image_metadata",
    "compress",
    "AssetPipeline",
    "IncomingImage",
    "UploadOptions",
]
