"""Image compression before storage.

Images are downscaled to fit the configured bounds (never upscaled) and
re-encoded at the requested quality. When a byte budget is set and the first
encode exceeds it, the image is re-encoded once at a lower quality and the
result is accepted whether or not it fits. The cap is best-effort only.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageOps

from catalog_media.services.errors import CompressionError
from catalog_media.services.image_metadata import FORMAT_MIME_TYPES, open_image

logger = logging.getLogger(__name__)

# Formats written back as-is; everything else becomes JPEG
PASSTHROUGH_FORMATS = {"JPEG", "PNG", "WEBP"}

RETRY_QUALITY_STEP = 0.2
MIN_QUALITY = 0.1


@dataclass
class CompressionConstraints:
    """Bounds applied by :func:`compress`."""

    max_width: int
    max_height: int
    quality: float  # 0..1
    max_size_bytes: Optional[int] = None


@dataclass
class CompressedImage:
    """Encoded image and the dimensions of what was encoded."""

    content: bytes
    width: int
    height: int
    mime_type: str

    @property
    def size_bytes(self) -> int:
        return len(self.content)


def scale_factor(width: int, height: int, max_width: int, max_height: int) -> float:
    """Return the downscale factor that fits ``width x height`` in the bounds."""
    return min(max_width / width, max_height / height, 1.0)


def _encoder_quality(quality: float) -> int:
    return max(1, min(100, int(round(quality * 100))))


def _encode(image: Image.Image, image_format: str, quality: float) -> bytes:
    buffer = io.BytesIO()
    if image_format == "PNG":
        # PNG is lossless, quality does not apply
        image.save(buffer, format="PNG", optimize=True)
    else:
        image.save(buffer, format=image_format, quality=_encoder_quality(quality))
    return buffer.getvalue()


def compress(content: bytes, constraints: CompressionConstraints) -> CompressedImage:
    """Resize and re-encode an image.

    Args:
        content: Original image bytes
        constraints: Size and quality bounds

    Returns:
        CompressedImage with the encoded bytes and their pixel dimensions

    Raises:
        DecodeError: If the input cannot be decoded
        CompressionError: If encoding fails
    """
    source = open_image(content)
    source_format = source.format if source.format in PASSTHROUGH_FORMATS else "JPEG"

    image = ImageOps.exif_transpose(source)
    factor = scale_factor(image.width, image.height, constraints.max_width, constraints.max_height)
    if factor < 1.0:
        new_size = (max(1, int(image.width * factor)), max(1, int(image.height * factor)))
        image = image.resize(new_size, Image.Resampling.LANCZOS)

    if source_format == "JPEG" and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    elif source_format == "WEBP" and image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA")

    try:
        encoded = _encode(image, source_format, constraints.quality)

        if constraints.max_size_bytes is not None and len(encoded) > constraints.max_size_bytes:
            retry_quality = max(MIN_QUALITY, constraints.quality - RETRY_QUALITY_STEP)
            logger.info(
                f"Encoded size {len(encoded)} exceeds cap {constraints.max_size_bytes}, "
                f"re-encoding at quality {retry_quality:.2f}"
            )
            encoded = _encode(image, source_format, retry_quality)
    except (OSError, ValueError) as e:
        raise CompressionError(f"Failed to encode image: {e}") from e

    logger.debug(
        f"Compressed {source.width}x{source.height} ({len(content)} bytes) "
        f"to {image.width}x{image.height} ({len(encoded)} bytes) as {source_format}"
    )

    return CompressedImage(
        content=encoded,
        width=image.width,
        height=image.height,
        mime_type=FORMAT_MIME_TYPES[source_format],
    )
