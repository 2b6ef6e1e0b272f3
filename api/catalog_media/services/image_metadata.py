"""Image metadata extraction."""

import io
from typing import Any, Dict, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from catalog_media.services.errors import DecodeError

FORMAT_MIME_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}

MIME_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def open_image(image_bytes: bytes) -> Image.Image:
    """Open and fully decode image bytes.

    Raises:
        DecodeError: If the bytes are empty or not a readable image
    """
    if not image_bytes:
        raise DecodeError("Image is empty")

    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Failed to decode image: {e}") from e
    return img


def extract_image_metadata(image_bytes: bytes) -> Dict[str, Any]:
    """Extract metadata from image bytes.

    Width and height are reported after applying the EXIF orientation, which
    is what browsers render.

    Args:
        image_bytes: Image content as bytes

    Returns:
        Dict with metadata:
            - width: Image width in pixels
            - height: Image height in pixels
            - format: Image format (PNG, JPEG, etc)
            - mime_type: MIME type derived from the format, None if unknown
            - mode: Color mode (RGB, RGBA, etc)
            - size_bytes: File size in bytes
            - has_transparency: Whether image has transparency
            - aspect_ratio: width / height rounded to 3 places

    Raises:
        DecodeError: If image cannot be opened

    Examples:
        >>> with open("ring.jpg", "rb") as f:
        ...     metadata = extract_image_metadata(f.read())
        >>> metadata["width"], metadata["mime_type"]
        (1200, 'image/jpeg')
    """
    img = open_image(image_bytes)
    image_format = img.format or "UNKNOWN"
    oriented = ImageOps.exif_transpose(img)

    has_transparency = oriented.mode in ("RGBA", "LA") or (
        oriented.mode == "P" and "transparency" in oriented.info
    )

    return {
        "width": oriented.width,
        "height": oriented.height,
        "format": image_format,
        "mime_type": FORMAT_MIME_TYPES.get(image_format),
        "mode": oriented.mode,
        "size_bytes": len(image_bytes),
        "has_transparency": has_transparency,
        "aspect_ratio": round(oriented.width / oriented.height, 3) if oriented.height else None,
    }


def probe_dimensions(image_bytes: bytes) -> Tuple[int, int]:
    """Return ``(width, height)`` of the image as it will be displayed."""
    metadata = extract_image_metadata(image_bytes)
    return metadata["width"], metadata["height"]
