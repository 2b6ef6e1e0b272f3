"""Avatar viewport mapping.

A crop rectangle is drawn on a scaled-down preview of the uploaded image. The
stored viewport is resolution independent: a normalized center and a single
normalized size relative to the original, unscaled image. Only one zoom level
is stored, so ``size`` is the crop width over the longer original side.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ImageSize:
    """Width and height in pixels."""

    width: float
    height: float


@dataclass(frozen=True)
class CropRect:
    """Rectangle in displayed (on-screen) pixel space."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class NormalizedViewport:
    """Crop center and size normalized to 0..1 on the original image."""

    cx: float
    cy: float
    size: float


@dataclass(frozen=True)
class CropSelection:
    """A crop rectangle together with the size of the preview it was drawn on.

    Without a preview size the rectangle is taken to be in original pixels.
    """

    rect: CropRect
    displayed: Optional[ImageSize] = None


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _require_positive(size: ImageSize, name: str) -> None:
    if size.width <= 0 or size.height <= 0:
        raise ValueError(f"{name} size must be positive, got {size.width}x{size.height}")


def to_normalized_viewport(original: ImageSize, displayed: ImageSize, rect: CropRect) -> NormalizedViewport:
    """Map a displayed-space crop rectangle to a normalized viewport.

    Args:
        original: Size of the original image
        displayed: Size the image was rendered at while cropping
        rect: Crop rectangle in displayed pixels

    Returns:
        NormalizedViewport relative to ``original``

    Raises:
        ValueError: If either size is not positive

    Examples:
        >>> to_normalized_viewport(
        ...     ImageSize(1000, 2000), ImageSize(500, 1000), CropRect(100, 100, 100, 100)
        ... )
        NormalizedViewport(cx=0.3, cy=0.15, size=0.1)
    """
    _require_positive(original, "original")
    _require_positive(displayed, "displayed")

    scale_x = original.width / displayed.width
    scale_y = original.height / displayed.height

    ax = rect.x * scale_x
    ay = rect.y * scale_y
    aw = rect.width * scale_x
    ah = rect.height * scale_y

    return NormalizedViewport(
        cx=clamp01((ax + aw / 2) / original.width),
        cy=clamp01((ay + ah / 2) / original.height),
        size=clamp01(aw / max(original.width, original.height)),
    )


def from_normalized_viewport(original: ImageSize, displayed: ImageSize, viewport: NormalizedViewport) -> CropRect:
    """Map a normalized viewport back to a displayed-space crop rectangle.

    The stored size is a single scalar, so the rectangle is reconstructed as
    a square in original pixel space.

    Raises:
        ValueError: If either size is not positive
    """
    _require_positive(original, "original")
    _require_positive(displayed, "displayed")

    scale_x = original.width / displayed.width
    scale_y = original.height / displayed.height

    side = viewport.size * max(original.width, original.height)
    ax = viewport.cx * original.width - side / 2
    ay = viewport.cy * original.height - side / 2

    return CropRect(
        x=ax / scale_x,
        y=ay / scale_y,
        width=side / scale_x,
        height=side / scale_y,
    )
