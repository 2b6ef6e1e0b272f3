"""SQLAlchemy models."""

from catalog_media.database import Base
from catalog_media.models.asset import ProductImage, UserAvatar

__all__ = [
    "Base",
    "ProductImage",
    "UserAvatar",
]
