"""Image asset models."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import synonym

from catalog_media.database import Base


class AssetColumnsMixin:
    """Columns shared by every stored image asset."""

    id = Column(Integer, primary_key=True, index=True)
    storage_path = Column(String(1000), nullable=False, unique=True)
    url = Column(String(2000), nullable=False)
    alt_text = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_featured = Column(Boolean, nullable=False, default=False)
    file_size = Column(Integer, nullable=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    mime_type = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ProductImage(AssetColumnsMixin, Base):
    """Ordered image belonging to a product."""

    __tablename__ = "product_images"

    product_id = Column(Integer, nullable=False, index=True)
    owner_id = synonym("product_id")

    def __repr__(self):
        return (
            f"<ProductImage(id={self.id}, product_id={self.product_id}, "
            f"sort_order={self.sort_order}, is_featured={self.is_featured})>"
        )


class UserAvatar(AssetColumnsMixin, Base):
    """Avatar image belonging to a user, at most one per user."""

    __tablename__ = "user_avatars"

    user_id = Column(Integer, nullable=False, unique=True, index=True)
    owner_id = synonym("user_id")

    # Normalized crop center and size relative to the original upload; null shows the whole image
    viewport_x = Column(Float, nullable=True)
    viewport_y = Column(Float, nullable=True)
    viewport_size = Column(Float, nullable=True)

    def __repr__(self):
        return f"<UserAvatar(id={self.id}, user_id={self.user_id}, path={self.storage_path})>"
