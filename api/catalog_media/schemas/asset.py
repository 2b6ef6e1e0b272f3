"""Image asset schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AssetResponse(BaseModel):
    """Schema for a stored image asset."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int = Field(..., description="Product or user the asset belongs to")
    storage_path: str = Field(..., description="Object key in the blob store")
    url: str = Field(..., description="Public URL of the stored bytes")
    alt_text: Optional[str] = None
    sort_order: int
    is_featured: bool
    file_size: Optional[int] = Field(None, description="Size in bytes of the stored image")
    width: Optional[int] = Field(None, description="Width in pixels of the stored image")
    height: Optional[int] = Field(None, description="Height in pixels of the stored image")
    mime_type: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProductImageResponse(AssetResponse):
    """Schema for a product image."""

    product_id: int


class ProductImageListResponse(BaseModel):
    """Ordered images of one product."""

    product_id: int
    items: List[ProductImageResponse] = Field(..., description="Images in display order")
    featured_id: Optional[int] = Field(None, description="ID of the featured image")
    total: int


class ViewportSchema(BaseModel):
    """Normalized avatar crop, relative to the original upload."""

    x: float = Field(..., ge=0.0, le=1.0, description="Crop center, horizontal")
    y: float = Field(..., ge=0.0, le=1.0, description="Crop center, vertical")
    size: float = Field(..., ge=0.0, le=1.0, description="Crop width over the longer original side")


class UserAvatarResponse(AssetResponse):
    """Schema for a user avatar."""

    user_id: int
    viewport_x: Optional[float] = None
    viewport_y: Optional[float] = None
    viewport_size: Optional[float] = None


class ProductImageUpdate(BaseModel):
    """Schema for updating a product image."""

    alt_text: Optional[str] = Field(None, max_length=1000)
    is_featured: Optional[bool] = Field(
        None, description="Only true is accepted; another image must be featured to unset this one"
    )

    @model_validator(mode="after")
    def check_fields(self):
        if not self.model_fields_set:
            raise ValueError("No update data provided")
        if self.is_featured is False:
            raise ValueError("is_featured can only be set to true")
        return self


class UserAvatarUpdate(BaseModel):
    """Schema for updating a user avatar."""

    alt_text: Optional[str] = Field(None, max_length=1000)
    viewport: Optional[ViewportSchema] = Field(None, description="New crop, null shows the whole image")

    @model_validator(mode="after")
    def check_fields(self):
        if not self.model_fields_set:
            raise ValueError("No update data provided")
        return self


class ReorderRequest(BaseModel):
    """Desired display order, as a permutation of the owner's asset IDs."""

    asset_ids: List[int] = Field(..., description="Asset IDs in display order")
