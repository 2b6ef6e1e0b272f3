"""API v1 router."""

from fastapi import APIRouter

from catalog_media.api.v1.endpoints import health, product_images, user_avatars

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(product_images.router, tags=["product-images"])
api_router.include_router(user_avatars.router, tags=["user-avatars"])
