"""Main FastAPI application."""

import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catalog_media.api.deps import get_db, get_product_images_storage, get_user_avatars_storage
from catalog_media.api.v1 import api_router
from catalog_media.config import settings
from catalog_media.storage.base import BaseStorageDriver, StorageError

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Catalog Media Service",
    description="Product image and user avatar storage",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/v1")

# Local blobs are served from the storage root; URLs are {prefix}/{bucket}/{path}
if settings.storage_provider.lower() == "local":
    app.mount(
        settings.media_mount_path,
        StaticFiles(directory=settings.storage_base_path, check_dir=False),
        name="media",
    )


async def _storage_status(driver: BaseStorageDriver) -> str:
    try:
        return "connected" if await driver.test_connection() else "disconnected"
    except (StorageError, OSError) as e:
        logger.warning(f"Storage check failed for bucket {driver.bucket_name}: {e}")
        return f"error: {str(e)}"


@app.get("/health")
async def health_check(
    db: Session = Depends(get_db),
    product_images_storage: BaseStorageDriver = Depends(get_product_images_storage),
    user_avatars_storage: BaseStorageDriver = Depends(get_user_avatars_storage),
):
    """Health check endpoint."""
    # Check database
    db_status = "disconnected"
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        logger.warning(f"Database check failed: {e}")
        db_status = f"error: {str(e)}"

    # Check blob store
    storage_status = {
        product_images_storage.bucket_name: await _storage_status(product_images_storage),
        user_avatars_storage.bucket_name: await _storage_status(user_avatars_storage),
    }

    healthy = db_status == "connected" and all(s == "connected" for s in storage_status.values())

    return {
        "status": "ok" if healthy else "degraded",
        "db": db_status,
        "storage": storage_status,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "catalog_media.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
