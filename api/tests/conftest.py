"""Pytest configuration and fixtures."""

import io
import itertools
import os
import tempfile

# Settings are read at import time; keep the test run off Postgres and the repo tree
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite://")
os.environ.setdefault("STORAGE_PROVIDER", "local")
os.environ.setdefault("STORAGE_BASE_PATH", tempfile.mkdtemp(prefix="catalog-media-"))

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from catalog_media.api.deps import get_db, get_product_images_storage, get_user_avatars_storage
from catalog_media.database import Base
from catalog_media.main import app
from catalog_media.services.asset_kinds import product_images_kind, user_avatars_kind
from catalog_media.services.asset_pipeline import AssetPipeline
from catalog_media.storage.local_driver import LocalStorageDriver


def make_image_bytes(width=64, height=48, image_format="JPEG", color=(200, 30, 30), mode="RGB", exif=None):
    """Encode a solid-color test image."""
    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    save_kwargs = {"format": image_format}
    if exif is not None:
        save_kwargs["exif"] = exif
    image.save(buffer, **save_kwargs)
    return buffer.getvalue()


@pytest.fixture
def image_bytes():
    """Factory for encoded test images."""
    return make_image_bytes


@pytest.fixture
def test_engine():
    """Create test database engine."""
    # One shared in-memory SQLite connection per test
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def test_db(test_engine):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def storage_root(tmp_path):
    return tmp_path / "media"


@pytest.fixture
def product_storage(storage_root):
    return LocalStorageDriver({
        "base_path": str(storage_root),
        "bucket_name": "product-images",
        "public_base_url": "/media",
    })


@pytest.fixture
def avatar_storage(storage_root):
    return LocalStorageDriver({
        "base_path": str(storage_root),
        "bucket_name": "user-avatars",
        "public_base_url": "/media",
    })


@pytest.fixture
def clock():
    """Strictly increasing millisecond clock."""
    ticks = itertools.count(1_700_000_000_000)
    return lambda: next(ticks)


@pytest.fixture
def product_pipeline(test_db, product_storage, clock):
    return AssetPipeline(test_db, product_images_kind(), product_storage, clock=clock)


@pytest.fixture
def avatar_pipeline(test_db, avatar_storage, clock):
    return AssetPipeline(test_db, user_avatars_kind(), avatar_storage, clock=clock)


@pytest.fixture
def client_with_db(test_db, product_storage, avatar_storage):
    """Create a test client with database and storage overrides."""

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_product_images_storage] = lambda: product_storage
    app.dependency_overrides[get_user_avatars_storage] = lambda: avatar_storage
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
