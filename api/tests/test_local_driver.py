"""Tests for the local filesystem storage driver."""

import pytest

from catalog_media.storage.base import DuplicatePathError, StorageError
from catalog_media.storage.factory import get_storage_driver_from_config
from catalog_media.storage.local_driver import LocalStorageDriver


@pytest.fixture
def driver(tmp_path):
    return LocalStorageDriver({
        "base_path": str(tmp_path),
        "bucket_name": "product-images",
        "public_base_url": "/media/",
    })


class TestLocalStorageDriver:
    """Tests for LocalStorageDriver."""

    @pytest.mark.asyncio
    async def test_put_returns_public_url(self, driver, tmp_path):
        url = await driver.put_object("12/original/1-abc123.jpg", b"bytes", content_type="image/jpeg")

        assert url == "/media/product-images/12/original/1-abc123.jpg"
        assert (tmp_path / "product-images" / "12" / "original" / "1-abc123.jpg").read_bytes() == b"bytes"

    @pytest.mark.asyncio
    async def test_put_without_upsert_rejects_existing_path(self, driver):
        await driver.put_object("12/a.jpg", b"first")

        with pytest.raises(DuplicatePathError):
            await driver.put_object("12/a.jpg", b"second")

        assert await driver.download_file("12/a.jpg") == b"first"

    @pytest.mark.asyncio
    async def test_put_with_upsert_overwrites(self, driver):
        await driver.put_object("7/avatar.jpg", b"first", upsert=True)
        await driver.put_object("7/avatar.jpg", b"second", upsert=True)
        assert await driver.download_file("7/avatar.jpg") == b"second"

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, driver):
        await driver.put_object("12/a.jpg", b"x")

        await driver.delete_object("12/a.jpg")
        await driver.delete_object("12/a.jpg")

        assert not await driver.exists("12/a.jpg")

    @pytest.mark.asyncio
    async def test_delete_removes_empty_owner_directories(self, driver, tmp_path):
        await driver.put_object("12/original/a.jpg", b"x")
        await driver.delete_object("12/original/a.jpg")

        assert not (tmp_path / "product-images" / "12").exists()
        assert (tmp_path / "product-images").exists()

    @pytest.mark.asyncio
    async def test_path_traversal_rejected(self, driver):
        with pytest.raises(StorageError):
            await driver.put_object("../escape.jpg", b"x")

    @pytest.mark.asyncio
    async def test_download_missing_file(self, driver):
        with pytest.raises(FileNotFoundError):
            await driver.download_file("nope.jpg")

    @pytest.mark.asyncio
    async def test_connection_creates_bucket(self, driver, tmp_path):
        assert await driver.test_connection() is True
        assert (tmp_path / "product-images").is_dir()

    def test_file_uri_without_public_base_url(self, tmp_path):
        driver = LocalStorageDriver({"base_path": str(tmp_path), "bucket_name": "b"})
        assert driver.get_public_url("1/a.jpg").startswith("file://")


class TestStorageFactory:
    """Tests for get_storage_driver_from_config."""

    def test_local(self, tmp_path):
        driver = get_storage_driver_from_config("local", "user-avatars", base_path=str(tmp_path))
        assert isinstance(driver, LocalStorageDriver)
        assert driver.bucket_name == "user-avatars"

    def test_s3_requires_credentials(self):
        with pytest.raises(StorageError):
            get_storage_driver_from_config("s3", "product-images")

    def test_unsupported_provider(self):
        with pytest.raises(StorageError):
            get_storage_driver_from_config("ftp", "product-images")


def test_storage_error_family():
    names = {cls.__name__ for cls in StorageError.__subclasses__()}
    assert names == {"DuplicatePathError", "StorageConnectionError"}
