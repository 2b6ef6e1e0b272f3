"""Product image API tests."""

from unittest.mock import AsyncMock

import pytest

from catalog_media.storage.base import StorageError


def _upload(client, image_bytes, product_id=1, data=None, content_type="image/jpeg", content=None):
    content = content if content is not None else image_bytes(40, 30)
    return client.post(
        f"/v1/products/{product_id}/images",
        files={"file": ("photo.jpg", content, content_type)},
        data=data or {},
    )


@pytest.fixture
def three_images(client_with_db, image_bytes):
    return [_upload(client_with_db, image_bytes).json()["id"] for _ in range(3)]


class TestProductImagesApi:
    """Tests for product image endpoints."""

    def test_upload(self, client_with_db, image_bytes, storage_root):
        response = _upload(client_with_db, image_bytes, product_id=12, data={"alt_text": "Gold ring"})

        assert response.status_code == 201
        data = response.json()
        assert data["product_id"] == 12
        assert data["owner_id"] == 12
        assert data["alt_text"] == "Gold ring"
        assert data["is_featured"] is True
        assert data["width"] == 40
        assert data["height"] == 30
        assert data["url"] == f"/media/product-images/{data['storage_path']}"
        assert (storage_root / "product-images" / data["storage_path"]).is_file()

    def test_upload_invalid_image(self, client_with_db, image_bytes):
        response = _upload(client_with_db, image_bytes, content=b"not an image")
        assert response.status_code == 400
        assert "decode" in response.json()["detail"].lower()

    def test_upload_unsupported_type(self, client_with_db, image_bytes):
        response = _upload(client_with_db, image_bytes, content_type="application/pdf")
        assert response.status_code == 415
        assert "application/pdf" in response.json()["detail"]

    def test_upload_storage_failure(self, client_with_db, image_bytes, product_storage, monkeypatch):
        monkeypatch.setattr(product_storage, "put_object", AsyncMock(side_effect=StorageError("bucket offline")))

        response = _upload(client_with_db, image_bytes)

        assert response.status_code == 502
        assert "bucket offline" in response.json()["detail"]
        assert client_with_db.get("/v1/products/1/images").json()["total"] == 0

    def test_list(self, client_with_db, three_images):
        response = client_with_db.get("/v1/products/1/images")

        assert response.status_code == 200
        data = response.json()
        assert data["product_id"] == 1
        assert data["total"] == 3
        assert [item["id"] for item in data["items"]] == three_images
        assert data["featured_id"] == three_images[0]

    def test_list_empty(self, client_with_db):
        data = client_with_db.get("/v1/products/5/images").json()
        assert data == {"product_id": 5, "items": [], "featured_id": None, "total": 0}

    def test_reorder(self, client_with_db, three_images):
        a, b, c = three_images

        response = client_with_db.put("/v1/products/1/images/order", json={"asset_ids": [c, a, b]})

        assert response.status_code == 200
        assert [item["id"] for item in response.json()["items"]] == [c, a, b]

    def test_reorder_not_a_permutation(self, client_with_db, three_images):
        a, b, c = three_images

        response = client_with_db.put("/v1/products/1/images/order", json={"asset_ids": [c, a]})

        assert response.status_code == 400
        listed = client_with_db.get("/v1/products/1/images").json()
        assert [item["id"] for item in listed["items"]] == [a, b, c]

    def test_get(self, client_with_db, three_images):
        response = client_with_db.get(f"/v1/product-images/{three_images[1]}")
        assert response.status_code == 200
        assert response.json()["sort_order"] == 1

    def test_get_missing(self, client_with_db):
        response = client_with_db.get("/v1/product-images/999")
        assert response.status_code == 404

    def test_patch_alt_text_and_feature(self, client_with_db, three_images):
        a, b, c = three_images

        response = client_with_db.patch(
            f"/v1/product-images/{c}", json={"alt_text": "Back", "is_featured": True}
        )

        assert response.status_code == 200
        assert response.json()["alt_text"] == "Back"
        assert response.json()["is_featured"] is True
        assert client_with_db.get("/v1/products/1/images").json()["featured_id"] == c
        assert client_with_db.get(f"/v1/product-images/{a}").json()["is_featured"] is False

    @pytest.mark.parametrize("body", [{}, {"is_featured": False}])
    def test_patch_rejects_invalid_body(self, client_with_db, three_images, body):
        response = client_with_db.patch(f"/v1/product-images/{three_images[0]}", json=body)
        assert response.status_code == 422

    def test_feature(self, client_with_db, three_images):
        response = client_with_db.post(f"/v1/product-images/{three_images[2]}/featured")

        assert response.status_code == 200
        items = client_with_db.get("/v1/products/1/images").json()["items"]
        assert [item["id"] for item in items if item["is_featured"]] == [three_images[2]]

    def test_replace_file(self, client_with_db, image_bytes, three_images, storage_root):
        before = client_with_db.get(f"/v1/product-images/{three_images[1]}").json()

        response = client_with_db.put(
            f"/v1/product-images/{three_images[1]}/file",
            files={"file": ("new.png", image_bytes(12, 24, image_format="PNG"), "image/png")},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == three_images[1]
        assert data["sort_order"] == before["sort_order"]
        assert data["mime_type"] == "image/png"
        assert (data["width"], data["height"]) == (12, 24)
        assert not (storage_root / "product-images" / before["storage_path"]).exists()

    def test_replace_missing(self, client_with_db, image_bytes):
        response = client_with_db.put(
            "/v1/product-images/999/file",
            files={"file": ("new.jpg", image_bytes(), "image/jpeg")},
        )
        assert response.status_code == 404

    def test_delete_promotes_next(self, client_with_db, three_images):
        a, b, c = three_images

        assert client_with_db.delete(f"/v1/product-images/{a}").status_code == 204
        assert client_with_db.delete(f"/v1/product-images/{a}").status_code == 204

        data = client_with_db.get("/v1/products/1/images").json()
        assert [item["id"] for item in data["items"]] == [b, c]
        assert data["featured_id"] == b

    def test_delete_all(self, client_with_db, three_images, storage_root):
        response = client_with_db.delete("/v1/products/1/images")

        assert response.status_code == 204
        assert client_with_db.get("/v1/products/1/images").json()["total"] == 0
        assert not any(p.is_file() for p in (storage_root / "product-images").rglob("*"))
