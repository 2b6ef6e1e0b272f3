"""User avatar API tests."""

import pytest

from catalog_media.api.v1.endpoints.user_avatars import build_crop_selection
from catalog_media.services.viewport import CropRect, ImageSize


def _upload(client, content, user_id=7, data=None):
    return client.post(
        f"/v1/users/{user_id}/avatar",
        files={"file": ("me.jpg", content, "image/jpeg")},
        data=data or {},
    )


class TestUserAvatarsApi:
    """Tests for user avatar endpoints."""

    def test_get_missing(self, client_with_db):
        response = client_with_db.get("/v1/users/7/avatar")
        assert response.status_code == 404

    def test_upload_with_crop(self, client_with_db, image_bytes):
        response = _upload(
            client_with_db,
            image_bytes(1000, 2000),
            data={
                "crop_x": "100",
                "crop_y": "100",
                "crop_width": "100",
                "crop_height": "100",
                "display_width": "500",
                "display_height": "1000",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == 7
        assert data["is_featured"] is True
        assert data["viewport_x"] == pytest.approx(0.3)
        assert data["viewport_y"] == pytest.approx(0.15)
        assert data["viewport_size"] == pytest.approx(0.1)
        assert (data["width"], data["height"]) == (400, 800)
        assert data["storage_path"].startswith("7/avatar-")

        assert client_with_db.get("/v1/users/7/avatar").json()["id"] == data["id"]

    def test_partial_crop_rejected(self, client_with_db, image_bytes):
        response = _upload(client_with_db, image_bytes(), data={"crop_x": "1", "crop_y": "1"})
        assert response.status_code == 400
        assert client_with_db.get("/v1/users/7/avatar").status_code == 404

    def test_reupload_replaces(self, client_with_db, image_bytes, storage_root):
        first = _upload(client_with_db, image_bytes(50, 50)).json()
        second = _upload(client_with_db, image_bytes(60, 30)).json()

        assert second["id"] == first["id"]
        assert (second["width"], second["height"]) == (60, 30)
        assert not (storage_root / "user-avatars" / first["storage_path"]).exists()
        assert (storage_root / "user-avatars" / second["storage_path"]).is_file()

    def test_upload_invalid_image(self, client_with_db):
        response = _upload(client_with_db, b"garbage")
        assert response.status_code == 400

    def test_patch_viewport_and_alt_text(self, client_with_db, image_bytes):
        _upload(client_with_db, image_bytes())

        response = client_with_db.patch(
            "/v1/users/7/avatar",
            json={"alt_text": "Profile photo", "viewport": {"x": 0.25, "y": 0.75, "size": 0.5}},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["alt_text"] == "Profile photo"
        assert (data["viewport_x"], data["viewport_y"], data["viewport_size"]) == (0.25, 0.75, 0.5)

        cleared = client_with_db.patch("/v1/users/7/avatar", json={"viewport": None}).json()
        assert cleared["viewport_x"] is None
        assert cleared["alt_text"] == "Profile photo"

    def test_patch_out_of_range_viewport(self, client_with_db, image_bytes):
        _upload(client_with_db, image_bytes())
        response = client_with_db.patch("/v1/users/7/avatar", json={"viewport": {"x": 2, "y": 0, "size": 1}})
        assert response.status_code == 422

    def test_patch_missing_avatar(self, client_with_db):
        response = client_with_db.patch("/v1/users/7/avatar", json={"alt_text": "x"})
        assert response.status_code == 404

    def test_delete_is_idempotent(self, client_with_db, image_bytes, storage_root):
        _upload(client_with_db, image_bytes())

        assert client_with_db.delete("/v1/users/7/avatar").status_code == 204
        assert client_with_db.delete("/v1/users/7/avatar").status_code == 204

        assert client_with_db.get("/v1/users/7/avatar").status_code == 404
        assert not any(p.is_file() for p in (storage_root / "user-avatars").rglob("*"))


class TestBuildCropSelection:
    """Tests for build_crop_selection."""

    def test_no_crop(self):
        assert build_crop_selection(None, None, None, None, None, None) is None

    def test_crop_in_original_pixels(self):
        selection = build_crop_selection(1, 2, 3, 4, None, None)
        assert selection.rect == CropRect(1, 2, 3, 4)
        assert selection.displayed is None

    def test_crop_with_display_size(self):
        selection = build_crop_selection(1, 2, 3, 4, 500, 250)
        assert selection.displayed == ImageSize(500, 250)

    @pytest.mark.parametrize(
        "fields",
        [
            (1, 2, 3, None, None, None),
            (None, None, None, None, 500, 250),
            (1, 2, 3, 4, 500, None),
        ],
    )
    def test_incomplete_fields(self, fields):
        with pytest.raises(ValueError):
            build_crop_selection(*fields)
