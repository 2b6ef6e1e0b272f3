"""Health check tests."""

from unittest.mock import AsyncMock

from catalog_media.storage.base import StorageConnectionError


def test_health_endpoint(client_with_db):
    """Test health check endpoint."""
    response = client_with_db.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["db"] == "connected"
    assert data["storage"] == {"product-images": "connected", "user-avatars": "connected"}


def test_health_degraded_when_storage_unreachable(client_with_db, avatar_storage, monkeypatch):
    monkeypatch.setattr(
        avatar_storage,
        "test_connection",
        AsyncMock(side_effect=StorageConnectionError("Bucket not found: user-avatars")),
    )

    data = client_with_db.get("/health").json()

    assert data["status"] == "degraded"
    assert data["storage"]["user-avatars"].startswith("error:")
    assert data["storage"]["product-images"] == "connected"


def test_healthz(client_with_db):
    response = client_with_db.get("/v1/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
