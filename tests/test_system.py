import base64
import hashlib
import hmac

import pytest

from proacademics import config
from proacademics.database import db_manager
from proacademics.errors import ZoomConfigError
from proacademics.system.zoom_router import extract_meeting_id, generate_signature


# ==================== HEALTH ====================

@pytest.fixture
def database_up(monkeypatch):
    async def ping():
        return True

    monkeypatch.setattr(db_manager, "ping", ping)


async def test_health_healthy(client, db, database_up, monkeypatch):
    monkeypatch.setattr(config, "MONGODB_URI", "mongodb://localhost:27017")
    await db.users.insert_one({"id": "admin-1", "role": "admin"})

    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["errors"] == []


def test_health_degraded_without_admin(client, database_up, monkeypatch):
    monkeypatch.setattr(config, "MONGODB_URI", "mongodb://localhost:27017")

    response = client.get("/api/health")
    assert response.status_code == 500
    body = response.json()
    assert body["status"] == "degraded"
    assert body["checks"]["admin_exists"] is False
    assert "No admin users found in database" in body["errors"]


def test_health_database_down(client, monkeypatch):
    monkeypatch.setattr(config, "MONGODB_URI", "")
    monkeypatch.setattr(config, "NEXTAUTH_SECRET", "")

    body = client.get("/api/health").json()
    assert body["status"] == "unhealthy"
    assert "Database connection failed: not connected" in body["errors"]


# ==================== ZOOM ====================

@pytest.mark.parametrize("url,meeting_id", [
    ("https://us02web.zoom.us/j/85746382910?pwd=abc", "85746382910"),
    ("https://zoom.us/webinar/123456789", "123456789"),
    ("https://zoom.us/launch?meeting_id=987654321", "987654321"),
    ("https://zoom.us/5551234567", "5551234567"),
    ("https://example.com/meeting", None),
])
def test_extract_meeting_id(url, meeting_id):
    assert extract_meeting_id(url) == meeting_id


@pytest.fixture
def zoom_keys(monkeypatch):
    monkeypatch.setattr(config, "ZOOM_API_KEY", "zoom-key")
    monkeypatch.setattr(config, "ZOOM_API_SECRET", "zoom-secret")


def test_signature_layout(zoom_keys):
    signature = generate_signature("123456789", role=1, timestamp_ms=1700000000000)

    key, meeting, timestamp, role, digest = base64.b64decode(signature).decode("utf-8").split(".")
    assert (key, meeting, timestamp, role) == ("zoom-key", "123456789", "1700000000000", "1")

    message = base64.b64encode(b"zoom-key12345678917000000000001")
    expected = base64.b64encode(hmac.new(b"zoom-secret", message, hashlib.sha256).digest()).decode("utf-8")
    assert digest == expected


def test_signature_requires_credentials(monkeypatch):
    monkeypatch.setattr(config, "ZOOM_API_KEY", "")
    with pytest.raises(ZoomConfigError):
        generate_signature("123456789")


def test_signature_endpoint(client, zoom_keys):
    body = client.post("/api/zoom/signature", json={"zoomUrl": "https://zoom.us/j/123456789"}).json()
    assert body["meetingNumber"] == "123456789"
    assert body["apiKey"] == "zoom-key"
    assert body["role"] == 0
    assert body["signature"]


def test_signature_endpoint_errors(client, monkeypatch):
    assert client.post("/api/zoom/signature", json={}).json()["error"] == "Zoom URL is required"
    assert client.post("/api/zoom/signature", json={"zoomUrl": "https://zoom.us/"}).json()["error"] == \
        "Invalid Zoom URL format"

    monkeypatch.setattr(config, "ZOOM_API_KEY", "")
    response = client.post("/api/zoom/signature", json={"zoomUrl": "https://zoom.us/j/123456789"})
    assert response.status_code == 500
    assert response.json()["error"] == "Zoom API credentials not configured"
