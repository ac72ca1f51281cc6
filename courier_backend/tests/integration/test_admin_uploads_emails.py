"""
Image uploads (storage faked) and custom emails (provider faked).
"""
import base64

import pytest

from app.main import app
from app.services.email_provider import SendResult, email_provider
from app.services.storage import UPLOAD_FAILED_MESSAGE, UploadResult, decode_base64_image, get_storage_service

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
PNG_DATA_URI = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()


class FakeStorage:
    """Accepts PNGs, keeps keys in memory."""

    def __init__(self, fail_with=None):
        self.fail_with = fail_with
        self.uploaded = []

    async def upload_package_image(self, content, content_type, filename=None) -> UploadResult:
        if self.fail_with:
            return UploadResult(success=False, error=self.fail_with)
        if content_type != "image/png":
            return UploadResult(success=False, error="Invalid file type. Allowed: png")
        key = f"courier/package_images/{len(self.uploaded)}_{filename or 'image'}"
        self.uploaded.append(key)
        return UploadResult(
            success=True,
            url=f"https://cdn.test/{key}",
            key=key,
            content_type=content_type,
            size_bytes=len(content),
        )

    async def upload_base64_image(self, data, filename=None) -> UploadResult:
        try:
            content, content_type = decode_base64_image(data)
        except ValueError as e:
            return UploadResult(success=False, error=str(e))
        return await self.upload_package_image(content, content_type, filename)

    def generate_upload_signature(self) -> dict:
        return {
            "url": "https://courier-uploads.s3.amazonaws.com/",
            "fields": {"key": "courier/package_images/20240101_${filename}"},
            "folder": "courier/package_images",
            "key": "courier/package_images/20240101_${filename}",
            "expires_in": 600,
            "constraints": {"allowed_formats": ["png"], "max_bytes": 5242880},
        }

    async def delete_file(self, key: str) -> bool:
        return True


@pytest.fixture
def storage():
    fake = FakeStorage()
    app.dependency_overrides[get_storage_service] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_storage_service, None)


async def _create_shipment(admin_client, payload) -> dict:
    resp = await admin_client.post("/api/admin/shipments", json={**payload, "sendNotification": False})
    return resp.json()["data"]


# ----- uploads -----

@pytest.mark.anyio
async def test_json_without_file_returns_signature(admin_client, storage):
    resp = await admin_client.post("/api/admin/uploads", json={})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["expiresIn"] == 600
    assert data["constraints"]["maxBytes"] == 5242880


@pytest.mark.anyio
async def test_base64_upload_attaches_to_shipment(admin_client, storage, sample_shipment_payload):
    shipment = await _create_shipment(admin_client, sample_shipment_payload)

    resp = await admin_client.post(
        "/api/admin/uploads",
        json={"file": PNG_DATA_URI, "filename": "box.png", "shipmentId": shipment["id"]},
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "File uploaded successfully"
    assert body["data"]["publicId"] == storage.uploaded[0]
    assert body["data"]["filename"] == "box.png"

    detail = (await admin_client.get(f"/api/admin/shipments/{shipment['id']}")).json()["data"]
    assert [image["publicId"] for image in detail["packageImages"]] == storage.uploaded


@pytest.mark.anyio
async def test_multipart_upload(admin_client, storage, sample_shipment_payload):
    shipment = await _create_shipment(admin_client, sample_shipment_payload)

    resp = await admin_client.post(
        "/api/admin/uploads",
        files={"file": ("label.png", PNG_BYTES, "image/png")},
        data={"shipmentId": str(shipment["id"])},
    )

    assert resp.status_code == 201
    assert resp.json()["data"]["url"].startswith("https://cdn.test/")


@pytest.mark.anyio
async def test_multipart_requires_file(admin_client, storage):
    resp = await admin_client.post("/api/admin/uploads", data={"shipmentId": "1"}, files={"other": ("x.txt", b"x")})

    assert resp.status_code == 400
    assert resp.json()["error"] == "No file provided"


@pytest.mark.anyio
async def test_full_shipment_rejects_upload_before_storing(admin_client, storage, sample_shipment_payload):
    images = [{"url": f"https://cdn.test/{i}.png", "publicId": f"k{i}"} for i in range(5)]
    shipment = await _create_shipment(admin_client, {**sample_shipment_payload, "packageImages": images})

    resp = await admin_client.post(
        "/api/admin/uploads", json={"file": PNG_DATA_URI, "shipmentId": shipment["id"]}
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "A shipment can have at most 5 images"
    assert storage.uploaded == []


@pytest.mark.anyio
async def test_invalid_image_is_400(admin_client, storage):
    data_uri = "data:application/pdf;base64," + base64.b64encode(b"%PDF-1.7").decode()

    resp = await admin_client.post("/api/admin/uploads", json={"file": data_uri})

    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Invalid file type")


@pytest.mark.anyio
async def test_storage_failure_is_500(admin_client, storage):
    storage.fail_with = UPLOAD_FAILED_MESSAGE

    resp = await admin_client.post("/api/admin/uploads", json={"file": PNG_DATA_URI})

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": UPLOAD_FAILED_MESSAGE}


@pytest.mark.anyio
async def test_unsupported_content_type(admin_client, storage):
    resp = await admin_client.post(
        "/api/admin/uploads", content=b"raw", headers={"Content-Type": "text/plain"}
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Unsupported content type"


# ----- emails -----

@pytest.mark.anyio
async def test_send_email_logs_attempt(admin_client, monkeypatch):
    sent = []

    async def fake_send(to_email, subject, html):
        sent.append((to_email, subject))
        return SendResult(success=True, message_id="msg_123")

    monkeypatch.setattr(email_provider, "send", fake_send)

    resp = await admin_client.post(
        "/api/admin/emails/send",
        json={"to": "bob@example.com", "subject": "Your parcel", "htmlContent": "<p>Hello</p>"},
    )

    assert resp.status_code == 200
    assert resp.json()["data"] == {"messageId": "msg_123"}
    assert sent == [("bob@example.com", "Your parcel")]

    logs = (await admin_client.get("/api/admin/emails")).json()
    assert logs["pagination"]["total"] == 1
    assert logs["data"][0]["status"] == "SENT"
    assert logs["data"][0]["providerMessageId"] == "msg_123"


@pytest.mark.anyio
async def test_failed_email_is_logged_and_reported(admin_client):
    # No RESEND_API_KEY in the test environment
    resp = await admin_client.post(
        "/api/admin/emails/send",
        json={"to": "bob@example.com", "subject": "Your parcel", "htmlContent": "<p>Hello</p>"},
    )

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Email not configured"}

    logs = (await admin_client.get("/api/admin/emails")).json()["data"]
    assert [log["status"] for log in logs] == ["FAILED"]
    assert logs[0]["errorMessage"] == "Email not configured"
