"""
Admin shipment routes: CRUD, status transitions and tracking events.
"""
import pytest

from app.main import app
from app.services.storage import get_storage_service


class FakeStorage:
    def __init__(self):
        self.deleted = []

    async def delete_file(self, key: str) -> bool:
        self.deleted.append(key)
        return True


@pytest.fixture
def fake_storage():
    storage = FakeStorage()
    app.dependency_overrides[get_storage_service] = lambda: storage
    yield storage
    app.dependency_overrides.pop(get_storage_service, None)


async def _create(admin_client, payload) -> dict:
    resp = await admin_client.post("/api/admin/shipments", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.anyio
async def test_admin_routes_require_session(client):
    resp = await client.get("/api/admin/shipments")

    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Unauthorized - Please log in"}


@pytest.mark.anyio
async def test_invalid_token_rejected(client):
    resp = await client.get(
        "/api/admin/shipments", headers={"Authorization": "Bearer not-a-token"}
    )
    assert resp.status_code == 401


@pytest.mark.anyio
async def test_create_shipment(admin_client, notifier, sample_shipment_payload, admin_user):
    body = await _create(admin_client, sample_shipment_payload)

    data = body["data"]
    assert body["message"] == f"Shipment created with tracking code: {data['trackingCode']}"
    assert data["status"] == "CREATED"
    assert data["serviceType"] == "EXPRESS"
    assert data["receiver"]["coordinates"] == {"lat": 51.5, "lng": -0.12}
    assert data["creator"]["email"] == admin_user.email
    assert [e["status"] for e in data["events"]] == ["CREATED"]

    assert notifier.names() == ["shipment_created"]
    _, kwargs = notifier.calls[0]
    assert kwargs["receiver_email"] == "bob@example.com"
    assert kwargs["tracking_code"] == data["trackingCode"]


@pytest.mark.anyio
async def test_create_without_notification(admin_client, notifier, sample_shipment_payload):
    await _create(admin_client, {**sample_shipment_payload, "sendNotification": False})
    assert notifier.calls == []


@pytest.mark.anyio
async def test_create_shipment_validation(admin_client, sample_shipment_payload):
    payload = {**sample_shipment_payload, "package": {"weight": 0, "dimensions": {"length": 1, "width": 1, "height": 1}}}

    resp = await admin_client.post("/api/admin/shipments", json=payload)

    assert resp.status_code == 400
    assert "package.weight" in resp.json()["error"]


@pytest.mark.anyio
async def test_list_shipments_paginates_and_filters(admin_client, sample_shipment_payload):
    for _ in range(3):
        await _create(admin_client, sample_shipment_payload)
    await _create(admin_client, {**sample_shipment_payload, "serviceType": "ECONOMY"})

    resp = await admin_client.get("/api/admin/shipments", params={"page": 1, "limit": 2})
    body = resp.json()
    assert resp.status_code == 200
    assert len(body["data"]) == 2
    assert body["pagination"] == {"total": 4, "page": 1, "limit": 2, "totalPages": 2}

    resp = await admin_client.get("/api/admin/shipments", params={"serviceType": "ECONOMY"})
    assert resp.json()["pagination"]["total"] == 1


@pytest.mark.anyio
async def test_get_unknown_shipment(admin_client):
    resp = await admin_client.get("/api/admin/shipments/9999")

    assert resp.status_code == 404
    assert resp.json()["error"] == "Shipment not found"


@pytest.mark.anyio
async def test_update_shipment_partial(admin_client, sample_shipment_payload):
    shipment = (await _create(admin_client, sample_shipment_payload))["data"]

    resp = await admin_client.put(
        f"/api/admin/shipments/{shipment['id']}",
        json={"currentLocation": "Customs, Heathrow", "carrierTrackingCode": "1Z999"},
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["currentLocation"] == "Customs, Heathrow"
    assert data["carrierTrackingCode"] == "1Z999"
    assert data["origin"] == "Lagos, Nigeria"
    assert data["trackingCode"] == shipment["trackingCode"]


@pytest.mark.anyio
async def test_update_status_appends_event_and_notifies(admin_client, notifier, sample_shipment_payload):
    shipment = (await _create(admin_client, sample_shipment_payload))["data"]

    resp = await admin_client.patch(
        f"/api/admin/shipments/{shipment['id']}/status",
        json={"status": "IN_TRANSIT", "location": "Heathrow Hub"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Shipment status updated to IN_TRANSIT"
    assert body["data"]["status"] == "IN_TRANSIT"
    assert body["data"]["currentLocation"] == "Heathrow Hub"
    assert [e["status"] for e in body["data"]["events"]] == ["IN_TRANSIT", "CREATED"]
    assert body["data"]["events"][0]["description"] == "Status updated to IN TRANSIT"
    assert notifier.names() == ["shipment_created", "status_updated"]


@pytest.mark.anyio
async def test_status_update_always_notifies(admin_client, notifier, sample_shipment_payload):
    shipment = (await _create(admin_client, {**sample_shipment_payload, "sendNotification": False}))["data"]

    resp = await admin_client.patch(
        f"/api/admin/shipments/{shipment['id']}/status",
        json={"status": "DELIVERED", "location": "London", "sendNotification": False},
    )

    assert resp.status_code == 200
    assert notifier.names() == ["status_updated"]
    assert notifier.calls[0][1]["status"] == "DELIVERED"


@pytest.mark.anyio
async def test_status_update_rejects_unknown_status(admin_client, sample_shipment_payload):
    shipment = (await _create(admin_client, sample_shipment_payload))["data"]

    resp = await admin_client.patch(
        f"/api/admin/shipments/{shipment['id']}/status",
        json={"status": "LOST_IN_SPACE", "location": "Orbit"},
    )
    assert resp.status_code == 400


@pytest.mark.anyio
async def test_edit_and_delete_tracking_event(admin_client, sample_shipment_payload):
    shipment = (await _create(admin_client, sample_shipment_payload))["data"]
    status_resp = await admin_client.patch(
        f"/api/admin/shipments/{shipment['id']}/status",
        json={"status": "PICKED_UP", "location": "Lagos"},
    )
    event_id = status_resp.json()["data"]["events"][0]["id"]
    base = f"/api/admin/shipments/{shipment['id']}/events/{event_id}"

    resp = await admin_client.put(base, json={"description": "Collected from front desk"})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Tracking event updated"
    assert resp.json()["data"]["description"] == "Collected from front desk"

    assert (await admin_client.put(base, json={})).status_code == 400

    resp = await admin_client.delete(base)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Tracking event deleted"

    resp = await admin_client.delete(base)
    assert resp.status_code == 404
    assert resp.json()["error"] == "Event not found in this shipment"


@pytest.mark.anyio
async def test_delete_shipment(admin_client, client, fake_storage, sample_shipment_payload):
    payload = {
        **sample_shipment_payload,
        "packageImages": [{"url": "https://cdn.test/a.png", "publicId": "courier/package_images/a.png"}],
    }
    shipment = (await _create(admin_client, payload))["data"]

    resp = await admin_client.delete(f"/api/admin/shipments/{shipment['id']}")

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Shipment deleted successfully"}
    assert fake_storage.deleted == ["courier/package_images/a.png"]

    resp = await client.get("/api/tracking", params={"code": shipment["trackingCode"]})
    assert resp.status_code == 404
