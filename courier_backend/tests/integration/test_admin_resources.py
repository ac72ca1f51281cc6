"""
Admin carriers, quotes and company settings.
"""
import pytest

DHL = {
    "name": "DHL Express",
    "code": "dhl",
    "website": "https://www.dhl.com",
    "trackingUrlTemplate": "https://www.dhl.com/track?id={trackingCode}",
}


async def _create_carrier(admin_client, payload=DHL) -> dict:
    resp = await admin_client.post("/api/admin/carriers", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


# ----- carriers -----

@pytest.mark.anyio
async def test_create_carrier_uppercases_code(admin_client):
    carrier = await _create_carrier(admin_client)

    assert carrier["code"] == "DHL"
    assert carrier["isActive"] is True


@pytest.mark.anyio
async def test_duplicate_carrier_code_conflicts(admin_client):
    await _create_carrier(admin_client)

    resp = await admin_client.post("/api/admin/carriers", json={**DHL, "name": "Other DHL", "code": "DHL"})

    assert resp.status_code == 409
    assert resp.json()["error"] == "A carrier with this code already exists"


@pytest.mark.anyio
async def test_update_carrier_code_conflict(admin_client):
    await _create_carrier(admin_client)
    ups = await _create_carrier(admin_client, {"name": "UPS", "code": "UPS"})

    resp = await admin_client.patch(f"/api/admin/carriers/{ups['id']}", json={"code": "dhl"})
    assert resp.status_code == 409

    resp = await admin_client.patch(f"/api/admin/carriers/{ups['id']}", json={"isActive": False})
    assert resp.status_code == 200
    assert resp.json()["data"]["isActive"] is False
    assert resp.json()["data"]["code"] == "UPS"


@pytest.mark.anyio
async def test_list_carriers_sorted_and_filtered(admin_client):
    await _create_carrier(admin_client, {"name": "UPS", "code": "UPS", "isActive": False})
    await _create_carrier(admin_client)

    resp = await admin_client.get("/api/admin/carriers")
    assert [c["name"] for c in resp.json()["data"]] == ["DHL Express", "UPS"]

    resp = await admin_client.get("/api/admin/carriers", params={"active": "true"})
    assert [c["code"] for c in resp.json()["data"]] == ["DHL"]


@pytest.mark.anyio
async def test_shipment_detail_shows_carrier_tracking_url(admin_client, sample_shipment_payload):
    carrier = await _create_carrier(admin_client)
    payload = {**sample_shipment_payload, "carrierId": carrier["id"], "carrierTrackingCode": "JD0001"}

    resp = await admin_client.post("/api/admin/shipments", json=payload)

    assert resp.status_code == 201
    assert resp.json()["data"]["carrier"] == {
        "id": carrier["id"],
        "name": "DHL Express",
        "code": "DHL",
        "trackingUrl": "https://www.dhl.com/track?id=JD0001",
    }


@pytest.mark.anyio
async def test_delete_carrier_leaves_shipments_without_carrier(admin_client, sample_shipment_payload):
    carrier = await _create_carrier(admin_client)
    shipment = (
        await admin_client.post(
            "/api/admin/shipments", json={**sample_shipment_payload, "carrierId": carrier["id"]}
        )
    ).json()["data"]

    resp = await admin_client.delete(f"/api/admin/carriers/{carrier['id']}")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Carrier deleted successfully"

    detail = (await admin_client.get(f"/api/admin/shipments/{shipment['id']}")).json()["data"]
    assert detail["carrierId"] == carrier["id"]
    assert detail["carrier"] is None

    assert (await admin_client.get(f"/api/admin/carriers/{carrier['id']}")).status_code == 404


# ----- quotes -----

@pytest.mark.anyio
async def test_respond_to_quote_once(client, admin_client, notifier, sample_quote_payload):
    submitted = (await client.post("/api/quotes", json=sample_quote_payload)).json()["data"]
    url = f"/api/admin/quotes/{submitted['id']}/respond"
    answer = {"estimatedPrice": 42.5, "adminResponse": "Pickup available tomorrow."}

    resp = await admin_client.patch(url, json=answer)

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert resp.json()["message"] == "Quote response sent successfully"
    assert data["status"] == "RESPONDED"
    assert data["estimatedPrice"] == 42.5
    assert data["email"] == "carol@example.com"
    assert data["respondedAt"] is not None

    assert notifier.names() == ["quote_responded"]
    assert notifier.calls[0][1]["price"] == 42.5

    resp = await admin_client.patch(url, json=answer)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Quote has already been responded"


@pytest.mark.anyio
async def test_list_quotes_by_status(client, admin_client, sample_quote_payload):
    for _ in range(2):
        await client.post("/api/quotes", json=sample_quote_payload)

    resp = await admin_client.get("/api/admin/quotes", params={"status": "PENDING"})
    assert resp.json()["pagination"]["total"] == 2

    resp = await admin_client.get("/api/admin/quotes", params={"status": "RESPONDED"})
    assert resp.json()["data"] == []


@pytest.mark.anyio
async def test_respond_to_unknown_quote(admin_client):
    resp = await admin_client.patch(
        "/api/admin/quotes/404/respond", json={"estimatedPrice": 10, "adminResponse": "Sure"}
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "Quote not found"


# ----- settings -----

@pytest.mark.anyio
async def test_update_company_settings(client, admin_client):
    resp = await admin_client.put(
        "/api/admin/settings",
        json={"companyName": "Swift Parcel Co", "phone": "+1 555 0000", "website": "https://swift.example"},
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["companyName"] == "Swift Parcel Co"

    public = (await client.get("/api/settings")).json()["data"]
    assert public["phone"] == "+1 555 0000"
    assert public["website"] == "https://swift.example"


@pytest.mark.anyio
async def test_settings_reject_bad_website(admin_client):
    resp = await admin_client.put("/api/admin/settings", json={"website": "swift.example"})
    assert resp.status_code == 400


@pytest.mark.anyio
@pytest.mark.parametrize(
    "body,error",
    [
        (
            {"currentPassword": "Sup3rSecret", "newPassword": "short", "confirmPassword": "short"},
            "New password must be at least 8 characters",
        ),
        (
            {"currentPassword": "Sup3rSecret", "newPassword": "N3wSecret!", "confirmPassword": "N3wSecret?"},
            "Passwords do not match",
        ),
        (
            {"currentPassword": "Wr0ngSecret", "newPassword": "N3wSecret!", "confirmPassword": "N3wSecret!"},
            "Current password is incorrect",
        ),
    ],
)
async def test_change_password_rejections(admin_client, body, error):
    resp = await admin_client.put("/api/admin/settings/password", json=body)

    assert resp.status_code == 400
    assert resp.json()["error"] == error


@pytest.mark.anyio
async def test_change_password(client, admin_client, admin_credentials):
    resp = await admin_client.put(
        "/api/admin/settings/password",
        json={"currentPassword": "Sup3rSecret", "newPassword": "N3wSecret!", "confirmPassword": "N3wSecret!"},
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "Password changed successfully"

    old = await client.post("/api/auth/login", json=admin_credentials)
    assert old.status_code == 401
    new = await client.post("/api/auth/login", json={**admin_credentials, "password": "N3wSecret!"})
    assert new.status_code == 200
