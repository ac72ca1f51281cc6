"""
ShipmentService against an in-memory SQLite database.
"""
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.core.exceptions import (
    NotFoundError,
    ShipmentCreationError,
    TrackingCodeExhaustedError,
    ValidationError,
)
from app.core.utils import utc_today
from app.models.shipment import Shipment, ShipmentStatus, TrackingEvent
from app.schemas.shipment import ShipmentCreate, ShipmentUpdate
from app.services.shipment_service import (
    CREATION_EVENT_DESCRIPTION,
    ShipmentService,
    default_event_description,
    status_update_description,
)


class RecordingDeleter:
    """Deletes nothing; fails for keys listed in `failing`."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.attempted = []

    async def delete_file(self, key: str) -> bool:
        self.attempted.append(key)
        if key in self.failing:
            raise RuntimeError(f"cannot delete {key}")
        return True


def _images(count):
    return [
        {"url": f"https://cdn.test/img{i}.png", "publicId": f"courier/package_images/img{i}.png"}
        for i in range(count)
    ]


async def _create(db, payload, **overrides):
    data = ShipmentCreate.model_validate({**payload, **overrides})
    shipment, _ = await ShipmentService(db).create_shipment(data, created_by=None)
    return shipment


def test_status_update_description():
    assert status_update_description(ShipmentStatus.OUT_FOR_DELIVERY) == "Status updated to OUT FOR DELIVERY"
    assert default_event_description(ShipmentStatus.DELIVERED) == "Package has been delivered"


@pytest.mark.anyio
async def test_create_shipment_with_created_event(db_session, sample_shipment_payload):
    data = ShipmentCreate.model_validate(sample_shipment_payload)
    shipment, event = await ShipmentService(db_session).create_shipment(data)

    assert shipment.tracking_code.startswith("CRR-")
    assert shipment.status == ShipmentStatus.CREATED
    assert shipment.current_location == "Lagos, Nigeria"
    # EXPRESS delivers within 3 days
    assert shipment.estimated_delivery_date == utc_today() + timedelta(days=3)
    assert shipment.receiver["coordinates"] == {"lat": 51.5, "lng": -0.12}

    assert event.shipment_id == shipment.id
    assert event.status == ShipmentStatus.CREATED
    assert event.location == "Lagos, Nigeria"
    assert event.description == CREATION_EVENT_DESCRIPTION


@pytest.mark.anyio
async def test_create_keeps_only_five_images(db_session, sample_shipment_payload):
    shipment = await _create(db_session, sample_shipment_payload, packageImages=_images(7))

    assert len(shipment.package_images) == 5
    assert all(image["uploaded_at"] for image in shipment.package_images)


@pytest.mark.anyio
async def test_tracking_code_collisions_retry(db_session, sample_shipment_payload):
    first = await _create(db_session, sample_shipment_payload)
    codes = iter([first.tracking_code, "CRR-00000000-AA"])
    service = ShipmentService(db_session, code_generator=lambda: next(codes))

    shipment, _ = await service.create_shipment(ShipmentCreate.model_validate(sample_shipment_payload))

    assert shipment.tracking_code == "CRR-00000000-AA"


@pytest.mark.anyio
async def test_tracking_code_exhaustion(db_session, sample_shipment_payload):
    first = await _create(db_session, sample_shipment_payload)
    taken = first.tracking_code
    calls = []

    def generator():
        calls.append(taken)
        return taken

    service = ShipmentService(db_session, code_generator=generator)

    with pytest.raises(TrackingCodeExhaustedError):
        await service.create_shipment(ShipmentCreate.model_validate(sample_shipment_payload))

    assert len(calls) == 5

    _, total = await service.list_shipments()
    assert total == 1


@pytest.mark.anyio
async def test_failed_event_insert_rolls_back_shipment(db_session, sample_shipment_payload, monkeypatch):
    # description is NOT NULL, so the second insert of the transaction fails
    monkeypatch.setattr("app.services.shipment_service.CREATION_EVENT_DESCRIPTION", None)

    with pytest.raises(ShipmentCreationError) as exc_info:
        await ShipmentService(db_session).create_shipment(
            ShipmentCreate.model_validate(sample_shipment_payload)
        )

    assert exc_info.value.code == "SHIPMENT_CREATE_FAILED"
    shipments = await db_session.scalar(select(func.count()).select_from(Shipment))
    events = await db_session.scalar(select(func.count()).select_from(TrackingEvent))
    assert shipments == 0
    assert events == 0


@pytest.mark.anyio
async def test_get_by_tracking_code_normalizes(db_session, sample_shipment_payload):
    shipment = await _create(db_session, sample_shipment_payload)
    service = ShipmentService(db_session)

    found = await service.get_by_tracking_code(f"  {shipment.tracking_code.lower()} ")

    assert found.id == shipment.id
    assert await service.get_by_tracking_code("CRR-FFFFFFFF-ZZ") is None


@pytest.mark.anyio
async def test_update_status_appends_exactly_one_event(db_session, sample_shipment_payload):
    shipment = await _create(db_session, sample_shipment_payload)
    service = ShipmentService(db_session)

    updated, event, events = await service.update_status(
        shipment.id, ShipmentStatus.IN_TRANSIT, "Heathrow Hub"
    )

    assert updated.status == ShipmentStatus.IN_TRANSIT
    assert updated.current_location == "Heathrow Hub"
    assert event.description == "Status updated to IN TRANSIT"
    assert [e.status for e in events] == [ShipmentStatus.IN_TRANSIT, ShipmentStatus.CREATED]


@pytest.mark.anyio
async def test_reapplying_a_status_still_records_an_event(db_session, sample_shipment_payload):
    shipment = await _create(db_session, sample_shipment_payload)
    service = ShipmentService(db_session)

    await service.update_status(shipment.id, ShipmentStatus.DELIVERED, "London")
    # Any status may follow any other
    await service.update_status(shipment.id, ShipmentStatus.IN_TRANSIT, "London", "Delivered in error")
    _, _, events = await service.update_status(shipment.id, ShipmentStatus.IN_TRANSIT, "London")

    assert len(events) == 4
    assert events[1].description == "Delivered in error"


@pytest.mark.anyio
async def test_update_shipment_applies_only_sent_fields(db_session, sample_shipment_payload):
    shipment = await _create(db_session, sample_shipment_payload)
    service = ShipmentService(db_session)

    update = ShipmentUpdate.model_validate({"destination": "Manchester, United Kingdom", "sender": None})
    updated = await service.update_shipment(shipment.id, update)

    assert updated.destination == "Manchester, United Kingdom"
    assert updated.origin == "Lagos, Nigeria"
    # Required blocks are never cleared
    assert updated.sender["name"] == "Ada Sender"


@pytest.mark.anyio
async def test_list_shipments_filters_and_search(db_session, sample_shipment_payload):
    service = ShipmentService(db_session)
    await _create(db_session, sample_shipment_payload)
    other = await _create(
        db_session,
        sample_shipment_payload,
        serviceType="ECONOMY",
        destination="Paris_100%, France",
    )

    items, total = await service.list_shipments(service_type="ECONOMY")
    assert total == 1
    assert items[0].id == other.id

    _, total = await service.list_shipments(search="bob receiver")
    assert total == 2

    # Wildcards in the search term match literally
    items, total = await service.list_shipments(search="_100%")
    assert total == 1
    assert items[0].id == other.id
    _, total = await service.list_shipments(search="%")
    assert total == 1


@pytest.mark.anyio
async def test_list_shipments_newest_first_with_paging(db_session, sample_shipment_payload):
    service = ShipmentService(db_session)
    created = [await _create(db_session, sample_shipment_payload) for _ in range(3)]

    items, total = await service.list_shipments(offset=0, limit=2)

    assert total == 3
    assert [s.id for s in items] == [created[2].id, created[1].id]


@pytest.mark.anyio
async def test_delete_shipment_removes_events_and_attempts_every_image(db_session, sample_shipment_payload):
    shipment = await _create(db_session, sample_shipment_payload, packageImages=_images(3))
    service = ShipmentService(db_session)
    await service.update_status(shipment.id, ShipmentStatus.PICKED_UP, "Lagos")
    deleter = RecordingDeleter(failing={"courier/package_images/img0.png"})

    await service.delete_shipment(shipment.id, deleter)

    assert len(deleter.attempted) == 3
    assert await service.list_events(shipment.id) == []
    with pytest.raises(NotFoundError):
        await service.get_shipment(shipment.id)


@pytest.mark.anyio
async def test_image_cap(db_session, sample_shipment_payload):
    shipment = await _create(db_session, sample_shipment_payload, packageImages=_images(4))
    service = ShipmentService(db_session)

    await service.attach_image(shipment.id, url="https://cdn.test/5.png", public_id="k5")

    with pytest.raises(ValidationError) as exc:
        await service.ensure_image_capacity(shipment.id)
    assert exc.value.message == "A shipment can have at most 5 images"

    with pytest.raises(ValidationError):
        await service.attach_image(shipment.id, url="https://cdn.test/6.png", public_id="k6")


@pytest.mark.anyio
async def test_update_event_blank_description_uses_status_default(db_session, sample_shipment_payload):
    shipment = await _create(db_session, sample_shipment_payload)
    service = ShipmentService(db_session)
    _, event, _ = await service.update_status(shipment.id, ShipmentStatus.ON_HOLD, "Lagos")

    edited = await service.update_event(shipment.id, event.id, location="Ikeja", description="")

    assert edited.location == "Ikeja"
    assert edited.description == "Package is on hold"


@pytest.mark.anyio
async def test_event_must_belong_to_shipment(db_session, sample_shipment_payload):
    first = await _create(db_session, sample_shipment_payload)
    second = await _create(db_session, sample_shipment_payload)
    service = ShipmentService(db_session)
    foreign_event = (await service.list_events(second.id))[0]

    with pytest.raises(NotFoundError) as exc:
        await service.delete_event(first.id, foreign_event.id)
    assert exc.value.message == "Event not found in this shipment"

    await service.delete_event(second.id, foreign_event.id)
    assert await db_session.get(TrackingEvent, foreign_event.id) is None
