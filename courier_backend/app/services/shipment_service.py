"""
Shipment Service

Shipment records, their tracking-event timeline and status transitions.

Invariants:
- tracking_code is unique and never changes after creation
- a shipment is created together with its CREATED event, or not at all
- every status update appends exactly one event; any status may follow any
  other (admins correct mistakes by re-applying a status)
- at most MAX_PACKAGE_IMAGES images per shipment
"""
import logging
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    NotFoundError,
    ShipmentCreationError,
    TrackingCodeExhaustedError,
    ValidationError,
)
from app.core.utils import escape_like, utcnow
from app.models.shipment import (
    DEFAULT_EVENT_DESCRIPTIONS,
    MAX_PACKAGE_IMAGES,
    ServiceType,
    Shipment,
    ShipmentStatus,
    TrackingEvent,
)
from app.schemas.shipment import PackageImageInput, ShipmentCreate, ShipmentUpdate
from app.services.quote_estimator import calculate_estimated_delivery_date
from app.services.tracking_code import (
    MAX_TRACKING_CODE_ATTEMPTS,
    generate_tracking_code,
    normalize_tracking_code,
)

logger = logging.getLogger(__name__)

CREATION_EVENT_DESCRIPTION = "Shipment has been created and is being processed"

# Nested value objects stored as JSON
JSON_FIELDS = {
    "sender",
    "receiver",
    "package",
    "origin_location",
    "destination_location",
    "freight_charges",
}

# Never cleared by a partial update, even when sent as null
REQUIRED_FIELDS = {
    "consignment_type",
    "shipment_type",
    "shipment_mode",
    "service_type",
    "sender",
    "receiver",
    "package",
    "origin",
    "destination",
}


class FileDeleter(Protocol):
    def delete_file(self, key: str) -> Awaitable[bool]:
        ...


def default_event_description(status: ShipmentStatus) -> str:
    return DEFAULT_EVENT_DESCRIPTIONS.get(ShipmentStatus(status), "")


def status_update_description(status: ShipmentStatus) -> str:
    return f"Status updated to {ShipmentStatus(status).value.replace('_', ' ')}"


def stamp_images(images: Sequence[PackageImageInput]) -> List[dict]:
    """First MAX_PACKAGE_IMAGES images, each stamped with the upload time."""
    uploaded_at = utcnow().isoformat()
    return [
        {"url": image.url, "public_id": image.public_id, "uploaded_at": uploaded_at}
        for image in list(images)[:MAX_PACKAGE_IMAGES]
    ]


def _dump(value):
    if value is None:
        return None
    return value.model_dump(mode="json", exclude_none=True)


class ShipmentService:

    def __init__(
        self,
        db: AsyncSession,
        code_generator: Callable[[], str] = generate_tracking_code,
        max_code_attempts: int = MAX_TRACKING_CODE_ATTEMPTS,
    ):
        self.db = db
        self.code_generator = code_generator
        self.max_code_attempts = max_code_attempts

    # ----- tracking codes -----

    async def tracking_code_exists(self, code: str) -> bool:
        result = await self.db.execute(
            select(Shipment.id).where(Shipment.tracking_code == code).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def generate_unique_tracking_code(self) -> str:
        for attempt in range(1, self.max_code_attempts + 1):
            code = self.code_generator()
            if not await self.tracking_code_exists(code):
                return code
            logger.warning(f"Tracking code collision on attempt {attempt}: {code}")
        raise TrackingCodeExhaustedError(attempts=self.max_code_attempts)

    # ----- shipments -----

    async def create_shipment(
        self,
        data: ShipmentCreate,
        created_by: Optional[int] = None,
    ) -> Tuple[Shipment, TrackingEvent]:
        """
        Insert a shipment and its CREATED event in one transaction.

        Raises:
            TrackingCodeExhaustedError: every candidate code was taken
            ShipmentCreationError: the insert failed and was rolled back
        """
        tracking_code = await self.generate_unique_tracking_code()
        estimated_delivery_date = (
            data.estimated_delivery_date
            or calculate_estimated_delivery_date(data.service_type)
        )

        try:
            shipment = Shipment(
                tracking_code=tracking_code,
                consignment_type=data.consignment_type,
                shipment_type=data.shipment_type,
                shipment_mode=data.shipment_mode,
                service_type=data.service_type,
                sender=_dump(data.sender),
                receiver=_dump(data.receiver),
                package=_dump(data.package),
                origin=data.origin,
                destination=data.destination,
                origin_location=_dump(data.origin_location),
                destination_location=_dump(data.destination_location),
                status=ShipmentStatus.CREATED,
                current_location=data.origin,
                estimated_delivery_date=estimated_delivery_date,
                package_images=stamp_images(data.package_images),
                freight_charges=_dump(data.freight_charges),
                carrier_id=data.carrier_id,
                carrier_tracking_code=data.carrier_tracking_code,
                created_by=created_by,
            )
            self.db.add(shipment)
            await self.db.flush()

            event = TrackingEvent(
                shipment_id=shipment.id,
                status=ShipmentStatus.CREATED,
                location=data.origin,
                description=CREATION_EVENT_DESCRIPTION,
            )
            self.db.add(event)
            await self.db.flush()

            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Shipment creation rolled back ({tracking_code}): {type(e).__name__}: {e}")
            raise ShipmentCreationError(
                "Failed to create shipment",
                details={"tracking_code": tracking_code},
            ) from e

        logger.info(f"Created shipment {tracking_code} (id={shipment.id})")
        return shipment, event

    async def get_shipment(self, shipment_id: int) -> Shipment:
        shipment = await self.db.get(Shipment, shipment_id)
        if shipment is None:
            raise NotFoundError("Shipment not found", details={"shipment_id": shipment_id})
        return shipment

    async def get_by_tracking_code(self, code: str) -> Optional[Shipment]:
        result = await self.db.execute(
            select(Shipment).where(Shipment.tracking_code == normalize_tracking_code(code))
        )
        return result.scalar_one_or_none()

    async def list_shipments(
        self,
        offset: int = 0,
        limit: int = 20,
        status: Optional[ShipmentStatus] = None,
        service_type: Optional[ServiceType] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Shipment], int]:
        """Newest first. `search` is a literal, case-insensitive substring."""
        conditions = []
        if status:
            conditions.append(Shipment.status == status)
        if service_type:
            conditions.append(Shipment.service_type == service_type)
        if search and search.strip():
            pattern = f"%{escape_like(search.strip())}%"
            conditions.append(or_(
                Shipment.tracking_code.ilike(pattern, escape="\\"),
                Shipment.sender["name"].as_string().ilike(pattern, escape="\\"),
                Shipment.receiver["name"].as_string().ilike(pattern, escape="\\"),
                Shipment.origin.ilike(pattern, escape="\\"),
                Shipment.destination.ilike(pattern, escape="\\"),
            ))

        count_query = select(func.count(Shipment.id))
        query = select(Shipment)
        if conditions:
            count_query = count_query.where(*conditions)
            query = query.where(*conditions)

        total = (await self.db.execute(count_query)).scalar_one()
        result = await self.db.execute(
            query.order_by(Shipment.created_at.desc(), Shipment.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def update_shipment(self, shipment_id: int, data: ShipmentUpdate) -> Shipment:
        """Apply only the fields present in the request body."""
        shipment = await self.get_shipment(shipment_id)

        for name in data.model_fields_set:
            value = getattr(data, name)
            if name == "package_images":
                value = stamp_images(value or [])
            elif name in JSON_FIELDS:
                value = _dump(value)

            if value is None and name in REQUIRED_FIELDS:
                continue
            setattr(shipment, name, value)

        await self.db.flush()
        await self.db.commit()
        logger.info(f"Updated shipment {shipment.tracking_code}: {sorted(data.model_fields_set)}")
        return shipment

    async def delete_shipment(self, shipment_id: int, storage: FileDeleter) -> Shipment:
        """
        Delete a shipment, its events and its stored images.

        Image deletion is best effort: failures are logged and do not block.
        """
        shipment = await self.get_shipment(shipment_id)

        for image in shipment.package_images or []:
            key = image.get("public_id")
            if not key:
                continue
            try:
                await storage.delete_file(key)
            except Exception as e:
                logger.warning(f"Failed to delete image {key} of {shipment.tracking_code}: {e}")

        await self.db.execute(
            delete(TrackingEvent).where(TrackingEvent.shipment_id == shipment.id)
        )
        await self.db.delete(shipment)
        await self.db.commit()

        logger.info(f"Deleted shipment {shipment.tracking_code} (id={shipment.id})")
        return shipment

    async def attach_image(self, shipment_id: int, url: str, public_id: str) -> Shipment:
        shipment = await self.get_shipment(shipment_id)
        images = list(shipment.package_images or [])
        if len(images) >= MAX_PACKAGE_IMAGES:
            raise ValidationError(f"A shipment can have at most {MAX_PACKAGE_IMAGES} images")

        images.append({"url": url, "public_id": public_id, "uploaded_at": utcnow().isoformat()})
        # New list so the JSON column is flagged dirty
        shipment.package_images = images
        await self.db.flush()
        await self.db.commit()
        return shipment

    async def ensure_image_capacity(self, shipment_id: int) -> Shipment:
        """Raise before uploading if the shipment is already full."""
        shipment = await self.get_shipment(shipment_id)
        if len(shipment.package_images or []) >= MAX_PACKAGE_IMAGES:
            raise ValidationError(f"A shipment can have at most {MAX_PACKAGE_IMAGES} images")
        return shipment

    # ----- status transitions -----

    async def update_status(
        self,
        shipment_id: int,
        status: ShipmentStatus,
        location: str,
        description: Optional[str] = None,
    ) -> Tuple[Shipment, TrackingEvent, List[TrackingEvent]]:
        """
        Move a shipment to `status` at `location`.

        No transition rules: every call appends exactly one event.
        Returns (shipment, new event, all events newest first).
        """
        shipment = await self.get_shipment(shipment_id)
        previous = shipment.status

        event = TrackingEvent(
            shipment_id=shipment.id,
            status=status,
            location=location,
            description=description or status_update_description(status),
        )
        self.db.add(event)

        shipment.status = status
        shipment.current_location = location
        await self.db.flush()
        await self.db.commit()

        logger.info(f"Shipment {shipment.tracking_code}: {previous} -> {status} at {location}")
        events = await self.list_events(shipment.id)
        return shipment, event, events

    # ----- tracking events -----

    async def list_events(self, shipment_id: int) -> List[TrackingEvent]:
        result = await self.db.execute(
            select(TrackingEvent)
            .where(TrackingEvent.shipment_id == shipment_id)
            .order_by(TrackingEvent.created_at.desc(), TrackingEvent.id.desc())
        )
        return list(result.scalars().all())

    async def _get_event(self, shipment_id: int, event_id: int) -> TrackingEvent:
        await self.get_shipment(shipment_id)
        event = await self.db.get(TrackingEvent, event_id)
        if event is None or event.shipment_id != shipment_id:
            raise NotFoundError(
                "Event not found in this shipment",
                details={"shipment_id": shipment_id, "event_id": event_id},
            )
        return event

    async def update_event(
        self,
        shipment_id: int,
        event_id: int,
        location: Optional[str] = None,
        description: Optional[str] = None,
    ) -> TrackingEvent:
        """Edit an event; a blank description falls back to the status default."""
        event = await self._get_event(shipment_id, event_id)
        if location is not None:
            event.location = location
        if description is not None:
            event.description = description or default_event_description(event.status)
        await self.db.flush()
        await self.db.commit()
        return event

    async def delete_event(self, shipment_id: int, event_id: int) -> None:
        event = await self._get_event(shipment_id, event_id)
        await self.db.delete(event)
        await self.db.commit()
