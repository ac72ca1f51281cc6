"""
Admin Shipment Routes

Shipment CRUD, status transitions and tracking-event edits.
Requires admin authentication; rate class "admin".
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.api.deps import get_current_admin, get_notifier, get_storage_service
from app.models.audit_log import AuditAction
from app.models.shipment import ServiceType, Shipment, ShipmentStatus, TrackingEvent
from app.models.user import User
from app.schemas.common import PaginationParams, envelope, pagination_meta, pagination_params
from app.schemas.shipment import (
    CarrierSummary,
    ShipmentCreate,
    ShipmentDetailResponse,
    ShipmentResponse,
    ShipmentUpdate,
    StatusUpdate,
    TrackingEventResponse,
    TrackingEventUpdate,
    UserSummary,
)
from app.services.audit_service import AuditService
from app.services.carrier_service import CarrierService
from app.services.notifications import NotificationDispatcher
from app.services.shipment_service import ShipmentService
from app.services.storage import StorageService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/shipments",
    tags=["admin-shipments"],
    dependencies=[Depends(rate_limit("admin")), Depends(get_current_admin)],
)


async def build_shipment_detail(
    db: AsyncSession,
    shipment: Shipment,
    events: Optional[List[TrackingEvent]] = None,
) -> dict:
    """Shipment with its carrier, creator and events (newest first)."""
    if events is None:
        events = await ShipmentService(db).list_events(shipment.id)

    carrier = await CarrierService(db).find_carrier(shipment.carrier_id)
    creator = await db.get(User, shipment.created_by) if shipment.created_by else None

    detail = ShipmentDetailResponse.model_validate(shipment)
    detail.events = [TrackingEventResponse.model_validate(e) for e in events]
    if carrier is not None:
        detail.carrier = CarrierSummary(
            id=carrier.id,
            name=carrier.name,
            code=carrier.code,
            tracking_url=(
                carrier.get_tracking_url(shipment.carrier_tracking_code)
                if shipment.carrier_tracking_code else None
            ),
        )
    if creator is not None:
        detail.creator = UserSummary.model_validate(creator)
    return detail.to_wire()


@router.get("")
async def list_shipments(
    page: PaginationParams = Depends(pagination_params),
    status_filter: Optional[ShipmentStatus] = Query(None, alias="status"),
    service_type: Optional[ServiceType] = Query(None, alias="serviceType"),
    search: Optional[str] = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
):
    """Paginated shipments, newest first."""
    items, total = await ShipmentService(db).list_shipments(
        offset=page.offset,
        limit=page.limit,
        status=status_filter,
        service_type=service_type,
        search=search,
    )
    return envelope(
        [ShipmentResponse.model_validate(s).to_wire() for s in items],
        pagination=pagination_meta(total, page.page, page.limit),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_shipment(
    data: ShipmentCreate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Create a shipment and its first tracking event atomically."""
    shipment, event = await ShipmentService(db).create_shipment(data, created_by=admin.id)

    await AuditService(db).log(
        AuditAction.SHIPMENT_CREATED,
        entity_type="shipment",
        entity_id=shipment.id,
        user=admin,
        request=request,
        new_data={"tracking_code": shipment.tracking_code, "service_type": shipment.service_type.value},
    )

    if data.send_notification:
        notifier.shipment_created(
            receiver_email=shipment.receiver["email"],
            receiver_name=shipment.receiver["name"],
            tracking_code=shipment.tracking_code,
            origin=shipment.origin,
            destination=shipment.destination,
            sent_by=admin.id,
            shipment_id=shipment.id,
        )

    return envelope(
        await build_shipment_detail(db, shipment, [event]),
        message=f"Shipment created with tracking code: {shipment.tracking_code}",
    )


@router.get("/{shipment_id}")
async def get_shipment(
    shipment_id: int,
    db: AsyncSession = Depends(get_db),
):
    shipment = await ShipmentService(db).get_shipment(shipment_id)
    return envelope(await build_shipment_detail(db, shipment))


@router.put("/{shipment_id}")
async def update_shipment(
    shipment_id: int,
    data: ShipmentUpdate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Partial update; only fields present in the body change."""
    shipment = await ShipmentService(db).update_shipment(shipment_id, data)

    await AuditService(db).log(
        AuditAction.SHIPMENT_UPDATED,
        entity_type="shipment",
        entity_id=shipment.id,
        user=admin,
        request=request,
        metadata={"fields": sorted(data.model_fields_set)},
    )
    return envelope(
        await build_shipment_detail(db, shipment),
        message="Shipment updated successfully",
    )


@router.delete("/{shipment_id}")
async def delete_shipment(
    shipment_id: int,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    """Delete the shipment, its events and (best effort) its images."""
    shipment = await ShipmentService(db).delete_shipment(shipment_id, storage)

    await AuditService(db).log(
        AuditAction.SHIPMENT_DELETED,
        entity_type="shipment",
        entity_id=shipment_id,
        user=admin,
        request=request,
        previous_data={"tracking_code": shipment.tracking_code},
    )
    return envelope(message="Shipment deleted successfully")


@router.patch("/{shipment_id}/status")
async def update_shipment_status(
    shipment_id: int,
    data: StatusUpdate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Move to any status; appends one tracking event and notifies the receiver."""
    service = ShipmentService(db)
    previous_status = (await service.get_shipment(shipment_id)).status
    shipment, event, events = await service.update_status(
        shipment_id, data.status, data.location, data.description
    )

    await AuditService(db).log(
        AuditAction.SHIPMENT_STATUS_CHANGED,
        entity_type="shipment",
        entity_id=shipment.id,
        user=admin,
        request=request,
        previous_data={"status": ShipmentStatus(previous_status).value},
        new_data={"status": data.status.value, "location": data.location},
    )

    notifier.status_updated(
        receiver_email=shipment.receiver["email"],
        receiver_name=shipment.receiver["name"],
        tracking_code=shipment.tracking_code,
        status=data.status.value,
        location=data.location,
        description=data.description or "",
        sent_by=admin.id,
        shipment_id=shipment.id,
    )

    return envelope(
        await build_shipment_detail(db, shipment, events),
        message=f"Shipment status updated to {data.status.value}",
    )


@router.put("/{shipment_id}/events/{event_id}")
async def update_tracking_event(
    shipment_id: int,
    event_id: int,
    data: TrackingEventUpdate,
    db: AsyncSession = Depends(get_db),
):
    event = await ShipmentService(db).update_event(
        shipment_id, event_id, location=data.location, description=data.description
    )
    return envelope(
        TrackingEventResponse.model_validate(event).to_wire(),
        message="Tracking event updated",
    )


@router.delete("/{shipment_id}/events/{event_id}")
async def delete_tracking_event(
    shipment_id: int,
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    await ShipmentService(db).delete_event(shipment_id, event_id)
    return envelope(message="Tracking event deleted")
