"""
Public shipment tracking

GET /tracking?code=CRR-XXXXXXXX-XX returns a sanitized snapshot of the
shipment: no creator, no internal ids, no payment reference.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.models.shipment import Shipment, TrackingEvent
from app.schemas.common import envelope
from app.schemas.shipment import PublicTrackingResponse
from app.services.shipment_service import ShipmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tracking", tags=["tracking"])

NOT_FOUND_MESSAGE = "Shipment not found. Please check your tracking code."


def _public_contact(contact: dict) -> dict:
    return {
        "name": contact.get("name"),
        "address": contact.get("address"),
        "phone": contact.get("phone"),
        "email": contact.get("email"),
    }


def _public_freight(charges: dict) -> dict:
    return {
        "base_charge": charges.get("base_charge", 0),
        "fuel_surcharge": charges.get("fuel_surcharge"),
        "insurance": charges.get("insurance_fee"),
        "handling_fee": charges.get("handling_fee"),
        "customs_duty": charges.get("customs_duty"),
        "tax": charges.get("tax"),
        "discount": charges.get("discount"),
        "total": charges.get("total", 0),
        "currency": charges.get("currency") or "USD",
    }


def build_tracking_snapshot(shipment: Shipment, events: list[TrackingEvent]) -> PublicTrackingResponse:
    freight = shipment.freight_charges or None
    return PublicTrackingResponse(
        tracking_code=shipment.tracking_code,
        status=shipment.status,
        origin=shipment.origin,
        destination=shipment.destination,
        current_location=shipment.current_location,
        estimated_delivery_date=shipment.estimated_delivery_date,
        sender=_public_contact(shipment.sender),
        receiver=_public_contact(shipment.receiver),
        package=shipment.package,
        service_type=shipment.service_type,
        consignment_type=shipment.consignment_type,
        shipment_type=shipment.shipment_type,
        shipment_mode=shipment.shipment_mode,
        origin_location=shipment.origin_location,
        destination_location=shipment.destination_location,
        package_images=shipment.package_images or [],
        freight=_public_freight(freight) if freight else None,
        payment_status=freight.get("payment_status") if freight else None,
        payment_method=freight.get("payment_method") if freight else None,
        carrier_tracking_code=shipment.carrier_tracking_code,
        events=[
            {
                "status": event.status,
                "location": event.location,
                "description": event.description,
                "timestamp": event.created_at,
            }
            for event in events
        ],
        created_at=shipment.created_at,
        updated_at=shipment.updated_at,
    )


@router.get("", dependencies=[Depends(rate_limit("tracking"))])
async def track_shipment(
    code: str = Query(..., min_length=1, max_length=50, description="Tracking code"),
    db: AsyncSession = Depends(get_db),
):
    """Look up a shipment by tracking code (case-insensitive)."""
    service = ShipmentService(db)
    shipment = await service.get_by_tracking_code(code)
    if shipment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_MESSAGE)

    events = await service.list_events(shipment.id)
    return envelope(build_tracking_snapshot(shipment, events).to_wire())
