"""
Admin Carrier Routes

Carrier directory management. Requires admin authentication.
"""
import logging

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.api.deps import get_current_admin
from app.models.audit_log import AuditAction
from app.models.user import User
from app.schemas.carrier import CarrierCreate, CarrierResponse, CarrierUpdate
from app.schemas.common import envelope
from app.services.audit_service import AuditService
from app.services.carrier_service import CarrierService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/carriers",
    tags=["admin-carriers"],
    dependencies=[Depends(rate_limit("admin")), Depends(get_current_admin)],
)


@router.get("")
async def list_carriers(
    active: bool = Query(False, description="Only active carriers"),
    db: AsyncSession = Depends(get_db),
):
    """All carriers sorted by name."""
    carriers = await CarrierService(db).list_carriers(active_only=active)
    return envelope([CarrierResponse.model_validate(c).to_wire() for c in carriers])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_carrier(
    data: CarrierCreate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    carrier = await CarrierService(db).create_carrier(data, created_by=admin.id)
    await AuditService(db).log(
        AuditAction.CARRIER_CREATED,
        entity_type="carrier",
        entity_id=carrier.id,
        user=admin,
        request=request,
        new_data={"code": carrier.code, "name": carrier.name},
    )
    return envelope(
        CarrierResponse.model_validate(carrier).to_wire(),
        message="Carrier created successfully",
    )


@router.get("/{carrier_id}")
async def get_carrier(
    carrier_id: int,
    db: AsyncSession = Depends(get_db),
):
    carrier = await CarrierService(db).get_carrier(carrier_id)
    return envelope(CarrierResponse.model_validate(carrier).to_wire())


@router.patch("/{carrier_id}")
async def update_carrier(
    carrier_id: int,
    data: CarrierUpdate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    carrier = await CarrierService(db).update_carrier(carrier_id, data)
    await AuditService(db).log(
        AuditAction.CARRIER_UPDATED,
        entity_type="carrier",
        entity_id=carrier.id,
        user=admin,
        request=request,
        metadata={"fields": sorted(data.model_fields_set)},
    )
    return envelope(
        CarrierResponse.model_validate(carrier).to_wire(),
        message="Carrier updated successfully",
    )


@router.delete("/{carrier_id}")
async def delete_carrier(
    carrier_id: int,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Shipments keep their carrier_id; detail views then show no carrier."""
    carrier = await CarrierService(db).delete_carrier(carrier_id)
    await AuditService(db).log(
        AuditAction.CARRIER_DELETED,
        entity_type="carrier",
        entity_id=carrier_id,
        user=admin,
        request=request,
        previous_data={"code": carrier.code},
    )
    return envelope(message="Carrier deleted successfully")
