"""
Admin API Routes for company settings and the admin's own password
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.api.deps import get_current_admin
from app.models.user import User
from app.schemas.common import envelope
from app.schemas.settings import CompanySettingsResponse, CompanySettingsUpdate, PasswordChange
from app.services.company_settings import CompanySettingsService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/settings",
    tags=["admin-settings"],
    dependencies=[Depends(rate_limit("admin")), Depends(get_current_admin)],
)


@router.get("")
async def get_settings(db: AsyncSession = Depends(get_db)):
    row = await CompanySettingsService(db).get_or_create()
    return envelope(CompanySettingsResponse.model_validate(row).to_wire())


@router.put("")
async def update_settings(
    data: CompanySettingsUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Fields left out of the body keep their value; "" clears a contact field."""
    row = await CompanySettingsService(db).update(data.model_dump(include=data.model_fields_set))
    logger.info(f"Company settings updated by {admin.email}: {sorted(data.model_fields_set)}")
    return envelope(CompanySettingsResponse.model_validate(row).to_wire())


@router.put("/password")
async def change_password(
    data: PasswordChange,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    await UserService(db).change_password(
        admin,
        current_password=data.current_password,
        new_password=data.new_password,
        confirm_password=data.confirm_password,
    )
    return envelope(message="Password changed successfully")
