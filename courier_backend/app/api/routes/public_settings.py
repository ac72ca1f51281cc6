"""
Public company settings (name and contact details shown on the site)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.schemas.common import envelope
from app.schemas.settings import CompanySettingsResponse
from app.services.company_settings import CompanySettingsService

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", dependencies=[Depends(rate_limit("default"))])
async def get_public_settings(db: AsyncSession = Depends(get_db)):
    row = await CompanySettingsService(db).get_or_create()
    return envelope(CompanySettingsResponse.model_validate(row).to_wire())
