"""
Company Settings Service

Single-row company profile; created with defaults on first read.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.company_settings import CompanySettings

logger = logging.getLogger(__name__)


class CompanySettingsService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_or_create(self) -> CompanySettings:
        result = await self.db.execute(
            select(CompanySettings).order_by(CompanySettings.id).limit(1)
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = CompanySettings(company_name=settings.COMPANY_NAME)
            self.db.add(row)
            await self.db.flush()
            logger.info("Created default company settings")
        return row

    async def update(self, changes: dict) -> CompanySettings:
        row = await self.get_or_create()
        for field, value in changes.items():
            if value is None:
                continue
            setattr(row, field, value)
        await self.db.flush()
        await self.db.refresh(row)
        return row

    async def company_name(self) -> str:
        """Name for email subjects; config value if the row is missing or blank."""
        result = await self.db.execute(
            select(CompanySettings.company_name).order_by(CompanySettings.id).limit(1)
        )
        name: Optional[str] = result.scalar_one_or_none()
        return name or settings.COMPANY_NAME
