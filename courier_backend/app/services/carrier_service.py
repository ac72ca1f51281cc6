"""
Carrier Service

Carrier directory. Codes are unique and stored uppercase; deleting a carrier
leaves shipments that reference it untouched.
"""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError
from app.models.carrier import Carrier
from app.schemas.carrier import CarrierCreate, CarrierUpdate

logger = logging.getLogger(__name__)

DUPLICATE_CODE_MESSAGE = "A carrier with this code already exists"


class CarrierService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _code_taken(self, code: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Carrier.id).where(Carrier.code == code.upper())
        if exclude_id is not None:
            query = query.where(Carrier.id != exclude_id)
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def _commit_unique(self, code: str) -> None:
        # Concurrent writers can still race past _code_taken
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(DUPLICATE_CODE_MESSAGE, details={"code": code}) from e

    async def list_carriers(self, active_only: bool = False) -> List[Carrier]:
        query = select(Carrier)
        if active_only:
            query = query.where(Carrier.is_active.is_(True))
        result = await self.db.execute(query.order_by(Carrier.name.asc(), Carrier.id.asc()))
        return list(result.scalars().all())

    async def get_carrier(self, carrier_id: int) -> Carrier:
        carrier = await self.db.get(Carrier, carrier_id)
        if carrier is None:
            raise NotFoundError("Carrier not found", details={"carrier_id": carrier_id})
        return carrier

    async def find_carrier(self, carrier_id: Optional[int]) -> Optional[Carrier]:
        """Weak lookup for shipment views; a dangling id yields None."""
        if carrier_id is None:
            return None
        return await self.db.get(Carrier, carrier_id)

    async def create_carrier(self, data: CarrierCreate, created_by: Optional[int] = None) -> Carrier:
        if await self._code_taken(data.code):
            raise ConflictError(DUPLICATE_CODE_MESSAGE, details={"code": data.code})

        carrier = Carrier(
            **data.model_dump(mode="json"),
            created_by=created_by,
        )
        self.db.add(carrier)
        await self._commit_unique(data.code)

        logger.info(f"Created carrier {carrier.code} (id={carrier.id})")
        return carrier

    async def update_carrier(self, carrier_id: int, data: CarrierUpdate) -> Carrier:
        carrier = await self.get_carrier(carrier_id)

        changes = data.model_dump(mode="json", include=data.model_fields_set)
        # Required columns are never nulled
        for required in ("name", "code", "is_active"):
            if changes.get(required, "") is None:
                changes.pop(required)

        if "code" in changes and changes["code"] != carrier.code:
            if await self._code_taken(changes["code"], exclude_id=carrier.id):
                raise ConflictError(DUPLICATE_CODE_MESSAGE, details={"code": changes["code"]})

        for name, value in changes.items():
            setattr(carrier, name, value)
        await self._commit_unique(carrier.code)

        logger.info(f"Updated carrier {carrier.code}: {sorted(changes)}")
        return carrier

    async def delete_carrier(self, carrier_id: int) -> Carrier:
        carrier = await self.get_carrier(carrier_id)
        await self.db.delete(carrier)
        await self.db.commit()
        logger.info(f"Deleted carrier {carrier.code} (id={carrier.id})")
        return carrier
