"""
Quote Service

Public quote requests priced by the estimator, and the one-shot admin
response (PENDING → RESPONDED).
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.core.utils import utcnow
from app.models.quote import Quote, QuoteStatus
from app.models.shipment import ServiceType
from app.schemas.quote import QuoteCreate, QuoteRespond
from app.services.quote_estimator import calculate_estimate

logger = logging.getLogger(__name__)


class QuoteService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_quote(self, data: QuoteCreate) -> Quote:
        estimate = calculate_estimate(data.package_details, data.service_type)

        quote = Quote(
            name=data.name,
            email=data.email.lower(),
            phone=data.phone,
            origin=data.origin,
            destination=data.destination,
            package_details=data.package_details.model_dump(mode="json", exclude_none=True),
            service_type=data.service_type,
            estimated_price=estimate.total_estimate,
            status=QuoteStatus.PENDING,
        )
        self.db.add(quote)
        await self.db.flush()
        await self.db.commit()

        logger.info(
            f"Quote {quote.id} submitted: {data.origin} -> {data.destination} "
            f"({data.service_type.value}, est. {estimate.total_estimate})"
        )
        return quote

    async def get_quote(self, quote_id: int) -> Quote:
        quote = await self.db.get(Quote, quote_id)
        if quote is None:
            raise NotFoundError("Quote not found", details={"quote_id": quote_id})
        return quote

    async def list_quotes(
        self,
        offset: int = 0,
        limit: int = 20,
        status: Optional[QuoteStatus] = None,
        service_type: Optional[ServiceType] = None,
    ) -> Tuple[List[Quote], int]:
        conditions = []
        if status:
            conditions.append(Quote.status == status)
        if service_type:
            conditions.append(Quote.service_type == service_type)

        count_query = select(func.count(Quote.id))
        query = select(Quote)
        if conditions:
            count_query = count_query.where(*conditions)
            query = query.where(*conditions)

        total = (await self.db.execute(count_query)).scalar_one()
        result = await self.db.execute(
            query.order_by(Quote.created_at.desc(), Quote.id.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total

    async def respond(self, quote_id: int, data: QuoteRespond, responded_by: int) -> Quote:
        """Record the admin's price and message. Only PENDING quotes accept a response."""
        quote = await self.get_quote(quote_id)
        if quote.status != QuoteStatus.PENDING:
            raise ValidationError(
                f"Quote has already been {QuoteStatus(quote.status).value.lower()}",
                details={"quote_id": quote_id},
            )

        quote.estimated_price = data.estimated_price
        quote.admin_response = data.admin_response
        quote.status = QuoteStatus.RESPONDED
        quote.responded_at = utcnow()
        quote.responded_by = responded_by
        await self.db.flush()
        await self.db.commit()

        logger.info(f"Quote {quote.id} responded by user {responded_by}")
        return quote
