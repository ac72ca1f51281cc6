"""
Public quote request routes

Rate limited ("quotes") to keep the form from being used for spam.
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.schemas.common import envelope
from app.schemas.quote import DeliveryWindow, QuoteCreate, QuoteSubmitted
from app.services.quote_estimator import get_estimated_delivery_days
from app.services.quote_service import QuoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["quotes"])

QUOTE_RECEIVED_MESSAGE = (
    "Your quote request has been received. Our team will review and respond "
    "shortly with a detailed quote."
)


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(rate_limit("quotes"))])
async def submit_quote(
    data: QuoteCreate,
    db: AsyncSession = Depends(get_db),
):
    """Price the request with the estimator and store it as PENDING."""
    quote = await QuoteService(db).create_quote(data)
    min_days, max_days = get_estimated_delivery_days(data.service_type)

    submitted = QuoteSubmitted(
        id=quote.id,
        status=quote.status,
        estimated_price=quote.estimated_price,
        estimated_delivery=DeliveryWindow(min=min_days, max=max_days),
        message=QUOTE_RECEIVED_MESSAGE,
    )
    return envelope(submitted.to_wire(), message="Quote request submitted successfully")
