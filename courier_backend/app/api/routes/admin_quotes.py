"""
Admin Quote Routes

Review incoming quote requests and send the one-time response.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.api.deps import get_current_admin, get_notifier
from app.models.audit_log import AuditAction
from app.models.quote import QuoteStatus
from app.models.shipment import ServiceType
from app.models.user import User
from app.schemas.common import PaginationParams, envelope, pagination_meta, pagination_params
from app.schemas.quote import QuoteRespond, QuoteResponse
from app.services.audit_service import AuditService
from app.services.notifications import NotificationDispatcher
from app.services.quote_service import QuoteService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/quotes",
    tags=["admin-quotes"],
    dependencies=[Depends(rate_limit("admin")), Depends(get_current_admin)],
)


@router.get("")
async def list_quotes(
    page: PaginationParams = Depends(pagination_params),
    status_filter: Optional[QuoteStatus] = Query(None, alias="status"),
    service_type: Optional[ServiceType] = Query(None, alias="serviceType"),
    db: AsyncSession = Depends(get_db),
):
    """Paginated quotes, newest first."""
    items, total = await QuoteService(db).list_quotes(
        offset=page.offset,
        limit=page.limit,
        status=status_filter,
        service_type=service_type,
    )
    return envelope(
        [QuoteResponse.model_validate(q).to_wire() for q in items],
        pagination=pagination_meta(total, page.page, page.limit),
    )


@router.patch("/{quote_id}/respond")
async def respond_to_quote(
    quote_id: int,
    data: QuoteRespond,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Set the final price and message, then email the requester."""
    quote = await QuoteService(db).respond(quote_id, data, responded_by=admin.id)

    await AuditService(db).log(
        AuditAction.QUOTE_RESPONDED,
        entity_type="quote",
        entity_id=quote.id,
        user=admin,
        request=request,
        new_data={"estimated_price": quote.estimated_price},
    )

    notifier.quote_responded(
        email=quote.email,
        name=quote.name,
        origin=quote.origin,
        destination=quote.destination,
        price=quote.estimated_price,
        admin_response=quote.admin_response,
        sent_by=admin.id,
    )

    return envelope(
        QuoteResponse.model_validate(quote).to_wire(),
        message="Quote response sent successfully",
    )
